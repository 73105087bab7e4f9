"""FastAPI dependencies for request validation and shared services.

This module provides reusable FastAPI dependencies for:
- Webhook signature validation
- Access to services created in the app lifespan (app.state)
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from vibe.core.config import Settings
from vibe.services.blockchain.alchemy_signature import validate_alchemy_signature
from vibe.services.blockchain.factory_events import Web3Factory
from vibe.services.blockchain.webhook_registry import WebhookRegistry
from vibe.services.reconciler import NftReconciler


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance loaded from environment variables.
    """
    return Settings()  # type: ignore[call-arg]  # Pydantic loads from env vars


async def validate_webhook_signature(
    request: Request,
    x_alchemy_signature: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> bytes:
    """Validate the Alchemy webhook signature before the body is parsed.

    Reads the raw request body and checks the HMAC-SHA256 signature from the
    X-Alchemy-Signature header against ALCHEMY_WEBHOOK_SECRET.

    Returns:
        Raw request body bytes (for further processing by the endpoint)

    Raises:
        HTTPException: 401 Unauthorized if signature is missing or invalid
    """
    if not x_alchemy_signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Alchemy-Signature header"
        )

    # Must be the exact bytes received
    raw_body = await request.body()

    is_valid = validate_alchemy_signature(
        raw_body=raw_body,
        signature=x_alchemy_signature,
        signing_key=settings.alchemy_webhook_secret,
    )

    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature"
        )

    return raw_body


def get_reconciler(request: Request) -> NftReconciler:
    """Get the NFT reconciler created in the app lifespan."""
    return request.app.state.reconciler


def get_webhook_registry(request: Request) -> WebhookRegistry:
    return request.app.state.webhook_registry


def get_web3_factory(request: Request) -> Web3Factory:
    """Get the per-network Web3 factory used for factory log lookups."""
    return request.app.state.web3_factory
