"""Alchemy webhook endpoints.

- NFT_ACTIVITY: transfers of tracked collections; mints create NFTs with tier
  properties, transfers record the new owner.
- ADDRESS_ACTIVITY: calls to the collection factory; new token contracts are
  registered with the NFT_ACTIVITY webhook.
"""

import asyncio
import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from vibe.api.dependencies import (
    get_reconciler,
    get_settings,
    get_web3_factory,
    get_webhook_registry,
    validate_webhook_signature,
)
from vibe.core.config import Settings
from vibe.models.alchemy_webhook import WebhookType
from vibe.models.nft import Nft
from vibe.services.blockchain.factory_events import Web3Factory, find_factory_deployments
from vibe.services.blockchain.networks import normalize_network
from vibe.services.blockchain.webhook_registry import WebhookRegistry
from vibe.services.exceptions import AlchemyApiError
from vibe.services.reconciler import NftReconciler, ReconcileStatus

logger = structlog.get_logger()
router = APIRouter()

NFT_STATE_FIELDS = {"id", "collection_id", "tier_id", "token_id", "owner_address", "properties", "materialized"}


def parse_webhook_payload(raw_body: bytes) -> dict[str, Any]:
    """Parse a webhook body into a dict.

    Raises:
        HTTPException: 400 if the body is not a JSON object
    """
    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("webhook.invalid_json", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid JSON payload: {str(e)}",
        )

    if not isinstance(payload, dict):
        logger.error("webhook.invalid_payload", payload_type=type(payload).__name__)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook payload must be a JSON object",
        )
    return payload


def extract_event(payload: dict[str, Any]) -> tuple[str, list[Any]]:
    """Return (network, activities) from ``payload.event``; missing parts become empty."""
    event = payload.get("event") or {}
    if not isinstance(event, dict):
        return "", []
    activities = event.get("activity") or []
    if not isinstance(activities, list):
        activities = []
    return normalize_network(event.get("network") or ""), activities


def serialize_nft(nft: Nft) -> dict[str, Any]:
    return nft.model_dump(mode="json", include=NFT_STATE_FIELDS)


@router.post("/nft-activity")
async def receive_nft_activity(
    raw_body: bytes = Depends(validate_webhook_signature),
    settings: Settings = Depends(get_settings),
    reconciler: NftReconciler = Depends(get_reconciler),
):
    """Reconcile NFT state from an NFT_ACTIVITY delivery.

    Every activity is attempted even when earlier ones fail. Per-activity
    failures are logged, never returned.

    HTTP Status Codes:
        200: Delivery processed (or ignored because of its type)
        400: Malformed JSON
        401: Missing or invalid signature
        500: A retryable failure occurred (triggers Alchemy retry)
        503: Delivery exceeded WEBHOOK_TIMEOUT_SECONDS (triggers Alchemy retry)
    """
    payload = parse_webhook_payload(raw_body)

    webhook_id = payload.get("webhookId", "unknown")
    event_id = payload.get("id", "unknown")

    if payload.get("type") != WebhookType.NFT_ACTIVITY.value:
        logger.info(
            "webhook.ignored_type",
            webhook_id=webhook_id,
            event_id=event_id,
            type=payload.get("type"),
        )
        return {"status": "ignored", "message": "Unsupported webhook type"}

    network, activities = extract_event(payload)
    logger.info(
        "webhook.received",
        webhook_id=webhook_id,
        event_id=event_id,
        network=network,
        activity_count=len(activities),
    )

    try:
        batch = await asyncio.wait_for(
            reconciler.process_activities(network, activities),
            timeout=settings.webhook_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(
            "webhook.timeout",
            webhook_id=webhook_id,
            event_id=event_id,
            timeout_seconds=settings.webhook_timeout_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook processing timed out",
        )

    if batch.has_retryable_failures:
        logger.error(
            "webhook.retryable_failures",
            webhook_id=webhook_id,
            event_id=event_id,
            failed=len(batch.failed),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return {
        "status": "success",
        "nfts": [serialize_nft(nft) for nft in batch.nfts],
        "skipped": batch.count(ReconcileStatus.SKIPPED),
    }


@router.post("/address-activity")
async def receive_address_activity(
    raw_body: bytes = Depends(validate_webhook_signature),
    registry: WebhookRegistry = Depends(get_webhook_registry),
    web3_factory: Web3Factory = Depends(get_web3_factory),
):
    """Register newly deployed collection contracts from an ADDRESS_ACTIVITY delivery.

    Registration failures are logged per contract; the delivery is still
    acknowledged since retries would re-run the same RPC lookups.
    """
    payload = parse_webhook_payload(raw_body)

    if payload.get("type") != WebhookType.ADDRESS_ACTIVITY.value:
        logger.info("webhook.ignored_type", type=payload.get("type"))
        return {"status": "ignored", "message": "Unsupported webhook type"}

    network, activities = extract_event(payload)
    logger.info(
        "webhook.address_activity_received",
        webhook_id=payload.get("webhookId", "unknown"),
        network=network,
        activity_count=len(activities),
    )

    deployments = await find_factory_deployments(network, activities, web3_factory)

    registered = []
    for deployment in deployments:
        try:
            await registry.register_nft_activity_filter(deployment.network, deployment.token_address)
        except AlchemyApiError as e:
            logger.error(
                "webhook.nft_filter_registration_failed",
                network=deployment.network,
                token_address=deployment.token_address,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue
        registered.append(
            {
                "network": deployment.network,
                "token_address": deployment.token_address,
                "contract_address": deployment.sale_contract_address,
            }
        )

    return {"status": "success", "deployments": registered}
