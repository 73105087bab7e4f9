"""CLI command for backfilling a collection's NFTs from the Alchemy NFT API.

Usage:
    python -m vibe.cli.sync_collection COLLECTION_ID [OPTIONS]

Examples:
    # Sync every NFT of a collection
    python -m vibe.cli.sync_collection 0b6f2c1e-4d0a-4a7e-9a57-2f7d3c1b8e10

    # Dry run (fetch and report, no database writes)
    python -m vibe.cli.sync_collection 0b6f2c1e-4d0a-4a7e-9a57-2f7d3c1b8e10 --dry-run

    # Verbose logging
    python -m vibe.cli.sync_collection 0b6f2c1e-4d0a-4a7e-9a57-2f7d3c1b8e10 -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from uuid import UUID

import structlog

from vibe.core.config import Settings, configure_logging
from vibe.core.database import setup_db_session
from vibe.services.blockchain.nft_sync import AlchemyNftClient, CollectionSyncService
from vibe.services.exceptions import AlchemyApiError, UnknownCollectionError
from vibe.services.reconciler import NftReconciler
from vibe.uow import create_uow_factory

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Sync a collection's NFTs and owners from the Alchemy NFT API",
        epilog="Tokens go through the mint path, so existing tier properties are never overwritten",
    )

    parser.add_argument("collection_id", type=UUID, help="Collection id (UUID)")

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch tokens and owners without database writes",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 2 (some tokens failed).
        Interrupts are turned into 130 by main().
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    if not settings.alchemy_api_key:
        logger.error("cli.missing_api_key")
        print("Error: ALCHEMY_API_KEY is not set", file=sys.stderr)
        return 1

    logger.info("cli.started", collection_id=str(args.collection_id), dry_run=args.dry_run)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    sync_service = CollectionSyncService(
        uow_factory=uow_factory,
        nft_client=AlchemyNftClient(settings.alchemy_api_key),
        reconciler=NftReconciler(
            uow_factory,
            referral_code_length=settings.referral_code_length,
            call_timeout_seconds=settings.persistence_timeout_seconds,
        ),
        request_delay_seconds=settings.nft_sync_delay_seconds,
    )

    try:
        report = await sync_service.sync_collection(args.collection_id, dry_run=args.dry_run)

    except (UnknownCollectionError, ValueError) as e:
        logger.error("cli.invalid_collection", error=str(e))
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except AlchemyApiError as e:
        logger.error("cli.alchemy_error", error=str(e), error_type=type(e).__name__)
        print(f"\nAlchemy API error: {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 60)
    print("Collection Sync Summary")
    print("=" * 60)
    print(f"Tokens seen: {report.seen}")
    print(f"Created: {report.created}")
    print(f"Updated: {report.updated}")
    print(f"Unchanged: {report.unchanged}")
    print(f"Skipped: {report.skipped}")
    print(f"Failed: {report.failed}")
    if args.dry_run:
        print("\n[DRY RUN] No changes were persisted to database")
    print("=" * 60 + "\n")

    if report.failed:
        logger.warning("cli.partial_success", failed=report.failed)
        return 2
    return 0


def main() -> None:
    """Synchronous entry point for CLI."""
    try:
        exit_code = asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nSync interrupted by user", file=sys.stderr)
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
