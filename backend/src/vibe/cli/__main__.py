"""CLI entry point for vibe.cli module.

Enables execution via: python -m vibe.cli COLLECTION_ID
"""

from vibe.cli.sync_collection import main

if __name__ == "__main__":
    raise SystemExit(main())
