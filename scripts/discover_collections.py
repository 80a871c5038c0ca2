#!/usr/bin/env python3
"""
Sample the operations collections and report which fields they carry.

Read-only. Useful when the booking platform adds fields to its documents
and the schemas need to catch up, or when checking a seed export before
pointing mock mode at it.

Usage:
    python scripts/discover_collections.py
    python scripts/discover_collections.py --collection bookings --limit 20
    python scripts/discover_collections.py --seed seed.json

Requires:
    - .env file with Snowflake credentials (unless --seed is given)
"""

import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def summarize_fields(documents) -> dict[str, dict]:
    """
    Count how often each top-level field appears and which JSON types it holds.

    Returns {field: {"count": n, "types": {type_name, ...}}}.
    """
    fields: dict[str, dict] = {}

    for document in documents:
        for name, value in document.data.items():
            entry = fields.setdefault(name, {"count": 0, "types": set()})
            entry["count"] += 1
            entry["types"].add(type(value).__name__ if value is not None else "null")

    return fields


def print_collection(name: str, documents) -> None:
    print(f"\n=== {name} ({len(documents)} sampled) ===")

    if not documents:
        print("  (empty)")
        return

    print(f"  Sample ids: {', '.join(document.id for document in documents[:5])}")

    fields = summarize_fields(documents)
    width = max(len(field) for field in fields)
    for field, entry in sorted(fields.items()):
        types = "/".join(sorted(entry["types"]))
        print(f"  {field.ljust(width)}  {entry['count']:>4}/{len(documents)}  {types}")


def main():
    import argparse

    from src.api.dependencies import snowflake_config
    from src.config.settings import get_settings
    from src.infrastructure.snowflake.client import COLLECTIONS, create_document_store

    parser = argparse.ArgumentParser(description='Report field usage in the operations collections')
    parser.add_argument('--collection', choices=COLLECTIONS, help='Only sample this collection')
    parser.add_argument('--limit', type=int, default=10, help='Documents to sample per collection')
    parser.add_argument('--seed', help='Read a JSON export instead of Snowflake')
    args = parser.parse_args()

    settings = get_settings()
    collections = [args.collection] if args.collection else list(COLLECTIONS)

    if not args.seed:
        missing = settings.validate_required_fields()
        if missing:
            print(f"ERROR: Missing configuration: {', '.join(missing)}")
            sys.exit(1)

    try:
        with create_document_store(
            config=None if args.seed else snowflake_config(settings),
            mock_mode=bool(args.seed),
            seed_path=args.seed,
        ) as store:
            for name in collections:
                documents = store.query(name, limit=args.limit)
                print_collection(name, documents)
    except Exception as e:
        print(f"ERROR reading collections: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
