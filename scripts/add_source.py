#!/usr/bin/env python
"""Register a new source in the scanner database.

Usage::

    python scripts/add_source.py "Example News" https://example.com/news
    python scripts/add_source.py "Example Page" https://example.com/page \\
        --kind social-feed-b --cadence 60 --cap 5

Cadence is clamped to at least 5 minutes and the cap to 1-10.

Exit codes:
    0: Source registered.
    1: Invalid input or a source with the same URL already exists.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure the src layout is on sys.path when run as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _run(name: str, url: str, kind: str, cadence: int, cap: int, inactive: bool) -> int:
    """Insert the source row.

    Returns:
        The process exit code.
    """
    from pydantic import ValidationError  # noqa: PLC0415

    from news_scanner.config.settings import get_settings  # noqa: PLC0415
    from news_scanner.core.database import SqlAlchemyStore, create_schema  # noqa: PLC0415
    from news_scanner.core.exceptions import NewsScannerError  # noqa: PLC0415
    from news_scanner.core.schemas.sources import SourceCreate  # noqa: PLC0415

    try:
        payload = SourceCreate(
            name=name,
            url=url,
            kind=kind,
            cadence_minutes=cadence,
            max_results=cap,
            is_active=not inactive,
        )
    except ValidationError as exc:
        print(f"[add_source] ERROR: invalid source:\n{exc}", file=sys.stderr)
        return 1

    store, engine = SqlAlchemyStore.from_url(get_settings().database_url)
    try:
        await create_schema(engine)
        source = await store.add_source(payload)
    except NewsScannerError as exc:
        print(f"[add_source] ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()

    print(
        f"[add_source] Registered source {source.id}: {source.name} "
        f"({source.kind_value}, every {source.cadence_minutes} min, cap {source.max_results})"
    )
    return 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Register a news source.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("name", help="Human label for the source.")
    parser.add_argument("url", help="Absolute http(s) origin URL.")
    parser.add_argument(
        "--kind",
        default="site",
        choices=["site", "social-feed-a", "social-feed-b"],
        help="Source kind (default: site).",
    )
    parser.add_argument("--cadence", type=int, default=30, help="Minutes between scans.")
    parser.add_argument("--cap", type=int, default=3, help="Fragments kept per scan.")
    parser.add_argument(
        "--inactive",
        action="store_true",
        default=False,
        help="Register the source without scheduling it.",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point for the add-source script."""
    args = _parse_args()
    sys.exit(
        asyncio.run(
            _run(
                name=args.name,
                url=args.url,
                kind=args.kind,
                cadence=args.cadence,
                cap=args.cap,
                inactive=args.inactive,
            )
        )
    )


if __name__ == "__main__":
    main()
