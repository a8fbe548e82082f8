#!/usr/bin/env python3
"""
Dataset Recorder Sentence Importer

Reads a JSON array of ``{"text": ..., "category": ...}`` objects and posts
it to the ingestion server's ``/api/import-sentences`` endpoint.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path for ``src`` imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.config import get_settings  # noqa: E402
from src.core.exceptions import IngestionError  # noqa: E402
from src.services.sync.client import IngestionClient  # noqa: E402


async def run(path: Path, api_url: str) -> int:
    """Post the sentences in *path* to the server.

    Returns:
        Exit code: 0 on success, 1 on an unreadable file or server error.
    """
    try:
        with open(path, encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Cannot read {path}: {exc}")
        return 1

    if not isinstance(entries, list):
        print("The file must contain a JSON array")
        return 1

    async with IngestionClient(api_url) as client:
        try:
            result = await client.import_sentences(entries)
        except IngestionError as exc:
            print(f"Import failed: {exc.detail}")
            return 1

    print(result.get("message", f"Imported {len(entries)} sentences."))
    return 0


def main() -> int:
    """Entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Import prompt sentences into the server")
    parser.add_argument("file", type=Path, help="JSON file with a list of sentences")
    parser.add_argument(
        "--api-url",
        default=None,
        help="Ingestion server URL (default: API_URL setting)",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    return asyncio.run(run(args.file, args.api_url or settings.api_url))


if __name__ == "__main__":
    sys.exit(main())
