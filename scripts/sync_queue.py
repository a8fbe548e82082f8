#!/usr/bin/env python3
"""
Dataset Recorder Queue Sync

Loads the device's offline queue and runs one upload pass against the
ingestion server, the same pass the operator's "upload all" button runs.
Only file-backed clips survive a restart, so the native backend is used.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path for ``src`` imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.config import get_settings  # noqa: E402
from src.core.exceptions import DatasetRecorderError  # noqa: E402
from src.services.capture.native import NativeCaptureBackend  # noqa: E402
from src.services.recorder_app import RecorderApp  # noqa: E402


async def sync(clear_uploaded: bool = False) -> int:
    """Upload every pending clip once.

    Returns:
        Exit code: 0 if every pending clip was uploaded, 1 otherwise.
    """
    app = await RecorderApp.create(backend=NativeCaptureBackend())
    try:
        print(f"Queue: {len(app.recordings)} clips, {len(app.queue.pending())} pending")
        try:
            result = await app.upload_all()
        except DatasetRecorderError as exc:
            print(f"Upload pass aborted: {exc.detail}")
            return 1

        if result.nothing_to_do:
            print("All clips are already uploaded.")
        else:
            print(f"Uploaded {result.succeeded}/{result.attempted} clips")
            for item_id in result.failed_ids:
                print(f"  FAILED  {item_id}")

        if clear_uploaded:
            for item in app.recordings:
                if item.uploaded:
                    await app.delete_recording(item.id)
            print(f"Remaining in queue: {len(app.recordings)}")

        return 1 if result.failed_ids else 0
    finally:
        await app.close()


def main() -> int:
    """Entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Upload the offline clip queue")
    parser.add_argument(
        "--clear-uploaded",
        action="store_true",
        help="Delete clips from the device once they are uploaded",
    )
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level)
    return asyncio.run(sync(clear_uploaded=args.clear_uploaded))


if __name__ == "__main__":
    sys.exit(main())
