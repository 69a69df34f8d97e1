"""
Script to build a snapshot of one Airtable base from the command line

Run from the repository root:
    python -m scripts.run_snapshot appXXXXXXXXXXXXXX --output ./snapshots
"""

import argparse
import asyncio
import shutil
import sys
from pathlib import Path
import logging

from core.config import settings
from core.exceptions import SnapshotException
from core.logging import setup_logging
from snapshot.client import AirtableClient
from snapshot.runner import SnapshotRunner

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Snapshot an Airtable base into a SQLite file")
    parser.add_argument("base_id", nargs="?", help="Airtable base id (appXXXXXXXXXXXXXX)")
    parser.add_argument("--api-key", default=settings.AIRTABLE_API_KEY, help="Defaults to AIRTABLE_API_KEY")
    parser.add_argument("--name", help="Base name used for the file name")
    parser.add_argument("--output", default=".", help="Directory the snapshot is moved to")
    parser.add_argument("--list-bases", action="store_true", help="List readable bases and exit")
    return parser.parse_args(argv)


async def list_bases(api_key: str) -> int:
    async with AirtableClient(api_key) as client:
        bases = await client.list_bases()
    for base in bases:
        print(f"{base.id}\t{base.name}")
    return 0


async def run_snapshot(api_key: str, base_id: str, name: str, output: str) -> int:
    async with AirtableClient(api_key) as client:
        result = await SnapshotRunner(client).run(base_id, name)

    try:
        output_dir = Path(output)
        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / result.file_name
        shutil.move(str(result.file_path), str(target))
    finally:
        result.discard()

    summary = result.summary()
    logger.info(
        f"Snapshot written to {target}: "
        f"rows={summary['rows_written']}, failed rows={summary['rows_failed']}, "
        f"degraded tables={summary['tables_degraded']}"
    )
    for warning in result.warnings:
        logger.warning(warning)
    print(target)
    return 0


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)

    try:
        if args.list_bases:
            return asyncio.run(list_bases(args.api_key))
        if not args.base_id:
            logger.error("A base id is required unless --list-bases is given")
            return 2
        return asyncio.run(run_snapshot(args.api_key, args.base_id, args.name, args.output))
    except SnapshotException as e:
        logger.error(f"Snapshot failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
