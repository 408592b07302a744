#!/usr/bin/env python3
"""Run one upload of a local report queue.

Reads ``STUMBLER_*`` configuration from the environment (see
``StumblerConfig.from_env``) and drains the SQLite queue at ``--db``.
Intended for manual runs; scheduling is up to the caller.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pystumbler import SqliteReportStore, StumblerClient, StumblerConfig  # noqa: E402
from pystumbler.models import DroppedWindow  # noqa: E402


def _print_drop(dropped: DroppedWindow) -> None:
    print(f"dropped {len(dropped.row_ids)} report(s) [{dropped.min_id}, {dropped.max_id}]: {dropped.reason}")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload queued observations once")
    parser.add_argument("--db", type=Path, required=True, help="SQLite report queue")
    parser.add_argument(
        "--off-network",
        action="store_true",
        help="Report that the device is not on an acceptable network (exercises the wifi-only gate).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the network status, like a manual upload request.",
    )
    parser.add_argument("--stats", action="store_true", help="Print cumulative statistics after the run.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging.")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    config = StumblerConfig.from_env()

    async with SqliteReportStore(args.db) as store:
        async with StumblerClient(config, store, on_drop=_print_drop) as client:
            result = await client.sync(
                network_acceptable=not args.off_network,
                ignore_network_status=args.force,
            )
            stats = await client.stats() if args.stats else None

    summary = asdict(result)
    summary.pop("dropped")
    print(json.dumps(summary, indent=2, sort_keys=True))
    if stats is not None:
        print(json.dumps(stats.model_dump(), indent=2, sort_keys=True))

    if result.database_error:
        return 1
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
