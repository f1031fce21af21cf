#!/usr/bin/env python3
"""Start an RQ worker for tenant permission updates.

Usage:
    python scripts/start_worker.py [--queue default|high_priority|low_priority] [--burst]
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from rq import Worker
from permsync.infra.logging import app_logger
from permsync.infra.queue import redis_conn, default_queue, high_priority_queue, low_priority_queue


def main():
    parser = argparse.ArgumentParser(description="Start permission update worker")
    parser.add_argument(
        "--queue",
        choices=["default", "high_priority", "low_priority"],
        default="default",
        help="Queue to process (default: default)",
    )
    parser.add_argument(
        "--burst",
        action="store_true",
        help="Run in burst mode (exit when queue is empty)",
    )

    args = parser.parse_args()

    queue = {
        "default": default_queue,
        "high_priority": high_priority_queue,
        "low_priority": low_priority_queue,
    }[args.queue]

    app_logger.info(f"Starting worker for queue: {args.queue}", extra={"burst": args.burst})

    worker = Worker([queue], connection=redis_conn)
    worker.work(burst=args.burst)


if __name__ == "__main__":
    main()
