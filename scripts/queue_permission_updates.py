#!/usr/bin/env python3
"""Sync tenants from partner contracts, then queue permission updates for
tenants with missing or stale permissions.

Usage:
    python scripts/queue_permission_updates.py [--max-age-hours N]

Run from cron, e.g. every 4 hours:
    0 */4 * * * cd /path/to/permsync && /path/to/venv/bin/python scripts/queue_permission_updates.py
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from permsync.adapters.sql_permission_store import permission_store
from permsync.adapters.sql_tenant_directory import SqlTenantDirectory
from permsync.infra.config import config
from permsync.infra.graph_client import GraphClient
from permsync.infra.logging import app_logger
from permsync.services.permission_scan import queue_stale_tenants


def main():
    parser = argparse.ArgumentParser(description="Queue stale tenant permission updates")
    parser.add_argument(
        "--max-age-hours",
        type=int,
        default=config.PERMISSION_REFRESH_HOURS,
        help=f"Re-apply permissions older than this (default: {config.PERMISSION_REFRESH_HOURS})",
    )
    args = parser.parse_args()

    if not config.APPLICATION_ID:
        app_logger.error("APPLICATION_ID is not configured")
        sys.exit(1)

    tenants = SqlTenantDirectory(GraphClient())
    tenants.sync_tenants()

    job_ids = queue_stale_tenants(
        tenants,
        permission_store,
        max_age_hours=args.max_age_hours,
    )
    app_logger.info(f"Queued {len(job_ids)} tenants")


if __name__ == "__main__":
    main()
