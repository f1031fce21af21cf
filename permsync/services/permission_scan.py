"""Periodic scan that queues tenants whose permissions are missing or stale."""

import time
import logging
from typing import Callable, List, Optional

from permsync.infra.config import config
from permsync.models.queue_item import QueueItem
from permsync.models.tenant import TenantDescriptor
from permsync.ports import PermissionStore, TenantDirectory

logger = logging.getLogger(__name__)


def find_tenants_needing_update(
    tenants: TenantDirectory,
    records: PermissionStore,
    application_id: str,
    max_age_hours: int,
    now: Optional[float] = None,
) -> List[TenantDescriptor]:
    """
    Select tenants whose permission record is missing, was written by another
    application, or is older than ``max_age_hours``.
    """
    now = time.time() if now is None else now
    cutoff = now - max_age_hours * 3600

    latest = {}
    for record in records.get_permission_records():
        if record.application_id != application_id:
            continue
        latest[record.tenant] = max(latest.get(record.tenant, 0), record.last_apply_epoch)

    return [
        tenant
        for tenant in tenants.list_tenants(include_errors=True)
        if latest.get(tenant.customer_id, 0) < cutoff
    ]


def queue_stale_tenants(
    tenants: TenantDirectory,
    records: PermissionStore,
    application_id: Optional[str] = None,
    max_age_hours: Optional[int] = None,
    enqueue: Optional[Callable[[QueueItem], str]] = None,
) -> List[str]:
    """
    Enqueue a permission update for every tenant that needs one.

    Returns:
        Job IDs of the queued updates
    """
    if enqueue is None:
        from permsync.infra.queue import enqueue_permission_update
        enqueue = enqueue_permission_update

    application_id = application_id or config.APPLICATION_ID
    max_age_hours = config.PERMISSION_REFRESH_HOURS if max_age_hours is None else max_age_hours

    job_ids = []
    for tenant in find_tenants_needing_update(tenants, records, application_id, max_age_hours):
        job_ids.append(enqueue(QueueItem.from_tenant(tenant)))
        logger.info(f"Queued permission update for {tenant.display_name}", extra={"tenant_id": tenant.customer_id})

    logger.info(f"Queued {len(job_ids)} permission updates")
    return job_ids
