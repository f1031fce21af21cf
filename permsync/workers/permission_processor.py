"""Worker function for tenant permission updates (called by RQ)."""

import logging
from typing import Any, Dict, Optional

from permsync.infra.config import config
from permsync.infra.metrics import queue_jobs_total
from permsync.models.queue_item import QueueItem
from permsync.services.permission_reconciler import (
    PermissionReconciler,
    ReconcilerSettings,
    reconcile_permissions,
)

logger = logging.getLogger(__name__)

_reconciler: Optional[PermissionReconciler] = None


def build_reconciler(settings: Optional[ReconcilerSettings] = None) -> PermissionReconciler:
    """
    Wire the reconciler to the SQL stores and the Graph client.

    The settings' application id is also the one the Graph client consents
    and assigns admin roles for.
    """
    # Import here so the worker module loads without a database connection
    from permsync.adapters.graph_permission_client import GraphPermissionClient
    from permsync.adapters.sql_permission_store import permission_store
    from permsync.adapters.sql_tenant_directory import SqlTenantDirectory
    from permsync.infra.graph_client import GraphClient
    from permsync.logging.audit_logger import audit_logger

    if settings is None:
        if not config.APPLICATION_ID:
            raise RuntimeError("APPLICATION_ID is not configured")
        settings = ReconcilerSettings(application_id=config.APPLICATION_ID)

    graph = GraphClient(application_id=settings.application_id)
    return PermissionReconciler(
        settings=settings,
        tenants=SqlTenantDirectory(graph),
        records=permission_store,
        permissions=GraphPermissionClient(
            graph,
            application_id=settings.application_id,
            consent_profile_name=settings.profile_name,
        ),
        audit=audit_logger,
    )


def get_reconciler() -> PermissionReconciler:
    global _reconciler
    if _reconciler is None:
        _reconciler = build_reconciler()
    return _reconciler


def process_permission_update(
    item_data: Dict[str, Any],
    reconciler: Optional[PermissionReconciler] = None,
) -> Dict[str, Any]:
    """
    Reconcile one tenant's permissions.

    Failures are logged and reported in the returned dict; the job itself
    always succeeds so RQ does not retry it.

    Args:
        item_data: QueueItem as dict (camelCase or snake_case keys)
        reconciler: Override the process-wide reconciler

    Returns:
        Result dict with status and what was applied
    """
    item = QueueItem(**item_data)
    logger.info(f"Updating permissions for {item.display_name}", extra={"tenant_id": item.customer_id})

    result = reconcile_permissions(item, reconciler or get_reconciler())

    queue_jobs_total.labels(
        queue="permissions", status="completed" if result.ok else "failed"
    ).inc()

    response = {
        "status": "success" if result.ok else "failure",
        "tenant_id": result.tenant_id,
        "consent_granted": result.consent_granted,
        "admin_roles_assigned": result.admin_roles_assigned,
        "domain_refreshed": result.domain_refreshed,
        "last_apply": result.last_apply,
    }
    if result.error is not None:
        response["error"] = {
            "stage": result.error.stage.value,
            "category": result.error.category.value,
            "message": result.error.message,
        }
    return response
