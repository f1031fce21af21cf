"""Tenant permission API router."""

import logging
from typing import Callable, Optional
from fastapi import APIRouter, Depends, HTTPException, Security, status

from permsync.api.models import (
    JobStatusResponse,
    PermissionRecordResponse,
    PermissionStatusResponse,
    RefreshPermissionsRequest,
    RefreshPermissionsResponse,
)
from permsync.infra.auth import verify_api_key
from permsync.infra.error_handler import PermSyncError, TenantNotFoundError
from permsync.models.queue_item import QueueItem
from permsync.ports import PermissionStore, TenantDirectory

logger = logging.getLogger(__name__)

router = APIRouter()

_tenant_directory: Optional[TenantDirectory] = None


def get_tenant_directory() -> TenantDirectory:
    global _tenant_directory
    if _tenant_directory is None:
        from permsync.adapters.sql_tenant_directory import SqlTenantDirectory
        from permsync.infra.graph_client import GraphClient
        _tenant_directory = SqlTenantDirectory(GraphClient())
    return _tenant_directory


def get_permission_store() -> PermissionStore:
    from permsync.adapters.sql_permission_store import permission_store
    return permission_store


def get_enqueue() -> Callable[..., str]:
    from permsync.infra.queue import enqueue_permission_update
    return enqueue_permission_update


def get_job_lookup() -> Callable[[str], dict]:
    from permsync.infra.queue import get_job_status
    return get_job_status


@router.get(
    "/tenants/{tenant_id}/permissions",
    tags=["Permissions"],
    response_model=PermissionStatusResponse,
)
def get_tenant_permissions(
    tenant_id: str,
    records: PermissionStore = Depends(get_permission_store),
    api_key: str = Security(verify_api_key),
):
    """Last time permissions were applied to a tenant, per application."""
    return PermissionStatusResponse(
        tenant_id=tenant_id,
        records=[
            PermissionRecordResponse(
                tenant=record.tenant,
                application_id=record.application_id,
                last_apply=record.last_apply,
            )
            for record in records.get_permission_records(tenant_id)
        ],
    )


@router.post(
    "/tenants/{tenant_id}/permissions/refresh",
    tags=["Permissions"],
    response_model=RefreshPermissionsResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def refresh_tenant_permissions(
    tenant_id: str,
    request: Optional[RefreshPermissionsRequest] = None,
    tenants: TenantDirectory = Depends(get_tenant_directory),
    enqueue: Callable[..., str] = Depends(get_enqueue),
    api_key: str = Security(verify_api_key),
):
    """
    Queue a permission update for a tenant.

    **Example Request:**
    ```json
    {"priority": "high"}
    ```
    """
    try:
        tenant = tenants.lookup_tenant(tenant_id, include_errors=True)
    except TenantNotFoundError:
        raise HTTPException(status_code=404, detail=f"Tenant {tenant_id} not found")
    except PermSyncError as e:
        logger.error(f"Tenant lookup failed for {tenant_id}: {e}", extra={"tenant_id": tenant_id})
        raise HTTPException(status_code=502, detail="Tenant directory is unavailable")

    priority = request.priority if request else "default"
    job_id = enqueue(QueueItem.from_tenant(tenant), priority=priority)
    logger.info(f"Queued permission update for {tenant.display_name}", extra={"tenant_id": tenant_id, "job_id": job_id})
    return RefreshPermissionsResponse(tenant_id=tenant_id, job_id=job_id)


@router.get("/jobs/{job_id}", tags=["Permissions"], response_model=JobStatusResponse)
def get_job(
    job_id: str,
    job_lookup: Callable[[str], dict] = Depends(get_job_lookup),
    api_key: str = Security(verify_api_key),
):
    """Status of a queued permission update."""
    job = job_lookup(job_id)
    if job["status"] == "not_found":
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return JobStatusResponse(**job)
