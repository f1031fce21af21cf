"""Request and response models for the management API."""

from typing import List, Optional
from pydantic import BaseModel, Field


class PermissionRecordResponse(BaseModel):
    """A tenant's permission watermark."""
    tenant: str
    application_id: str
    last_apply: str = Field(..., description="Unix epoch seconds of the last application")


class PermissionStatusResponse(BaseModel):
    tenant_id: str
    records: List[PermissionRecordResponse]


class RefreshPermissionsRequest(BaseModel):
    priority: str = Field(default="default", pattern="^(high|default|low)$")


class RefreshPermissionsResponse(BaseModel):
    tenant_id: str
    job_id: str
    status: str = "queued"


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    result: Optional[dict] = None
    error: Optional[str] = None
