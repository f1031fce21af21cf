"""Permission watermark and permission profile models."""

from dataclasses import dataclass
from typing import Dict, List
from pydantic import BaseModel, Field

# All permission records share one partition; the row key is the tenant id
PERMISSION_PARTITION_KEY = "Tenant"

DEFAULT_PROFILE_NAME = "CIPPDefaults"


@dataclass(frozen=True)
class PermissionRecord:
    """
    Last time permissions were applied to a tenant.

    Attributes:
        tenant: Customer (tenant) id, also the row key
        application_id: Application that applied the permissions
        last_apply: Unix epoch seconds, string encoded
        partition_key: Fixed partition constant
    """
    tenant: str
    application_id: str
    last_apply: str
    partition_key: str = PERMISSION_PARTITION_KEY

    @property
    def row_key(self) -> str:
        return self.tenant

    @property
    def last_apply_epoch(self) -> int:
        try:
            return int(float(self.last_apply))
        except (TypeError, ValueError, OverflowError):
            return 0


class ResourceAccess(BaseModel):
    """Permissions required on one resource application (e.g. Microsoft Graph)."""
    resource_app_id: str = Field(..., alias="resourceAppId")
    application: List[str] = Field(
        default_factory=list,
        description="App role ids granted as application permissions",
    )
    delegated: List[str] = Field(
        default_factory=list,
        description="Scope names granted as delegated permissions",
    )

    model_config = {"populate_by_name": True}


class PermissionProfile(BaseModel):
    """Named baseline of required resource access."""
    name: str
    required_resource_access: List[ResourceAccess] = Field(
        default_factory=list, alias="requiredResourceAccess"
    )

    model_config = {"populate_by_name": True}

    def delegated_scopes(self) -> Dict[str, List[str]]:
        """Delegated scopes keyed by resource app id."""
        return {
            access.resource_app_id: list(access.delegated)
            for access in self.required_resource_access
            if access.delegated
        }

    def application_roles(self) -> Dict[str, List[str]]:
        """Application role ids keyed by resource app id."""
        return {
            access.resource_app_id: list(access.application)
            for access in self.required_resource_access
            if access.application
        }
