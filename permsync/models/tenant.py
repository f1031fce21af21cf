"""Tenant directory models."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

# Default domain name reserved for the portal operator's own (partner) tenant
OPERATOR_TENANT_DOMAIN = "PartnerTenant"


class DelegatedPrivilegeStatus(str, Enum):
    """How the portal reaches a tenant."""
    DIRECT_TENANT = "directTenant"
    DELEGATED_ADMIN = "delegatedAdminPrivileges"
    GRANULAR_DELEGATED_ADMIN = "granularDelegatedAdminPrivileges"
    DELEGATED_AND_GRANULAR = "delegatedAndGranularDelegatedAdminPrivileges"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["DelegatedPrivilegeStatus"]:
        """Map a directory value to a status, ``None`` when unknown or empty."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class TenantDescriptor(BaseModel):
    """Read-only snapshot of a tenant as known to the tenant directory."""
    customer_id: str = Field(..., description="Tenant (customer) identifier")
    display_name: str = Field(..., description="Tenant display name")
    default_domain_name: Optional[str] = Field(None, description="Default verified domain")
    delegated_privilege_status: Optional[DelegatedPrivilegeStatus] = None
    graph_error_count: int = Field(default=0, description="Consecutive failed directory refreshes")
    last_graph_error: Optional[str] = None
    last_refresh: Optional[int] = Field(None, description="Unix epoch seconds of the last refresh")

    model_config = {"frozen": True}

    @property
    def is_direct_tenant(self) -> bool:
        return self.delegated_privilege_status == DelegatedPrivilegeStatus.DIRECT_TENANT

    @property
    def is_operator_tenant(self) -> bool:
        return self.default_domain_name == OPERATOR_TENANT_DOMAIN
