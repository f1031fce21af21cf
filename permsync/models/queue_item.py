"""Queue message that triggers a tenant permission update."""

from typing import Optional
from pydantic import BaseModel, Field

from permsync.models.tenant import OPERATOR_TENANT_DOMAIN, TenantDescriptor


class QueueItem(BaseModel):
    """A tenant-permission-update message."""
    customer_id: str = Field(..., alias="customerId", description="Tenant (customer) identifier")
    display_name: str = Field(..., alias="displayName", description="Tenant display name")
    default_domain_name: Optional[str] = Field(
        None,
        alias="defaultDomainName",
        description="Default domain; empty when the directory entry is incomplete",
    )

    model_config = {"populate_by_name": True}  # Allow both camelCase and snake_case

    @property
    def is_operator_tenant(self) -> bool:
        return self.default_domain_name == OPERATOR_TENANT_DOMAIN

    @classmethod
    def from_tenant(cls, tenant: TenantDescriptor) -> "QueueItem":
        return cls(
            customer_id=tenant.customer_id,
            display_name=tenant.display_name,
            default_domain_name=tenant.default_domain_name,
        )
