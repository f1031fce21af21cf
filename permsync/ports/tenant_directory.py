"""Port interface for the tenant directory."""

from abc import ABC, abstractmethod
from typing import List

from permsync.models.tenant import TenantDescriptor


class TenantDirectory(ABC):
    """Lookup of tenants managed through the portal."""

    @abstractmethod
    def lookup_tenant(
        self,
        tenant_id: str,
        include_errors: bool = False,
        trigger_refresh: bool = False,
    ) -> TenantDescriptor:
        """
        Get a tenant snapshot.

        Args:
            tenant_id: Tenant (customer) id
            include_errors: Also return tenants whose last directory refresh failed
            trigger_refresh: Re-fetch the tenant from the remote directory first

        Returns:
            Tenant descriptor

        Raises:
            TenantNotFoundError: If the tenant is unknown (or excluded by errors)
        """
        pass

    @abstractmethod
    def list_tenants(self, include_errors: bool = False) -> List[TenantDescriptor]:
        """
        List all known tenants.

        Args:
            include_errors: Also return tenants whose last directory refresh failed

        Returns:
            Tenant descriptors ordered by display name
        """
        pass
