"""Port interface for remote permission changes."""

from abc import ABC, abstractmethod


class PermissionGrantClient(ABC):
    """Applies consent, permissions and admin roles in a remote tenant.

    Every operation is idempotent at the remote side.
    """

    @abstractmethod
    def grant_consent(self, tenant_id: str) -> None:
        """Grant baseline application consent in the tenant."""
        pass

    @abstractmethod
    def grant_application_permission(self, profile_name: str, application_id: str, tenant_id: str) -> None:
        """Grant the profile's application (app-only) permissions."""
        pass

    @abstractmethod
    def grant_delegated_permission(self, profile_name: str, application_id: str, tenant_id: str) -> None:
        """Grant the profile's delegated permissions."""
        pass

    @abstractmethod
    def assign_admin_roles(self, tenant_id: str) -> None:
        """Assign the configured administrative directory roles."""
        pass
