"""Error taxonomy for permission reconciliation."""

from typing import Optional
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors raised while reconciling a tenant."""
    DIRECTORY_LOOKUP = "directory_lookup"  # Tenant not found or directory unavailable
    STORAGE = "storage"  # Permission record read/write failures
    PERMISSION_GRANT = "permission_grant"  # Graph rejected a permission or role change
    CONSENT = "consent"  # Partner Center consent call failed
    NETWORK = "network"  # Connection issues, timeouts
    AUTH = "auth"  # Token acquisition failures
    UNKNOWN = "unknown"


class ReconciliationStage(str, Enum):
    """Step of the reconciliation sequence that was running when an error occurred."""
    READ_RECORDS = "read_records"
    LOOKUP_TENANT = "lookup_tenant"
    GRANT_CONSENT = "grant_consent"
    APPLICATION_PERMISSIONS = "application_permissions"
    DELEGATED_PERMISSIONS = "delegated_permissions"
    ADMIN_ROLES = "admin_roles"
    WRITE_RECORD = "write_record"
    DOMAIN_REFRESH = "domain_refresh"


class PermSyncError(Exception):
    """Base exception for collaborator failures."""
    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TenantNotFoundError(PermSyncError):
    """The tenant directory has no (usable) entry for a tenant."""
    category = ErrorCategory.DIRECTORY_LOOKUP

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} not found in tenant directory")


class PermissionStoreError(PermSyncError):
    """Reading or writing permission records failed."""
    category = ErrorCategory.STORAGE


class AuthError(PermSyncError):
    """Could not obtain an access token for a tenant."""
    category = ErrorCategory.AUTH


class NetworkError(PermSyncError):
    """Transport-level failure talking to a remote API."""
    category = ErrorCategory.NETWORK


class GraphAPIError(PermSyncError):
    """A Graph or Partner Center call returned an error response."""
    category = ErrorCategory.PERMISSION_GRANT

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


# Stage-based fallback for exceptions that carry no category of their own
_STAGE_CATEGORIES = {
    ReconciliationStage.READ_RECORDS: ErrorCategory.STORAGE,
    ReconciliationStage.WRITE_RECORD: ErrorCategory.STORAGE,
    ReconciliationStage.LOOKUP_TENANT: ErrorCategory.DIRECTORY_LOOKUP,
    ReconciliationStage.DOMAIN_REFRESH: ErrorCategory.DIRECTORY_LOOKUP,
    ReconciliationStage.GRANT_CONSENT: ErrorCategory.CONSENT,
    ReconciliationStage.APPLICATION_PERMISSIONS: ErrorCategory.PERMISSION_GRANT,
    ReconciliationStage.DELEGATED_PERMISSIONS: ErrorCategory.PERMISSION_GRANT,
    ReconciliationStage.ADMIN_ROLES: ErrorCategory.PERMISSION_GRANT,
}


def classify_error(error: Exception, stage: Optional[ReconciliationStage] = None) -> ErrorCategory:
    """
    Classify an error raised during reconciliation.

    Typed errors keep their own category, except that a Graph failure while
    granting consent is reported as a consent error. Untyped errors are
    classified as network errors when they look like one, otherwise by the
    stage that raised them.

    Args:
        error: The exception to classify
        stage: The reconciliation step that was running

    Returns:
        The error category
    """
    if isinstance(error, GraphAPIError) and stage == ReconciliationStage.GRANT_CONSENT:
        return ErrorCategory.CONSENT

    if isinstance(error, PermSyncError):
        return error.category

    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK

    error_str = str(error).lower()
    if any(keyword in error_str for keyword in ["connection", "timeout", "timed out", "network", "dns", "refused"]):
        return ErrorCategory.NETWORK

    if stage is not None:
        return _STAGE_CATEGORIES.get(stage, ErrorCategory.UNKNOWN)

    return ErrorCategory.UNKNOWN
