from .audit_log import AuditLogger
from .permission_api import PermissionGrantClient
from .permission_store import PermissionStore
from .tenant_directory import TenantDirectory

__all__ = [
    "AuditLogger",
    "PermissionGrantClient",
    "PermissionStore",
    "TenantDirectory",
]
