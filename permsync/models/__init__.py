from .permission import (
    DEFAULT_PROFILE_NAME,
    PERMISSION_PARTITION_KEY,
    PermissionProfile,
    PermissionRecord,
    ResourceAccess,
)
from .queue_item import QueueItem
from .tenant import OPERATOR_TENANT_DOMAIN, DelegatedPrivilegeStatus, TenantDescriptor

__all__ = [
    "DEFAULT_PROFILE_NAME",
    "PERMISSION_PARTITION_KEY",
    "PermissionProfile",
    "PermissionRecord",
    "ResourceAccess",
    "QueueItem",
    "OPERATOR_TENANT_DOMAIN",
    "DelegatedPrivilegeStatus",
    "TenantDescriptor",
]
