"""Port interface for the permission watermark store."""

from abc import ABC, abstractmethod
from typing import List, Optional

from permsync.models.permission import PermissionRecord


class PermissionStore(ABC):
    """Persistent store of per-tenant permission records."""

    @abstractmethod
    def get_permission_records(self, tenant_id: Optional[str] = None) -> List[PermissionRecord]:
        """
        Get permission records.

        Args:
            tenant_id: Only records for this tenant; all records when None

        Returns:
            Matching records
        """
        pass

    @abstractmethod
    def upsert_permission_record(self, record: PermissionRecord) -> None:
        """
        Insert or overwrite the record keyed by (partition key, tenant).

        Raises:
            PermissionStoreError: If the write fails
        """
        pass
