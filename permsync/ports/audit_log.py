"""Port interface for the audit log."""

from abc import ABC, abstractmethod
from typing import Optional


class AuditLogger(ABC):
    """Operator-facing audit trail, separate from process logs."""

    @abstractmethod
    def write_audit_log(
        self,
        tenant_id: str,
        tenant_domain: Optional[str],
        message: str,
        severity: str,
        category: str,
    ) -> None:
        """
        Record one audit entry.

        Args:
            tenant_id: Tenant the entry is about
            tenant_domain: Tenant default domain, if known
            message: Human readable message
            severity: 'Info' | 'Warn' | 'Error'
            category: Functional area, e.g. 'Update Permissions'
        """
        pass
