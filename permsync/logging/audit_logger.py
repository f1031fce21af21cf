"""Audit log written to the audit_logs table."""

import json
import logging
from typing import Optional, Dict, Any
from sqlalchemy import text

from permsync.infra.database import get_db_session
from permsync.ports import AuditLogger

logger = logging.getLogger(__name__)

SEVERITIES = ("Debug", "Info", "Warn", "Error", "Critical")


class SqlAuditLogger(AuditLogger):
    """Stores audit entries for operators to review in the portal."""

    def write_audit_log(
        self,
        tenant_id: str,
        tenant_domain: Optional[str],
        message: str,
        severity: str,
        category: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log an entry to the audit_logs table.

        Args:
            tenant_id: Tenant ID
            tenant_domain: Tenant default domain (may be empty for new tenants)
            message: Message shown to operators
            severity: One of SEVERITIES
            category: Functional area (e.g., 'Update Permissions')
            payload: Additional data (stored as JSON)
        """
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown audit severity: {severity}")

        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO audit_logs (
                        tenant_id, tenant_domain, message, severity, category, payload
                    ) VALUES (
                        :tenant_id, :tenant_domain, :message, :severity, :category, :payload
                    )
                """),
                {
                    "tenant_id": tenant_id,
                    "tenant_domain": tenant_domain,
                    "message": message,
                    "severity": severity,
                    "category": category,
                    "payload": json.dumps(payload or {}),
                }
            )

        logger.debug(
            "Audit entry written",
            extra={"tenant_id": tenant_id, "severity": severity, "category": category},
        )


audit_logger = SqlAuditLogger()
