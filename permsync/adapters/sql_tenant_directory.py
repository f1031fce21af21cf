"""Tenant directory backed by the tenants table and refreshed from partner contracts."""

import time
import logging
from typing import List, Optional
from sqlalchemy import text

from permsync.infra.config import config
from permsync.infra.database import get_db_session
from permsync.infra.error_handler import PermSyncError, TenantNotFoundError
from permsync.infra.graph_client import GraphClient
from permsync.models.tenant import DelegatedPrivilegeStatus, TenantDescriptor
from permsync.ports import TenantDirectory

logger = logging.getLogger(__name__)

_TENANT_COLUMNS = """
    customer_id, display_name, default_domain_name, delegated_privilege_status,
    graph_error_count, last_graph_error, last_refresh
"""


def _to_descriptor(row) -> TenantDescriptor:
    return TenantDescriptor(
        customer_id=row.customer_id,
        display_name=row.display_name,
        default_domain_name=row.default_domain_name or None,
        delegated_privilege_status=DelegatedPrivilegeStatus.parse(row.delegated_privilege_status),
        graph_error_count=row.graph_error_count or 0,
        last_graph_error=row.last_graph_error,
        last_refresh=row.last_refresh,
    )


class SqlTenantDirectory(TenantDirectory):
    """Cached tenant list filled from the partner's customer contracts."""

    def __init__(self, graph: GraphClient, partner_tenant_id: Optional[str] = None):
        self.graph = graph
        self.partner_tenant_id = partner_tenant_id or config.PARTNER_TENANT_ID

    def lookup_tenant(
        self,
        tenant_id: str,
        include_errors: bool = False,
        trigger_refresh: bool = False,
    ) -> TenantDescriptor:
        """
        Read a tenant from the cache.

        A tenant without a cached row is looked up in the partner contracts
        once before giving up, so newly onboarded customers are found.

        Raises:
            TenantNotFoundError: No row and no contract, or the tenant has
                refresh errors and ``include_errors`` is off
        """
        if trigger_refresh:
            self.refresh_tenant(tenant_id)

        row = self._read_tenant(tenant_id)
        if not row and not trigger_refresh:
            self.refresh_tenant(tenant_id)
            row = self._read_tenant(tenant_id)

        if not row:
            raise TenantNotFoundError(tenant_id)

        tenant = _to_descriptor(row)
        if tenant.graph_error_count and not include_errors:
            raise TenantNotFoundError(tenant_id)
        return tenant

    def list_tenants(self, include_errors: bool = False) -> List[TenantDescriptor]:
        query = f"SELECT {_TENANT_COLUMNS} FROM tenants"
        if not include_errors:
            query += " WHERE COALESCE(graph_error_count, 0) = 0"
        query += " ORDER BY display_name"

        with get_db_session() as session:
            rows = session.execute(text(query)).fetchall()
        return [_to_descriptor(row) for row in rows]

    def sync_tenants(self) -> int:
        """
        Upsert a row for every customer with a partner contract.

        Returns:
            Number of contracts written
        """
        contracts = self.graph.list_all(self.partner_tenant_id, "v1.0/contracts")
        with get_db_session() as session:
            for contract in contracts:
                self._upsert_contract(session, contract["customerId"], contract)
        logger.info(f"Synced {len(contracts)} tenants from partner contracts")
        return len(contracts)

    def refresh_tenant(self, tenant_id: str) -> None:
        """
        Re-read a tenant's name and default domain from its partner contract.

        Failures are counted on the tenant row and re-raised. Tenants without a
        contract (direct tenants) are left untouched.
        """
        try:
            contracts = self.graph.list_all(
                self.partner_tenant_id,
                "v1.0/contracts",
                params={"$filter": f"customerId eq '{tenant_id}'"},
            )
        except PermSyncError as e:
            self._record_refresh_error(tenant_id, e)
            raise

        if not contracts:
            logger.info(f"No partner contract for {tenant_id}, keeping directory entry")
            return

        contract = contracts[0]
        with get_db_session() as session:
            self._upsert_contract(session, tenant_id, contract)
        logger.info(
            f"Refreshed tenant {tenant_id}",
            extra={"tenant_id": tenant_id, "default_domain_name": contract.get("defaultDomainName")},
        )

    def _read_tenant(self, tenant_id: str):
        with get_db_session() as session:
            return session.execute(
                text(f"SELECT {_TENANT_COLUMNS} FROM tenants WHERE customer_id = :tenant_id"),
                {"tenant_id": tenant_id}
            ).fetchone()

    def _upsert_contract(self, session, tenant_id: str, contract: dict) -> None:
        # New rows are delegated-admin customers; existing rows keep their status
        session.execute(
            text("""
                INSERT INTO tenants (
                    customer_id, display_name, default_domain_name,
                    delegated_privilege_status, graph_error_count, last_graph_error, last_refresh
                ) VALUES (
                    :customer_id, :display_name, :default_domain_name,
                    :delegated_privilege_status, 0, NULL, :last_refresh
                )
                ON CONFLICT (customer_id) DO UPDATE SET
                    display_name = excluded.display_name,
                    default_domain_name = excluded.default_domain_name,
                    graph_error_count = 0,
                    last_graph_error = NULL,
                    last_refresh = excluded.last_refresh
            """),
            {
                "customer_id": tenant_id,
                "display_name": contract.get("displayName") or tenant_id,
                "default_domain_name": contract.get("defaultDomainName"),
                "delegated_privilege_status": DelegatedPrivilegeStatus.DELEGATED_ADMIN.value,
                "last_refresh": int(time.time()),
            }
        )

    def _record_refresh_error(self, tenant_id: str, error: Exception) -> None:
        with get_db_session() as session:
            session.execute(
                text("""
                    UPDATE tenants
                    SET graph_error_count = COALESCE(graph_error_count, 0) + 1,
                        last_graph_error = :error
                    WHERE customer_id = :tenant_id
                """),
                {"tenant_id": tenant_id, "error": str(error)[:500]}
            )
