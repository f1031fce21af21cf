"""Permission records stored in the cpv_tenants table."""

from typing import List, Optional
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from permsync.infra.database import get_db_session
from permsync.infra.error_handler import PermissionStoreError
from permsync.models.permission import PERMISSION_PARTITION_KEY, PermissionRecord
from permsync.ports import PermissionStore


class SqlPermissionStore(PermissionStore):
    """One row per tenant, keyed by (partition_key, row_key)."""

    def get_permission_records(self, tenant_id: Optional[str] = None) -> List[PermissionRecord]:
        """
        Load permission records.

        Args:
            tenant_id: Only this tenant's record; every record when None

        Returns:
            Matching records (at most one per tenant)
        """
        query = """
            SELECT partition_key, row_key, application_id, tenant, last_apply
            FROM cpv_tenants
            WHERE partition_key = :partition_key
        """
        params = {"partition_key": PERMISSION_PARTITION_KEY}
        if tenant_id is not None:
            query += " AND row_key = :tenant_id"
            params["tenant_id"] = tenant_id

        try:
            with get_db_session() as session:
                rows = session.execute(text(query), params).fetchall()
        except SQLAlchemyError as e:
            raise PermissionStoreError(f"Failed to read permission records: {e}") from e

        return [
            PermissionRecord(
                tenant=row.tenant,
                application_id=row.application_id,
                last_apply=row.last_apply,
                partition_key=row.partition_key,
            )
            for row in rows
        ]

    def upsert_permission_record(self, record: PermissionRecord) -> None:
        """Write the record, overwriting any existing row for the tenant."""
        try:
            with get_db_session() as session:
                session.execute(
                    text("""
                        INSERT INTO cpv_tenants (
                            partition_key, row_key, application_id, tenant, last_apply
                        ) VALUES (
                            :partition_key, :row_key, :application_id, :tenant, :last_apply
                        )
                        ON CONFLICT (partition_key, row_key) DO UPDATE SET
                            application_id = excluded.application_id,
                            tenant = excluded.tenant,
                            last_apply = excluded.last_apply
                    """),
                    {
                        "partition_key": record.partition_key,
                        "row_key": record.row_key,
                        "application_id": record.application_id,
                        "tenant": record.tenant,
                        "last_apply": record.last_apply,
                    }
                )
        except SQLAlchemyError as e:
            raise PermissionStoreError(
                f"Failed to write permission record for {record.tenant}: {e}"
            ) from e


permission_store = SqlPermissionStore()
