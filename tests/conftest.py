"""Pytest configuration and fixtures."""

import os
from contextlib import contextmanager
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

# Load test environment variables
load_dotenv()

# Set test environment before any permsync module reads its config
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APPLICATION_ID", "11111111-2222-3333-4444-555555555555")
os.environ.setdefault("PARTNER_TENANT_ID", "partner-tenant-id")
os.environ.setdefault("MASTER_API_KEY", "test-master-key-0123456789")

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from permsync.infra.error_handler import TenantNotFoundError
from permsync.models.permission import PermissionRecord
from permsync.models.tenant import DelegatedPrivilegeStatus, TenantDescriptor
from permsync.ports import AuditLogger, PermissionGrantClient, PermissionStore, TenantDirectory

APPLICATION_ID = os.environ["APPLICATION_ID"]


class InMemoryTenantDirectory(TenantDirectory):
    """Tenant directory over a dict, recording refresh requests."""

    def __init__(self, tenants: Optional[List[TenantDescriptor]] = None):
        self.tenants: Dict[str, TenantDescriptor] = {t.customer_id: t for t in tenants or []}
        self.refreshed: List[str] = []

    def lookup_tenant(self, tenant_id, include_errors=False, trigger_refresh=False):
        if trigger_refresh:
            self.refreshed.append(tenant_id)
        tenant = self.tenants.get(tenant_id)
        if tenant is None or (tenant.graph_error_count and not include_errors):
            raise TenantNotFoundError(tenant_id)
        return tenant

    def list_tenants(self, include_errors=False):
        return sorted(
            (t for t in self.tenants.values() if include_errors or not t.graph_error_count),
            key=lambda t: t.display_name,
        )


class InMemoryPermissionStore(PermissionStore):
    """Permission records keyed by tenant, counting upserts."""

    def __init__(self, records: Optional[List[PermissionRecord]] = None):
        self.records: Dict[str, PermissionRecord] = {r.tenant: r for r in records or []}
        self.upserts: List[PermissionRecord] = []

    def get_permission_records(self, tenant_id=None):
        if tenant_id is None:
            return list(self.records.values())
        return [r for r in self.records.values() if r.tenant == tenant_id]

    def upsert_permission_record(self, record):
        self.upserts.append(record)
        self.records[record.tenant] = record


@pytest.fixture
def delegated_tenant():
    return TenantDescriptor(
        customer_id="tenant-a",
        display_name="Contoso",
        default_domain_name="contoso.onmicrosoft.com",
        delegated_privilege_status=DelegatedPrivilegeStatus.GRANULAR_DELEGATED_ADMIN,
    )


@pytest.fixture
def direct_tenant():
    return TenantDescriptor(
        customer_id="tenant-b",
        display_name="Fabrikam",
        default_domain_name="fabrikam.onmicrosoft.com",
        delegated_privilege_status=DelegatedPrivilegeStatus.DIRECT_TENANT,
    )


@pytest.fixture
def tenant_directory(delegated_tenant, direct_tenant):
    return InMemoryTenantDirectory([delegated_tenant, direct_tenant])


@pytest.fixture
def permission_store():
    return InMemoryPermissionStore()


@pytest.fixture
def grant_client():
    return MagicMock(spec=PermissionGrantClient)


@pytest.fixture
def audit():
    return MagicMock(spec=AuditLogger)


class FakeClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


SQLITE_SCHEMA = [
    """
    CREATE TABLE tenants (
        customer_id VARCHAR(64) PRIMARY KEY,
        display_name VARCHAR(255) NOT NULL,
        default_domain_name VARCHAR(255),
        delegated_privilege_status VARCHAR(64),
        graph_error_count INTEGER NOT NULL DEFAULT 0,
        last_graph_error TEXT,
        last_refresh BIGINT
    )
    """,
    """
    CREATE TABLE cpv_tenants (
        partition_key VARCHAR(32) NOT NULL,
        row_key VARCHAR(64) NOT NULL,
        application_id VARCHAR(64) NOT NULL,
        tenant VARCHAR(64) NOT NULL,
        last_apply VARCHAR(20) NOT NULL,
        PRIMARY KEY (partition_key, row_key)
    )
    """,
    """
    CREATE TABLE audit_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        tenant_id VARCHAR(64) NOT NULL,
        tenant_domain VARCHAR(255),
        message TEXT NOT NULL,
        severity VARCHAR(16) NOT NULL,
        category VARCHAR(64) NOT NULL,
        payload TEXT NOT NULL DEFAULT '{}',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


@pytest.fixture
def sqlite_session_factory():
    """Transactional session scope over a fresh in-memory SQLite schema."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        for statement in SQLITE_SCHEMA:
            conn.execute(text(statement))

    Session = sessionmaker(bind=engine)

    @contextmanager
    def session_scope():
        session = Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield session_scope
    engine.dispose()
