"""Reconcile application permissions and admin roles for one tenant.

A reconciliation makes sure the portal application holds its baseline
permissions in a tenant, keeps its admin roles current, and stamps the tenant's
permission record with the time permissions were last applied. It is safe to
run again for the same tenant: remote grants are idempotent and the record is
overwritten.

Failures never escape ``PermissionReconciler.reconcile``; they come back as a
``ReconciliationError`` on the result so the caller decides what to do with
them. ``reconcile_permissions`` is that caller for queue jobs: it logs and
discards.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from permsync.infra.error_handler import ErrorCategory, ReconciliationStage, classify_error
from permsync.infra.metrics import consent_grants_total, reconciliation_duration, reconciliations_total
from permsync.models.permission import DEFAULT_PROFILE_NAME, PermissionRecord
from permsync.models.queue_item import QueueItem
from permsync.ports import AuditLogger, PermissionGrantClient, PermissionStore, TenantDirectory

logger = logging.getLogger(__name__)

AUDIT_CATEGORY = "Update Permissions"


@dataclass(frozen=True)
class ReconcilerSettings:
    """Settings injected into the reconciler."""
    application_id: str
    profile_name: str = DEFAULT_PROFILE_NAME


@dataclass(frozen=True)
class ReconciliationError:
    """Why a reconciliation stopped."""
    tenant_id: str
    display_name: str
    stage: ReconciliationStage
    category: ErrorCategory
    cause: Exception

    @property
    def message(self) -> str:
        return str(self.cause)


@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation: what was done, or the error that stopped it."""
    tenant_id: str
    display_name: str
    domain_refresh_required: bool = False
    consent_granted: bool = False
    admin_roles_assigned: bool = False
    record_written: bool = False
    domain_refreshed: bool = False
    last_apply: Optional[str] = None
    error: Optional[ReconciliationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PermissionReconciler:
    """Brings one tenant's permissions in line with the baseline profile."""

    def __init__(
        self,
        settings: ReconcilerSettings,
        tenants: TenantDirectory,
        records: PermissionStore,
        permissions: PermissionGrantClient,
        audit: AuditLogger,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.tenants = tenants
        self.records = records
        self.permissions = permissions
        self.audit = audit
        self.clock = clock

    def reconcile(self, item: QueueItem) -> ReconciliationResult:
        """
        Apply baseline consent, permissions and admin roles to the item's tenant.

        Never raises for collaborator failures; check ``result.error``.
        """
        application_id = self.settings.application_id
        profile_name = self.settings.profile_name
        tenant_id = item.customer_id

        result = ReconciliationResult(
            tenant_id=tenant_id,
            display_name=item.display_name,
            domain_refresh_required=not item.default_domain_name,
        )
        stage = ReconciliationStage.READ_RECORDS
        start_time = time.time()
        try:
            existing = self.records.get_permission_records(tenant_id)

            stage = ReconciliationStage.LOOKUP_TENANT
            tenant = self.tenants.lookup_tenant(tenant_id, include_errors=True)
            tenant_domain = item.default_domain_name or tenant.default_domain_name

            applied_by = {record.application_id for record in existing}
            if application_id not in applied_by and not tenant.is_direct_tenant:
                stage = ReconciliationStage.GRANT_CONSENT
                self.audit.write_audit_log(
                    tenant_id,
                    tenant_domain,
                    f"{item.display_name} has not been consented to application {application_id}. Granting consent.",
                    "Warn",
                    AUDIT_CATEGORY,
                )
                self.permissions.grant_consent(tenant_id)
                consent_grants_total.inc()
                result.consent_granted = True
                result.domain_refresh_required = True

            logger.info(f"Applying application permissions to {item.display_name}")
            stage = ReconciliationStage.APPLICATION_PERMISSIONS
            self.permissions.grant_application_permission(profile_name, application_id, tenant_id)

            logger.info(f"Applying delegated permissions to {item.display_name}")
            stage = ReconciliationStage.DELEGATED_PERMISSIONS
            self.permissions.grant_delegated_permission(profile_name, application_id, tenant_id)

            if not item.is_operator_tenant:
                logger.info(f"Assigning admin roles in {item.display_name}")
                stage = ReconciliationStage.ADMIN_ROLES
                self.permissions.assign_admin_roles(tenant_id)
                result.admin_roles_assigned = True

            stage = ReconciliationStage.WRITE_RECORD
            last_apply = str(int(self.clock()))
            self.records.upsert_permission_record(
                PermissionRecord(
                    tenant=tenant_id,
                    application_id=application_id,
                    last_apply=last_apply,
                )
            )
            result.record_written = True
            result.last_apply = last_apply
            self.audit.write_audit_log(
                tenant_id,
                tenant_domain,
                f"Updated permissions for {item.display_name}",
                "Info",
                AUDIT_CATEGORY,
            )
            logger.info(f"Permissions applied to {item.display_name}")

            if result.domain_refresh_required:
                stage = ReconciliationStage.DOMAIN_REFRESH
                refreshed = self.tenants.lookup_tenant(tenant_id, trigger_refresh=True)
                result.domain_refreshed = True
                logger.info(
                    f"Refreshed directory entry for {refreshed.display_name}",
                    extra={"tenant_id": tenant_id, "default_domain_name": refreshed.default_domain_name},
                )
        except Exception as e:
            result.error = ReconciliationError(
                tenant_id=tenant_id,
                display_name=item.display_name,
                stage=stage,
                category=classify_error(e, stage),
                cause=e,
            )
        finally:
            reconciliation_duration.observe(time.time() - start_time)

        reconciliations_total.labels(status="success" if result.ok else "failure").inc()
        return result


def reconcile_permissions(item: QueueItem, reconciler: PermissionReconciler) -> ReconciliationResult:
    """
    Run a reconciliation and log, then discard, any failure.

    The tenant is retried by the next scheduled scan, not here.
    """
    result = reconciler.reconcile(item)
    if result.error is not None:
        logger.error(
            f"Error updating permissions for {item.display_name}: {result.error.message}",
            extra={
                "tenant_id": item.customer_id,
                "display_name": item.display_name,
                "stage": result.error.stage.value,
                "category": result.error.category.value,
            },
        )
    return result
