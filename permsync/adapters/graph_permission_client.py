"""Apply consent, permissions and admin roles through Partner Center and Graph."""

import logging
from typing import List, Optional

from permsync.infra.config import config
from permsync.infra.graph_client import GraphClient
from permsync.models.permission import DEFAULT_PROFILE_NAME
from permsync.ports import PermissionGrantClient
from permsync.services.permission_profiles import get_permission_profile

logger = logging.getLogger(__name__)


class GraphPermissionClient(PermissionGrantClient):
    """
    Remote side of permission reconciliation.

    Each operation reads what is already in place and only adds what is
    missing, so repeating a call changes nothing.
    """

    def __init__(
        self,
        graph: GraphClient,
        application_id: Optional[str] = None,
        partner_tenant_id: Optional[str] = None,
        partner_center_url: Optional[str] = None,
        admin_role_template_ids: Optional[List[str]] = None,
        consent_profile_name: str = DEFAULT_PROFILE_NAME,
    ):
        self.graph = graph
        self.application_id = application_id or config.APPLICATION_ID
        self.partner_tenant_id = partner_tenant_id or config.PARTNER_TENANT_ID
        self.partner_center_url = (partner_center_url or config.PARTNER_CENTER_URL).rstrip("/")
        self.admin_role_template_ids = (
            config.ADMIN_ROLE_TEMPLATE_IDS if admin_role_template_ids is None else admin_role_template_ids
        )
        self.consent_profile_name = consent_profile_name

    def grant_consent(self, tenant_id: str) -> None:
        """
        Register the application's delegated grants with Partner Center.

        A 409 means the consent already exists.
        """
        profile = get_permission_profile(self.consent_profile_name)
        body = {
            "ApplicationId": self.application_id,
            "ApplicationGrants": [
                {"EnterpriseApplicationId": resource_app_id, "Scope": ",".join(scopes)}
                for resource_app_id, scopes in profile.delegated_scopes().items()
            ],
        }
        response = self.graph.request(
            "POST",
            self.partner_tenant_id,
            f"v1/customers/{tenant_id}/applicationconsents",
            json=body,
            base_url=self.partner_center_url,
            allow_status=(409,),
        )
        if response.status_code == 409:
            logger.info(f"Consent already present in {tenant_id}")

    def grant_application_permission(self, profile_name: str, application_id: str, tenant_id: str) -> None:
        profile = get_permission_profile(profile_name)
        client_sp = self._service_principal_id(tenant_id, application_id)

        assigned = {
            (assignment["resourceId"], assignment["appRoleId"])
            for assignment in self.graph.list_all(
                tenant_id, f"v1.0/servicePrincipals/{client_sp}/appRoleAssignments"
            )
        }

        for resource_app_id, role_ids in profile.application_roles().items():
            resource_sp = self._service_principal_id(tenant_id, resource_app_id)
            for role_id in role_ids:
                if (resource_sp, role_id) in assigned:
                    continue
                self.graph.post(
                    tenant_id,
                    f"v1.0/servicePrincipals/{resource_sp}/appRoleAssignedTo",
                    {"principalId": client_sp, "resourceId": resource_sp, "appRoleId": role_id},
                )
                logger.debug(f"Assigned app role {role_id} on {resource_app_id} in {tenant_id}")

    def grant_delegated_permission(self, profile_name: str, application_id: str, tenant_id: str) -> None:
        profile = get_permission_profile(profile_name)
        client_sp = self._service_principal_id(tenant_id, application_id)

        grants = self.graph.list_all(
            tenant_id,
            "v1.0/oauth2PermissionGrants",
            params={"$filter": f"clientId eq '{client_sp}'"},
        )

        for resource_app_id, scopes in profile.delegated_scopes().items():
            resource_sp = self._service_principal_id(tenant_id, resource_app_id)
            grant = next(
                (
                    g for g in grants
                    if g.get("resourceId") == resource_sp and g.get("consentType") == "AllPrincipals"
                ),
                None,
            )

            if grant is None:
                self.graph.post(
                    tenant_id,
                    "v1.0/oauth2PermissionGrants",
                    {
                        "clientId": client_sp,
                        "consentType": "AllPrincipals",
                        "resourceId": resource_sp,
                        "scope": " ".join(scopes),
                    },
                )
                continue

            current = (grant.get("scope") or "").split()
            missing = [scope for scope in scopes if scope not in current]
            if missing:
                self.graph.patch(
                    tenant_id,
                    f"v1.0/oauth2PermissionGrants/{grant['id']}",
                    {"scope": " ".join(current + missing)},
                )

    def assign_admin_roles(self, tenant_id: str) -> None:
        client_sp = self._service_principal_id(tenant_id, self.application_id)

        assigned = {
            assignment["roleDefinitionId"]
            for assignment in self.graph.list_all(
                tenant_id,
                "v1.0/roleManagement/directory/roleAssignments",
                params={"$filter": f"principalId eq '{client_sp}'"},
            )
        }

        for role_template_id in self.admin_role_template_ids:
            if role_template_id in assigned:
                continue
            self.graph.post(
                tenant_id,
                "v1.0/roleManagement/directory/roleAssignments",
                {
                    "principalId": client_sp,
                    "roleDefinitionId": role_template_id,
                    "directoryScopeId": "/",
                },
            )
            logger.debug(f"Assigned role {role_template_id} in {tenant_id}")

    def _service_principal_id(self, tenant_id: str, app_id: str) -> str:
        """Object id of an application's service principal, created if missing."""
        existing = self.graph.get(
            tenant_id,
            "v1.0/servicePrincipals",
            params={"$filter": f"appId eq '{app_id}'", "$select": "id,appId"},
        ).get("value", [])
        if existing:
            return existing[0]["id"]

        logger.info(f"Creating service principal for {app_id} in {tenant_id}")
        return self.graph.post(tenant_id, "v1.0/servicePrincipals", {"appId": app_id})["id"]
