"""Tests for the Graph client and the Graph-backed permission client."""

import json

import httpx
import pytest

from permsync.adapters.graph_permission_client import GraphPermissionClient
from permsync.infra.error_handler import AuthError, GraphAPIError, NetworkError
from permsync.infra.graph_client import GraphClient
from permsync.models.permission import DEFAULT_PROFILE_NAME
from permsync.services.permission_profiles import get_permission_profile

APP_ID = "app-id"
TENANT = "tenant-a"
GRAPH_APP = "00000003-0000-0000-c000-000000000000"
EXCHANGE_APP = "00000002-0000-0ff1-ce00-000000000000"

SERVICE_PRINCIPALS = {
    APP_ID: "sp-client",
    GRAPH_APP: "sp-graph",
    EXCHANGE_APP: "sp-exchange",
}


class FakeTenant:
    """Minimal in-memory stand-in for the Graph endpoints the client uses."""

    def __init__(self):
        self.requests = []
        self.service_principals = dict(SERVICE_PRINCIPALS)
        self.app_role_assignments = []
        self.grants = []
        self.role_assignments = []
        self.consent_status = 201
        self.token_requests = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        body = json.loads(request.content) if request.content and request.method != "GET" and "token" not in path else None

        if path.endswith("/oauth2/v2.0/token"):
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": "token", "expires_in": 3600})

        if "/applicationconsents" in path:
            return httpx.Response(self.consent_status, json={})

        if path == "/v1.0/servicePrincipals" and request.method == "GET":
            app_id = request.url.params["$filter"].split("'")[1]
            sp = self.service_principals.get(app_id)
            return httpx.Response(200, json={"value": [{"id": sp, "appId": app_id}] if sp else []})

        if path == "/v1.0/servicePrincipals" and request.method == "POST":
            sp = f"sp-new-{body['appId']}"
            self.service_principals[body["appId"]] = sp
            return httpx.Response(201, json={"id": sp})

        if path.endswith("/appRoleAssignments"):
            return httpx.Response(200, json={"value": self.app_role_assignments})

        if path.endswith("/appRoleAssignedTo"):
            self.app_role_assignments.append(body)
            return httpx.Response(201, json=body)

        if path == "/v1.0/oauth2PermissionGrants" and request.method == "GET":
            return httpx.Response(200, json={"value": self.grants})

        if path == "/v1.0/oauth2PermissionGrants" and request.method == "POST":
            grant = dict(body, id=f"grant-{len(self.grants)}")
            self.grants.append(grant)
            return httpx.Response(201, json=grant)

        if path.startswith("/v1.0/oauth2PermissionGrants/") and request.method == "PATCH":
            grant_id = path.rsplit("/", 1)[1]
            for grant in self.grants:
                if grant["id"] == grant_id:
                    grant["scope"] = body["scope"]
            return httpx.Response(204)

        if path == "/v1.0/roleManagement/directory/roleAssignments" and request.method == "GET":
            return httpx.Response(200, json={"value": self.role_assignments})

        if path == "/v1.0/roleManagement/directory/roleAssignments" and request.method == "POST":
            self.role_assignments.append(body)
            return httpx.Response(201, json=body)

        return httpx.Response(404, json={"error": {"code": "NotFound", "message": f"No route {path}"}})

    def posts(self, suffix):
        return [r for r in self.requests if r.method == "POST" and r.url.path.endswith(suffix)]


@pytest.fixture
def fake_tenant():
    return FakeTenant()


@pytest.fixture
def graph(fake_tenant):
    client = GraphClient(
        application_id=APP_ID,
        application_secret="secret",
        refresh_token="refresh",
        graph_base_url="https://graph.example",
        login_url="https://login.example",
        transport=httpx.MockTransport(fake_tenant.handler),
    )
    yield client
    client.close()


@pytest.fixture
def permissions(graph):
    return GraphPermissionClient(
        graph,
        application_id=APP_ID,
        partner_tenant_id="partner",
        partner_center_url="https://partner.example",
        admin_role_template_ids=["role-1", "role-2"],
    )


class TestGraphClient:
    """Token handling and error mapping."""

    def test_tokens_cached_per_tenant_and_scope(self, graph, fake_tenant):
        graph.get(TENANT, "v1.0/servicePrincipals", params={"$filter": f"appId eq '{APP_ID}'"})
        graph.get(TENANT, "v1.0/servicePrincipals", params={"$filter": f"appId eq '{APP_ID}'"})
        graph.get("tenant-b", "v1.0/servicePrincipals", params={"$filter": f"appId eq '{APP_ID}'"})

        assert fake_tenant.token_requests == 2
        token_request = fake_tenant.requests[0]
        assert token_request.url.path == f"/{TENANT}/oauth2/v2.0/token"
        assert b"grant_type=refresh_token" in token_request.content

    def test_bearer_header(self, graph, fake_tenant):
        graph.get(TENANT, "v1.0/servicePrincipals", params={"$filter": f"appId eq '{APP_ID}'"})

        assert fake_tenant.requests[-1].headers["Authorization"] == "Bearer token"

    def test_error_response_raises(self, graph):
        with pytest.raises(GraphAPIError) as exc_info:
            graph.get(TENANT, "v1.0/unknown")

        assert exc_info.value.status_code == 404
        assert "No route" in str(exc_info.value)

    def test_token_failure_raises_auth_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token expired"})

        client = GraphClient(
            application_id=APP_ID,
            application_secret="secret",
            refresh_token="refresh",
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(AuthError, match="Token expired"):
            client.get_token(TENANT)

    def test_transport_failure_raises_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = GraphClient(
            application_id=APP_ID,
            application_secret="secret",
            refresh_token="refresh",
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(NetworkError):
            client.get_token(TENANT)

    def test_list_all_follows_next_link(self):
        pages = {
            "/v1.0/items": {"value": [1, 2], "@odata.nextLink": "https://graph.example/v1.0/items?page=2"},
        }

        def handler(request):
            if request.url.path.endswith("/token"):
                return httpx.Response(200, json={"access_token": "token", "expires_in": 3600})
            if request.url.params.get("page") == "2":
                return httpx.Response(200, json={"value": [3]})
            return httpx.Response(200, json=pages[request.url.path])

        client = GraphClient(
            application_id=APP_ID,
            application_secret="secret",
            refresh_token="refresh",
            graph_base_url="https://graph.example",
            transport=httpx.MockTransport(handler),
        )

        assert client.list_all(TENANT, "v1.0/items") == [1, 2, 3]


class TestGraphPermissionClient:
    """Remote permission changes."""

    def test_consent_posts_delegated_scopes(self, permissions, fake_tenant):
        permissions.grant_consent(TENANT)

        [request] = fake_tenant.posts("/applicationconsents")
        assert request.url.host == "partner.example"
        assert request.url.path == f"/v1/customers/{TENANT}/applicationconsents"
        body = json.loads(request.content)
        assert body["ApplicationId"] == APP_ID
        scopes = {g["EnterpriseApplicationId"]: g["Scope"] for g in body["ApplicationGrants"]}
        assert "Directory.ReadWrite.All" in scopes[GRAPH_APP].split(",")

        token_request = fake_tenant.requests[0]
        assert token_request.url.path == "/partner/oauth2/v2.0/token"

    def test_consent_conflict_is_success(self, permissions, fake_tenant):
        fake_tenant.consent_status = 409

        permissions.grant_consent(TENANT)

    def test_consent_failure_raises(self, permissions, fake_tenant):
        fake_tenant.consent_status = 403

        with pytest.raises(GraphAPIError):
            permissions.grant_consent(TENANT)

    def test_application_permissions_only_adds_missing(self, permissions, fake_tenant):
        profile = get_permission_profile(DEFAULT_PROFILE_NAME)
        expected = sum(len(roles) for roles in profile.application_roles().values())
        first_graph_role = profile.application_roles()[GRAPH_APP][0]
        fake_tenant.app_role_assignments.append(
            {"principalId": "sp-client", "resourceId": "sp-graph", "appRoleId": first_graph_role}
        )

        permissions.grant_application_permission(DEFAULT_PROFILE_NAME, APP_ID, TENANT)

        assert len(fake_tenant.posts("/appRoleAssignedTo")) == expected - 1

        fake_tenant.requests.clear()
        permissions.grant_application_permission(DEFAULT_PROFILE_NAME, APP_ID, TENANT)
        assert fake_tenant.posts("/appRoleAssignedTo") == []

    def test_application_permissions_create_service_principal(self, permissions, fake_tenant):
        del fake_tenant.service_principals[APP_ID]

        permissions.grant_application_permission(DEFAULT_PROFILE_NAME, APP_ID, TENANT)

        assert len(fake_tenant.posts("/v1.0/servicePrincipals")) == 1
        assert all(a["principalId"] == f"sp-new-{APP_ID}" for a in fake_tenant.app_role_assignments)

    def test_delegated_permissions_create_and_extend_grants(self, permissions, fake_tenant):
        fake_tenant.grants.append(
            {
                "id": "existing",
                "clientId": "sp-client",
                "consentType": "AllPrincipals",
                "resourceId": "sp-graph",
                "scope": "User.Read",
            }
        )

        permissions.grant_delegated_permission(DEFAULT_PROFILE_NAME, APP_ID, TENANT)

        graph_grant = next(g for g in fake_tenant.grants if g["resourceId"] == "sp-graph")
        assert graph_grant["scope"].split()[0] == "User.Read"
        assert "Directory.ReadWrite.All" in graph_grant["scope"].split()

        exchange_grant = next(g for g in fake_tenant.grants if g["resourceId"] == "sp-exchange")
        assert exchange_grant["scope"] == "Exchange.Manage"
        assert exchange_grant["consentType"] == "AllPrincipals"

    def test_delegated_permissions_idempotent(self, permissions, fake_tenant):
        permissions.grant_delegated_permission(DEFAULT_PROFILE_NAME, APP_ID, TENANT)
        fake_tenant.requests.clear()

        permissions.grant_delegated_permission(DEFAULT_PROFILE_NAME, APP_ID, TENANT)

        assert [r for r in fake_tenant.requests if r.method in ("POST", "PATCH") and "token" not in r.url.path] == []

    def test_admin_roles_only_missing(self, permissions, fake_tenant):
        fake_tenant.role_assignments.append({"principalId": "sp-client", "roleDefinitionId": "role-1"})

        permissions.assign_admin_roles(TENANT)

        [request] = fake_tenant.posts("/roleManagement/directory/roleAssignments")
        assert json.loads(request.content) == {
            "principalId": "sp-client",
            "roleDefinitionId": "role-2",
            "directoryScopeId": "/",
        }
