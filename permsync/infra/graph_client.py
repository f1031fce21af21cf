"""HTTP client for Microsoft Graph and Partner Center with per-tenant tokens."""

import time
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
import httpx

from permsync.infra.config import config
from permsync.infra.error_handler import AuthError, GraphAPIError, NetworkError

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before they expire
TOKEN_EXPIRY_MARGIN = 60


class GraphClient:
    """
    Calls Graph-style APIs on behalf of the partner application.

    Access tokens come from the OAuth2 refresh-token grant and are cached per
    (tenant, scope) until shortly before they expire.
    """

    def __init__(
        self,
        application_id: Optional[str] = None,
        application_secret: Optional[str] = None,
        refresh_token: Optional[str] = None,
        graph_base_url: Optional[str] = None,
        login_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.application_id = application_id or config.APPLICATION_ID
        self.application_secret = application_secret or config.APPLICATION_SECRET
        self.refresh_token = refresh_token or config.REFRESH_TOKEN
        self.graph_base_url = (graph_base_url or config.GRAPH_BASE_URL).rstrip("/")
        self.login_url = (login_url or config.LOGIN_URL).rstrip("/")
        self._http = httpx.Client(
            timeout=timeout or config.GRAPH_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._tokens: Dict[Tuple[str, str], Tuple[str, float]] = {}

    def close(self) -> None:
        self._http.close()

    def get_token(self, tenant_id: str, scope: Optional[str] = None) -> str:
        """
        Get an access token for a tenant.

        Args:
            tenant_id: Tenant to authenticate against
            scope: Token scope (defaults to Graph ``.default``)

        Raises:
            AuthError: If the token endpoint rejects the request
        """
        scope = scope or f"{self.graph_base_url}/.default"
        cached = self._tokens.get((tenant_id, scope))
        if cached and cached[1] - TOKEN_EXPIRY_MARGIN > time.time():
            return cached[0]

        try:
            response = self._http.post(
                f"{self.login_url}/{tenant_id}/oauth2/v2.0/token",
                data={
                    "client_id": self.application_id,
                    "client_secret": self.application_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                    "scope": scope,
                },
            )
        except httpx.TransportError as e:
            raise NetworkError(f"Token request for {tenant_id} failed: {e}") from e

        if response.status_code != 200:
            raise AuthError(
                f"Could not get token for {tenant_id}: {_error_message(response)}"
            )

        body = response.json()
        token = body["access_token"]
        expires_at = time.time() + int(body.get("expires_in", 3600))
        self._tokens[(tenant_id, scope)] = (token, expires_at)
        return token

    def request(
        self,
        method: str,
        tenant_id: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        base_url: Optional[str] = None,
        scope: Optional[str] = None,
        allow_status: Iterable[int] = (),
    ) -> httpx.Response:
        """
        Send an authenticated request.

        Args:
            method: HTTP method
            tenant_id: Tenant the token is issued for
            path: Path below the base URL, or an absolute URL (paging links)
            json: JSON body
            params: Query parameters
            base_url: Override the Graph base URL (e.g. Partner Center)
            scope: Token scope, defaults to ``{base_url}/.default``
            allow_status: Error status codes returned to the caller instead of raised

        Raises:
            GraphAPIError: On an error response not in ``allow_status``
            NetworkError: On transport failures
        """
        base = (base_url or self.graph_base_url).rstrip("/")
        url = path if path.startswith("http") else f"{base}/{path.lstrip('/')}"
        token = self.get_token(tenant_id, scope or f"{base}/.default")

        try:
            response = self._http.request(
                method,
                url,
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400 and response.status_code not in allow_status:
            raise GraphAPIError(
                f"{method} {url} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    def get(self, tenant_id: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", tenant_id, path, params=params).json()

    def post(self, tenant_id: str, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self.request("POST", tenant_id, path, json=body)
        return response.json() if response.content else {}

    def patch(self, tenant_id: str, path: str, body: Dict[str, Any]) -> None:
        self.request("PATCH", tenant_id, path, json=body)

    def list_all(self, tenant_id: str, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET a collection, following ``@odata.nextLink`` pages."""
        items: List[Dict[str, Any]] = []
        page = self.get(tenant_id, path, params=params)
        items.extend(page.get("value", []))
        while page.get("@odata.nextLink"):
            page = self.get(tenant_id, page["@odata.nextLink"])
            items.extend(page.get("value", []))
        return items


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a Graph / login / Partner Center response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("code") or str(error)
    if isinstance(error, str):
        return body.get("error_description") or error
    if isinstance(body, dict) and body.get("description"):
        return body["description"]
    return response.text[:200]
