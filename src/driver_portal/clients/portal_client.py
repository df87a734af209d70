"""
HTTP client for the driver portal API.

One PortalClient per driver session: it carries that session's bearer token
and nothing is shared between instances. HTTP failures come back as the
same PortalError types the server raised, network trouble and 5xx as
TransientFetchError so the project feed can retry them.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from driver_portal.config import settings
from driver_portal.errors import (
    InvalidCredentials,
    InvalidToken,
    LoginThrottled,
    NotOwned,
    PortalError,
    TransientFetchError,
    TransitionRejected,
    ValidationError,
)
from driver_portal.models.pydantic_models import (
    CarType,
    Company,
    CurrentDriver,
    DriverLoginResponse,
    DriverProject,
    Project,
)
from driver_portal.services.context import AuthorizationContext
from driver_portal.services.feed_service import ProjectSource

logger = logging.getLogger(__name__)


def _build_url(base_url: str, path: str) -> str:
    """
    Builds the final URL for a portal API call.

    - makes sure the path starts with "/"
    - adds the API prefix
    """
    if not path.startswith("/"):
        path = "/" + path
    return f"{base_url.rstrip('/')}{settings.api_prefix}{path}"


class PortalClient:
    """Async client bound to one driver session."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or settings.portal_api_url
        self.token = token
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self._http = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ---------- plumbing ----------

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        auth: bool = True
    ) -> Any:
        url = _build_url(self.base_url, path)
        headers = {}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._http.request(method=method, url=url, params=params, json=json, headers=headers)
        except httpx.RequestError as exc:
            # network / timeout / DNS
            logger.warning("Portal API unreachable: %s %s: %s", method, path, exc)
            raise TransientFetchError(f"Could not reach the portal API: {exc}") from exc

        if response.status_code >= 400:
            raise self._error_for(response, path)

        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_for(response: httpx.Response, path: str) -> PortalError:
        try:
            payload = response.json()
        except ValueError:
            payload = {"detail": response.text}
        detail = payload.get("detail") if isinstance(payload, dict) else None
        if not isinstance(detail, str):
            detail = None

        status = response.status_code
        if status >= 500:
            return TransientFetchError(detail or f"Portal API error {status}")
        if status == 401:
            if path.endswith("/drivers/login"):
                return InvalidCredentials(detail)
            return InvalidToken(detail)
        if status == 404:
            return NotOwned(detail)
        if status == 409:
            return TransitionRejected(detail)
        if status == 422:
            return ValidationError(detail)
        if status == 429:
            return LoginThrottled(detail)
        error = PortalError(detail or f"Portal API error {status}")
        error.status_code = status
        return error

    # ---------- auth ----------

    async def login(self, login_id: str, pin: str) -> DriverLoginResponse:
        """Credential login; the session token is kept for later calls."""
        data = await self._request("POST", "/drivers/login", json={"login_id": login_id, "pin": pin}, auth=False)
        result = DriverLoginResponse.model_validate(data)
        self.token = result.token
        return result

    async def direct_access(self, token: str) -> DriverLoginResponse:
        data = await self._request("POST", "/drivers/direct-access", json={"token": token}, auth=False)
        result = DriverLoginResponse.model_validate(data)
        self.token = result.token
        return result

    async def logout(self) -> None:
        if not self.token:
            return
        try:
            await self._request("POST", "/drivers/logout")
        finally:
            self.token = None

    async def me(self) -> CurrentDriver:
        return CurrentDriver.model_validate(await self._request("GET", "/drivers/me"))

    # ---------- data ----------

    async def list_projects(self) -> List[DriverProject]:
        data = await self._request("GET", "/drivers/me/projects")
        return [DriverProject.model_validate(p) for p in data]

    async def get_project(self, project_id: str) -> DriverProject:
        return DriverProject.model_validate(await self._request("GET", f"/drivers/me/projects/{project_id}"))

    async def transition(self, project_id: str, status: str) -> DriverProject:
        data = await self._request("POST", f"/drivers/me/projects/{project_id}/status", json={"status": status})
        return DriverProject.model_validate(data)

    async def list_companies(self) -> List[Company]:
        return [Company.model_validate(c) for c in await self._request("GET", "/companies")]

    async def list_car_types(self) -> List[CarType]:
        return [CarType.model_validate(c) for c in await self._request("GET", "/car-types")]


class ApiProjectSource(ProjectSource):
    """Feed source backed by the portal API instead of the database."""

    def __init__(self, client: PortalClient):
        self.client = client

    async def fetch_projects(self, context: AuthorizationContext) -> List[Project]:
        projects = await self.client.list_projects()
        # keep only rows owned by the bound driver
        return [
            Project.model_validate(p.model_dump())
            for p in projects
            if p.driver_id == context.driver_id
        ]

    async def fetch_companies(self) -> List[Company]:
        return await self.client.list_companies()

    async def fetch_car_types(self) -> List[CarType]:
        return await self.client.list_car_types()
