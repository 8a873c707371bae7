"""Async client for the church management check-in API."""

import contextlib
import logging
from typing import Any, Iterator, Optional

import httpx

from churchcheckin.model import records


logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An API request failed or returned an error response."""

    message: str
    """Human readable error description."""
    status: int
    """HTTP status code, 0 if no response was received."""
    code: str
    """Machine readable error code from the server."""
    details: Optional[dict[str, Any]]
    """Field-level validation messages, if provided."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def __str__(self) -> str:
        if self.status:
            return f"{self.message} ({self.status} {self.code})"
        return f"{self.message} ({self.code})"

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        """Build an error from a non-2xx response."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return cls(
                response.reason_phrase or "An error occurred",
                status=response.status_code,
            )
        return cls(
            body.get("message") or body.get("error") or "An error occurred",
            status=response.status_code,
            code=body.get("code") or "UNKNOWN_ERROR",
            details=body.get("details") or body.get("errors"),
        )


@contextlib.contextmanager
def _parsing(endpoint: str) -> Iterator[None]:
    """Report a response body that doesn't have the expected shape."""
    try:
        yield
    except (AttributeError, KeyError, TypeError, ValueError) as err:
        logger.warning("Unexpected response from %s: %r", endpoint, err)
        raise ApiError(
            "Server returned an invalid response.", code="INVALID_RESPONSE"
        ) from err


class CheckInApi:
    """Check-in, service, and member search endpoints.

    Use as an async context manager, or call `aclose` when finished.
    """

    base_url: str
    """Root URL of the REST API."""
    _client: httpx.AsyncClient

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Configure the HTTP client. `transport` is for testing."""
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CheckInApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close network connections."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        if params is not None:
            params = {key: val for key, val in params.items() if val is not None}
        logger.debug("%s %s %s", method, endpoint, params or "")
        try:
            response = await self._client.request(
                method, endpoint, params=params, json=body
            )
        except httpx.HTTPError as err:
            raise ApiError(
                f"Unable to reach server: {err}", code="NETWORK_ERROR"
            ) from err
        logger.debug("%s %s -> %s", method, endpoint, response.status_code)
        if response.is_error:
            raise ApiError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as err:
            raise ApiError(
                "Server returned an invalid response.",
                status=response.status_code,
                code="INVALID_RESPONSE",
            ) from err

    async def list_todays_services(self, church_id: str) -> list[records.Service]:
        """Get services scheduled for today."""
        endpoint = f"/church/{church_id}/check-in/services/today"
        body = await self._request("GET", endpoint)
        with _parsing(endpoint):
            return [records.Service.from_api(item) for item in body or []]

    async def get_check_in_stats(self, church_id: str) -> records.CheckInStats:
        """Get today's church-wide check-in totals."""
        endpoint = f"/church/{church_id}/check-in/stats"
        body = await self._request("GET", endpoint)
        with _parsing(endpoint):
            return records.CheckInStats.from_api(body or {})

    async def list_check_ins(
        self, church_id: str, service_id: str, page_size: int = 20
    ) -> records.Page[records.CheckIn]:
        """Get the most recent adult and guest check-ins for a service."""
        endpoint = f"/church/{church_id}/check-in/services/{service_id}/check-ins"
        body = await self._request("GET", endpoint, params={"pageSize": page_size})
        with _parsing(endpoint):
            return records.Page.from_api(body or {}, records.CheckIn.from_api)

    async def list_child_check_ins(
        self, church_id: str, service_id: str
    ) -> list[records.ChildCheckIn]:
        """Get children checked into a service."""
        endpoint = f"/church/{church_id}/check-in/services/{service_id}/children"
        body = await self._request("GET", endpoint)
        with _parsing(endpoint):
            return [records.ChildCheckIn.from_api(item) for item in body or []]

    async def search_members(
        self, church_id: str, query: str, limit: int = 10
    ) -> list[records.Member]:
        """Find members by name or phone number."""
        endpoint = f"/church/{church_id}/members/search"
        body = await self._request(
            "GET", endpoint, params={"q": query, "limit": limit}
        )
        with _parsing(endpoint):
            return [records.Member.from_api(item) for item in body or []]

    async def create_check_in(
        self, church_id: str, service_id: str, request: records.CheckInRequest
    ) -> records.CheckIn:
        """Check in one adult member or guest."""
        endpoint = f"/church/{church_id}/check-in/services/{service_id}/check-ins"
        body = await self._request("POST", endpoint, body=request.to_api())
        with _parsing(endpoint):
            return records.CheckIn.from_api(body)

    async def create_child_check_in(
        self,
        church_id: str,
        service_id: str,
        parent_checkin_id: str,
        request: records.ChildCheckInRequest,
    ) -> records.ChildCheckIn:
        """Check in a child under an existing adult check-in.

        The server generates the child's security code.
        """
        endpoint = (
            f"/church/{church_id}/check-in/services/{service_id}"
            f"/check-ins/{parent_checkin_id}/children"
        )
        body = await self._request("POST", endpoint, body=request.to_api())
        with _parsing(endpoint):
            return records.ChildCheckIn.from_api(body)
