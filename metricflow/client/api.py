"""HTTP client for the MetricFlow API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import MetricFlowError
from ..schemas import AuthResponse, Identity, Metric, Session

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class ApiError(MetricFlowError):
    """A failed API call, carrying the server's status and ``error`` message."""

    def __init__(self, status_code: int, message: str | None = None):
        super().__init__(message or GENERIC_ERROR_MESSAGE)
        self.status_code = status_code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class MetricFlowClient:
    """Signup and metric CRUD against the API, plus the optional auth proxy routes.

    The bearer token is held on the instance; ``sign_up`` and ``sign_in`` set
    it, ``sign_out`` clears it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MetricFlowClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Any | None = None,
        *,
        auth: bool = True,
        token: str | None = None,
    ) -> Any:
        headers: dict[str, str] = {}
        bearer = token or self.token
        if auth and bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("MetricFlow API unreachable for %s %s: %s", method, path, exc)
            raise ApiError(0, GENERIC_ERROR_MESSAGE) from exc
        if response.status_code >= 400:
            raise ApiError(response.status_code, _error_message(response))
        return response.json()

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        business_name: str | None = None,
    ) -> AuthResponse:
        data = await self._request(
            "POST",
            "/auth/signup",
            json={
                "email": email,
                "password": password,
                "fullName": full_name,
                "businessName": business_name or "",
            },
            auth=False,
        )
        result = AuthResponse.model_validate(data)
        self.token = result.session.access_token
        return result

    async def sign_in(self, email: str, password: str) -> Session:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password}, auth=False)
        session = AuthResponse.model_validate(data).session
        self.token = session.access_token
        return session

    async def sign_out(self, access_token: str | None = None) -> None:
        token = access_token or self.token
        self.token = None
        if token is None:
            return
        await self._request("POST", "/auth/logout", token=token)

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        payload: dict[str, Any] = {"email": email}
        if redirect_to:
            payload["redirect_to"] = redirect_to
        await self._request("POST", "/auth/recover", json=payload, auth=False)

    async def get_user(self) -> Identity:
        data = await self._request("GET", "/auth/user")
        return Identity.model_validate(data["user"])

    async def list_metrics(self) -> list[dict[str, Any]]:
        """Return raw metric records; see ``dashboard.coerce_metrics`` for parsing."""

        data = await self._request("GET", "/metrics")
        return list(data.get("metrics") or [])

    async def create_metric(self, fields: dict[str, Any]) -> Metric:
        data = await self._request("POST", "/metrics", json=fields)
        return Metric.model_validate(data["metric"])

    async def update_metric(self, metric_id: str, fields: dict[str, Any]) -> Metric:
        data = await self._request("PUT", f"/metrics/{metric_id}", json=fields)
        return Metric.model_validate(data["metric"])

    async def delete_metric(self, metric_id: str) -> None:
        await self._request("DELETE", f"/metrics/{metric_id}")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return GENERIC_ERROR_MESSAGE
    if isinstance(payload, dict) and isinstance(payload.get("error"), str) and payload["error"]:
        return payload["error"]
    return GENERIC_ERROR_MESSAGE


__all__ = ["ApiError", "GENERIC_ERROR_MESSAGE", "MetricFlowClient"]
