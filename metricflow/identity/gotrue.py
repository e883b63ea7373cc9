"""HTTP client for a hosted GoTrue (Supabase Auth) endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import ProviderError
from ..schemas import Identity, Session

logger = logging.getLogger(__name__)

AUTH_PATH = "/auth/v1"


class GoTrueError(ProviderError):
    """Non-success answer from the auth server, or a transport failure (``status_code`` 0)."""

    def __init__(self, message: str, *, http_status: int = 0, error_code: str | None = None):
        super().__init__(message)
        self.http_status = http_status
        self.error_code = error_code


class GoTrueClient:
    """Thin async wrapper over the GoTrue REST API.

    ``api_key`` is the project's anon key for browser-equivalent calls or the
    service-role key for the admin endpoints.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}{AUTH_PATH}",
            timeout=timeout,
            transport=transport,
            headers={"apikey": api_key},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GoTrueClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: dict[str, str] | None = None,
        token: str | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token or self._api_key}"}
        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Auth server unreachable for %s %s: %s", method, path, exc)
            raise GoTrueError(f"Auth server unreachable: {exc}") from exc
        if response.status_code >= 400:
            message, error_code = _error_details(response)
            logger.warning("Auth server error %s for %s %s: %s", response.status_code, method, path, message)
            raise GoTrueError(message, http_status=response.status_code, error_code=error_code)
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return None

    async def admin_create_user(self, email: str, password: str, user_metadata: dict[str, Any]) -> Identity:
        data = await self._request(
            "POST",
            "/admin/users",
            json={
                "email": email,
                "password": password,
                "user_metadata": user_metadata,
                "email_confirm": True,
            },
        )
        # Older servers wrap the record in {"user": ...}
        return Identity.model_validate(data.get("user", data))

    async def admin_delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/admin/users/{user_id}")

    async def sign_in(self, email: str, password: str) -> Session:
        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return Session.model_validate(data)

    async def get_user(self, access_token: str) -> Identity:
        data = await self._request("GET", "/user", token=access_token)
        return Identity.model_validate(data)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", token=access_token)

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request("POST", "/recover", json={"email": email}, params=params)


def _error_details(response: httpx.Response) -> tuple[str, str | None]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None
    if not isinstance(payload, dict):
        return str(payload), None
    message = (
        payload.get("msg")
        or payload.get("error_description")
        or payload.get("message")
        or payload.get("error")
        or f"HTTP {response.status_code}"
    )
    error_code = payload.get("error_code")
    if error_code is None and isinstance(payload.get("error"), str) and payload.get("error") != message:
        error_code = payload["error"]
    return str(message), error_code


__all__ = ["AUTH_PATH", "GoTrueClient", "GoTrueError"]
