# lulemo/client/api.py
"""
Async client for the Lulemo auth API.

Tokens live in a CredentialStore. Any authenticated call that comes back 401
triggers one refresh and one retry. If the server rejects the refresh token
the stored session is cleared and SessionExpiredError is raised; network
errors and 5xx answers leave the stored tokens in place.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from lulemo.client.store import (
    ACCESS_EXPIRES_KEY,
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    CredentialStore,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION = "unknown"


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class SessionExpiredError(ApiError):
    def __init__(self, message: str = "session expired"):
        super().__init__(401, message)


class AuthApiClient:
    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ):
        self.store = store
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "AuthApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ─────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────
    async def _send(self, method: str, path: str, body: Optional[dict] = None, auth: bool = False) -> httpx.Response:
        headers = {}
        if auth:
            token = self.store.get(ACCESS_TOKEN_KEY)
            if token:
                headers["Authorization"] = f"Bearer {token}"
        try:
            return await self._client.request(method, path, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(0, "network error") from exc

    @staticmethod
    def _payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if response.is_error:
            raise ApiError(response.status_code, data.get("error") or f"request failed ({response.status_code})")
        return data

    async def _request(self, method: str, path: str, body: Optional[dict] = None, auth: bool = False) -> Dict[str, Any]:
        response = await self._send(method, path, body, auth)
        if auth and response.status_code == 401 and self.store.get(REFRESH_TOKEN_KEY):
            await self.refresh_session()
            response = await self._send(method, path, body, auth)
        return self._payload(response)

    # ─────────────────────────────────────────────────────────────────────
    # Session storage
    # ─────────────────────────────────────────────────────────────────────
    def _save_tokens(self, data: Dict[str, Any]) -> None:
        self.store.set(ACCESS_TOKEN_KEY, data["accessToken"])
        self.store.set(ACCESS_EXPIRES_KEY, str(data["accessExpiresAt"]))
        if data.get("refreshToken"):
            self.store.set(REFRESH_TOKEN_KEY, data["refreshToken"])

    def has_session(self) -> bool:
        return bool(self.store.get(ACCESS_TOKEN_KEY)) and bool(self.store.get(REFRESH_TOKEN_KEY))

    def clear_session(self) -> None:
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, ACCESS_EXPIRES_KEY):
            self.store.remove(key)

    @property
    def access_expires_at(self) -> Optional[int]:
        raw = self.store.get(ACCESS_EXPIRES_KEY)
        return int(raw) if raw and raw.isdigit() else None

    # ─────────────────────────────────────────────────────────────────────
    # Account
    # ─────────────────────────────────────────────────────────────────────
    async def send_register_code(self, email: str) -> Optional[str]:
        """Returns the code itself only when the server bypasses email delivery."""
        data = await self._request("POST", "/api/auth/send-code", {"email": email})
        return data.get("devCode")

    async def register(self, email: str, password: str, code: str, region: str = DEFAULT_REGION) -> None:
        await self._request(
            "POST",
            "/api/auth/register",
            {"email": email, "password": password, "code": code, "region": region},
        )

    async def send_reset_code(self, email: str) -> Optional[str]:
        data = await self._request("POST", "/api/auth/send-reset-code", {"email": email})
        return data.get("devCode")

    async def reset_password(self, email: str, code: str, password: str) -> None:
        await self._request("POST", "/api/auth/reset-password", {"email": email, "code": code, "password": password})

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self._save_tokens(data)
        return data["user"]

    async def refresh_session(self) -> Dict[str, Any]:
        refresh_token = self.store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            raise SessionExpiredError("not logged in")
        try:
            data = self._payload(await self._send("POST", "/api/auth/refresh", {"refreshToken": refresh_token}))
        except ApiError as exc:
            # offline or a server fault says nothing about the refresh token
            if not 400 <= exc.status < 500:
                raise
            logger.info("Session refresh rejected (%s), clearing stored tokens", exc.status)
            self.clear_session()
            raise SessionExpiredError() from exc
        self._save_tokens(data)
        return data["user"]

    async def get_current_user(self) -> Dict[str, Any]:
        data = await self._request("GET", "/api/auth/me", auth=True)
        return data["user"]

    async def logout(self) -> None:
        refresh_token = self.store.get(REFRESH_TOKEN_KEY)
        try:
            if refresh_token:
                await self._request("POST", "/api/auth/logout", {"refreshToken": refresh_token})
        finally:
            self.clear_session()

    # ─────────────────────────────────────────────────────────────────────
    # Admin
    # ─────────────────────────────────────────────────────────────────────
    async def fetch_admin_users(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/admin/users", auth=True)

    async def update_admin_user(self, user_id: str, role: str, status: str, permissions: List[str]) -> None:
        await self._request(
            "POST",
            f"/api/admin/users/{user_id}",
            {"role": role, "status": status, "permissions": permissions},
            auth=True,
        )
