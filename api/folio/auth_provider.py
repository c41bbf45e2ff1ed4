"""Client for the external authentication provider (GoTrue-compatible REST API).

The provider owns credentials, sessions and OAuth exchange. This module only
forwards requests and turns the provider's user object into an Identity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from . import settings
from .errors import AuthError
from .identity import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    identity: Identity
    access_token: str | None = None
    refresh_token: str | None = None


class AuthProvider(Protocol):
    def sign_up(self, email: str, password: str, metadata: dict[str, Any], redirect_to: str) -> None: ...

    def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    def exchange_code_for_session(self, code: str) -> AuthSession: ...

    def authorize_url(self, provider: str, redirect_to: str) -> str: ...

    def update_user_metadata(self, user_id: str, metadata: dict[str, Any]) -> None: ...


class GoTrueAuthProvider:
    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        service_key: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or settings.AUTH_URL).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else settings.AUTH_ANON_KEY
        self.service_key = service_key if service_key is not None else settings.AUTH_SERVICE_KEY
        self.client = client or httpx.Client(timeout=settings.AUTH_TIMEOUT_SECONDS)

    def _headers(self, key: str) -> dict[str, str]:
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    def _request(self, method: str, path: str, key: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}/auth/v1{path}"
        try:
            response = self.client.request(method, url, headers=self._headers(key), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Auth provider request {method} {path} failed: {e}")
            raise AuthError("Authentication provider unavailable") from e
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("error_description") or body.get("msg") or body.get("message") or response.text
            raise AuthError(message or f"Authentication failed ({response.status_code})")
        return response.json() if response.content else {}

    def _session(self, body: dict[str, Any]) -> AuthSession:
        user = body.get("user")
        if not user:
            raise AuthError("Authentication provider returned no user")
        return AuthSession(
            identity=Identity.from_provider_user(user),
            access_token=body.get("access_token"),
            refresh_token=body.get("refresh_token"),
        )

    def sign_up(self, email: str, password: str, metadata: dict[str, Any], redirect_to: str) -> None:
        self._request(
            "POST",
            f"/signup?{urlencode({'redirect_to': redirect_to})}",
            self.anon_key,
            json={"email": email, "password": password, "data": metadata},
        )

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        body = self._request(
            "POST",
            "/token?grant_type=password",
            self.anon_key,
            json={"email": email, "password": password},
        )
        return self._session(body)

    def exchange_code_for_session(self, code: str) -> AuthSession:
        body = self._request("POST", "/token?grant_type=pkce", self.anon_key, json={"auth_code": code})
        return self._session(body)

    def authorize_url(self, provider: str, redirect_to: str) -> str:
        query = urlencode({"provider": provider, "redirect_to": redirect_to})
        return f"{self.base_url}/auth/v1/authorize?{query}"

    def update_user_metadata(self, user_id: str, metadata: dict[str, Any]) -> None:
        self._request("PUT", f"/admin/users/{user_id}", self.service_key, json={"user_metadata": metadata})
