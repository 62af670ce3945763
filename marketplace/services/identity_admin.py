"""
Identity provider management API client.

Used by the admin user endpoints to block/unblock, delete, and change the email
or password of accounts. Calls go through ``ServiceHttpClient`` with a
client-credentials token that is cached until shortly before it expires.
"""
from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote

from marketplace.core.config import Settings, settings
from marketplace.services.errors import ErrorKind, ServiceError
from marketplace.services.http_client import HttpResult, ServiceHttpClient

log = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN_SECONDS = 60


class IdentityProviderError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, kind: ErrorKind = ErrorKind.IDENTITY_PROVIDER):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind

    def to_service_error(self) -> ServiceError:
        return ServiceError(self.kind, str(self))


class IdentityAdminClient:
    def __init__(
        self,
        *,
        domain: str,
        client_id: str,
        client_secret: str,
        audience: str,
        database_provider: str = "auth0",
        http: ServiceHttpClient | None = None,
    ):
        self.domain = domain
        self.client_id = client_id
        self.client_secret = client_secret
        self.audience = audience
        self.database_provider = database_provider
        self._http = http or ServiceHttpClient(timeout_seconds=10.0)
        self._token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "IdentityAdminClient":
        return cls(
            domain=s.idp_domain,
            client_id=s.idp_client_id,
            client_secret=s.idp_client_secret.get_secret_value(),
            audience=s.idp_audience,
            database_provider=s.idp_database_provider,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def _user_url(self, subject: str) -> str:
        return f"https://{self.domain}/api/v2/users/{quote(subject, safe='')}"

    async def _management_token(self) -> str:
        now = time.monotonic()
        if self._token and self._token_expires_at > now:
            return self._token

        res = await self._http.post_json(
            url=f"https://{self.domain}/oauth/token",
            json_body={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "audience": self.audience,
            },
        )
        token = res.detail.get("access_token") if res.ok else None
        if not token:
            raise IdentityProviderError(f"management token request failed: {res.error_message or 'no access_token'}")

        expires_in = int(res.detail.get("expires_in") or 0)
        self._token = token
        self._token_expires_at = now + max(expires_in - TOKEN_REFRESH_MARGIN_SECONDS, 0)
        return token

    async def _call(self, method: str, subject: str, body: dict[str, Any] | None = None) -> HttpResult:
        token = await self._management_token()
        res = await self._http.request_json(
            method=method,  # type: ignore[arg-type]
            url=self._user_url(subject),
            headers={"Authorization": f"Bearer {token}"},
            json_body=body,
        )
        if not res.ok:
            message = res.detail.get("message") if isinstance(res.detail.get("message"), str) else None
            log.warning("identity provider %s %s failed: %s", method, subject, res.error_message)
            raise IdentityProviderError(
                f"identity provider {method} failed: {message or res.error_message}",
                status_code=res.status_code,
            )
        return res

    async def update_user(self, subject: str, data: dict[str, Any]) -> dict[str, Any]:
        return (await self._call("PATCH", subject, data)).detail

    async def get_user(self, subject: str) -> dict[str, Any]:
        return (await self._call("GET", subject)).detail

    async def delete_user(self, subject: str) -> None:
        await self._call("DELETE", subject)

    async def set_blocked(self, subject: str, blocked: bool) -> None:
        await self.update_user(subject, {"blocked": blocked})

    async def change_email(self, subject: str, email: str) -> None:
        await self.update_user(subject, {"email": email})

    async def change_password(self, subject: str, password: str) -> None:
        await self.update_user(subject, {"password": password})

    async def user_provider(self, subject: str) -> str:
        user = await self.get_user(subject)
        identities = user.get("identities")
        if isinstance(identities, list) and identities and isinstance(identities[0], dict):
            provider = identities[0].get("provider")
            if isinstance(provider, str) and provider:
                return provider
        # "provider|id" subject format
        return subject.split("|", 1)[0] or "unknown"

    async def assert_database_user(self, subject: str) -> None:
        provider = await self.user_provider(subject)
        if provider != self.database_provider:
            raise IdentityProviderError(
                f'Operation not allowed for provider "{provider}". '
                "Email/password must be managed by the identity provider.",
                kind=ErrorKind.FORBIDDEN,
            )


_client: IdentityAdminClient | None = None


def get_identity_admin() -> IdentityAdminClient:
    global _client
    if _client is None:
        _client = IdentityAdminClient.from_settings()
    return _client


async def close_identity_admin() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
