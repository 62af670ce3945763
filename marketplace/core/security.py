from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from jose import JWTError, jwt

from marketplace.core.config import settings
from marketplace.services.http_client import ServiceHttpClient

log = logging.getLogger(__name__)

MIN_REFRESH_INTERVAL_SECONDS = 30


class InvalidToken(Exception):
    pass


class TokenVerifier:
    """
    Verifies identity provider access tokens (RS256) against the provider's JWKS.

    The key set is fetched lazily and cached; an unknown ``kid`` forces one
    refresh so key rotation is picked up without a restart. Refreshes are at
    most one per ``min_refresh_interval`` seconds, whatever the token says.
    """

    def __init__(
        self,
        *,
        issuer: str,
        audience: str,
        jwks_url: str | None = None,
        jwks: dict[str, Any] | None = None,
        algorithms: Sequence[str] = ("RS256",),
        cache_seconds: int = 600,
        min_refresh_interval: float = MIN_REFRESH_INTERVAL_SECONDS,
        http: ServiceHttpClient | None = None,
    ):
        self.issuer = issuer
        self.audience = audience
        self.jwks_url = jwks_url
        self.algorithms = list(algorithms)
        self._cache_seconds = cache_seconds
        self._min_refresh_interval = min_refresh_interval
        self._http = http
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at = 0.0
        self._last_attempt: float | None = None
        if jwks is not None:
            self._load(jwks)
            self._fetched_at = float("inf")  # static key set, never refetched

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()

    def _load(self, jwks: dict[str, Any]) -> None:
        self._keys = {k["kid"]: k for k in jwks.get("keys", []) if isinstance(k, dict) and "kid" in k}

    async def _refresh(self) -> None:
        if not self.jwks_url:
            return
        self._last_attempt = time.monotonic()
        if self._http is None:
            self._http = ServiceHttpClient(timeout_seconds=5.0)
        res = await self._http.get_json(url=self.jwks_url)
        if not res.ok or not res.json_object:
            log.warning("jwks fetch failed: %s", res.error_message or "non-object body")
            return
        self._load(res.detail)
        self._fetched_at = time.monotonic()

    def _may_refresh(self) -> bool:
        if self._fetched_at == float("inf"):
            return False
        if self._last_attempt is None:
            return True
        return time.monotonic() - self._last_attempt >= self._min_refresh_interval

    async def _key_for(self, kid: str | None) -> dict[str, Any] | None:
        if not kid:
            return None
        stale = time.monotonic() - self._fetched_at > self._cache_seconds
        if (stale or kid not in self._keys) and self._may_refresh():
            await self._refresh()
        return self._keys.get(kid)

    async def verify(self, token: str) -> dict[str, Any]:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidToken(f"malformed token: {e}") from e

        key = await self._key_for(header.get("kid"))
        if key is None:
            raise InvalidToken("unknown signing key")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as e:
            raise InvalidToken(str(e)) from e

        if not claims.get("sub"):
            raise InvalidToken("token has no subject")
        return claims


_verifier: TokenVerifier | None = None


def get_token_verifier() -> TokenVerifier:
    global _verifier
    if _verifier is None:
        _verifier = TokenVerifier(
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            jwks_url=settings.jwks_url,
            cache_seconds=settings.auth_jwks_cache_seconds,
        )
    return _verifier


async def close_token_verifier() -> None:
    global _verifier
    if _verifier is not None:
        await _verifier.aclose()
        _verifier = None
