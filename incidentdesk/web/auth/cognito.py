"""User-pool JWT validation and JWKS key management."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import jwt
import structlog

from incidentdesk.exceptions import AuthenticationError
from incidentdesk.models.domain import ATTR_COMPANY_ID, ATTR_COMPANY_NAME, Identity

logger = structlog.get_logger(__name__)

# JWKS cache TTL in seconds (1 hour)
_JWKS_CACHE_TTL = 3600


@dataclass
class _JWKSCache:
    keys: list[dict[str, Any]] = field(default_factory=list)
    fetched_at: float = 0.0

    @property
    def is_stale(self) -> bool:
        return time.monotonic() - self.fetched_at > _JWKS_CACHE_TTL


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """Build the caller identity from verified token claims.

    ID tokens carry e-mail and tenant attributes; access tokens only carry
    the username and groups.
    """
    username = claims.get("cognito:username") or claims.get("username") or claims["sub"]
    return Identity(
        username=username,
        email=claims.get("email", ""),
        groups=tuple(claims.get("cognito:groups") or ()),
        company_id=claims.get(ATTR_COMPANY_ID) or None,
        company_name=claims.get(ATTR_COMPANY_NAME) or None,
    )


class CognitoTokenVerifier:
    """Verifies RS256 tokens issued by one user pool."""

    def __init__(
        self,
        jwks_url: str,
        issuer: str,
        client_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._jwks_url = jwks_url
        self._issuer = issuer
        self._client_id = client_id
        self._transport = transport
        self._cache = _JWKSCache()

    async def _fetch_jwks(self) -> list[dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                resp = await client.get(self._jwks_url)
                resp.raise_for_status()
                keys: list[dict[str, Any]] = resp.json().get("keys", [])
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("jwks_fetch_failed", error=str(exc))
            if self._cache.keys:
                logger.info("jwks_using_stale_cache")
                return self._cache.keys
            raise
        self._cache = _JWKSCache(keys=keys, fetched_at=time.monotonic())
        logger.debug("jwks_fetched", key_count=len(keys))
        return keys

    async def _signing_keys(self) -> list[dict[str, Any]]:
        if not self._cache.is_stale and self._cache.keys:
            return self._cache.keys
        return await self._fetch_jwks()

    async def verify(self, token: str) -> dict[str, Any]:
        """Return the verified claims; raises jwt.PyJWTError on invalid/expired tokens."""
        keys = await self._signing_keys()
        kid = jwt.get_unverified_header(token).get("kid")
        candidates = [k for k in keys if k.get("kid") == kid] or keys
        if not candidates:
            raise jwt.InvalidTokenError("No signing keys available")

        last_error: Exception | None = None
        for jwk in jwt.PyJWKSet.from_dict({"keys": candidates}).keys:
            try:
                claims: dict[str, Any] = jwt.decode(
                    token,
                    jwk.key,
                    algorithms=["RS256"],
                    issuer=self._issuer,
                    options={"verify_aud": False},
                )
            except jwt.PyJWTError as exc:
                last_error = exc
                continue
            self._check_client(claims)
            return claims

        raise last_error or jwt.InvalidTokenError("No valid signing key found")

    def _check_client(self, claims: dict[str, Any]) -> None:
        token_use = claims.get("token_use")
        if token_use not in ("id", "access"):
            raise jwt.InvalidTokenError(f"Unexpected token_use: {token_use}")
        if not self._client_id:
            return
        audience = claims.get("aud") if token_use == "id" else claims.get("client_id")
        if audience != self._client_id:
            raise jwt.InvalidAudienceError("Token was issued for another client")

    async def authenticate(self, authorization: str) -> Identity:
        """Resolve an ``Authorization`` header value to an Identity."""
        if not authorization.startswith("Bearer "):
            raise AuthenticationError("Missing Bearer token")
        try:
            claims = await self.verify(authorization[7:])
        except (jwt.PyJWTError, httpx.HTTPError) as exc:
            logger.warning("token_invalid", error=str(exc))
            raise AuthenticationError("Invalid token") from exc
        return identity_from_claims(claims)
