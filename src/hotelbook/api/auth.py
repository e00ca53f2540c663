"""OIDC bearer-token authentication.

Tokens are issued by an external identity provider and verified here against
its JWKS. The token subject is mapped to a row in `users`, which carries the
guest/admin role used for reservation ownership checks.

Provides:
- verify_token(): validates an RS256 JWT and returns its subject
- get_current_user(): FastAPI dependency resolving the authenticated user
- require_admin(): FastAPI dependency rejecting non-admin users
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from fastapi import Depends, HTTPException, Request

ADMIN_ROLE = "ADMIN"
USER_ROLE = "USER"

_JWKS_CACHE_TTL = 600  # seconds


@dataclass
class CurrentUser:
    """Authenticated user context."""

    id: str
    external_subject: str
    email: str | None
    name: str | None
    role: str = USER_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class _JwksCache:
    """Thread-safe JWKS cache with TTL."""

    def __init__(self, ttl: float = _JWKS_CACHE_TTL) -> None:
        self.ttl = ttl
        self._keys: dict[str, Any] | None = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def clear(self) -> None:
        with self._lock:
            self._keys = None
            self._fetched_at = 0.0

    def get(self, jwks_url: str, *, force_refresh: bool = False) -> dict[str, Any]:
        with self._lock:
            now = time.time()
            fresh = self._keys is not None and (now - self._fetched_at) < self.ttl
            if fresh and not force_refresh:
                return self._keys

            try:
                self._keys = _fetch_jwks(jwks_url)
            except requests.RequestException:
                raise HTTPException(status_code=503, detail="Auth temporarily unavailable")
            self._fetched_at = now
            return self._keys


_jwks_cache = _JwksCache()


def _get_settings() -> dict[str, Any]:
    """Load OIDC settings from environment."""
    parties_raw = os.environ.get("OIDC_AUTHORIZED_PARTIES", "")
    parties = [p.strip() for p in parties_raw.split(",") if p.strip()] or None

    return {
        "issuer": os.environ.get("OIDC_ISSUER"),
        "audience": os.environ.get("OIDC_AUDIENCE"),
        "jwks_url": os.environ.get("OIDC_JWKS_URL"),
        "authorized_parties": parties,
    }


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def _find_key(jwks: dict[str, Any], kid: str) -> dict[str, Any] | None:
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def _decode(token: str, jwk_data: dict[str, Any], issuer: str, audience: str) -> dict[str, Any]:
    try:
        public_key = jwt.algorithms.RSAAlgorithm.from_jwk(jwk_data)
    except (ValueError, TypeError, KeyError):
        raise HTTPException(status_code=401, detail="Invalid token")

    return jwt.decode(
        token,
        public_key,
        algorithms=["RS256"],
        issuer=issuer,
        audience=audience,
        options={"require": ["exp", "iss", "aud", "sub"]},
    )


def verify_token(token: str) -> str:
    """Verify a JWT and return its subject claim.

    Unknown key IDs and signature failures trigger one JWKS refresh, to
    follow key rotation at the provider.

    Raises:
        HTTPException: 401 if the token is invalid or OIDC is not configured,
            503 if the JWKS cannot be fetched.
    """
    settings = _get_settings()
    issuer = settings["issuer"]
    audience = settings["audience"]
    jwks_url = settings["jwks_url"]

    if not issuer or not audience or not jwks_url:
        raise HTTPException(status_code=401, detail="OIDC not configured")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except jwt.exceptions.DecodeError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not kid:
        raise HTTPException(status_code=401, detail="Invalid token")

    key_data = _find_key(_jwks_cache.get(jwks_url), kid)
    if key_data is None:
        key_data = _find_key(_jwks_cache.get(jwks_url, force_refresh=True), kid)
    if key_data is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        payload = _decode(token, key_data, issuer, audience)
    except jwt.InvalidSignatureError:
        key_data = _find_key(_jwks_cache.get(jwks_url, force_refresh=True), kid)
        if key_data is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        try:
            payload = _decode(token, key_data, issuer, audience)
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail="Invalid token")
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    parties = settings["authorized_parties"]
    if parties and "azp" in payload and payload["azp"] not in parties:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token")
    return sub


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="No token provided")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return parts[1]


def _get_user_from_db(external_subject: str) -> CurrentUser | None:
    from hotelbook.infra.db import txn

    with txn() as cur:
        cur.execute(
            "SELECT id, external_subject, email, name, role FROM users WHERE external_subject = %s",
            (external_subject,),
        )
        row = cur.fetchone()

    if row is None:
        return None
    return CurrentUser(
        id=str(row[0]),
        external_subject=row[1],
        email=row[2],
        name=row[3],
        role=row[4],
    )


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: the authenticated user.

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if no user
            row matches the token subject.
    """
    sub = verify_token(_extract_bearer_token(request))
    user = _get_user_from_db(sub)
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """FastAPI dependency: the authenticated user, who must be an admin."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
