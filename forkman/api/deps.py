"""
forkman.api.deps — FastAPI dependency injection
=================================================

Shared dependencies for the economy API:

* :func:`get_engine` / :func:`get_config` — process-wide, built on first use.
* :func:`get_current_admin` — bearer-token guard for the ``/api/admin`` routes.

Tokens are HS256 JWTs signed with ``JWT_SECRET``.  Issuing them is outside
this service; an admin token carries ``sub`` and ``is_admin: true``.  The
secret is checked once at import, so a misconfigured deployment fails on
startup instead of on the first admin request.
"""

from __future__ import annotations

import os
from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from forkman.config import ForkmanConfig, load_config
from forkman.database.engine import create_db_engine

JWT_ALGORITHM = "HS256"

_MIN_SECRET_LENGTH = 32

# Placeholders from .env.example and the usual suspects
_WEAK_SECRETS = frozenset({
    "forkman-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
})

_bearer = HTTPBearer(auto_error=False)


def _load_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        problem = "JWT_SECRET environment variable is not set."
    elif secret in _WEAK_SECRETS:
        problem = f"JWT_SECRET is set to a known weak default ('{secret}')."
    elif len(secret) < _MIN_SECRET_LENGTH:
        problem = (
            f"JWT_SECRET is too short ({len(secret)} chars, "
            f"need at least {_MIN_SECRET_LENGTH})."
        )
    else:
        return secret
    raise RuntimeError(
        f"{problem} Generate a strong one with: "
        "python -c \"import secrets; print(secrets.token_urlsafe(64))\""
    )


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> ForkmanConfig:
    return load_config(os.getenv("FORKMAN_CONFIG", "config.yaml"))


def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> dict:
    """Decode the bearer token and return its claims.

    401 when the token is missing, malformed, expired or lacks ``sub``;
    403 when it is valid but not an admin token.
    """
    if credentials is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    try:
        claims = jwt.decode(
            credentials.credentials,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub"]},
        )
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if claims.get("is_admin") is not True:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return claims
