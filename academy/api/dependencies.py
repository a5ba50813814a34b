from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from academy.db import unit_of_work
from academy.db.unit_of_work import InMemoryStore, PgStore
from academy.models.principal import Principal
from academy.services import token_service

logger = logging.getLogger(__name__)

# Tokens come from the identity service; tokenUrl only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Turn the bearer token into the Principal every operation takes.

    The token's ``sub`` must be a user UUID; ``roles`` may be absent but
    otherwise must be a list of strings.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        user_id = UUID(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a UUID")
        raise _unauthorized("Invalid token") from None

    roles = claims.get("roles", [])
    if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
        logger.warning("Token roles claim is not a list of strings")
        raise _unauthorized("Invalid token")

    principal = Principal(user_id=user_id, roles=frozenset(roles))
    logger.debug("Token accepted", extra={"user_id": str(user_id)})
    return principal


def get_store() -> InMemoryStore | PgStore:
    """The process-wide store; looked up per call so tests can swap it."""
    return unit_of_work.store


CurrentUser = Annotated[Principal, Depends(require_user)]
StoreDep = Annotated[InMemoryStore | PgStore, Depends(get_store)]
