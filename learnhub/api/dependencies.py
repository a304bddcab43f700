from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from learnhub.core.errors import NotAuthorized
from learnhub.middleware.request_context import user_id_var
from learnhub.models.principal import ROLES, Principal
from learnhub.services import token_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def require_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token.  Returns a Principal.

    Used as a FastAPI dependency on every endpoint under /v1.  Async so the
    user id set on the context is visible to the handler that follows.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    # unknown role claims are ignored
    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(r for r in claims.get("roles", []) if r in ROLES),
    )
    user_id_var.set(principal.user_id)
    request.state.user_id = principal.user_id
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        sorted(principal.roles),
    )
    return principal


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"admin", "instructor"}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                sorted(roles),
            )
            raise NotAuthorized("Insufficient permissions", required_roles=sorted(roles))
        return principal

    return _guard


CurrentUser = Annotated[Principal, Depends(require_user)]
Staff = Annotated[Principal, Depends(require_any_role({"instructor", "admin"}))]
Admin = Annotated[Principal, Depends(require_any_role({"admin"}))]
