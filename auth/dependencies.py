"""
Identity dependencies for FastAPI.
"""
from typing import List

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials

from auth.security import actor_from_claims, decode_access_token, security
from core.schemas import Actor
from database.models import UserRole


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> Actor:
    """
    Build the current actor from the bearer token's claims.

    Raises:
        HTTPException: 401 if the token is invalid or names an unknown role or campus
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication credentials")
    try:
        return actor_from_claims(payload)
    except ValueError as e:
        raise _unauthorized(str(e))


def require_roles(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Args:
        allowed_roles: Roles allowed through

    Returns:
        Dependency function
    """
    async def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {', '.join(r.value for r in allowed_roles)}"
            )
        return actor

    return role_checker


require_lecturer = require_roles([UserRole.LECTURER])
require_student_affairs = require_roles([UserRole.STUDENT_AFFAIRS])
