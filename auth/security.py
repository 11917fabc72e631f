"""
Bearer-token utilities.

Authentication happens upstream; this service only verifies the signed access
token it is handed and reads the actor claims (sub, role, campus, name) from it.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from core.schemas import Actor
from database.models import Campus, UserRole
import config

security = HTTPBearer()

TOKEN_TYPE = "access"


def create_access_token(
    claims: Dict[str, Any],
    secret_key: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Sign an access token carrying the given actor claims.

    Args:
        claims: sub, role and optionally campus and name
        secret_key: Signing key; defaults to SECRET_KEY
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = dict(claims, iat=issued_at, exp=issued_at + lifetime, type=TOKEN_TYPE)
    return jwt.encode(payload, secret_key or config.SECRET_KEY, algorithm=config.ALGORITHM)


def issue_actor_token(actor: Actor, expires_delta: Optional[timedelta] = None) -> str:
    """Token for an already-resolved actor (used by upstream tooling and tests)."""
    claims = {"sub": actor.user_id, "role": actor.role.value, "name": actor.display_name}
    if actor.campus is not None:
        claims["campus"] = actor.campus.value
    return create_access_token(claims, expires_delta=expires_delta)


def decode_access_token(token: str, secret_key: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad signature, an expired token or a non-access token."""
    try:
        payload = jwt.decode(token, secret_key or config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != TOKEN_TYPE:
        return None
    return payload


def actor_from_claims(payload: Dict[str, Any]) -> Actor:
    """
    Raises:
        ValueError: missing subject, or a role/campus this service does not know
    """
    if not payload.get("sub"):
        raise ValueError("Token has no subject")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise ValueError(f"Unknown role: {payload.get('role')}")
    campus = None
    if payload.get("campus"):
        try:
            campus = Campus(str(payload["campus"]).upper())
        except ValueError:
            raise ValueError(f"Unknown campus: {payload.get('campus')}")
    return Actor(
        user_id=str(payload["sub"]),
        role=role,
        campus=campus,
        display_name=payload.get("name") or "",
    )
