"""Access tokens for lifecycle actors.

A token is the only source of actor identity: ``sub`` (actor UUID), ``role``,
``department`` and the explicit ``permissions`` grants, plus ``iat``/``exp``.
Tokens are HS256-signed with JWT_SECRET and validated without a user lookup.

Example payload::

    {"sub": "550e8400-e29b-41d4-a716-446655440000", "role": "manager",
     "department": "QC", "permissions": ["approve_documents"],
     "iat": 1704368400, "exp": 1704372000}
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable
from uuid import UUID

import jwt

ALGORITHM = 'HS256'
DEFAULT_EXPIRY_MINUTES = 60

# Claims PyJWT must find before the payload is handed to actor_from_claims
REQUIRED_CLAIMS = ['sub', 'exp', 'iat']


def _get_jwt_secret() -> str:
    secret = os.getenv('JWT_SECRET')
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def _get_jwt_expiry() -> timedelta:
    """Token lifetime from JWT_EXPIRY_MINUTES; unparsable values fall back to the default."""
    try:
        minutes = int(os.getenv('JWT_EXPIRY_MINUTES', str(DEFAULT_EXPIRY_MINUTES)))
    except ValueError:
        minutes = DEFAULT_EXPIRY_MINUTES
    return timedelta(minutes=minutes)


def create_access_token(
    actor_id: UUID,
    role: str,
    department: str,
    permissions: Iterable[str] = (),
) -> str:
    """Sign a token for one actor.

    Args:
        actor_id: Actor's UUID
        role: admin, manager, user or guest
        department: Department code, e.g. "QC"
        permissions: Explicit grants such as "approve_documents"

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    issued_at = datetime.now(timezone.utc)

    claims = {
        'sub': str(actor_id),
        'role': role,
        'department': department,
        'permissions': sorted(permissions),
        'iat': int(issued_at.timestamp()),
        'exp': int((issued_at + _get_jwt_expiry()).timestamp()),
    }
    return jwt.encode(claims, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature, expiry and required claims.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed, tampered or lacks a required claim
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM], options={'require': REQUIRED_CLAIMS})
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {e}")
