"""FastAPI dependencies for authentication.

The actor is built from JWT claims alone; there is no user table lookup.

Usage:
    @router.get("/documents/{document_id}")
    def get_document(document_id: UUID, actor: Actor = Depends(get_current_actor)):
        ...
"""

from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from domain.lifecycle import Actor, ActorPermission, ActorRole
from .jwt import decode_token


# HTTP Bearer token security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def actor_from_claims(payload: dict) -> Actor:
    """Build an Actor from decoded token claims.

    Unknown permission names are ignored so older tokens keep working
    after a grant is retired.

    Raises:
        ValueError: If sub, role or department is missing or malformed
    """
    actor_id = payload.get("sub")
    if not actor_id:
        raise ValueError("missing actor ID claim")
    department = payload.get("department")
    if not department:
        raise ValueError("missing department claim")

    valid_permissions = {permission.value for permission in ActorPermission}
    permissions = frozenset(
        ActorPermission(name)
        for name in payload.get("permissions") or []
        if name in valid_permissions
    )

    return Actor(
        id=UUID(actor_id),
        role=ActorRole(payload.get("role")),
        department=department,
        permissions=permissions,
    )


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """Extract and validate the JWT token, returning the calling actor.

    Raises:
        HTTPException 401: If token is missing, invalid, expired, or its
            claims do not describe an actor
    """
    try:
        payload = decode_token(credentials.credentials)
        return actor_from_claims(payload)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")
    except ValueError as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")


# Type alias for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
