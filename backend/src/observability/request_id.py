"""Request ID propagation for log correlation.

The middleware sets the id once per request; every log record emitted while
handling that request picks it up through RequestIDFilter.
"""

import uuid
from contextvars import ContextVar, Token
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

NO_REQUEST_ID = "no-request-id"


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request."""
    return request_id_var.get() or NO_REQUEST_ID


def set_request_id(request_id: str) -> Token:
    """Bind request_id to the current context.

    Returns:
        Token: Pass to request_id_var.reset() to restore the previous value
    """
    return request_id_var.set(request_id)
