"""Logging setup and X-Request-ID correlation for the document service."""

from .logging_config import CONTEXT_FIELDS, JSONFormatter, configure_logging, get_logger
from .middleware import REQUEST_ID_HEADER, RequestIDMiddleware
from .request_id import get_request_id, set_request_id

__all__ = [
    "CONTEXT_FIELDS",
    "JSONFormatter",
    "REQUEST_ID_HEADER",
    "RequestIDMiddleware",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
