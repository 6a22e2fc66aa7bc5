from .errors import (
    error_response,
    http_exception_handler,
    integrity_error_handler,
    server_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)

__all__ = [
    "error_response",
    "http_exception_handler",
    "integrity_error_handler",
    "server_error_handler",
    "unhandled_exception_handler",
    "validation_exception_handler",
]
