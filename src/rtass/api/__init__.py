"""HTTP API for rubric scoring."""

from .app import create_app
from .exceptions import APIError, register_exception_handlers, to_api_error

__all__ = ["APIError", "create_app", "register_exception_handlers", "to_api_error"]
