"""HTTP error mapping for the scoring API.

Domain errors are translated into ``APIError`` with a status code and a
machine-readable error code:

=============================  ======  =======================
``RubricValidationError``      400     ``validation_error``
``SectionNotFoundError``       404     ``section_not_found``
``JudgeConfigurationError``    500     ``configuration_error``
``SectionScoringError``        502     ``judge_error``
``ScorecardAssemblyError``     502     ``judge_error``
=============================  ======  =======================

Example:
    ```python
    from fastapi import FastAPI
    from rtass.api.exceptions import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
    ```
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from rtass.exceptions import (
    JudgeConfigurationError,
    RtassError,
    RubricValidationError,
    ScorecardAssemblyError,
    SectionNotFoundError,
    SectionScoringError,
    Violation,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, HTTPException, Request
    from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class APIError(RtassError):
    """An error with an HTTP status and a machine-readable code.

    Attributes:
        status_code: HTTP status code.
        error_code: Machine-readable error code.
        detail: Error details (alias for ``context``).
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        detail: dict[str, Any] | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message, context=detail)
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__

    @property
    def detail(self) -> dict[str, Any]:
        return self.context

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON response."""
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
            "detail": self.context,
            "timestamp": _timestamp(),
        }


class InvalidRequestError(APIError):
    """The request body could not be read as JSON."""

    def __init__(self, message: str):
        super().__init__(
            message,
            status_code=400,
            detail={"violations": [Violation("<root>", message).to_dict()]},
            error_code="validation_error",
        )


def to_api_error(exc: RtassError) -> APIError:
    """Translate a domain error into its HTTP form."""
    if isinstance(exc, APIError):
        return exc
    if isinstance(exc, RubricValidationError):
        return APIError(exc.message, 400, exc.context, "validation_error")
    if isinstance(exc, SectionNotFoundError):
        return APIError(exc.message, 404, exc.context, "section_not_found")
    if isinstance(exc, JudgeConfigurationError):
        return APIError(
            "Server configuration error. The judge is not properly configured.",
            500,
            {"message": exc.message},
            "configuration_error",
        )
    if isinstance(exc, (SectionScoringError, ScorecardAssemblyError)):
        return APIError(exc.message, 502, exc.context, "judge_error")

    error_type = exc.context.get("type")
    if error_type == "not_found":
        return APIError(exc.message, 404, exc.context, "not_found")
    if error_type == "invalid_file":
        return APIError(exc.message, 400, exc.context, "invalid_file")
    return APIError(exc.message, 500, exc.context, "internal_error")


async def rtass_error_handler(
    request: Request,  # type: ignore[name-defined]
    exc: RtassError,
) -> JSONResponse:  # type: ignore[name-defined]
    """Handle domain and API errors with the standard error body."""
    from fastapi.responses import JSONResponse

    api_error = to_api_error(exc)
    if api_error.status_code >= 500:
        logger.warning("Request %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=api_error.status_code, content=api_error.to_dict())


async def http_exception_handler(
    request: Request,  # type: ignore[name-defined]
    exc: HTTPException,  # type: ignore[name-defined]
) -> JSONResponse:  # type: ignore[name-defined]
    """Handle FastAPI HTTP exceptions."""
    from fastapi.responses import JSONResponse

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "http_error",
            "message": str(exc.detail),
            "detail": {},
            "timestamp": _timestamp(),
        },
    )


async def general_exception_handler(
    request: Request,  # type: ignore[name-defined]
    exc: Exception,
) -> JSONResponse:  # type: ignore[name-defined]
    """Handle unexpected exceptions.

    The full exception is logged; the response carries a generic message.
    """
    from fastapi.responses import JSONResponse

    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "detail": {"exception_type": type(exc).__name__},
            "timestamp": _timestamp(),
        },
    )


def register_exception_handlers(
    app: FastAPI,  # type: ignore[name-defined]
) -> None:
    """Register all exception handlers with a FastAPI app."""
    from fastapi import HTTPException

    app.add_exception_handler(RtassError, rtass_error_handler)  # type: ignore
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore
    app.add_exception_handler(Exception, general_exception_handler)
