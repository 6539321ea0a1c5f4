"""Error handlers for API routes.

Provides a consistent ErrorResponse body across all endpoints and maps the
service exception hierarchy to HTTP status codes:

    PipelineBusyError      409
    PipelineRunError       502
    ModelTransportError    502
    ModelOutputError       502
    ProposalNotFoundError  404
    ProposalRejectedError  409
    validation errors      422
    anything else          500
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cement_ops.core.exceptions import (
    AdvisorError,
    ModelOutputError,
    ModelTransportError,
    PipelineBusyError,
    PipelineRunError,
    ProposalNotFoundError,
    ProposalRejectedError,
)
from cement_ops.core.logging import get_logger


logger = get_logger(__name__)


# Type alias for exception handler
ExceptionHandler = Callable[[Request, Exception], Awaitable[JSONResponse]]


# =============================================================================
# Error Response Model
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type/category
        detail: Human-readable error description
        code: Optional machine-readable error code
        path: Optional request path that caused the error
        stage: Pipeline stage that failed, if any
    """

    error: str = Field(
        ...,
        description="Error type or category",
    )
    detail: str = Field(
        ...,
        description="Human-readable error description",
    )
    code: str | None = Field(
        default=None,
        description="Machine-readable error code",
    )
    path: str | None = Field(
        default=None,
        description="Request path that caused the error",
    )
    stage: str | None = Field(
        default=None,
        description="Pipeline stage that failed",
    )


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    detail: str,
    code: str,
    stage: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            code=code,
            path=str(request.url.path),
            stage=stage,
        ).model_dump(exclude_none=True),
    )


# =============================================================================
# Exception Handlers
# =============================================================================

async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handle HTTPException with ErrorResponse schema."""
    error_type = {
        400: "BadRequest",
        404: "NotFound",
        409: "Conflict",
        422: "ValidationError",
        500: "InternalServerError",
        502: "BadGateway",
        503: "ServiceUnavailable",
    }.get(exc.status_code, "Error")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=error_type,
            detail=str(exc.detail),
            path=str(request.url.path),
        ).model_dump(exclude_none=True),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle request validation errors with per-field details."""
    field_errors = []
    for error in exc.errors():
        loc = ".".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        field_errors.append(f"{loc}: {msg}")

    detail = "; ".join(field_errors) if field_errors else "Validation error"
    return _error_response(request, 422, "ValidationError", detail, "VALIDATION_ERROR")


async def pipeline_busy_handler(
    request: Request,
    exc: PipelineBusyError,
) -> JSONResponse:
    return _error_response(request, 409, "Conflict", exc.message, "PIPELINE_BUSY")


async def pipeline_run_handler(
    request: Request,
    exc: PipelineRunError,
) -> JSONResponse:
    """Handle a pipeline run that ended on a transport failure."""
    logger.error(
        "Pipeline run failed",
        run_id=exc.run_id,
        stage=exc.stage,
        error=exc.message,
    )
    return _error_response(
        request,
        502,
        "PipelineRunError",
        f"Pipeline failed at stage '{exc.stage}': {exc.message}",
        "PIPELINE_RUN_ERROR",
        stage=exc.stage,
    )


async def model_transport_handler(
    request: Request,
    exc: ModelTransportError,
) -> JSONResponse:
    logger.error("Model call failed", status_code=exc.status_code, error=exc.message)
    return _error_response(request, 502, "ModelTransportError", exc.message, "MODEL_TRANSPORT_ERROR")


async def model_output_handler(
    request: Request,
    exc: ModelOutputError,
) -> JSONResponse:
    return _error_response(request, 502, "ModelOutputError", exc.message, "MODEL_OUTPUT_ERROR")


async def proposal_not_found_handler(
    request: Request,
    exc: ProposalNotFoundError,
) -> JSONResponse:
    return _error_response(request, 404, "NotFound", exc.message, "PROPOSAL_NOT_FOUND")


async def proposal_rejected_handler(
    request: Request,
    exc: ProposalRejectedError,
) -> JSONResponse:
    return _error_response(request, 409, "Conflict", exc.message, "PROPOSAL_REJECTED")


async def advisor_error_handler(
    request: Request,
    exc: AdvisorError,
) -> JSONResponse:
    """Handle service errors without a more specific mapping."""
    return _error_response(request, 400, "BadRequest", exc.message, "ADVISOR_ERROR", stage=exc.stage)


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(
        "Unhandled exception",
        path=str(request.url.path),
        error_type=type(exc).__name__,
    )
    return _error_response(
        request,
        500,
        "InternalServerError",
        "An unexpected error occurred",
        "INTERNAL_ERROR",
    )


# =============================================================================
# Registration Function
# =============================================================================

def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(
        HTTPException,
        http_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        PipelineBusyError,
        pipeline_busy_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        PipelineRunError,
        pipeline_run_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ModelTransportError,
        model_transport_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ModelOutputError,
        model_output_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ProposalNotFoundError,
        proposal_not_found_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ProposalRejectedError,
        proposal_rejected_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        AdvisorError,
        advisor_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        Exception,
        generic_exception_handler,
    )


__all__ = [
    "ErrorResponse",
    "register_error_handlers",
]
