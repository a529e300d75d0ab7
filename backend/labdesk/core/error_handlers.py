"""Maps domain errors onto JSON error responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .exceptions import (
    FieldError,
    LabDeskError,
    NotFoundError,
    PipelineError,
    PreconditionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "validation_error", "detail": exc.message})


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found", "detail": exc.message})


async def precondition_handler(request: Request, exc: PreconditionError) -> JSONResponse:
    logger.info("Precondition failed: %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=409, content={"error": "precondition_failed", "detail": exc.message})


async def field_error_handler(request: Request, exc: FieldError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "field_error", "detail": exc.message, "fields": [exc.to_dict()]})


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": exc.kind.value,
            "detail": exc.message,
            "fields": [e.to_dict() for e in exc.details],
        },
    )


async def labdesk_error_handler(request: Request, exc: LabDeskError) -> JSONResponse:
    logger.warning("Unhandled domain error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=400, content={"error": "error", "detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(PreconditionError, precondition_handler)
    app.add_exception_handler(FieldError, field_error_handler)
    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(LabDeskError, labdesk_error_handler)
