from __future__ import annotations

import logging
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from voice_agent.api.errors import APIError
from voice_agent.orchestrator.service import OrchestratorError


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", None)
    response = JSONResponse(status_code=status_code, content={**content, "trace_id": trace_id})
    if trace_id:
        response.headers["X-Trace-Id"] = trace_id
    return response


def register_exception_handlers(app) -> None:
    logger = logging.getLogger(__name__)

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError):
        return _error_response(request, 422, {"error": "validation_error", "details": jsonable_encoder(exc.errors())})

    @app.exception_handler(OrchestratorError)
    async def handle_orchestrator(request: Request, exc: OrchestratorError):
        return _error_response(request, exc.status_code, {"error": exc.code, "message": str(exc)})

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError):
        return _error_response(request, exc.status_code, {"error": exc.code, "message": str(exc)})

    @app.exception_handler(Exception)
    async def handle_unknown(request: Request, exc: Exception):  # noqa: ARG001
        logger.exception(
            "Unhandled error",
            extra={"trace_id": getattr(request.state, "trace_id", None), "path": request.url.path},
        )
        return _error_response(request, 500, {"error": "internal_error"})
