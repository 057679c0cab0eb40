import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.common import ErrorDetail, ErrorResponse
from services.result_engine.errors import ResultEngineError

logger = logging.getLogger(__name__)


def _now_iso():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    body = ErrorResponse(error=detail, latency_ms=0)
    content = body.model_dump(mode="json", exclude_none=True)
    content["generated_at"] = _now_iso()
    return JSONResponse(status_code=status_code, content=content)


def add_error_handlers(app: FastAPI):
    # ✅ engine errors: ValidationError → 400, EmptyInputError → 404
    @app.exception_handler(ResultEngineError)
    async def result_engine_exception_handler(request: Request, exc: ResultEngineError):
        logger.info(f"{request.method} {request.url.path} → {exc.code}: {exc.message}")
        return _error_response(exc.status_code, ErrorDetail(**exc.to_dict()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(
            exc.status_code,
            ErrorDetail(code=f"HTTP_{exc.status_code}", message=str(exc.detail)),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
        return _error_response(
            400,
            ErrorDetail(code="VALIDATION_ERROR", message=first.get("msg", "Invalid request"), field=field or None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(500, ErrorDetail(code="INTERNAL_ERROR", message=str(exc)))
