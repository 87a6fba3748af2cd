"""FastAPI app entry."""

from __future__ import annotations

import threading

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from shortcodes.config.settings import settings
from shortcodes.core.engine import CodeAssigner
from shortcodes.core.errors import CapacityExhaustedError, InternalError, ShortCodesError
from shortcodes.core.models import (
    DecodeRequest,
    DecodeResponse,
    EncodeRequest,
    EncodeResponse,
    ErrorResponse,
    HealthResponse,
)
from shortcodes.init_config import ensure_storage_location
from shortcodes.observability.logging import log_event
from shortcodes.storage import create_store
from shortcodes.util.logger import logger


app = FastAPI(title=settings.app_name)
_assigner: CodeAssigner | None = None
_assigner_lock = threading.Lock()
_ENCODE_ERRORS = {400: {"model": ErrorResponse}, 507: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
_DECODE_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def get_assigner() -> CodeAssigner:
    """Process-wide engine over the configured store; tests override this dependency."""
    global _assigner
    if _assigner is None:
        with _assigner_lock:
            if _assigner is None:
                _assigner = CodeAssigner(create_store(), max_code_length=settings.max_code_length)
    return _assigner


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(ShortCodesError)
async def shortcodes_error_handler(request: Request, exc: ShortCodesError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("internal error path=%s error=%s", request.url.path, exc)
        return _error_response(500, "internal error")
    if isinstance(exc, CapacityExhaustedError):
        logger.warning("code space exhausted path=%s", request.url.path)
    return _error_response(exc.status_code, str(exc))


@app.middleware("http")
async def unhandled_error_middleware(request: Request, call_next):
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("gateway unhandled exception path=%s", request.url.path)
        return _error_response(500, "internal error")
    logger.debug("request done method=%s path=%s status=%s", request.method, request.url.path, response.status_code)
    return response


@app.post("/encode", response_model=EncodeResponse, responses=_ENCODE_ERRORS)
def encode_value(payload: EncodeRequest, assigner: CodeAssigner = Depends(get_assigner)) -> EncodeResponse:
    code = assigner.assign(payload.value)
    logger.debug("encode value_len=%d code=%s", len(payload.value), code)
    return EncodeResponse(code=code)


@app.post("/decode", response_model=DecodeResponse, responses=_DECODE_ERRORS)
def decode_code(payload: DecodeRequest, assigner: CodeAssigner = Depends(get_assigner)) -> DecodeResponse:
    value = assigner.resolve(payload.code)
    logger.debug("decode code=%s value_len=%d", payload.code, len(value))
    return DecodeResponse(value=value)


@app.get("/health", response_model=HealthResponse)
def health(assigner: CodeAssigner = Depends(get_assigner)) -> HealthResponse:
    logger.debug("health check")
    return HealthResponse(status="ok", mappings=assigner.store.count_mappings())


@app.on_event("startup")
async def startup_storage() -> None:
    try:
        ensure_storage_location()
        assigner = get_assigner()
    except Exception as exc:  # pragma: no cover
        logger.error("storage bootstrap on startup failed: %s", exc)
        raise
    log_event(
        "startup",
        app=settings.app_name,
        env=settings.env,
        backend=type(assigner.store).__name__,
        max_code_length=assigner.max_code_length,
    )


@app.on_event("shutdown")
async def shutdown_cleanup() -> None:
    global _assigner
    _assigner = None
    log_event("shutdown", app=settings.app_name)


def main() -> None:
    host, port = settings.bind_address()
    logger.info("listening host=%s port=%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
