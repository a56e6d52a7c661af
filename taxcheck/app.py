from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from taxcheck.orchestrator import build_orchestrator
from taxcheck.rate_limit import RATE_LIMIT_MESSAGE, RequestRateTracker
from taxcheck.settings import describe_settings, load_settings
from taxcheck.uploads import MAX_FILE_SIZE, collect_document_uploads

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

SETTINGS = load_settings()


def _log_unhandled_loop_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    exc = context.get("exception")
    logger.error(
        "Unhandled error in background task: %s",
        context.get("message", "unknown error"),
        exc_info=exc,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    asyncio.get_running_loop().set_exception_handler(_log_unhandled_loop_error)
    logger.info("Configuration status: %s", describe_settings(SETTINGS))
    yield


app = FastAPI(title="Tax Filing Mistake Checker API", version=APP_VERSION, lifespan=lifespan)
app.state.orchestrator = build_orchestrator(SETTINGS)
app.state.rate_tracker = RequestRateTracker(
    window_seconds=SETTINGS.rate_limit_window_seconds,
    max_requests=SETTINGS.rate_limit_max_requests,
)


@app.middleware("http")
async def api_prefix_alias(request, call_next):
    """Accept both `/path` and `/api/path` for frontend compatibility."""
    if request.scope.get("path", "").startswith("/api/"):
        request.scope["path"] = request.scope["path"][4:]
    return await call_next(request)


@app.middleware("http")
async def rate_limit(request, call_next):
    client_key = request.client.host if request.client else "unknown"
    decision = request.app.state.rate_tracker.hit(client_key)
    if not decision.allowed:
        return JSONResponse(
            status_code=429,
            content={"error": RATE_LIMIT_MESSAGE, "retryAfter": decision.retry_after},
        )
    return await call_next(request)


@app.middleware("http")
async def supervise_requests(request, call_next):
    """Log every request and turn anything that escaped a handler into a generic 500."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled error while processing %s %s", request.method, request.url.path)
        response = JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})

    logger.info(
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_allowed_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.get("/")
@app.get("/health")
def health_check():
    return {
        "status": "ok",
        "message": "Tax Filing Mistake Checker API",
        "version": APP_VERSION,
        "endpoints": {"analyze": "POST /api/analyze"},
        "configuration": describe_settings(SETTINGS),
    }


async def _read_json_body(request: Request):
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        return None


async def _read_upload_capped(upload: UploadFile) -> bytes:
    """Read at most one byte past the size limit so oversized parts are detectable."""

    return await upload.read(MAX_FILE_SIZE + 1)


@app.post("/analyze")
async def analyze(request: Request):
    content_type = request.headers.get("content-type", "").lower()
    documents = []

    if content_type.startswith(FORM_CONTENT_TYPES):
        async with request.form() as form:
            body = {key: value for key, value in form.multi_items() if isinstance(value, str)}
            parts = [
                (key, value.filename or "", await _read_upload_capped(value), value.content_type)
                for key, value in form.multi_items()
                if isinstance(value, UploadFile)
            ]
        documents, upload_error = collect_document_uploads(parts)
        if upload_error:
            return JSONResponse(status_code=400, content={"error": upload_error})
    else:
        body = await _read_json_body(request)

    outcome = await request.app.state.orchestrator.run(body, documents)
    return JSONResponse(status_code=outcome.status_code, content=outcome.payload)


def _log_uncaught_exception(exc_type, exc_value, exc_traceback) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


def main() -> None:
    logging.basicConfig(
        level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.excepthook = _log_uncaught_exception
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
