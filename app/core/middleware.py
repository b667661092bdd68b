# app/core/middleware.py
from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request, HTTPException
from starlette.responses import Response
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from colorlog import ColoredFormatter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
import time, json, logging

from app.core.config import settings


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# Formatter for console
console_formatter = ColoredFormatter(
    f"%(log_color)s{LOG_FORMAT}",
    log_colors={
        'DEBUG': 'cyan',
        'INFO': 'green',
        'WARNING': 'yellow',
        'ERROR': 'red',
        'CRITICAL': 'bold_red',
    },
)

# Formatter for file (no color)
file_formatter = logging.Formatter(LOG_FORMAT)


def configure_logging(level: int = logging.INFO) -> None:
    """Attach the colored console handler, and the file handler when LOG_FILE is set, to the `app` logger tree."""
    app_logger = logging.getLogger("app")
    if app_logger.handlers:
        return

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter)
    app_logger.addHandler(console_handler)

    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

    app_logger.setLevel(level)
    app_logger.propagate = False


logger = logging.getLogger("app.middleware")

RESET = "\033[0m"
STATUS_COLORS = {2: "\033[92m", 4: "\033[93m", 5: "\033[91m"}  # green, yellow, red


async def _failure_reason(response: Response) -> tuple[Response, str]:
    """Drain an error response to log its message, then hand back an equivalent response."""
    body = b""
    async for chunk in response.body_iterator:
        body += chunk
    replayed = Response(
        content=body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )
    try:
        content = json.loads(body.decode())
        reason = content.get("message") or content.get("detail", content)
    except (ValueError, AttributeError):
        reason = body.decode(errors="ignore")
    return replayed, str(reason)


def register_middleware(app: FastAPI):

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.error(f"HTTPException: {exc.detail} at {request.method} {request.url.path}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(IntegrityError)
    async def db_integrity_error_handler(request: Request, exc: IntegrityError):
        logger.exception(f"Database integrity error at {request.method} {request.url.path}")
        return JSONResponse(status_code=400, content={"detail": "Database error occurred"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception at {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start_time

        color = STATUS_COLORS.get(response.status_code // 100, RESET)
        client = f"{request.client.host}:{request.client.port}" if request.client else "-"
        log_msg = (
            f"{client} - {request.method} {request.url.path} - "
            f"Status: {color}{response.status_code}{RESET} - Time: {elapsed:.2f}s"
        )

        if response.status_code >= 400:
            response, reason = await _failure_reason(response)
            log_msg += f" - Reason: {reason}"

        logger.info(log_msg)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)
