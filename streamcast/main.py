import time
import traceback
import uuid
from contextlib import asynccontextmanager
from os import environ
from pathlib import Path

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from streamcast.api.errors import app_error_handler
from streamcast.api.routers import auth as auth_router
from streamcast.api.routers import stream as stream_router
from streamcast.app_config import get_app_environ_config
from streamcast.domain.live.stream import EncoderProcessManager, SessionRegistry, StreamService
from streamcast.services.integrations.google_oauth import GoogleOAuthService
from streamcast.services.integrations.youtube_service import YouTubeLiveService
from streamcast.shared.api import health
from streamcast.shared.api.utils import api_failure, init_logger, log_routes, validation_exception_handler
from streamcast.utils.app_errors import AppError, AppErrorCode


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=AppErrorCode.E_INTERNAL_ERROR,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")
    cfg = get_app_environ_config()

    upload_dir = Path(cfg.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)

    platform = YouTubeLiveService()
    registry = SessionRegistry()
    server.state.platform = platform
    server.state.oauth_service = GoogleOAuthService()
    server.state.stream_service = StreamService(
        platform=platform,
        registry=registry,
        encoder=EncoderProcessManager(registry),
        upload_dir=upload_dir,
    )

    if cfg.LOGFIRE_ENABLE:
        logger.info("Logfire initializing")

        logfire.configure(
            token=cfg.LOGFIRE_TOKEN,
            service_name="streamcast",
            service_version=environ.get("BUILD_COMMIT") or "dev",
        )

        logger.info("Logfire instrument fastapi")
        logfire.instrument_fastapi(server, capture_headers=False)

        logger.info("Logfire instrument httpx")
        logfire.instrument_httpx()

        logger.info("Logfire instrument pydantic")
        logfire.instrument_pydantic()

    log_routes(server)

    yield

    logger.info("Application shutdown...")

    await server.state.stream_service.shutdown()


app = FastAPI(
    version="1.0",
    title="Streamcast API",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(HTTPLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,  # type: ignore
    allow_origins=[get_app_environ_config().FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
app.add_exception_handler(AppError, app_error_handler)  # type: ignore

app.include_router(health.router)
app.include_router(auth_router.router)
app.include_router(stream_router.router)


def build_granian_kwargs():
    cfg = get_app_environ_config()
    kwargs = {
        "interface": "asgi",
        "address": cfg.API_HOST,
        "port": cfg.API_PORT,
        "workers": cfg.API_WORKERS,
        "reload": cfg.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("streamcast.main:app", **granian_kwargs).serve()
