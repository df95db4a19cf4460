import time
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.errors import app_error_handler
from app.api.hooks import ingest as ingest_hooks
from app.api.v1.routers import ingest, profiles, stream_status, transcoding
from app.app_config import get_app_environ_config
from app.schemas.init_schemas import init_schema
from app.services.live_services import build_mongo_live_services
from app.services.stores.profile_store import MongoProfileStore, seed_default_profiles
from app.shared.api import health
from app.shared.api.utils import api_failure, init_logger, validation_exception_handler
from app.shared.storage.redis import get_redis_manager
from app.utils.app_errors import AppError, AppErrorCode


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
                errcode=AppErrorCode.E_INTERNAL_ERROR.value,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


def include_routers(server: FastAPI) -> None:
    server.include_router(health.router)
    server.include_router(ingest_hooks.router)
    for module in (ingest, transcoding, profiles, stream_status):
        server.include_router(module.router, prefix="/api/v1")


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()
    app_config = get_app_environ_config()

    logger.info("Application startup...")

    server.state.redis_manager = get_redis_manager()

    # Initialize MongoDB schemas and Beanie ODM
    await init_schema()

    if app_config.SEED_DEFAULT_PROFILES:
        await seed_default_profiles(MongoProfileStore())

    server.state.live = build_mongo_live_services(app_config)
    logger.info(
        f"Ingest hooks ready, RTMP app '{app_config.RTMP_APP}' on {app_config.RTMP_HOST}:{app_config.RTMP_PORT}, "
        f"auto transcode={'on' if app_config.AUTO_TRANSCODE_ON_LIVE else 'off'}"
    )

    yield

    logger.info("Application shutdown...")

    await server.state.live.shutdown()
    await server.state.redis_manager.close_all()


def create_app(lifespan_handler=lifespan) -> FastAPI:
    app_config = get_app_environ_config()

    server = FastAPI(
        version="1.0",
        title="Live Video API",
        docs_url="/docs" if app_config.DEBUG else None,
        redoc_url=None,
        openapi_url="/openapi.json" if app_config.DEBUG else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan_handler,
    )

    server.add_middleware(HTTPLoggingMiddleware)
    server.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=app_config.API_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    server.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
    server.add_exception_handler(AppError, app_error_handler)  # type: ignore

    include_routers(server)
    return server


app = create_app()


def build_granian_kwargs():
    app_config = get_app_environ_config()
    kwargs = {
        "interface": "asgi",
        "address": app_config.API_HOST,
        "port": app_config.API_PORT,
        "workers": app_config.API_WORKERS,
        "reload": app_config.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("app.main:app", **granian_kwargs).serve()
