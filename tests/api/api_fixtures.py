"""Test application wired with in-memory stores."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from app.api.errors import app_error_handler
from app.app_config import get_app_environ_config
from app.main import include_routers
from app.services.live_services import LiveServices
from app.shared.api.utils import validation_exception_handler
from app.utils.app_errors import AppError


@asynccontextmanager
async def _shutdown_live(app: FastAPI):
    yield
    await app.state.live.shutdown()


def build_test_app(live: LiveServices) -> FastAPI:
    app = FastAPI(lifespan=_shutdown_live)
    app.state.live = live
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    include_routers(app)
    return app


def build_live_services(tmp_path, key_store, session_store, profile_store, job_store, fake_encoder, **overrides):
    app_config = get_app_environ_config().model_copy(
        update={"HLS_OUTPUT_DIR": str(tmp_path / "hls"), "HLS_BASE_URL": "http://cdn.test/hls", **overrides}
    )
    return LiveServices(
        app_config,
        keys=key_store,
        sessions=session_store,
        profiles=profile_store,
        jobs=job_store,
        encoder=fake_encoder,
        redis_label=None,
    )
