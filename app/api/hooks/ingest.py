"""Publish hooks for RTMP servers with HTTP callbacks.

The media server posts the connection id and stream path at each hook point:
- POST /hooks/ingest/pre_publish: before the publish is accepted
- POST /hooks/ingest/publish_started: the publisher stream started
- POST /hooks/ingest/publish_ended: the publisher stream stopped

A 2xx answer lets the publish proceed; 403 tells the server to refuse or drop
the connection.
"""

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from app.domain.live.ingest.ingest_models import PublishDecision
from app.services.live_services import LiveServices
from app.shared.api.utils import ApiSuccess, api_failure, make_response
from app.utils.app_errors import AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/hooks/ingest", tags=["Ingest Hooks"])


class PublishHookIn(BaseModel):
    connection_id: str = Field(..., min_length=1)
    path: str = Field(..., description="Stream path, /<app>/<stream_key>")


class PublishHookSuccess(ApiSuccess):
    results: PublishDecision  # type: ignore[assignment]


def _respond(decision: PublishDecision) -> ORJSONResponse:
    if decision.accepted:
        return make_response(PublishHookSuccess(results=decision))

    failure = api_failure(AppErrorCode.E_INGEST_REJECTED.value, decision.reason or "publish rejected")
    return make_response(failure, status_code=HttpStatusCode.FORBIDDEN)


@router.post("/pre_publish")
async def pre_publish(body: PublishHookIn, request: Request) -> ORJSONResponse:
    live: LiveServices = request.app.state.live
    logger.info(f"📨 pre_publish connection={body.connection_id} path={body.path}")
    return _respond(await live.gatekeeper.on_pre_publish(body.connection_id, body.path))


@router.post("/publish_started")
async def publish_started(body: PublishHookIn, request: Request) -> ORJSONResponse:
    live: LiveServices = request.app.state.live
    logger.info(f"📨 publish_started connection={body.connection_id} path={body.path}")
    return _respond(await live.gatekeeper.on_publish_started(body.connection_id, body.path))


@router.post("/publish_ended")
async def publish_ended(body: PublishHookIn, request: Request) -> ORJSONResponse:
    live: LiveServices = request.app.state.live
    logger.info(f"📨 publish_ended connection={body.connection_id} path={body.path}")
    return _respond(await live.gatekeeper.on_publish_ended(body.connection_id, body.path))
