from fastapi import APIRouter, Query

from app.api.v1.dependency import Live, Scheduler
from app.api.v1.schemas.base import ApiOut
from app.api.v1.schemas.transcoding import (
    JobOut,
    MasterPlaylistOut,
    StartProfileJobIn,
    StartRunIn,
    StopJobOut,
)
from app.domain.live.ingest.stream_keys import ingest_info
from app.domain.live.transcoding.transcoding_models import JobHandle, TranscodingStatus
from app.services.live_services import LiveServices
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/transcoding", tags=["Transcoding"])


async def _resolve_source_url(live: LiveServices, session_id: str, source_url: str | None) -> str:
    """Explicit source URL, or the RTMP publish URL of the session's stream key."""
    if source_url:
        return source_url

    session = await live.sessions.get(session_id)
    if session is None:
        raise AppError(
            errcode=AppErrorCode.E_SESSION_NOT_FOUND,
            errmesg=f"Live session not found: {session_id}",
            status_code=HttpStatusCode.NOT_FOUND,
        )
    return ingest_info(session.stream_key).publish_url  # type: ignore[return-value]


@router.post("/start_run")
async def start_run(body: StartRunIn, live: Live, scheduler: Scheduler) -> ApiOut[list[JobHandle]]:
    """Start one encode per configured profile for a session."""
    source_url = await _resolve_source_url(live, body.session_id, body.source_url)
    default_only = live.app_config.TRANSCODE_DEFAULT_ONLY if body.default_only is None else body.default_only

    handles = await scheduler.start_run(
        body.session_id,
        source_url,
        default_only=default_only,
        duration_seconds=body.duration_seconds,
    )
    return ApiOut[list[JobHandle]](results=handles)


@router.post("/start_profile_job")
async def start_profile_job(body: StartProfileJobIn, live: Live, scheduler: Scheduler) -> ApiOut[JobHandle]:
    """Start a single encode for one named profile."""
    source_url = await _resolve_source_url(live, body.session_id, body.source_url)
    handle = await scheduler.start_profile_job(
        body.session_id,
        source_url,
        body.profile_name,
        duration_seconds=body.duration_seconds,
    )
    return ApiOut[JobHandle](results=handle)


@router.get("/jobs")
async def list_jobs(
    scheduler: Scheduler,
    session_id: str = Query(..., description="Live session id"),
) -> ApiOut[list[JobOut]]:
    jobs = await scheduler.list_jobs(session_id)
    return ApiOut[list[JobOut]](results=[JobOut(**job.model_dump()) for job in jobs])


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, scheduler: Scheduler) -> ApiOut[JobOut]:
    job = await scheduler.get_job(job_id)
    return ApiOut[JobOut](results=JobOut(**job.model_dump()))


@router.post("/jobs/{job_id}/stop")
async def stop_job(job_id: str, scheduler: Scheduler) -> ApiOut[StopJobOut]:
    """Kill a running encode. `stopped` is false when the job has no live encode."""
    stopped = scheduler.stop_job(job_id)
    return ApiOut[StopJobOut](results=StopJobOut(job_id=job_id, stopped=stopped))


@router.post("/master_playlist/{session_id}")
async def generate_master_playlist(session_id: str, scheduler: Scheduler) -> ApiOut[MasterPlaylistOut]:
    url = await scheduler.generate_master_playlist(session_id)
    return ApiOut[MasterPlaylistOut](results=MasterPlaylistOut(session_id=session_id, url=url))


@router.get("/status")
async def transcoding_status(scheduler: Scheduler) -> ApiOut[TranscodingStatus]:
    return ApiOut[TranscodingStatus](results=scheduler.status())
