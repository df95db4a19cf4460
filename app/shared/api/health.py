from fastapi import APIRouter, Request

from .utils import ApiSuccess

router = APIRouter()


@router.get("/health", response_model=ApiSuccess)
async def health(request: Request):
    live = getattr(request.app.state, "live", None)
    if live is None:
        return ApiSuccess(results={"status": "starting"})
    return ApiSuccess(results={"status": "OK", "active_jobs": live.scheduler.active_job_count()})
