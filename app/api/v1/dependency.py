from typing import Annotated

from fastapi import Depends, Request

from app.domain.live.transcoding.scheduler import TranscodeScheduler
from app.services.live_services import LiveServices


def get_live_services(request: Request) -> LiveServices:
    """Services built in the application lifespan."""
    return request.app.state.live


def get_scheduler(request: Request) -> TranscodeScheduler:
    return get_live_services(request).scheduler


Live = Annotated[LiveServices, Depends(get_live_services)]
Scheduler = Annotated[TranscodeScheduler, Depends(get_scheduler)]
