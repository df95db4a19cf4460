"""Start a transcoding run when a session goes live."""

from loguru import logger

from app.utils.app_errors import NoProfilesConfigured, RunInProgress

from ..ingest.ingest_models import SessionAuthorization
from ..ingest.stream_keys import ingest_info
from .scheduler import TranscodeScheduler


def make_on_live_handler(scheduler: TranscodeScheduler, default_only: bool = True):
    """Build the gatekeeper on-live callback that transcodes the RTMP publish URL."""

    async def on_live(auth: SessionAuthorization) -> None:
        source_url = ingest_info(auth.stream_key).publish_url
        try:
            handles = await scheduler.start_run(auth.session_id, source_url, default_only=default_only)
        except NoProfilesConfigured as e:
            logger.warning(f"Auto transcoding skipped for session {auth.session_id}: {e.errmesg}")
            return
        except RunInProgress as e:
            logger.info(f"Auto transcoding skipped for session {auth.session_id}: {e.errmesg}")
            return
        logger.info(f"Auto transcoding started for session {auth.session_id}: {len(handles)} jobs")

    return on_live
