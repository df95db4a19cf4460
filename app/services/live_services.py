"""Wiring of the live ingest and transcoding services for the API process."""

from loguru import logger

from app.app_config import AppEnvironConfig
from app.domain.live.ingest.gatekeeper import IngestTransport, SessionGatekeeper
from app.domain.live.ingest.key_validator import KeyValidator
from app.domain.live.stores import LiveSessionStore, ProfileStore, StreamKeyStore, TranscodeJobStore
from app.domain.live.transcoding.auto_transcode import make_on_live_handler
from app.domain.live.transcoding.encoder import Encoder
from app.domain.live.transcoding.scheduler import TranscodeScheduler
from app.domain.notifications.fanout import FanoutGroup, LocalBroadcaster, RedisStatusPublisher
from app.shared.storage.redis import get_redis_manager


class LiveServices:
    """Holds the stores and services shared by the routers (kept on app.state.live)."""

    def __init__(
        self,
        app_config: AppEnvironConfig,
        keys: StreamKeyStore,
        sessions: LiveSessionStore,
        profiles: ProfileStore,
        jobs: TranscodeJobStore,
        encoder: Encoder | None = None,
        transport: IngestTransport | None = None,
        redis_label: str | None = "default",
    ):
        self.app_config = app_config
        self.keys = keys
        self.sessions = sessions
        self.profiles = profiles
        self.jobs = jobs

        self.broadcaster = LocalBroadcaster()
        self.fanout = FanoutGroup([self.broadcaster])
        if redis_label and get_redis_manager().is_configured(redis_label):
            self.fanout.add(RedisStatusPublisher(app_config.STATUS_CHANNEL, label=redis_label))
            logger.info(f"Stream status events published to Redis channel {app_config.STATUS_CHANNEL}")

        self.scheduler = TranscodeScheduler.from_config(app_config, profiles, jobs, encoder)

        on_live = None
        if app_config.AUTO_TRANSCODE_ON_LIVE:
            on_live = make_on_live_handler(self.scheduler, default_only=app_config.TRANSCODE_DEFAULT_ONLY)

        self.validator = KeyValidator(keys, sessions)
        self.gatekeeper = SessionGatekeeper(
            self.validator,
            sessions,
            self.fanout,
            transport=transport,
            on_live=on_live,
            disconnect_on_revalidation_failure=app_config.INGEST_DISCONNECT_ON_REVALIDATION_FAILURE,
        )

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()


def build_mongo_live_services(app_config: AppEnvironConfig) -> LiveServices:
    """Services backed by the Beanie stores. Beanie must be initialized first."""
    from app.services.stores.live_session_store import MongoLiveSessionStore
    from app.services.stores.profile_store import MongoProfileStore
    from app.services.stores.stream_key_store import MongoStreamKeyStore
    from app.services.stores.transcode_job_store import MongoTranscodeJobStore

    return LiveServices(
        app_config,
        keys=MongoStreamKeyStore(),
        sessions=MongoLiveSessionStore(),
        profiles=MongoProfileStore(),
        jobs=MongoTranscodeJobStore(),
    )
