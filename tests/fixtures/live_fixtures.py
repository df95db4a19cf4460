"""Live ingest and transcoding fixtures built on the in-memory stores."""

from datetime import datetime, timezone

import pytest

from app.domain.live.ingest.gatekeeper import SessionGatekeeper
from app.domain.live.ingest.ingest_models import LiveSession, StreamKeyRecord
from app.domain.live.ingest.key_validator import KeyValidator
from app.domain.live.transcoding.scheduler import TranscodeScheduler
from app.domain.live.transcoding.transcoding_models import RenditionProfile
from app.domain.notifications.fanout import LocalBroadcaster
from app.schemas import LiveStatus

from .fake_encoder import FakeEncoder
from .memory_stores import (
    MemoryLiveSessionStore,
    MemoryProfileStore,
    MemoryStreamKeyStore,
    MemoryTranscodeJobStore,
)

CREATED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_profile(name: str, width: int, height: int, kbps: int, is_default: bool = True) -> RenditionProfile:
    return RenditionProfile(
        name=name,
        width=width,
        height=height,
        video_bitrate_kbps=kbps,
        is_default=is_default,
    )


@pytest.fixture
def profile_ladder() -> list[RenditionProfile]:
    return [
        make_profile("720p", 1280, 720, 2800),
        make_profile("480p", 854, 480, 1400),
        make_profile("360p", 640, 360, 800, is_default=False),
    ]


@pytest.fixture
def key_store() -> MemoryStreamKeyStore:
    """Key `abc123` bound to session `s1` (DRAFT)."""
    return MemoryStreamKeyStore(
        [StreamKeyRecord(key="abc123", session_id="s1", owner_id="u1", created_at=CREATED_AT)]
    )


@pytest.fixture
def session_store() -> MemoryLiveSessionStore:
    return MemoryLiveSessionStore(
        [LiveSession(id="s1", stream_key="abc123", status=LiveStatus.DRAFT, owner_id="u1", created_at=CREATED_AT)]
    )


@pytest.fixture
def profile_store(profile_ladder: list[RenditionProfile]) -> MemoryProfileStore:
    return MemoryProfileStore(profile_ladder)


@pytest.fixture
def job_store() -> MemoryTranscodeJobStore:
    return MemoryTranscodeJobStore()


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def broadcaster() -> LocalBroadcaster:
    return LocalBroadcaster()


@pytest.fixture
def validator(key_store: MemoryStreamKeyStore, session_store: MemoryLiveSessionStore) -> KeyValidator:
    return KeyValidator(key_store, session_store)


@pytest.fixture
def gatekeeper(
    validator: KeyValidator,
    session_store: MemoryLiveSessionStore,
    broadcaster: LocalBroadcaster,
) -> SessionGatekeeper:
    return SessionGatekeeper(validator, session_store, broadcaster)


@pytest.fixture
async def scheduler(
    profile_store: MemoryProfileStore,
    job_store: MemoryTranscodeJobStore,
    fake_encoder: FakeEncoder,
    tmp_path,
):
    scheduler = TranscodeScheduler(
        profile_store,
        job_store,
        fake_encoder,
        output_dir=str(tmp_path / "hls"),
        base_url="http://cdn.test/hls/",
    )
    yield scheduler
    await scheduler.shutdown(timeout=2)
