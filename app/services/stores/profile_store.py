"""Mongo-backed transcoding profile catalogue."""

from loguru import logger
from pymongo import DESCENDING

from app.domain.live.transcoding.transcoding_models import RenditionProfile
from app.domain.utils.timeutil import utc_now
from app.schemas import TranscodingProfile

# Default adaptive bitrate ladder
DEFAULT_PROFILES: list[RenditionProfile] = [
    RenditionProfile(name="1080p", width=1920, height=1080, video_bitrate_kbps=5000, audio_bitrate_kbps=192, is_default=True),
    RenditionProfile(name="720p", width=1280, height=720, video_bitrate_kbps=2800, audio_bitrate_kbps=128, is_default=True),
    RenditionProfile(name="480p", width=854, height=480, video_bitrate_kbps=1400, audio_bitrate_kbps=128, is_default=True),
    RenditionProfile(name="360p", width=640, height=360, video_bitrate_kbps=800, audio_bitrate_kbps=96, is_default=False),
]


def _to_profile(doc: TranscodingProfile) -> RenditionProfile:
    return RenditionProfile(
        name=doc.name,
        width=doc.width,
        height=doc.height,
        video_bitrate_kbps=doc.video_bitrate_kbps,
        audio_bitrate_kbps=doc.audio_bitrate_kbps,
        frame_rate=doc.frame_rate,
        preset=doc.preset,
        is_default=doc.is_default,
    )


class MongoProfileStore:
    async def list_profiles(self, default_only: bool = False) -> list[RenditionProfile]:
        query = (
            TranscodingProfile.find(TranscodingProfile.is_default == True)  # noqa: E712
            if default_only
            else TranscodingProfile.find()
        )
        docs = await query.sort([("height", DESCENDING), ("name", 1)]).to_list()  # type: ignore
        return [_to_profile(doc) for doc in docs]

    async def get_profile(self, name: str) -> RenditionProfile | None:
        doc = await TranscodingProfile.find_one(TranscodingProfile.name == name)
        return _to_profile(doc) if doc else None

    async def upsert_profile(self, profile: RenditionProfile) -> RenditionProfile:
        now = utc_now()
        doc = await TranscodingProfile.find_one(TranscodingProfile.name == profile.name)
        if doc is None:
            doc = TranscodingProfile(**profile.model_dump(), created_at=now, updated_at=now)
            await doc.insert()
        else:
            for field, value in profile.model_dump().items():
                setattr(doc, field, value)
            doc.updated_at = now
            await doc.save()
        return _to_profile(doc)

    async def delete_profile(self, name: str) -> bool:
        result = await TranscodingProfile.find_one(TranscodingProfile.name == name).delete()
        return result is not None and result.deleted_count > 0


async def seed_default_profiles(store: MongoProfileStore) -> int:
    """Insert the default ladder when the catalogue is empty. Returns how many were added."""
    if await TranscodingProfile.find().count() > 0:
        return 0
    for profile in DEFAULT_PROFILES:
        await store.upsert_profile(profile)
    logger.info(f"Seeded {len(DEFAULT_PROFILES)} default transcoding profiles")
    return len(DEFAULT_PROFILES)
