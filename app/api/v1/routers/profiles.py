from fastapi import APIRouter, Query

from app.api.v1.dependency import Live
from app.api.v1.schemas.base import ApiOut, DeletedOut
from app.domain.live.transcoding.transcoding_models import RenditionProfile
from app.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/profiles", tags=["Transcoding"])


@router.get("/list_profiles")
async def list_profiles(
    live: Live,
    default_only: bool = Query(False, description="Only profiles used by default runs"),
) -> ApiOut[list[RenditionProfile]]:
    """List rendition profiles, highest resolution first."""
    profiles = await live.profiles.list_profiles(default_only=default_only)
    return ApiOut[list[RenditionProfile]](results=profiles)


@router.post("/upsert_profile")
async def upsert_profile(profile: RenditionProfile, live: Live) -> ApiOut[RenditionProfile]:
    """Create or replace a rendition profile by name."""
    result = await live.profiles.upsert_profile(profile)
    return ApiOut[RenditionProfile](results=result)


@router.delete("/{name}")
async def delete_profile(name: str, live: Live) -> ApiOut[DeletedOut]:
    """Delete a rendition profile. Jobs already created keep their profile snapshot."""
    if not await live.profiles.delete_profile(name):
        raise AppError(
            errcode=AppErrorCode.E_PROFILE_NOT_FOUND,
            errmesg=f"Transcoding profile not found: {name}",
            status_code=HttpStatusCode.NOT_FOUND,
        )
    return ApiOut[DeletedOut](results=DeletedOut())
