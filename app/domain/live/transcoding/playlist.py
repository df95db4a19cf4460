"""HLS master playlist assembly."""

import os
import tempfile
from datetime import datetime, timezone

from .transcoding_models import TranscodeJob

MASTER_PLAYLIST_NAME = "master.m3u8"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _completed_sort_key(job: TranscodeJob) -> datetime:
    stamp = job.completed_at or job.created_at
    if stamp is None:
        return _EPOCH
    return stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)


def select_variants(jobs: list[TranscodeJob]) -> list[TranscodeJob]:
    """
    Pick one completed job per profile and order them for the master playlist.

    Duplicate completed jobs for the same profile (from repeated runs) collapse to
    the most recently completed one. Variants are ordered by bandwidth, highest
    first, then by profile name.
    """
    latest: dict[str, TranscodeJob] = {}
    for job in jobs:
        current = latest.get(job.profile_name)
        if current is None or _completed_sort_key(job) > _completed_sort_key(current):
            latest[job.profile_name] = job

    return sorted(latest.values(), key=lambda j: (-j.profile.bandwidth, j.profile_name))


def build_master_playlist(jobs: list[TranscodeJob]) -> str:
    """Render the master playlist text for a set of completed jobs."""
    lines = ["#EXTM3U", "#EXT-X-VERSION:3"]
    for job in select_variants(jobs):
        lines.append(
            f"#EXT-X-STREAM-INF:BANDWIDTH={job.profile.bandwidth},RESOLUTION={job.profile.resolution}"
        )
        lines.append(f"{job.profile_name}.m3u8")
    return "\n".join(lines) + "\n"


def write_atomic(path: str, content: str) -> None:
    """Write a file so readers never observe a partial playlist."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".master-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
