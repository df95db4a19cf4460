"""Transcoding job scheduler.

A run creates one job per rendition profile and launches one concurrent encode
per job. Each job task drives its own status:

    PENDING -> PROCESSING -> COMPLETED | FAILED

Running encode handles live in a JobRegistry only while their job is
non-terminal. Completed renditions are assembled into the session's master
playlist after every completion.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger

from app.app_config import AppEnvironConfig
from app.domain.utils.idgen import new_job_id
from app.domain.utils.timeutil import utc_now
from app.schemas import JobStatus
from app.utils.app_errors import (
    AppError,
    AppErrorCode,
    HttpStatusCode,
    JobNotFound,
    NoCompletedRenditions,
    NoProfilesConfigured,
    RunInProgress,
)

from ..stores import ProfileStore, TranscodeJobStore
from .encoder import EncodeEventKind, EncodeHandle, EncodeOptions, Encoder, FfmpegEncoder
from .job_registry import JobRegistry
from .job_state_machine import JobStateMachine
from .playlist import MASTER_PLAYLIST_NAME, build_master_playlist, write_atomic
from .transcoding_models import JobHandle, JobStatusView, RenditionProfile, TranscodeJob, TranscodingStatus

PROGRESS_STEP = 10


class TranscodeScheduler:
    """Starts, tracks and stops rendition encodes for live sessions."""

    def __init__(
        self,
        profiles: ProfileStore,
        jobs: TranscodeJobStore,
        encoder: Encoder,
        *,
        output_dir: str,
        base_url: str,
        segment_seconds: int = 4,
        list_size: int = 10,
        hls_flags: str = "delete_segments+append_list",
        single_run_per_session: bool = False,
    ):
        self.profiles = profiles
        self.jobs = jobs
        self.encoder = encoder
        self.output_dir = output_dir
        self.base_url = base_url.rstrip("/")
        self.segment_seconds = segment_seconds
        self.list_size = list_size
        self.hls_flags = hls_flags
        self.single_run_per_session = single_run_per_session

        self.registry: JobRegistry[EncodeHandle] = JobRegistry()
        self._tasks: dict[str, asyncio.Task] = {}
        self._task_sessions: dict[str, str] = {}
        self._pending_stops: set[str] = set()
        # session_id -> (lock, holders and waiters)
        self._playlist_locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @classmethod
    def from_config(
        cls,
        app_config: AppEnvironConfig,
        profiles: ProfileStore,
        jobs: TranscodeJobStore,
        encoder: Encoder | None = None,
    ) -> "TranscodeScheduler":
        return cls(
            profiles,
            jobs,
            encoder or FfmpegEncoder(app_config.FFMPEG_PATH),
            output_dir=app_config.HLS_OUTPUT_DIR,
            base_url=app_config.HLS_BASE_URL,
            segment_seconds=app_config.HLS_SEGMENT_SECONDS,
            list_size=app_config.HLS_LIST_SIZE,
            hls_flags=app_config.HLS_FLAGS,
            single_run_per_session=app_config.TRANSCODE_SINGLE_RUN_PER_SESSION,
        )

    # ---------------------------------------------------------------------
    # Paths

    def session_dir(self, session_id: str) -> str:
        return os.path.join(self.output_dir, session_id)

    def public_url(self, session_id: str, filename: str) -> str:
        return f"{self.base_url}/{session_id}/{filename}"

    # ---------------------------------------------------------------------
    # Runs

    async def start_run(
        self,
        session_id: str,
        source_url: str,
        default_only: bool = True,
        duration_seconds: float | None = None,
    ) -> list[JobHandle]:
        """
        Create one PENDING job per selected profile and dispatch its encode.

        Returns immediately; encodes run as background tasks.

        Args:
            session_id: Session whose source is transcoded
            source_url: Input URL handed to the encoder (e.g. the RTMP publish URL)
            default_only: Only use profiles flagged as default
            duration_seconds: Source duration, when known, for progress percentages

        Returns:
            One JobHandle per created job, highest resolution first

        Raises:
            NoProfilesConfigured: If the profile selection is empty
            RunInProgress: If single-run guarding is enabled and a run is active
        """
        self._check_run_guard(session_id)

        profiles = await self.profiles.list_profiles(default_only=default_only)
        if not profiles:
            raise NoProfilesConfigured(
                "No default transcoding profiles configured"
                if default_only
                else "No transcoding profiles configured"
            )

        handles: list[JobHandle] = []
        for profile in profiles:
            try:
                job = await self._create_job(session_id, source_url, profile)
            except Exception:
                logger.exception(f"Failed to create {profile.name} job for session {session_id}, skipping")
                continue

            self._dispatch(job, duration_seconds)
            handles.append(JobHandle(job_id=job.id, profile_name=profile.name))

        logger.info(
            f"🎬 Transcoding run started for session {session_id}: "
            f"{[h.profile_name for h in handles]}"
        )
        return handles

    async def start_profile_job(
        self,
        session_id: str,
        source_url: str,
        profile_name: str,
        duration_seconds: float | None = None,
    ) -> JobHandle:
        """Create and dispatch a single job for one named profile."""
        self._check_run_guard(session_id)

        profile = await self.profiles.get_profile(profile_name)
        if profile is None:
            raise AppError(
                errcode=AppErrorCode.E_PROFILE_NOT_FOUND,
                errmesg=f"Transcoding profile not found: {profile_name}",
                status_code=HttpStatusCode.NOT_FOUND,
            )

        job = await self._create_job(session_id, source_url, profile)
        self._dispatch(job, duration_seconds)
        logger.info(f"🎬 Single {profile_name} job {job.id} started for session {session_id}")
        return JobHandle(job_id=job.id, profile_name=profile_name)

    def _check_run_guard(self, session_id: str) -> None:
        if not self.single_run_per_session:
            return
        for job_id, task in self._tasks.items():
            if self._task_sessions.get(job_id) == session_id and not task.done():
                raise RunInProgress(session_id)

    async def _create_job(self, session_id: str, source_url: str, profile: RenditionProfile) -> TranscodeJob:
        job = TranscodeJob(
            id=new_job_id(),
            session_id=session_id,
            profile_name=profile.name,
            profile=profile,
            input_url=source_url,
            output_playlist_path=os.path.join(self.session_dir(session_id), f"{profile.name}.m3u8"),
            created_at=utc_now(),
        )
        return await self.jobs.create(job)

    def _dispatch(self, job: TranscodeJob, duration_seconds: float | None) -> None:
        task = asyncio.create_task(self._run_job(job, duration_seconds), name=f"transcode-{job.id}")
        self._tasks[job.id] = task
        self._task_sessions[job.id] = job.session_id
        task.add_done_callback(lambda _t, job_id=job.id: self._forget_task(job_id))

    def _forget_task(self, job_id: str) -> None:
        self._tasks.pop(job_id, None)
        self._task_sessions.pop(job_id, None)
        self._pending_stops.discard(job_id)

    def build_encode_options(self, job: TranscodeJob) -> EncodeOptions:
        profile = job.profile
        return EncodeOptions(
            input_url=job.input_url,
            output_dir=self.session_dir(job.session_id),
            output_name=profile.name,
            width=profile.width,
            height=profile.height,
            video_bitrate_kbps=profile.video_bitrate_kbps,
            audio_bitrate_kbps=profile.audio_bitrate_kbps,
            frame_rate=profile.frame_rate,
            preset=profile.preset,
            segment_seconds=self.segment_seconds,
            list_size=self.list_size,
            hls_flags=self.hls_flags,
        )

    # ---------------------------------------------------------------------
    # Job task

    async def _run_job(self, job: TranscodeJob, duration_seconds: float | None = None) -> None:
        """Drive one job from PENDING to a terminal status."""
        options = self.build_encode_options(job)

        await self._transition(
            job,
            JobStatus.PROCESSING,
            started_at=utc_now(),
            output_playlist_path=options.playlist_path,
        )

        try:
            handle = await self.encoder.start(options, duration_seconds)
        except Exception as exc:
            logger.exception(f"Failed to start encoder for job {job.id}")
            await self._mark_failed(job, f"failed to start encoder: {exc}")
            return

        self.registry.register(job.id, handle)
        if job.id in self._pending_stops:
            self._pending_stops.discard(job.id)
            self.stop_job(job.id)
        try:
            async for event in handle.events():
                if event.kind == EncodeEventKind.PROGRESS and event.percent is not None:
                    await self._record_progress(job, event.percent)
                elif event.kind == EncodeEventKind.FAILED:
                    self.registry.unregister(job.id)
                    await self._mark_failed(job, event.error or "encode failed")
                    return
                elif event.kind == EncodeEventKind.COMPLETED:
                    self.registry.unregister(job.id)
                    await self._mark_completed(job)
                    await self._regenerate_playlist(job.session_id)
                    return
        except asyncio.CancelledError:
            handle.kill()
            raise
        finally:
            self.registry.unregister(job.id)

        # Event channel closed without a final event
        await self._mark_failed(job, "encoder exited without a result")

    async def _record_progress(self, job: TranscodeJob, percent: int) -> None:
        if job.status != JobStatus.PROCESSING:
            return
        bucket = min(percent, 100) // PROGRESS_STEP * PROGRESS_STEP
        # 100 is only written together with COMPLETED
        if bucket <= job.progress or bucket >= 100:
            return
        job.progress = bucket
        logger.debug(f"Job {job.id} ({job.profile_name}) progress {bucket}%")
        await self._persist(job, {"progress": bucket})

    async def _mark_failed(self, job: TranscodeJob, error: str) -> None:
        changed = await self._transition(
            job,
            JobStatus.FAILED,
            error_message=error,
            progress=0,
            completed_at=utc_now(),
        )
        if changed:
            logger.error(f"❌ Job {job.id} ({job.profile_name}) failed: {error}")

    async def _mark_completed(self, job: TranscodeJob) -> None:
        changed = await self._transition(
            job,
            JobStatus.COMPLETED,
            progress=100,
            completed_at=utc_now(),
            output_url=self.public_url(job.session_id, f"{job.profile_name}.m3u8"),
        )
        if changed:
            logger.info(f"✅ Job {job.id} ({job.profile_name}) completed")

    async def _transition(self, job: TranscodeJob, new_status: JobStatus, **fields: Any) -> bool:
        if not JobStateMachine.can_transition(job.status, new_status):
            logger.warning(f"Invalid job transition for {job.id}: {job.status} -> {new_status}, skipping")
            return False

        previous = job.status
        job.status = new_status
        for name, value in fields.items():
            setattr(job, name, value)

        await self._persist(job, {"status": new_status, **fields})
        logger.info(f"Job {job.id} ({job.profile_name}) status: {previous} -> {new_status}")
        return True

    async def _persist(self, job: TranscodeJob, fields: dict[str, Any]) -> None:
        try:
            await self.jobs.update(job.id, fields)
        except Exception:
            logger.exception(f"Failed to persist job {job.id} fields {sorted(fields)}")

    async def _regenerate_playlist(self, session_id: str) -> None:
        try:
            await self.generate_master_playlist(session_id)
        except Exception:
            logger.exception(f"Failed to regenerate master playlist for session {session_id}")

    # ---------------------------------------------------------------------
    # Control and queries

    def stop_job(self, job_id: str) -> bool:
        """
        Kill a running encode.

        A job whose task is dispatched but whose encoder has not started yet is
        killed as soon as its handle registers.

        Returns:
            True if the encode was killed or marked for stopping, False if the
            job has no running task. The job reaches FAILED through its own task.
        """
        handle = self.registry.pop(job_id)
        if handle is None:
            task = self._tasks.get(job_id)
            if task is not None and not task.done():
                self._pending_stops.add(job_id)
                logger.info(f"⏹️ Job {job_id} will stop once its encoder starts")
                return True
            logger.info(f"No running encode for job {job_id}")
            return False

        handle.kill()
        logger.info(f"⏹️ Stopped job {job_id}")
        return True

    @asynccontextmanager
    async def _playlist_lock(self, session_id: str):
        """Serialize playlist writes per session; the lock is dropped once nobody holds or awaits it."""
        lock, users = self._playlist_locks.get(session_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._playlist_locks[session_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._playlist_locks[session_id]
            if users <= 1:
                del self._playlist_locks[session_id]
            else:
                self._playlist_locks[session_id] = (lock, users - 1)

    async def generate_master_playlist(self, session_id: str) -> str:
        """
        Write the session's master playlist from its completed renditions.

        Returns:
            Public URL of the master playlist

        Raises:
            NoCompletedRenditions: If the session has no completed job
        """
        async with self._playlist_lock(session_id):
            completed = await self.jobs.list_by_session(session_id, status=JobStatus.COMPLETED)
            if not completed:
                raise NoCompletedRenditions(session_id)

            content = build_master_playlist(completed)
            path = os.path.join(self.session_dir(session_id), MASTER_PLAYLIST_NAME)
            await asyncio.to_thread(write_atomic, path, content)

        url = self.public_url(session_id, MASTER_PLAYLIST_NAME)
        logger.info(f"📜 Master playlist for session {session_id} written with {len(completed)} completed jobs: {url}")
        return url

    async def get_job(self, job_id: str) -> JobStatusView:
        job = await self.jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return JobStatusView.from_job(job)

    async def list_jobs(self, session_id: str) -> list[JobStatusView]:
        return [JobStatusView.from_job(job) for job in await self.jobs.list_by_session(session_id)]

    def active_job_count(self) -> int:
        return self.registry.count()

    def status(self) -> TranscodingStatus:
        return TranscodingStatus(active_jobs=self.active_job_count())

    async def wait_for_jobs(self, timeout: float | None = None) -> set[asyncio.Task]:
        """Wait for the current job tasks to finish. Returns the tasks still pending."""
        tasks = list(self._tasks.values())
        if not tasks:
            return set()
        _done, pending = await asyncio.wait(tasks, timeout=timeout)
        return pending

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Kill every running encode and wait for the job tasks to settle."""
        for job_id in self.registry.job_ids():
            self.stop_job(job_id)

        pending = await self.wait_for_jobs(timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Transcode scheduler shut down")
