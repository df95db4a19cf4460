"""Registry of running encode processes, keyed by job id."""

import threading
from typing import Generic, TypeVar

from loguru import logger

H = TypeVar("H")


class JobRegistry(Generic[H]):
    """
    Lock-guarded map of job id -> live encode handle.

    Features:
    - Holds a handle only while its job is non-terminal
    - Last writer wins on register
    - No admission limit
    """

    def __init__(self):
        self._handles: dict[str, H] = {}
        self._lock = threading.Lock()

    def register(self, job_id: str, handle: H) -> None:
        with self._lock:
            if job_id in self._handles:
                logger.warning(f"Replacing registered handle for job {job_id}")
            self._handles[job_id] = handle

    def unregister(self, job_id: str) -> None:
        with self._lock:
            self._handles.pop(job_id, None)

    def get(self, job_id: str) -> H | None:
        with self._lock:
            return self._handles.get(job_id)

    def pop(self, job_id: str) -> H | None:
        with self._lock:
            return self._handles.pop(job_id, None)

    def count(self) -> int:
        with self._lock:
            return len(self._handles)

    def job_ids(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._handles
