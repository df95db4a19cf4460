"""Application error types shared by the domain and API layers."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_SESSION_NOT_FOUND = "E_SESSION_NOT_FOUND"
    E_STREAM_KEY_NOT_FOUND = "E_STREAM_KEY_NOT_FOUND"
    E_INVALID_STATE_TRANSITION = "E_INVALID_STATE_TRANSITION"
    E_PROFILE_NOT_FOUND = "E_PROFILE_NOT_FOUND"
    E_NO_PROFILES_CONFIGURED = "E_NO_PROFILES_CONFIGURED"
    E_NO_COMPLETED_RENDITIONS = "E_NO_COMPLETED_RENDITIONS"
    E_JOB_NOT_FOUND = "E_JOB_NOT_FOUND"
    E_RUN_IN_PROGRESS = "E_RUN_IN_PROGRESS"
    E_INGEST_REJECTED = "E_INGEST_REJECTED"

    def __str__(self) -> str:
        return self.value


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    INTERNAL_SERVER_ERROR = 500


class AppError(Exception):
    """Error carrying an API error code, a message and the HTTP status to answer with.

    The call site that raised the error is captured so handlers can log where
    the failure originated rather than where it was caught.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str = AppErrorCode.E_INTERNAL_ERROR,
        errmesg: str = "We are sorry, an error occurred.",
        status_code: int = HttpStatusCode.INTERNAL_SERVER_ERROR,
    ):
        super().__init__(errmesg)
        self.errcode = str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]
        self.caller_info = self._capture_caller()

    @staticmethod
    def _capture_caller() -> str:
        # Skip this helper, __init__ and any subclass __init__ frames
        for frame_info in inspect.stack()[2:]:
            if frame_info.function != "__init__":
                module = inspect.getmodule(frame_info.frame)
                module_name = module.__name__ if module else frame_info.filename
                return f"{module_name}:{frame_info.function}:{frame_info.lineno}"
        return "unknown"

    def __str__(self) -> str:
        return f"{self.errcode}: {self.errmesg}"


class NoProfilesConfigured(AppError):
    """Raised when a transcoding run selects an empty profile set."""

    def __init__(self, errmesg: str = "No transcoding profiles configured"):
        super().__init__(
            errcode=AppErrorCode.E_NO_PROFILES_CONFIGURED,
            errmesg=errmesg,
            status_code=HttpStatusCode.UNPROCESSABLE_ENTITY,
        )


class NoCompletedRenditions(AppError):
    """Raised when a master playlist is requested before any rendition completed."""

    def __init__(self, session_id: str):
        super().__init__(
            errcode=AppErrorCode.E_NO_COMPLETED_RENDITIONS,
            errmesg=f"No completed transcoding jobs found for session {session_id}",
            status_code=HttpStatusCode.NOT_FOUND,
        )


class JobNotFound(AppError):
    def __init__(self, job_id: str):
        super().__init__(
            errcode=AppErrorCode.E_JOB_NOT_FOUND,
            errmesg=f"Transcoding job not found: {job_id}",
            status_code=HttpStatusCode.NOT_FOUND,
        )


class RunInProgress(AppError):
    def __init__(self, session_id: str):
        super().__init__(
            errcode=AppErrorCode.E_RUN_IN_PROGRESS,
            errmesg=f"A transcoding run is already in progress for session {session_id}",
            status_code=HttpStatusCode.CONFLICT,
        )
