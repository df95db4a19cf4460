from pydantic import BaseModel

from app.shared.config import config


def _flag(key: str, default: str) -> bool:
    return (config.get(key) or default).strip().lower() == "true"


class AppEnvironConfig(BaseModel):
    DEBUG: bool = _flag("DEBUG", "false")

    API_HOST: str = (config.get("API_HOST") or "0.0.0.0").strip()
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 8000)
    API_WORKERS: int = int((config.get("API_WORKERS") or "").strip() or 1)
    API_CORS_ORIGINS: list[str] = [
        x.strip() for x in (config.get("API_CORS_ORIGINS") or "*").split(",") if x.strip()
    ]

    # MongoDB
    MONGO_DB_NAME: str = (config.get("MONGO_DB_NAME") or "livevideo").strip()

    # RTMP ingest (the media server that calls the publish hooks)
    RTMP_HOST: str = (config.get("RTMP_HOST") or "localhost").strip()
    RTMP_PORT: int = int((config.get("RTMP_PORT") or "").strip() or 1935)
    RTMP_APP: str = (config.get("RTMP_APP") or "live").strip()
    # Ask the transport to drop a connection whose key fails re-validation at stream start
    INGEST_DISCONNECT_ON_REVALIDATION_FAILURE: bool = _flag(
        "INGEST_DISCONNECT_ON_REVALIDATION_FAILURE", "true"
    )

    # Transcoding
    FFMPEG_PATH: str = (config.get("FFMPEG_PATH") or "/usr/bin/ffmpeg").strip()
    HLS_OUTPUT_DIR: str = (config.get("HLS_OUTPUT_DIR") or "./media/hls").strip()
    HLS_BASE_URL: str = (config.get("HLS_BASE_URL") or "http://localhost:8000/hls").strip().rstrip("/")
    HLS_SEGMENT_SECONDS: int = int((config.get("HLS_SEGMENT_SECONDS") or "").strip() or 4)
    HLS_LIST_SIZE: int = int((config.get("HLS_LIST_SIZE") or "").strip() or 10)
    HLS_FLAGS: str = (config.get("HLS_FLAGS") or "delete_segments+append_list").strip()
    TRANSCODE_DEFAULT_ONLY: bool = _flag("TRANSCODE_DEFAULT_ONLY", "true")
    AUTO_TRANSCODE_ON_LIVE: bool = _flag("AUTO_TRANSCODE_ON_LIVE", "false")
    TRANSCODE_SINGLE_RUN_PER_SESSION: bool = _flag("TRANSCODE_SINGLE_RUN_PER_SESSION", "false")
    SEED_DEFAULT_PROFILES: bool = _flag("SEED_DEFAULT_PROFILES", "true")

    # Status fan-out
    STATUS_CHANNEL: str = (config.get("STATUS_CHANNEL") or "livevideo:stream_status").strip()


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
