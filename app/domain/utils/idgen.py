import secrets

from ulid import ULID


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_session_id() -> str:
    return new_ulid("se_")


def new_job_id() -> str:
    return new_ulid("tj_")


def new_stream_key() -> str:
    # 16 random bytes rendered as 32 hex characters
    return secrets.token_hex(16)
