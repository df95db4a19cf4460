"""Tests for KeyValidator.validate and KeyValidator.check."""

from app.domain.live.ingest.ingest_models import LiveSession, StreamKeyRecord
from app.domain.live.ingest.key_validator import KeyValidator
from app.schemas import LiveStatus


class TestValidate:
    async def test_known_key_resolves_to_session(self, validator: KeyValidator):
        """Test a registered key returns the bound session's authorization."""
        auth = await validator.validate("abc123")

        assert auth is not None
        assert auth.session_id == "s1"
        assert auth.current_status == LiveStatus.DRAFT
        assert auth.owner_id == "u1"
        assert auth.stream_key == "abc123"

    async def test_unknown_key_returns_none(self, validator: KeyValidator):
        assert await validator.validate("nope") is None

    async def test_empty_key_returns_none(self, validator: KeyValidator):
        assert await validator.validate("") is None
        assert await validator.validate(None) is None

    async def test_disabled_key_returns_none(self, validator: KeyValidator, key_store):
        """Test a key with is_active=False never authorizes."""
        key_store.records["abc123"].is_active = False

        assert await validator.validate("abc123") is None

    async def test_missing_session_returns_none(self, validator: KeyValidator, key_store):
        key_store.records["orphan"] = StreamKeyRecord(key="orphan", session_id="gone", owner_id="u1")

        assert await validator.validate("orphan") is None

    async def test_status_not_permitted_returns_none(self, validator: KeyValidator, key_store, session_store):
        """Test a key limited to DRAFT/LIVE cannot authorize an ENDED session."""
        key_store.records["abc123"].permitted_statuses = [LiveStatus.DRAFT, LiveStatus.LIVE]
        session_store.sessions["s1"].status = LiveStatus.ENDED

        assert await validator.validate("abc123") is None

    async def test_storage_error_fails_closed(self, validator: KeyValidator, key_store):
        """Test a lookup failure is treated as not found instead of raising."""
        key_store.fail_lookups = True

        assert await validator.validate("abc123") is None

    async def test_validate_does_not_mutate_session(self, key_store, session_store):
        validator = KeyValidator(key_store, session_store)

        await validator.validate("abc123")

        assert session_store.status_updates == []
        assert session_store.sessions["s1"] == LiveSession(
            id="s1",
            stream_key="abc123",
            status=LiveStatus.DRAFT,
            owner_id="u1",
            created_at=session_store.sessions["s1"].created_at,
        )


class TestCheck:
    async def test_valid_key_has_no_reason(self, validator: KeyValidator):
        check = await validator.check("abc123")

        assert check.valid
        assert check.reason is None
        assert check.authorization.session_id == "s1"

    async def test_reasons(self, validator: KeyValidator, key_store, session_store):
        assert (await validator.check("")).reason == "stream key is required"
        assert (await validator.check("nope")).reason == "invalid stream key"

        key_store.records["abc123"].is_active = False
        check = await validator.check("abc123")
        assert not check.valid
        assert check.reason == "stream key is disabled"

    async def test_storage_failure_is_reported(self, validator: KeyValidator, key_store):
        key_store.fail_lookups = True

        check = await validator.check("abc123")

        assert not check.valid
        assert check.reason == "stream key lookup failed"
