"""Tests for JobRegistry."""

import threading

from app.domain.live.transcoding.job_registry import JobRegistry


class TestJobRegistry:
    def test_register_get_unregister(self):
        registry: JobRegistry[str] = JobRegistry()

        registry.register("j1", "handle-1")

        assert registry.get("j1") == "handle-1"
        assert registry.count() == 1
        assert "j1" in registry

        registry.unregister("j1")

        assert registry.get("j1") is None
        assert registry.count() == 0

    def test_unregister_absent_is_noop(self):
        registry: JobRegistry[str] = JobRegistry()

        registry.unregister("missing")

        assert registry.count() == 0

    def test_last_writer_wins(self):
        registry: JobRegistry[str] = JobRegistry()

        registry.register("j1", "old")
        registry.register("j1", "new")

        assert registry.get("j1") == "new"
        assert registry.count() == 1

    def test_pop_returns_handle_once(self):
        registry: JobRegistry[str] = JobRegistry()
        registry.register("j1", "h")

        assert registry.pop("j1") == "h"
        assert registry.pop("j1") is None

    def test_concurrent_registration(self):
        """Test registrations from many threads are all recorded."""
        registry: JobRegistry[int] = JobRegistry()

        def worker(offset: int):
            for i in range(100):
                registry.register(f"j{offset}-{i}", i)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.count() == 800
        assert len(registry.job_ids()) == 800
