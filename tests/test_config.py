"""Tests for Settings configuration model."""

from pathlib import Path

from zaptasks.config import Settings


class TestHealthUrl:
    def test_joins_base_and_path(self):
        s = Settings(backend_base_url="http://localhost:7575", health_path="/health")
        assert s.health_url() == "http://localhost:7575/health"

    def test_strips_trailing_slash(self):
        s = Settings(backend_base_url="http://localhost:7575/", health_path="/health")
        assert s.health_url() == "http://localhost:7575/health"

    def test_adds_leading_slash(self):
        s = Settings(backend_base_url="http://shell:8000", health_path="ping")
        assert s.health_url() == "http://shell:8000/ping"

    def test_none_for_local_backend(self):
        assert Settings(execution_backend="local").health_url() is None


class TestGetExtraPath:
    def test_parses_colon_separated(self):
        s = Settings(extra_path="/opt/bin:/usr/local/bin")
        assert s.get_extra_path() == ["/opt/bin", "/usr/local/bin"]

    def test_skips_empty_entries(self):
        s = Settings(extra_path=" /opt/bin ::")
        assert s.get_extra_path() == ["/opt/bin"]

    def test_empty_string_returns_empty_list(self):
        assert Settings(extra_path="").get_extra_path() == []


class TestDefaults:
    def test_default_backend(self):
        s = Settings()
        assert s.execution_backend == "remote"
        assert s.backend_base_url == "http://localhost:7575"

    def test_default_database_path(self):
        assert Settings().database_path == Path("data/zaptasks.db")

    def test_default_tick_interval(self):
        assert Settings().tick_interval_seconds == 60.0

    def test_default_preview_length(self):
        assert Settings().notification_preview_length == 100

    def test_default_timezone_is_system(self):
        assert Settings().scheduler_timezone == ""

    def test_env_ignored_under_pytest(self, monkeypatch):
        monkeypatch.setenv("EXECUTION_BACKEND", "local")
        assert Settings().execution_backend == "remote"
