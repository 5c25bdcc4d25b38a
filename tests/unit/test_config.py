"""Tests for configuration module."""

import os

import pytest


def test_settings_defaults():
    """Settings have sensible defaults."""
    from troubleshooter.core.config import Settings

    # Create fresh settings (don't use global)
    s = Settings()

    assert s.graph_cache_ttl_seconds == 600
    assert s.graph_cache_max_size == 50
    assert s.cache_cleanup_interval_seconds == 0


def test_settings_from_env():
    """Settings can be overridden via environment variables."""
    os.environ["GRAPH_CACHE_TTL_SECONDS"] = "30"
    os.environ["PORT"] = "9000"

    try:
        from troubleshooter.core.config import Settings

        s = Settings()

        assert s.graph_cache_ttl_seconds == 30
        assert s.port == 9000
    finally:
        del os.environ["GRAPH_CACHE_TTL_SECONDS"]
        del os.environ["PORT"]


def test_settings_validation():
    """Settings validate constraints."""
    from troubleshooter.core.config import Settings
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        Settings(port=0)

    with pytest.raises(ValidationError):
        Settings(graph_cache_max_size=0)


def test_global_settings_available():
    """Global settings instance is importable."""
    from troubleshooter.core.config import settings

    assert settings is not None
    assert hasattr(settings, "database_path")


class TestTroubleshootConfig:
    def test_load_from_yaml(self, tmp_path):
        from troubleshooter.core.config import load_troubleshoot_config

        path = tmp_path / "troubleshoot_config.yaml"
        path.write_text(
            "sessions:\n"
            "  abandon_after_minutes: 15\n"
            "  reject_abandoned_answers: true\n"
            "graph:\n"
            "  start_suffix: _entry\n"
        )

        config = load_troubleshoot_config(path)

        assert config.sessions.abandon_after_minutes == 15
        assert config.sessions.reject_abandoned_answers is True
        assert config.graph.start_semantic_id("pump") == "pump_entry"
        assert config.graph.start_semantic_id() == "start"

    def test_missing_file_gives_defaults(self, tmp_path):
        from troubleshooter.core.config import load_troubleshoot_config

        config = load_troubleshoot_config(tmp_path / "absent.yaml")

        assert config.sessions.abandon_after_minutes == 60
        assert config.sessions.reject_abandoned_answers is False

    def test_empty_file_gives_defaults(self, tmp_path):
        from troubleshooter.core.config import load_troubleshoot_config

        path = tmp_path / "troubleshoot_config.yaml"
        path.write_text("")

        assert load_troubleshoot_config(path).graph.global_start_semantic_id == "start"

    def test_invalid_values_rejected(self, tmp_path):
        from troubleshooter.core.config import load_troubleshoot_config
        from pydantic import ValidationError

        path = tmp_path / "troubleshoot_config.yaml"
        path.write_text("sessions:\n  abandon_after_minutes: 0\n")

        with pytest.raises(ValidationError):
            load_troubleshoot_config(path)

    def test_shipped_config_loads(self):
        from troubleshooter.core.config import troubleshoot_config

        assert troubleshoot_config.graph.start_semantic_id("brush") == "brush_start"
