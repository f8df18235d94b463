"""Tests for environment overrides and logging setup."""

import logging

import pytest

from visual_differ.utils.env import load_env_overrides, resolve_log_level, setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("LOG_LEVEL", "COLOR_THRESHOLD", "EQUALITY_THRESHOLD"):
        monkeypatch.delenv(f"VISUAL_DIFFER_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


class TestEnvOverrides:
    """Test .env and environment parsing."""
    
    def test_no_overrides(self):
        assert load_env_overrides() == {}
    
    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "VISUAL_DIFFER_COLOR_THRESHOLD=0.2\n"
            "VISUAL_DIFFER_LOG_LEVEL='DEBUG'\n"
            "OTHER_SETTING=1\n"
        )
        overrides = load_env_overrides(env_file)
        assert overrides == {"color_threshold": 0.2, "log_level": "DEBUG"}
    
    def test_environment_wins(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("VISUAL_DIFFER_EQUALITY_THRESHOLD=1.0\n")
        monkeypatch.setenv("VISUAL_DIFFER_EQUALITY_THRESHOLD", "2.5")
        assert load_env_overrides(env_file) == {"equality_threshold": 2.5}
    
    def test_invalid_value_skipped(self, monkeypatch):
        monkeypatch.setenv("VISUAL_DIFFER_COLOR_THRESHOLD", "lots")
        assert load_env_overrides(None) == {}
    
    def test_resolve_log_level(self, monkeypatch):
        assert resolve_log_level() == logging.INFO
        monkeypatch.setenv("VISUAL_DIFFER_LOG_LEVEL", "warning")
        assert resolve_log_level() == logging.WARNING
        monkeypatch.setenv("VISUAL_DIFFER_LOG_LEVEL", "chatty")
        assert resolve_log_level() == logging.INFO


class TestSetupLogging:
    """Test logging configuration."""
    
    def test_level_and_file(self, tmp_path):
        log_file = tmp_path / "differ.log"
        setup_logging(logging.DEBUG, str(log_file))
        try:
            assert logging.getLogger().level == logging.DEBUG
            logging.getLogger("visual_differ.test").debug("hello")
            for handler in logging.getLogger().handlers:
                handler.flush()
            assert "hello" in log_file.read_text()
        finally:
            for handler in logging.getLogger().handlers:
                handler.close()
            logging.basicConfig(level=logging.WARNING, force=True)
