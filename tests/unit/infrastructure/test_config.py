"""
Unit tests for environment configuration.
"""

import pytest
from pydantic import ValidationError

from code_runner.infrastructure.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AURORA_PISTON_WS_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.host_url == "http://localhost:3000"
        assert settings.piston_ws_url is None
        assert settings.run_timeout_ms == 10000
        assert settings.stderr_noise_patterns == ["isolate:", "cgroup", "Failed to create control group"]
        assert settings.log_format == "text"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AURORA_HOST_URL", "http://aurora.test/")
        monkeypatch.setenv("AURORA_PISTON_WS_URL", "ws://piston:2000/api/v2/connect")
        monkeypatch.setenv("AURORA_RUN_TIMEOUT_SECONDS", "5")
        settings = Settings(_env_file=None)

        assert settings.piston_ws_url == "ws://piston:2000/api/v2/connect"
        assert settings.run_timeout_seconds == 5.0
        assert settings.capability_url == "http://aurora.test/api/code/ws"
        assert settings.execute_url == "http://aurora.test/api/code/execute"

    def test_version_for(self):
        settings = Settings(_env_file=None)

        assert settings.version_for("python") == "3.10.0"
        assert settings.version_for("javascript") == "18.15.0"
        assert settings.version_for("typescript") == "5.0.3"
        assert settings.version_for("cobol") == "3.10.0"

    def test_log_level_is_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, run_timeout_seconds=-1)
