"""Tests for environment-driven settings."""

import pytest

from royalties.config import EngineSettings
from royalties.errors import ConfigurationError


class TestEngineSettings:
    """Test reading settings from the environment."""

    def test_defaults(self):
        settings = EngineSettings.from_env({})

        assert settings.environment == "dev"
        assert settings.batch_max_workers == 4
        assert settings.max_retries == 3

    def test_reads_environment(self):
        settings = EngineSettings.from_env({
            "ENVIRONMENT": "prod",
            "LOG_LEVEL": "debug",
            "ROYALTY_BATCH_MAX_WORKERS": "16",
            "ROYALTY_LOCK_TIMEOUT_SECONDS": "2.5",
            "ROYALTY_MAX_RETRIES": "5",
            "ROYALTY_RETRY_BACKOFF_SECONDS": "0.1",
        })

        assert settings.environment == "prod"
        assert settings.log_level == "DEBUG"
        assert settings.batch_max_workers == 16
        assert settings.lock_timeout_seconds == 2.5
        assert settings.max_retries == 5
        assert settings.retry_backoff_seconds == 0.1

    def test_non_numeric_value_rejected(self):
        with pytest.raises(ConfigurationError, match="ROYALTY_MAX_RETRIES"):
            EngineSettings.from_env({"ROYALTY_MAX_RETRIES": "three"})

    def test_non_numeric_error_hides_cast_failure(self):
        with pytest.raises(ConfigurationError) as exc_info:
            EngineSettings.from_env({"ROYALTY_LOCK_TIMEOUT_SECONDS": "soon"})

        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__

    def test_zero_workers_rejected(self):
        with pytest.raises(ConfigurationError, match="at least 1"):
            EngineSettings.from_env({"ROYALTY_BATCH_MAX_WORKERS": "0"})
