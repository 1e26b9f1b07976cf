"""Tests for configuration settings.

Tests the Config class and environment variable handling.
"""

import os
import pytest
from pathlib import Path
from unittest.mock import patch

from trustweave.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    get_config,
    reset_config,
)
from trustweave.common.exceptions import ConfigurationError


class TestEnvironment:
    """Tests for Environment enum."""

    def test_environment_from_string(self):
        assert Environment("development") == Environment.DEVELOPMENT
        assert Environment("production") == Environment.PRODUCTION


class TestConfig:
    """Tests for Config class."""

    def test_default_config(self):
        """Test Config with default values."""
        reset_config()

        with patch.dict(os.environ, {}, clear=True):
            config = Config()

            assert config.environment == Environment.DEVELOPMENT
            assert config.debug is False
            assert config.log_level == LogLevel.INFO
            assert config.model_seed == 7
            assert config.score_noise_scale == 0.2
            assert config.graph_cache_ttl_seconds == 5.0
            assert config.graph_cache_max_entries == 64
            assert config.update_drain_interval_seconds == 30.0
            assert config.performance_drift_interval_seconds == 300.0
            assert config.feedback_retention == 10_000
            assert config.resolved_id_retention == 100_000
            assert config.pending_review_retention == 10_000
            assert config.session_log_capacity == 1_000
            assert config.session_log_samples == 20

    def test_environment_from_env_var(self):
        reset_config()

        with patch.dict(os.environ, {"TRUSTWEAVE_ENVIRONMENT": "production"}, clear=False):
            config = Config()
            assert config.environment == Environment.PRODUCTION
            assert config.is_production is True

    def test_numeric_overrides(self):
        reset_config()

        with patch.dict(os.environ, {
            "TRUSTWEAVE_GRAPH_CACHE_TTL_SECONDS": "2.5",
            "TRUSTWEAVE_FEEDBACK_RETENTION": "500",
            "TRUSTWEAVE_BATCH_MAX_WORKERS": "2",
            "TRUSTWEAVE_PENDING_REVIEW_RETENTION": "250",
        }, clear=False):
            config = Config()
            assert config.pending_review_retention == 250
            assert config.graph_cache_ttl_seconds == 2.5
            assert config.feedback_retention == 500
            assert config.batch_max_workers == 2

    @pytest.mark.parametrize("raw", ["random", "none", ""])
    def test_unseeded_model(self, raw):
        with patch.dict(os.environ, {"TRUSTWEAVE_MODEL_SEED": raw}, clear=False):
            assert Config().model_seed is None

    def test_malformed_number_rejected(self):
        with patch.dict(os.environ, {"TRUSTWEAVE_SESSION_LOG_SAMPLES": "twenty"}, clear=False):
            with pytest.raises(ConfigurationError, match="TRUSTWEAVE_SESSION_LOG_SAMPLES"):
                Config()

    def test_non_positive_value_rejected(self):
        with pytest.raises(ConfigurationError):
            Config(graph_cache_ttl_seconds=0)

    def test_resolved_retention_must_cover_feedback_retention(self):
        with pytest.raises(ConfigurationError):
            Config(feedback_retention=1000, resolved_id_retention=10)

    def test_debug_in_production_warns(self):
        with pytest.warns(RuntimeWarning):
            Config(environment=Environment.PRODUCTION, debug=True)

    def test_routing_file_defaults_to_bundled(self):
        with patch.dict(os.environ, {}, clear=True):
            config = Config()
            assert config.routing_file == config.project_root / "config" / "review_routing.yaml"

    def test_routing_file_override(self):
        with patch.dict(os.environ, {"TRUSTWEAVE_REVIEW_ROUTING_FILE": "/etc/tw/routing.yaml"}, clear=False):
            assert Config().routing_file == Path("/etc/tw/routing.yaml")


class TestGetConfig:
    """Tests for get_config singleton function."""

    def test_get_config_returns_same_instance(self):
        reset_config()
        config1 = get_config()
        config2 = get_config()
        assert config1 is config2

    def test_reset_config_clears_singleton(self):
        reset_config()
        config1 = get_config()
        reset_config()
        config2 = get_config()
        assert config1 is not config2
