"""Tests for configuration validation."""

import os
from unittest.mock import patch

import pytest

from grant_discovery.config.config import validate_config


class TestConfigValidation:
    """Test startup config validation."""

    VALID_ENV = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-key-123",
        "SIMPLER_GRANTS_API_KEY": "grants-key",
        "ANTHROPIC_API_KEY": "anthropic-key",
        "MAX_NEW_PER_RUN": "3",
        "SCORE_THRESHOLD": "6.5",
        "ENFORCE_TOKEN_BUDGET": "false",
        "LOG_LEVEL": "DEBUG",
    }

    def test_valid_config_loads_successfully(self):
        with patch.dict(os.environ, self.VALID_ENV, clear=True):
            config = validate_config()

        assert config.supabase_url == "https://test.supabase.co"
        assert config.simpler_grants_api_key == "grants-key"
        assert config.max_new_per_run == 3
        assert config.score_threshold == 6.5
        assert config.enforce_token_budget is False
        assert config.log_level == "DEBUG"

    def test_defaults(self):
        required = {k: v for k, v in self.VALID_ENV.items() if k.endswith(("_URL", "_KEY"))}
        with patch.dict(os.environ, required, clear=True):
            config = validate_config()

        assert config.simpler_grants_base_url == "https://api.simpler.grants.gov/v1"
        assert config.extraction_model == "claude-haiku-4-5-20251001"
        assert config.scoring_model == "claude-sonnet-4-6"
        assert config.max_new_per_run == 7
        assert config.score_threshold == 5.0
        assert config.min_award_ceiling == 5000.0
        assert config.monthly_token_limit == 500000
        assert config.cron_secret is None

    def test_all_missing_vars_reported(self):
        with patch.dict(os.environ, {"SUPABASE_URL": "https://test.supabase.co"}, clear=True):
            with pytest.raises(ValueError) as exc_info:
                validate_config()

        message = str(exc_info.value)
        assert "SUPABASE_KEY" in message
        assert "SIMPLER_GRANTS_API_KEY" in message
        assert "ANTHROPIC_API_KEY" in message
        assert "SUPABASE_URL" not in message
