"""Configuration management for the discovery sync pipeline."""

from typing import Optional
from pydantic import ValidationError
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Settings for one deployment, read from the environment or .env."""

    # Credentials (no defaults)
    supabase_url: str
    supabase_key: str
    simpler_grants_api_key: str
    anthropic_api_key: str

    # Registry
    simpler_grants_base_url: str = "https://api.simpler.grants.gov/v1"
    opportunity_source: str = "simpler_grants_gov"

    # Model tiers
    extraction_model: str = "claude-haiku-4-5-20251001"
    scoring_model: str = "claude-sonnet-4-6"
    model_max_tokens: int = 1024

    # Run limits
    max_new_per_run: int = 7
    max_run_seconds: float = 280.0
    score_threshold: float = 5.0
    min_award_ceiling: float = 5000.0

    # Shared token budget
    monthly_token_limit: int = 500000
    enforce_token_budget: bool = True

    # Triggers
    cron_secret: Optional[str] = None
    sync_hour_utc: int = 7

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config() -> Config:
    """Build Config, naming every unset required variable at once.

    Raises:
        ValueError: one or more required variables are missing.
    """
    try:
        return Config()  # type: ignore[call-arg]
    except ValidationError as exc:
        missing = [
            str(error["loc"][0]).upper()
            for error in exc.errors()
            if error["type"] == "missing" and error.get("loc")
        ]
        if not missing:
            raise
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}. "
            "Set them in the environment or in a .env file."
        ) from exc


def load_config() -> Config:
    return validate_config()
