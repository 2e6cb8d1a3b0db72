"""Core configuration - centralized config for the truthchain package.

All environment-based configuration should flow through this module.

Usage:
    from truthchain.core.config import get_config
    config = get_config()

    day = config.claim_day_seconds
    log_level = config.log_level
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigException

# Claims cannot stabilize before this age, so a shorter voting window would
# expire every claim
MIN_VOTING_WINDOW_DAYS = 7.0


class TruthChainSettings(BaseSettings):
    """Configuration settings for TruthChain.

    Settings can be configured via environment variables with the
    TRUTHCHAIN_ prefix.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="TRUTHCHAIN_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="TRUTHCHAIN_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="TRUTHCHAIN_LOG_FILE",
    )

    # ==========================================================================
    # IDENTITY SETTINGS
    # ==========================================================================

    identity_salt: str = Field(
        default="TruthChain_v1_Salt",
        description="Salt mixed into identifier digests before hashing",
        validation_alias="TRUTHCHAIN_IDENTITY_SALT",
    )

    # ==========================================================================
    # CLAIM TIMING SETTINGS
    # ==========================================================================

    claim_day_seconds: float = Field(
        default=86400.0,
        description="Wall-clock seconds in one claim-day (60 for demo time scale)",
        validation_alias="TRUTHCHAIN_CLAIM_DAY_SECONDS",
    )
    voting_window_days: float = Field(
        default=7.0,
        description="Claim-days between claim creation and its voting deadline",
        validation_alias="TRUTHCHAIN_VOTING_WINDOW_DAYS",
    )

    # ==========================================================================
    # VOTE FEEDBACK SETTINGS
    # ==========================================================================

    vote_feedback_enabled: bool = Field(
        default=True,
        description="Apply the immediate trust nudge when a vote is cast",
        validation_alias="TRUTHCHAIN_VOTE_FEEDBACK",
    )

    @field_validator("claim_day_seconds")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("voting_window_days")
    @classmethod
    def _covers_stabilization(cls, value: float) -> float:
        if value < MIN_VOTING_WINDOW_DAYS:
            raise ValueError(f"must be at least {MIN_VOTING_WINDOW_DAYS:g} claim-days")
        return value


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: TruthChainSettings | None = None


def get_config() -> TruthChainSettings:
    """Get the global configuration instance.

    Returns:
        The singleton TruthChainSettings instance.

    Raises:
        ConfigException: If an environment override is unusable.
    """
    global _config
    if _config is None:
        try:
            _config = TruthChainSettings()
        except ValidationError as e:
            bad = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise ConfigException(f"Invalid TruthChain configuration: {bad}", setting=bad or None) from e
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
