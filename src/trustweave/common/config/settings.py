"""Configuration management - Centralized configuration for TrustWeave.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from trustweave.common.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _get_project_root() -> Path:
    """Get the project root directory."""
    # settings.py -> config -> common -> trustweave -> src -> project_root
    return Path(__file__).resolve().parents[4]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _env_seed() -> Optional[int]:
    raw = os.getenv("TRUSTWEAVE_MODEL_SEED", "7")
    if raw.strip().lower() in ("", "none", "random"):
        return None
    return _env_int("TRUSTWEAVE_MODEL_SEED", 7)


@dataclass
class Config:
    """Central configuration object for TrustWeave.

    All settings can be overridden via environment variables prefixed with
    TRUSTWEAVE_.

    Example:
        TRUSTWEAVE_ENVIRONMENT=production
        TRUSTWEAVE_LOG_LEVEL=INFO
        TRUSTWEAVE_MODEL_SEED=random
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("TRUSTWEAVE_ENVIRONMENT", "development")
        )
    )
    debug: bool = field(
        default_factory=lambda: os.getenv("TRUSTWEAVE_DEBUG", "false").lower() == "true"
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("TRUSTWEAVE_LOG_LEVEL", "INFO"))
    )

    # Paths
    project_root: Path = field(default_factory=_get_project_root)
    review_routing_file: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["TRUSTWEAVE_REVIEW_ROUTING_FILE"])
            if os.getenv("TRUSTWEAVE_REVIEW_ROUTING_FILE") else None
        )
    )

    # Model settings
    model_seed: Optional[int] = field(default_factory=_env_seed)
    score_noise_scale: float = field(
        default_factory=lambda: _env_float("TRUSTWEAVE_SCORE_NOISE_SCALE", 0.2)
    )
    embedding_layers: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_EMBEDDING_LAYERS", 1)
    )

    # Graph snapshot cache
    graph_cache_ttl_seconds: float = field(
        default_factory=lambda: _env_float("TRUSTWEAVE_GRAPH_CACHE_TTL_SECONDS", 5.0)
    )
    graph_cache_max_entries: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_GRAPH_CACHE_MAX_ENTRIES", 64)
    )

    # Background ticks
    update_drain_interval_seconds: float = field(
        default_factory=lambda: _env_float("TRUSTWEAVE_UPDATE_DRAIN_INTERVAL_SECONDS", 30.0)
    )
    performance_drift_interval_seconds: float = field(
        default_factory=lambda: _env_float("TRUSTWEAVE_PERFORMANCE_DRIFT_INTERVAL_SECONDS", 300.0)
    )

    # Retention
    feedback_retention: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_FEEDBACK_RETENTION", 10_000)
    )
    resolved_id_retention: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_RESOLVED_ID_RETENTION", 100_000)
    )
    pending_review_retention: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_PENDING_REVIEW_RETENTION", 10_000)
    )
    session_log_capacity: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_SESSION_LOG_CAPACITY", 1_000)
    )
    session_log_samples: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_SESSION_LOG_SAMPLES", 20)
    )

    # Batch scoring
    batch_max_workers: int = field(
        default_factory=lambda: _env_int("TRUSTWEAVE_BATCH_MAX_WORKERS", 8)
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        positive = {
            "graph_cache_ttl_seconds": self.graph_cache_ttl_seconds,
            "update_drain_interval_seconds": self.update_drain_interval_seconds,
            "performance_drift_interval_seconds": self.performance_drift_interval_seconds,
            "feedback_retention": self.feedback_retention,
            "resolved_id_retention": self.resolved_id_retention,
            "pending_review_retention": self.pending_review_retention,
            "session_log_capacity": self.session_log_capacity,
            "session_log_samples": self.session_log_samples,
            "batch_max_workers": self.batch_max_workers,
            "graph_cache_max_entries": self.graph_cache_max_entries,
            "embedding_layers": self.embedding_layers,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigurationError(
                    f"{name} must be positive", details={name: value}
                )

        if self.score_noise_scale < 0:
            raise ConfigurationError("score_noise_scale must not be negative")

        if self.resolved_id_retention < self.feedback_retention:
            raise ConfigurationError(
                "resolved_id_retention must be at least feedback_retention",
                details={
                    "resolved_id_retention": self.resolved_id_retention,
                    "feedback_retention": self.feedback_retention,
                },
            )

        # Warn about debug in production
        if self.environment == Environment.PRODUCTION and self.debug:
            import warnings
            warnings.warn(
                "Debug mode is enabled in production environment",
                RuntimeWarning,
                stacklevel=2
            )

    @property
    def config_dir(self) -> Path:
        """Get the config directory path."""
        return self.project_root / "config"

    @property
    def routing_file(self) -> Path:
        """Reviewer routing rules file (explicit override or the bundled default)."""
        return self.review_routing_file or self.config_dir / "review_routing.yaml"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
