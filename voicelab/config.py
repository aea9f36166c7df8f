"""
Configuration Management Module
===============================
Centralized configuration system for the VoiceLab core.

This module provides:
- Type-safe configuration via dataclasses
- Environment variable overrides
- Default values with documentation

Usage:
    from voicelab.config import get_config
    config = get_config()

    # Access configuration
    max_age = config.cache.max_age_minutes
    weights = config.matching.name_weight, config.matching.accent_weight

Configurations can be saved and re-loaded as JSON:
    config.save("voicelab_config.json")
    config = AppConfig.load("voicelab_config.json")
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict
import os
import json
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================

@dataclass
class PathConfig:
    """Configuration for file system paths."""

    # Base directory for persisted documents (defaults to the working directory)
    base_dir: Path = field(default_factory=lambda: Path(os.getcwd()))

    cache_file: str = "quality-dashboard-cache.json"
    learning_file: str = "enhanced_learning_data.json"
    logs_dir: str = "logs"

    @property
    def cache(self) -> Path:
        return self.base_dir / self.cache_file

    @property
    def learning(self) -> Path:
        return self.base_dir / self.learning_file

    @property
    def logs(self) -> Path:
        return self.base_dir / self.logs_dir

    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        for dir_path in [self.base_dir, self.logs]:
            dir_path.mkdir(parents=True, exist_ok=True)


@dataclass
class CacheConfig:
    """
    Configuration for the quality snapshot cache.

    A stored snapshot is served only while all of these hold:
    - it has not reached its expiry (created + max_age_minutes)
    - it is younger than force_refresh_hours, a hard ceiling
    - the learning process has advanced fewer than
      learning_update_threshold iterations since it was written
    """

    max_age_minutes: float = 30.0
    force_refresh_hours: float = 4.0
    learning_update_threshold: int = 5
    enable_learning_integration: bool = True

    # Written into every snapshot
    cache_version: str = "1.0.0"

    @property
    def max_age_seconds(self) -> float:
        return self.max_age_minutes * 60

    @property
    def force_refresh_minutes(self) -> float:
        return self.force_refresh_hours * 60


@dataclass
class LearningConfig:
    """Configuration for the learning-state trend tracking."""

    # Bounded trend history; oldest entries are evicted first
    trend_history_limit: int = 50

    # Trend direction compares first/last average quality in this window
    trend_window: int = 5
    trend_min_entries: int = 3
    trend_delta: float = 0.05

    # Discrete mapping of the system health enum to a numeric score
    health_scores: Dict[str, int] = field(default_factory=lambda: {
        "excellent": 95,
        "good": 80,
        "fair": 65,
        "poor": 40,
    })

    # Voice settings reported when the learning file has none
    default_best_settings: dict = field(default_factory=lambda: {
        "stability": 0.85,
        "similarity_boost": 0.95,
        "style": 0.7,
        "use_speaker_boost": True,
    })


@dataclass
class SignatureConfig:
    """
    Configuration for voice signature construction.

    Each entry of `buckets` describes one voice characteristic that takes part
    in the signature:
        default: bucket used when the characteristic is missing
        aliases: raw value (lowercased) -> bucket name

    Values not listed in `aliases` are used as their own bucket. Adding aliases
    (e.g. "deep" -> "low") makes clustering coarser without code changes.
    """

    default_accent: str = "unknown"

    buckets: Dict[str, dict] = field(default_factory=lambda: {
        "pitch": {"default": "medium", "aliases": {}},
        "tone": {"default": "neutral", "aliases": {}},
    })

    # Order in which characteristic buckets appear in the signature key
    characteristic_order: list = field(default_factory=lambda: ["pitch", "tone"])

    separator: str = "_"


@dataclass
class MatchScoringConfig:
    """
    Configuration for cross-video match confidence.

    confidence = name_weight * name_score
               + accent_weight * accent_score
               + quality_weight * quality_score

    Name and accent scores start at 100 and lose a fixed penalty for every
    additional distinct value in the group.
    """

    name_weight: float = 0.4
    accent_weight: float = 0.3
    quality_weight: float = 0.3

    name_penalty: float = 20.0
    accent_penalty: float = 30.0

    # Speaker quality is reported on a 0-10 scale
    quality_scale: float = 10.0

    # Number of matches reported as "top voices"
    top_n: int = 10


@dataclass
class HealthConfig:
    """
    Thresholds for the four-level system health.

    Each level requires both an average overall score and a minimum share of
    production-ready voices. Levels are checked from best to worst.
    """

    excellent_quality: float = 0.85
    excellent_ready_ratio: float = 0.8
    good_quality: float = 0.75
    good_ready_ratio: float = 0.6
    fair_quality: float = 0.65
    fair_ready_ratio: float = 0.4


@dataclass
class LoggingConfig:
    """Configuration for service logging."""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_decisions: bool = True
    log_matches: bool = True
    log_learning: bool = True


@dataclass
class AppConfig:
    """
    Master configuration class that aggregates all configuration sections.

    This is the main configuration object used throughout the application.
    """

    paths: PathConfig = field(default_factory=PathConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)
    signature: SignatureConfig = field(default_factory=SignatureConfig)
    matching: MatchScoringConfig = field(default_factory=MatchScoringConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        def convert(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj
        return convert(self)

    def save(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to {filepath}")

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """Create configuration from dictionary."""
        # base_dir is serialized as a string
        paths_data = dict(data.get('paths', {}))
        if 'base_dir' in paths_data and isinstance(paths_data['base_dir'], str):
            paths_data['base_dir'] = Path(paths_data['base_dir'])

        return cls(
            paths=PathConfig(**paths_data),
            cache=CacheConfig(**data.get('cache', {})),
            learning=LearningConfig(**data.get('learning', {})),
            signature=SignatureConfig(**data.get('signature', {})),
            matching=MatchScoringConfig(**data.get('matching', {})),
            health=HealthConfig(**data.get('health', {})),
            logging=LoggingConfig(**data.get('logging', {})),
        )

    @classmethod
    def load(cls, filepath: str) -> "AppConfig":
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        logger.info(f"Configuration loaded from {filepath}")
        return cls.from_dict(data)


# =============================================================================
# GLOBAL CONFIGURATION ACCESSOR
# =============================================================================

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the process-wide application configuration.

    Creates a default configuration on first access. Services receive their
    configuration sections explicitly; this accessor is only the fallback used
    when none is passed.

    Returns:
        The global AppConfig instance
    """
    global _config
    if _config is None:
        _config = AppConfig()
        logger.info("Initialized default application configuration")
    return _config


def set_config(config: AppConfig) -> None:
    """
    Set the process-wide application configuration.

    Args:
        config: The AppConfig instance to use globally
    """
    global _config
    _config = config
    logger.info(f"Set global configuration (base_dir: {config.paths.base_dir})")


def reset_config() -> None:
    """Reset the global configuration to None (forces reload on next get_config)."""
    global _config
    _config = None
    logger.info("Reset global configuration")


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDES
# =============================================================================

def apply_environment_overrides(config: AppConfig) -> AppConfig:
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern:
    VOICELAB_{SECTION}_{KEY}

    Examples:
        VOICELAB_CACHE_MAX_AGE_MINUTES=15
        VOICELAB_CACHE_LEARNING_UPDATE_THRESHOLD=10
        VOICELAB_LOGGING_LOG_LEVEL=DEBUG

    Also supports common simplified environment variables:
        VOICELAB_DATA_DIR=/var/lib/voicelab (maps to paths.base_dir)
        LOG_LEVEL=DEBUG (maps to logging.log_level)

    Args:
        config: Base configuration to override

    Returns:
        Configuration with environment overrides applied
    """
    if os.getenv("VOICELAB_DATA_DIR"):
        config.paths.base_dir = Path(os.getenv("VOICELAB_DATA_DIR"))
        logger.info(f"Environment override: paths.base_dir = {config.paths.base_dir}")

    if os.getenv("LOG_LEVEL"):
        config.logging.log_level = os.getenv("LOG_LEVEL").upper()
        logger.info(f"Environment override: logging.log_level = {config.logging.log_level}")

    prefix = "VOICELAB_"

    section_map = {
        'paths': 'paths',
        'cache': 'cache',
        'learning': 'learning',
        'signature': 'signature',
        'matching': 'matching',
        'health': 'health',
        'logging': 'logging',
    }

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix):].lower().split('_', 1)
        if len(parts) != 2:
            continue

        section, attr = parts

        if section not in section_map:
            continue

        section_config = getattr(config, section_map[section], None)
        if section_config is None or not hasattr(section_config, attr):
            continue

        # Convert value to the type of the current value
        current_value = getattr(section_config, attr)
        if isinstance(current_value, (dict, list)):
            continue
        try:
            if isinstance(current_value, bool):
                typed_value = value.lower() in ('true', '1', 'yes')
            elif isinstance(current_value, int):
                typed_value = int(value)
            elif isinstance(current_value, float):
                typed_value = float(value)
            elif isinstance(current_value, Path):
                typed_value = Path(value)
            else:
                typed_value = value

            setattr(section_config, attr, typed_value)
            logger.info(f"Environment override: {section}.{attr} = {typed_value}")

        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to apply environment override {key}: {e}")

    return config


# =============================================================================
# PRESET CONFIGURATIONS FOR COMMON SCENARIOS
# =============================================================================

def get_development_config() -> AppConfig:
    """Get configuration optimized for development."""
    config = AppConfig()
    config.cache.max_age_minutes = 5.0  # See fresh measurements quickly
    config.logging.log_level = "DEBUG"
    return config


def get_production_config() -> AppConfig:
    """Get configuration optimized for production."""
    config = AppConfig()
    config.logging.log_level = "INFO"
    config.logging.log_to_file = True
    return config
