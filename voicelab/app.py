"""
VoiceLab - Application Entry Point
==================================
Builds the services once per process and hands them to callers.

This module:
- Loads .env and applies environment overrides to the configuration
- Constructs the cluster engine and the quality cache service
- Optionally wires the quality dashboard to the voice listing and
  measurement collaborators

Usage:
    from voicelab.app import create_app

    app = create_app()
    matches = app.cluster_engine.find_cross_video_matches(records)
    snapshot = app.quality_cache.get_cached_data()
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from dotenv import load_dotenv

from .config import AppConfig, get_config, set_config, apply_environment_overrides
from .logging_config import apply_log_level
from .identity import ClusterEngine
from .quality import QualityCacheService, QualityDashboard
from .quality.dashboard import VoiceSource, VoiceMeasurer


@dataclass
class VoiceLab:
    """Container for the services of one process."""
    config: AppConfig
    cluster_engine: ClusterEngine
    quality_cache: QualityCacheService
    dashboard: Optional[QualityDashboard] = None


def create_app(
    config: Optional[AppConfig] = None,
    voice_source: Optional[VoiceSource] = None,
    measurer: Optional[VoiceMeasurer] = None,
    clock: Optional[Callable[[], datetime]] = None,
    load_env: bool = True
) -> VoiceLab:
    """
    Create the application services.

    Args:
        config: Configuration to use (defaults to the global one with
            environment overrides applied)
        voice_source: Lists voices to measure; enables the dashboard
        measurer: Measures one voice; enables the dashboard
        clock: Time source shared by the cache services
        load_env: Whether to read a .env file first

    Returns:
        VoiceLab container
    """
    if load_env:
        load_dotenv()

    if config is None:
        config = apply_environment_overrides(get_config())
    set_config(config)
    apply_log_level(config.logging.log_level)

    quality_cache = QualityCacheService(config, clock=clock)

    dashboard = None
    if voice_source is not None and measurer is not None:
        dashboard = QualityDashboard(quality_cache, voice_source, measurer, config.health)

    return VoiceLab(
        config=config,
        cluster_engine=ClusterEngine(config),
        quality_cache=quality_cache,
        dashboard=dashboard,
    )
