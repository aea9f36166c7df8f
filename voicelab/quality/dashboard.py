"""
Quality Dashboard Module
========================
The cache control surface consumed by the dashboard's HTTP layer.

Operations:
- get(force_refresh)  serve the cached snapshot, or measure every voice,
                      cache the result and return it
- status()            cache diagnostics, learning status and thresholds
- invalidate()        drop the cached snapshot

Voice measurement is an external collaborator: the dashboard is given a
function that lists the voices and a function that measures one voice. A
measurement that raises is recorded as a failed metric for that voice; the
rest of the pass continues.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..models import (
    BaseModel,
    LearningIntegrationStatus,
    QualityMetric,
    QualityOverview,
    format_timestamp,
)
from ..config import HealthConfig
from ..logging_config import get_cache_logger
from .overview import build_overview, failed_metric
from .service import QualityCacheService

logger = get_cache_logger()


@dataclass
class VoiceTarget:
    """A voice to measure."""
    voice_id: str
    voice_name: str


VoiceSource = Callable[[], List[VoiceTarget]]
VoiceMeasurer = Callable[[VoiceTarget], QualityMetric]


@dataclass
class DashboardResult(BaseModel):
    """
    Quality data returned to the dashboard.

    Attributes:
        overview: Aggregate of the measurement pass
        metrics: Per-voice measurements
        cache_hit: Whether the data came from the cache
        timestamp: When the data was produced
        expires_at: Snapshot expiry (None if it could not be stored)
        learning_iteration: Learning iteration captured with the data
        cache_age_minutes: Age of the served snapshot
        stored: Whether the data is now in the cache
        learning: Learning integration status
    """
    overview: QualityOverview
    metrics: List[QualityMetric] = field(default_factory=list)
    cache_hit: bool = False
    timestamp: Optional[str] = None
    expires_at: Optional[str] = None
    learning_iteration: int = 0
    cache_age_minutes: int = 0
    stored: bool = False
    learning: Optional[LearningIntegrationStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'data': {
                'overview': self.overview.to_dict(),
                'metrics': [m.to_dict() for m in self.metrics],
            },
            'cache': {
                'hit': self.cache_hit,
                'fresh': not self.cache_hit,
                'stored': self.stored,
                'timestamp': self.timestamp,
                'expiresAt': self.expires_at,
                'learningIteration': self.learning_iteration,
                'cacheAge': self.cache_age_minutes,
            },
            'learning': self.learning.to_dict() if self.learning else None,
        }


class QualityDashboard:
    """
    Usage:
        dashboard = QualityDashboard(service, list_voices, measure_voice)
        result = dashboard.get()
        result = dashboard.get(force_refresh=True)
    """

    def __init__(
        self,
        service: QualityCacheService,
        voice_source: VoiceSource,
        measurer: VoiceMeasurer,
        health_config: Optional[HealthConfig] = None
    ):
        self.service = service
        self.voice_source = voice_source
        self.measurer = measurer
        self.health_config = health_config or service.app_config.health

    @property
    def clock(self) -> Callable[[], datetime]:
        return self.service.clock

    def get(self, force_refresh: bool = False) -> DashboardResult:
        """
        Get quality data, from the cache when it may be served.

        Args:
            force_refresh: Measure again even if the cache is valid

        Returns:
            DashboardResult
        """
        snapshot = self.service.get_cached_data(force_refresh=force_refresh)
        if snapshot is not None:
            return DashboardResult(
                overview=snapshot.overview,
                metrics=snapshot.metrics,
                cache_hit=True,
                timestamp=format_timestamp(snapshot.created_at),
                expires_at=format_timestamp(snapshot.expires_at),
                learning_iteration=snapshot.learning_iteration,
                cache_age_minutes=round(snapshot.age_minutes(self.clock())),
                stored=True,
                learning=self.service.get_learning_integration_status(),
            )

        logger.info("Cache miss or forced refresh, measuring all voices")
        metrics = self.measure_all()
        overview = build_overview(metrics, self.health_config, self.clock().date())

        result = DashboardResult(
            overview=overview,
            metrics=metrics,
            cache_hit=False,
            timestamp=format_timestamp(self.clock()),
        )
        try:
            written = self.service.set_cached_data(overview, metrics)
        except OSError as e:
            logger.error(f"Could not store quality snapshot: {e}")
        else:
            result.stored = True
            result.expires_at = format_timestamp(written.expires_at)
            result.learning_iteration = written.learning_iteration

        result.learning = self.service.get_learning_integration_status()
        return result

    def measure_all(self) -> List[QualityMetric]:
        """Measure every voice from the voice source, in order."""
        voices = self.voice_source()
        logger.info(f"Measuring {len(voices)} voices")
        return [self.measure(voice) for voice in voices]

    def measure(self, voice: VoiceTarget) -> QualityMetric:
        try:
            return self.measurer(voice)
        except Exception as e:
            logger.warning(f"Quality measurement failed for {voice.voice_name} ({voice.voice_id}): {e}")
            return failed_metric(
                voice.voice_id,
                voice.voice_name,
                str(e) or type(e).__name__,
                tested_at=format_timestamp(self.clock()),
            )

    def status(self) -> Dict[str, Any]:
        """Cache diagnostics, learning status and configured thresholds."""
        config = self.service.config
        return {
            'success': True,
            'cache': self.service.get_cache_status().to_dict(),
            'learning': self.service.get_learning_integration_status().to_dict(),
            'lastLearningError': self.service.last_learning_error,
            'thresholds': {
                'cacheMaxAgeMinutes': config.max_age_minutes,
                'forceRefreshHours': config.force_refresh_hours,
                'learningUpdateThreshold': config.learning_update_threshold,
            },
        }

    def invalidate(self) -> Dict[str, Any]:
        removed = self.service.invalidate_cache()
        return {
            'success': True,
            'removed': removed,
            'message': 'Cache invalidated successfully',
        }
