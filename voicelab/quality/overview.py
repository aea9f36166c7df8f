"""
Quality Overview Module
=======================
Aggregates per-voice quality metrics into the dashboard overview.

System health levels (checked best first; both conditions must hold):
- excellent: average >= 0.85 and >= 80% of voices production ready
- good:      average >= 0.75 and >= 60% production ready
- fair:      average >= 0.65 and >= 40% production ready
- poor:      anything else, including an empty catalogue
"""

import logging
from datetime import date
from typing import List, Optional

from ..models import QualityMetric, QualityOverview, SystemHealth
from ..config import HealthConfig, get_config

logger = logging.getLogger(__name__)


def determine_health(
    average_quality: float,
    production_ready: int,
    total_voices: int,
    config: Optional[HealthConfig] = None
) -> SystemHealth:
    """Map average quality and production-ready share to a health level."""
    config = config or get_config().health
    if total_voices <= 0:
        return SystemHealth.POOR

    levels = [
        (SystemHealth.EXCELLENT, config.excellent_quality, config.excellent_ready_ratio),
        (SystemHealth.GOOD, config.good_quality, config.good_ready_ratio),
        (SystemHealth.FAIR, config.fair_quality, config.fair_ready_ratio),
    ]
    for level, min_quality, min_ratio in levels:
        if average_quality >= min_quality and production_ready >= total_voices * min_ratio:
            return level
    return SystemHealth.POOR


def build_overview(
    metrics: List[QualityMetric],
    config: Optional[HealthConfig] = None,
    calibrated_on: Optional[date] = None
) -> QualityOverview:
    """
    Aggregate a measurement pass.

    Args:
        metrics: Per-voice measurements
        config: Health thresholds
        calibrated_on: Date of the pass (defaults to today)

    Returns:
        QualityOverview
    """
    calibration = (calibrated_on or date.today()).isoformat()
    if not metrics:
        return QualityOverview(last_calibration=calibration)

    total = len(metrics)
    ready = sum(1 for m in metrics if m.is_production_ready)
    average = sum(m.overall for m in metrics) / total

    return QualityOverview(
        total_voices=total,
        average_quality=average,
        production_ready=ready,
        needs_improvement=total - ready,
        system_health=determine_health(average, ready, total, config),
        last_calibration=calibration,
    )


def failed_metric(
    voice_id: str,
    voice_name: str,
    error_message: str,
    tested_at: Optional[str] = None
) -> QualityMetric:
    """
    Metric recorded for a voice whose measurement failed.

    All scores are zero and the voice is never production ready.
    """
    metric = QualityMetric(
        id=voice_id,
        voice_name=voice_name,
        recommendations=[
            "Quality analysis failed",
            f"Error: {error_message}",
            "Check voice configuration and try again",
        ],
    )
    if tested_at:
        metric.last_tested = tested_at
    return metric
