"""
Quality Cache Module
====================
Caches expensive voice-quality measurements and keeps the cache honest.

This module implements:
- JSON persistence of the quality snapshot (atomic writes, safe misses)
- The learning state: bounded trend history and derived system signals
- The invalidation policy (max age, force-refresh ceiling, learning progress)
- The cache service and the dashboard control surface built on it

Usage:
    from voicelab.quality import QualityCacheService

    service = QualityCacheService(config)
    snapshot = service.get_cached_data()
    if snapshot is None:
        service.set_cached_data(overview, metrics)
"""

from .store import JsonDocumentStore, QualityStore
from .learning import TrendHistory, LearningState, LearningStateStore, LearningTracker
from .policy import CacheInvalidationPolicy, PolicyDecision
from .service import QualityCacheService
from .overview import build_overview, determine_health, failed_metric
from .dashboard import QualityDashboard, DashboardResult, VoiceTarget

__all__ = [
    'JsonDocumentStore',
    'QualityStore',
    'TrendHistory',
    'LearningState',
    'LearningStateStore',
    'LearningTracker',
    'CacheInvalidationPolicy',
    'PolicyDecision',
    'QualityCacheService',
    'build_overview',
    'determine_health',
    'failed_metric',
    'QualityDashboard',
    'DashboardResult',
    'VoiceTarget',
]
