"""
Quality Cache Service Module
============================
Serves cached voice-quality snapshots and feeds fresh measurements back into
the learning state.

Flow:
    snapshot = service.get_cached_data()
    if snapshot is None:
        overview, metrics = <measure all voices>
        service.set_cached_data(overview, metrics)

Writing a snapshot and updating the learning state are independent: if the
learning update fails, the error is logged and kept in `last_learning_error`,
and the snapshot that was just written stays in place.

The service is constructed once by the entry point (see voicelab.app) and
passed to its callers; storage and the clock can be swapped for tests.
"""

from dataclasses import fields
from datetime import datetime
from typing import Any, Callable, List, Optional

from ..models import (
    CachedQualitySnapshot,
    CacheStatus,
    LearningIntegrationStatus,
    QualityMetric,
    QualityOverview,
    format_timestamp,
    utc_now,
)
from ..config import AppConfig, CacheConfig, get_config
from ..logging_config import get_cache_logger, log_cache_decision
from .store import QualityStore
from .learning import LearningStateStore, LearningTracker
from .policy import CacheInvalidationPolicy

logger = get_cache_logger()


class QualityCacheService:
    """
    Orchestrates the quality snapshot cache.

    Usage:
        service = QualityCacheService(config)
        snapshot = service.get_cached_data()
        status = service.get_cache_status()
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[QualityStore] = None,
        tracker: Optional[LearningTracker] = None,
        policy: Optional[CacheInvalidationPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.app_config = config or get_config()
        self.config: CacheConfig = self.app_config.cache
        self.clock = clock or utc_now

        self.store = store or QualityStore(self.app_config.paths.cache, self.config, self.clock)
        self.tracker = tracker or LearningTracker(
            LearningStateStore(self.app_config.paths.learning, self.app_config.learning),
            config=self.app_config.learning,
            cache_config=self.config,
            clock=self.clock,
        )
        self.policy = policy or CacheInvalidationPolicy(self.config)

        self.last_learning_error: Optional[str] = None

    def _learning_iteration(self) -> int:
        if not self.config.enable_learning_integration:
            return 0
        return self.tracker.current_iteration()

    def get_cached_data(self, force_refresh: bool = False) -> Optional[CachedQualitySnapshot]:
        """
        Get the stored snapshot if it may be served.

        Args:
            force_refresh: Skip the cache regardless of its state

        Returns:
            The snapshot, or None when the caller must recompute
        """
        snapshot = None if force_refresh else self.store.load()
        decision = self.policy.evaluate(
            snapshot, self._learning_iteration(), self.clock(), force_refresh
        )

        log_cache_decision(
            "hit" if decision.servable else "miss",
            reason=decision.reason.value,
            age_minutes=decision.age_minutes,
            iteration_delta=decision.iteration_delta,
            logger=logger
        )
        return snapshot if decision.servable else None

    def set_cached_data(
        self,
        overview: QualityOverview,
        metrics: List[QualityMetric]
    ) -> CachedQualitySnapshot:
        """
        Store a fresh measurement pass and update the learning state.

        Args:
            overview: Aggregate of the pass
            metrics: Per-voice measurements

        Returns:
            The snapshot that was written

        Raises:
            OSError: If the snapshot itself could not be written
        """
        with self.store.lock:
            snapshot = self.store.save(overview, metrics, self._learning_iteration(), self.clock())

        logger.info(
            f"Cached quality data for {len(metrics)} voices",
            extra={
                'expires_at': format_timestamp(snapshot.expires_at),
                'learning_iteration': snapshot.learning_iteration,
            }
        )

        if self.config.enable_learning_integration:
            try:
                self.tracker.commit_overview(overview, metrics, snapshot)
                self.last_learning_error = None
            except Exception as e:
                self.last_learning_error = str(e)
                logger.error(f"Failed to update learning state: {e}", exc_info=True)

        return snapshot

    def invalidate_cache(self) -> bool:
        """
        Delete the stored snapshot. Safe to call when there is none.

        Returns:
            True if a snapshot was removed
        """
        removed = self.store.delete()
        if removed:
            logger.info("Cache invalidated")
        else:
            logger.debug("Cache invalidation requested with no snapshot stored")
        return removed

    def get_cache_status(self) -> CacheStatus:
        """Diagnostic view of the stored snapshot, using the serving rules."""
        snapshot = self.store.load()
        if snapshot is None:
            return CacheStatus()

        decision = self.policy.evaluate(snapshot, self._learning_iteration(), self.clock())
        return CacheStatus(
            is_valid=decision.servable,
            last_sync=format_timestamp(snapshot.created_at),
            expires_at=format_timestamp(snapshot.expires_at),
            cache_age_minutes=round(decision.age_minutes or 0.0),
            learning_iteration=snapshot.learning_iteration,
            needs_refresh=not decision.servable,
            reason=decision.reason.value,
        )

    def get_learning_integration_status(self) -> LearningIntegrationStatus:
        return self.tracker.integration_status(enabled=self.config.enable_learning_integration)

    def update_config(self, **changes: Any) -> CacheConfig:
        """
        Change cache settings in place.

        Raises:
            ValueError: If a setting does not exist
        """
        known = {f.name for f in fields(CacheConfig)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown cache settings: {sorted(unknown)}. Available: {sorted(known)}")

        for key, value in changes.items():
            setattr(self.config, key, value)
        logger.info("Cache configuration updated", extra={'changes': changes})
        return self.config
