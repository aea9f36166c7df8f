"""
Learning State Module
=====================
Persisted feedback loop between the quality cache and the external learning
process.

The learning state holds:
- a monotonically increasing iteration counter, advanced once per committed
  quality overview and once per update from the learning process
- a bounded quality trend history (at most 50 entries, oldest evicted first)
- derived system performance signals (health score, trend direction,
  cache efficiency)
- per-voice analytics, cloning analytics and the best known voice settings

The iteration counter is the staleness signal the cache policy compares
against: once the learning process has advanced far enough past a snapshot,
that snapshot is no longer served.
"""

import copy
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Deque, Dict, Iterable, Iterator, List, Optional, Union

from ..models import (
    BaseModel,
    CachedQualitySnapshot,
    LearningIntegrationStatus,
    QualityMetric,
    QualityOverview,
    SystemPerformance,
    TrendDirection,
    TrendEntry,
    format_timestamp,
    utc_now,
)
from ..config import CacheConfig, LearningConfig, get_config
from ..logging_config import get_learning_logger, log_learning_update
from .store import JsonDocumentStore

logger = get_learning_logger()

# Top-level keys of the learning document that LearningState models
_KNOWN_KEYS = (
    'learningIterations',
    'qualityTrends',
    'systemPerformance',
    'voiceAnalytics',
    'cloningAnalytics',
    'bestSettings',
)


def _mapping(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """A top-level object of the document, or {} if it is missing or not an object."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning(f"{key} is not an object, using an empty one")
        return {}
    return dict(value)


class TrendHistory:
    """
    Fixed-capacity, append-only history of trend entries.

    Invariant: len(history) <= capacity. Appending to a full history evicts
    the oldest entry first. Loading more entries than fit keeps the newest.
    """

    def __init__(self, capacity: int = 50, entries: Optional[Iterable[TrendEntry]] = None):
        if capacity < 1:
            raise ValueError(f"Trend history capacity must be positive, got {capacity}")
        self._entries: Deque[TrendEntry] = deque(entries or [], maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, entry: TrendEntry) -> None:
        self._entries.append(entry)

    def recent(self, n: int) -> List[TrendEntry]:
        """The n most recent entries, oldest first."""
        if n <= 0:
            return []
        return list(self._entries)[-n:]

    @property
    def entries(self) -> List[TrendEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TrendEntry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrendHistory):
            return NotImplemented
        return self.capacity == other.capacity and self.entries == other.entries

    def __repr__(self) -> str:
        return f"TrendHistory(capacity={self.capacity}, entries={len(self)})"


@dataclass
class LearningState(BaseModel):
    """
    In-memory form of the learning document.

    Attributes:
        learning_iterations: Monotonic iteration counter
        quality_trends: Bounded trend history
        system_performance: Signals derived from the latest commit
        voice_analytics: Latest quality record per voice id
        cloning_analytics: Analytics written by the learning process
        best_settings: Best known voice generation settings
        extra: Other top-level keys found in the document, kept on rewrite
    """
    learning_iterations: int = 0
    quality_trends: TrendHistory = field(default_factory=TrendHistory)
    system_performance: Optional[SystemPerformance] = None
    voice_analytics: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    cloning_analytics: Dict[str, Any] = field(default_factory=dict)
    best_settings: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = copy.deepcopy(self.extra)
        data.update({
            'learningIterations': self.learning_iterations,
            'qualityTrends': [entry.to_dict() for entry in self.quality_trends],
            'systemPerformance': self.system_performance.to_dict() if self.system_performance else None,
            'voiceAnalytics': copy.deepcopy(self.voice_analytics),
            'cloningAnalytics': copy.deepcopy(self.cloning_analytics),
            'bestSettings': copy.deepcopy(self.best_settings),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], capacity: int = 50) -> "LearningState":
        """
        Create from the learning document.

        Each known key is read on its own: a key with the wrong shape falls
        back to its default without affecting the others. Trend entries that
        cannot be read are dropped.
        """
        try:
            iterations = int(data.get('learningIterations') or 0)
        except (TypeError, ValueError):
            logger.warning(f"Unreadable learningIterations {data.get('learningIterations')!r}, using 0")
            iterations = 0

        trends = data.get('qualityTrends') or []
        if not isinstance(trends, list):
            logger.warning("qualityTrends is not a list, starting an empty history")
            trends = []

        entries = []
        for raw in trends:
            if not isinstance(raw, dict):
                continue
            try:
                entries.append(TrendEntry.from_dict(raw))
            except (TypeError, ValueError) as e:
                logger.warning(f"Dropping unreadable trend entry: {e}")

        performance = None
        if isinstance(data.get('systemPerformance'), dict):
            try:
                performance = SystemPerformance.from_dict(data['systemPerformance'])
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring unreadable systemPerformance: {e}")

        return cls(
            learning_iterations=iterations,
            quality_trends=TrendHistory(capacity, entries),
            system_performance=performance,
            voice_analytics=_mapping(data, 'voiceAnalytics'),
            cloning_analytics=_mapping(data, 'cloningAnalytics'),
            best_settings=_mapping(data, 'bestSettings'),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


class LearningStateStore(JsonDocumentStore):
    """
    Reads and writes the learning document.

    A missing document, unreadable JSON or a document that is not a JSON
    object loads as the default (empty) state. Otherwise every readable key
    is kept.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        config: Optional[LearningConfig] = None
    ):
        super().__init__(path or get_config().paths.learning)
        self.config = config or get_config().learning

    def default_state(self) -> LearningState:
        return LearningState(
            quality_trends=TrendHistory(self.config.trend_history_limit),
            best_settings=dict(self.config.default_best_settings),
        )

    def load(self) -> LearningState:
        data = self.read_json()
        if data is None:
            return self.default_state()
        state = LearningState.from_dict(data, capacity=self.config.trend_history_limit)
        if not state.best_settings:
            state.best_settings = dict(self.config.default_best_settings)
        return state

    def save(self, state: LearningState) -> None:
        """
        Raises:
            OSError: If the document could not be written
        """
        self.write_json(state.to_dict())


class LearningTracker:
    """
    Applies quality commits and learning updates to the learning state.

    Usage:
        tracker = LearningTracker(store)
        state = tracker.commit_overview(overview, metrics, snapshot)
        tracker.record_learning_update({"bestSettings": {...}})
    """

    def __init__(
        self,
        store: Optional[LearningStateStore] = None,
        config: Optional[LearningConfig] = None,
        cache_config: Optional[CacheConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or get_config().learning
        self.cache_config = cache_config or get_config().cache
        self.store = store or LearningStateStore(config=self.config)
        self.clock = clock or utc_now

    def load_state(self) -> LearningState:
        return self.store.load()

    def current_iteration(self) -> int:
        return self.store.load().learning_iterations

    # -------------------------------------------------------------------------
    # Derived signals
    # -------------------------------------------------------------------------

    def health_score(self, health: Any) -> int:
        """Numeric score of a health level; 0 for unknown levels."""
        value = getattr(health, 'value', health)
        return self.config.health_scores.get(value, 0)

    def trend_direction(self, history: Iterable[TrendEntry]) -> TrendDirection:
        """
        Compare the first and last average quality in the recent window.

        Needs at least trend_min_entries entries in total.
        """
        entries = list(history)
        if len(entries) < self.config.trend_min_entries:
            return TrendDirection.INSUFFICIENT_DATA

        recent = entries[-self.config.trend_window:]
        change = recent[-1].average_quality - recent[0].average_quality

        if change > self.config.trend_delta:
            return TrendDirection.IMPROVING
        if change < -self.config.trend_delta:
            return TrendDirection.DECLINING
        return TrendDirection.STABLE

    def cache_efficiency(self, snapshot: CachedQualitySnapshot, now: datetime) -> int:
        """Remaining freshness of a snapshot as a percentage of its max age."""
        max_age = self.cache_config.max_age_minutes
        if max_age <= 0:
            return 0
        return round((1 - snapshot.age_minutes(now) / max_age) * 100)

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def commit_overview(
        self,
        overview: QualityOverview,
        metrics: List[QualityMetric],
        snapshot: CachedQualitySnapshot
    ) -> LearningState:
        """
        Record a freshly cached measurement pass.

        Appends a trend entry, refreshes per-voice analytics and system
        performance, and advances the iteration counter by one.

        Returns:
            The state that was written

        Raises:
            OSError: If the learning document could not be written
        """
        with self.store.lock:
            state = self.store.load()
            now = self.clock()
            timestamp = format_timestamp(now)

            state.quality_trends.append(TrendEntry.from_overview(overview, timestamp))

            for metric in metrics:
                analytics = dict(state.voice_analytics.get(metric.id) or {})
                analytics.update({
                    'lastQualityCheck': metric.last_tested,
                    'qualityScore': metric.overall,
                    'productionReady': metric.is_production_ready,
                    'transcriptionAccuracy': metric.transcription_accuracy,
                    'audioClarity': metric.audio_clarity,
                    'naturalness': metric.naturalness,
                    'recommendations': list(metric.recommendations),
                })
                state.voice_analytics[metric.id] = analytics

            direction = self.trend_direction(state.quality_trends)
            state.system_performance = SystemPerformance(
                last_quality_sync=timestamp,
                average_system_quality=overview.average_quality,
                system_health_score=self.health_score(overview.system_health),
                quality_trend_direction=direction.value,
                cache_efficiency=self.cache_efficiency(snapshot, now),
            )
            state.learning_iterations += 1

            self.store.save(state)

        log_learning_update(
            iteration=state.learning_iterations,
            trend_count=len(state.quality_trends),
            trend_direction=direction.value,
            health_score=state.system_performance.system_health_score,
            logger=logger
        )
        return state

    def record_learning_update(self, updates: Optional[Dict[str, Any]] = None) -> int:
        """
        Record one iteration of the external learning process.

        Analytics maps and best settings are merged key by key; other keys
        replace their stored values. The iteration counter cannot be set
        directly.

        Args:
            updates: Learning document fragment (camelCase keys)

        Returns:
            The new iteration number
        """
        updates = dict(updates or {})
        with self.store.lock:
            state = self.store.load()

            state.voice_analytics.update(updates.pop('voiceAnalytics', None) or {})
            state.cloning_analytics.update(updates.pop('cloningAnalytics', None) or {})
            state.best_settings.update(updates.pop('bestSettings', None) or {})
            for ignored in ('learningIterations', 'qualityTrends', 'systemPerformance'):
                updates.pop(ignored, None)

            state.extra.update(updates)
            state.extra['lastUpdated'] = format_timestamp(self.clock())
            state.learning_iterations += 1

            self.store.save(state)

        logger.info(f"Learning process advanced to iteration {state.learning_iterations}")
        return state.learning_iterations

    def integration_status(self, enabled: bool = True) -> LearningIntegrationStatus:
        state = self.store.load()
        return LearningIntegrationStatus(
            enabled=enabled,
            last_update=state.system_performance.last_quality_sync if state.system_performance else None,
            iteration_count=state.learning_iterations,
            quality_trends=len(state.quality_trends),
        )
