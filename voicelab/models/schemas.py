"""
Data Models and Schemas Module
==============================
Defines structured data representations for voice identity resolution and
the quality cache.

This module provides:
- Type-safe dataclasses for all data entities
- Serialization/deserialization methods
- Timestamp helpers shared by the persisted documents

Persisted documents (the quality snapshot and the learning state) use the
camelCase keys the dashboard reads, so the quality models override to_dict()
and from_dict() explicitly. Report models (matches, summaries) use the
snake_case default.

Usage:
    from voicelab.models import SpeakerRecord, QualityMetric, QualityOverview

    record = SpeakerRecord.from_dict(detector_output)
    metric = QualityMetric(id="v1", voice_name="Alex", overall=0.91, ...)
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum
import json


# =============================================================================
# ENUMS
# =============================================================================

class SystemHealth(str, Enum):
    """Four-level health of the voice catalogue."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class TrendDirection(str, Enum):
    """Direction of the average quality over the recent trend window."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class CacheReason(str, Enum):
    """Why a cached snapshot was or was not served."""
    VALID = "valid"
    FORCED = "forced"
    MISSING = "missing"
    EXPIRED = "expired"
    FORCE_REFRESH = "force_refresh"
    LEARNING_ADVANCED = "learning_advanced"


# =============================================================================
# TIMESTAMP HELPERS
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with a trailing 'Z'."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a trailing 'Z'. Naive values are taken to be UTC.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# BASE CLASSES
# =============================================================================

@dataclass
class BaseModel:
    """Base class for all data models with common serialization methods."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary, handling nested objects."""
        def convert(obj):
            if isinstance(obj, BaseModel):
                return obj.to_dict()
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, datetime):
                return format_timestamp(obj)
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, (list, tuple)):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj

        return {k: convert(v) for k, v in asdict(self).items()}

    def to_json(self, indent: int = 2) -> str:
        """Convert model to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaseModel":
        """Create model from dictionary. Override in subclasses for nested objects."""
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> "BaseModel":
        """Create model from JSON string."""
        return cls.from_dict(json.loads(json_str))


# =============================================================================
# SPEAKER RECORDS AND SIGNATURES
# =============================================================================

@dataclass
class SpeakerRecord(BaseModel):
    """
    A speaker detected in one video by the external detector.

    Records are read-only to the core; clustering never modifies them.

    Attributes:
        speaker_id: Detector-assigned identifier
        name: Display name the detector gave the speaker
        accent: Accent label (may be missing)
        voice_characteristics: Free-form map (pitch, tone, pace, ...)
        quality_score: Detector quality score on a 0-10 scale
        video_id: Source video the record was detected in
        video_uri: Optional source URI of the video
        segment_count: Number of audio segments attributed to the speaker
    """
    speaker_id: str
    video_id: str
    name: str = ""
    accent: Optional[str] = None
    voice_characteristics: Dict[str, Any] = field(default_factory=dict)
    quality_score: float = 0.0
    video_uri: Optional[str] = None
    segment_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpeakerRecord":
        """
        Create from a detector record.

        Both snake_case and the detector's camelCase keys are accepted; missing
        optional fields and unreadable numbers fall back to their defaults.
        """
        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        characteristics = pick('voice_characteristics', 'voiceCharacteristics', default={})
        if not isinstance(characteristics, dict):
            characteristics = {}

        def number(value, cast, default):
            try:
                return cast(value)
            except (TypeError, ValueError):
                return default

        segments = pick('segment_count', 'segmentCount', default=None)
        if segments is None and isinstance(data.get('audioSegments'), list):
            segments = len(data['audioSegments'])

        return cls(
            speaker_id=str(pick('speaker_id', 'speakerId', 'id', default='')),
            video_id=str(pick('video_id', 'videoId', default='unknown')),
            name=pick('name', default='') or '',
            accent=pick('accent'),
            voice_characteristics=characteristics,
            quality_score=number(pick('quality_score', 'qualityScore', default=0.0), float, 0.0),
            video_uri=pick('video_uri', 'videoUri'),
            segment_count=number(segments or 0, int, 0),
        )


@dataclass(frozen=True)
class VoiceSignature:
    """
    Coarse identity key for a speaker record.

    Equal signatures make two records candidates for the same voice; they are
    not proof. Signatures are recomputed on demand and never persisted.

    Attributes:
        name: Lowercase alphanumeric name
        accent: Lowercase accent label
        characteristics: (characteristic, bucket) pairs in configured order
        separator: Separator used in the string key
    """
    name: str
    accent: str
    characteristics: Tuple[Tuple[str, str], ...] = ()
    separator: str = "_"

    def bucket(self, characteristic: str) -> Optional[str]:
        """Get the bucket of one characteristic, if it is part of the signature."""
        for key, value in self.characteristics:
            if key == characteristic:
                return value
        return None

    @property
    def pitch(self) -> Optional[str]:
        return self.bucket("pitch")

    @property
    def tone(self) -> Optional[str]:
        return self.bucket("tone")

    @property
    def key(self) -> str:
        """String form, e.g. 'alex_american_medium_neutral'."""
        parts = [self.name, self.accent] + [value for _, value in self.characteristics]
        return self.separator.join(parts)

    def __str__(self) -> str:
        return self.key


# =============================================================================
# CROSS-VIDEO MATCHING
# =============================================================================

@dataclass
class MatchScore(BaseModel):
    """
    Breakdown of a voice group's match confidence.

    Attributes:
        confidence: Weighted combination, 0-100, one decimal
        name_score: Name consistency score (0-100)
        accent_score: Accent consistency score (0-100)
        quality_score: Mean speaker quality rescaled to 0-100
        name_weight: Weight applied to name_score
        accent_weight: Weight applied to accent_score
        quality_weight: Weight applied to quality_score
    """
    confidence: float
    name_score: float = 0.0
    accent_score: float = 0.0
    quality_score: float = 0.0
    name_weight: float = 0.0
    accent_weight: float = 0.0
    quality_weight: float = 0.0

    @property
    def weighted_name(self) -> float:
        return self.name_score * self.name_weight

    @property
    def weighted_accent(self) -> float:
        return self.accent_score * self.accent_weight

    @property
    def weighted_quality(self) -> float:
        return self.quality_score * self.quality_weight


@dataclass
class MatchMember(BaseModel):
    """One speaker record inside a cross-video match."""
    speaker_id: str
    name: str
    video_id: str
    quality: float = 0.0
    segments: int = 0

    @classmethod
    def from_record(cls, record: SpeakerRecord) -> "MatchMember":
        return cls(
            speaker_id=record.speaker_id,
            name=record.name,
            video_id=record.video_id or 'unknown',
            quality=record.quality_score or 0.0,
            segments=record.segment_count,
        )


@dataclass
class CrossVideoMatch(BaseModel):
    """
    A group of speaker records spanning at least two videos that is judged to
    be one real voice.

    Matches are produced by the cluster engine and not modified afterwards;
    ranking returns ranked copies.

    Attributes:
        signature: Signature key shared by all members
        speaker_name: Name of the first member
        accent: Accent of the first member
        video_count: Distinct source videos
        speaker_count: Member records
        average_quality: Mean member quality (0-10, one decimal)
        confidence: Match confidence (0-100)
        members: Member records in input order
        rank: Position after ranking (1 = best, 0 = unranked)
        score: Confidence breakdown
    """
    signature: str
    speaker_name: str
    accent: Optional[str]
    video_count: int
    speaker_count: int
    average_quality: float
    confidence: float
    members: List[MatchMember] = field(default_factory=list)
    rank: int = 0
    score: Optional[MatchScore] = None

    @property
    def significance(self) -> float:
        """Ranking weight: confidence x video count x average quality."""
        return self.confidence * self.video_count * self.average_quality

    @property
    def video_ids(self) -> List[str]:
        seen = []
        for member in self.members:
            if member.video_id not in seen:
                seen.append(member.video_id)
        return seen

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrossVideoMatch":
        """Create from dictionary with nested members."""
        return cls(
            signature=data['signature'],
            speaker_name=data.get('speaker_name', ''),
            accent=data.get('accent'),
            video_count=data.get('video_count', 0),
            speaker_count=data.get('speaker_count', 0),
            average_quality=data.get('average_quality', 0.0),
            confidence=data.get('confidence', 0.0),
            members=[MatchMember(**m) for m in data.get('members', [])],
            rank=data.get('rank', 0),
            score=MatchScore(**data['score']) if data.get('score') else None,
        )


@dataclass
class VoiceTrackingSummary(BaseModel):
    """
    Overview of a clustering pass over all speaker records on file.

    Attributes:
        total_speakers: Speaker records considered
        unique_voices: Distinct signature groups
        cross_video_matches: Number of groups spanning two or more videos
        top_voices: Best-ranked matches (truncated for display)
        voice_distribution: Record count per accent
        most_frequent_voice: Name of the best-ranked match, or "None"
        average_quality: Mean quality over all records (one decimal)
        total_videos_with_speakers: Distinct videos with at least one record
        highest_confidence_match: Confidence of the best-ranked match
    """
    total_speakers: int = 0
    unique_voices: int = 0
    cross_video_matches: int = 0
    top_voices: List[CrossVideoMatch] = field(default_factory=list)
    voice_distribution: Dict[str, int] = field(default_factory=dict)
    most_frequent_voice: str = "None"
    average_quality: float = 0.0
    total_videos_with_speakers: int = 0
    highest_confidence_match: float = 0.0


# =============================================================================
# QUALITY MEASUREMENTS
# =============================================================================

@dataclass
class QualityMetric(BaseModel):
    """
    Quality snapshot for a single cloned voice.

    Metrics are replaced wholesale on every measurement pass.

    Attributes:
        id: Provider voice identifier
        voice_name: Display name
        overall: Overall quality (0-1)
        transcription_accuracy: Round-trip transcription accuracy (0-1)
        audio_clarity: Audio clarity (0-1)
        naturalness: Naturalness (0-1)
        is_production_ready: Whether the voice passed the production bar
        last_tested: ISO timestamp of the measurement
        recommendations: Human-readable follow-ups
    """
    id: str
    voice_name: str
    overall: float = 0.0
    transcription_accuracy: float = 0.0
    audio_clarity: float = 0.0
    naturalness: float = 0.0
    is_production_ready: bool = False
    last_tested: str = field(default_factory=lambda: format_timestamp(utc_now()))
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'voiceName': self.voice_name,
            'overall': self.overall,
            'transcriptionAccuracy': self.transcription_accuracy,
            'audioClarity': self.audio_clarity,
            'naturalness': self.naturalness,
            'isProductionReady': self.is_production_ready,
            'lastTested': self.last_tested,
            'recommendations': list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QualityMetric":
        return cls(
            id=data['id'],
            voice_name=data.get('voiceName', data.get('voice_name', '')),
            overall=float(data.get('overall', 0.0)),
            transcription_accuracy=float(data.get('transcriptionAccuracy', data.get('transcription_accuracy', 0.0))),
            audio_clarity=float(data.get('audioClarity', data.get('audio_clarity', 0.0))),
            naturalness=float(data.get('naturalness', 0.0)),
            is_production_ready=bool(data.get('isProductionReady', data.get('is_production_ready', False))),
            last_tested=data.get('lastTested', data.get('last_tested', '')),
            recommendations=list(data.get('recommendations', [])),
        )


@dataclass
class QualityOverview(BaseModel):
    """
    Aggregate over all quality metrics of one measurement pass.

    Attributes:
        total_voices: Number of measured voices
        average_quality: Mean overall score (0-1)
        production_ready: Voices marked production ready
        needs_improvement: total_voices - production_ready
        system_health: Four-level health derived from the two above
        last_calibration: ISO date of the measurement pass
    """
    total_voices: int = 0
    average_quality: float = 0.0
    production_ready: int = 0
    needs_improvement: int = 0
    system_health: SystemHealth = SystemHealth.POOR
    last_calibration: str = field(default_factory=lambda: utc_now().date().isoformat())

    @property
    def production_ready_ratio(self) -> float:
        if self.total_voices == 0:
            return 0.0
        return self.production_ready / self.total_voices

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalVoices': self.total_voices,
            'averageQuality': self.average_quality,
            'productionReady': self.production_ready,
            'needsImprovement': self.needs_improvement,
            'systemHealth': self.system_health.value,
            'lastCalibration': self.last_calibration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QualityOverview":
        total = int(data.get('totalVoices', data.get('total_voices', 0)))
        ready = int(data.get('productionReady', data.get('production_ready', 0)))
        return cls(
            total_voices=total,
            average_quality=float(data.get('averageQuality', data.get('average_quality', 0.0))),
            production_ready=ready,
            needs_improvement=int(data.get('needsImprovement', data.get('needs_improvement', total - ready))),
            system_health=SystemHealth(data.get('systemHealth', data.get('system_health', 'poor'))),
            last_calibration=data.get('lastCalibration', data.get('last_calibration', '')),
        )


@dataclass
class CachedQualitySnapshot(BaseModel):
    """
    The persisted unit of cached quality data.

    A snapshot is valid or invalid as a whole; individual metrics are never
    invalidated on their own.

    Invariant: expires_at == created_at + max_age at write time.

    Attributes:
        overview: Aggregate of the measurement pass
        metrics: Per-voice measurements
        created_at: When the snapshot was written
        expires_at: When the snapshot stops being servable
        cache_version: Format version
        learning_iteration: Learning iteration at write time
    """
    overview: QualityOverview
    metrics: List[QualityMetric]
    created_at: datetime
    expires_at: datetime
    cache_version: str = "1.0.0"
    learning_iteration: int = 0

    def age_minutes(self, now: datetime) -> float:
        """Minutes elapsed since the snapshot was written."""
        return (now - self.created_at).total_seconds() / 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            'overview': self.overview.to_dict(),
            'metrics': [m.to_dict() for m in self.metrics],
            'timestamp': format_timestamp(self.created_at),
            'expiresAt': format_timestamp(self.expires_at),
            'cacheVersion': self.cache_version,
            'learningIteration': self.learning_iteration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedQualitySnapshot":
        return cls(
            overview=QualityOverview.from_dict(data['overview']),
            metrics=[QualityMetric.from_dict(m) for m in data.get('metrics', [])],
            created_at=parse_timestamp(data['timestamp']),
            expires_at=parse_timestamp(data['expiresAt']),
            cache_version=data.get('cacheVersion', '1.0.0'),
            learning_iteration=int(data.get('learningIteration') or 0),
        )


# =============================================================================
# LEARNING STATE ENTRIES
# =============================================================================

@dataclass
class TrendEntry(BaseModel):
    """One point of the quality trend history."""
    timestamp: str
    average_quality: float = 0.0
    production_ready: int = 0
    system_health: str = SystemHealth.POOR.value
    total_voices: int = 0
    cache_sync: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'averageQuality': self.average_quality,
            'productionReady': self.production_ready,
            'systemHealth': self.system_health,
            'totalVoices': self.total_voices,
            'cacheSync': self.cache_sync,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendEntry":
        return cls(
            timestamp=data.get('timestamp', ''),
            average_quality=float(data.get('averageQuality', 0.0) or 0.0),
            production_ready=int(data.get('productionReady', 0) or 0),
            system_health=data.get('systemHealth', SystemHealth.POOR.value),
            total_voices=int(data.get('totalVoices', 0) or 0),
            cache_sync=bool(data.get('cacheSync', False)),
        )

    @classmethod
    def from_overview(cls, overview: QualityOverview, timestamp: str) -> "TrendEntry":
        return cls(
            timestamp=timestamp,
            average_quality=overview.average_quality,
            production_ready=overview.production_ready,
            system_health=overview.system_health.value,
            total_voices=overview.total_voices,
            cache_sync=True,
        )


@dataclass
class SystemPerformance(BaseModel):
    """
    Signals derived from the latest committed overview.

    Attributes:
        last_quality_sync: ISO timestamp of the commit
        average_system_quality: Average overall score at commit
        system_health_score: Numeric health (excellent 95 ... poor 40)
        quality_trend_direction: improving / declining / stable / insufficient_data
        cache_efficiency: Remaining freshness of the written snapshot, percent
    """
    last_quality_sync: str
    average_system_quality: float = 0.0
    system_health_score: int = 0
    quality_trend_direction: str = TrendDirection.INSUFFICIENT_DATA.value
    cache_efficiency: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lastQualitySync': self.last_quality_sync,
            'averageSystemQuality': self.average_system_quality,
            'systemHealthScore': self.system_health_score,
            'qualityTrendDirection': self.quality_trend_direction,
            'cacheEfficiency': self.cache_efficiency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemPerformance":
        return cls(
            last_quality_sync=data.get('lastQualitySync', ''),
            average_system_quality=float(data.get('averageSystemQuality', 0.0) or 0.0),
            system_health_score=int(data.get('systemHealthScore', 0) or 0),
            quality_trend_direction=data.get(
                'qualityTrendDirection', TrendDirection.INSUFFICIENT_DATA.value
            ),
            cache_efficiency=int(data.get('cacheEfficiency', 0) or 0),
        )


# =============================================================================
# DIAGNOSTICS
# =============================================================================

@dataclass
class CacheStatus(BaseModel):
    """
    Read-only diagnostic view of the stored snapshot.

    Attributes:
        is_valid: Whether the snapshot would be served right now
        last_sync: Snapshot creation timestamp
        expires_at: Snapshot expiry timestamp
        cache_age_minutes: Rounded age of the snapshot
        learning_iteration: Learning iteration captured in the snapshot
        needs_refresh: Whether a recompute is recommended
        reason: Policy rule that decided
    """
    is_valid: bool = False
    last_sync: Optional[str] = None
    expires_at: Optional[str] = None
    cache_age_minutes: int = 0
    learning_iteration: int = 0
    needs_refresh: bool = True
    reason: str = CacheReason.MISSING.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isValid': self.is_valid,
            'lastSync': self.last_sync,
            'expiresAt': self.expires_at,
            'cacheAge': self.cache_age_minutes,
            'learningIteration': self.learning_iteration,
            'needsRefresh': self.needs_refresh,
            'reason': self.reason,
        }


@dataclass
class LearningIntegrationStatus(BaseModel):
    """Summary of the learning state as seen by the cache."""
    enabled: bool = False
    last_update: Optional[str] = None
    iteration_count: int = 0
    quality_trends: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'lastUpdate': self.last_update,
            'iterationCount': self.iteration_count,
            'qualityTrends': self.quality_trends,
        }
