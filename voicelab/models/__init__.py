"""
Data Models Package
===================
Exports all data model classes for the VoiceLab core.

Usage:
    from voicelab.models import SpeakerRecord, CrossVideoMatch
    from voicelab.models import QualityMetric, QualityOverview, CachedQualitySnapshot
"""

from .schemas import (
    # Enums
    SystemHealth,
    TrendDirection,
    CacheReason,

    # Base
    BaseModel,

    # Identity
    SpeakerRecord,
    VoiceSignature,
    MatchScore,
    MatchMember,
    CrossVideoMatch,
    VoiceTrackingSummary,

    # Quality
    QualityMetric,
    QualityOverview,
    CachedQualitySnapshot,

    # Learning
    TrendEntry,
    SystemPerformance,

    # Diagnostics
    CacheStatus,
    LearningIntegrationStatus,

    # Utilities
    utc_now,
    format_timestamp,
    parse_timestamp,
)

__all__ = [
    # Enums
    'SystemHealth',
    'TrendDirection',
    'CacheReason',

    # Base
    'BaseModel',

    # Identity
    'SpeakerRecord',
    'VoiceSignature',
    'MatchScore',
    'MatchMember',
    'CrossVideoMatch',
    'VoiceTrackingSummary',

    # Quality
    'QualityMetric',
    'QualityOverview',
    'CachedQualitySnapshot',

    # Learning
    'TrendEntry',
    'SystemPerformance',

    # Diagnostics
    'CacheStatus',
    'LearningIntegrationStatus',

    # Utilities
    'utc_now',
    'format_timestamp',
    'parse_timestamp',
]
