"""
Voice Identity Module
=====================
Resolves which speaker records across videos belong to the same voice.

This module implements:
- Signature construction from name, accent and voice characteristics
- Match confidence scoring with configurable weights
- Clustering of records into cross-video matches
- Significance ranking

Usage:
    from voicelab.identity import ClusterEngine

    engine = ClusterEngine()
    matches = engine.find_cross_video_matches(records, top_n=10)
"""

from .signature import SignatureBuilder, create_voice_signature
from .scorer import MatchScorer
from .ranker import MatchRanker, RankingResult
from .cluster import ClusterEngine, find_cross_video_matches

__all__ = [
    'SignatureBuilder',
    'create_voice_signature',
    'MatchScorer',
    'MatchRanker',
    'RankingResult',
    'ClusterEngine',
    'find_cross_video_matches',
]
