"""
Cluster Engine Module
=====================
Groups speaker records from many videos into candidate voices and reports
the voices that appear in more than one video.

Algorithm:
1. Partition records into voice groups by signature (first-seen order)
2. Discard groups whose records all come from a single video
3. Score each remaining group and build a CrossVideoMatch
4. Rank by confidence x video count x average quality (stable)
5. Optionally keep only the top N for display

An empty record list yields no matches and an all-zero summary.
"""

from typing import Dict, List, Optional

from ..models import (
    SpeakerRecord,
    VoiceSignature,
    MatchMember,
    CrossVideoMatch,
    VoiceTrackingSummary,
)
from ..config import AppConfig, get_config
from ..logging_config import get_identity_logger, log_match_summary
from .signature import SignatureBuilder
from .scorer import MatchScorer, round_half_up
from .ranker import MatchRanker

logger = get_identity_logger()


class ClusterEngine:
    """
    Resolves cross-video voice identities.

    Usage:
        engine = ClusterEngine()
        matches = engine.find_cross_video_matches(records)
        summary = engine.summarize(records)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        signature_builder: Optional[SignatureBuilder] = None,
        scorer: Optional[MatchScorer] = None,
        ranker: Optional[MatchRanker] = None
    ):
        self.config = config or get_config()
        self.signature_builder = signature_builder or SignatureBuilder(self.config.signature)
        self.scorer = scorer or MatchScorer(self.config.matching)
        self.ranker = ranker or MatchRanker()

    def group_records(
        self,
        records: List[SpeakerRecord]
    ) -> Dict[VoiceSignature, List[SpeakerRecord]]:
        """
        Partition records by signature.

        Returns:
            Groups keyed by signature, in the order each signature first appears
        """
        groups: Dict[VoiceSignature, List[SpeakerRecord]] = {}
        for record in records:
            signature = self.signature_builder.build(record)
            groups.setdefault(signature, []).append(record)
        return groups

    def build_match(
        self,
        signature: VoiceSignature,
        group: List[SpeakerRecord]
    ) -> Optional[CrossVideoMatch]:
        """
        Build a match for one group.

        Returns:
            The match, or None if the group does not span two videos
        """
        video_ids = {record.video_id for record in group}
        if len(group) < 2 or len(video_ids) < 2:
            return None

        breakdown = self.scorer.score(group)
        average_quality = sum(r.quality_score or 0.0 for r in group) / len(group)
        first = group[0]

        return CrossVideoMatch(
            signature=signature.key,
            speaker_name=first.name,
            accent=first.accent,
            video_count=len(video_ids),
            speaker_count=len(group),
            average_quality=round_half_up(average_quality),
            confidence=breakdown.confidence,
            members=[MatchMember.from_record(r) for r in group],
            score=breakdown,
        )

    def find_cross_video_matches(
        self,
        records: List[SpeakerRecord],
        top_n: Optional[int] = None
    ) -> List[CrossVideoMatch]:
        """
        Find voices that appear in two or more videos.

        Args:
            records: All speaker records on file
            top_n: Optional display limit

        Returns:
            Matches, most significant first
        """
        matches = self._collect_matches(self.group_records(records))
        return self.ranker.top_n(matches, top_n)

    def summarize(
        self,
        records: List[SpeakerRecord],
        top_n: Optional[int] = None
    ) -> VoiceTrackingSummary:
        """
        Build the voice tracking overview for all records.

        Args:
            records: All speaker records on file
            top_n: Number of top voices to include (defaults to config.matching.top_n)

        Returns:
            VoiceTrackingSummary
        """
        if not records:
            logger.info("No speaker records to analyze")
            return VoiceTrackingSummary()

        limit = self.config.matching.top_n if top_n is None else top_n

        groups = self.group_records(records)
        ranked = self.ranker.rank(self._collect_matches(groups))
        top_voices = ranked[:max(0, limit)]

        distribution: Dict[str, int] = {}
        for record in records:
            accent = record.accent or 'Unknown'
            distribution[accent] = distribution.get(accent, 0) + 1

        average_quality = sum(r.quality_score or 0.0 for r in records) / len(records)
        videos = {r.video_id for r in records if r.video_id}

        summary = VoiceTrackingSummary(
            total_speakers=len(records),
            unique_voices=len(groups),
            cross_video_matches=len(ranked),
            top_voices=top_voices,
            voice_distribution=distribution,
            most_frequent_voice=top_voices[0].speaker_name if top_voices else "None",
            average_quality=round_half_up(average_quality),
            total_videos_with_speakers=len(videos),
            highest_confidence_match=top_voices[0].confidence if top_voices else 0.0,
        )

        log_match_summary(
            total_speakers=summary.total_speakers,
            unique_voices=summary.unique_voices,
            match_count=summary.cross_video_matches,
            top_confidence=summary.highest_confidence_match,
            logger=logger
        )
        return summary

    def _collect_matches(
        self,
        groups: Dict[VoiceSignature, List[SpeakerRecord]]
    ) -> List[CrossVideoMatch]:
        matches = []
        for signature, group in groups.items():
            match = self.build_match(signature, group)
            if match is not None:
                matches.append(match)
            elif len(group) > 1:
                logger.debug(f"Discarded single-video group {signature.key}")
        return matches


def find_cross_video_matches(
    records: List[SpeakerRecord],
    top_n: Optional[int] = None
) -> List[CrossVideoMatch]:
    """
    Convenience function using the default configuration.

    Args:
        records: All speaker records on file
        top_n: Optional display limit

    Returns:
        Ranked matches
    """
    return ClusterEngine().find_cross_video_matches(records, top_n)
