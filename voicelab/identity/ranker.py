"""
Match Ranking Module
====================
Ranks cross-video matches by significance.

Features:
- Significance ranking (confidence x video count x average quality)
- Stable ordering: ties keep their input order
- Top-N selection for display
- Ranking statistics
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..models import CrossVideoMatch

logger = logging.getLogger(__name__)


@dataclass
class RankingResult:
    """Result of ranking operation."""
    ranked_matches: List[CrossVideoMatch]
    total_count: int
    confidence_range: Tuple[float, float]  # (min, max)
    confidence_mean: float
    significance_mean: float


class MatchRanker:
    """
    Ranks cross-video matches, most significant first.

    Matches are not modified; ranking returns copies with their `rank`
    field set (1 = best).

    Usage:
        ranker = MatchRanker()
        ranked = ranker.rank(matches)
        top_10 = ranker.top_n(matches, 10)
    """

    def rank(self, matches: List[CrossVideoMatch]) -> List[CrossVideoMatch]:
        """
        Rank matches by significance, descending.

        Python's sort is stable, so matches with equal significance keep the
        order they were produced in.

        Args:
            matches: Matches in production order

        Returns:
            Ranked copies (best first)
        """
        if not matches:
            return []

        ordered = sorted(matches, key=lambda m: m.significance, reverse=True)
        return [replace(match, rank=rank) for rank, match in enumerate(ordered, 1)]

    def top_n(
        self,
        matches: List[CrossVideoMatch],
        n: Optional[int],
        min_confidence: Optional[float] = None
    ) -> List[CrossVideoMatch]:
        """
        Get the N most significant matches.

        Truncation is a display concern; the ranks of the returned matches are
        their positions in the full ranking.

        Args:
            matches: Matches to rank
            n: Number of matches to return (None for all)
            min_confidence: Optional minimum confidence

        Returns:
            Top N ranked matches
        """
        ranked = self.rank(matches)

        if min_confidence is not None:
            ranked = [m for m in ranked if m.confidence >= min_confidence]

        if n is None:
            return ranked
        return ranked[:max(0, n)]

    def get_ranking_result(self, matches: List[CrossVideoMatch]) -> RankingResult:
        """
        Get detailed ranking statistics.

        Args:
            matches: Matches to rank

        Returns:
            RankingResult with statistics
        """
        ranked = self.rank(matches)

        if not ranked:
            return RankingResult(
                ranked_matches=[],
                total_count=0,
                confidence_range=(0.0, 0.0),
                confidence_mean=0.0,
                significance_mean=0.0
            )

        confidences = [m.confidence for m in ranked]
        significances = [m.significance for m in ranked]

        return RankingResult(
            ranked_matches=ranked,
            total_count=len(ranked),
            confidence_range=(min(confidences), max(confidences)),
            confidence_mean=sum(confidences) / len(confidences),
            significance_mean=sum(significances) / len(significances)
        )
