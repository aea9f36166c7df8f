"""
Match Scorer Module
===================
Computes how confident we are that a group of speaker records is one voice.

The confidence follows the general form:
    C(G) = w_n * name(G) + w_a * accent(G) + w_q * quality(G)

where each component is on a 0-100 scale:
- name(G):    100 when every record has the same name, minus a fixed penalty
              for every additional distinct name
- accent(G):  the same rule applied to accents, with a larger penalty
- quality(G): mean detector quality (0-10) rescaled to 0-100

Groups of fewer than two records score 0.
"""

import math
import logging
from typing import Dict, List, Optional, Sequence, Any

from ..models import SpeakerRecord, MatchScore
from ..config import MatchScoringConfig, get_config

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round to `digits` decimals with halves rounded up (2.25 -> 2.3)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def consistency_score(values: Sequence[Any], penalty: float) -> float:
    """
    Score how consistent a set of labels is.

    Args:
        values: Labels of all records in the group
        penalty: Points lost per additional distinct label

    Returns:
        100 if all labels are identical, else max(0, 100 - penalty * (distinct - 1))
    """
    distinct = len(set(values))
    if distinct <= 1:
        return 100.0
    return max(0.0, 100.0 - penalty * (distinct - 1))


class MatchScorer:
    """
    Scores voice groups.

    Usage:
        scorer = MatchScorer()
        breakdown = scorer.score(group)
        breakdown.confidence  # 94.0
    """

    def __init__(self, config: Optional[MatchScoringConfig] = None):
        self.config = config or get_config().matching

    @property
    def weights(self) -> Dict[str, float]:
        return {
            'name_weight': self.config.name_weight,
            'accent_weight': self.config.accent_weight,
            'quality_weight': self.config.quality_weight,
        }

    def name_score(self, group: List[SpeakerRecord]) -> float:
        return consistency_score([r.name or '' for r in group], self.config.name_penalty)

    def accent_score(self, group: List[SpeakerRecord]) -> float:
        return consistency_score([r.accent or '' for r in group], self.config.accent_penalty)

    def quality_score(self, group: List[SpeakerRecord]) -> float:
        """Mean record quality rescaled to 0-100 and clamped."""
        if not group:
            return 0.0
        qualities = [r.quality_score or 0.0 for r in group]
        mean = sum(qualities) / len(qualities)
        scaled = mean * (100.0 / self.config.quality_scale)
        return min(100.0, max(0.0, scaled))

    def score(self, group: List[SpeakerRecord]) -> MatchScore:
        """
        Score a voice group.

        Args:
            group: Records sharing a signature

        Returns:
            MatchScore with the confidence rounded to one decimal
        """
        if len(group) < 2:
            return MatchScore(confidence=0.0, **self.weights)

        name = self.name_score(group)
        accent = self.accent_score(group)
        quality = self.quality_score(group)

        confidence = (
            name * self.config.name_weight
            + accent * self.config.accent_weight
            + quality * self.config.quality_weight
        )
        confidence = min(100.0, max(0.0, round_half_up(confidence)))

        return MatchScore(
            confidence=confidence,
            name_score=name,
            accent_score=accent,
            quality_score=quality,
            **self.weights
        )

    def confidence(self, group: List[SpeakerRecord]) -> float:
        """Confidence only, 0-100."""
        return self.score(group).confidence

    def explain(self, breakdown: MatchScore) -> Dict[str, Any]:
        """
        Explain how a confidence was computed.

        Returns detailed breakdown for inspection in reports.
        """
        components = {
            'name': {
                'score': breakdown.name_score,
                'weight': breakdown.name_weight,
                'contribution': breakdown.weighted_name,
            },
            'accent': {
                'score': breakdown.accent_score,
                'weight': breakdown.accent_weight,
                'contribution': breakdown.weighted_accent,
            },
            'quality': {
                'score': breakdown.quality_score,
                'weight': breakdown.quality_weight,
                'contribution': breakdown.weighted_quality,
            },
        }
        weakest = min(components.items(), key=lambda item: item[1]['score'])
        return {
            'confidence': breakdown.confidence,
            'components': components,
            'weakest_component': weakest[0],
        }
