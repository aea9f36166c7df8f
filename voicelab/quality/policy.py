"""
Cache Invalidation Policy Module
================================
Decides whether a stored quality snapshot may be served.

Rules, evaluated in order; the first failing rule makes the snapshot
unservable:
1. A snapshot exists.
2. now < expires_at                      (max age, default 30 minutes)
3. now - created_at < force refresh      (hard ceiling, default 4 hours)
4. iteration - captured < threshold      (learning progress, default 5)

Rule 4 only applies while learning integration is enabled. A forced refresh
bypasses every rule and always reports the snapshot as unservable.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..models import CachedQualitySnapshot, CacheReason
from ..config import CacheConfig, get_config

logger = logging.getLogger(__name__)


@dataclass
class PolicyDecision:
    """Outcome of evaluating the policy against one snapshot."""
    servable: bool
    reason: CacheReason
    age_minutes: Optional[float] = None
    iteration_delta: Optional[int] = None

    def __bool__(self) -> bool:
        return self.servable


class CacheInvalidationPolicy:
    """
    Usage:
        policy = CacheInvalidationPolicy(config.cache)
        decision = policy.evaluate(snapshot, learning_iteration, now)
        if decision.servable:
            ...
    """

    def __init__(self, config: Optional[CacheConfig] = None):
        self.config = config or get_config().cache

    def evaluate(
        self,
        snapshot: Optional[CachedQualitySnapshot],
        learning_iteration: int,
        now: datetime,
        force_refresh: bool = False
    ) -> PolicyDecision:
        """
        Evaluate the rules against a snapshot.

        Args:
            snapshot: Stored snapshot, or None
            learning_iteration: Current learning iteration
            now: Evaluation time (aware UTC)
            force_refresh: Caller explicitly asked for fresh data

        Returns:
            PolicyDecision naming the deciding rule
        """
        if force_refresh:
            return PolicyDecision(servable=False, reason=CacheReason.FORCED)

        if snapshot is None:
            return PolicyDecision(servable=False, reason=CacheReason.MISSING)

        age_minutes = snapshot.age_minutes(now)
        iteration_delta = learning_iteration - snapshot.learning_iteration

        if now >= snapshot.expires_at:
            reason = CacheReason.EXPIRED
        elif age_minutes >= self.config.force_refresh_minutes:
            reason = CacheReason.FORCE_REFRESH
        elif (
            self.config.enable_learning_integration
            and iteration_delta >= self.config.learning_update_threshold
        ):
            reason = CacheReason.LEARNING_ADVANCED
        else:
            reason = CacheReason.VALID

        return PolicyDecision(
            servable=reason is CacheReason.VALID,
            reason=reason,
            age_minutes=age_minutes,
            iteration_delta=iteration_delta,
        )

    def is_servable(
        self,
        snapshot: Optional[CachedQualitySnapshot],
        learning_iteration: int,
        now: datetime,
        force_refresh: bool = False
    ) -> bool:
        return self.evaluate(snapshot, learning_iteration, now, force_refresh).servable
