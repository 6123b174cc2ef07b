"""Read-only rollups over healing history and fingerprints."""

from typing import List

from ..core.logging_config import get_healing_logger
from ..core.models import (
    HealingHistoryEntry,
    HealingStatistics,
    HealingStrategy,
    SemanticFingerprint,
    UnstableElement,
)
from ..storage.fingerprint_store import FingerprintStore
from ..storage.history_store import HistoryStore

UNSTABLE_ELEMENTS_LIMIT = 10


class StatisticsAggregator:
    """Computes healing statistics from the stores."""

    def __init__(self, fingerprint_store: FingerprintStore, history_store: HistoryStore):
        self.fingerprint_store = fingerprint_store
        self.history_store = history_store

    async def get_statistics(self) -> HealingStatistics:
        """Get healing statistics.

        Averages are taken over successful attempts only. Unstable elements
        are the most repaired fingerprints, highest healing_count first.

        Returns:
            HealingStatistics rollup
        """
        history = await self.history_store.get_all()
        fingerprints = await self.fingerprint_store.get_all()

        statistics = summarize_history(history)
        statistics.unstable_elements = rank_unstable_elements(fingerprints)

        get_healing_logger("statistics").debug(
            f"Computed statistics over {statistics.total_attempts} attempts "
            f"and {len(fingerprints)} fingerprints"
        )
        return statistics


def summarize_history(history: List[HealingHistoryEntry]) -> HealingStatistics:
    total_attempts = len(history)
    successful = [entry.result for entry in history if entry.result.success]
    success_count = len(successful)

    if successful:
        average_confidence = round(sum(r.confidence for r in successful) / success_count)
        average_time_cost = round(sum(r.time_cost for r in successful) / success_count)
    else:
        average_confidence = 0
        average_time_cost = 0

    return HealingStatistics(
        total_attempts=total_attempts,
        success_count=success_count,
        failure_count=total_attempts - success_count,
        success_rate=round(success_count / total_attempts * 100, 2) if total_attempts else 0.0,
        normal_success_count=sum(1 for r in successful if r.strategy == HealingStrategy.NORMAL),
        deep_think_success_count=sum(1 for r in successful if r.strategy == HealingStrategy.DEEP_THINK),
        average_confidence=average_confidence,
        average_time_cost=average_time_cost
    )


def rank_unstable_elements(fingerprints: List[SemanticFingerprint],
                           limit: int = UNSTABLE_ELEMENTS_LIMIT) -> List[UnstableElement]:
    # Never-healed fingerprints are not unstable
    repaired = [f for f in fingerprints if f.healing_count > 0]
    repaired.sort(key=lambda f: f.healing_count, reverse=True)
    return [
        UnstableElement(
            step_id=f.step_id,
            description=f.semantic_description,
            healing_count=f.healing_count
        )
        for f in repaired[:limit]
    ]
