"""Core data models for the locator self-healing system."""

from .healing_models import (
    Point,
    Rect,
    LocatedElement,
    SemanticFingerprint,
    ConfidenceFactors,
    ConfidenceScore,
    HealingResult,
    HealingHistoryEntry,
    HealingStatistics,
    UnstableElement,
    DescriptionResult,
    RecoveryOutcome,
    SelfHealingConfig,
    HealingStrategy,
    HealingAction,
    HealingFailureReason,
    now_ms
)

__all__ = [
    "Point",
    "Rect",
    "LocatedElement",
    "SemanticFingerprint",
    "ConfidenceFactors",
    "ConfidenceScore",
    "HealingResult",
    "HealingHistoryEntry",
    "HealingStatistics",
    "UnstableElement",
    "DescriptionResult",
    "RecoveryOutcome",
    "SelfHealingConfig",
    "HealingStrategy",
    "HealingAction",
    "HealingFailureReason",
    "now_ms"
]
