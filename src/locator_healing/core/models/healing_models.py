"""Data models for the locator self-healing system."""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple
from enum import Enum


Point = Tuple[float, float]


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class HealingStrategy(Enum):
    """Locate strategies in escalation order."""
    NORMAL = "normal"
    DEEP_THINK = "deepThink"


class HealingAction(Enum):
    """Decision taken on a healing result."""
    AUTO_ACCEPT = "auto_accept"
    REQUEST_CONFIRMATION = "request_confirmation"
    REJECT = "reject"


class HealingFailureReason(Enum):
    """Why a heal() call did not produce a located element."""
    DISABLED = "disabled"
    NO_FINGERPRINT = "no_fingerprint"
    ALL_STRATEGIES_FAILED = "all_strategies_failed"


@dataclass
class Rect:
    """Bounding box of an element in page coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        if self.height == 0:
            return 0.0
        return self.width / self.height

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rect':
        return cls(
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"]
        )


@dataclass
class LocatedElement:
    """Geometry of an element returned by the locator."""
    center: Point
    rect: Rect

    def to_dict(self) -> Dict[str, Any]:
        return {"center": list(self.center), "rect": self.rect.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocatedElement':
        return cls(
            center=tuple(data["center"]),
            rect=Rect.from_dict(data["rect"])
        )


@dataclass
class SemanticFingerprint:
    """Stored semantic description and last known geometry for one test step."""
    id: str
    step_id: str
    semantic_description: str
    last_known_center: Point
    last_known_rect: Rect
    created_at: int
    updated_at: int
    healing_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert fingerprint to dictionary for storage."""
        return {
            "id": self.id,
            "step_id": self.step_id,
            "semantic_description": self.semantic_description,
            "last_known_center": list(self.last_known_center),
            "last_known_rect": self.last_known_rect.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "healing_count": self.healing_count
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SemanticFingerprint':
        """Create fingerprint from dictionary."""
        data = data.copy()
        data["last_known_center"] = tuple(data["last_known_center"])
        data["last_known_rect"] = Rect.from_dict(data["last_known_rect"])
        return cls(**data)


@dataclass
class ConfidenceFactors:
    """Per-factor breakdown of a confidence score, each in [0, 100]."""
    distance_score: int = 0
    size_score: int = 0
    strategy_score: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "distance_score": self.distance_score,
            "size_score": self.size_score,
            "strategy_score": self.strategy_score
        }


@dataclass
class ConfidenceScore:
    """Output of the confidence calculator."""
    confidence: int
    factors: ConfidenceFactors


@dataclass
class HealingResult:
    """Outcome of a single heal() call."""
    success: bool
    healing_id: str
    strategy: HealingStrategy = HealingStrategy.NORMAL
    attempts_count: int = 0
    confidence: int = 0
    confidence_factors: ConfidenceFactors = field(default_factory=ConfidenceFactors)
    time_cost: int = 0
    element: Optional[LocatedElement] = None
    failure_reason: Optional[HealingFailureReason] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for storage and API responses."""
        return {
            "success": self.success,
            "healing_id": self.healing_id,
            "strategy": self.strategy.value,
            "attempts_count": self.attempts_count,
            "confidence": self.confidence,
            "confidence_factors": self.confidence_factors.to_dict(),
            "time_cost": self.time_cost,
            "element": self.element.to_dict() if self.element else None,
            "failure_reason": self.failure_reason.value if self.failure_reason else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HealingResult':
        """Create result from dictionary."""
        element = data.get("element")
        failure_reason = data.get("failure_reason")
        return cls(
            success=data["success"],
            healing_id=data["healing_id"],
            strategy=HealingStrategy(data.get("strategy", HealingStrategy.NORMAL.value)),
            attempts_count=data.get("attempts_count", 0),
            confidence=data.get("confidence", 0),
            confidence_factors=ConfidenceFactors(**data.get("confidence_factors", {})),
            time_cost=data.get("time_cost", 0),
            element=LocatedElement.from_dict(element) if element else None,
            failure_reason=HealingFailureReason(failure_reason) if failure_reason else None
        )


@dataclass
class HealingHistoryEntry:
    """Append-only audit record of a healing attempt."""
    id: str
    step_id: str
    timestamp: int
    original_description: str
    failure_reason: str
    result: HealingResult
    user_confirmed: bool = False
    fingerprint_updated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "step_id": self.step_id,
            "timestamp": self.timestamp,
            "original_description": self.original_description,
            "failure_reason": self.failure_reason,
            "result": self.result.to_dict(),
            "user_confirmed": self.user_confirmed,
            "fingerprint_updated": self.fingerprint_updated
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HealingHistoryEntry':
        data = data.copy()
        data["result"] = HealingResult.from_dict(data["result"])
        return cls(**data)


@dataclass
class UnstableElement:
    """A fingerprint that has needed repair repeatedly."""
    step_id: str
    description: str
    healing_count: int


@dataclass
class HealingStatistics:
    """Rollup of healing history and fingerprints."""
    total_attempts: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate: float = 0.0
    normal_success_count: int = 0
    deep_think_success_count: int = 0
    average_confidence: int = 0
    average_time_cost: int = 0
    unstable_elements: List[UnstableElement] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert statistics to dictionary for API responses."""
        return {
            "total_attempts": self.total_attempts,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_rate": self.success_rate,
            "normal_success_count": self.normal_success_count,
            "deep_think_success_count": self.deep_think_success_count,
            "average_confidence": self.average_confidence,
            "average_time_cost": self.average_time_cost,
            "unstable_elements": [
                {
                    "step_id": e.step_id,
                    "description": e.description,
                    "healing_count": e.healing_count
                }
                for e in self.unstable_elements
            ]
        }


@dataclass
class DescriptionResult:
    """Result of best-effort description generation."""
    description: str
    fallback_used: bool = False

    @classmethod
    def ok(cls, description: str) -> 'DescriptionResult':
        return cls(description=description, fallback_used=False)

    @classmethod
    def fallback(cls, center: Point) -> 'DescriptionResult':
        return cls(
            description=f"Element at position ({center[0]}, {center[1]})",
            fallback_used=True
        )


@dataclass
class RecoveryOutcome:
    """What the executor should do after a recovery attempt for one step."""
    result: HealingResult
    action: HealingAction
    accepted: bool
    element: Optional[LocatedElement] = None


@dataclass
class SelfHealingConfig:
    """Configuration settings for the self-healing engine."""
    enabled: bool = True
    enable_deep_think: bool = True
    auto_accept_threshold: int = 80
    fingerprint_retention_days: int = 90
    locate_timeout: float = 30.0  # seconds
    distance_tolerance: float = 200.0  # pixels

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "enabled": self.enabled,
            "enable_deep_think": self.enable_deep_think,
            "auto_accept_threshold": self.auto_accept_threshold,
            "fingerprint_retention_days": self.fingerprint_retention_days,
            "locate_timeout": self.locate_timeout,
            "distance_tolerance": self.distance_tolerance
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SelfHealingConfig':
        """Create configuration from dictionary."""
        return cls(**data)
