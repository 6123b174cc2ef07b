"""Self-healing element locators for AI-driven UI test runs."""

from .core.errors import ConfigurationError, HealingError
from .core.models import (
    HealingAction,
    HealingResult,
    HealingStrategy,
    LocatedElement,
    Rect,
    SelfHealingConfig,
    SemanticFingerprint,
)
from .services import ElementLocator, HealingEngine, create_healing_engine, recover_step

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "HealingError",
    "HealingAction",
    "HealingResult",
    "HealingStrategy",
    "LocatedElement",
    "Rect",
    "SelfHealingConfig",
    "SemanticFingerprint",
    "ElementLocator",
    "HealingEngine",
    "create_healing_engine",
    "recover_step"
]
