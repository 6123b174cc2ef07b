"""
Services module for locator self-healing.
Healing engine, confidence scoring, statistics and executor-side recovery.
"""

from .confidence_calculator import ConfidenceCalculator, calculate_confidence, determine_action
from .factory import create_healing_engine
from .healing_engine import HealingEngine
from .locator import ElementLocator
from .statistics import StatisticsAggregator
from .step_recovery import recover_step

__all__ = [
    "ConfidenceCalculator",
    "calculate_confidence",
    "determine_action",
    "create_healing_engine",
    "HealingEngine",
    "ElementLocator",
    "StatisticsAggregator",
    "recover_step"
]
