"""
Healing Engine for locator self-healing.

This service orchestrates fingerprint capture after successful steps,
multi-strategy recovery when a step can no longer find its element, the
accept/confirm/reject decision policy, and the confirmation feedback loop.
"""

import asyncio
import logging
import math
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from ..core.config_loader import validate_healing_config
from ..core.errors import LocateFailed
from ..core.logging_config import get_healing_logger
from ..core.models import (
    DescriptionResult,
    HealingAction,
    HealingFailureReason,
    HealingHistoryEntry,
    HealingResult,
    HealingStatistics,
    HealingStrategy,
    LocatedElement,
    Point,
    Rect,
    SelfHealingConfig,
    SemanticFingerprint,
    now_ms,
)
from ..storage.fingerprint_store import FingerprintStore
from ..storage.history_store import HistoryStore
from .confidence_calculator import ConfidenceCalculator, determine_action
from .locator import ElementLocator
from .statistics import StatisticsAggregator


logger = logging.getLogger(__name__)

HISTORY_FAILURE_REASON = "Element not found after healing"


def generate_id() -> str:
    return str(uuid.uuid4())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def has_usable_geometry(element: Any) -> bool:
    """Check that a locator result carries a 2D center and a numeric Rect."""
    if not isinstance(element, LocatedElement):
        return False

    center, rect = element.center, element.rect
    if not isinstance(center, (tuple, list)) or len(center) != 2:
        return False
    if not isinstance(rect, Rect):
        return False

    return all(_is_number(v) for v in (*center, rect.x, rect.y, rect.width, rect.height))


class HealingEngine:
    """Main engine for the locator self-healing workflow."""

    def __init__(
        self,
        fingerprint_store: FingerprintStore,
        history_store: HistoryStore,
        locator: ElementLocator,
        config: Optional[SelfHealingConfig] = None,
        calculator: Optional[ConfidenceCalculator] = None
    ):
        """Initialize the healing engine.

        Args:
            fingerprint_store: Persistence for step fingerprints
            history_store: Persistence for healing attempts
            locator: Collaborator that locates and describes elements
            config: Self-healing configuration, defaults when omitted
            calculator: Confidence calculator; built from config when omitted
        """
        self.fingerprint_store = fingerprint_store
        self.history_store = history_store
        self.locator = locator

        self.config = SelfHealingConfig.from_dict((config or SelfHealingConfig()).to_dict())
        validate_healing_config(self.config)

        self._calculator_injected = calculator is not None
        self.calculator = calculator or ConfidenceCalculator(self.config.distance_tolerance)
        self.statistics = StatisticsAggregator(fingerprint_store, history_store)

        # Serializes fingerprint read-modify-write per step; entries live
        # only while some task holds or waits on them
        self._step_locks: Dict[str, asyncio.Lock] = {}
        self._step_lock_users: Dict[str, int] = {}

    def set_locator(self, locator: ElementLocator) -> None:
        """Swap the locator collaborator (e.g. a new page agent per run)."""
        self.locator = locator

    def get_config(self) -> SelfHealingConfig:
        """Get a copy of the current configuration."""
        return SelfHealingConfig.from_dict(self.config.to_dict())

    def update_config(self, **changes) -> SelfHealingConfig:
        """Merge configuration changes.

        Raises:
            ConfigurationError: If the merged configuration is invalid
            TypeError: If an unknown option is given
        """
        updated = SelfHealingConfig.from_dict({**self.config.to_dict(), **changes})
        validate_healing_config(updated)
        self.config = updated

        if not self._calculator_injected:
            self.calculator = ConfidenceCalculator(updated.distance_tolerance)

        logger.info(f"Self-healing configuration updated: {sorted(changes)}")
        return self.get_config()

    @asynccontextmanager
    async def _step_lock(self, step_id: str) -> AsyncIterator[None]:
        lock = self._step_locks.get(step_id)
        if lock is None:
            lock = asyncio.Lock()
            self._step_locks[step_id] = lock
        self._step_lock_users[step_id] = self._step_lock_users.get(step_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._step_lock_users[step_id] -= 1
            if not self._step_lock_users[step_id]:
                del self._step_lock_users[step_id]
                del self._step_locks[step_id]

    # ==================== Fingerprint capture ====================

    async def describe_element(self, center: Point) -> DescriptionResult:
        """Ask the locator for a description, falling back to a positional one."""
        try:
            description = await asyncio.wait_for(
                self.locator.describe(center), timeout=self.config.locate_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Describing element at {center} timed out, using fallback")
            return DescriptionResult.fallback(center)
        except Exception as e:
            logger.warning(f"Failed to generate semantic description, using fallback: {e}")
            return DescriptionResult.fallback(center)

        if not description or not str(description).strip():
            logger.warning(f"Empty description for element at {center}, using fallback")
            return DescriptionResult.fallback(center)

        return DescriptionResult.ok(str(description).strip())

    async def collect_fingerprint(self, step_id: str, center: Point, rect: Rect) -> SemanticFingerprint:
        """Capture or refresh the fingerprint of a step that just succeeded.

        Args:
            step_id: Test step identifier
            center: Center of the element the step acted on
            rect: Bounding box of that element

        Returns:
            The stored fingerprint
        """
        description = await self.describe_element(center)

        async with self._step_lock(step_id):
            existing = await self.fingerprint_store.get(step_id)

            if existing is None:
                now = now_ms()
                fingerprint = SemanticFingerprint(
                    id=generate_id(),
                    step_id=step_id,
                    semantic_description=description.description,
                    last_known_center=center,
                    last_known_rect=rect,
                    created_at=now,
                    updated_at=now,
                    healing_count=0
                )
                if await self.fingerprint_store.save(fingerprint):
                    logger.info(
                        f"Captured fingerprint for step {step_id}"
                        f"{' (fallback description)' if description.fallback_used else ''}"
                    )
                    return fingerprint

                # Another engine on the same database may have inserted first
                existing = await self.fingerprint_store.get(step_id)
                if existing is None:
                    logger.warning(f"Fingerprint for step {step_id} could not be stored")
                    return fingerprint

            updated = SemanticFingerprint(
                id=existing.id,
                step_id=existing.step_id,
                semantic_description=description.description,
                last_known_center=center,
                last_known_rect=rect,
                created_at=existing.created_at,
                updated_at=now_ms(),
                healing_count=existing.healing_count
            )
            await self.fingerprint_store.update(updated)
            logger.debug(f"Refreshed fingerprint {existing.id} for step {step_id}")
            return updated

    # ==================== Healing ====================

    async def heal(self, step_id: str, original_description: str) -> HealingResult:
        """Attempt to relocate the element of a failed step.

        Never raises: every outcome is a HealingResult.

        Args:
            step_id: Test step identifier
            original_description: What the step was trying to do

        Returns:
            HealingResult describing the outcome
        """
        if not self.config.enabled:
            logger.debug(f"Self-healing disabled, skipping step {step_id}")
            return self._create_failed_result(HealingFailureReason.DISABLED)

        start_time = time.monotonic()
        healing_id = generate_id()
        healing_logger = get_healing_logger("engine", healing_id, step_id)

        fingerprint = await self.fingerprint_store.get(step_id)
        if not fingerprint:
            healing_logger.info(f"No fingerprint found for step {step_id}")
            return self._create_failed_result(HealingFailureReason.NO_FINGERPRINT, healing_id)

        description = fingerprint.semantic_description
        healing_logger.log_operation_start("heal", description=description)

        strategies = [HealingStrategy.NORMAL]
        if self.config.enable_deep_think:
            strategies.append(HealingStrategy.DEEP_THINK)

        attempts_count = 0
        for strategy in strategies:
            attempts_count += 1
            try:
                element = await self._attempt_locate(description, strategy)
            except LocateFailed as e:
                healing_logger.debug(str(e))
                continue

            score = self.calculator.calculate(element.center, element.rect, fingerprint, strategy)
            result = HealingResult(
                success=True,
                healing_id=healing_id,
                strategy=strategy,
                attempts_count=attempts_count,
                confidence=score.confidence,
                confidence_factors=score.factors,
                time_cost=self._elapsed_ms(start_time),
                element=element
            )
            await self._record_history(step_id, original_description, result)
            healing_logger.log_operation_success(
                "heal", result.time_cost,
                strategy=strategy.value, confidence=result.confidence,
                attempts=attempts_count
            )
            return result

        result = self._create_failed_result(
            HealingFailureReason.ALL_STRATEGIES_FAILED,
            healing_id,
            attempts_count,
            self._elapsed_ms(start_time)
        )
        await self._record_history(step_id, original_description, result)
        healing_logger.log_operation_failure(
            "heal", result.time_cost, "all healing strategies failed",
            error_code=HealingFailureReason.ALL_STRATEGIES_FAILED.value,
            attempts=attempts_count
        )
        return result

    async def _attempt_locate(self, description: str, strategy: HealingStrategy) -> LocatedElement:
        """Run one time-boxed locate call.

        Raises:
            LocateFailed: On exception, timeout, or no match
        """
        deep_think = strategy == HealingStrategy.DEEP_THINK
        try:
            if deep_think:
                call = self.locator.locate(description, deep_think=True)
            else:
                call = self.locator.locate(description)
            element = await asyncio.wait_for(call, timeout=self.config.locate_timeout)
        except asyncio.TimeoutError:
            raise LocateFailed(strategy.value, f"timed out after {self.config.locate_timeout}s")
        except Exception as e:
            raise LocateFailed(strategy.value, f"{type(e).__name__}: {e}") from e

        if element is None:
            raise LocateFailed(strategy.value, "no matching element")
        if not has_usable_geometry(element):
            raise LocateFailed(strategy.value, f"locator returned unusable geometry: {element!r}")

        return element

    # ==================== Confirmation ====================

    async def confirm_healing(
        self,
        healing_id: str,
        accepted: bool,
        new_description: Optional[str] = None
    ) -> Optional[LocatedElement]:
        """Apply a human or automatic decision to a healing result.

        Args:
            healing_id: ID of the healing attempt
            accepted: Whether the healed location is correct
            new_description: Replacement semantic description, if any

        Returns:
            The healed element when the fingerprint was updated, else None
        """
        entry = await self.history_store.get_by_healing_id(healing_id)
        if not entry:
            logger.warning(f"Healing history entry not found: {healing_id}")
            return None

        healing_logger = get_healing_logger("engine", healing_id, entry.step_id)

        async with self._step_lock(entry.step_id):
            # Re-read under the lock so a concurrent confirmation is seen
            entry = await self.history_store.get_by_healing_id(healing_id) or entry
            element = entry.result.element

            if entry.user_confirmed:
                healing_logger.info(f"Healing {healing_id} already confirmed, ignoring")
                return element if entry.fingerprint_updated else None

            fingerprint_updated = False
            if accepted and entry.result.success and element:
                fingerprint = await self.fingerprint_store.get(entry.step_id)
                if fingerprint:
                    fingerprint.last_known_center = element.center
                    fingerprint.last_known_rect = element.rect
                    fingerprint.healing_count += 1
                    fingerprint.updated_at = now_ms()
                    if new_description:
                        fingerprint.semantic_description = new_description
                    await self.fingerprint_store.update(fingerprint)
                    fingerprint_updated = True
                else:
                    healing_logger.warning(
                        f"Fingerprint for step {entry.step_id} disappeared before confirmation"
                    )

            entry.user_confirmed = True
            entry.fingerprint_updated = fingerprint_updated
            await self.history_store.update(entry)

        healing_logger.info(
            f"Healing {'accepted' if accepted else 'rejected'} for step {entry.step_id}",
            extra={'operation': 'confirm_healing', 'success': fingerprint_updated}
        )
        return element if fingerprint_updated else None

    def determine_action(self, result: HealingResult) -> HealingAction:
        """Decide between auto_accept, request_confirmation and reject."""
        return determine_action(result, self.config.auto_accept_threshold)

    # ==================== Queries and maintenance ====================

    async def get_statistics(self) -> HealingStatistics:
        return await self.statistics.get_statistics()

    async def get_history(self, step_id: Optional[str] = None) -> List[HealingHistoryEntry]:
        """Healing history, newest first, optionally for one step."""
        if step_id is None:
            return await self.history_store.get_all()
        return await self.history_store.get_by_step_id(step_id)

    async def cleanup(self) -> int:
        """Remove fingerprints older than the retention window."""
        return await self.fingerprint_store.cleanup_expired(self.config.fingerprint_retention_days)

    async def clear_all(self) -> None:
        """Remove every fingerprint and history entry."""
        await self.fingerprint_store.clear()
        await self.history_store.clear()
        logger.info("Cleared all fingerprints and healing history")

    # ==================== Private Methods ====================

    def _create_failed_result(
        self,
        reason: HealingFailureReason,
        healing_id: Optional[str] = None,
        attempts_count: int = 0,
        time_cost: int = 0
    ) -> HealingResult:
        return HealingResult(
            success=False,
            healing_id=healing_id or generate_id(),
            strategy=HealingStrategy.NORMAL,
            attempts_count=attempts_count,
            confidence=0,
            time_cost=time_cost,
            failure_reason=reason
        )

    async def _record_history(self, step_id: str, original_description: str,
                              result: HealingResult) -> None:
        entry = HealingHistoryEntry(
            id=generate_id(),
            step_id=step_id,
            timestamp=now_ms(),
            original_description=original_description,
            failure_reason="" if result.success else HISTORY_FAILURE_REASON,
            result=result,
            user_confirmed=False,
            fingerprint_updated=False
        )
        await self.history_store.add(entry)

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)
