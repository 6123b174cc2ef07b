"""
Step recovery helper for test executors.

Drives one failed step through the engine: heal, decide, and confirm,
asking the host for a decision when confidence is below the auto-accept
threshold.
"""

import logging
from typing import Awaitable, Callable, Optional

from ..core.models import HealingAction, HealingResult, RecoveryOutcome
from .healing_engine import HealingEngine

logger = logging.getLogger(__name__)

ConfirmationCallback = Callable[[HealingResult], Awaitable[bool]]


async def recover_step(
    engine: HealingEngine,
    step_id: str,
    original_description: str,
    request_confirmation: Optional[ConfirmationCallback] = None
) -> RecoveryOutcome:
    """Try to recover the element of a failed step.

    Args:
        engine: HealingEngine to heal with
        step_id: Test step identifier
        original_description: What the step was trying to do
        request_confirmation: Async callback asked to accept a
            low-confidence result; without one such results are declined

    Returns:
        RecoveryOutcome with the action taken and, when accepted, the
        element the step should retry against
    """
    result = await engine.heal(step_id, original_description)
    action = engine.determine_action(result)

    if action == HealingAction.REJECT:
        logger.info(
            f"Healing rejected for step {step_id}: "
            f"{result.failure_reason.value if result.failure_reason else 'unknown'}"
        )
        return RecoveryOutcome(result=result, action=action, accepted=False)

    if action == HealingAction.AUTO_ACCEPT:
        accepted = True
    else:
        accepted = await _ask_for_confirmation(request_confirmation, step_id, result)

    await engine.confirm_healing(result.healing_id, accepted)

    logger.info(
        f"Healing for step {step_id} {'accepted' if accepted else 'declined'} "
        f"({action.value}, confidence {result.confidence})"
    )
    return RecoveryOutcome(
        result=result,
        action=action,
        accepted=accepted,
        element=result.element if accepted else None
    )


async def _ask_for_confirmation(request_confirmation: Optional[ConfirmationCallback],
                                step_id: str, result: HealingResult) -> bool:
    if request_confirmation is None:
        logger.debug(f"No confirmation handler, declining healing for step {step_id}")
        return False

    try:
        return bool(await request_confirmation(result))
    except Exception as e:
        logger.error(f"Confirmation request failed for step {step_id}, declining: {e}")
        return False
