from __future__ import annotations

from typing import Optional

from .evaluator import PreparationStateEvaluator
from .types import EditContext, LockStatus, ReasonCode, SpellRef

UNLOCKED = LockStatus(locked=False)


class LockStatusComputer:
    """Disabled/reason flags for rendering, derived from the evaluator.

    A spell is locked exactly when toggling it away from its current state
    would be denied, so the UI never offers a move ``can_change`` refuses.
    """

    def __init__(self, evaluator: PreparationStateEvaluator) -> None:
        self.evaluator = evaluator

    def get_lock_status(
        self,
        spell: SpellRef,
        is_checked: bool,
        context: EditContext,
        ui_count: Optional[int] = None,
    ) -> LockStatus:
        if spell.is_granted:
            return LockStatus(True, ReasonCode.GRANTED)
        if spell.is_always_prepared:
            return LockStatus(True, ReasonCode.ALWAYS_PREPARED)
        if not spell.is_cantrip:
            return UNLOCKED
        decision = self.evaluator.can_change(spell, not is_checked, context, ui_count)
        if decision.allowed:
            return UNLOCKED
        return LockStatus(True, decision.reason)
