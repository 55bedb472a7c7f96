"""Admission control for cantrip preparation toggles.

The rule table is a function of ``(regime, behavior, context, transaction,
want_checked)``. Cap and enforcement checks come first and are shared by all
regimes; the regime-specific rows live in ``_REGIME_RULES``.
"""
from __future__ import annotations

from typing import Callable, Dict, Optional

from grimoire.config import EngineConfig
from grimoire.logging import get_logger
from grimoire.store import CharacterStore

from .caps import CapCalculator
from .profile import CantripProfile, SwapTransaction
from .settings import RuleConfiguration
from .swap import SwapTracker
from .types import (
    Decision,
    EditContext,
    EnforcementBehavior,
    ReasonCode,
    RuleRegime,
    RuleSettings,
    SpellRef,
    SwapWindow,
)


def swap_rule(spell: SpellRef, want_checked: bool, tx: SwapTransaction, at_cap: bool = True) -> Decision:
    """One-swap rules applied inside an open swap window.

    Below the cap a new cantrip can be learned without giving one up; at the
    cap the learn must be paired with an unlearn.
    """
    originally_checked = tx.was_checked(spell.uuid)
    if not want_checked and tx.has_unlearned and tx.unlearned_uuid != spell.uuid and originally_checked:
        return Decision.deny(ReasonCode.ONLY_ONE_SWAP)
    if want_checked and tx.has_learned and tx.learned_uuid != spell.uuid and not originally_checked:
        return Decision.deny(ReasonCode.ONLY_ONE_SWAP)
    if want_checked and at_cap and not tx.has_unlearned and not originally_checked:
        return Decision.deny(ReasonCode.MUST_UNLEARN_FIRST)
    return Decision.allow()


def _windowed(
    spell: SpellRef,
    want_checked: bool,
    context: EditContext,
    profile: CantripProfile,
    window: SwapWindow,
    locked_reason: ReasonCode,
    at_cap: bool,
) -> Decision:
    if not context.in_window(window):
        if not want_checked:
            return Decision.deny(locked_reason)
        return Decision.allow()
    return swap_rule(spell, want_checked, profile.transaction(window), at_cap)


def _legacy(spell, want_checked, context, profile, is_wizard, at_cap) -> Decision:
    if not want_checked:
        return Decision.deny(ReasonCode.LOCKED_LEGACY)
    return Decision.allow()


def _modern_level_up(spell, want_checked, context, profile, is_wizard, at_cap) -> Decision:
    return _windowed(
        spell, want_checked, context, profile,
        SwapWindow.LEVEL_UP, ReasonCode.LOCKED_OUTSIDE_LEVEL_UP, at_cap,
    )


def _modern_long_rest(spell, want_checked, context, profile, is_wizard, at_cap) -> Decision:
    if not is_wizard:
        return Decision.deny(ReasonCode.WIZARD_RULE_ONLY)
    return _windowed(
        spell, want_checked, context, profile,
        SwapWindow.LONG_REST, ReasonCode.LOCKED_OUTSIDE_LONG_REST, at_cap,
    )


RegimeRule = Callable[[SpellRef, bool, EditContext, CantripProfile, bool, bool], Decision]

_REGIME_RULES: Dict[RuleRegime, RegimeRule] = {
    RuleRegime.LEGACY: _legacy,
    RuleRegime.MODERN_LEVEL_UP: _modern_level_up,
    RuleRegime.MODERN_LONG_REST: _modern_long_rest,
}


class PreparationStateEvaluator:
    def __init__(
        self,
        store: CharacterStore,
        caps: CapCalculator,
        rules: RuleConfiguration,
        tracker: SwapTracker,
        config: EngineConfig | None = None,
    ) -> None:
        self.store = store
        self.caps = caps
        self.rules = rules
        self.tracker = tracker
        self._log = get_logger(__name__, (config or EngineConfig()).log_level)

    def can_change(
        self,
        spell: SpellRef,
        want_checked: bool,
        context: EditContext,
        ui_count: Optional[int] = None,
    ) -> Decision:
        """Decide whether ``spell`` may be checked/unchecked right now.

        ``ui_count`` is the number of cantrips currently checked in the UI;
        without it the character's prepared count is used.
        """
        if not spell.is_cantrip or spell.exempt:
            return Decision.allow()
        settings = self.rules.resolve(self.store)
        profile = self.tracker.profile()
        return self.decide(spell, want_checked, context, settings, profile, ui_count)

    def decide(
        self,
        spell: SpellRef,
        want_checked: bool,
        context: EditContext,
        settings: RuleSettings,
        profile: CantripProfile,
        ui_count: Optional[int] = None,
    ) -> Decision:
        count = profile.current_count if ui_count is None else ui_count
        warning = None
        at_cap = count >= profile.max_allowed
        if want_checked and at_cap:
            if settings.behavior is EnforcementBehavior.ENFORCED:
                return Decision.deny(ReasonCode.MAXIMUM_REACHED)
            if settings.behavior is EnforcementBehavior.NOTIFY_GM:
                self._log.warning(
                    "%s: preparing %s exceeds the cantrip limit (%d/%d)",
                    self.store.character.name, spell.name or spell.uuid,
                    count + 1, profile.max_allowed,
                )
                warning = ReasonCode.MAXIMUM_REACHED

        if settings.behavior is not EnforcementBehavior.ENFORCED:
            return Decision.allow(warning)

        rule = _REGIME_RULES[settings.regime]
        decision = rule(spell, want_checked, context, profile, self.caps.is_wizard(self.store.character), at_cap)
        if not decision.allowed:
            self._log.debug("Denied %s (%s): %s", spell.uuid, settings.regime.value, decision.reason)
        return decision
