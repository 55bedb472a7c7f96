from __future__ import annotations

from typing import Dict, Optional

from grimoire.config import EngineConfig
from grimoire.logging import get_logger
from grimoire.store import (
    FLAG_LONG_REST_PENDING,
    FLAG_PREVIOUS_CANTRIP_MAX,
    FLAG_PREVIOUS_LEVEL,
    FLAG_SWAP_TRACKING,
    CharacterStore,
)

from .caps import CapCalculator
from .profile import CantripProfile, SwapTransaction
from .settings import RuleConfiguration
from .types import (
    REGIME_WINDOW,
    EditContext,
    EnforcementBehavior,
    RuleRegime,
    SpellRef,
    SwapWindow,
)


class SwapTracker:
    """Per-window bookkeeping of at most one learn and one unlearn.

    Open transactions are written to the character on commit and read back by
    the next session, so a window keeps its single swap across sessions until
    it is completed.
    """

    def __init__(
        self,
        store: CharacterStore,
        caps: CapCalculator,
        rules: RuleConfiguration,
        config: EngineConfig | None = None,
    ) -> None:
        self.store = store
        self.caps = caps
        self.rules = rules
        self.transactions: Dict[SwapWindow, SwapTransaction] = {}
        self._log = get_logger(__name__, (config or EngineConfig()).log_level)

    def profile(self) -> CantripProfile:
        return self.caps.profile(self.store, self.transactions)

    def transaction(self, context: EditContext) -> Optional[SwapTransaction]:
        window = context.window
        return self.transactions.get(window) if window else None

    def _tracks(self, spell: SpellRef, context: EditContext) -> Optional[SwapWindow]:
        if not spell.is_cantrip or spell.exempt:
            return None
        window = context.window
        if window is None:
            return None
        settings = self.rules.resolve(self.store)
        if settings.behavior is EnforcementBehavior.UNENFORCED:
            return None
        if settings.regime is RuleRegime.LEGACY:
            return None
        if settings.regime is RuleRegime.MODERN_LONG_REST and not self.caps.is_wizard(self.store.character):
            return None
        if REGIME_WINDOW.get(settings.regime) is not window:
            return None
        return window

    def track_change(self, spell: SpellRef, is_checked: bool, context: EditContext) -> Optional[SwapTransaction]:
        window = self._tracks(spell, context)
        if window is None:
            return None
        tx = self.profile().open_transaction(window)
        uuid = spell.uuid
        if not is_checked and tx.was_checked(uuid):
            tx.toggle_unlearned(uuid)
        elif is_checked and not tx.was_checked(uuid):
            tx.toggle_learned(uuid)
        elif not is_checked and tx.learned_uuid == uuid:
            tx.learned_uuid = None
        elif is_checked and tx.unlearned_uuid == uuid:
            tx.unlearned_uuid = None
        self._log.debug("Swap %s: %s", window.value, tx.as_dict())
        return tx

    def complete_transaction(self, context: EditContext) -> None:
        window = context.window
        if window is None:
            return
        self.transactions.pop(window, None)
        self._forget(window)
        if window is SwapWindow.LEVEL_UP:
            self.advance_watermark()
        else:
            self.store.unset_flag(FLAG_LONG_REST_PENDING)

    def advance_watermark(self) -> None:
        character = self.store.character
        self.store.set_flag(FLAG_PREVIOUS_LEVEL, character.level)
        self.store.set_flag(FLAG_PREVIOUS_CANTRIP_MAX, self.caps.get_max_allowed(character))
        self._log.info("%s: cantrip watermark now level %d", character.name, character.level)

    def reset_long_rest(self) -> None:
        self.transactions.pop(SwapWindow.LONG_REST, None)
        self._forget(SwapWindow.LONG_REST)

    def save(self) -> None:
        """Persist the open transactions on the character."""
        self.profile()
        if not self.transactions:
            self.store.unset_flag(FLAG_SWAP_TRACKING)
            return
        self.store.set_flag(
            FLAG_SWAP_TRACKING,
            {window.value: tx.as_dict() for window, tx in self.transactions.items()},
        )

    def _forget(self, window: SwapWindow) -> None:
        saved = self.store.get_flag(FLAG_SWAP_TRACKING)
        if not isinstance(saved, dict) or window.value not in saved:
            return
        del saved[window.value]
        if saved:
            self.store.set_flag(FLAG_SWAP_TRACKING, saved)
        else:
            self.store.unset_flag(FLAG_SWAP_TRACKING)
