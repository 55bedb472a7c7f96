"""One cantrip-preparation edit session for one character.

:class:`Spellbook` wires the rule components together from a single
:class:`~grimoire.config.EngineConfig` and keeps the UI-side state that the
engine reasons about: which spells are checked right now (an overlay on the
character's stored preparation) and the open swap transactions. Nothing is
written to the character until :meth:`Spellbook.commit`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from .compendium import SpellCompendium
from .config import EngineConfig, MemorySettingsStore, SettingsStore
from .logging import get_logger
from .models.character import ALWAYS, PREPARED, SpellItem
from .notify import LogNotificationSink, NotificationSink
from .rules.caps import CapCalculator
from .rules.commit import ChangeCommitter, CommitResult, PreparationEntry
from .rules.evaluator import PreparationStateEvaluator
from .rules.locks import LockStatusComputer
from .rules.profile import CantripProfile, SwapTransaction
from .rules.settings import RuleConfiguration
from .rules.swap import SwapTracker
from .rules.types import (
    NO_WINDOW,
    REASON_TEXT,
    Decision,
    EditContext,
    EnforcementBehavior,
    LockStatus,
    RuleRegime,
    RuleSettings,
    SpellRef,
)
from .store import (
    FLAG_CANTRIP_RULES,
    FLAG_ENFORCEMENT_BEHAVIOR,
    FLAG_LONG_REST_PENDING,
    FLAG_PREVIOUS_CANTRIP_MAX,
    FLAG_PREVIOUS_LEVEL,
    CharacterStore,
)

SpellLike = Union[str, SpellRef]


def spell_ref(spell: SpellItem) -> SpellRef:
    return SpellRef(
        uuid=spell.uuid,
        level=spell.level,
        name=spell.name,
        is_always_prepared=spell.preparation.is_always,
        is_granted=spell.is_granted,
    )


class Spellbook:
    def __init__(
        self,
        store: CharacterStore,
        settings: SettingsStore | None = None,
        compendium: SpellCompendium | None = None,
        sink: NotificationSink | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or MemorySettingsStore()
        self.config = config or EngineConfig.from_settings(self.settings)
        self.compendium = compendium if compendium is not None else SpellCompendium.load()
        self.sink = sink or LogNotificationSink(self.config.log_level)
        self._log = get_logger(__name__, self.config.log_level)

        self.caps = CapCalculator(self.config)
        self.rules = RuleConfiguration(self.settings, self.config)
        self.tracker = SwapTracker(store, self.caps, self.rules, self.config)
        self.evaluator = PreparationStateEvaluator(store, self.caps, self.rules, self.tracker, self.config)
        self.locks = LockStatusComputer(self.evaluator)
        self.committer = ChangeCommitter(store, self.rules, self.compendium, self.sink, self.config)

        # uuid -> checked, for spells toggled since the last commit
        self._checked: Dict[str, bool] = {}

    # --- State ---
    @property
    def character(self):
        return self.store.character

    def settings_for_character(self) -> RuleSettings:
        return self.rules.resolve(self.store)

    def profile(self) -> CantripProfile:
        return self.tracker.profile()

    def ref(self, spell: SpellLike) -> SpellRef:
        if isinstance(spell, SpellRef):
            return spell
        owned = self.store.find_spell(spell)
        if owned is not None:
            return spell_ref(owned)
        source = self.compendium.get(spell)
        if source is None:
            raise KeyError(f"Unknown spell: {spell}")
        return SpellRef(uuid=source.uuid, level=source.level, name=source.name)

    def is_checked(self, spell: SpellLike) -> bool:
        uuid = spell.uuid if isinstance(spell, SpellRef) else spell
        if uuid in self._checked:
            return self._checked[uuid]
        owned = self.store.find_spell(uuid)
        return bool(owned and owned.preparation.prepared)

    def cantrip_refs(self) -> List[SpellRef]:
        """Owned cantrips followed by class cantrips the character can still learn."""
        refs = [spell_ref(s) for s in self.character.spells if s.is_cantrip]
        seen = {r.uuid for r in refs}
        klass = self.caps.spellcasting_class(self.character)
        if klass is not None:
            for source in self.compendium.cantrips(klass.key):
                if source.uuid not in seen:
                    refs.append(SpellRef(uuid=source.uuid, level=0, name=source.name))
                    seen.add(source.uuid)
        # cantrips toggled on from outside the class list
        for uuid in self._checked:
            if uuid not in seen:
                ref = self.ref(uuid)
                if ref.is_cantrip:
                    refs.append(ref)
                    seen.add(uuid)
        return refs

    # --- Caps ---
    def get_max_allowed(self) -> int:
        return self.caps.get_max_allowed(self.character)

    def get_current_count(self) -> int:
        """Cantrips checked in this session, always-prepared ones excluded."""
        return sum(
            1
            for ref in self.cantrip_refs()
            if not ref.is_always_prepared and self.is_checked(ref)
        )

    # --- Windows ---
    def check_for_level_up(self) -> bool:
        return self.profile().level_up_detected

    def can_be_leveled_up(self) -> bool:
        return self.profile().in_level_up_window

    def edit_context(self) -> EditContext:
        if self.can_be_leveled_up():
            return EditContext(is_level_up=True)
        if self.store.get_flag(FLAG_LONG_REST_PENDING):
            return EditContext(is_long_rest=True)
        return NO_WINDOW

    def begin_long_rest(self) -> None:
        self.store.set_flag(FLAG_LONG_REST_PENDING, True)
        self.tracker.reset_long_rest()

    def initialize_flags(self) -> Dict[str, Any]:
        """Seed rule overrides and the first watermark on a fresh character."""
        updates: Dict[str, Any] = {}
        resolved = self.rules.resolve(self.store)
        if self.store.get_flag(FLAG_CANTRIP_RULES) is None:
            updates[FLAG_CANTRIP_RULES] = resolved.regime.value
        if self.store.get_flag(FLAG_ENFORCEMENT_BEHAVIOR) is None:
            updates[FLAG_ENFORCEMENT_BEHAVIOR] = resolved.behavior.value
        if self.store.get_flag(FLAG_PREVIOUS_LEVEL) is None and self.store.get_flag(FLAG_PREVIOUS_CANTRIP_MAX) is None:
            updates[FLAG_PREVIOUS_LEVEL] = self.character.level
            updates[FLAG_PREVIOUS_CANTRIP_MAX] = self.get_max_allowed()
        for key, value in updates.items():
            self.store.set_flag(key, value)
        if updates:
            self._log.debug("Initialized flags for %s: %s", self.character.name, updates)
        return updates

    def save_settings(self, regime: RuleRegime | str, behavior: EnforcementBehavior | str) -> RuleSettings:
        return self.rules.save(self.store, RuleRegime(regime), EnforcementBehavior(behavior))

    # --- Rules ---
    def can_change(
        self,
        spell: SpellLike,
        want_checked: bool,
        context: EditContext | None = None,
    ) -> Decision:
        ctx = context if context is not None else self.edit_context()
        return self.evaluator.can_change(self.ref(spell), want_checked, ctx, self.get_current_count())

    def get_lock_status(self, spell: SpellLike, context: EditContext | None = None) -> LockStatus:
        ref = self.ref(spell)
        ctx = context if context is not None else self.edit_context()
        return self.locks.get_lock_status(ref, self.is_checked(ref), ctx, self.get_current_count())

    def lock_statuses(self, context: EditContext | None = None) -> Dict[str, LockStatus]:
        ctx = context if context is not None else self.edit_context()
        count = self.get_current_count()
        return {
            ref.uuid: self.locks.get_lock_status(ref, self.is_checked(ref), ctx, count)
            for ref in self.cantrip_refs()
        }

    def track_change(
        self,
        spell: SpellLike,
        is_checked: bool,
        context: EditContext | None = None,
    ) -> Optional[SwapTransaction]:
        ctx = context if context is not None else self.edit_context()
        return self.tracker.track_change(self.ref(spell), is_checked, ctx)

    def toggle(self, spell: SpellLike, checked: bool, context: EditContext | None = None) -> Decision:
        """Check or uncheck ``spell`` if the rules allow it.

        Allowed changes are recorded in the swap transaction and the checked
        overlay; a ``NOTIFY_GM`` cap warning is passed to the user.
        """
        ref = self.ref(spell)
        ctx = context if context is not None else self.edit_context()
        if self.is_checked(ref) == checked:
            return Decision.allow()
        decision = self.evaluator.can_change(ref, checked, ctx, self.get_current_count())
        if not decision.allowed:
            self._log.debug("Toggle of %s refused: %s", ref.uuid, decision.reason)
            return decision
        self.tracker.track_change(ref, checked, ctx)
        self._checked[ref.uuid] = checked
        if decision.warning is not None:
            self.sink.warn_user(f"{ref.name or ref.uuid}: {REASON_TEXT[decision.warning]}")
        return decision

    def complete_transaction(self, context: EditContext | None = None) -> None:
        ctx = context if context is not None else self.edit_context()
        self.tracker.complete_transaction(ctx)

    # --- Save ---
    def build_preparation_map(self) -> Dict[str, PreparationEntry]:
        entries: Dict[str, PreparationEntry] = {}
        for spell in self.character.spells:
            if spell.preparation.mode not in (PREPARED, ALWAYS):
                # pact, innate, at-will and ritual spells are not preparation choices
                continue
            entries[spell.uuid] = PreparationEntry(
                is_prepared=self.is_checked(spell.uuid),
                was_prepared=spell.preparation.prepared,
                is_always_prepared=spell.preparation.is_always,
            )
        for uuid, checked in self._checked.items():
            if uuid not in entries:
                entries[uuid] = PreparationEntry(is_prepared=checked, was_prepared=False)
        return entries

    def commit(self, preparation_map: Dict[str, PreparationEntry] | None = None) -> CommitResult:
        entries = preparation_map if preparation_map is not None else self.build_preparation_map()
        result = self.committer.commit(entries, self.tracker)
        if result.ok:
            self._checked.clear()
        return result


__all__ = ["Spellbook", "spell_ref"]
