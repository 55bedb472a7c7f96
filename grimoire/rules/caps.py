from __future__ import annotations

from typing import Any, Dict, Optional

from grimoire.config import EngineConfig
from grimoire.logging import get_logger
from grimoire.models.character import Character, ClassItem
from grimoire.store import (
    FLAG_CLASS_RULES,
    FLAG_PREVIOUS_CANTRIP_MAX,
    FLAG_PREVIOUS_LEVEL,
    FLAG_SWAP_TRACKING,
    CharacterStore,
)

from .profile import CantripProfile, SwapTransaction
from .types import SwapWindow

# Class families by cantrip progression (SRD + artificer)
FULL_CANTRIP_CLASSES = {"bard", "cleric", "druid", "sorcerer", "warlock", "wizard"}
REDUCED_CANTRIP_CLASSES = {"ranger", "artificer"}

WIZARD = "wizard"


def full_cantrips(level: int) -> int:
    return min(4, max(3, level // 4 + 2))


def reduced_cantrips(level: int) -> int:
    return min(3, max(2, level // 6 + 1))


def cantrips_for_family(class_key: str, level: int) -> int:
    if class_key in FULL_CANTRIP_CLASSES:
        return full_cantrips(level)
    if class_key in REDUCED_CANTRIP_CLASSES:
        return reduced_cantrips(level)
    return 0


def class_rules(character: Character, class_key: str) -> Dict[str, Any]:
    rules = character.flags.get(FLAG_CLASS_RULES) or {}
    if not isinstance(rules, dict):
        return {}
    entry = rules.get(class_key) or {}
    return entry if isinstance(entry, dict) else {}


class CapCalculator:
    """Maximum and current prepared-cantrip counts for a character."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._log = get_logger(__name__, self.config.log_level)

    def spellcasting_class(self, character: Character) -> Optional[ClassItem]:
        for klass in character.classes:
            if klass.is_spellcaster:
                return klass
        return None

    def get_max_allowed(self, character: Character) -> int:
        try:
            return self._max_allowed(character)
        except (TypeError, ValueError, AttributeError) as e:
            self._log.warning("Malformed class data for %s: %s", character.name, e)
            return 0

    def _max_allowed(self, character: Character) -> int:
        klass = self.spellcasting_class(character)
        if klass is None:
            return 0
        rules = class_rules(character, klass.key)
        if rules.get("showCantrips") is False:
            return 0
        base = self._scale_value(klass)
        if base is None:
            level = klass.levels or character.level
            base = cantrips_for_family(klass.key, int(level))
        bonus = int(rules.get("cantripPreparationBonus") or 0)
        if bonus:
            return max(0, base + bonus)
        return base

    def _scale_value(self, klass: ClassItem) -> Optional[int]:
        for key in self.config.cantrip_scale_keys:
            if key not in klass.scale_values:
                continue
            raw = klass.scale_values[key]
            if isinstance(raw, dict):
                raw = raw.get("value")
            if raw is None:
                continue
            self._log.debug("Scale value %r = %r for %s", key, raw, klass.key)
            return int(raw)
        return None

    def get_current_count(self, character: Character) -> int:
        return len(character.prepared_cantrips(include_always=False))

    def is_wizard(self, character: Character) -> bool:
        if any(k.key == WIZARD for k in character.classes):
            return True
        rules = character.flags.get(FLAG_CLASS_RULES) or {}
        if not isinstance(rules, dict):
            return False
        return any(isinstance(r, dict) and r.get("forceWizardMode") is True for r in rules.values())

    def profile(
        self,
        store: CharacterStore,
        transactions: Dict[SwapWindow, SwapTransaction] | None = None,
    ) -> CantripProfile:
        """Read a fresh :class:`CantripProfile` from the character in ``store``.

        Swap windows left open by an earlier session are restored into
        ``transactions`` unless the session already holds one for that window.
        """
        character = store.character
        if transactions is None:
            transactions = {}
        self._restore_transactions(store, transactions)
        return CantripProfile(
            max_allowed=self.get_max_allowed(character),
            current_count=self.get_current_count(character),
            character_level=character.level,
            previous_level=_as_int(store.get_flag(FLAG_PREVIOUS_LEVEL)),
            previous_max=_as_int(store.get_flag(FLAG_PREVIOUS_CANTRIP_MAX)),
            prepared_uuids=frozenset(s.uuid for s in character.prepared_cantrips()),
            transactions=transactions,
        )

    def _restore_transactions(self, store: CharacterStore, transactions: Dict[SwapWindow, SwapTransaction]) -> None:
        saved = store.get_flag(FLAG_SWAP_TRACKING) or {}
        if not isinstance(saved, dict):
            return
        for key, data in saved.items():
            try:
                window = SwapWindow(key)
            except ValueError:
                self._log.warning("Ignoring swap tracking for unknown window %r", key)
                continue
            if window in transactions or not isinstance(data, dict):
                continue
            transactions[window] = SwapTransaction.from_dict(data)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
