"""Character persistence used by the rules engine.

The engine only talks to the :class:`CharacterStore` protocol: an
authoritative, synchronous view of one character's items and flags plus
batched item mutations. Two stores ship with the package: an in-memory one
and one that writes the character JSON file after every mutation.
"""
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence

from .models.character import Character, SpellItem
from .validation import load_character, save_character

# Flag keys kept in ``Character.flags``
FLAG_CANTRIP_RULES = "cantripRules"
FLAG_ENFORCEMENT_BEHAVIOR = "enforcementBehavior"
FLAG_PREVIOUS_LEVEL = "previousLevel"
FLAG_PREVIOUS_CANTRIP_MAX = "previousCantripMax"
FLAG_UNLEARNED_CANTRIPS = "unlearnedCantrips"
FLAG_PREPARED_SPELLS = "preparedSpells"
FLAG_LONG_REST_PENDING = "longRestPending"
FLAG_CLASS_RULES = "classRules"
# window -> pending swap, kept until the window is completed
FLAG_SWAP_TRACKING = "swapTracking"


class StoreError(Exception):
    """Raised when a character mutation cannot be persisted."""


class CharacterStore(Protocol):
    @property
    def character(self) -> Character: ...

    @property
    def items(self) -> Sequence[Any]: ...

    def get_flag(self, key: str, default: Any = None) -> Any: ...

    def set_flag(self, key: str, value: Any) -> None: ...

    def unset_flag(self, key: str) -> None: ...

    def find_spell(self, uuid: str) -> Optional[SpellItem]: ...

    def delete_items(self, ids: Sequence[str]) -> None: ...

    def update_items(self, updates: Sequence[Dict[str, Any]]) -> None: ...

    def create_items(self, items: Sequence[SpellItem]) -> None: ...

    def next_item_id(self, base: str) -> str: ...


class MemoryCharacterStore:
    """Keeps the character in memory; every write goes straight to the model."""

    def __init__(self, character: Character) -> None:
        self._character = character

    @property
    def character(self) -> Character:
        return self._character

    @property
    def items(self) -> Sequence[Any]:
        return self._character.items

    # --- Flags ---
    def get_flag(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._character.flags.get(key, default))

    def set_flag(self, key: str, value: Any) -> None:
        self._character.flags[key] = copy.deepcopy(value)
        self._persist()

    def unset_flag(self, key: str) -> None:
        if key in self._character.flags:
            del self._character.flags[key]
            self._persist()

    # --- Items ---
    def find_spell(self, uuid: str) -> Optional[SpellItem]:
        for spell in self._character.spells:
            if spell.source_id == uuid or spell.id == uuid:
                return spell
        return None

    def delete_items(self, ids: Sequence[str]) -> None:
        wanted = set(ids)
        missing = wanted - {i.id for i in self._character.items}
        if missing:
            raise StoreError(f"Unknown item id(s): {', '.join(sorted(missing))}")
        self._character.items = [i for i in self._character.items if i.id not in wanted]
        self._persist()

    def update_items(self, updates: Sequence[Dict[str, Any]]) -> None:
        by_id = {i.id: i for i in self._character.spells}
        for upd in updates:
            item = by_id.get(upd.get("id", ""))
            if item is None:
                raise StoreError(f"Unknown spell id: {upd.get('id')}")
            prep = upd.get("preparation") or {}
            item.preparation = item.preparation.model_copy(update=prep)
        self._persist()

    def create_items(self, items: Sequence[SpellItem]) -> None:
        taken = {i.id for i in self._character.items}
        for item in items:
            if item.id in taken:
                raise StoreError(f"Duplicate item id: {item.id}")
            taken.add(item.id)
        self._character.items = [*self._character.items, *items]
        self._persist()

    def next_item_id(self, base: str) -> str:
        taken = {i.id for i in self._character.items}
        slug = "".join(ch if ch.isalnum() else "-" for ch in base.lower()).strip("-") or "spell"
        candidate, n = slug, 1
        while candidate in taken:
            n += 1
            candidate = f"{slug}-{n}"
        return candidate

    def _persist(self) -> None:
        pass


class JsonCharacterStore(MemoryCharacterStore):
    """Character backed by a JSON file, rewritten after each mutation."""

    def __init__(self, path: Path, character: Character | None = None) -> None:
        self.path = Path(path)
        super().__init__(character if character is not None else load_character(self.path))

    def _persist(self) -> None:
        try:
            save_character(self._character, self.path)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e


__all__ = [
    "CharacterStore",
    "MemoryCharacterStore",
    "JsonCharacterStore",
    "StoreError",
    "FLAG_CANTRIP_RULES",
    "FLAG_ENFORCEMENT_BEHAVIOR",
    "FLAG_PREVIOUS_LEVEL",
    "FLAG_PREVIOUS_CANTRIP_MAX",
    "FLAG_UNLEARNED_CANTRIPS",
    "FLAG_PREPARED_SPELLS",
    "FLAG_LONG_REST_PENDING",
    "FLAG_CLASS_RULES",
    "FLAG_SWAP_TRACKING",
]
