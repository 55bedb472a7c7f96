from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from .types import SwapWindow


@dataclass
class SwapTransaction:
    """Pending learn/unlearn pair for one swap window.

    ``original_checked`` is the set of prepared cantrip uuids captured before
    the first edit in the window; it never changes afterwards.
    """

    original_checked: FrozenSet[str] = frozenset()
    unlearned_uuid: Optional[str] = None
    learned_uuid: Optional[str] = None

    def __setattr__(self, name: str, value: object) -> None:
        if name == "original_checked":
            if "original_checked" in self.__dict__:
                raise AttributeError("original_checked is fixed once the transaction opens")
            value = frozenset(value)  # type: ignore[arg-type]
        super().__setattr__(name, value)

    @property
    def has_unlearned(self) -> bool:
        return self.unlearned_uuid is not None

    @property
    def has_learned(self) -> bool:
        return self.learned_uuid is not None

    @property
    def is_empty(self) -> bool:
        return not self.has_unlearned and not self.has_learned

    def was_checked(self, uuid: str) -> bool:
        return uuid in self.original_checked

    def toggle_unlearned(self, uuid: str) -> None:
        self.unlearned_uuid = None if self.unlearned_uuid == uuid else uuid

    def toggle_learned(self, uuid: str) -> None:
        self.learned_uuid = None if self.learned_uuid == uuid else uuid

    def as_dict(self) -> dict:
        return {
            "hasUnlearned": self.has_unlearned,
            "unlearned": self.unlearned_uuid,
            "hasLearned": self.has_learned,
            "learned": self.learned_uuid,
            "originalChecked": sorted(self.original_checked),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SwapTransaction":
        return cls(
            original_checked=frozenset(data.get("originalChecked") or ()),
            unlearned_uuid=data.get("unlearned") or None,
            learned_uuid=data.get("learned") or None,
        )


@dataclass
class CantripProfile:
    """Cantrip caps and swap state for one character, read fresh per query.

    The numeric fields come from live character state; ``transactions`` is the
    session-owned record of open swap windows and is shared, not copied.
    """

    max_allowed: int
    current_count: int
    character_level: int
    previous_level: int = 0
    previous_max: int = 0
    prepared_uuids: FrozenSet[str] = frozenset()
    transactions: Dict[SwapWindow, SwapTransaction] = field(default_factory=dict)

    @property
    def level_up_detected(self) -> bool:
        """Level or cap rose since the last completed level-up."""
        if self.previous_level <= 0:
            return False
        return self.character_level > self.previous_level or self.max_allowed > self.previous_max

    @property
    def in_level_up_window(self) -> bool:
        # a character that never completed a level-up gets its first window
        if self.previous_level <= 0 and self.character_level > 0:
            return True
        return self.level_up_detected

    def transaction(self, window: SwapWindow) -> SwapTransaction:
        """The open transaction, or a provisional empty one if none is open."""
        tx = self.transactions.get(window)
        if tx is None:
            return SwapTransaction(original_checked=self.prepared_uuids)
        return tx

    def open_transaction(self, window: SwapWindow, original_checked: Iterable[str] | None = None) -> SwapTransaction:
        tx = self.transactions.get(window)
        if tx is None:
            snapshot = self.prepared_uuids if original_checked is None else original_checked
            tx = SwapTransaction(original_checked=frozenset(snapshot))
            self.transactions[window] = tx
        return tx
