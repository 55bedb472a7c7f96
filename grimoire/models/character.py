from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PositiveInt

# preparation modes as stored on owned spells
PREPARED = "prepared"
ALWAYS = "always"
PREPARATION_MODES = ("prepared", "always", "innate", "pact", "atwill", "ritual")


class Preparation(BaseModel):
    prepared: bool = False
    mode: Literal["prepared", "always", "innate", "pact", "atwill", "ritual"] = PREPARED
    always_prepared: bool = False

    @property
    def is_always(self) -> bool:
        return self.always_prepared or self.mode == ALWAYS


class SpellItem(BaseModel):
    id: str = Field(min_length=1)
    type: Literal["spell"] = "spell"
    name: str = Field(min_length=1)
    level: int = Field(ge=0, le=9)
    source_id: Optional[str] = None  # canonical compendium uuid
    granted_by: Optional[str] = None  # feature/item that grants the spell
    preparation: Preparation = Field(default_factory=Preparation)

    @property
    def uuid(self) -> str:
        return self.source_id or self.id

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0

    @property
    def is_granted(self) -> bool:
        return bool(self.granted_by)


class ClassItem(BaseModel):
    id: str = Field(min_length=1)
    type: Literal["class"] = "class"
    name: str = Field(min_length=1)
    identifier: Optional[str] = None
    levels: Optional[PositiveInt] = None
    # full, half, third, pact, artificer or none
    spellcasting: str = "none"
    scale_values: Dict[str, Any] = {}

    @property
    def key(self) -> str:
        return (self.identifier or self.name).strip().lower()

    @property
    def is_spellcaster(self) -> bool:
        return bool(self.spellcasting) and self.spellcasting != "none"


OwnedItem = Annotated[Union[SpellItem, ClassItem], Field(discriminator="type")]


class Character(BaseModel):
    name: str = Field(min_length=1)
    level: int = Field(default=1, ge=0, le=20)
    items: List[OwnedItem] = []
    flags: Dict[str, Any] = {}

    # --- Derived ---
    @property
    def spells(self) -> List[SpellItem]:
        return [i for i in self.items if isinstance(i, SpellItem)]

    @property
    def classes(self) -> List[ClassItem]:
        return [i for i in self.items if isinstance(i, ClassItem)]

    def prepared_cantrips(self, include_always: bool = True) -> List[SpellItem]:
        out: List[SpellItem] = []
        for spell in self.spells:
            if not spell.is_cantrip or not spell.preparation.prepared:
                continue
            if not include_always and spell.preparation.is_always:
                continue
            out.append(spell)
        return out


__all__ = [
    "Character",
    "ClassItem",
    "SpellItem",
    "Preparation",
    "OwnedItem",
    "PREPARED",
    "ALWAYS",
    "PREPARATION_MODES",
]
