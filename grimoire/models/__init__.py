from .character import (
    ALWAYS,
    PREPARED,
    Character,
    ClassItem,
    Preparation,
    SpellItem,
)

__all__ = [
    "Character",
    "ClassItem",
    "SpellItem",
    "Preparation",
    "PREPARED",
    "ALWAYS",
]
