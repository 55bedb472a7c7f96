# tests/conftest.py
import json
from pathlib import Path
from typing import Any, Dict, Iterable

import pytest

from grimoire.compendium import SpellCompendium
from grimoire.config import MemorySettingsStore
from grimoire.models.character import Character, ClassItem, Preparation, SpellItem
from grimoire.notify import RecordingNotificationSink
from grimoire.spellbook import Spellbook
from grimoire.store import MemoryCharacterStore

SRD = "Compendium.srd.spells."


def uuid(slug: str) -> str:
    return SRD + slug


def cantrip(slug: str, prepared: bool = True, **prep: Any) -> SpellItem:
    name = slug.replace("-", " ").title()
    return SpellItem(
        id=slug,
        name=name,
        level=0,
        source_id=uuid(slug),
        preparation=Preparation(prepared=prepared, **prep),
    )


def make_character(
    class_name: str = "Wizard",
    level: int = 1,
    prepared: Iterable[str] = ("fire-bolt", "mage-hand"),
    extra: Iterable[SpellItem] = (),
    flags: Dict[str, Any] | None = None,
    spellcasting: str = "full",
) -> Character:
    items: list = [
        ClassItem(
            id=class_name.lower(),
            name=class_name,
            levels=level if level > 0 else None,
            spellcasting=spellcasting,
        )
    ]
    items += [cantrip(s) for s in prepared]
    items += list(extra)
    return Character(name="Elora", level=level, items=items, flags=dict(flags or {}))


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("GRIMOIRE_HOME", str(home))
    for var in (
        "GRIMOIRE_DEFAULT_CANTRIP_RULES",
        "GRIMOIRE_DEFAULT_ENFORCEMENT",
        "GRIMOIRE_CANTRIP_SCALE_VALUES",
        "GRIMOIRE_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(scope="session")
def compendium() -> SpellCompendium:
    return SpellCompendium.load()


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def book_for(compendium, sink):
    """Build a Spellbook around a character with the given rules flags."""

    def _make(character: Character, regime: str | None = None, behavior: str | None = None, **settings: Any) -> Spellbook:
        if regime is not None:
            character.flags["cantripRules"] = regime
        if behavior is not None:
            character.flags["enforcementBehavior"] = behavior
        return Spellbook(
            MemoryCharacterStore(character),
            settings=MemorySettingsStore(settings),
            compendium=compendium,
            sink=sink,
        )

    return _make


@pytest.fixture
def character_file(tmp_path: Path):
    def _write(character: Character, name: str = "elora.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(character.model_dump(exclude_none=True), indent=2), encoding="utf-8")
        return path

    return _write
