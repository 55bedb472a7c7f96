"""Canonical spell references used when a prepared spell must be created."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_SPELLS = DATA_DIR / "spells.json"


@dataclass(frozen=True)
class CompendiumSpell:
    uuid: str
    name: str
    level: int
    school: Optional[str] = None
    classes: tuple[str, ...] = ()

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0


def _read_payload(path: Path) -> object:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text)
    return json.loads(text)


class SpellCompendium:
    """In-memory index of canonical spells keyed by uuid."""

    def __init__(self, spells: Iterable[CompendiumSpell] = ()) -> None:
        self._by_uuid: Dict[str, CompendiumSpell] = {s.uuid: s for s in spells}

    @classmethod
    def load(cls, path: str | Path = DEFAULT_SPELLS) -> "SpellCompendium":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Missing compendium file: {path}")
        raw = _read_payload(path) or []
        if isinstance(raw, dict):
            raw = raw.get("spells", [])
        spells = []
        for entry in raw:
            spells.append(
                CompendiumSpell(
                    uuid=str(entry["uuid"]),
                    name=str(entry["name"]),
                    level=int(entry.get("level", 0)),
                    school=entry.get("school"),
                    classes=tuple(c.lower() for c in entry.get("classes", [])),
                )
            )
        return cls(spells)

    def get(self, uuid: str) -> Optional[CompendiumSpell]:
        return self._by_uuid.get(uuid)

    def cantrips(self, class_key: str | None = None) -> List[CompendiumSpell]:
        out = [s for s in self._by_uuid.values() if s.is_cantrip]
        if class_key:
            out = [s for s in out if not s.classes or class_key.lower() in s.classes]
        return sorted(out, key=lambda s: s.name)

    def __len__(self) -> int:
        return len(self._by_uuid)

    def __contains__(self, uuid: object) -> bool:
        return uuid in self._by_uuid
