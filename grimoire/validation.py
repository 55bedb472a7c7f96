from __future__ import annotations

from pathlib import Path
from typing import Any
import json
from jsonschema import Draft202012Validator
from pydantic import ValidationError

from grimoire.models.character import Character


SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


class PrettyError(Exception):
    pass


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise PrettyError(f"{path}: invalid JSON ({e.msg} at line {e.lineno})")


_def_schemas = {
    "character": SCHEMA_DIR / "character.schema.json",
}


def _validate_jsonschema(obj: Any, schema_path: Path) -> None:
    schema = _read_json(schema_path)
    v = Draft202012Validator(schema)
    errors = sorted(v.iter_errors(obj), key=lambda e: list(e.path))
    if errors:
        lines = []
        for e in errors[:5]:
            ptr = "/" + "/".join([str(p) for p in e.path])
            lines.append(f"- {ptr or '/'}: {e.message}")
        more = "" if len(errors) <= 5 else f" (+{len(errors)-5} more)"
        raise PrettyError("JSON Schema validation failed:\n" + "\n".join(lines) + more)


def _migrate_prepared_flag(data: dict) -> dict:
    # older files kept the always-prepared marker under its camelCase name
    for item in data.get("items") or []:
        prep = item.get("preparation") if isinstance(item, dict) else None
        if isinstance(prep, dict) and "alwaysPrepared" in prep:
            prep.setdefault("always_prepared", prep.pop("alwaysPrepared"))
    return data


# Public API


def validate_character_data(data: Any) -> Character:
    if isinstance(data, dict):
        data = _migrate_prepared_flag(data)
    _validate_jsonschema(data, _def_schemas["character"])
    try:
        return Character.model_validate(data)
    except ValidationError as e:
        raise PrettyError(e.errors(include_url=False))


def load_character(path: Path) -> Character:
    return validate_character_data(_read_json(Path(path)))


def save_character(character: Character, path: Path) -> None:
    data = character.model_dump(exclude_none=True)
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


__all__ = ["load_character", "save_character", "validate_character_data", "PrettyError"]
