from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Protocol, Tuple

from .config_env import load_env

DEFAULT_CANTRIP_RULES = "defaultCantripRules"
DEFAULT_ENFORCEMENT_BEHAVIOR = "defaultEnforcementBehavior"
CANTRIP_SCALE_VALUES = "cantripScaleValues"
LOG_LEVEL = "logLevel"

# setting key -> environment variable that overrides it
ENV_OVERRIDES: Dict[str, str] = {
    DEFAULT_CANTRIP_RULES: "GRIMOIRE_DEFAULT_CANTRIP_RULES",
    DEFAULT_ENFORCEMENT_BEHAVIOR: "GRIMOIRE_DEFAULT_ENFORCEMENT",
    CANTRIP_SCALE_VALUES: "GRIMOIRE_CANTRIP_SCALE_VALUES",
    LOG_LEVEL: "GRIMOIRE_LOG_LEVEL",
}

DEFAULTS: Dict[str, Any] = {
    DEFAULT_CANTRIP_RULES: "legacy",
    DEFAULT_ENFORCEMENT_BEHAVIOR: "notifyGM",
    CANTRIP_SCALE_VALUES: "cantrips-known,cantrips",
    LOG_LEVEL: "WARNING",
}


def config_dir() -> Path:
    return Path(os.getenv("GRIMOIRE_HOME") or Path.home() / ".grimoire")


def config_path() -> Path:
    return config_dir() / "config.json"


def load_config(path: Path | None = None) -> Dict[str, Any]:
    try:
        return json.loads((path or config_path()).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}


def save_config(cfg: Dict[str, Any], path: Path | None = None) -> None:
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg, indent=2), encoding="utf-8")


class SettingsStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemorySettingsStore:
    """Settings held in a plain dict; used by tests and embedding hosts."""

    def __init__(self, values: Dict[str, Any] | None = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, key: str) -> Any:
        return self._values.get(key, DEFAULTS.get(key))

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class FileSettingsStore:
    """Global settings backed by the JSON config file.

    The file is read on every ``get`` so edits made elsewhere in the session
    are seen immediately. Precedence: env > config file > defaults.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path

    def get(self, key: str) -> Any:
        env_name = ENV_OVERRIDES.get(key)
        if env_name:
            val = os.getenv(env_name)
            if val:
                return val
        cfg = load_config(self.path)
        if key in cfg:
            return cfg[key]
        return DEFAULTS.get(key)

    def set(self, key: str, value: Any) -> None:
        cfg = load_config(self.path)
        cfg[key] = value
        save_config(cfg, self.path)


def parse_scale_keys(raw: Any) -> Tuple[str, ...]:
    if isinstance(raw, (list, tuple)):
        parts = [str(v) for v in raw]
    else:
        parts = str(raw or "").split(",")
    return tuple(p.strip() for p in parts if p.strip())


@dataclass(frozen=True)
class EngineConfig:
    """Configuration handed to every engine component when it is built."""

    log_level: str = "WARNING"
    cantrip_scale_keys: Tuple[str, ...] = field(
        default_factory=lambda: parse_scale_keys(DEFAULTS[CANTRIP_SCALE_VALUES])
    )

    @classmethod
    def from_settings(cls, settings: SettingsStore) -> "EngineConfig":
        return cls(
            log_level=str(settings.get(LOG_LEVEL) or DEFAULTS[LOG_LEVEL]).upper(),
            cantrip_scale_keys=parse_scale_keys(settings.get(CANTRIP_SCALE_VALUES)),
        )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        load_env()
        return cls.from_settings(FileSettingsStore())
