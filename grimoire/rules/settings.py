from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Type, TypeVar

from grimoire.config import (
    DEFAULT_CANTRIP_RULES,
    DEFAULT_ENFORCEMENT_BEHAVIOR,
    EngineConfig,
    SettingsStore,
)
from grimoire.logging import get_logger
from grimoire.store import FLAG_CANTRIP_RULES, FLAG_ENFORCEMENT_BEHAVIOR, CharacterStore

from .types import EnforcementBehavior, RuleRegime, RuleSettings

E = TypeVar("E", bound=Enum)

FALLBACK_REGIME = RuleRegime.LEGACY
FALLBACK_BEHAVIOR = EnforcementBehavior.NOTIFY_GM


class RuleConfiguration:
    """Resolve the active rule regime and enforcement behavior.

    Precedence: per-character flag > global setting > built-in fallback.
    Nothing is cached; both values may change mid-session.
    """

    def __init__(self, settings: SettingsStore, config: EngineConfig | None = None) -> None:
        self.settings = settings
        self._log = get_logger(__name__, (config or EngineConfig()).log_level)

    def resolve(self, store: CharacterStore) -> RuleSettings:
        regime = self._pick(
            RuleRegime,
            (store.get_flag(FLAG_CANTRIP_RULES), "character"),
            (self._setting(DEFAULT_CANTRIP_RULES), "global default"),
        )
        behavior = self._pick(
            EnforcementBehavior,
            (store.get_flag(FLAG_ENFORCEMENT_BEHAVIOR), "character"),
            (self._setting(DEFAULT_ENFORCEMENT_BEHAVIOR), "global default"),
        )
        return RuleSettings(
            regime=regime or FALLBACK_REGIME,
            behavior=behavior or FALLBACK_BEHAVIOR,
        )

    def save(self, store: CharacterStore, regime: RuleRegime, behavior: EnforcementBehavior) -> RuleSettings:
        store.set_flag(FLAG_CANTRIP_RULES, RuleRegime(regime).value)
        store.set_flag(FLAG_ENFORCEMENT_BEHAVIOR, EnforcementBehavior(behavior).value)
        return self.resolve(store)

    def _setting(self, key: str) -> Any:
        try:
            return self.settings.get(key)
        except (OSError, KeyError, ValueError) as e:
            self._log.warning("Could not read setting %s: %s", key, e)
            return None

    def _pick(self, enum: Type[E], *candidates: tuple[Any, str]) -> Optional[E]:
        for raw, source in candidates:
            if raw is None or raw == "":
                continue
            value = _coerce(enum, raw)
            if value is not None:
                return value
            self._log.warning("Ignoring unknown %s %r from %s", enum.__name__, raw, source)
        return None


def _coerce(enum: Type[E], raw: Any) -> Optional[E]:
    if isinstance(raw, enum):
        return raw
    try:
        return enum(raw)
    except ValueError:
        pass
    # accept member names too, e.g. "MODERN_LEVEL_UP"
    name = str(raw).strip().upper()
    return enum.__members__.get(name)
