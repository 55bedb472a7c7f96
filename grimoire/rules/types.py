from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RuleRegime(str, Enum):
    LEGACY = "legacy"
    MODERN_LEVEL_UP = "levelUp"
    MODERN_LONG_REST = "longRest"


class EnforcementBehavior(str, Enum):
    ENFORCED = "enforced"
    NOTIFY_GM = "notifyGM"
    UNENFORCED = "unenforced"


class ReasonCode(str, Enum):
    MAXIMUM_REACHED = "MaximumReached"
    LOCKED_LEGACY = "LockedLegacy"
    LOCKED_OUTSIDE_LEVEL_UP = "LockedOutsideLevelUp"
    LOCKED_OUTSIDE_LONG_REST = "LockedOutsideLongRest"
    ONLY_ONE_SWAP = "OnlyOneSwap"
    MUST_UNLEARN_FIRST = "MustUnlearnFirst"
    WIZARD_RULE_ONLY = "WizardRuleOnly"
    ALWAYS_PREPARED = "AlwaysPrepared"
    GRANTED = "Granted"


REASON_TEXT = {
    ReasonCode.MAXIMUM_REACHED: "Maximum number of cantrips already prepared.",
    ReasonCode.LOCKED_LEGACY: "Cantrips cannot be removed under legacy rules.",
    ReasonCode.LOCKED_OUTSIDE_LEVEL_UP: "Cantrips can only be swapped during a level-up.",
    ReasonCode.LOCKED_OUTSIDE_LONG_REST: "Cantrips can only be swapped during a long rest.",
    ReasonCode.ONLY_ONE_SWAP: "Only one cantrip can be swapped at a time.",
    ReasonCode.MUST_UNLEARN_FIRST: "Unlearn a cantrip before learning a new one.",
    ReasonCode.WIZARD_RULE_ONLY: "Long-rest cantrip swapping is a wizard-only rule.",
    ReasonCode.ALWAYS_PREPARED: "Always prepared.",
    ReasonCode.GRANTED: "Granted by a class feature or item.",
}


class SwapWindow(str, Enum):
    LEVEL_UP = "levelUp"
    LONG_REST = "longRest"


# regime -> the window in which it lets cantrips be swapped
REGIME_WINDOW = {
    RuleRegime.MODERN_LEVEL_UP: SwapWindow.LEVEL_UP,
    RuleRegime.MODERN_LONG_REST: SwapWindow.LONG_REST,
}


@dataclass(frozen=True)
class EditContext:
    is_level_up: bool = False
    is_long_rest: bool = False

    @property
    def window(self) -> Optional[SwapWindow]:
        # level-up wins if a host sets both
        if self.is_level_up:
            return SwapWindow.LEVEL_UP
        if self.is_long_rest:
            return SwapWindow.LONG_REST
        return None

    def in_window(self, window: SwapWindow) -> bool:
        return self.window is window


NO_WINDOW = EditContext()
LEVEL_UP = EditContext(is_level_up=True)
LONG_REST = EditContext(is_long_rest=True)


@dataclass(frozen=True)
class SpellRef:
    uuid: str
    level: int
    name: str = ""
    is_always_prepared: bool = False
    is_granted: bool = False

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0

    @property
    def exempt(self) -> bool:
        return self.is_always_prepared or self.is_granted


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[ReasonCode] = None
    warning: Optional[ReasonCode] = None

    @classmethod
    def allow(cls, warning: Optional[ReasonCode] = None) -> "Decision":
        return cls(True, None, warning)

    @classmethod
    def deny(cls, reason: ReasonCode) -> "Decision":
        return cls(False, reason)


@dataclass(frozen=True)
class LockStatus:
    locked: bool
    reason: Optional[ReasonCode] = None


@dataclass(frozen=True)
class RuleSettings:
    regime: RuleRegime
    behavior: EnforcementBehavior

    @property
    def enforced(self) -> bool:
        return self.behavior is EnforcementBehavior.ENFORCED
