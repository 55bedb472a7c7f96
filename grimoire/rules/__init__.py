from .caps import CapCalculator
from .commit import ChangeCommitter, CommitResult, PreparationEntry
from .evaluator import PreparationStateEvaluator
from .locks import LockStatusComputer
from .profile import CantripProfile, SwapTransaction
from .settings import RuleConfiguration
from .swap import SwapTracker
from .types import (
    LEVEL_UP,
    LONG_REST,
    NO_WINDOW,
    REASON_TEXT,
    Decision,
    EditContext,
    EnforcementBehavior,
    LockStatus,
    ReasonCode,
    RuleRegime,
    RuleSettings,
    SpellRef,
    SwapWindow,
)

__all__ = [
    "CapCalculator",
    "ChangeCommitter",
    "CommitResult",
    "PreparationEntry",
    "PreparationStateEvaluator",
    "LockStatusComputer",
    "CantripProfile",
    "SwapTransaction",
    "RuleConfiguration",
    "SwapTracker",
    "LEVEL_UP",
    "LONG_REST",
    "NO_WINDOW",
    "REASON_TEXT",
    "Decision",
    "EditContext",
    "EnforcementBehavior",
    "LockStatus",
    "ReasonCode",
    "RuleRegime",
    "RuleSettings",
    "SpellRef",
    "SwapWindow",
]
