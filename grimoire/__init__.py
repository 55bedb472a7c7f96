__all__ = ["__version__", "Spellbook"]
__version__ = "0.1.0"

# handy re-export for convenience
from .spellbook import Spellbook  # noqa: E402,F401
