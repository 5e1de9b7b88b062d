"""
coin_guard: keeps a game counter out of reach of simple memory scanners.

The value lives encoded in relocatable slots (plain, XOR-masked, bit-split or
residue-coded) behind a get/set facade, :class:`ProtectedCounter`.
"""

from .config import GuardConfig, GuardMode, load_guard_config
from .counter import ProtectedCounter
from .exceptions import CoinGuardError, GuardConfigError, SlotStorageError

__version__ = "0.1.0"

__all__ = [
    "CoinGuardError",
    "GuardConfig",
    "GuardConfigError",
    "GuardMode",
    "ProtectedCounter",
    "SlotStorageError",
    "load_guard_config",
]
