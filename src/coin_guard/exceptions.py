class CoinGuardError(Exception):
    """Base exception for the coin_guard package."""


class GuardConfigError(CoinGuardError):
    """Raised when a guard configuration cannot define a consistent encoding.

    Never handled inside the package: letting it propagate stops the program
    before any value is stored under ill-defined semantics.
    """


class SlotStorageError(CoinGuardError):
    """Raised when slot cells cannot be acquired or a released slot is used."""
