from __future__ import annotations

import logging
from typing import Optional, Tuple

from .config import GuardConfig
from .encoding import MaskState, ResidueParams
from .events import EventBus, KeyRotatedEvent
from .exceptions import GuardConfigError, SlotStorageError
from .rng import ObfuscationRandom
from .scheduler import RekeyScheduler
from .slots import SlotArena, SlotArray

logger = logging.getLogger(__name__)


class ProtectedCounter:
    """A guarded integer that never sits in memory as itself.

    The value is encoded into one or two slots according to the configured
    mode. Depending on the config, accesses may move the slots to new cells
    or rotate the mask/split key; a rotation always re-encodes the held value
    under the new key before anything else can read it.

    Values are clamped into ``[0, max_value]``, so normal get/set traffic
    raises nothing. An invalid config raises :class:`GuardConfigError` from
    :meth:`initialize`.
    """

    def __init__(
        self,
        config: Optional[GuardConfig] = None,
        initial_value: int = 0,
        *,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._event_bus = event_bus
        self._slots: Optional[SlotArray] = None
        self.initialize(config if config is not None else GuardConfig(), initial_value)

    def initialize(self, config: GuardConfig, initial_value: int = 0) -> None:
        if not isinstance(config, GuardConfig):
            raise GuardConfigError(f"Expected a GuardConfig, got {type(config).__name__}")
        config.validate()
        if self._slots is not None:
            self._slots.release()

        self._config = config
        self._strategy = config.mode.strategy
        self._rng = ObfuscationRandom(config.seed)
        self._residue: Optional[ResidueParams] = config.residue_params()
        key = config.effective_initial_key
        self._mask: Optional[MaskState] = MaskState(key) if key is not None else None
        self._slots = SlotArray(config.slot_count, SlotArena(config.arena_capacity, self._rng, noise=self._noise))
        self._scheduler = RekeyScheduler(config, self._rng, event_bus=self._event_bus)
        logger.debug(
            "Protected counter initialized: strategy=%s slots=%s rotation_period=%s relocation_period=%s",
            self._strategy.name,
            config.slot_count,
            config.mask_rotation_period,
            config.relocation_period,
        )
        self.set(initial_value)

    @property
    def config(self) -> GuardConfig:
        return self._config

    @property
    def max_value(self) -> int:
        return self._config.max_value

    @property
    def rotations(self) -> int:
        return self._scheduler.rotations

    @property
    def relocations(self) -> int:
        return self._scheduler.relocations

    @property
    def slot_handles(self) -> Tuple[int, ...]:
        return self._live_slots().handles

    def get(self) -> int:
        slots = self._live_slots()
        self._scheduler.on_read(slots, self._rekey)
        return self._load() + self._config.offset

    def set(self, value: int) -> None:
        value = int(value)
        clamped = max(0, min(value, self._config.max_value))
        if clamped != value:
            logger.warning("Value %s outside [0, %s]; clamped to %s", value, self._config.max_value, clamped)
        self._commit(clamped - self._config.offset)

    def add(self, delta: int) -> int:
        """Saturating add: the result stays within ``[0, max_value]``."""
        new = max(0, min(self.get() + delta, self._config.max_value))
        self.set(new)
        return new

    def close(self) -> None:
        if self._slots is not None:
            self._slots.release()
            self._slots = None

    def __enter__(self) -> "ProtectedCounter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        # Never show the value.
        return f"<ProtectedCounter mode={self._config.mode.value}>"

    def _state(self) -> Optional[object]:
        return self._mask if self._mask is not None else self._residue

    def _commit(self, stored: int) -> None:
        slots = self._live_slots()
        self._scheduler.on_write(slots, self._rekey)
        slots.write_all(self._strategy.encode(stored, self._state()))

    def _load(self) -> int:
        return self._strategy.decode(self._live_slots().read_all(), self._state())

    def _rekey(self) -> None:
        # Decode under the old key, switch keys, re-encode before returning.
        stored = self._load()
        self._mask = MaskState(self._rng.rand())
        self._live_slots().write_all(self._strategy.encode(stored, self._state()))
        if self._event_bus is not None:
            self._event_bus.emit(KeyRotatedEvent(mode=self._config.mode.value, rotations=self._scheduler.rotations))

    def _noise(self) -> int:
        # One slot of a plausible value under the current state, so spare
        # arena cells share the live slots' range.
        stored = self._rng.rand(self._config.max_value + 1) - self._config.offset
        slots = self._strategy.encode(stored, self._state())
        return slots[self._rng.rand(len(slots))]

    def _live_slots(self) -> SlotArray:
        if self._slots is None:
            raise SlotStorageError("Protected counter used after close()")
        return self._slots


__all__ = ["ProtectedCounter"]
