from __future__ import annotations

import logging
from typing import Callable, Optional

from .config import GuardConfig
from .events import EventBus, SlotsRelocatedEvent
from .rng import ObfuscationRandom
from .slots import SlotArray

logger = logging.getLogger(__name__)


class RekeyScheduler:
    """Decides, access by access, whether to relocate slots or rotate the key.

    Each trigger fires with probability 1/period. A rotation runs the
    ``rekey`` transaction it is handed; while that transaction is in progress
    the rotation trigger is not evaluated, so anything the transaction calls
    back into (an event listener reading the counter) cannot start a second
    rotation.
    """

    def __init__(
        self,
        config: GuardConfig,
        rng: ObfuscationRandom,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._config = config
        self._rng = rng
        self._event_bus = event_bus
        self._rotating = False
        self.relocations = 0
        self.rotations = 0

    @property
    def rotation_in_progress(self) -> bool:
        return self._rotating

    def maybe_relocate(self, slots: SlotArray) -> bool:
        period = self._config.relocation_period
        if period == 0 or not self._rng.one_in(period):
            return False
        slots.relocate()
        self.relocations += 1
        logger.debug("Relocation #%s fired", self.relocations)
        if self._event_bus is not None:
            self._event_bus.emit(SlotsRelocatedEvent(slot_count=len(slots), relocations=self.relocations))
        return True

    def maybe_rotate(self, rekey: Callable[[], None]) -> bool:
        period = self._config.mask_rotation_period
        if self._rotating or period == 0 or not self._config.uses_mask:
            return False
        if not self._rng.one_in(period):
            return False
        self._rotating = True
        try:
            self.rotations += 1
            logger.debug("Rotation #%s fired (mode=%s)", self.rotations, self._config.mode.value)
            rekey()
        finally:
            self._rotating = False
        return True

    def on_write(self, slots: SlotArray, rekey: Callable[[], None]) -> None:
        self.maybe_relocate(slots)
        self.maybe_rotate(rekey)

    def on_read(self, slots: SlotArray, rekey: Callable[[], None]) -> None:
        if self._config.relocate_on_read:
            self.maybe_relocate(slots)
        if self._config.rotate_on_read:
            self.maybe_rotate(rekey)


__all__ = ["RekeyScheduler"]
