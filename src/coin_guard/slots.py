from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Set, Tuple

from .exceptions import SlotStorageError
from .rng import ObfuscationRandom

logger = logging.getLogger(__name__)


class SlotArena:
    """Fixed pool of integer cells handed out by index.

    Cells start out holding noise and are scrubbed with fresh noise on
    release. The owner supplies ``noise`` drawn from the same distribution as
    the values it stores, so a live cell cannot be told from a free one by
    content. Without one, cells get full-width random ints. Free cells are
    handed out in random order.
    """

    def __init__(
        self,
        capacity: int,
        rng: ObfuscationRandom,
        noise: Optional[Callable[[], int]] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Arena capacity must be positive, got {capacity}")
        self._rng = rng
        self._noise: Callable[[], int] = noise if noise is not None else rng.rand
        self._cells: List[int] = [self._noise() for _ in range(capacity)]
        self._free: List[int] = list(range(capacity))
        self._live: Set[int] = set()

    @property
    def capacity(self) -> int:
        return len(self._cells)

    @property
    def free_count(self) -> int:
        return len(self._free)

    def acquire(self) -> int:
        if not self._free:
            raise SlotStorageError(f"Slot arena exhausted (capacity={self.capacity})")
        index = self._free.pop(self._rng.rand(len(self._free)))
        self._live.add(index)
        return index

    def release(self, index: int) -> None:
        self._check_live(index)
        self._live.discard(index)
        self._cells[index] = self._noise()
        self._free.append(index)

    def read(self, index: int) -> int:
        self._check_live(index)
        return self._cells[index]

    def write(self, index: int, value: int) -> None:
        self._check_live(index)
        self._cells[index] = value

    def _check_live(self, index: int) -> None:
        if index not in self._live:
            raise SlotStorageError(f"Cell {index} is not allocated")


class SlotArray:
    """The slots of one counter: handles into a private :class:`SlotArena`."""

    def __init__(self, size: int, arena: SlotArena) -> None:
        if size < 1:
            raise ValueError(f"Slot array needs at least one slot, got {size}")
        self._arena = arena
        self._handles: List[int] = [arena.acquire() for _ in range(size)]
        self._released = False

    def __len__(self) -> int:
        return len(self._handles)

    @property
    def handles(self) -> Tuple[int, ...]:
        return tuple(self._handles)

    @property
    def released(self) -> bool:
        return self._released

    def read(self, i: int) -> int:
        self._check_open()
        return self._arena.read(self._handles[i])

    def write(self, i: int, value: int) -> None:
        self._check_open()
        self._arena.write(self._handles[i], value)

    def read_all(self) -> List[int]:
        self._check_open()
        return [self.read(i) for i in range(len(self))]

    def write_all(self, values: Sequence[int]) -> None:
        self._check_open()
        if len(values) != len(self._handles):
            raise ValueError(f"Expected {len(self._handles)} slot values, got {len(values)}")
        for i, value in enumerate(values):
            self.write(i, value)

    def relocate(self) -> None:
        """Move every slot to a freshly acquired cell, keeping its value."""
        self._check_open()
        for i, old in enumerate(self._handles):
            value = self._arena.read(old)
            new = self._arena.acquire()
            self._arena.write(new, value)
            self._handles[i] = new
            self._arena.release(old)
        logger.debug("Relocated %s slot(s)", len(self._handles))

    def release(self) -> None:
        if self._released:
            return
        for handle in self._handles:
            self._arena.release(handle)
        self._handles = []
        self._released = True

    def _check_open(self) -> None:
        if self._released:
            raise SlotStorageError("Slot array used after release")


__all__ = ["SlotArena", "SlotArray"]
