from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Type, TypeVar

T = TypeVar("T")


class EventBus:
    """Synchronous dispatcher for counter and purse notifications.

    Runs on the emitting call, so a listener may read the counter it is
    observing. An event reaches listeners of its own class first, then those
    of its base classes. ``subscribe`` hands back the matching unsubscribe.
    """

    def __init__(self) -> None:
        self._listeners: Dict[Type[Any], List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> Callable[[], None]:
        self._listeners[event_type].append(handler)  # type: ignore[arg-type]
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and handler in listeners:
            listeners.remove(handler)

    def listener_count(self, event_type: Type[Any]) -> int:
        return len(self._listeners.get(event_type, ()))

    def emit(self, event: Any) -> int:
        """Deliver ``event``; returns how many listeners saw it."""
        delivered = 0
        for cls in type(event).__mro__:
            for handler in tuple(self._listeners.get(cls, ())):
                handler(event)
                delivered += 1
        return delivered


@dataclass(frozen=True)
class CoinsChangedEvent:
    old_amount: int
    new_amount: int
    delta: int
    reason: str  # e.g., "pickup", "checkpoint", "reset", "load"


@dataclass(frozen=True)
class CoinSoundEvent:
    sound: str
    count: int


@dataclass(frozen=True)
class SlotsRelocatedEvent:
    slot_count: int
    relocations: int


@dataclass(frozen=True)
class KeyRotatedEvent:
    # Carries no key material.
    mode: str
    rotations: int


__all__ = [
    "CoinSoundEvent",
    "CoinsChangedEvent",
    "EventBus",
    "KeyRotatedEvent",
    "SlotsRelocatedEvent",
]
