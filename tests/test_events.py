from dataclasses import dataclass

from coin_guard.events import CoinsChangedEvent, EventBus


@dataclass(frozen=True)
class BonusCoinsEvent(CoinsChangedEvent):
    source: str = "secret"


def test_listeners_receive_events_of_their_type():
    bus = EventBus()
    seen = []
    bus.subscribe(CoinsChangedEvent, seen.append)
    evt = CoinsChangedEvent(old_amount=1, new_amount=2, delta=1, reason="pickup")
    assert bus.emit(evt) == 1
    assert seen == [evt]
    assert bus.emit(object()) == 0


def test_subclass_events_reach_own_listeners_before_base_listeners():
    bus = EventBus()
    order = []
    bus.subscribe(CoinsChangedEvent, lambda e: order.append("base"))
    bus.subscribe(BonusCoinsEvent, lambda e: order.append("bonus"))
    bus.emit(BonusCoinsEvent(old_amount=0, new_amount=5, delta=5, reason="pickup"))
    assert order == ["bonus", "base"]


def test_subscribe_returns_unsubscribe():
    bus = EventBus()
    seen = []
    cancel = bus.subscribe(CoinsChangedEvent, seen.append)
    assert bus.listener_count(CoinsChangedEvent) == 1
    cancel()
    assert bus.listener_count(CoinsChangedEvent) == 0
    bus.emit(CoinsChangedEvent(old_amount=0, new_amount=1, delta=1, reason="pickup"))
    assert seen == []
    # unsubscribing twice is harmless
    cancel()
    bus.unsubscribe(CoinsChangedEvent, seen.append)
