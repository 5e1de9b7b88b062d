import pytest

from coin_guard.config import GuardConfig, GuardMode
from coin_guard.events import EventBus, SlotsRelocatedEvent
from coin_guard.rng import ObfuscationRandom
from coin_guard.scheduler import RekeyScheduler
from coin_guard.slots import SlotArena, SlotArray


def make(config, seed=0, bus=None):
    rng = ObfuscationRandom(seed)
    slots = SlotArray(config.slot_count, SlotArena(config.arena_capacity, rng))
    return rng, slots, RekeyScheduler(config, rng, event_bus=bus)


def test_zero_periods_never_fire_or_draw():
    cfg = GuardConfig(mode=GuardMode.XOR_MASK)
    rng, slots, sched = make(cfg)
    draws = rng.draws
    calls = []
    for _ in range(100):
        sched.on_write(slots, lambda: calls.append(1))
        sched.on_read(slots, lambda: calls.append(1))
    assert calls == []
    assert sched.relocations == 0 and sched.rotations == 0
    assert rng.draws == draws


def test_period_one_fires_every_time():
    cfg = GuardConfig(mode=GuardMode.XOR_MASK, mask_rotation_period=1, relocation_period=1)
    _, slots, sched = make(cfg)
    calls = []
    for _ in range(10):
        sched.on_write(slots, lambda: calls.append(1))
    assert len(calls) == 10
    assert sched.rotations == 10
    assert sched.relocations == 10


def test_period_n_fires_roughly_one_in_n():
    cfg = GuardConfig(mode=GuardMode.PLAIN, relocation_period=10)
    _, slots, sched = make(cfg, seed=1234)
    for _ in range(2000):
        sched.maybe_relocate(slots)
    assert 100 < sched.relocations < 300


def test_rotation_skipped_for_modes_without_mask():
    cfg = GuardConfig(mode=GuardMode.RESIDUE, mask_rotation_period=1)
    _, _, sched = make(cfg)
    assert sched.maybe_rotate(lambda: None) is False
    assert sched.rotations == 0


def test_read_triggers_follow_read_flags():
    cfg = GuardConfig(mode=GuardMode.XOR_MASK, mask_rotation_period=1, relocation_period=1)
    _, slots, sched = make(cfg)
    handles = slots.handles
    sched.on_read(slots, lambda: None)
    assert slots.handles == handles
    assert sched.rotations == 0 and sched.relocations == 0


def test_nested_rotation_is_blocked():
    cfg = GuardConfig(mode=GuardMode.XOR_MASK, mask_rotation_period=1)
    _, _, sched = make(cfg)
    nested = []

    def rekey():
        assert sched.rotation_in_progress
        nested.append(sched.maybe_rotate(rekey))

    assert sched.maybe_rotate(rekey) is True
    assert nested == [False]
    assert sched.rotations == 1
    assert not sched.rotation_in_progress


def test_guard_cleared_when_rekey_fails():
    cfg = GuardConfig(mode=GuardMode.BIT_SPLIT, mask_rotation_period=1)
    _, _, sched = make(cfg)

    def boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        sched.maybe_rotate(boom)
    assert not sched.rotation_in_progress


def test_relocation_emits_event():
    bus = EventBus()
    seen = []
    bus.subscribe(SlotsRelocatedEvent, seen.append)
    cfg = GuardConfig(mode=GuardMode.RESIDUE, relocation_period=1)
    _, slots, sched = make(cfg, bus=bus)
    sched.maybe_relocate(slots)
    assert seen == [SlotsRelocatedEvent(slot_count=2, relocations=1)]
