import pytest

from coin_guard.rng import RAND_BITS, ObfuscationRandom


def test_same_seed_same_sequence():
    a = ObfuscationRandom(42)
    b = ObfuscationRandom(42)
    assert [a.rand() for _ in range(10)] == [b.rand() for _ in range(10)]


def test_rand_ranges():
    r = ObfuscationRandom(1)
    for _ in range(500):
        assert 0 <= r.rand() < 2**RAND_BITS
        assert 0 <= r.rand(10) < 10
    assert r.rand(1) == 0


def test_draws_are_counted():
    r = ObfuscationRandom()
    r.rand()
    r.one_in(5)
    assert r.draws == 2


def test_rand_rejects_non_positive_bound():
    with pytest.raises(ValueError):
        ObfuscationRandom().rand(0)
