"""Encodings that turn the guarded value into the integers actually stored.

Each strategy is stateless: whatever varies over time (the XOR mask, the split
key) lives in a :class:`MaskState` owned by the counter and is passed in on
every call. ``decode(encode(v, state), state) == v`` holds for a fixed state;
once the state changes the stored slots must be re-encoded.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from math import gcd
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


def modular_inverse(a: int, m: int) -> int:
    """Inverse of ``a`` modulo ``m`` via the extended Euclidean algorithm.

    The result is normalized into ``[0, m)``. A modulus of 1 is degenerate and
    yields 0. Raises ValueError when ``a`` and ``m`` are not coprime.
    """
    if m < 1:
        raise ValueError(f"Modulus must be positive, got {m}")
    if m == 1:
        return 0
    old_r, r = a % m, m
    old_s, s = 1, 0
    while r:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_s, s = s, old_s - q * s
    if old_r != 1:
        raise ValueError(f"{a} has no inverse modulo {m} (gcd={old_r})")
    return old_s % m


@dataclass
class MaskState:
    """Current XOR mask or split key. Replaced wholesale on rotation."""

    key: int


@dataclass(frozen=True)
class ResidueParams:
    m1: int
    m2: int
    y1: int
    y2: int

    @classmethod
    def from_moduli(cls, m1: int, m2: int) -> "ResidueParams":
        if gcd(m1, m2) != 1:
            raise ValueError(f"Moduli {m1} and {m2} are not coprime")
        params = cls(m1=m1, m2=m2, y1=modular_inverse(m2, m1), y2=modular_inverse(m1, m2))
        logger.debug(
            "Residue params initialized: m1=%s m2=%s y1=%s y2=%s",
            params.m1,
            params.m2,
            params.y1,
            params.y2,
        )
        return params

    @property
    def product(self) -> int:
        return self.m1 * self.m2


class EncodingStrategy(ABC):
    name: str = "abstract"
    slot_count: int = 1
    uses_mask: bool = False

    @abstractmethod
    def encode(self, value: int, state: Optional[object] = None) -> List[int]:
        raise NotImplementedError

    @abstractmethod
    def decode(self, slots: Sequence[int], state: Optional[object] = None) -> int:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name} slots={self.slot_count}>"


class PlainEncoding(EncodingStrategy):
    name = "plain"

    def encode(self, value: int, state: Optional[object] = None) -> List[int]:
        return [value]

    def decode(self, slots: Sequence[int], state: Optional[object] = None) -> int:
        return slots[0]


class XorMaskEncoding(EncodingStrategy):
    name = "xor_mask"
    uses_mask = True

    def encode(self, value: int, state: Optional[object] = None) -> List[int]:
        return [value ^ _mask_key(state)]

    def decode(self, slots: Sequence[int], state: Optional[object] = None) -> int:
        return slots[0] ^ _mask_key(state)


class BitSplitEncoding(EncodingStrategy):
    """Spreads the bits of the value over two slots according to the key.

    Recombining needs no key, but a stale split leaves each slot's bit
    pattern tied to the old key, so slots are re-split on every rotation.
    """

    name = "bit_split"
    slot_count = 2
    uses_mask = True

    def encode(self, value: int, state: Optional[object] = None) -> List[int]:
        key = _mask_key(state)
        return [value & ~key, value & key]

    def decode(self, slots: Sequence[int], state: Optional[object] = None) -> int:
        return slots[0] | slots[1]


class ResidueEncoding(EncodingStrategy):
    """Stores ``v mod m1`` and ``v mod m2``; CRT recombines them.

    Valid for ``0 <= v < m1 * m2`` with coprime moduli.
    """

    name = "residue"
    slot_count = 2

    def encode(self, value: int, state: Optional[object] = None) -> List[int]:
        params = _residue_params(state)
        return [value % params.m1, value % params.m2]

    def decode(self, slots: Sequence[int], state: Optional[object] = None) -> int:
        p = _residue_params(state)
        r1, r2 = slots[0], slots[1]
        return (r1 * p.m2 * p.y1 + r2 * p.m1 * p.y2) % p.product


def _mask_key(state: Optional[object]) -> int:
    if not isinstance(state, MaskState):
        raise TypeError(f"Mask-based encoding requires a MaskState, got {state!r}")
    return state.key


def _residue_params(state: Optional[object]) -> ResidueParams:
    if not isinstance(state, ResidueParams):
        raise TypeError(f"Residue encoding requires ResidueParams, got {state!r}")
    return state


class GuardMode(str, Enum):
    PLAIN = "plain"
    XOR_MASK = "xor_mask"
    BIT_SPLIT = "bit_split"
    RESIDUE = "residue"

    @property
    def strategy(self) -> EncodingStrategy:
        return _STRATEGIES[self]

    @property
    def slot_count(self) -> int:
        return self.strategy.slot_count

    @property
    def uses_mask(self) -> bool:
        return self.strategy.uses_mask


_STRATEGIES: Dict[GuardMode, EncodingStrategy] = {
    GuardMode.PLAIN: PlainEncoding(),
    GuardMode.XOR_MASK: XorMaskEncoding(),
    GuardMode.BIT_SPLIT: BitSplitEncoding(),
    GuardMode.RESIDUE: ResidueEncoding(),
}


def strategy_for(mode: GuardMode) -> EncodingStrategy:
    return _STRATEGIES[GuardMode(mode)]


__all__ = [
    "BitSplitEncoding",
    "EncodingStrategy",
    "GuardMode",
    "MaskState",
    "PlainEncoding",
    "ResidueEncoding",
    "ResidueParams",
    "XorMaskEncoding",
    "modular_inverse",
    "strategy_for",
]
