import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from .config import GuardConfig
from .counter import ProtectedCounter
from .events import CoinSoundEvent, CoinsChangedEvent, EventBus

logger = logging.getLogger(__name__)

START_COINS = 100
MAX_COINS = 9999

COIN_SOUND = "sounds/coin.wav"
LIFEUP_SOUND = "sounds/lifeup.wav"
LIFEUP_THRESHOLD = 100
SOUND_INTERVAL = 0.010  # seconds between coin sounds

CHECKPOINT_MIN_PENALTY = 25


def _default_config() -> GuardConfig:
    return GuardConfig(max_value=MAX_COINS)


@dataclass
class CoinPurse:
    """The player's coin count, held in a :class:`ProtectedCounter`.

    Emits CoinsChangedEvent on every change and CoinSoundEvent when a pickup
    should be audible. Saves carry only the decoded amount.
    """

    event_bus: EventBus
    config: GuardConfig = field(default_factory=_default_config)
    clock: Callable[[], float] = time.monotonic
    _counter: ProtectedCounter = field(init=False, repr=False)
    _last_sound_at: Optional[float] = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self._counter = ProtectedCounter(self.config, START_COINS)

    @property
    def coins(self) -> int:
        return self._counter.get()

    def get_max_coins(self) -> int:
        return self._counter.max_value

    def set_coins(self, amount: int, reason: str = "adjust") -> None:
        old = self._counter.get()
        self._counter.set(amount)
        new = self._counter.get()
        if old != new:
            logger.debug("Coins set: old=%s new=%s (reason=%s)", old, new, reason)
            self.event_bus.emit(CoinsChangedEvent(old_amount=old, new_amount=new, delta=new - old, reason=reason))

    def add_coins(self, count: int, play_sound: bool = True, reason: str = "pickup") -> int:
        """Add coins, saturating at the maximum. Returns the applied delta."""
        old = self._counter.get()
        new = self._counter.add(count)
        delta = new - old
        if delta:
            logger.debug("Coins added: %+d (reason=%s); old=%s new=%s", delta, reason, old, new)
            self.event_bus.emit(CoinsChangedEvent(old_amount=old, new_amount=new, delta=delta, reason=reason))
        if play_sound:
            self._play_pickup_sound(count)
        return delta

    def take_checkpoint_coins(self) -> int:
        """Charge for respawning at a checkpoint: a tenth of the coins, at least 25."""
        coins = self._counter.get()
        penalty = max(coins // 10, CHECKPOINT_MIN_PENALTY)
        self.set_coins(max(coins - penalty, 0), reason="checkpoint")
        return min(penalty, coins)

    def reset(self) -> None:
        self.set_coins(START_COINS, reason="reset")

    def to_dict(self) -> Dict[str, Any]:
        return {"coins": self._counter.get()}

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        event_bus: EventBus,
        config: Optional[GuardConfig] = None,
    ) -> "CoinPurse":
        purse = cls(event_bus=event_bus, config=config or _default_config())
        if "coins" in data:
            purse.set_coins(int(data["coins"]), reason="load")
        return purse

    def _play_pickup_sound(self, count: int) -> None:
        if count >= LIFEUP_THRESHOLD:
            self.event_bus.emit(CoinSoundEvent(sound=LIFEUP_SOUND, count=count))
            return
        now = self.clock()
        if self._last_sound_at is None or now > self._last_sound_at + SOUND_INTERVAL:
            self._last_sound_at = now
            self.event_bus.emit(CoinSoundEvent(sound=COIN_SOUND, count=count))
