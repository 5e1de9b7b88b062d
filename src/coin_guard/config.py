from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from math import gcd
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from platformdirs import PlatformDirs

from .encoding import GuardMode, ResidueParams
from .exceptions import GuardConfigError

logger = logging.getLogger(__name__)

DEFAULT_XOR_MASK = 0x0ABCD123
DEFAULT_SPLIT_KEY = 0x1234FEDC
DEFAULT_MODULI = (7639, 8431)
DEFAULT_MAX_VALUE = 9999

CONFIG_FILENAME = "guard.json"

_LEGACY_FLAGS = {
    "xor_masking": GuardMode.XOR_MASK,
    "variable_splitting": GuardMode.BIT_SPLIT,
    "residue": GuardMode.RESIDUE,
}


@dataclass(frozen=True)
class GuardConfig:
    """How a protected counter stores its value.

    Periods are "one in N accesses"; 0 disables the trigger. ``moduli`` is
    only consulted in residue mode. ``initial_key`` defaults to a fixed
    per-mode key and is replaced on the first rotation.
    """

    mode: GuardMode = GuardMode.RESIDUE
    offset: int = 0
    mask_rotation_period: int = 0
    rotate_on_read: bool = False
    relocation_period: int = 0
    relocate_on_read: bool = False
    moduli: Tuple[int, int] = DEFAULT_MODULI
    max_value: int = DEFAULT_MAX_VALUE
    seed: int = 0
    initial_key: Optional[int] = None
    arena_capacity: int = 16

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "mode", GuardMode(self.mode))
        except ValueError as e:
            raise GuardConfigError(f"Unknown guard mode: {self.mode!r}") from e
        object.__setattr__(self, "moduli", tuple(self.moduli))
        self.validate()

    def validate(self) -> None:
        if self.mode is GuardMode.RESIDUE and self.offset != 0:
            raise GuardConfigError(
                "Unsupported combination of data obfuscations: residue encoding cannot use an offset"
            )
        if self.mask_rotation_period < 0:
            raise GuardConfigError(f"mask_rotation_period must be >= 0, got {self.mask_rotation_period}")
        if self.relocation_period < 0:
            raise GuardConfigError(f"relocation_period must be >= 0, got {self.relocation_period}")
        if self.max_value < 0:
            raise GuardConfigError(f"max_value must be >= 0, got {self.max_value}")
        if self.arena_capacity <= self.mode.slot_count:
            raise GuardConfigError(
                f"arena_capacity must exceed the slot count ({self.mode.slot_count}), got {self.arena_capacity}"
            )
        if self.mode is GuardMode.RESIDUE:
            self._validate_moduli()

    def _validate_moduli(self) -> None:
        if len(self.moduli) != 2:
            raise GuardConfigError(f"Residue mode needs exactly two moduli, got {self.moduli!r}")
        m1, m2 = self.moduli
        if m1 < 1 or m2 < 1:
            raise GuardConfigError(f"Moduli must be positive, got {self.moduli!r}")
        if gcd(m1, m2) != 1:
            raise GuardConfigError(f"Moduli {m1} and {m2} are not coprime; decoding would be ambiguous")
        if m1 * m2 <= self.max_value:
            raise GuardConfigError(
                f"Moduli product {m1 * m2} does not cover values up to max_value={self.max_value}"
            )

    @property
    def slot_count(self) -> int:
        return self.mode.slot_count

    @property
    def uses_mask(self) -> bool:
        return self.mode.uses_mask

    @property
    def effective_initial_key(self) -> Optional[int]:
        if not self.uses_mask:
            return None
        if self.initial_key is not None:
            return self.initial_key
        return DEFAULT_XOR_MASK if self.mode is GuardMode.XOR_MASK else DEFAULT_SPLIT_KEY

    def residue_params(self) -> Optional[ResidueParams]:
        if self.mode is not GuardMode.RESIDUE:
            return None
        return ResidueParams.from_moduli(*self.moduli)

    @classmethod
    def from_flags(
        cls,
        *,
        xor_masking: bool = False,
        variable_splitting: bool = False,
        residue: bool = False,
        **kwargs: Any,
    ) -> "GuardConfig":
        """Build a config from independent enable flags.

        At most one flag may be set; none selects plain storage.
        """
        enabled = [
            name
            for name, on in (
                ("xor_masking", xor_masking),
                ("variable_splitting", variable_splitting),
                ("residue", residue),
            )
            if on
        ]
        if len(enabled) > 1:
            raise GuardConfigError(
                "Unsupported combination of data obfuscations: " + ", ".join(enabled)
            )
        mode = _LEGACY_FLAGS[enabled[0]] if enabled else GuardMode.PLAIN
        return cls(mode=mode, **kwargs)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GuardConfig":
        known = {f.name for f in fields(cls)} | set(_LEGACY_FLAGS)
        unknown = sorted(set(data) - known)
        if unknown:
            raise GuardConfigError(f"Unknown guard config keys: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key in ("offset", "mask_rotation_period", "relocation_period", "max_value", "seed", "arena_capacity"):
            if key in data:
                kwargs[key] = _json_int(key, data[key])
        for key in ("rotate_on_read", "relocate_on_read"):
            if key in data:
                kwargs[key] = _json_bool(key, data[key])
        if data.get("initial_key") is not None:
            kwargs["initial_key"] = _json_int("initial_key", data["initial_key"])
        if "moduli" in data:
            moduli = data["moduli"]
            if not isinstance(moduli, list):
                raise GuardConfigError(f"'moduli' must be a list of integers, got {moduli!r}")
            kwargs["moduli"] = tuple(_json_int("moduli", m) for m in moduli)

        flags = {name: _json_bool(name, data[name]) for name in _LEGACY_FLAGS if name in data}
        if "mode" in data:
            if not isinstance(data["mode"], str):
                raise GuardConfigError(f"'mode' must be a string, got {data['mode']!r}")
            if flags:
                raise GuardConfigError("Specify either 'mode' or the legacy enable flags, not both")
            return cls(mode=data["mode"], **kwargs)
        if flags:
            return cls.from_flags(**flags, **kwargs)
        return cls(**kwargs)


def _json_int(key: str, value: Any) -> int:
    # bool is an int subclass; JSON true/false is not a number here.
    if isinstance(value, bool) or not isinstance(value, int):
        raise GuardConfigError(f"'{key}' must be an integer, got {value!r}")
    return value


def _json_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise GuardConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def default_config_path() -> Path:
    d = PlatformDirs(appname="CoinGuard", appauthor="CoinGuard")
    return Path(d.user_config_dir) / CONFIG_FILENAME


def load_guard_config(path: Optional[Path] = None) -> GuardConfig:
    """Load a guard config from JSON, falling back to defaults if unreadable.

    A file that parses but describes an invalid configuration raises
    GuardConfigError instead of falling back.
    """
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        logger.warning("Guard config not found at %s; using defaults", path)
        return GuardConfig()
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.exception("Failed to load guard config: %s", e)
        return GuardConfig()
    if not isinstance(data, dict):
        raise GuardConfigError(f"Guard config at {path} must be a JSON object")
    cfg = GuardConfig.from_dict(data)
    logger.debug("Loaded guard config from %s: mode=%s", path, cfg.mode.value)
    return cfg


__all__ = [
    "DEFAULT_MAX_VALUE",
    "DEFAULT_MODULI",
    "DEFAULT_SPLIT_KEY",
    "DEFAULT_XOR_MASK",
    "GuardConfig",
    "GuardMode",
    "default_config_path",
    "load_guard_config",
]
