import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from coin_guard.config import GuardConfig, GuardMode  # noqa: E402


@pytest.fixture
def quiet_config():
    """Factory for configs with every scheduler trigger disabled."""

    def make(mode: GuardMode = GuardMode.RESIDUE, **overrides):
        return GuardConfig(mode=mode, **overrides)

    return make


@pytest.fixture
def churn_config():
    """Factory for configs that rotate and relocate on every access."""

    def make(mode: GuardMode = GuardMode.XOR_MASK, **overrides):
        params = dict(
            mode=mode,
            mask_rotation_period=1,
            rotate_on_read=True,
            relocation_period=1,
            relocate_on_read=True,
        )
        params.update(overrides)
        return GuardConfig(**params)

    return make
