import sys
from pathlib import Path

import pytest

# Ensure local package is imported before any installed version
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from qubit_weave.qubit_weave import Config  # noqa: E402


@pytest.fixture(autouse=True)
def restore_config():
    cfg = Config()
    previous = (cfg.overrotation, cfg.use_jit, cfg.calibration_inverse)
    yield cfg
    cfg.set_overrotation(previous[0])
    cfg.set_use_jit(previous[1])
    cfg.set_calibration_inverse(previous[2])
