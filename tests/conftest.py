import logging
import os

# pygame must not try to open a real window during the tests
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import numpy as np
import pytest

from hard_disks import HardDisks


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def lattice(rng):
    """The default run: 16 disks on a regular lattice in an 8x8 box."""
    hard_disks = HardDisks(rng)
    hard_disks.initialize(16, 8.0, 8.0, "regular")
    return hard_disks


@pytest.fixture
def head_on():
    """Two disks on the x axis, two apart, approaching at unit speed."""
    hard_disks = HardDisks(np.random.default_rng(0))
    hard_disks.load_state([[4.0, 5.0], [6.0, 5.0]], [[1.0, 0.0], [-1.0, 0.0]], 10.0, 10.0)
    return hard_disks


@pytest.fixture
def app_logger():
    logger = logging.getLogger("hard_disks")
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
