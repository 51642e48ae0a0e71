import numpy as np
import pytest

from chemoflow.microbes import Microbe


@pytest.fixture
def rng():
    """Seeded generator so stochastic tests are reproducible."""
    return np.random.default_rng(12345)


@pytest.fixture(autouse=True)
def reset_microbe_ids():
    """Restart automatic microbe ids for every test."""
    Microbe.next_id = 0
    yield
    Microbe.next_id = 0
