import numpy as np
import pytest

from chemoflow.exceptions import ConfigurationError, DimensionMismatch
from chemoflow.microbes import Microbe
from chemoflow.model import initialise_model
from chemoflow.space import ContinuousDomain, make_extent


def test_make_extent():
    assert np.array_equal(make_extent(2.0, 3), [2.0, 2.0, 2.0])
    assert np.array_equal(make_extent((1, 2), 2), [1.0, 2.0])
    with pytest.raises(DimensionMismatch):
        make_extent((1.0, 2.0), 3)
    with pytest.raises(ConfigurationError):
        make_extent((1.0, -2.0), 2)
    with pytest.raises(ConfigurationError):
        make_extent(0.0, 1)


def test_random_positions_inside_box(rng):
    domain = ContinuousDomain((1.0, 5.0), 2)
    points = np.array([domain.random_position(rng) for _ in range(1000)])
    assert np.all(points >= 0)
    assert np.all(points < [1.0, 5.0])


def test_wrap_and_separation():
    domain = ContinuousDomain(10.0, 2)
    pos = np.array([-0.5, 23.0])
    domain.wrap(pos)
    assert pos == pytest.approx([9.5, 3.0])
    pos = np.array([-1e-18, 0.0])
    domain.wrap(pos)
    assert pos[0] == 0.0
    assert domain.separation([9.0, 1.0], [1.0, 9.0]) == pytest.approx([2.0, -2.0])
    assert domain.distance([9.0, 1.0], [1.0, 9.0]) == pytest.approx(np.sqrt(8.0))


def test_non_periodic_domain_does_not_wrap():
    domain = ContinuousDomain(10.0, 1, periodic=False)
    pos = np.array([12.0])
    domain.wrap(pos)
    assert pos[0] == 12.0
    assert domain.distance([9.0], [1.0]) == pytest.approx(8.0)


def test_spacing():
    assert ContinuousDomain((40.0, 100.0), 2).spacing == pytest.approx(2.0)
    assert ContinuousDomain(40.0, 2, spacing=0.5).spacing == 0.5
    with pytest.raises(ConfigurationError):
        ContinuousDomain(40.0, 2, spacing=0.0)


def test_grid_index():
    domain = ContinuousDomain((10.0, 20.0), 2)
    assert domain.grid_index([0.0, 0.0], (10, 10)) == (0, 0)
    assert domain.grid_index([9.99, 19.99], (10, 10)) == (9, 9)
    assert domain.grid_index([5.0, 5.0], (10, 10)) == (5, 2)
    assert domain.grid_index([15.0, -1.0], (10, 10)) == (9, 0)


def test_nearby_ids():
    positions = [[1.0, 1.0], [2.0, 1.0], [9.5, 1.0], [5.0, 5.0]]
    microbes = [Microbe(pos=p, vel=[0.0, 0.0]) for p in positions]
    model = initialise_model(microbes=microbes, timestep=1.0, extent=10.0, random_positions=False)
    assert model.domain.nearby_ids(model, [1.0, 1.0], 2.0) == [0, 1, 2]
    assert model.domain.nearby_ids(model, [1.0, 1.0], 2.0, exclude=0) == [1, 2]
    model.domain.periodic = False
    assert model.domain.nearby_ids(model, [1.0, 1.0], 2.0) == [0, 1]
