"""Probability distributions for motility draws.

Motility patterns accept anything exposing ``rvs(size=None, random_state=None)``,
so frozen ``scipy.stats`` distributions work as-is. The two distributions below
complete the set: a fixed value and the polar-cosine distribution that gives
uniform directions on the sphere.
"""
import numpy as np
from scipy import stats


def _generator(random_state):
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


class Degenerate:
    """Distribution with all of its mass on `value`."""

    def __init__(self, value):
        self.value = float(value)

    def __repr__(self):
        return f"Degenerate({self.value})"

    def __eq__(self, other):
        return isinstance(other, Degenerate) and other.value == self.value

    def __hash__(self):
        return hash(('Degenerate', self.value))

    def rvs(self, size=None, random_state=None):
        if size is None:
            return self.value
        return np.full(size, self.value)

    def mean(self):
        return self.value


class Arccos:
    """arccos(X) with X ~ Uniform(a, b); Arccos(-1, 1) is the isotropic azimuth."""

    def __init__(self, a=-1.0, b=1.0):
        if not -1.0 <= a < b <= 1.0:
            raise ValueError(f"Arccos bounds must satisfy -1 <= a < b <= 1, got ({a}, {b})")
        self.a = float(a)
        self.b = float(b)

    def __repr__(self):
        return f"Arccos({self.a}, {self.b})"

    def rvs(self, size=None, random_state=None):
        return np.arccos(_generator(random_state).uniform(self.a, self.b, size=size))


def uniform(low, high):
    """Uniform(low, high) as a frozen scipy.stats distribution."""
    return stats.uniform(loc=low, scale=high - low)


def draw(distribution, rng):
    """Single float draw from `distribution` using the generator `rng`."""
    return float(distribution.rvs(random_state=rng))
