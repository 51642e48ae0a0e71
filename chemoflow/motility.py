import enum
from dataclasses import dataclass, field

import numpy as np
from scipy.spatial.transform import Rotation

from chemoflow.distributions import Arccos, Degenerate, draw, uniform


class MotileState(enum.Enum):
    FORWARD = 1
    BACKWARD = -1

    def switched(self):
        return MotileState.BACKWARD if self is MotileState.FORWARD else MotileState.FORWARD


# --- Motility Patterns ---

@dataclass(frozen=True)
class RunTumble:
    """Runs at a speed drawn from `speed`, tumbles by (`polar`, `azimuthal`)."""
    speed: object = field(default_factory=lambda: Degenerate(30.0))
    polar: object = field(default_factory=lambda: uniform(-np.pi, np.pi))
    azimuthal: object = field(default_factory=Arccos)

    two_step = False

    def initial_speed(self):
        return self.speed

    def turn_distributions(self, state):
        return self.speed, self.polar, self.azimuthal


@dataclass(frozen=True)
class RunReverse:
    """Forward and backward runs alternate strictly; each switch is a reversal.

    Leaving a state rotates the heading by that state's (polar, azimuthal)
    draw; the new run speed is drawn from the state being entered.
    """
    speed_forward: object = field(default_factory=lambda: Degenerate(30.0))
    polar_forward: object = field(default_factory=lambda: Degenerate(np.pi))
    azimuthal_forward: object = field(default_factory=Arccos)
    speed_backward: object = None
    polar_backward: object = None
    azimuthal_backward: object = None

    two_step = True

    def __post_init__(self):
        if self.speed_backward is None:
            object.__setattr__(self, 'speed_backward', self.speed_forward)
        if self.polar_backward is None:
            object.__setattr__(self, 'polar_backward', self._default_polar_backward())
        if self.azimuthal_backward is None:
            object.__setattr__(self, 'azimuthal_backward', self.azimuthal_forward)

    def _default_polar_backward(self):
        return self.polar_forward

    def initial_speed(self):
        return self.speed_forward

    def turn_distributions(self, state):
        if state is MotileState.FORWARD:
            return self.speed_backward, self.polar_forward, self.azimuthal_forward
        return self.speed_forward, self.polar_backward, self.azimuthal_backward


@dataclass(frozen=True)
class RunReverseFlick(RunReverse):
    """Forward run, reversal, backward run, flick; the flick ends the backward run."""

    def _default_polar_backward(self):
        return Degenerate(np.pi / 2)


# --- Rotations ---

def random_direction(dim, rng):
    """Unit vector drawn uniformly on the (dim-1)-sphere."""
    while True:
        v = rng.standard_normal(dim)
        norm = np.linalg.norm(v)
        if norm > 0:
            return v / norm


def _perpendicular(w):
    e = np.zeros(3)
    e[np.argmin(np.abs(w))] = 1.0
    a = np.cross(w, e)
    return a / np.linalg.norm(a)


def rotate(w, theta, phi=0.0):
    """Rotates the unit vector `w` by polar angle `theta` and azimuthal angle `phi`."""
    w = np.asarray(w, dtype=np.float64)
    dim = len(w)
    if dim == 1:
        return -w if np.cos(theta) < 0 else w.copy()
    if dim == 2:
        c, s = np.cos(theta), np.sin(theta)
        return np.array([c * w[0] - s * w[1], s * w[0] + c * w[1]])
    if dim == 3:
        tilted = Rotation.from_rotvec(theta * _perpendicular(w)).apply(w)
        return Rotation.from_rotvec(phi * w).apply(tilted)
    raise ValueError(f"Rotations are defined for 1, 2 or 3 dimensions, got {dim}")


def heading(microbe, rng):
    speed = np.linalg.norm(microbe.vel)
    if speed > 0:
        return microbe.vel / speed
    return random_direction(len(microbe.vel), rng)


# --- Reorientation ---

def reorients(rate, dt, rng):
    """Whether at least one Poisson event of intensity `rate` falls in a window `dt`."""
    if rate <= 0:
        return False
    return rng.random() < -np.expm1(-rate * dt)


def turn(microbe, rng):
    """Reorients `microbe` according to its motility pattern and draws a new speed."""
    motility = microbe.motility
    speed, polar, azimuthal = motility.turn_distributions(microbe.motile_state)
    new_heading = rotate(heading(microbe, rng), draw(polar, rng), draw(azimuthal, rng))
    microbe.vel[:] = new_heading * draw(speed, rng)
    if motility.two_step:
        microbe.motile_state = microbe.motile_state.switched()


def rotational_diffusion(microbe, dt, rng):
    """Brownian rotation of the heading; speed is unchanged."""
    D_rot = microbe.rotational_diffusivity
    dim = len(microbe.vel)
    if D_rot <= 0 or dim == 1:
        return
    sigma = np.sqrt(2.0 * D_rot * dt)
    if dim == 2:
        microbe.vel[:] = rotate(microbe.vel, rng.normal(0.0, sigma))
    else:
        microbe.vel[:] = Rotation.from_rotvec(rng.normal(0.0, sigma, size=3)).apply(microbe.vel)
