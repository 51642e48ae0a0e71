from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np

from chemoflow.distributions import Degenerate
from chemoflow.motility import MotileState, RunReverseFlick, RunTumble


# --- Microbe Definitions ---
# `kind` selects the chemotaxis kernel in chemotaxis.KERNEL_MAP.

@dataclass(eq=False)
class Microbe:
    """Chemotaxis-free swimmer with a static turn rate."""
    kind: ClassVar[str] = 'microbe'
    next_id: ClassVar[int] = 0

    id: int = None
    pos: np.ndarray = None
    vel: np.ndarray = None
    motility: object = field(default_factory=RunTumble)
    turn_rate: float = 1.0                  # 1/s
    state: np.ndarray = field(default_factory=lambda: np.zeros(0))
    rotational_diffusivity: float = 0.0     # rad²/s
    radius: float = 0.0                     # μm
    motile_state: MotileState = MotileState.FORWARD

    def __post_init__(self):
        if self.id is None:
            self.id = Microbe.next_id
        Microbe.next_id = max(Microbe.next_id, self.id + 1)
        if self.pos is None:
            dim = 3 if self.vel is None else len(self.vel)
            self.pos = np.zeros(dim)
        self.pos = np.array(self.pos, dtype=np.float64).reshape(-1)
        if self.vel is not None:
            self.vel = np.array(self.vel, dtype=np.float64).reshape(-1)
            if len(self.vel) != len(self.pos):
                raise ValueError(f"Microbe {self.id}: pos and vel have different dimensionality")
        self.state = np.array(self.state, dtype=np.float64).reshape(-1)

    @property
    def dim(self):
        return len(self.pos)


@dataclass(eq=False)
class BrownBerg(Microbe):
    """Response kernel of Brown and Berg (1974), PNAS 71, 1388."""
    kind: ClassVar[str] = 'brown_berg'

    turn_rate: float = 1 / 0.67
    state: np.ndarray = field(default_factory=lambda: np.zeros(1))
    rotational_diffusivity: float = 0.035
    motor_gain: float = 660.0               # s
    receptor_binding_constant: float = 100.0  # μM
    adaptation_time: float = 1.0            # s


@dataclass(eq=False)
class Brumley(Microbe):
    """Noisy sensing kernel of Brumley et al. (2019), PNAS 116, 10792."""
    kind: ClassVar[str] = 'brumley'

    motility: object = field(default_factory=lambda: RunReverseFlick(speed_forward=Degenerate(46.5)))
    turn_rate: float = 1 / 0.315
    state: np.ndarray = field(default_factory=lambda: np.zeros(1))
    rotational_diffusivity: float = 0.035
    radius: float = 0.5
    adaptation_time: float = 1.3
    receptor_binding_constant: float = 100.0
    motor_gain: float = 50.0
    chemotactic_precision: float = 6.0


@dataclass(eq=False)
class Celani(Microbe):
    """Response kernel of Celani and Vergassola (2010), PNAS 107, 1391."""
    kind: ClassVar[str] = 'celani'

    turn_rate: float = 1 / 0.67
    state: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))
    rotational_diffusivity: float = 0.26
    radius: float = 0.5
    gain: float = 50.0
    memory: float = 1.0                     # s


@dataclass(eq=False)
class CelaniNoisy(Celani):
    kind: ClassVar[str] = 'celani_noisy'

    chemotactic_precision: float = 1.0
