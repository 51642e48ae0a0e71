import logging
from dataclasses import dataclass

import numpy as np

from chemoflow import config
from chemoflow.exceptions import ReinsertionExhausted

log = logging.getLogger(__name__)


# --- Obstacles ---

@dataclass
class ObstacleSphere:
    """Spherical (circular in 2D) obstacle centred at `pos`."""
    pos: np.ndarray
    radius: float

    def __post_init__(self):
        self.pos = np.array(self.pos, dtype=np.float64).reshape(-1)


def sphere_encounter(microbe, sphere, model):
    contact = microbe.radius + sphere.radius
    return model.domain.distance(microbe.pos, sphere.pos) < contact


ENCOUNTER_MAP = {
    ObstacleSphere: sphere_encounter,
}


def register_encounter(body_type, predicate):
    ENCOUNTER_MAP[body_type] = predicate


def is_encounter(microbe, body, model):
    for body_type in type(body).__mro__:
        predicate = ENCOUNTER_MAP.get(body_type)
        if predicate is not None:
            return predicate(microbe, body, model)
    raise TypeError(f"No encounter predicate registered for {type(body).__name__}. "
                    f"Available options are: {[t.__name__ for t in ENCOUNTER_MAP]}")


# --- Encounter Resolution ---

def reinsert(microbe, model, bodies='bodies', avoid_bodies=True,
             max_attempts=config.MAX_REINSERT_ATTEMPTS):
    """Moves `microbe` to a random position.

    With `avoid_bodies`, positions overlapping any body in `model.get(bodies)`
    are redrawn; after `max_attempts` draws ReinsertionExhausted is raised.
    """
    collection = model.get(bodies)
    for _ in range(max_attempts):
        model.domain.move_to_random(microbe, model.rng)
        if not avoid_bodies:
            return microbe
        if not any(is_encounter(microbe, body, model) for body in collection):
            return microbe
    raise ReinsertionExhausted(
        f"Could not place microbe {microbe.id} clear of {len(collection)} bodies "
        f"in {max_attempts} attempts"
    )


def encounters(model, bodies='bodies', key='encounters', encounter_affect=reinsert):
    """Resolves at most one encounter per microbe against the bodies in `model.get(bodies)`.

    Each encounter adds 1 to the counter `model.get(key)` and calls
    `encounter_affect(microbe, model, bodies)`. Meant to be chained as a model
    update hook.
    """
    collection = model.get(bodies)
    for agent_id in sorted(model.agents):
        microbe = model.agents[agent_id]
        for body in collection:
            if is_encounter(microbe, body, model):
                model.set(key, model.get(key) + 1)
                log.debug("Microbe %d encountered %r at tick %d", agent_id, body, model.tick)
                encounter_affect(microbe, model, bodies)
                break
