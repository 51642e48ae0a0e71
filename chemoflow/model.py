"""Model construction and the coupled stepping engine.

One tick steps every microbe (chemotaxis kernel, reorientation, rotational
diffusion, displacement) in ascending id order, then the model: the field
integrator advances by exactly one timestep, the tick counter increases and
the update hooks refresh derived fields or resolve encounters. The field only
moves after all microbes have read it for the tick.
"""
import logging

import numpy as np
from tqdm import tqdm

from chemoflow import config
from chemoflow.chemotaxis import kernel_for
from chemoflow.distributions import draw
from chemoflow.exceptions import ConfigurationError, DimensionMismatch
from chemoflow.motility import random_direction, reorients, rotational_diffusion, turn
from chemoflow.recording import Recorder, make_schedule, should_collect
from chemoflow.space import ContinuousDomain

log = logging.getLogger(__name__)


class Model:
    """World state of one simulation run."""

    def __init__(self, domain, timestep, rng=None,
                 integrator=None,
                 concentration_field=None,
                 concentration_gradient=None,
                 concentration_time_derivative=None,
                 gradient=None,
                 time_derivative=None,
                 mesh=None,
                 compound_diffusivity=config.COMPOUND_DIFFUSIVITY,
                 bodies=None,
                 encounters=0,
                 update_hooks=None,
                 extras=None):
        self.domain = domain
        self.timestep = float(timestep)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.tick = 0
        self.agents = {}
        self.integrator = integrator
        self.concentration_field = concentration_field
        self.concentration_gradient = concentration_gradient
        self.concentration_time_derivative = concentration_time_derivative
        self.gradient = gradient
        self.time_derivative = time_derivative
        self.mesh = mesh
        self.compound_diffusivity = compound_diffusivity
        self.bodies = [] if bodies is None else bodies
        self.encounters = encounters
        self.update_hooks = [] if update_hooks is None else list(update_hooks)
        self.extras = {} if extras is None else dict(extras)

    def __repr__(self):
        return (f"Model(agents={len(self.agents)}, tick={self.tick}, timestep={self.timestep}, "
                f"domain={self.domain}, integrator={self.integrator!r})")

    @property
    def time(self):
        return self.tick * self.timestep

    def get(self, key):
        """Declared field `key` if there is one, otherwise the extras entry."""
        if key in self.__dict__ and key != 'extras':
            return self.__dict__[key]
        try:
            return self.extras[key]
        except KeyError:
            raise KeyError(f"Model has no field or extra property '{key}'") from None

    def set(self, key, value):
        if key in self.__dict__ and key != 'extras':
            setattr(self, key, value)
        else:
            self.extras[key] = value


MODEL_FIELDS = frozenset({
    'integrator', 'concentration_field', 'concentration_gradient',
    'concentration_time_derivative', 'gradient', 'time_derivative', 'mesh',
    'compound_diffusivity', 'bodies', 'encounters', 'update_hooks',
})


def add_agent(model, microbe, random_position=True):
    if microbe.id in model.agents:
        raise ConfigurationError(f"Duplicate microbe id {microbe.id}")
    if microbe.dim != model.domain.dim:
        raise DimensionMismatch(f"Microbe {microbe.id} is {microbe.dim}D, domain is {model.domain.dim}D")
    if random_position:
        model.domain.move_to_random(microbe, model.rng)
    if microbe.vel is None:
        speed = draw(microbe.motility.initial_speed(), model.rng)
        microbe.vel = random_direction(microbe.dim, model.rng) * speed
    model.agents[microbe.id] = microbe
    return microbe


def initialise_model(*, microbes, timestep, extent,
                     spacing=None, periodic=config.PERIODIC,
                     random_positions=True,
                     rng=None, seed=None,
                     model_properties=None):
    """Builds a Model holding the given `microbes` (the objects themselves, not copies).

    With `random_positions` the microbes are placed uniformly in the box,
    otherwise their positions are kept. `extent` is a scalar (cubic box) or a
    tuple with one entry per dimension. Entries of `model_properties` that name
    a Model field set that field; any other key goes to `model.extras`.
    """
    microbes = list(microbes)
    if not microbes:
        raise ConfigurationError("At least one microbe is required to initialise a model.")
    if not timestep > 0:
        raise ConfigurationError(f"Timestep must be positive, got {timestep}")
    dim = microbes[0].dim
    if any(m.dim != dim for m in microbes):
        raise DimensionMismatch("All microbes must have the same dimensionality.")

    domain = ContinuousDomain(extent, dim, spacing=spacing, periodic=periodic)
    if rng is None:
        rng = np.random.default_rng(seed)

    properties = dict(model_properties or {})
    fields = {k: properties.pop(k) for k in list(properties) if k in MODEL_FIELDS}
    model = Model(domain, timestep, rng=rng, extras=properties, **fields)

    for microbe in microbes:
        add_agent(model, microbe, random_position=random_positions)
    log.debug("Initialised %r", model)
    return model


# --- Stepping ---

def microbe_step(microbe, model, affect=None, turn_rate=None):
    """Advances one microbe by one tick.

    `affect` and `turn_rate` override the kernel registered for the microbe kind.
    """
    kernel_affect, kernel_turn_rate = kernel_for(microbe)
    affect = affect or kernel_affect
    turn_rate = turn_rate or kernel_turn_rate
    dt = model.timestep

    affect(microbe, model)
    rate = turn_rate(microbe, model)
    if reorients(rate, dt, model.rng):
        turn(microbe, model.rng)
    rotational_diffusion(microbe, dt, model.rng)
    model.domain.displace(microbe, microbe.vel * dt)


def model_step(model, update_model=None):
    """Advances the field by one timestep, increments the tick, then runs the update hooks.

    `update_model`, when given, replaces the registered hooks for this call.
    """
    if model.integrator is not None:
        model.integrator.advance(model.integrator.t + model.timestep, exact=True)
    model.tick += 1
    if update_model is not None:
        update_model(model)
    else:
        for hook in model.update_hooks:
            hook(model)


def chain(model, *hooks):
    """Appends `hooks` to the functions run by `model_step` after each tick."""
    model.update_hooks.extend(hooks)
    return model


def by_id(model):
    return sorted(model.agents)


def step(model, agent_step=microbe_step, model_step=model_step, n=1):
    """Runs `n` ticks: every agent first, then the model."""
    for _ in range(n):
        if agent_step is not None:
            for agent_id in by_id(model):
                agent_step(model.agents[agent_id], model)
        if model_step is not None:
            model_step(model)
    return model


def _finished(model, s, n):
    if callable(n):
        return bool(n(model, s))
    return s >= n


def run(model, agent_step=microbe_step, model_step=model_step, n=1,
        adata=(), mdata=(), when=True, when_model=True, showprogress=False):
    """Steps `model` and records data; returns (agent DataFrame, model DataFrame).

    `n` is a number of ticks or a stop predicate (model, s) -> bool. Data are
    collected at s = 0, 1, ..., up to and including the final step, whenever the
    schedules `when` (agents) and `when_model` (model) allow. Schedules are
    True, an iterable of steps, or a predicate (model, s) -> bool.
    """
    when = make_schedule(when)
    when_model = make_schedule(when_model)
    recorder = Recorder(adata, mdata)
    total = None if callable(n) else n
    log.info("Starting run: %s ticks, %d agents", total if total is not None else 'until stop', len(model.agents))

    s = 0
    with tqdm(total=total, disable=not showprogress) as progress:
        while not _finished(model, s, n):
            if should_collect(s, model, when):
                recorder.collect_agents(model, s)
            if should_collect(s, model, when_model):
                recorder.collect_model(model, s)
            step(model, agent_step, model_step, 1)
            s += 1
            progress.update(1)
    if should_collect(s, model, when):
        recorder.collect_agents(model, s)
    if should_collect(s, model, when_model):
        recorder.collect_model(model, s)

    log.info("Run finished after %d ticks (model tick %d)", s, model.tick)
    return recorder.agent_frame(), recorder.model_frame()
