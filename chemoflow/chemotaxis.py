"""Chemotaxis response kernels.

A kernel is a pair of functions keyed by a microbe ``kind``:

* ``affect(microbe, model)`` reads the ambient field through the model
  accessors and updates ``microbe.state`` in place;
* ``turn_rate(microbe, model)`` returns the modulated reorientation rate and
  must only be called after ``affect`` for the current tick.

New kernels are added with :func:`register_kernel`; the stepping engine looks
them up in :data:`KERNEL_MAP` and needs no changes.
"""
import logging

import numpy as np

from chemoflow.exceptions import ConfigurationError, FieldIntegrationError

log = logging.getLogger(__name__)


# --- Field Accessors ---

def _sample(model, accessor_name, pos):
    accessor = getattr(model, accessor_name)
    if accessor is None:
        raise ConfigurationError(f"Model has no '{accessor_name}' accessor; chemotactic microbes need one.")
    return accessor(pos, model)


def concentration(microbe, model):
    return float(_sample(model, 'concentration_field', microbe.pos))


def material_derivative(microbe, model):
    """du/dt along the trajectory: vel · ∇u + ∂u/∂t at the microbe position."""
    grad = np.atleast_1d(_sample(model, 'concentration_gradient', microbe.pos))
    dudt = _sample(model, 'concentration_time_derivative', microbe.pos)
    return float(np.dot(microbe.vel, grad) + dudt)


# --- Null Kernel ---

def no_affect(microbe, model):
    return None


def static_turn_rate(microbe, model):
    return microbe.turn_rate


# --- Celani & Vergassola ---

def _celani_update(microbe, signal, dt):
    lam = 1.0 / microbe.memory
    S = microbe.state
    S[0] = S[0] + (-lam * S[0] + signal) * dt
    S[1] = S[1] + (-lam * S[1] + S[0]) * dt
    S[2] = S[2] + (-lam * S[2] + 2 * S[1]) * dt
    S[3] = 1 - microbe.gain * (lam**2 * S[1] - lam**3 / 2 * S[2])


def celani_affect(microbe, model):
    _celani_update(microbe, concentration(microbe, model), model.timestep)


def _shot_noise(microbe, u, scale):
    """Standard deviation `sqrt(scale * u)` of a concentration measurement; u must be non-negative."""
    if not u >= 0:
        raise FieldIntegrationError(
            f"Microbe {microbe.id} sampled concentration {u} at {microbe.pos}; "
            f"measurement noise is undefined for negative or NaN concentrations"
        )
    sigma = np.sqrt(scale * u)
    if not np.isfinite(sigma):
        raise FieldIntegrationError(f"Measurement noise for microbe {microbe.id} is not finite: {sigma}")
    return sigma


def noisy_measurement_sigma(microbe, u, model):
    a = microbe.radius
    Dc = model.compound_diffusivity
    dt = model.timestep
    return microbe.chemotactic_precision * _shot_noise(microbe, u, 3 / (np.pi * a * Dc * dt**3))


def celani_noisy_affect(microbe, model):
    # The first filter stage is fed a noisy measurement of du/dt, not of u.
    u = concentration(microbe, model)
    sigma = noisy_measurement_sigma(microbe, u, model)
    measurement = model.rng.normal(material_derivative(microbe, model), sigma)
    _celani_update(microbe, measurement, model.timestep)


def celani_turn_rate(microbe, model):
    return microbe.turn_rate * microbe.state[3]


# --- Brown & Berg ---

def brown_berg_affect(microbe, model):
    beta = model.timestep / microbe.adaptation_time
    KD = microbe.receptor_binding_constant
    u = concentration(microbe, model)
    # rate of change of receptor occupancy
    M = KD / (KD + u)**2 * material_derivative(microbe, model)
    microbe.state[0] = beta * M + microbe.state[0] * np.exp(-beta)


def brown_berg_turn_rate(microbe, model):
    return microbe.turn_rate * np.exp(-microbe.motor_gain * microbe.state[0])


# --- Brumley et al. ---

def brumley_affect(microbe, model):
    dt = model.timestep
    alpha = np.exp(-dt / microbe.adaptation_time)
    KD = microbe.receptor_binding_constant
    u = concentration(microbe, model)
    sigma = microbe.chemotactic_precision * 0.04075 * _shot_noise(
        microbe, u, 3 / (5 * np.pi * model.compound_diffusivity * microbe.radius * dt**3)
    )
    M = model.rng.normal(material_derivative(microbe, model), sigma)
    microbe.state[0] = alpha * microbe.state[0] + (1 - alpha) * KD / (KD + u)**2 * M


def brumley_turn_rate(microbe, model):
    return (1 + np.exp(-microbe.motor_gain * microbe.state[0])) * microbe.turn_rate / 2


# --- Dispatch Table ---
KERNEL_MAP = {
    'microbe': (no_affect, static_turn_rate),
    'brown_berg': (brown_berg_affect, brown_berg_turn_rate),
    'brumley': (brumley_affect, brumley_turn_rate),
    'celani': (celani_affect, celani_turn_rate),
    'celani_noisy': (celani_noisy_affect, celani_turn_rate),
}


def register_kernel(kind, affect, turn_rate):
    if kind in KERNEL_MAP:
        log.info("Replacing chemotaxis kernel '%s'", kind)
    KERNEL_MAP[kind] = (affect, turn_rate)


def kernel_for(microbe):
    kernel = KERNEL_MAP.get(microbe.kind)
    if kernel is None:
        raise ValueError(f"Unknown microbe kind: '{microbe.kind}'. "
                         f"Available options are: {list(KERNEL_MAP.keys())}")
    return kernel
