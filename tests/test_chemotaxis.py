from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import pytest

from chemoflow.chemotaxis import (
    KERNEL_MAP, brown_berg_affect, brown_berg_turn_rate, brumley_affect, brumley_turn_rate,
    celani_affect, celani_noisy_affect, celani_turn_rate, kernel_for, register_kernel,
)
from chemoflow.exceptions import ConfigurationError, FieldIntegrationError
from chemoflow.microbes import BrownBerg, Brumley, Celani, CelaniNoisy, Microbe
from chemoflow.model import initialise_model, microbe_step


def make_model(microbe, u=2.0, grad=(1.0, 2.0), dudt=0.5, timestep=0.1, seed=5):
    return initialise_model(
        microbes=[microbe], timestep=timestep, extent=100.0, random_positions=False, seed=seed,
        model_properties={
            'concentration_field': lambda pos, model: u,
            'concentration_gradient': lambda pos, model: np.array(grad),
            'concentration_time_derivative': lambda pos, model: dudt,
        },
    )


def test_celani_euler_step():
    m = Celani(pos=np.zeros(2), vel=[3.0, 0.0])
    model = make_model(m)
    celani_affect(m, model)
    assert m.state == pytest.approx([0.2, 0.02, 0.004, 0.1])
    assert celani_turn_rate(m, model) == pytest.approx(0.1 / 0.67)


def test_celani_unbiased_before_any_signal():
    m = Celani(pos=np.zeros(2), vel=[3.0, 0.0])
    model = make_model(m)
    assert celani_turn_rate(m, model) == pytest.approx(m.turn_rate)


def test_celani_noisy_feeds_rate_of_change():
    # Pins the current behaviour: the first stage integrates a noisy du/dt
    # (vel . grad u + du/dt), not a noisy u.
    m = CelaniNoisy(pos=np.zeros(2), vel=[3.0, 0.0])
    model = make_model(m, u=2.0, seed=5)
    dt = model.timestep
    sigma = m.chemotactic_precision * np.sqrt(3 * 2.0 / (np.pi * m.radius * model.compound_diffusivity * dt**3))
    expected_measurement = np.random.default_rng(5).normal(3.0 * 1.0 + 0.5, sigma)
    celani_noisy_affect(m, model)
    assert m.state[0] == pytest.approx(expected_measurement * dt)
    assert m.state[1] == pytest.approx(expected_measurement * dt * dt)


def test_brown_berg_update():
    m = BrownBerg(pos=np.zeros(2), vel=[3.0, 0.0])
    model = make_model(m, u=2.0)
    assert brown_berg_turn_rate(m, model) == pytest.approx(m.turn_rate)
    beta = model.timestep / m.adaptation_time
    KD = m.receptor_binding_constant
    brown_berg_affect(m, model)
    expected = beta * KD / (KD + 2.0)**2 * 3.5
    assert m.state[0] == pytest.approx(expected)
    assert brown_berg_turn_rate(m, model) == pytest.approx(m.turn_rate * np.exp(-m.motor_gain * expected))


def test_brown_berg_memory_decays_without_signal():
    m = BrownBerg(pos=np.zeros(2), vel=[3.0, 0.0], state=[0.01])
    model = make_model(m, grad=(0.0, 0.0), dudt=0.0)
    brown_berg_affect(m, model)
    assert m.state[0] == pytest.approx(0.01 * np.exp(-model.timestep / m.adaptation_time))


def test_brumley_update_without_noise():
    m = Brumley(pos=np.zeros(2), vel=[3.0, 0.0], chemotactic_precision=0.0)
    model = make_model(m, u=2.0)
    assert brumley_turn_rate(m, model) == pytest.approx(m.turn_rate)
    alpha = np.exp(-model.timestep / m.adaptation_time)
    KD = m.receptor_binding_constant
    brumley_affect(m, model)
    expected = (1 - alpha) * KD / (KD + 2.0)**2 * 3.5
    assert m.state[0] == pytest.approx(expected)
    assert brumley_turn_rate(m, model) == pytest.approx((1 + np.exp(-m.motor_gain * expected)) * m.turn_rate / 2)


@pytest.mark.parametrize("microbe_type", [CelaniNoisy, Brumley])
@pytest.mark.parametrize("u", [-1e-9, float("nan")])
def test_noisy_kernels_reject_invalid_concentration(microbe_type, u):
    m = microbe_type(pos=np.zeros(2), vel=[3.0, 0.0])
    model = make_model(m, u=u)
    before = m.state.copy()
    with pytest.raises(FieldIntegrationError):
        microbe_step(m, model)
    assert np.array_equal(m.state, before)


def test_noisy_kernels_accept_zero_concentration():
    for microbe_type in (CelaniNoisy, Brumley):
        m = microbe_type(pos=np.zeros(2), vel=[3.0, 0.0])
        model = make_model(m, u=0.0)
        microbe_step(m, model)
        assert np.all(np.isfinite(m.state))


def test_missing_accessor():
    m = Celani(pos=np.zeros(2), vel=[3.0, 0.0])
    model = initialise_model(microbes=[m], timestep=0.1, extent=10.0)
    with pytest.raises(ConfigurationError):
        celani_affect(m, model)


def test_plain_microbe_kernel_is_static():
    m = Microbe(pos=np.zeros(2), vel=[1.0, 0.0], turn_rate=0.7)
    affect, turn_rate = kernel_for(m)
    model = initialise_model(microbes=[m], timestep=0.1, extent=10.0)
    assert affect(m, model) is None
    assert turn_rate(m, model) == 0.7


@dataclass(eq=False)
class Counter(Microbe):
    kind: ClassVar[str] = 'counter'
    state: np.ndarray = None

    def __post_init__(self):
        if self.state is None:
            self.state = np.zeros(1)
        super().__post_init__()


def test_register_kernel_extends_stepping(monkeypatch):
    monkeypatch.setitem(KERNEL_MAP, 'counter', KERNEL_MAP['microbe'])

    def count(microbe, model):
        microbe.state[0] += 1

    register_kernel('counter', count, lambda microbe, model: 0.0)
    m = Counter(pos=np.zeros(2), vel=[1.0, 0.0])
    model = initialise_model(microbes=[m], timestep=0.5, extent=10.0, random_positions=False)
    microbe_step(m, model)
    microbe_step(m, model)
    assert m.state[0] == 2
    assert m.pos == pytest.approx([1.0, 0.0])


def test_unknown_kind():
    @dataclass(eq=False)
    class Stranger(Microbe):
        kind: ClassVar[str] = 'stranger'

    with pytest.raises(ValueError):
        kernel_for(Stranger(pos=np.zeros(1)))
