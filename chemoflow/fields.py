"""Field integrators advanced in lockstep with the agents.

A field is any ODE system ``du/dt = f(u, p, t)`` (typically a discretised PDE
on a grid) written as an in-place step function ``step_function(du, u, p, t)``
that fills ``du``. States may have any array shape; the scipy solvers see a
flattened view.
"""
import inspect
import logging

import numpy as np
from scipy import integrate

from chemoflow import config
from chemoflow.exceptions import ConfigurationError, FieldIntegrationError, IntegratorSignatureError

log = logging.getLogger(__name__)


def check_step_signature(step_function):
    if not callable(step_function):
        raise IntegratorSignatureError(f"Field step function must be callable, got {step_function!r}")
    try:
        signature = inspect.signature(step_function)
    except (TypeError, ValueError):
        # no introspectable signature (e.g. some builtins); trust the caller
        return
    try:
        signature.bind(None, None, None, None)
    except TypeError as err:
        raise IntegratorSignatureError(
            f"Field step function must accept (du, u, p, t), got {step_function.__name__}{signature}"
        ) from err


class FieldIntegrator:
    """Steppable solver for ``du/dt = f(u, p, t)``.

    ``u`` is a private copy of the initial state, updated in place on every
    advance; ``p`` is the parameters object exactly as given.
    """

    def __init__(self, step_function, u0, p, algorithm=config.ODE_METHOD, t0=0.0, **options):
        check_step_signature(step_function)
        if algorithm not in config.ODE_METHODS:
            raise ConfigurationError(f"Unknown integration algorithm '{algorithm}'. "
                                     f"Available options are: {list(config.ODE_METHODS)}")
        self.step_function = step_function
        self.u = np.array(u0, dtype=np.float64, ndmin=1)
        self.p = p
        self.t = float(t0)
        self.algorithm = algorithm
        self.options = options
        self._solver_class = getattr(integrate, algorithm)
        self._solver = None
        self._synced_t = None
        self._synced_u = None

    def __repr__(self):
        return f"FieldIntegrator(algorithm={self.algorithm!r}, t={self.t}, shape={self.u.shape})"

    def _rhs(self, t, y):
        du = np.zeros(self.u.shape)
        self.step_function(du, y.reshape(self.u.shape), self.p, t)
        return du.ravel()

    def _running_solver(self):
        """The solver carried over from the last advance, or a fresh one if `u` or `t` were changed since."""
        solver = self._solver
        if solver is None or self._synced_t != self.t or not np.array_equal(self._synced_u, self.u):
            solver = self._solver_class(self._rhs, self.t, self.u.ravel().copy(), np.inf, **self.options)
            self._solver = solver
        return solver

    def advance(self, target_time, exact=True):
        """Integrates until the clock reaches `target_time` (exactly, unless `exact` is False).

        One solver runs across calls so step size control and Jacobian reuse
        carry over between ticks. With `exact`, a solver step that overshoots
        the target is interpolated back onto it.
        """
        target_time = float(target_time)
        if target_time < self.t:
            raise ValueError(f"Cannot integrate backwards from t={self.t} to t={target_time}")
        if target_time == self.t:
            return self
        solver = self._running_solver()
        while solver.t < target_time:
            message = solver.step()
            if solver.status == 'failed':
                self._solver = None
                raise FieldIntegrationError(
                    f"{self.algorithm} failed at t={solver.t} while advancing to t={target_time}: {message}"
                )
        if exact and solver.t > target_time:
            y = solver.dense_output()(target_time)
        else:
            y = solver.y
            target_time = float(solver.t)
        if not np.all(np.isfinite(y)):
            self._solver = None
            raise FieldIntegrationError(f"Field diverged at t={target_time}")
        self.u[...] = y.reshape(self.u.shape)
        self.t = target_time
        self._synced_t = self.t
        self._synced_u = self.u.copy()
        return self

    def time_derivative(self, out=None):
        """du/dt at the current state and time."""
        du = np.zeros(self.u.shape) if out is None else out
        if out is not None:
            du[...] = 0.0
        self.step_function(du, self.u, self.p, self.t)
        return du


def initialise_field_integrator(step_function, initial_state, parameters,
                                algorithm=config.ODE_METHOD, **options):
    """Builds a FieldIntegrator; extra keyword arguments go to the scipy solver (rtol, atol, max_step, ...)."""
    return FieldIntegrator(step_function, initial_state, parameters, algorithm=algorithm, **options)


def add_field_integrator(model, step_function, initial_state, parameters,
                         algorithm=config.ODE_METHOD, **options):
    """Attaches a new integrator to `model`, starting at the model's current time."""
    integrator = FieldIntegrator(step_function, initial_state, parameters, algorithm=algorithm,
                                 t0=model.tick * model.timestep, **options)
    model.integrator = integrator
    log.info("Attached %s to model at tick %d", integrator, model.tick)
    return integrator
