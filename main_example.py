import time

import numpy as np

from chemoflow.config import configure_logging
from chemoflow.fields import add_field_integrator
from chemoflow.finite_differences import finitediff, laplacian
from chemoflow.microbes import BrownBerg
from chemoflow.model import chain, initialise_model, run
from chemoflow.recording import save_data_npz


def odestep(du, u, p, t):
    """Diffusion with linear decay and absorbing walls on a 1D grid with two ghost layers."""
    beta, D, inv_dx = p
    laplacian(du, u, D * inv_dx * inv_dx)
    du -= beta * u
    du[0] = du[1] = du[-1] = du[-2] = 0.0


def mesh_index(pos, model):
    # microbes are not confined by the walls; clamp to the mesh
    i = int(round((pos[0] - model.mesh[0]) / model.domain.spacing))
    return min(max(i, 0), len(model.mesh) - 1)


def concentration_field(pos, model):
    return model.integrator.u[mesh_index(pos, model)]


def concentration_gradient(pos, model):
    return model.gradient[mesh_index(pos, model)]


def concentration_time_derivative(pos, model):
    return model.time_derivative[mesh_index(pos, model)]


def update_gradient(model):
    finitediff(model.gradient, model.integrator.u, 1 / model.domain.spacing)


def update_time_derivative(model):
    model.integrator.time_derivative(out=model.time_derivative)


def u_field(model):
    return model.integrator.u.copy()


if __name__ == "__main__":
    # --- Configuration: 1D chemotaxis in a decaying Gaussian pulse ---
    config = {
        'num_microbes': 20,
        'extent': 1000.0,
        'spacing': 0.5,
        'timestep': 0.1,
        'duration': 500.0,
        'pulse_height': 10.0,
        'pulse_width': 10.0,
        'diffusivity': 10.0,
        'decay_rate': 0.004,
        'seed': 42,
        'save_every': 5.0,
        'save_model_every': 30.0,
    }
    configure_logging()

    extent, spacing, timestep = config['extent'], config['spacing'], config['timestep']
    xs = np.arange(-2 * spacing, extent + 2 * spacing + spacing / 2, spacing)
    u0 = config['pulse_height'] * np.exp(-(xs - extent / 2)**2 / (2 * config['pulse_width']**2))
    gradient = np.zeros_like(u0)
    finitediff(gradient, u0, 1 / spacing)

    microbes = [BrownBerg(pos=[0.0]) for _ in range(config['num_microbes'])]
    model = initialise_model(
        microbes=microbes, timestep=timestep,
        extent=extent, spacing=spacing, periodic=False,
        seed=config['seed'],
        model_properties={
            'mesh': xs,
            'gradient': gradient,
            'time_derivative': np.zeros_like(u0),
            'concentration_field': concentration_field,
            'concentration_gradient': concentration_gradient,
            'concentration_time_derivative': concentration_time_derivative,
            'compound_diffusivity': config['diffusivity'],
        },
    )
    D = config['diffusivity']
    add_field_integrator(model, odestep, u0, (config['decay_rate'], D, 1 / spacing),
                         max_step=spacing**2 / (2 * D))
    chain(model, update_gradient, update_time_derivative)

    nsteps = round(config['duration'] / timestep)
    when = range(0, nsteps + 1, round(config['save_every'] / timestep))
    when_model = range(0, nsteps + 1, round(config['save_model_every'] / timestep))

    start_time = time.time()
    adf, mdf = run(model, n=nsteps, adata=['pos'], mdata=[u_field],
                   when=when, when_model=when_model, showprogress=True)
    end_time = time.time()

    print(f"\nMain simulation completed in {end_time - start_time:.2f} seconds")
    path = save_data_npz(adf, mdf, 'simulation_data_main', 'main')
    print(f"Data saved to '{path}'.")
