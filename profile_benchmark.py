import cProfile
import pstats

import numpy as np

from chemoflow.encounters import ObstacleSphere, encounters
from chemoflow.microbes import Celani
from chemoflow.model import chain, initialise_model, run


def profile_simulation():
    """
    Runs a short 2D Celani simulation with obstacles under cProfile to find bottlenecks.
    """
    config = {
        'num_microbes': 200,
        'extent': 500.0,
        'timestep': 0.1,
        'num_obstacles': 20,
        'obstacle_radius': 10.0,
        'gradient_strength': 0.01,
        'seed': 7,
    }

    def concentration_field(pos, model):
        return config['gradient_strength'] * pos[0]

    rng = np.random.default_rng(config['seed'])
    bodies = [ObstacleSphere(rng.random(2) * config['extent'], config['obstacle_radius'])
              for _ in range(config['num_obstacles'])]
    microbes = [Celani(pos=np.zeros(2)) for _ in range(config['num_microbes'])]
    model = initialise_model(
        microbes=microbes, timestep=config['timestep'], extent=config['extent'], rng=rng,
        model_properties={'bodies': bodies, 'concentration_field': concentration_field},
    )
    chain(model, encounters)

    def run_short():
        # We only need a few steps to see where the time is spent
        run(model, n=50)

    # --- Run the Profiler ---
    profiler = cProfile.Profile()
    profiler.enable()

    run_short()

    profiler.disable()

    # --- Print the Stats ---
    print("--- Simulation Performance Profile ---")
    stats = pstats.Stats(profiler).sort_stats('cumulative')
    stats.print_stats(20)
    print(f"Encounters: {model.encounters}")


if __name__ == "__main__":
    profile_simulation()
