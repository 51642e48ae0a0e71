import time

import numpy as np

from chemoflow.microbes import Microbe
from chemoflow.model import initialise_model, run

if __name__ == "__main__":
    # --- Benchmark: mean run time of unbiased run-and-tumble swimmers ---
    # The mean time between reorientations should approach 1/turn_rate.
    config = {
        'num_microbes': 500,
        'turn_rate': 2.0,
        'timestep': 0.01,
        'steps': 5000,
        'extent': 1000.0,
        'seed': 1,
    }

    microbes = [Microbe(pos=np.zeros(3), turn_rate=config['turn_rate']) for _ in range(config['num_microbes'])]
    model = initialise_model(microbes=microbes, timestep=config['timestep'],
                             extent=config['extent'], seed=config['seed'])

    def heading(microbe):
        return microbe.vel / np.linalg.norm(microbe.vel)

    start_time = time.time()
    adf, _ = run(model, n=config['steps'], adata=[heading], showprogress=True)
    end_time = time.time()

    turns = 0
    for _, group in adf.groupby('id'):
        h = np.stack(group['heading'].to_list())
        turns += np.count_nonzero(np.any(np.abs(np.diff(h, axis=0)) > 1e-12, axis=1))
    total_time = config['num_microbes'] * config['steps'] * config['timestep']
    print(f"Benchmark (reorientation) completed in {end_time - start_time:.2f} seconds")
    print(f"Mean run time: {total_time / turns:.4f} s (expected {1 / config['turn_rate']:.4f} s)")
