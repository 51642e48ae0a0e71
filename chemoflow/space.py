import numpy as np
from scipy.spatial import cKDTree

from chemoflow import config
from chemoflow.exceptions import ConfigurationError, DimensionMismatch


def make_extent(extent, dim):
    """Expands a scalar extent to a hypercube and validates tuple extents against `dim`."""
    if np.isscalar(extent):
        ext = np.full(dim, float(extent))
    else:
        ext = np.asarray(extent, dtype=np.float64)
        if ext.ndim != 1 or len(ext) != dim:
            raise DimensionMismatch(
                f"Space extent {tuple(np.ravel(extent))} and microbes must have the same "
                f"dimensionality ({dim})."
            )
    if np.any(ext <= 0):
        raise ConfigurationError(f"Extent must be positive in every dimension, got {tuple(ext)}.")
    return ext


class ContinuousDomain:
    """Continuous box [0, extent_1) x ... x [0, extent_D), optionally periodic."""

    def __init__(self, extent, dim, spacing=None, periodic=config.PERIODIC):
        self._extent = make_extent(extent, dim)
        self.extent = tuple(float(e) for e in self._extent)
        self.dim = dim
        if spacing is None:
            spacing = min(self.extent) / config.SPACING_DIVISOR
        if spacing <= 0:
            raise ConfigurationError(f"Spacing must be positive, got {spacing}.")
        self.spacing = float(spacing)
        self.periodic = bool(periodic)

    def __repr__(self):
        return (f"ContinuousDomain(extent={self.extent}, spacing={self.spacing}, "
                f"periodic={self.periodic})")

    def random_position(self, rng):
        return rng.random(self.dim) * self._extent

    def move_to_random(self, microbe, rng):
        microbe.pos[:] = self.random_position(rng)

    def wrap(self, pos):
        """Folds `pos` back into the box in place when periodic."""
        if self.periodic:
            np.mod(pos, self._extent, out=pos)
            # -tiny % L rounds to L
            pos[pos >= self._extent] = 0.0
        return pos

    def displace(self, microbe, delta):
        microbe.pos += delta
        self.wrap(microbe.pos)

    def separation(self, a, b):
        """Displacement b - a, minimum image if periodic."""
        d = np.asarray(b, dtype=np.float64) - np.asarray(a, dtype=np.float64)
        if self.periodic:
            d = d - self._extent * np.round(d / self._extent)
        return d

    def distance(self, a, b):
        return float(np.linalg.norm(self.separation(a, b)))

    def nearby_ids(self, model, pos, r=None, exclude=None):
        """Ids of agents within distance `r` (default: spacing) of `pos`."""
        if r is None:
            r = self.spacing
        ids = list(model.agents)
        if not ids:
            return []
        positions = np.array([model.agents[i].pos for i in ids])
        tree = cKDTree(positions, boxsize=self._extent if self.periodic else None)
        hits = tree.query_ball_point(self.wrap(np.array(pos, dtype=np.float64)), r)
        return sorted(ids[k] for k in hits if ids[k] != exclude)

    def grid_index(self, pos, shape):
        """Index of the cell containing `pos` in an array of `shape` covering the box."""
        shape = np.asarray(shape)
        idx = np.floor(np.asarray(pos) / self._extent * shape).astype(int)
        return tuple(int(i) for i in np.clip(idx, 0, shape - 1))
