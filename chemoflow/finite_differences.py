import numpy as np
from numba import njit, prange

# Axis k of a field array is spatial dimension k. Stencils only write interior
# points; the outermost layer is left to the caller (ghost cells / walls).

# --- Numba-optimized Stencils ---

@njit(parallel=True)
def _gradient_1d(out, u, coeff):
    for i in prange(1, u.shape[0] - 1):
        out[i] = 0.5 * coeff * (u[i+1] - u[i-1])


@njit(parallel=True)
def _gradient_2d(out, u, coeff):
    for i in prange(1, u.shape[0] - 1):
        for j in range(1, u.shape[1] - 1):
            out[i, j, 0] = 0.5 * coeff * (u[i+1, j] - u[i-1, j])
            out[i, j, 1] = 0.5 * coeff * (u[i, j+1] - u[i, j-1])


@njit(parallel=True)
def _gradient_3d(out, u, coeff):
    for i in prange(1, u.shape[0] - 1):
        for j in range(1, u.shape[1] - 1):
            for k in range(1, u.shape[2] - 1):
                out[i, j, k, 0] = 0.5 * coeff * (u[i+1, j, k] - u[i-1, j, k])
                out[i, j, k, 1] = 0.5 * coeff * (u[i, j+1, k] - u[i, j-1, k])
                out[i, j, k, 2] = 0.5 * coeff * (u[i, j, k+1] - u[i, j, k-1])


@njit(parallel=True)
def _laplacian_1d(out, u, coeff):
    for i in prange(1, u.shape[0] - 1):
        out[i] = coeff * (u[i+1] - 2.0 * u[i] + u[i-1])


@njit(parallel=True)
def _laplacian_2d(out, u, coeff):
    for i in prange(1, u.shape[0] - 1):
        for j in range(1, u.shape[1] - 1):
            out[i, j] = coeff * (u[i-1, j] + u[i+1, j] +
                                 u[i, j-1] + u[i, j+1] - 4.0 * u[i, j])


@njit(parallel=True)
def _laplacian_3d(out, u, coeff):
    for i in prange(1, u.shape[0] - 1):
        for j in range(1, u.shape[1] - 1):
            for k in range(1, u.shape[2] - 1):
                out[i, j, k] = coeff * (u[i-1, j, k] + u[i+1, j, k] +
                                        u[i, j-1, k] + u[i, j+1, k] +
                                        u[i, j, k-1] + u[i, j, k+1] - 6.0 * u[i, j, k])


_GRADIENT = {1: _gradient_1d, 2: _gradient_2d, 3: _gradient_3d}
_LAPLACIAN = {1: _laplacian_1d, 2: _laplacian_2d, 3: _laplacian_3d}


def _check_ndim(u):
    if u.ndim not in _LAPLACIAN:
        raise ValueError(f"Finite differences support 1, 2 or 3 dimensional fields, got ndim={u.ndim}")


def gradient_shape(u):
    """Shape of the gradient buffer: u.shape for 1D, u.shape + (ndim,) otherwise."""
    u = np.asarray(u)
    return u.shape if u.ndim == 1 else u.shape + (u.ndim,)


def finitediff(out, u, coeff):
    """Central-difference gradient of `u` into `out`; `coeff` is 1/spacing."""
    u = np.asarray(u, dtype=np.float64)
    _check_ndim(u)
    if out.shape != gradient_shape(u):
        raise ValueError(f"Gradient buffer has shape {out.shape}, expected {gradient_shape(u)}")
    _GRADIENT[u.ndim](out, u, float(coeff))
    return out


def laplacian(out, u, coeff):
    """Five/seven point Laplacian of `u` times `coeff` (e.g. D/spacing²) into `out`."""
    u = np.asarray(u, dtype=np.float64)
    _check_ndim(u)
    if out.shape != u.shape:
        raise ValueError(f"Laplacian buffer has shape {out.shape}, expected {u.shape}")
    _LAPLACIAN[u.ndim](out, u, float(coeff))
    return out
