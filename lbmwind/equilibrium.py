"""
Equilibrium Distribution Functions

Maxwell-Boltzmann equilibrium for the D3Q19 lattice.

The equilibrium distribution is the Maxwell-Boltzmann distribution truncated
to second order in velocity:

    f_i^eq = w_i * rho * [1 + (e_i · u)/c_s^2 + (e_i · u)^2/(2*c_s^4) - u^2/(2*c_s^2)]

where:
    - w_i are the lattice weights
    - e_i are the lattice velocities
    - c_s^2 = 1/3 is the lattice sound speed squared
    - rho is the density
    - u = (ux, uy, uz) is the macroscopic velocity

Field results use the site-major layout of the distribution buffers,
shape (nx, ny, nz, Q), so that ``f_eq.ravel()`` is a valid flat buffer.
"""

import numpy as np
from numba import njit, prange
from .lattice import EX, EY, EZ, W, CS2, CS4, Q


def equilibrium(q, rho, u):
    """
    Equilibrium value of a single direction.

    Parameters
    ----------
    q : int
        Direction index
    rho : float
        Density
    u : sequence of 3 floats
        Velocity (ux, uy, uz)

    Returns
    -------
    f_eq : float
    """
    ux, uy, uz = u
    eu = EX[q] * ux + EY[q] * uy + EZ[q] * uz
    u_sq = ux * ux + uy * uy + uz * uz
    return float(W[q] * rho * (
        1.0
        + eu / CS2
        + (eu * eu) / (2.0 * CS4)
        - u_sq / (2.0 * CS2)
    ))


def equilibrium_single_site(rho, ux, uy, uz):
    """
    Compute equilibrium distribution for a single lattice site.

    Used by the boundary forcing pass and by tests.

    Parameters
    ----------
    rho : float
        Density at the site
    ux, uy, uz : float
        Velocity at the site

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q,)
    """
    eu = EX * ux + EY * uy + EZ * uz
    u_sq = ux * ux + uy * uy + uz * uz

    return W * rho * (
        1.0
        + eu / CS2
        + (eu * eu) / (2.0 * CS4)
        - u_sq / (2.0 * CS2)
    )


def compute_equilibrium(rho, ux, uy, uz):
    """
    Compute equilibrium distribution for all lattice sites.

    Parameters
    ----------
    rho : ndarray
        Density field, shape (nx, ny, nz)
    ux, uy, uz : ndarray
        Velocity fields, shape (nx, ny, nz)

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (nx, ny, nz, Q)
    """
    nx, ny, nz = rho.shape
    f_eq = np.zeros((nx, ny, nz, Q), dtype=np.float64)

    u_sq = ux * ux + uy * uy + uz * uz

    for i in range(Q):
        eu = EX[i] * ux + EY[i] * uy + EZ[i] * uz
        f_eq[..., i] = W[i] * rho * (
            1.0
            + eu / CS2
            + (eu * eu) / (2.0 * CS4)
            - u_sq / (2.0 * CS2)
        )

    return f_eq


@njit(parallel=True, cache=True)
def compute_equilibrium_numba(rho, ux, uy, uz, f_eq, ex, ey, ez, w, cs2, cs4):
    """
    Numba-accelerated equilibrium computation.

    Parameters
    ----------
    rho : ndarray
        Density field, shape (nx, ny, nz)
    ux, uy, uz : ndarray
        Velocity fields, shape (nx, ny, nz)
    f_eq : ndarray
        Output equilibrium distribution, shape (nx, ny, nz, Q)
    ex, ey, ez : ndarray
        Lattice velocity components
    w : ndarray
        Lattice weights
    cs2, cs4 : float
        Sound speed squared and fourth power
    """
    nx, ny, nz, q = f_eq.shape

    for x in prange(nx):
        for y in range(ny):
            for z in range(nz):
                rho_s = rho[x, y, z]
                ux_s = ux[x, y, z]
                uy_s = uy[x, y, z]
                uz_s = uz[x, y, z]
                u_sq = ux_s * ux_s + uy_s * uy_s + uz_s * uz_s

                for k in range(q):
                    eu = ex[k] * ux_s + ey[k] * uy_s + ez[k] * uz_s
                    f_eq[x, y, z, k] = w[k] * rho_s * (
                        1.0
                        + eu / cs2
                        + (eu * eu) / (2.0 * cs4)
                        - u_sq / (2.0 * cs2)
                    )


def compute_equilibrium_fast(rho, ux, uy, uz):
    """
    Fast equilibrium computation using Numba.

    Parameters
    ----------
    rho : ndarray
        Density field, shape (nx, ny, nz)
    ux, uy, uz : ndarray
        Velocity fields, shape (nx, ny, nz)

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (nx, ny, nz, Q)
    """
    nx, ny, nz = rho.shape
    f_eq = np.zeros((nx, ny, nz, Q), dtype=np.float64)

    ex = EX.astype(np.float64)
    ey = EY.astype(np.float64)
    ez = EZ.astype(np.float64)

    compute_equilibrium_numba(
        np.ascontiguousarray(rho, dtype=np.float64),
        np.ascontiguousarray(ux, dtype=np.float64),
        np.ascontiguousarray(uy, dtype=np.float64),
        np.ascontiguousarray(uz, dtype=np.float64),
        f_eq, ex, ey, ez, W.copy(), CS2, CS4
    )

    return f_eq


def equilibrium_buffer(nx, ny, nz, rho=1.0, velocity=(0.0, 0.0, 0.0)):
    """
    Flat distribution buffer at uniform equilibrium.

    Parameters
    ----------
    nx, ny, nz : int
        Grid dimensions
    rho : float
        Uniform density (default 1.0)
    velocity : sequence of 3 floats
        Uniform velocity (default at rest)

    Returns
    -------
    f : ndarray
        Flat buffer of length nx*ny*nz*Q
    """
    f_site = equilibrium_single_site(rho, *velocity)
    return np.tile(f_site, nx * ny * nz)
