"""
Streaming Step Implementations

Propagation of post-collision distributions along lattice velocities on a
bounded 3D grid.

The streaming step moves each distribution f_i from site x to site x + e_i:
    f_i(x + e_i, t + dt) = f_i^out(x, t)

The domain is open: a value whose target x + e_i lies outside the grid is
dropped. There is no periodic wrap and no reflection. The slot it would have
refilled on the opposite side keeps whatever the output buffer already held,
unless the boundary forcing pass overwrites that site.

All functions operate on flat buffers laid out as

    F[((x*NY + y)*NZ + z)*Q + q]

The input (post-collision) and output buffers must be distinct arrays.
"""

import numpy as np
from numba import njit, prange
from .lattice import C


def _shift_slices(c, n):
    """Source and destination slices for an integer shift c along an axis of length n."""
    if c >= 0:
        stop = max(n - c, 0)
        return slice(0, stop), slice(n - stop, n)
    stop = max(n + c, 0)
    return slice(n - stop, n), slice(0, stop)


def stream_truncated(fprop, f, nx, ny, nz, c=C):
    """
    Streaming step with open (truncating) boundaries.

    Push scheme: f_i(x + e_i) = fprop_i(x), skipped when x + e_i is off-grid.
    Implemented as one slab copy per direction.

    Parameters
    ----------
    fprop : ndarray
        Post-collision distribution, flat, length nx*ny*nz*Q (read only)
    f : ndarray
        Output distribution, flat, same length (written in place)
    nx, ny, nz : int
        Grid dimensions
    c : ndarray
        Lattice velocities, shape (Q, 3)

    Returns
    -------
    f : ndarray
        The output buffer
    """
    q = len(c)
    src = fprop.reshape(nx, ny, nz, q)
    dst = f.reshape(nx, ny, nz, q)

    for i in range(q):
        sx, dx = _shift_slices(int(c[i][0]), nx)
        sy, dy = _shift_slices(int(c[i][1]), ny)
        sz, dz = _shift_slices(int(c[i][2]), nz)
        dst[dx, dy, dz, i] = src[sx, sy, sz, i]

    return f


def stream_truncated_pull(fprop, f, nx, ny, nz, c=C):
    """
    Gather formulation of the truncating streaming step.

    Pull scheme: f_i(x) = fprop_i(x - e_i) when x - e_i is inside the grid.
    Produces the same result as stream_truncated; kept as an independent
    reference for the push mapping.

    Parameters
    ----------
    fprop : ndarray
        Post-collision distribution, flat (read only)
    f : ndarray
        Output distribution, flat (written in place)
    nx, ny, nz : int
        Grid dimensions
    c : ndarray
        Lattice velocities, shape (Q, 3)

    Returns
    -------
    f : ndarray
        The output buffer
    """
    q = len(c)
    src = fprop.reshape(nx, ny, nz, q)
    dst = f.reshape(nx, ny, nz, q)

    X, Y, Z = np.indices((nx, ny, nz))

    for i in range(q):
        xs = X - c[i][0]
        ys = Y - c[i][1]
        zs = Z - c[i][2]
        valid = ((xs >= 0) & (xs < nx)
                 & (ys >= 0) & (ys < ny)
                 & (zs >= 0) & (zs < nz))
        dst[X[valid], Y[valid], Z[valid], i] = src[xs[valid], ys[valid], zs[valid], i]

    return f


@njit(parallel=True, cache=True)
def stream_truncated_numba(fprop, f, nx, ny, nz, c):
    """
    Numba-accelerated streaming with open boundaries.

    One unit of work per lattice site, parallel over x slabs.
    Each (target site, direction) slot has exactly one source, so the
    parallel loop needs no synchronization.

    Parameters
    ----------
    fprop : ndarray
        Post-collision distribution, flat (read only)
    f : ndarray
        Output distribution, flat (written in place)
    nx, ny, nz : int
        Grid dimensions
    c : ndarray
        Lattice velocities, shape (Q, 3), int
    """
    q = c.shape[0]

    for x in prange(nx):
        for y in range(ny):
            for z in range(nz):
                ind = (x * ny + y) * nz + z

                for k in range(q):
                    xn = x + c[k, 0]
                    if xn < 0 or xn >= nx:
                        continue
                    yn = y + c[k, 1]
                    if yn < 0 or yn >= ny:
                        continue
                    zn = z + c[k, 2]
                    if zn < 0 or zn >= nz:
                        continue

                    nind = (xn * ny + yn) * nz + zn
                    f[nind * q + k] = fprop[ind * q + k]


def stream_truncated_fast(fprop, f, nx, ny, nz):
    """
    Fast streaming using Numba.

    Parameters
    ----------
    fprop : ndarray
        Post-collision distribution, flat (read only)
    f : ndarray
        Output distribution, flat (written in place)
    nx, ny, nz : int
        Grid dimensions

    Returns
    -------
    f : ndarray
        The output buffer
    """
    c = C.astype(np.int64)
    stream_truncated_numba(fprop, f, nx, ny, nz, c)
    return f
