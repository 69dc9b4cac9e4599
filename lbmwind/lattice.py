"""
D3Q19 Lattice Constants and Utilities

Defines the D3Q19 lattice model and the flat buffer layout used by the
streaming stage.

Distribution buffers are flat arrays of length NX*NY*NZ*Q with the value
for site (x, y, z) and direction q stored at

    ((x*NY + y)*NZ + z)*Q + q
"""
import numpy as np

# D3Q19 lattice velocities
#   0       rest
#   1 - 6   axis neighbours (+x, -x, +y, -y, +z, -z)
#   7 - 18  edge diagonals, each followed by its opposite

# Lattice velocity components
EX = np.array([0, 1, -1, 0, 0, 0, 0, 1, -1, 1, -1, 0, 0, 1, -1, 1, -1, 0, 0], dtype=np.int32)
EY = np.array([0, 0, 0, 1, -1, 0, 0, 1, -1, 0, 0, 1, -1, -1, 1, 0, 0, 1, -1], dtype=np.int32)
EZ = np.array([0, 0, 0, 0, 0, 1, -1, 0, 0, 1, -1, 1, -1, 0, 0, -1, 1, -1, 1], dtype=np.int32)

# Velocity table, shape (Q, 3)
C = np.ascontiguousarray(np.stack([EX, EY, EZ], axis=1))

# Lattice weights
W = np.array([1/3] + [1/18] * 6 + [1/36] * 12, dtype=np.float64)

# Opposite direction indices
OPPOSITE = np.array([0, 2, 1, 4, 3, 6, 5, 8, 7, 10, 9, 12, 11, 14, 13, 16, 15, 18, 17],
                    dtype=np.int32)

# Lattice sound speed squared
CS2 = 1.0 / 3.0
CS4 = CS2 * CS2

# Number of lattice velocities
Q = 19

for _table in (EX, EY, EZ, C, W, OPPOSITE):
    _table.flags.writeable = False
del _table


def site_index(x, y, z, ny, nz):
    """Flattened index of lattice site (x, y, z)."""
    return (x * ny + y) * nz + z


def site_coords(idx, ny, nz):
    """
    Inverse of site_index.

    Returns
    -------
    x, y, z : int
        Lattice coordinates of the flattened index
    """
    z = idx % nz
    xy = idx // nz
    return xy // ny, xy % ny, z


def buffer_size(nx, ny, nz, q=Q):
    """Number of scalars in a distribution buffer for an nx x ny x nz grid."""
    return nx * ny * nz * q
