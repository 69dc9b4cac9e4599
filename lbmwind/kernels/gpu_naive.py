"""
Naive GPU Streaming Stage

CUDA kernels using Numba - flat site-major layout, one thread per site.

Mirrors the CPU stage exactly: truncating streaming followed by the
driving-force pass. Both kernels are launched over the same 3D grid.
"""

import time

import numpy as np
from numba import cuda
from numba.cuda.cudadrv.driver import CudaAPIError

from lbmwind.lattice import C, Q, buffer_size
from lbmwind.equilibrium import equilibrium_buffer
from lbmwind.boundary import parse_forcing_mode, equilibrium_table
from lbmwind.kernels.cpu_baseline import validate_grid, validate_force


# =============================================================================
# Device Functions
# =============================================================================

@cuda.jit(device=True)
def select_row(x, y, z, nx, ny, nz, mode):
    """Row of the equilibrium table for a site, -1 if not forced."""
    row = -1
    if y == ny - 1 or x == 0 or x == nx - 1 or z == 0 or z == nz - 1:
        row = 0

    # Cyclone: side faces override, z faces win on vertical edges
    if mode == 1:
        if x == nx - 1:
            row = 1
        if x == 0:
            row = 2
        if z == nz - 1:
            row = 3
        if z == 0:
            row = 4

    return row


# =============================================================================
# Streaming Kernel
# =============================================================================

@cuda.jit
def stream_kernel(fprop, f, c, nx, ny, nz):
    """
    Streaming kernel with open boundaries (push scheme).

    f[idx(s + c_k)*Q + k] = fprop[idx(s)*Q + k], skipped when s + c_k is
    off-grid.

    Parameters
    ----------
    fprop : device array
        Post-collision distribution, flat
    f : device array
        Output distribution, flat
    c : device array
        Lattice velocities, shape (Q, 3)
    nx, ny, nz : int
        Grid dimensions
    """
    # z is the fastest thread axis for coalesced access
    z, y, x = cuda.grid(3)

    if x < nx and y < ny and z < nz:
        q = c.shape[0]
        ind = (x * ny + y) * nz + z

        for k in range(q):
            xn = x + c[k, 0]
            yn = y + c[k, 1]
            zn = z + c[k, 2]

            if xn < 0 or xn >= nx:
                continue
            if yn < 0 or yn >= ny:
                continue
            if zn < 0 or zn >= nz:
                continue

            nind = (xn * ny + yn) * nz + zn
            f[nind * q + k] = fprop[ind * q + k]


# =============================================================================
# Boundary Forcing Kernel
# =============================================================================

@cuda.jit
def driving_force_kernel(f, f_eq, mode, nx, ny, nz):
    """
    Wet-node driving force kernel.

    Overwrites every distribution of a forced site with a row of the
    precomputed equilibrium table.

    Parameters
    ----------
    f : device array
        Distribution, flat (modified in place)
    f_eq : device array
        Equilibrium table, shape (5, Q)
    mode : int
        Forcing mode flag
    nx, ny, nz : int
        Grid dimensions
    """
    z, y, x = cuda.grid(3)

    if x < nx and y < ny and z < nz:
        row = select_row(x, y, z, nx, ny, nz, mode)

        if row >= 0:
            q = f_eq.shape[1]
            ind = (x * ny + y) * nz + z
            for k in range(q):
                f[ind * q + k] = f_eq[row, k]


# =============================================================================
# GPU Stage Class
# =============================================================================

class GPUStreamingStage:
    """
    GPU streaming stage using Numba CUDA.

    Same surface as lbmwind.kernels.cpu_baseline.StreamingStage.

    Parameters
    ----------
    nx, ny, nz : int
        Grid dimensions
    force : sequence of 3 floats
        Uniform driving velocity
    forcing_mode : str or int
        'uniform' (default) or 'cyclone'
    cyclone_speed : float
        Face velocity magnitude in cyclone mode
    block_size : tuple
        CUDA block dimensions along (z, y, x) (default (32, 1, 8))
    """

    def __init__(self, nx, ny, nz, force=(0.0, 0.0, 0.0), forcing_mode='uniform',
                 cyclone_speed=0.1, block_size=(32, 1, 8)):
        validate_grid(nx, ny, nz)

        self.nx = int(nx)
        self.ny = int(ny)
        self.nz = int(nz)
        self.force = validate_force(force)
        self.forcing_mode = parse_forcing_mode(forcing_mode)
        self.cyclone_speed = float(cyclone_speed)
        self.block_size = block_size

        self.grid_size = (
            (self.nz + block_size[0] - 1) // block_size[0],
            (self.ny + block_size[1] - 1) // block_size[1],
            (self.nx + block_size[2] - 1) // block_size[2],
        )

        f_host = equilibrium_buffer(self.nx, self.ny, self.nz)

        # Allocate device arrays
        self.d_fprop = cuda.to_device(f_host)
        self.d_f = cuda.to_device(f_host)
        self.d_c = cuda.to_device(C.astype(np.int32))
        self.d_f_eq = cuda.to_device(
            equilibrium_table(self.force, self.cyclone_speed)
        )

        self.step_count = 0

    @property
    def num_sites(self):
        return self.nx * self.ny * self.nz

    def _upload_equilibrium(self):
        self.d_f_eq = cuda.to_device(
            equilibrium_table(self.force, self.cyclone_speed)
        )

    def set_force(self, force):
        """Set the uniform driving velocity."""
        self.force = validate_force(force)
        self._upload_equilibrium()

    def set_forcing_mode(self, mode, cyclone_speed=None):
        """Select 'uniform' or 'cyclone' boundary forcing."""
        self.forcing_mode = parse_forcing_mode(mode)
        if cyclone_speed is not None:
            self.cyclone_speed = float(cyclone_speed)
            self._upload_equilibrium()

    def set_post_collision(self, values):
        """Copy post-collision distributions from the host."""
        values = np.ascontiguousarray(values, dtype=np.float64).ravel()
        expected = buffer_size(self.nx, self.ny, self.nz)
        if values.size != expected:
            raise ValueError(f"Expected {expected} values, got {values.size}")
        self.d_fprop.copy_to_device(values)

    def set_distribution(self, values):
        """Copy current distributions from the host (e.g. a sentinel fill)."""
        values = np.ascontiguousarray(values, dtype=np.float64).ravel()
        expected = buffer_size(self.nx, self.ny, self.nz)
        if values.size != expected:
            raise ValueError(f"Expected {expected} values, got {values.size}")
        self.d_f.copy_to_device(values)

    def stream(self):
        """Run one streaming stage: fprop -> f, then boundary forcing on f."""
        stream_kernel[self.grid_size, self.block_size](
            self.d_fprop, self.d_f, self.d_c, self.nx, self.ny, self.nz
        )

        driving_force_kernel[self.grid_size, self.block_size](
            self.d_f, self.d_f_eq, self.forcing_mode, self.nx, self.ny, self.nz
        )

        self.step_count += 1

    def swap(self):
        """Exchange buffer roles for the next collision/streaming cycle."""
        self.d_fprop, self.d_f = self.d_f, self.d_fprop

    def get_distribution(self):
        """Get the current buffer from the GPU, shape (nx, ny, nz, Q)."""
        return self.d_f.copy_to_host().reshape(self.nx, self.ny, self.nz, Q)

    def synchronize(self):
        """Synchronize GPU (wait for all kernels to complete)."""
        cuda.synchronize()

    def run(self, num_steps, verbose=True, report_interval=1000):
        """
        Run repeated stream + swap cycles.

        Returns
        -------
        mlups : float
            Performance in Million Lattice Updates Per Second
        """
        # Warmup
        for _ in range(10):
            self.stream()
            self.swap()
        self.synchronize()

        start = time.perf_counter()

        for step in range(num_steps):
            self.stream()
            self.swap()

            if verbose and (step + 1) % report_interval == 0:
                self.synchronize()
                elapsed = time.perf_counter() - start
                mlups = (step + 1) * self.num_sites / elapsed / 1e6
                print(f"Step {step + 1}/{num_steps}, MLUPS: {mlups:.2f}")

        self.synchronize()
        total = time.perf_counter() - start
        mlups = num_steps * self.num_sites / total / 1e6 if total > 0 else 0.0

        if verbose:
            print(f"Completed {num_steps} steps in {total:.2f}s")
            print(f"Performance: {mlups:.2f} MLUPS")

        return mlups


def check_cuda_available():
    """Check if CUDA is available."""
    return cuda.is_available()


def benchmark_gpu_streaming(grid_sizes=None, num_steps=1000):
    """
    Benchmark the GPU streaming stage across different grid sizes.

    Returns
    -------
    results : dict
        Grid sizes and corresponding MLUPS
    """
    if not check_cuda_available():
        print("CUDA not available!")
        return {}

    if grid_sizes is None:
        grid_sizes = [
            (64, 64, 64),
            (128, 128, 128),
            (256, 128, 256),
        ]

    results = {}

    print("GPU Streaming Stage Benchmark (Naive Implementation)")
    print("=" * 60)
    print(f"Steps: {num_steps}")
    print()

    for nx, ny, nz in grid_sizes:
        print(f"Grid size: {nx} x {ny} x {nz}")

        try:
            stage = GPUStreamingStage(nx, ny, nz, force=(0.05, 0.0, 0.0))
            mlups = stage.run(num_steps, verbose=False)
            results[(nx, ny, nz)] = mlups
            print(f"  Performance: {mlups:.2f} MLUPS")
        except CudaAPIError as e:
            print(f"  Error: {e}")
            results[(nx, ny, nz)] = 0

        print()

    return results


if __name__ == "__main__":
    if check_cuda_available():
        print("CUDA is available!")
        print()

        results = benchmark_gpu_streaming()

        print("\nSummary")
        print("=" * 60)
        for (nx, ny, nz), mlups in results.items():
            print(f"{nx:4d} x {ny:4d} x {nz:4d}: {mlups:8.2f} MLUPS")
    else:
        print("CUDA is not available.")
