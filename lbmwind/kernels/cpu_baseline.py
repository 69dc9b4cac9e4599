"""
CPU Streaming Stage

NumPy/Numba driver for the streaming stage.

Owns the two distribution buffers for the lifetime of a run:
- fprop: post-collision values, written by the collision stage
- f: current values, written only by streaming and boundary forcing

Each stage streams fprop into f and then applies the driving force on the
boundary faces. swap() exchanges the roles of the buffers for the next
collision/streaming cycle.
"""

import math
import time

import numpy as np

from lbmwind.lattice import Q, buffer_size
from lbmwind.equilibrium import equilibrium_buffer
from lbmwind.streaming import stream_truncated, stream_truncated_fast
from lbmwind.boundary import (
    parse_forcing_mode,
    apply_driving_force,
    apply_driving_force_fast,
)


def validate_grid(nx, ny, nz):
    """
    Check grid extents.

    Raises
    ------
    ValueError
        If any extent is not a positive integer
    """
    for name, n in (('nx', nx), ('ny', ny), ('nz', nz)):
        if int(n) != n or n <= 0:
            raise ValueError(f"{name} must be a positive integer, got {n}")


def validate_force(force):
    """
    Check and normalise a driving force vector.

    Returns
    -------
    force : tuple
        (ux, uy, uz) as floats

    Raises
    ------
    ValueError
        If force does not have 3 finite components
    """
    components = tuple(float(v) for v in force)
    if len(components) != 3:
        raise ValueError(f"force must have 3 components, got {len(components)}")
    if not all(math.isfinite(v) for v in components):
        raise ValueError(f"force must be finite, got {components}")
    return components


def validate_buffers(fprop, f, nx, ny, nz):
    """
    Check a pair of distribution buffers before streaming.

    Raises
    ------
    ValueError
        If a buffer has the wrong length or both share memory
    """
    expected = buffer_size(nx, ny, nz)
    for name, buf in (('fprop', fprop), ('f', f)):
        if buf.ndim != 1 or buf.size != expected:
            raise ValueError(
                f"{name} must be a flat buffer of length {expected}, got shape {buf.shape}"
            )
    if np.shares_memory(fprop, f):
        raise ValueError("fprop and f must be distinct buffers")


class StreamingStage:
    """
    CPU streaming stage with driving-force boundaries.

    Parameters
    ----------
    nx, ny, nz : int
        Grid dimensions
    force : sequence of 3 floats
        Uniform driving velocity (default at rest)
    forcing_mode : str or int
        'uniform' (default) or 'cyclone'
    cyclone_speed : float
        Face velocity magnitude in cyclone mode (default 0.1)
    use_fast : bool
        Use Numba-accelerated functions (default True)

    Attributes
    ----------
    fprop : ndarray
        Post-collision buffer, flat, length nx*ny*nz*Q
    f : ndarray
        Current buffer, flat, length nx*ny*nz*Q
    """

    def __init__(self, nx, ny, nz, force=(0.0, 0.0, 0.0), forcing_mode='uniform',
                 cyclone_speed=0.1, use_fast=True):
        validate_grid(nx, ny, nz)

        self.nx = int(nx)
        self.ny = int(ny)
        self.nz = int(nz)
        self.force = validate_force(force)
        self.forcing_mode = parse_forcing_mode(forcing_mode)
        self.cyclone_speed = float(cyclone_speed)
        self.use_fast = use_fast

        if max(abs(v) for v in self.force) > 0.3:
            print(f"Warning: |force| component above 0.3 lattice units: {self.force}")

        # Both buffers start at rest equilibrium
        self.fprop = equilibrium_buffer(self.nx, self.ny, self.nz)
        self.f = self.fprop.copy()

        # Statistics
        self.step_count = 0
        self.total_time = 0.0

    @property
    def num_sites(self):
        return self.nx * self.ny * self.nz

    def set_force(self, force):
        """Set the uniform driving velocity."""
        self.force = validate_force(force)

    def set_forcing_mode(self, mode, cyclone_speed=None):
        """Select 'uniform' or 'cyclone' boundary forcing."""
        self.forcing_mode = parse_forcing_mode(mode)
        if cyclone_speed is not None:
            self.cyclone_speed = float(cyclone_speed)

    def set_post_collision(self, values):
        """
        Load post-collision distributions produced by a collision stage.

        Parameters
        ----------
        values : ndarray
            Flat buffer, or array of shape (nx, ny, nz, Q)
        """
        values = np.asarray(values, dtype=np.float64)
        if values.size != self.fprop.size:
            raise ValueError(
                f"Expected {self.fprop.size} values, got {values.size}"
            )
        self.fprop[:] = values.ravel()

    def set_distribution(self, values):
        """Overwrite the current buffer (e.g. with a sentinel fill)."""
        values = np.asarray(values, dtype=np.float64)
        if values.size != self.f.size:
            raise ValueError(
                f"Expected {self.f.size} values, got {values.size}"
            )
        self.f[:] = values.ravel()

    def stream(self):
        """
        Run one streaming stage: fprop -> f, then boundary forcing on f.

        Returns
        -------
        dt : float
            Time taken for this stage (seconds)
        """
        validate_buffers(self.fprop, self.f, self.nx, self.ny, self.nz)

        start = time.perf_counter()

        if self.use_fast:
            stream_truncated_fast(self.fprop, self.f, self.nx, self.ny, self.nz)
            apply_driving_force_fast(self.f, self.nx, self.ny, self.nz, self.force,
                                     self.forcing_mode, self.cyclone_speed)
        else:
            stream_truncated(self.fprop, self.f, self.nx, self.ny, self.nz)
            apply_driving_force(self.f, self.nx, self.ny, self.nz, self.force,
                                self.forcing_mode, self.cyclone_speed)

        dt = time.perf_counter() - start
        self.step_count += 1
        self.total_time += dt

        return dt

    def swap(self):
        """Exchange buffer roles for the next collision/streaming cycle."""
        self.fprop, self.f = self.f, self.fprop

    def run(self, num_steps, verbose=True, report_interval=100):
        """
        Run repeated stream + swap cycles.

        There is no collision stage here: each cycle streams the previous
        output. Used for timing and for driving the boundary state forward.

        Parameters
        ----------
        num_steps : int
            Number of stages to run
        verbose : bool
            Print progress information
        report_interval : int
            Stages between progress reports

        Returns
        -------
        mlups : float
            Performance in Million Lattice Updates Per Second
        """
        start = time.perf_counter()

        for step in range(num_steps):
            self.stream()
            self.swap()

            if verbose and (step + 1) % report_interval == 0:
                elapsed = time.perf_counter() - start
                mlups = (step + 1) * self.num_sites / elapsed / 1e6
                print(f"Step {step + 1}/{num_steps}, MLUPS: {mlups:.2f}")

        total = time.perf_counter() - start
        mlups = num_steps * self.num_sites / total / 1e6 if total > 0 else 0.0

        if verbose:
            print(f"Completed {num_steps} steps in {total:.2f}s")
            print(f"Performance: {mlups:.2f} MLUPS")

        return mlups

    def get_distribution(self):
        """Return the current buffer viewed as (nx, ny, nz, Q)."""
        return self.f.reshape(self.nx, self.ny, self.nz, Q)

    def get_total_mass(self):
        """Return the sum of the current distributions."""
        return np.sum(self.f)


def benchmark_streaming(grid_sizes=None, num_steps=100, warmup_steps=5):
    """
    Benchmark the CPU streaming stage across different grid sizes.

    Parameters
    ----------
    grid_sizes : list of tuples
        List of (nx, ny, nz) grid sizes to test
    num_steps : int
        Number of stages for timing (after warmup)
    warmup_steps : int
        Number of warmup stages (for JIT compilation)

    Returns
    -------
    results : dict
        Dictionary with grid sizes as keys, MLUPS as values
    """
    if grid_sizes is None:
        grid_sizes = [
            (32, 32, 32),
            (64, 64, 64),
            (128, 128, 128),
        ]

    results = {}

    print("CPU Streaming Stage Benchmark")
    print("=" * 50)
    print(f"Steps: {num_steps}, Warmup: {warmup_steps}")
    print()

    for nx, ny, nz in grid_sizes:
        print(f"Grid size: {nx} x {ny} x {nz}")

        stage = StreamingStage(nx, ny, nz, force=(0.05, 0.0, 0.0))

        # Warmup (JIT compilation)
        stage.run(warmup_steps, verbose=False)

        mlups = stage.run(num_steps, verbose=False)
        results[(nx, ny, nz)] = mlups

        print(f"  MLUPS: {mlups:.2f}")
        print()

    return results


if __name__ == "__main__":
    results = benchmark_streaming()

    print("\nSummary")
    print("=" * 50)
    for (nx, ny, nz), mlups in results.items():
        print(f"{nx:4d} x {ny:4d} x {nz:4d}: {mlups:8.2f} MLUPS")
