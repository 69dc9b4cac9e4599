"""
Comprehensive Benchmark Suite

Performance testing for all streaming stage implementations.
Compares the NumPy slab copy, the Numba per-site kernel and the CUDA kernel.
"""

import time
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmwind.lattice import Q

# Check CUDA availability
try:
    from numba import cuda
    CUDA_AVAILABLE = cuda.is_available()
except ImportError:
    CUDA_AVAILABLE = False


def benchmark_cpu(nx, ny, nz, num_steps, warmup_steps=5, use_fast=True):
    """
    Benchmark the CPU streaming stage.

    Returns
    -------
    mlups : float
        Million Lattice Updates Per Second
    """
    from lbmwind.kernels.cpu_baseline import StreamingStage

    stage = StreamingStage(nx, ny, nz, force=(0.05, 0.0, 0.0), use_fast=use_fast)

    # Warmup
    stage.run(warmup_steps, verbose=False)

    # Timed run
    start = time.perf_counter()
    for _ in range(num_steps):
        stage.stream()
        stage.swap()
    elapsed = time.perf_counter() - start

    return num_steps * nx * ny * nz / elapsed / 1e6


def benchmark_gpu_naive(nx, ny, nz, num_steps, warmup_steps=20):
    """
    Benchmark the naive GPU streaming stage.
    """
    if not CUDA_AVAILABLE:
        return 0.0

    from lbmwind.kernels.gpu_naive import GPUStreamingStage

    stage = GPUStreamingStage(nx, ny, nz, force=(0.05, 0.0, 0.0))

    # Warmup
    for _ in range(warmup_steps):
        stage.stream()
        stage.swap()
    cuda.synchronize()

    # Timed run
    start = time.perf_counter()
    for _ in range(num_steps):
        stage.stream()
        stage.swap()
    cuda.synchronize()
    elapsed = time.perf_counter() - start

    return num_steps * nx * ny * nz / elapsed / 1e6


def compute_memory_bandwidth(mlups, bytes_per_site=Q * 8 * 2):
    """Compute effective memory bandwidth (GB/s) from MLUPS."""
    return mlups * bytes_per_site / 1000


def run_full_benchmark(grid_sizes=None, num_steps=100):
    """
    Run complete benchmark suite comparing all implementations.
    """
    if grid_sizes is None:
        grid_sizes = [
            (32, 32, 32),
            (64, 64, 64),
            (128, 64, 128),
            (128, 128, 128),
        ]

    print("=" * 80)
    print("Streaming Stage Benchmark Suite - All Implementations")
    print("=" * 80)
    print(f"Steps: {num_steps}")
    print(f"CUDA Available: {CUDA_AVAILABLE}")
    print()

    results = {'numpy': {}, 'numba': {}}

    # NumPy slab copy (limited to smaller grids)
    print("Benchmarking CPU (NumPy)...")
    print("-" * 40)
    for shape in grid_sizes:
        if shape[0] * shape[1] * shape[2] > 64 ** 3:
            continue
        mlups = benchmark_cpu(*shape, num_steps, use_fast=False)
        results['numpy'][shape] = mlups
        print(f"  {shape[0]:4d} x {shape[1]:4d} x {shape[2]:4d}: {mlups:8.2f} MLUPS")
    print()

    print("Benchmarking CPU (Numba parallel)...")
    print("-" * 40)
    for shape in grid_sizes:
        mlups = benchmark_cpu(*shape, num_steps)
        results['numba'][shape] = mlups
        print(f"  {shape[0]:4d} x {shape[1]:4d} x {shape[2]:4d}: {mlups:8.2f} MLUPS")
    print()

    if CUDA_AVAILABLE:
        print("Benchmarking GPU Naive...")
        print("-" * 40)
        results['gpu_naive'] = {}
        for shape in grid_sizes:
            mlups = benchmark_gpu_naive(*shape, num_steps * 10)
            results['gpu_naive'][shape] = mlups
            print(f"  {shape[0]:4d} x {shape[1]:4d} x {shape[2]:4d}: {mlups:8.2f} MLUPS")
        print()

    # Summary Table
    print("=" * 80)
    print("SUMMARY: Performance Comparison (MLUPS)")
    print("=" * 80)
    print(f"{'Grid':<18} {'NumPy':>10} {'Numba':>10} {'GPU':>10} {'Bandwidth':>14}")
    print("-" * 80)

    for shape in grid_sizes:
        numpy_mlups = results['numpy'].get(shape, 0)
        numba_mlups = results['numba'].get(shape, 0)
        gpu_mlups = results.get('gpu_naive', {}).get(shape, 0)
        best = max(numpy_mlups, numba_mlups, gpu_mlups)
        bandwidth = compute_memory_bandwidth(best)

        grid = f"{shape[0]}x{shape[1]}x{shape[2]}"
        print(f"{grid:<18} {numpy_mlups:>10.1f} {numba_mlups:>10.1f} {gpu_mlups:>10.1f} "
              f"{bandwidth:>9.1f} GB/s")

    print("=" * 80)

    return results


if __name__ == "__main__":
    run_full_benchmark()
