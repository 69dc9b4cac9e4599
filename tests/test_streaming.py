"""
Tests for the truncating streaming step.

Validates neighbour propagation, edge truncation and the injectivity of
the push mapping.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmwind.lattice import C, Q, site_index, buffer_size
from lbmwind.streaming import (
    stream_truncated,
    stream_truncated_pull,
    stream_truncated_fast
)

SENTINEL = -777.0


def has_predecessor(nx, ny, nz):
    """Mask (nx, ny, nz, Q): True where site - c_q lies inside the grid."""
    X, Y, Z = np.indices((nx, ny, nz))
    mask = np.zeros((nx, ny, nz, Q), dtype=bool)
    for q in range(Q):
        xs, ys, zs = X - C[q, 0], Y - C[q, 1], Z - C[q, 2]
        mask[..., q] = ((xs >= 0) & (xs < nx)
                        & (ys >= 0) & (ys < ny)
                        & (zs >= 0) & (zs < nz))
    return mask


@pytest.fixture
def grid():
    return 5, 4, 6


@pytest.fixture
def fprop(grid):
    rng = np.random.default_rng(1234)
    return rng.random(buffer_size(*grid))


class TestStreamingPropagation:
    """Test values land at the neighbour each direction points to."""

    def test_interior_flux(self, grid, fprop):
        """F at s equals FPROP at s - c_q for interior sites."""
        nx, ny, nz = grid
        f = np.full_like(fprop, SENTINEL)

        stream_truncated(fprop, f, nx, ny, nz)

        for x in range(1, nx - 1):
            for y in range(1, ny - 1):
                for z in range(1, nz - 1):
                    for q in range(Q):
                        src = site_index(x - C[q, 0], y - C[q, 1], z - C[q, 2], ny, nz)
                        dst = site_index(x, y, z, ny, nz)
                        assert f[dst * Q + q] == fprop[src * Q + q]

    def test_rest_direction_stays(self, grid, fprop):
        nx, ny, nz = grid
        f = np.full_like(fprop, SENTINEL)

        stream_truncated(fprop, f, nx, ny, nz)

        np.testing.assert_array_equal(f[0::Q], fprop[0::Q])

    def test_input_not_modified(self, grid, fprop):
        nx, ny, nz = grid
        original = fprop.copy()
        f = np.zeros_like(fprop)

        stream_truncated(fprop, f, nx, ny, nz)
        stream_truncated_fast(fprop, f, nx, ny, nz)

        np.testing.assert_array_equal(fprop, original)

    def test_returns_output_buffer(self, grid, fprop):
        nx, ny, nz = grid
        f = np.zeros_like(fprop)

        assert stream_truncated(fprop, f, nx, ny, nz) is f
        assert stream_truncated_fast(fprop, f, nx, ny, nz) is f


class TestStreamingTruncation:
    """Test that values leaving the grid are dropped."""

    def test_sentinel_survives_without_predecessor(self, grid, fprop):
        """Slots with an off-grid source keep their prior value."""
        nx, ny, nz = grid
        f = np.full_like(fprop, SENTINEL)

        stream_truncated(fprop, f, nx, ny, nz)

        written = has_predecessor(nx, ny, nz)
        f_sites = f.reshape(nx, ny, nz, Q)

        assert np.all(f_sites[~written] == SENTINEL)
        assert not np.any(f_sites[written] == SENTINEL)

    def test_bottom_face_upward_slot(self, grid, fprop):
        """At y = 0 the directions pointing up have no source."""
        nx, ny, nz = grid
        f = np.full_like(fprop, SENTINEL)

        stream_truncated(fprop, f, nx, ny, nz)

        base = site_index(2, 0, 3, ny, nz) * Q
        for q in range(Q):
            if C[q, 1] == 1:
                assert f[base + q] == SENTINEL
            else:
                assert f[base + q] != SENTINEL

    def test_outgoing_values_discarded(self, grid):
        """Values that stream off-grid do not appear anywhere in F."""
        nx, ny, nz = grid
        fprop = np.zeros(buffer_size(nx, ny, nz))
        marker = 42.0

        # Direction +x at the x max face leaves the grid
        q_px = [q for q in range(Q) if tuple(C[q]) == (1, 0, 0)][0]
        fprop[site_index(nx - 1, 1, 1, ny, nz) * Q + q_px] = marker
        f = np.zeros_like(fprop)

        stream_truncated(fprop, f, nx, ny, nz)

        assert not np.any(f == marker)

    def test_no_periodic_wrap(self, grid):
        nx, ny, nz = grid
        fprop = np.zeros(buffer_size(nx, ny, nz))
        q_mz = [q for q in range(Q) if tuple(C[q]) == (0, 0, -1)][0]
        fprop[site_index(2, 2, 0, ny, nz) * Q + q_mz] = 1.0
        f = np.zeros_like(fprop)

        stream_truncated_fast(fprop, f, nx, ny, nz)

        assert f[site_index(2, 2, nz - 1, ny, nz) * Q + q_mz] == 0.0
        assert np.sum(f) == 0.0


class TestStreamingInjectivity:
    """Test that no two sources write the same slot."""

    def test_destinations_unique(self, grid):
        nx, ny, nz = grid
        destinations = []

        for x in range(nx):
            for y in range(ny):
                for z in range(nz):
                    for q in range(Q):
                        xn, yn, zn = x + C[q, 0], y + C[q, 1], z + C[q, 2]
                        if 0 <= xn < nx and 0 <= yn < ny and 0 <= zn < nz:
                            destinations.append(site_index(xn, yn, zn, ny, nz) * Q + q)

        assert len(destinations) == len(set(destinations))

    def test_distinct_values_appear_once(self, grid):
        """Streaming a buffer of distinct values never duplicates a value."""
        nx, ny, nz = grid
        fprop = np.arange(buffer_size(nx, ny, nz), dtype=np.float64)
        f = np.full_like(fprop, SENTINEL)

        stream_truncated_fast(fprop, f, nx, ny, nz)

        streamed = f[f != SENTINEL]
        assert len(np.unique(streamed)) == len(streamed)
        assert len(streamed) == np.count_nonzero(has_predecessor(nx, ny, nz))


class TestStreamingConsistency:
    """Test the implementations agree."""

    @pytest.mark.parametrize("shape", [(5, 4, 6), (1, 3, 2), (4, 4, 4), (7, 1, 1)])
    def test_fast_equals_standard(self, shape):
        rng = np.random.default_rng(7)
        fprop = rng.random(buffer_size(*shape))

        f_std = np.full_like(fprop, SENTINEL)
        f_fast = np.full_like(fprop, SENTINEL)
        stream_truncated(fprop, f_std, *shape)
        stream_truncated_fast(fprop, f_fast, *shape)

        np.testing.assert_array_equal(f_fast, f_std)

    @pytest.mark.parametrize("shape", [(5, 4, 6), (2, 2, 2)])
    def test_push_equals_pull(self, shape):
        rng = np.random.default_rng(11)
        fprop = rng.random(buffer_size(*shape))

        f_push = np.full_like(fprop, SENTINEL)
        f_pull = np.full_like(fprop, SENTINEL)
        stream_truncated(fprop, f_push, *shape)
        stream_truncated_pull(fprop, f_pull, *shape)

        np.testing.assert_array_equal(f_pull, f_push)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
