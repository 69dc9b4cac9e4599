"""
Tests for the D3Q19 lattice table and buffer indexing.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmwind.lattice import (
    EX, EY, EZ, C, W, OPPOSITE, CS2, Q,
    site_index, site_coords, buffer_size
)


class TestVelocitySet:
    """Test the discrete velocity set."""

    def test_size(self):
        assert Q == 19
        assert C.shape == (Q, 3)
        assert len(W) == Q

    def test_velocities_unique(self):
        assert len({tuple(c) for c in C}) == Q

    def test_rest_direction_first(self):
        assert tuple(C[0]) == (0, 0, 0)

    def test_components_match_table(self):
        np.testing.assert_array_equal(C[:, 0], EX)
        np.testing.assert_array_equal(C[:, 1], EY)
        np.testing.assert_array_equal(C[:, 2], EZ)

    def test_opposite_directions(self):
        """Every direction has its negation at OPPOSITE."""
        for i in range(Q):
            np.testing.assert_array_equal(C[OPPOSITE[i]], -C[i])
            assert OPPOSITE[OPPOSITE[i]] == i

    def test_weights_normalised(self):
        assert np.isclose(np.sum(W), 1.0, rtol=1e-14)

    def test_weights_isotropy(self):
        """Second moment of the weights equals c_s^2 * identity."""
        for a in range(3):
            for b in range(3):
                moment = np.sum(W * C[:, a] * C[:, b])
                expected = CS2 if a == b else 0.0
                assert np.isclose(moment, expected, atol=1e-15)

    def test_tables_read_only(self):
        with pytest.raises(ValueError):
            C[1, 0] = 5
        with pytest.raises(ValueError):
            W[0] = 0.0


class TestIndexing:
    """Test flat buffer addressing."""

    def test_site_index_layout(self):
        nx, ny, nz = 3, 4, 5
        assert site_index(0, 0, 0, ny, nz) == 0
        assert site_index(0, 0, 1, ny, nz) == 1
        assert site_index(0, 1, 0, ny, nz) == nz
        assert site_index(1, 0, 0, ny, nz) == ny * nz
        assert site_index(nx - 1, ny - 1, nz - 1, ny, nz) == nx * ny * nz - 1

    def test_site_coords_inverse(self):
        nx, ny, nz = 3, 4, 5
        for idx in range(nx * ny * nz):
            x, y, z = site_coords(idx, ny, nz)
            assert 0 <= x < nx and 0 <= y < ny and 0 <= z < nz
            assert site_index(x, y, z, ny, nz) == idx

    def test_matches_numpy_reshape(self):
        """The flat layout is the C-order layout of shape (nx, ny, nz, Q)."""
        nx, ny, nz = 2, 3, 4
        flat = np.arange(buffer_size(nx, ny, nz), dtype=np.float64)
        view = flat.reshape(nx, ny, nz, Q)
        assert view[1, 2, 3, 7] == flat[site_index(1, 2, 3, ny, nz) * Q + 7]

    def test_buffer_size(self):
        assert buffer_size(4, 4, 4) == 4 * 4 * 4 * 19
        assert buffer_size(2, 3, 4, q=9) == 2 * 3 * 4 * 9


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
