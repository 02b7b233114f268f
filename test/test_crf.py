"""
Dense CRF Tests

Tests for:
- Truncated Gaussian kernel structure
- Mean-field marginals (normalization, determinism, boundaries)
- Potts smoothing behaviour
"""

import numpy as np
import pytest
from scipy.special import softmax

from waypoint_seg.labeling.crf import DenseCRF, PottsCompatibility, gaussian_kernel, solve_energy
from waypoint_seg.labeling.energy import EnergyModel


def _line_energy(unary, spacing=0.2, appearance_weight=0.0, smoothness_weight=3.0):
    n = unary.shape[1]
    xyz = np.zeros((3, n), dtype=np.float32)
    xyz[0] = np.arange(n) * spacing
    return EnergyModel(
        unary=unary.astype(np.float32),
        appearance=np.concatenate([xyz, np.zeros((3, n), np.float32)]),
        smoothness=xyz,
        appearance_weight=appearance_weight,
        smoothness_weight=smoothness_weight,
    )


# =============================================================================
# Kernel
# =============================================================================


class TestGaussianKernel:

    def test_symmetric_with_zero_diagonal(self):
        rng = np.random.default_rng(0)
        kernel = gaussian_kernel(rng.normal(size=(3, 40)), neighbors=5)
        dense = kernel.toarray()
        assert dense.shape == (40, 40)
        np.testing.assert_allclose(dense, dense.T)
        np.testing.assert_array_equal(np.diag(dense), 0.0)
        assert np.all(dense >= 0.0) and np.all(dense <= 1.0)

    def test_values_are_gaussian(self):
        features = np.array([[0.0, 1.0]])
        dense = gaussian_kernel(features, neighbors=4).toarray()
        assert dense[0, 1] == pytest.approx(np.exp(-0.5))

    @pytest.mark.parametrize("n", [0, 1])
    def test_degenerate_sizes(self, n):
        kernel = gaussian_kernel(np.zeros((3, n)), neighbors=4)
        assert kernel.shape == (n, n)
        assert kernel.nnz == 0


# =============================================================================
# Inference
# =============================================================================


class TestDenseCRF:

    def test_zero_iterations_is_unary_softmax(self):
        rng = np.random.default_rng(1)
        unary = rng.uniform(0.0, 3.0, size=(4, 25))
        energy = _line_energy(unary)
        marginals = solve_energy(energy, 0)
        np.testing.assert_allclose(marginals, softmax(-unary.T, axis=1), rtol=1e-5)

    def test_rows_are_distributions(self):
        rng = np.random.default_rng(2)
        energy = _line_energy(rng.uniform(0.0, 3.0, size=(3, 60)), appearance_weight=5.0)
        marginals = solve_energy(energy, 5)
        assert marginals.shape == (60, 3)
        assert marginals.dtype == np.float32
        assert np.all(marginals >= 0.0)
        np.testing.assert_allclose(marginals.sum(axis=1), 1.0, atol=1e-5)

    def test_deterministic(self):
        rng = np.random.default_rng(3)
        energy = _line_energy(rng.uniform(0.0, 3.0, size=(3, 30)), appearance_weight=5.0)
        np.testing.assert_array_equal(solve_energy(energy, 5), solve_energy(energy, 5))

    def test_no_points(self):
        energy = _line_energy(np.zeros((5, 0)))
        assert solve_energy(energy, 5).shape == (0, 5)

    def test_single_point(self):
        energy = _line_energy(np.array([[0.5], [2.0]]))
        marginals = solve_energy(energy, 5)
        np.testing.assert_allclose(marginals, softmax(-np.array([[0.5, 2.0]]), axis=1), rtol=1e-5)

    def test_smoothing_flips_isolated_outlier(self):
        # 21 points on a line all strongly prefer class 0, except the middle one
        # which mildly prefers class 1
        unary = np.vstack([np.zeros(21), np.full(21, 2.0)])
        unary[:, 10] = [1.0, 0.5]
        energy = _line_energy(unary)

        before = solve_energy(energy, 0)
        after = solve_energy(energy, 5)
        assert np.argmax(before[10]) == 1
        assert np.argmax(after[10]) == 0

    def test_unary_shape_checked(self):
        crf = DenseCRF(10, 3)
        with pytest.raises(ValueError):
            crf.set_unary_energy(np.zeros((10, 3)))

    def test_pairwise_shape_checked(self):
        crf = DenseCRF(10, 3)
        with pytest.raises(ValueError):
            crf.add_pairwise_energy(np.zeros((3, 9)), PottsCompatibility(1.0))


def test_potts_scales_messages():
    message = np.array([[0.2, 0.8]])
    np.testing.assert_allclose(PottsCompatibility(3.0).apply(message), [[0.6, 2.4]])


def test_potts_favours_label_neighbours_agree_on():
    # neighbour mass mostly on label 0 must raise label 0's log-potential
    potential = PottsCompatibility(2.0).apply(np.array([[0.9, 0.1]]))
    assert potential[0, 0] > potential[0, 1]
    assert potential[0, 0] - potential[0, 1] == pytest.approx(2.0 * 0.8)
