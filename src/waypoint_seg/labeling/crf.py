#!/usr/bin/env python3
"""
Fully Connected CRF - Mean-Field Inference

A compact dense CRF over the retained points:

    E(x) = Σ_i U_i(x_i) + Σ_k w_k Σ_{i≠j} μ(x_i, x_j) k(f_i^k, f_j^k)

with Gaussian kernels k(f_i, f_j) = exp(-½‖f_i − f_j‖²) on pre-scaled feature
vectors and a Potts compatibility μ. The kernel is truncated to the K nearest
neighbours in each feature space (scipy cKDTree, sparse matrix), which keeps
message passing linear in the number of points.

Inference runs a fixed number of iterations. The iteration count is a
cost/accuracy trade-off, not a convergence criterion.
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
from typing import List, Tuple

# ─── Scientific Computing ───────────────────────────────────────────────────────
import numpy as np
from scipy import sparse
from scipy.spatial import cKDTree
from scipy.special import softmax

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling import hyperparameters as H


class PottsCompatibility:
    """Zero cost for equal labels, `weight` for any mismatch."""

    def __init__(self, weight: float):
        self.weight = float(weight)

    def apply(self, message: np.ndarray) -> np.ndarray:
        # Potts energy w * Σ_j k_ij (1 - Q_j(l)) equals -w * message up to a
        # label-independent constant; its log-potential is +w * message.
        return self.weight * message

    def __repr__(self):
        return f"PottsCompatibility({self.weight})"


def gaussian_kernel(features: np.ndarray, neighbors: int) -> sparse.csr_matrix:
    """
    Truncated Gaussian kernel over the columns of `features` (D, N).

    Returns an (N, N) sparse matrix with a zero diagonal.
    """
    points = np.ascontiguousarray(features.T, dtype=np.float64)
    n = points.shape[0]
    k = min(neighbors + 1, n)
    if n < 2:
        return sparse.csr_matrix((n, n), dtype=np.float64)

    tree = cKDTree(points)
    dist, idx = tree.query(points, k=k)
    dist = dist.reshape(n, k)
    idx = idx.reshape(n, k)

    rows = np.repeat(np.arange(n), k)
    cols = idx.reshape(-1)
    vals = np.exp(-0.5 * dist.reshape(-1) ** 2)
    keep = rows != cols
    kernel = sparse.csr_matrix((vals[keep], (rows[keep], cols[keep])), shape=(n, n))
    # kNN is not symmetric, the CRF kernel must be
    return kernel.maximum(kernel.T).tocsr()


class DenseCRF:
    def __init__(self, num_points: int, num_classes: int, neighbors: int = H.CRF_NEIGHBORS):
        self.N = int(num_points)
        self.C = int(num_classes)
        self.neighbors = int(neighbors)
        self.unary = np.zeros((self.C, self.N), dtype=np.float64)
        self.pairwise: List[Tuple[sparse.csr_matrix, PottsCompatibility]] = []

    def set_unary_energy(self, unary: np.ndarray):
        unary = np.asarray(unary, dtype=np.float64)
        if unary.shape != (self.C, self.N):
            raise ValueError(f"Unary must be ({self.C}, {self.N}), got {unary.shape}")
        self.unary = unary

    def add_pairwise_energy(self, features: np.ndarray, compatibility: PottsCompatibility):
        features = np.asarray(features, dtype=np.float64)
        if features.ndim != 2 or features.shape[1] != self.N:
            raise ValueError(f"Pairwise features must be (D, {self.N}), got {features.shape}")
        self.pairwise.append((gaussian_kernel(features, self.neighbors), compatibility))

    def inference(self, n_iterations: int) -> np.ndarray:
        """Run mean-field for exactly `n_iterations` steps, return (N, C) marginals."""
        if self.N == 0:
            return np.zeros((0, self.C), dtype=np.float32)

        neg_unary = -self.unary.T                          # (N, C)
        Q = softmax(neg_unary, axis=1)
        for _ in range(int(n_iterations)):
            logits = neg_unary.copy()
            for kernel, compatibility in self.pairwise:
                logits += compatibility.apply(kernel @ Q)
            Q = softmax(logits, axis=1)
        return Q.astype(np.float32)


def solve_energy(energy, n_iterations: int, neighbors: int = H.CRF_NEIGHBORS) -> np.ndarray:
    """Default smoothing solver: EnergyModel + iteration count → (N, C) marginals."""
    crf = DenseCRF(energy.num_points, energy.num_classes, neighbors)
    crf.set_unary_energy(energy.unary)
    crf.add_pairwise_energy(energy.appearance, PottsCompatibility(energy.appearance_weight))
    crf.add_pairwise_energy(energy.smoothness, PottsCompatibility(energy.smoothness_weight))
    return crf.inference(n_iterations)
