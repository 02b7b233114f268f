"""
Per-supervoxel feature vectors for the classifier.

Layout (FEATURE_DIM = 13):
    0-2   mean Lab color
    3-5   Lab color standard deviation
    6-8   linearity, planarity, scattering (covariance eigenvalues)
    9     normal verticality |n_z|
    10    centroid height above the sensor origin
    11    horizontal range from the sensor origin
    12    log point count
"""

from typing import Sequence

import numpy as np

from waypoint_seg.labeling.cloud import ColoredCloud

FEATURE_DIM = 13


def shape_features(points: np.ndarray):
    """(linearity, planarity, scattering, verticality) of a point set."""
    if points.shape[0] < 3:
        return 0.0, 0.0, 0.0, 0.0
    cov = np.cov(points.T)
    eigvals, eigvecs = np.linalg.eigh(cov)      # ascending
    eigvals = np.clip(eigvals, 0.0, None)
    l3, l2, l1 = eigvals
    if l1 < 1e-12:
        return 0.0, 0.0, 0.0, 0.0
    normal = eigvecs[:, 0]
    return (l1 - l2) / l1, (l2 - l3) / l1, l3 / l1, abs(normal[2])


def voxel_features(voxel, cloud: ColoredCloud, sensor_origin: Sequence[float]) -> np.ndarray:
    pts = cloud.points[voxel.indices].astype(np.float64)
    lab = cloud.colors[voxel.indices].astype(np.float64)
    origin = np.asarray(sensor_origin, dtype=np.float64).reshape(3)

    feat = np.zeros(FEATURE_DIM, dtype=np.float32)
    if pts.shape[0] == 0:
        return feat

    feat[0:3] = lab.mean(axis=0)
    feat[3:6] = lab.std(axis=0)
    feat[6:10] = shape_features(pts)

    centroid = pts.mean(axis=0)
    delta = centroid - origin
    feat[10] = delta[2]
    feat[11] = np.hypot(delta[0], delta[1])
    feat[12] = np.log(pts.shape[0])
    return feat
