"""
Voxel Admission Filter

Decides which supervoxels get labeled at all. Voxels below the point-count
threshold are dropped entirely (not merged into neighbours), and their points
are excluded from the request's output.
"""

import logging
from typing import Callable, Dict, Tuple

import numpy as np

from waypoint_seg.labeling.voxel import Voxel

_logger = logging.getLogger(__name__)


def admit_voxels(voxels: Dict[int, Voxel],
                 minimum_points: int,
                 compute_features: Callable[[Voxel], np.ndarray]) -> Tuple[Dict[int, Voxel], int]:
    """
    Keep voxels with size >= minimum_points and compute their features.

    Args:
        voxels: Partitioner output, in voxel order
        minimum_points: Admission threshold
        compute_features: Called once per admitted voxel, never for rejected ones

    Returns:
        (admitted voxels in the original relative order, N = total admitted points)
    """
    admitted = {}
    n_points = 0
    for voxel_id, voxel in voxels.items():
        if voxel.size < minimum_points:
            continue
        voxel.features = np.asarray(compute_features(voxel), dtype=np.float32)
        admitted[voxel_id] = voxel
        n_points += voxel.size

    _logger.debug("Admitted %d of %d voxels, %d points", len(admitted), len(voxels), n_points)
    return admitted, n_points


def retained_point_indices(voxels: Dict[int, Voxel]) -> np.ndarray:
    """
    The Point Index ordering: admitted voxels in mapping order, each voxel's
    members in stored order. Entry j is the voxelized-cloud index of point j.

    Energy construction, marginal decoding and position extraction must all
    go through this function.
    """
    if not voxels:
        return np.empty(0, dtype=np.int64)
    return np.concatenate([v.indices for v in voxels.values()]).astype(np.int64)
