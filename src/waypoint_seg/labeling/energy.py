"""
Dense CRF energy construction.

Column j of every matrix belongs to Point Index j (see
`admission.retained_point_indices`):

    unary       (C, N)  -log posterior of the point's supervoxel
    appearance  (6, N)  [xyz / appearance_range_sigma, lab / appearance_color_sigma]
    smoothness  (3, N)  xyz / smoothness_range_sigma

Both pairwise terms use a Potts compatibility weighted by their config weight.
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from waypoint_seg.labeling.admission import retained_point_indices
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.voxel import Voxel


@dataclass
class EnergyModel:
    unary: np.ndarray
    appearance: np.ndarray
    smoothness: np.ndarray
    appearance_weight: float
    smoothness_weight: float

    @property
    def num_points(self) -> int:
        return self.unary.shape[1]

    @property
    def num_classes(self) -> int:
        return self.unary.shape[0]


def build_energy(voxels: Dict[int, Voxel],
                 log_posteriors: np.ndarray,
                 cloud: ColoredCloud,
                 config) -> EnergyModel:
    """
    Args:
        voxels: Admitted voxels, in voxel order
        log_posteriors: (V, C), row v for the v-th admitted voxel
        cloud: Voxelized cloud (Lab colors) the voxel indices point into
        config: LabelerConfig (sigmas and weights)
    """
    log_posteriors = np.asarray(log_posteriors, dtype=np.float32)
    if log_posteriors.ndim != 2 or log_posteriors.shape[0] != len(voxels):
        raise ValueError(
            f"Expected one log-posterior row per voxel ({len(voxels)}), got {log_posteriors.shape}"
        )

    sizes = np.array([v.size for v in voxels.values()], dtype=np.int64)
    point_idx = retained_point_indices(voxels)
    xyz = cloud.points[point_idx].astype(np.float32)
    lab = cloud.colors[point_idx].astype(np.float32)

    # one posterior row per point, repeated over the voxel's members
    unary = -np.repeat(log_posteriors, sizes, axis=0).T
    appearance = np.concatenate([
        xyz / config.appearance_range_sigma,
        lab / config.appearance_color_sigma,
    ], axis=1).T
    smoothness = (xyz / config.smoothness_range_sigma).T

    return EnergyModel(
        unary=np.ascontiguousarray(unary, dtype=np.float32),
        appearance=np.ascontiguousarray(appearance, dtype=np.float32),
        smoothness=np.ascontiguousarray(smoothness, dtype=np.float32),
        appearance_weight=float(config.appearance_weight),
        smoothness_weight=float(config.smoothness_weight),
    )
