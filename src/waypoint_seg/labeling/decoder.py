"""
Label Decoder

Turns the (N, C) CRF marginals back into per-point results. Row j of the
marginals, entry j of every output and the j-th retained position all refer to
the same physical point because they share `retained_point_indices`.

Note on `frequencies`: entry c is the MEAN marginal probability of class c over
all N points (an expectation under the posterior), not the share of points
whose argmax is c.
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from waypoint_seg.labeling.admission import retained_point_indices
from waypoint_seg.labeling.class_set import ClassSet
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.voxel import Voxel


@dataclass
class LabelingResult:
    labels: np.ndarray          # (N,)   int32
    probabilities: np.ndarray   # (N, C) float32
    frequencies: np.ndarray     # (C,)   float32
    points: np.ndarray          # (N, 3) float32

    @property
    def num_points(self) -> int:
        return self.labels.shape[0]


def decode_marginals(marginals: np.ndarray,
                     voxels: Dict[int, Voxel],
                     cloud: ColoredCloud,
                     class_set: ClassSet) -> LabelingResult:
    num_classes = len(class_set)
    point_idx = retained_point_indices(voxels)
    n = point_idx.shape[0]

    marginals = np.asarray(marginals, dtype=np.float32).reshape(-1, num_classes)
    if marginals.shape[0] != n:
        raise ValueError(f"Marginals have {marginals.shape[0]} rows for {n} retained points")

    if n == 0:
        return LabelingResult(
            labels=np.zeros(0, dtype=np.int32),
            probabilities=np.zeros((0, num_classes), dtype=np.float32),
            frequencies=np.zeros(num_classes, dtype=np.float32),
            points=np.zeros((0, 3), dtype=np.float32),
        )

    # np.argmax returns the first maximum, so ties go to the lowest class id
    labels = np.argmax(marginals, axis=1).astype(np.int32)
    frequencies = (marginals.sum(axis=0, dtype=np.float64) / float(n)).astype(np.float32)

    return LabelingResult(
        labels=labels,
        probabilities=marginals.copy(),
        frequencies=frequencies,
        points=cloud.points[point_idx].astype(np.float32),
    )


def labeled_cloud(result: LabelingResult, class_set: ClassSet) -> ColoredCloud:
    """Retained points colored with their label's display color."""
    return ColoredCloud(result.points.copy(), class_set.colors_for(result.labels))
