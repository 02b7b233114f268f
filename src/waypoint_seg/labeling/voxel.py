"""Supervoxel record shared by partitioning, admission, energy and decoding."""

from typing import Optional

import numpy as np


class Voxel:
    """A supervoxel: ordered member indices into the voxelized cloud."""

    __slots__ = ("voxel_id", "indices", "features")

    def __init__(self, voxel_id: int, indices, features: Optional[np.ndarray] = None):
        self.voxel_id = int(voxel_id)
        self.indices = np.asarray(indices, dtype=np.int64).reshape(-1)
        self.features = features

    @property
    def size(self) -> int:
        return int(self.indices.shape[0])

    def __repr__(self):
        return f"Voxel(id={self.voxel_id}, size={self.size})"
