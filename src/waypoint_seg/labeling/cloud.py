"""
Colored point cloud container shared by every pipeline stage.

Points are float32 (M, 3), colors are uint8 (M, 3). Depending on the stage the
colors hold RGB (raw observations, labeled output) or 8-bit Lab (after color
normalization).
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass
class ColoredCloud:
    points: np.ndarray
    colors: np.ndarray

    def __post_init__(self):
        self.points = np.asarray(self.points, dtype=np.float32).reshape(-1, 3)
        self.colors = np.asarray(self.colors, dtype=np.uint8).reshape(-1, 3)
        if self.points.shape[0] != self.colors.shape[0]:
            raise ValueError(
                f"points and colors disagree: {self.points.shape[0]} vs {self.colors.shape[0]}"
            )

    def __len__(self) -> int:
        return self.points.shape[0]

    @classmethod
    def empty(cls) -> "ColoredCloud":
        return cls(np.empty((0, 3), np.float32), np.empty((0, 3), np.uint8))

    def copy(self) -> "ColoredCloud":
        return ColoredCloud(self.points.copy(), self.colors.copy())


def concatenate_clouds(clouds: Sequence[ColoredCloud]) -> ColoredCloud:
    """Plain union of clouds, in the given order. No deduplication."""
    if not clouds:
        return ColoredCloud.empty()
    return ColoredCloud(
        np.concatenate([c.points for c in clouds], axis=0),
        np.concatenate([c.colors for c in clouds], axis=0),
    )
