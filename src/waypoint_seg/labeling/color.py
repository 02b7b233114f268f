"""Color normalization: RGB -> 8-bit CIE-Lab, as OpenCV encodes it."""

import cv2
import numpy as np

from waypoint_seg.labeling.cloud import ColoredCloud


def rgb_to_lab(colors: np.ndarray) -> np.ndarray:
    """(M, 3) uint8 RGB -> (M, 3) uint8 Lab."""
    colors = np.ascontiguousarray(colors, dtype=np.uint8).reshape(-1, 3)
    if colors.shape[0] == 0:
        return colors.copy()
    # cvtColor wants an image, treat the cloud as an (M, 1) strip
    lab = cv2.cvtColor(colors.reshape(-1, 1, 3), cv2.COLOR_RGB2Lab)
    return lab.reshape(-1, 3)


def normalize_cloud_colors(cloud: ColoredCloud) -> ColoredCloud:
    return ColoredCloud(cloud.points.copy(), rgb_to_lab(cloud.colors))
