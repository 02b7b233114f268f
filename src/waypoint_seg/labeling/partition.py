#!/usr/bin/env python3
"""
Supervoxel Partitioning

Groups an observation into spatially coherent supervoxels, the unit the
classifier labels.

How it works:
1. Voxelize the raw cloud with Open3D (averaging points and colors per leaf)
2. Bucket the voxelized points into a coarser seed grid
3. Every occupied seed cell becomes one supervoxel whose member indices point
   into the voxelized cloud

Supervoxels are returned in a dict ordered by ascending id. That iteration
order is the voxel order every later stage relies on.
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
from typing import Dict, Tuple

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import numpy as np
import open3d as o3d

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.voxel import Voxel


def to_open3d(cloud: ColoredCloud) -> o3d.geometry.PointCloud:
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(cloud.points.astype(np.float64))
    pcd.colors = o3d.utility.Vector3dVector(cloud.colors.astype(np.float64) / 255.0)
    return pcd


def from_open3d(pcd: o3d.geometry.PointCloud) -> ColoredCloud:
    points = np.asarray(pcd.points, dtype=np.float32)
    if pcd.has_colors():
        colors = np.clip(np.round(np.asarray(pcd.colors) * 255.0), 0, 255).astype(np.uint8)
    else:
        colors = np.zeros((points.shape[0], 3), dtype=np.uint8)
    return ColoredCloud(points, colors)


def voxel_downsample(cloud: ColoredCloud, resolution: float) -> ColoredCloud:
    if len(cloud) == 0 or resolution <= 0:
        return cloud.copy()
    return from_open3d(to_open3d(cloud).voxel_down_sample(resolution))


def group_by_seed_grid(points: np.ndarray, seed_resolution: float) -> Dict[int, Voxel]:
    """Bucket points into seed cells. Ids follow the sorted cell keys."""
    if points.shape[0] == 0:
        return {}
    cells = np.floor(points.astype(np.float64) / seed_resolution).astype(np.int64)
    unique_cells, inverse = np.unique(cells, axis=0, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)

    # stable sort keeps members ascending inside each cell
    order = np.argsort(inverse, kind="stable")
    counts = np.bincount(inverse, minlength=unique_cells.shape[0])
    members = np.split(order, np.cumsum(counts)[:-1])
    return {i: Voxel(i, idx) for i, idx in enumerate(members)}


class GridSupervoxelPartitioner:
    """Voxel grid + seed grid supervoxels."""

    def __init__(self,
                 voxel_resolution: float = H.VOXEL_RESOLUTION,
                 seed_resolution: float = H.SEED_RESOLUTION):
        if voxel_resolution <= 0 or seed_resolution <= 0:
            raise ValueError("Resolutions must be positive")
        self.voxel_resolution = float(voxel_resolution)
        self.seed_resolution = float(seed_resolution)

    def __call__(self, cloud: ColoredCloud) -> Tuple[ColoredCloud, Dict[int, Voxel]]:
        voxelized = voxel_downsample(cloud, self.voxel_resolution)
        return voxelized, group_by_seed_grid(voxelized.points, self.seed_resolution)
