#!/usr/bin/env python3
"""
Utility Functions for Point Cloud I/O

Helpers shared by the offline tools and the map logger:
- Point cloud export: saving labeled / fused clouds as colored PLY files
- Point cloud import: reading colored PLY files through Open3D
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
import os

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import open3d as o3d

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.partition import from_open3d


# ─── Point Cloud Export Functions ────────────────────────────────────────────────
def save_colored_point_cloud(cloud: ColoredCloud, filename: str):
    """Write an ASCII PLY with xyz + uchar rgb per vertex."""
    header = [
        "ply",
        "format ascii 1.0",
        f"element vertex {len(cloud)}",
        "property float x",
        "property float y",
        "property float z",
        "property uchar red",
        "property uchar green",
        "property uchar blue",
        "end_header",
    ]
    lines = list(header)
    for (x, y, z), (r, g, b) in zip(cloud.points, cloud.colors):
        lines.append(f"{x:.5f} {y:.5f} {z:.5f} {int(r)} {int(g)} {int(b)}")
    ensure_dir(os.path.dirname(filename))
    with open(filename, "w") as f:
        f.write("\n".join(lines) + "\n")


# ─── Point Cloud Import Functions ────────────────────────────────────────────────
def load_colored_point_cloud(filename: str) -> ColoredCloud:
    pcd = o3d.io.read_point_cloud(filename)
    return from_open3d(pcd)


# ─── Misc ─────────────────────────────────────────────────────────────────────────
def ensure_dir(path: str):
    if path:
        os.makedirs(path, exist_ok=True)
