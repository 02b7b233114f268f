#!/usr/bin/env python3
"""
PLY Waypoint Source

Offline stand-in for the observation service. Serves waypoint clouds from a
directory of PLY files:

    data_dir/
    ├── origins.yaml          # waypoint_key: [x, y, z]
    ├── WayPoint1.ply         # whole waypoint
    ├── WayPoint1_3.ply       # instance 3 of WayPoint1
    └── ...

A missing file or missing origin is reported as a FetchError. A file with no
points is served as an empty observation, like an empty PointCloud2 reply, and
the pipeline answers it with an empty labeling.
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
import logging
import os
from typing import Optional, Tuple

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import yaml

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.errors import FetchError
from waypoint_seg.labeling.partition import voxel_downsample
from waypoint_seg.labeling.utils import load_colored_point_cloud

ORIGINS_FILE = "origins.yaml"

_logger = logging.getLogger(__name__)


class PlyWaypointSource:
    def __init__(self, data_dir: str, frame_id: str = H.FRAME_ID):
        self.data_dir = data_dir
        self.frame_id = frame_id

    def cloud_path(self, location_key: str, instance_id: Optional[int] = None) -> str:
        if instance_id is None:
            return os.path.join(self.data_dir, f"{location_key}.ply")
        return os.path.join(self.data_dir, f"{location_key}_{int(instance_id)}.ply")

    def fetch_cloud(self, location_key: str, instance_id: Optional[int],
                    resolution: float) -> Tuple[ColoredCloud, str]:
        path = self.cloud_path(location_key, instance_id)
        if not os.path.isfile(path):
            raise FetchError(f"No observation file for '{location_key}': {path}")
        try:
            cloud = load_colored_point_cloud(path)
        except (RuntimeError, ValueError, OSError) as e:
            raise FetchError(f"Could not read {path}: {e}") from e
        if len(cloud) == 0:
            _logger.warning("Observation %s holds no points", path)
            return cloud, self.frame_id
        if resolution > 0:
            cloud = voxel_downsample(cloud, resolution)
        return cloud, self.frame_id

    def fetch_origin(self, location_key: str) -> Tuple[float, float, float]:
        path = os.path.join(self.data_dir, ORIGINS_FILE)
        if not os.path.isfile(path):
            raise FetchError(f"No sensor origins available: {path}")
        try:
            with open(path, "r") as f:
                origins = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise FetchError(f"Could not parse {path}: {e}") from e
        if not isinstance(origins, dict):
            raise FetchError(f"{path} must map waypoint keys to [x, y, z]")

        origin = origins.get(location_key)
        if origin is None:
            raise FetchError(f"Didn't find a sensor origin for '{location_key}'")
        try:
            x, y, z = (float(c) for c in origin)
        except (TypeError, ValueError) as e:
            raise FetchError(f"Malformed sensor origin for '{location_key}': {origin!r}") from e
        return x, y, z
