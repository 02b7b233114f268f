"""
PointCloud2 <-> ColoredCloud conversion.

Colors travel in the PCL convention: a float32 `rgb` (or `rgba`) field whose
bits are a packed 0x00RRGGBB integer.
"""

import numpy as np

from geometry_msgs.msg import Point32
from sensor_msgs.msg import PointCloud2, PointField
from std_msgs.msg import Header
import sensor_msgs_py.point_cloud2 as pc2

from waypoint_seg.labeling.cloud import ColoredCloud

XYZRGB_FIELDS = [
    PointField(name='x', offset=0, datatype=PointField.FLOAT32, count=1),
    PointField(name='y', offset=4, datatype=PointField.FLOAT32, count=1),
    PointField(name='z', offset=8, datatype=PointField.FLOAT32, count=1),
    PointField(name='rgb', offset=12, datatype=PointField.FLOAT32, count=1),
]


def pack_rgb(colors: np.ndarray) -> np.ndarray:
    """(M, 3) uint8 -> (M,) float32 carrying 0x00RRGGBB bits."""
    colors = np.asarray(colors, dtype=np.uint32).reshape(-1, 3)
    packed = (colors[:, 0] << 16) | (colors[:, 1] << 8) | colors[:, 2]
    return packed.astype(np.uint32).view(np.float32)


def unpack_rgb(rgb: np.ndarray) -> np.ndarray:
    """(M,) packed colors of any 4-byte type (float32 rgb, uint32 rgba) -> (M, 3) uint8."""
    packed = np.ascontiguousarray(rgb).reshape(-1)
    if packed.dtype.itemsize != 4:
        raise ValueError(f"Packed colors must be 4 bytes wide, got {packed.dtype}")
    packed = packed.view(np.uint32)
    return np.stack([(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF], axis=1).astype(np.uint8)


def cloud_from_msg(msg: PointCloud2) -> ColoredCloud:
    """
    Read xyz + color from a PointCloud2.

    The color field may be a FLOAT32 `rgb` or a UINT32 `rgba` (PCL PointXYZRGBA);
    fields are read through a structured array so mixed datatypes are fine.
    """
    names = [f.name for f in msg.fields]
    color_field = 'rgb' if 'rgb' in names else ('rgba' if 'rgba' in names else None)
    if msg.width * msg.height == 0:
        return ColoredCloud.empty()

    field_names = ('x', 'y', 'z') if color_field is None else ('x', 'y', 'z', color_field)
    data = pc2.read_points(msg, field_names=field_names, skip_nans=True)
    xyz = np.stack([data['x'], data['y'], data['z']], axis=1).astype(np.float32)

    if color_field is None:
        return ColoredCloud(xyz, np.zeros((xyz.shape[0], 3), dtype=np.uint8))
    return ColoredCloud(xyz, unpack_rgb(data[color_field]))


def cloud_to_msg(cloud: ColoredCloud, frame_id: str, stamp=None) -> PointCloud2:
    header = Header(frame_id=frame_id)
    if stamp is not None:
        header.stamp = stamp
    data = np.empty((len(cloud), 4), dtype=np.float32)
    data[:, :3] = cloud.points
    data[:, 3] = pack_rgb(cloud.colors)
    return pc2.create_cloud(header, XYZRGB_FIELDS, data)


def points_to_msgs(points: np.ndarray):
    return [Point32(x=float(x), y=float(y), z=float(z)) for x, y, z in np.asarray(points).reshape(-1, 3)]
