# Request pipeline, waypoint cache and fused map publishing.
# The ROS2 nodes (labeler_node, map_logger, cloud_msgs) are not imported here
# so the rest of the package works without a ROS installation.

from .map_publisher import FusedMap, LatchedCloudChannel, MapPublisher
from .pipeline import FetchSpec, LabelingPipeline, LabelingResponse
from .waypoint_store import WaypointObservation, WaypointStore

__all__ = [
    'FusedMap',
    'LatchedCloudChannel',
    'MapPublisher',
    'FetchSpec',
    'LabelingPipeline',
    'LabelingResponse',
    'WaypointObservation',
    'WaypointStore',
]
