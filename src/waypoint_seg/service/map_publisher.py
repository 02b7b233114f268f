"""
Map Publisher

Fuses every stored waypoint observation into one cloud and emits it on a
latched channel. Fusion is a plain union: no spatial deduplication between
waypoints and no coordinate transform.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from waypoint_seg.labeling.cloud import ColoredCloud, concatenate_clouds
from waypoint_seg.service.waypoint_store import WaypointStore

_logger = logging.getLogger(__name__)

CloudCallback = Callable[[ColoredCloud, str], None]


@dataclass(frozen=True)
class FusedMap:
    cloud: ColoredCloud
    frame_id: str
    waypoints: Tuple[str, ...]

    @property
    def num_points(self) -> int:
        return len(self.cloud)


class LatchedCloudChannel:
    """
    Latched broadcast of (cloud, frame_id).

    Emissions are serialized, so subscribers never see interleaved frames from
    concurrent publishers. A late subscriber is immediately handed the latest
    value.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[Tuple[ColoredCloud, str]] = None
        self._subscribers: List[CloudCallback] = []
        self.publish_count = 0

    def publish(self, cloud: ColoredCloud, frame_id: str):
        with self._lock:
            self._latest = (cloud, frame_id)
            self.publish_count += 1
            for callback in list(self._subscribers):
                callback(cloud, frame_id)

    def subscribe(self, callback: CloudCallback):
        with self._lock:
            self._subscribers.append(callback)
            if self._latest is not None:
                callback(*self._latest)

    def latest(self) -> Optional[Tuple[ColoredCloud, str]]:
        with self._lock:
            return self._latest


def fuse_observations(store: WaypointStore, frame_id: str) -> FusedMap:
    observations = store.snapshot()
    return FusedMap(
        cloud=concatenate_clouds([o.cloud for o in observations]),
        frame_id=frame_id,
        waypoints=tuple(o.location_key for o in observations),
    )


class MapPublisher:
    def __init__(self, channel: LatchedCloudChannel):
        self.channel = channel

    def publish(self, store: WaypointStore, frame_id: str) -> FusedMap:
        fused = fuse_observations(store, frame_id)
        self.channel.publish(fused.cloud, fused.frame_id)
        _logger.info("Published fused map: %d points from %d waypoints in '%s'",
                     fused.num_points, len(fused.waypoints), frame_id)
        return fused
