"""
Waypoint Store

Process-lifetime cache of the most recent labeled cloud per waypoint. Entries
are only ever replaced wholesale; there is no partial update and no delete.
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from waypoint_seg.labeling.cloud import ColoredCloud


@dataclass(frozen=True)
class WaypointObservation:
    location_key: str
    cloud: ColoredCloud
    frame_id: str

    @property
    def num_points(self) -> int:
        return len(self.cloud)


class WaypointStore:
    """Lock-guarded mapping location key -> WaypointObservation."""

    def __init__(self):
        self._entries: Dict[str, WaypointObservation] = {}
        self._lock = threading.Lock()

    def put(self, observation: WaypointObservation):
        with self._lock:
            self._entries[observation.location_key] = observation

    def get(self, location_key: str) -> Optional[WaypointObservation]:
        with self._lock:
            return self._entries.get(location_key)

    def snapshot(self) -> List[WaypointObservation]:
        """All current observations, in order of each key's first write."""
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, location_key) -> bool:
        with self._lock:
            return location_key in self._entries

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)
