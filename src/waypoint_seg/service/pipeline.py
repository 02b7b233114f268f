#!/usr/bin/env python3
"""
Waypoint Labeling Pipeline

One request flow shared by both service variants (whole waypoint and single
instance within a waypoint). The variants only differ in the FetchSpec handed
to the observation source; everything after fetching is identical.

Flow:
    RECEIVED → FETCHING → VOXELIZING → FILTERING → CLASSIFYING →
    ENERGY_BUILDING → SOLVING → DECODING → STORING → PUBLISHING → RESPONDED

A FetchError from the source or the origin lookup ends the request in
FETCH_FAILED: the caller gets a failure response and neither the store nor the
published map change. Storing and publishing run inside a single critical
section, so concurrent requests never publish a half-updated fusion.
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import numpy as np

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling.admission import admit_voxels
from waypoint_seg.labeling.class_set import ClassSet
from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.config import LabelerConfig
from waypoint_seg.labeling.crf import solve_energy
from waypoint_seg.labeling.decoder import LabelingResult, decode_marginals, labeled_cloud
from waypoint_seg.labeling.energy import EnergyModel, build_energy
from waypoint_seg.labeling.errors import FetchError
from waypoint_seg.labeling.voxel import Voxel
from waypoint_seg.service.map_publisher import MapPublisher
from waypoint_seg.service.waypoint_store import WaypointObservation, WaypointStore

_module_logger = logging.getLogger(__name__)

Partitioner = Callable[[ColoredCloud], Tuple[ColoredCloud, Dict[int, Voxel]]]
FeatureExtractor = Callable[[Voxel, ColoredCloud, Tuple[float, float, float]], np.ndarray]
Solver = Callable[[EnergyModel, int], np.ndarray]


class PipelineState(enum.Enum):
    RECEIVED = "RECEIVED"
    FETCHING = "FETCHING"
    FETCH_FAILED = "FETCH-FAILED"
    VOXELIZING = "VOXELIZING"
    FILTERING = "FILTERING"
    CLASSIFYING = "CLASSIFYING"
    ENERGY_BUILDING = "ENERGY-BUILDING"
    SOLVING = "SOLVING"
    DECODING = "DECODING"
    STORING = "STORING"
    PUBLISHING = "PUBLISHING"
    RESPONDED = "RESPONDED"


@dataclass(frozen=True)
class FetchSpec:
    """Which observation to fetch: a whole waypoint, or one instance in it."""
    location_key: str
    instance_id: Optional[int] = None

    @property
    def is_instance(self) -> bool:
        return self.instance_id is not None

    def __str__(self):
        if self.is_instance:
            return f"{self.location_key}#{self.instance_id}"
        return self.location_key


@dataclass
class LabelingResponse:
    success: bool
    labels: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int32))
    label_probabilities: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    label_frequencies: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3), dtype=np.float32))
    class_names: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls) -> "LabelingResponse":
        return cls(success=False)

    @classmethod
    def from_result(cls, result: LabelingResult, class_set: ClassSet) -> "LabelingResponse":
        return cls(
            success=True,
            labels=result.labels.astype(np.int32),
            # row-major N x C
            label_probabilities=result.probabilities.astype(np.float32).reshape(-1),
            label_frequencies=result.frequencies.astype(np.float32),
            points=result.points.astype(np.float32),
            class_names=class_set.names,
        )


class LabelingPipeline:
    """
    Fetch → label → store → publish, for one logical labeler instance.

    Each instance owns its WaypointStore; several instances may share one
    MapPublisher channel.
    """

    def __init__(self,
                 source,
                 classifier,
                 config: LabelerConfig,
                 publisher: MapPublisher,
                 partitioner: Partitioner,
                 color_normalizer: Callable[[ColoredCloud], ColoredCloud],
                 feature_extractor: FeatureExtractor,
                 solver: Solver = solve_energy,
                 origin_source=None,
                 store: Optional[WaypointStore] = None,
                 logger=None,
                 name: str = "labeler"):
        self.source = source
        self.origin_source = origin_source if origin_source is not None else source
        self.classifier = classifier
        self.config = config
        self.class_set = config.class_set()
        self.publisher = publisher
        self.partitioner = partitioner
        self.color_normalizer = color_normalizer
        self.feature_extractor = feature_extractor
        self.solver = solver
        self.store = store if store is not None else WaypointStore()
        self.name = name
        self._logger = logger if logger is not None else _module_logger
        self._commit_lock = threading.Lock()
        self._frame_id: Optional[str] = None

    # ─── Entry Points ────────────────────────────────────────────────────────────

    def label_cloud(self, location_key: str) -> LabelingResponse:
        return self.handle(FetchSpec(location_key))

    def label_instance_cloud(self, location_key: str, instance_id: int) -> LabelingResponse:
        return self.handle(FetchSpec(location_key, int(instance_id)))

    @property
    def frame_id(self) -> Optional[str]:
        """Frame of the most recently stored request."""
        return self._frame_id

    # ─── Request Flow ────────────────────────────────────────────────────────────

    def _enter(self, state: PipelineState, spec: FetchSpec):
        self._logger.debug(f"[{self.name}] {spec}: {state.value}")

    def handle(self, spec: FetchSpec) -> LabelingResponse:
        self._enter(PipelineState.RECEIVED, spec)

        self._enter(PipelineState.FETCHING, spec)
        try:
            cloud, frame_id, origin = self._fetch(spec)
        except FetchError as e:
            self._enter(PipelineState.FETCH_FAILED, spec)
            self._logger.error(f"[{self.name}] Fetching '{spec}' failed: {e}")
            return LabelingResponse.failure()
        self._logger.info(f"[{self.name}] Cloud received, a total of {len(cloud)} points found")

        result = self._label(cloud, origin, spec)
        stored = WaypointObservation(spec.location_key, labeled_cloud(result, self.class_set), frame_id)

        with self._commit_lock:
            self._enter(PipelineState.STORING, spec)
            self.store.put(stored)
            self._frame_id = frame_id
            self._enter(PipelineState.PUBLISHING, spec)
            self.publisher.publish(self.store, frame_id)

        self._enter(PipelineState.RESPONDED, spec)
        return LabelingResponse.from_result(result, self.class_set)

    def _fetch(self, spec: FetchSpec):
        cloud, frame_id = self.source.fetch_cloud(
            spec.location_key, spec.instance_id, self.config.cloud_resolution
        )
        origin = tuple(float(c) for c in self.origin_source.fetch_origin(spec.location_key))
        if len(origin) != 3:
            raise FetchError(f"Sensor origin for '{spec.location_key}' is not 3D: {origin}")
        return cloud, frame_id, origin

    def _label(self, cloud: ColoredCloud, origin, spec: FetchSpec) -> LabelingResult:
        num_classes = len(self.class_set)

        self._enter(PipelineState.VOXELIZING, spec)
        normalized = self.color_normalizer(cloud)
        voxelized, voxels = self.partitioner(normalized)
        self._logger.info(f"[{self.name}] Voxelized the cloud, got {len(voxels)} supervoxels")

        self._enter(PipelineState.FILTERING, spec)
        admitted, n_points = admit_voxels(
            voxels,
            self.config.minimum_points,
            lambda voxel: self.feature_extractor(voxel, voxelized, origin),
        )
        self._logger.info(f"[{self.name}] Remaining valid points: {n_points}")

        self._enter(PipelineState.CLASSIFYING, spec)
        if admitted:
            features = np.stack([v.features for v in admitted.values()])
            log_posteriors = np.asarray(self.classifier.log_posterior(features), dtype=np.float32)
        else:
            log_posteriors = np.zeros((0, num_classes), dtype=np.float32)

        self._enter(PipelineState.ENERGY_BUILDING, spec)
        energy = build_energy(admitted, log_posteriors, voxelized, self.config)

        self._enter(PipelineState.SOLVING, spec)
        if n_points == 0:
            self._logger.warning(f"[{self.name}] No supervoxel reached {self.config.minimum_points} points")
            marginals = np.zeros((0, num_classes), dtype=np.float32)
        else:
            marginals = self.solver(energy, self.config.solver_iterations)

        self._enter(PipelineState.DECODING, spec)
        result = decode_marginals(marginals, admitted, voxelized, self.class_set)
        self._logger.info(f"[{self.name}] Done classifying all the supervoxels")
        return result
