"""
Shared deterministic stand-ins for the pipeline's collaborators.

Test clouds encode the supervoxel id of every point in the red channel, so the
stand-in partitioner can rebuild the voxels exactly and tests know which point
belongs to which voxel.
"""

import numpy as np
import pytest
from scipy.special import log_softmax, softmax

from waypoint_seg.labeling.cloud import ColoredCloud
from waypoint_seg.labeling.config import LabelerConfig
from waypoint_seg.labeling.errors import FetchError
from waypoint_seg.labeling.voxel import Voxel
from waypoint_seg.service.map_publisher import LatchedCloudChannel, MapPublisher
from waypoint_seg.service.pipeline import LabelingPipeline

TEST_CLASSES = [
    ("ground", (10, 10, 10)),
    ("wall",   (20, 20, 20)),
    ("object", (30, 30, 30)),
]


def make_cloud(sizes, seed=0, offset=(0.0, 0.0, 0.0)):
    """Cloud with `sizes[vid]` points per voxel id, members shuffled through the cloud."""
    rng = np.random.default_rng(seed)
    ids = np.concatenate([np.full(n, vid, dtype=np.int64) for vid, n in sizes.items()])
    ids = rng.permutation(ids)
    points = rng.uniform(-1.0, 1.0, size=(ids.shape[0], 3)) + np.asarray(offset)
    colors = np.zeros((ids.shape[0], 3), dtype=np.uint8)
    colors[:, 0] = ids
    colors[:, 1] = rng.integers(0, 256, size=ids.shape[0])
    colors[:, 2] = rng.integers(0, 256, size=ids.shape[0])
    return ColoredCloud(points, colors)


def red_channel_partitioner(cloud):
    ids = cloud.colors[:, 0].astype(np.int64)
    voxels = {int(v): Voxel(int(v), np.flatnonzero(ids == v)) for v in np.unique(ids)}
    return cloud, voxels


def centroid_features(voxel, cloud, origin):
    centroid = cloud.points[voxel.indices].mean(axis=0) - np.asarray(origin)
    return np.r_[centroid, np.log(voxel.size)].astype(np.float32)


class LinearClassifier:
    """Fixed linear map features -> class log-posteriors."""

    def __init__(self, num_classes=3, feature_dim=4):
        rng = np.random.default_rng(42)
        self.weights = rng.normal(size=(feature_dim, num_classes))
        self.calls = 0

    def log_posterior(self, features):
        self.calls += 1
        return log_softmax(np.asarray(features) @ self.weights, axis=1).astype(np.float32)


class RecordingSolver:
    """Unary-only 'smoothing' that remembers what it was given."""

    def __init__(self):
        self.energies = []
        self.marginals = []

    def __call__(self, energy, n_iterations):
        self.energies.append(energy)
        marginals = softmax(-energy.unary.T.astype(np.float64), axis=1).astype(np.float32)
        self.marginals.append(marginals)
        return marginals


class FakeSource:
    """In-memory observation source keyed by (location_key, instance_id)."""

    def __init__(self):
        self.clouds = {}
        self.origins = {}
        self.fail_cloud = False
        self.fail_origin = False
        self.cloud_calls = []

    def add(self, key, cloud, frame_id="map", origin=(0.0, 0.0, 1.0), instance_id=None):
        self.clouds[(key, instance_id)] = (cloud, frame_id)
        self.origins[key] = origin

    def fetch_cloud(self, location_key, instance_id, resolution):
        self.cloud_calls.append((location_key, instance_id, resolution))
        if self.fail_cloud or (location_key, instance_id) not in self.clouds:
            raise FetchError(f"Didn't receive a pointcloud for {location_key}")
        return self.clouds[(location_key, instance_id)]

    def fetch_origin(self, location_key):
        if self.fail_origin or location_key not in self.origins:
            raise FetchError(f"Didn't receive a sensor origin for {location_key}")
        return self.origins[location_key]


@pytest.fixture
def config():
    return LabelerConfig(minimum_points=10, classes=list(TEST_CLASSES)).validate()


@pytest.fixture
def class_set(config):
    return config.class_set()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def channel():
    return LatchedCloudChannel()


@pytest.fixture
def make_pipeline(config, source, channel):
    def factory(solver=None, name="labeler", **kwargs):
        return LabelingPipeline(
            source=source,
            classifier=kwargs.pop("classifier", LinearClassifier()),
            config=kwargs.pop("config", config),
            publisher=MapPublisher(channel),
            partitioner=red_channel_partitioner,
            color_normalizer=lambda cloud: cloud,
            feature_extractor=centroid_features,
            solver=solver if solver is not None else RecordingSolver(),
            name=name,
            **kwargs,
        )
    return factory
