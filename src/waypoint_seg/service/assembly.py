"""Wires a LabelingPipeline with the default collaborators."""

import functools

from waypoint_seg.labeling.color import normalize_cloud_colors
from waypoint_seg.labeling.config import LabelerConfig
from waypoint_seg.labeling.crf import solve_energy
from waypoint_seg.labeling.features import voxel_features
from waypoint_seg.labeling.partition import GridSupervoxelPartitioner
from waypoint_seg.service.map_publisher import MapPublisher
from waypoint_seg.service.pipeline import LabelingPipeline


def build_pipeline(config: LabelerConfig,
                   classifier,
                   source,
                   publisher: MapPublisher,
                   name: str = "labeler",
                   logger=None) -> LabelingPipeline:
    return LabelingPipeline(
        source=source,
        classifier=classifier,
        config=config,
        publisher=publisher,
        partitioner=GridSupervoxelPartitioner(config.voxel_resolution, config.seed_resolution),
        color_normalizer=normalize_cloud_colors,
        feature_extractor=voxel_features,
        solver=functools.partial(solve_energy, neighbors=config.crf_neighbors),
        logger=logger,
        name=name,
    )
