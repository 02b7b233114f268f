#!/usr/bin/env python3
"""
Offline Waypoint Labeling

Runs the full labeling pipeline on PLY observations without ROS and writes the
fused semantic map.

Usage:
    label_waypoints --data-dir data/waypoints --model checkpoints/classifier.pth \
        --config config/labeler.yaml --output out/fused.ply WayPoint1 WayPoint2 WayPoint2#3

A waypoint written as KEY#N is labeled through the instance variant.
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
import argparse
import json
import logging
import os
import sys

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import numpy as np

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling.classifier import load_classifier
from waypoint_seg.labeling.config import load_config
from waypoint_seg.labeling.errors import ConfigError, ModelLoadError
from waypoint_seg.labeling.utils import ensure_dir, save_colored_point_cloud
from waypoint_seg.service.assembly import build_pipeline
from waypoint_seg.service.map_publisher import LatchedCloudChannel, MapPublisher
from waypoint_seg.service.pipeline import FetchSpec
from waypoint_seg.service.ply_source import PlyWaypointSource

_logger = logging.getLogger("label_waypoints")


def parse_fetch_spec(text: str) -> FetchSpec:
    key, sep, instance = text.partition("#")
    if not key:
        raise argparse.ArgumentTypeError(f"Empty waypoint key in '{text}'")
    if not sep:
        return FetchSpec(key)
    try:
        return FetchSpec(key, int(instance))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Instance id must be an integer in '{text}'") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Label waypoint observations and fuse them into one map')
    parser.add_argument('waypoints', nargs='+', type=parse_fetch_spec,
                        help='Waypoint keys, KEY or KEY#INSTANCE')
    parser.add_argument('--data-dir', required=True, help='Directory with <key>.ply files and origins.yaml')
    parser.add_argument('--model', required=True, help='Classifier checkpoint')
    parser.add_argument('--config', default=None, help='Labeler YAML configuration')
    parser.add_argument('--output', default='fused_map.ply', help='Fused map PLY path')
    parser.add_argument('--summary-dir', default=None, help='Write one JSON summary per waypoint here')
    parser.add_argument('--device', default=None, help='torch device override, e.g. cpu or cuda')
    parser.add_argument('--verbose', action='store_true', help='Log every pipeline state')
    return parser


def write_summary(summary_dir: str, spec: FetchSpec, response):
    ensure_dir(summary_dir)
    labels = np.asarray(response.labels)
    counts = np.bincount(labels, minlength=len(response.class_names)) if labels.size else \
        np.zeros(len(response.class_names), dtype=np.int64)
    summary = {
        'waypoint': spec.location_key,
        'instance': spec.instance_id,
        'num_points': int(labels.size),
        'class_names': list(response.class_names),
        'label_frequencies': [float(f) for f in response.label_frequencies],
        'label_counts': [int(c) for c in counts],
    }
    name = str(spec).replace('#', '_')
    with open(os.path.join(summary_dir, f"{name}.json"), 'w') as f:
        json.dump(summary, f, indent=2)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='[%(levelname)s] %(name)s: %(message)s')

    try:
        config = load_config(args.config)
        classifier = load_classifier(args.model, config.class_set(), args.device)
    except (ConfigError, ModelLoadError) as e:
        _logger.error(f"❌ {e}")
        return 1

    source = PlyWaypointSource(args.data_dir, config.frame_id)
    publisher = MapPublisher(LatchedCloudChannel())
    whole = build_pipeline(config, classifier, source, publisher, name='label_integrated_cloud')
    instance = build_pipeline(config, classifier, source, publisher, name='label_integrated_cloud_plus')

    failures = 0
    for spec in args.waypoints:
        pipeline = instance if spec.is_instance else whole
        response = pipeline.handle(spec)
        if not response.success:
            failures += 1
            continue
        _logger.info(f"✅ {spec}: {len(response.labels)} labeled points")
        if args.summary_dir:
            write_summary(args.summary_dir, spec, response)

    latest = publisher.channel.latest()
    if latest is not None:
        cloud, frame_id = latest
        save_colored_point_cloud(cloud, args.output)
        _logger.info(f"💾 Saved fused map ({len(cloud)} points, frame '{frame_id}') to {args.output}")
    else:
        _logger.warning("No waypoint was labeled, nothing to save")

    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())
