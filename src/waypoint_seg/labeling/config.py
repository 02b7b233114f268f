"""
Labeler Configuration

Values default to the constants in `hyperparameters.py` and can be
overridden by a YAML file:

    minimum_points: 10
    appearance_color_sigma: 13.0
    appearance_range_sigma: 0.2
    appearance_weight: 5.0
    smoothness_range_sigma: 0.05
    smoothness_weight: 3.0
    solver_iterations: 5
    classes:
      - {name: floor, color: [128, 64, 128]}
      - {name: wall,  color: [190, 153, 153]}
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
import os
from dataclasses import dataclass, field, fields
from typing import List, Optional, Tuple

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import yaml

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.class_set import ClassSet
from waypoint_seg.labeling.errors import ConfigError


def _default_classes() -> List[Tuple[str, Tuple[int, int, int]]]:
    return [(name, tuple(color)) for name, color in H.CLASSES]


@dataclass
class LabelerConfig:
    minimum_points: int = H.MIN_POINT_COUNT
    appearance_color_sigma: float = H.APPEARANCE_COLOR_SIGMA
    appearance_range_sigma: float = H.APPEARANCE_RANGE_SIGMA
    appearance_weight: float = H.APPEARANCE_WEIGHT
    smoothness_range_sigma: float = H.SMOOTHNESS_RANGE_SIGMA
    smoothness_weight: float = H.SMOOTHNESS_WEIGHT
    solver_iterations: int = H.CRF_ITERATIONS
    crf_neighbors: int = H.CRF_NEIGHBORS
    cloud_resolution: float = H.CLOUD_RESOLUTION
    voxel_resolution: float = H.VOXEL_RESOLUTION
    seed_resolution: float = H.SEED_RESOLUTION
    frame_id: str = H.FRAME_ID
    classes: List[Tuple[str, Tuple[int, int, int]]] = field(default_factory=_default_classes)

    def validate(self) -> "LabelerConfig":
        if self.minimum_points < 1:
            raise ConfigError(f"minimum_points must be >= 1, got {self.minimum_points}")
        for name in ("appearance_color_sigma", "appearance_range_sigma",
                     "smoothness_range_sigma", "voxel_resolution", "seed_resolution"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("appearance_weight", "smoothness_weight", "cloud_resolution"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.solver_iterations < 0:
            raise ConfigError(f"solver_iterations must be >= 0, got {self.solver_iterations}")
        if self.crf_neighbors < 1:
            raise ConfigError(f"crf_neighbors must be >= 1, got {self.crf_neighbors}")
        # raises ConfigError on empty / duplicate / malformed classes
        self.class_set()
        return self

    def class_set(self) -> ClassSet:
        return ClassSet(self.classes)


_INT_KEYS = {"minimum_points", "solver_iterations", "crf_neighbors"}
_STR_KEYS = {"frame_id"}


def _parse_classes(raw) -> List[Tuple[str, Tuple[int, int, int]]]:
    if not isinstance(raw, list):
        raise ConfigError("'classes' must be a list of {name, color} entries")
    classes = []
    for entry in raw:
        try:
            classes.append((str(entry["name"]), tuple(int(c) for c in entry["color"])))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Malformed class entry {entry!r}: {e}") from e
    return classes


def config_from_dict(values: Optional[dict]) -> LabelerConfig:
    values = dict(values or {})
    known = {f.name for f in fields(LabelerConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {unknown}")

    kwargs = {}
    for key, value in values.items():
        try:
            if key == "classes":
                kwargs[key] = _parse_classes(value)
            elif key in _INT_KEYS:
                kwargs[key] = int(value)
            elif key in _STR_KEYS:
                kwargs[key] = str(value)
            else:
                kwargs[key] = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for '{key}': {value!r}") from e
    return LabelerConfig(**kwargs).validate()


def load_config(path: Optional[str]) -> LabelerConfig:
    """Load a YAML configuration file. `None` or '' yields the defaults."""
    if not path:
        return LabelerConfig().validate()
    if not os.path.isfile(path):
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with open(path, "r") as f:
            values = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    if values is not None and not isinstance(values, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return config_from_dict(values)
