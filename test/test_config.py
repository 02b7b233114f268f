"""
Configuration Tests

Tests for:
- ClassSet id/name/color mappings
- LabelerConfig defaults and validation
- YAML loading
"""

from pathlib import Path

import numpy as np
import pytest

from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.class_set import ClassSet
from waypoint_seg.labeling.config import LabelerConfig, config_from_dict, load_config
from waypoint_seg.labeling.errors import ConfigError, LabelingError

SHIPPED_CONFIG = Path(__file__).resolve().parents[1] / "config" / "labeler.yaml"


# =============================================================================
# ClassSet
# =============================================================================


class TestClassSet:
    """Id <-> name <-> color mappings."""

    def test_ids_follow_declaration_order(self):
        classes = ClassSet([("floor", (1, 2, 3)), ("wall", (4, 5, 6))])
        assert len(classes) == 2
        assert classes.names == ["floor", "wall"]
        assert classes.id("wall") == 1
        assert classes.name(0) == "floor"
        assert list(classes) == ["floor", "wall"]

    def test_color_lookup_both_ways(self):
        classes = ClassSet([("floor", (1, 2, 3)), ("wall", (4, 5, 6))])
        assert classes.color(1) == (4, 5, 6)
        assert classes.id_for_color([1, 2, 3]) == 0
        with pytest.raises(KeyError):
            classes.id_for_color((9, 9, 9))

    def test_colors_for_labels(self):
        classes = ClassSet([("floor", (1, 2, 3)), ("wall", (4, 5, 6))])
        colors = classes.colors_for(np.array([1, 0, 1]))
        assert colors.dtype == np.uint8
        np.testing.assert_array_equal(colors, [[4, 5, 6], [1, 2, 3], [4, 5, 6]])

    def test_unknown_name(self):
        classes = ClassSet([("floor", (1, 2, 3))])
        with pytest.raises(KeyError):
            classes.id("sky")

    def test_names_is_a_copy(self):
        classes = ClassSet([("floor", (1, 2, 3))])
        classes.names.append("sky")
        assert classes.names == ["floor"]

    @pytest.mark.parametrize("entries", [
        [],
        [("floor", (1, 2, 3)), ("floor", (4, 5, 6))],
        [("floor", (1, 2))],
        [("floor", (1, 2, 256))],
    ])
    def test_invalid_class_lists(self, entries):
        with pytest.raises(ConfigError):
            ClassSet(entries)


# =============================================================================
# LabelerConfig
# =============================================================================


class TestLabelerConfig:
    """Defaults and validation."""

    def test_defaults_match_hyperparameters(self):
        config = LabelerConfig().validate()
        assert config.minimum_points == H.MIN_POINT_COUNT
        assert config.appearance_color_sigma == H.APPEARANCE_COLOR_SIGMA
        assert config.appearance_range_sigma == H.APPEARANCE_RANGE_SIGMA
        assert config.smoothness_range_sigma == H.SMOOTHNESS_RANGE_SIGMA
        assert config.solver_iterations == H.CRF_ITERATIONS
        assert config.class_set().names == [name for name, _ in H.CLASSES]

    @pytest.mark.parametrize("field, value", [
        ("minimum_points", 0),
        ("appearance_color_sigma", 0.0),
        ("smoothness_range_sigma", -1.0),
        ("smoothness_weight", -0.5),
        ("solver_iterations", -1),
        ("crf_neighbors", 0),
    ])
    def test_out_of_range_values_rejected(self, field, value):
        config = LabelerConfig(**{field: value})
        with pytest.raises(ConfigError):
            config.validate()

    def test_zero_iterations_allowed(self):
        assert LabelerConfig(solver_iterations=0).validate().solver_iterations == 0

    def test_config_error_is_labeling_error(self):
        assert issubclass(ConfigError, LabelingError)


# =============================================================================
# YAML Loading
# =============================================================================


class TestLoadConfig:
    """YAML files override defaults key by key."""

    def test_no_path_gives_defaults(self):
        assert load_config(None) == LabelerConfig()
        assert load_config("") == LabelerConfig()

    def test_override_subset(self, tmp_path):
        path = tmp_path / "labeler.yaml"
        path.write_text(
            "minimum_points: 25\n"
            "smoothness_weight: 1.5\n"
            "frame_id: odom\n"
            "classes:\n"
            "  - {name: ground, color: [1, 2, 3]}\n"
            "  - {name: clutter, color: [4, 5, 6]}\n"
        )
        config = load_config(str(path))
        assert config.minimum_points == 25
        assert config.smoothness_weight == 1.5
        assert config.frame_id == "odom"
        assert config.appearance_weight == H.APPEARANCE_WEIGHT
        assert config.class_set().names == ["ground", "clutter"]
        assert config.class_set().color(1) == (4, 5, 6)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == LabelerConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("minimum_points: [10\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigError, match="min_points"):
            config_from_dict({"min_points": 10})

    def test_bad_value_type(self):
        with pytest.raises(ConfigError):
            config_from_dict({"smoothness_weight": "heavy"})

    def test_malformed_class_entry(self):
        with pytest.raises(ConfigError):
            config_from_dict({"classes": [{"name": "floor"}]})

    def test_shipped_config_loads(self):
        config = load_config(str(SHIPPED_CONFIG))
        assert len(config.class_set()) == len(H.CLASSES)
        assert config.minimum_points == H.MIN_POINT_COUNT
