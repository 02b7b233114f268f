"""
Supervoxel Classifier Tests

Tests for:
- Log-posterior shapes and normalization
- Checkpoint save/load
- ModelLoadError on unusable checkpoints
"""

import numpy as np
import pytest
import torch

from waypoint_seg.labeling.class_set import ClassSet
from waypoint_seg.labeling.classifier import VoxelClassifier, load_classifier, save_classifier
from waypoint_seg.labeling.errors import ModelLoadError
from waypoint_seg.labeling.features import FEATURE_DIM


@pytest.fixture
def classes():
    return ClassSet([("floor", (1, 1, 1)), ("wall", (2, 2, 2)), ("object", (3, 3, 3))])


@pytest.fixture
def model(classes):
    torch.manual_seed(0)
    return VoxelClassifier(len(classes))


@pytest.fixture
def features():
    rng = np.random.default_rng(0)
    return rng.normal(size=(6, FEATURE_DIM)).astype(np.float32)


class TestInference:

    def test_log_posterior_rows_normalized(self, model, features):
        log_post = model.log_posterior(features)
        assert log_post.shape == (6, 3)
        assert np.all(log_post <= 0.0)
        np.testing.assert_allclose(np.exp(log_post).sum(axis=1), 1.0, atol=1e-5)

    def test_eval_mode_is_deterministic(self, model, features):
        model.train()
        np.testing.assert_array_equal(model.log_posterior(features), model.log_posterior(features))

    def test_single_voxel_matches_batch(self, model, features):
        np.testing.assert_allclose(model.class_log_posterior(features[2]),
                                   model.log_posterior(features)[2], atol=1e-6)

    def test_no_voxels(self, model):
        assert model.log_posterior(np.zeros((0, FEATURE_DIM))).shape == (0, 3)


class TestCheckpoints:

    def test_round_trip(self, tmp_path, model, classes, features):
        path = str(tmp_path / "ckpt" / "classifier.pth")
        save_classifier(model, path, classes)
        loaded = load_classifier(path, classes, device="cpu")
        np.testing.assert_allclose(loaded.log_posterior(features), model.log_posterior(features), atol=1e-6)
        assert not loaded.training

    def test_bare_state_dict(self, tmp_path, model, classes, features):
        path = str(tmp_path / "bare.pth")
        torch.save(model.state_dict(), path)
        loaded = load_classifier(path, classes, device="cpu")
        np.testing.assert_allclose(loaded.log_posterior(features), model.log_posterior(features), atol=1e-6)

    def test_missing_file(self, tmp_path, classes):
        with pytest.raises(ModelLoadError):
            load_classifier(str(tmp_path / "nope.pth"), classes)

    def test_empty_path(self, classes):
        with pytest.raises(ModelLoadError):
            load_classifier("", classes)

    def test_unreadable_file(self, tmp_path, classes):
        path = tmp_path / "garbage.pth"
        path.write_bytes(b"not a checkpoint")
        with pytest.raises(ModelLoadError):
            load_classifier(str(path), classes, device="cpu")

    def test_class_names_mismatch(self, tmp_path, model, classes):
        path = str(tmp_path / "classifier.pth")
        save_classifier(model, path, classes)
        other = ClassSet([("floor", (1, 1, 1)), ("ceiling", (2, 2, 2)), ("object", (3, 3, 3))])
        with pytest.raises(ModelLoadError, match="do not match"):
            load_classifier(path, other, device="cpu")

    def test_class_count_mismatch_in_bare_state(self, tmp_path, model):
        path = str(tmp_path / "bare.pth")
        torch.save(model.state_dict(), path)
        two = ClassSet([("floor", (1, 1, 1)), ("wall", (2, 2, 2))])
        with pytest.raises(ModelLoadError):
            load_classifier(path, two, device="cpu")
