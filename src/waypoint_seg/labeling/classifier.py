#!/usr/bin/env python3
"""
Supervoxel Classifier

A small multi-layer perceptron mapping a supervoxel feature vector to class
log-posteriors. The network is trained offline; this module only builds the
architecture, loads checkpoints and runs inference.

Checkpoint format (torch.save):
    {
        'model_state': state_dict,
        'class_names': ['floor', 'wall', ...],
        'feature_dim': 13,
    }
A bare state_dict is accepted as well.
"""

# ─── Standard Library ────────────────────────────────────────────────────────────
import os
from typing import Optional, Sequence

# ─── Third-Party Libraries ───────────────────────────────────────────────────────
import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F

# ─── Local Imports ───────────────────────────────────────────────────────────────
from waypoint_seg.labeling import hyperparameters as H
from waypoint_seg.labeling.class_set import ClassSet
from waypoint_seg.labeling.errors import ModelLoadError
from waypoint_seg.labeling.features import FEATURE_DIM


class VoxelClassifier(nn.Module):
    """
    Feature vector (D) → hidden layers → class logits (C).

    Mirrors a classification head: Linear + LeakyReLU + Dropout blocks
    followed by a linear output layer.
    """

    def __init__(self,
                 num_classes: int,
                 feature_dim: int = FEATURE_DIM,
                 hidden: Sequence[int] = H.CLASSIFIER_HIDDEN,
                 dropout: float = H.CLASSIFIER_DROPOUT):
        super().__init__()
        self.num_classes = int(num_classes)
        self.feature_dim = int(feature_dim)

        layers = []
        in_dim = self.feature_dim
        for width in hidden:
            layers += [nn.Linear(in_dim, width), nn.LeakyReLU(0.2), nn.Dropout(dropout)]
            in_dim = width
        layers.append(nn.Linear(in_dim, self.num_classes))
        self.classification_head = nn.Sequential(*layers)

    def forward(self, features: torch.Tensor) -> torch.Tensor:
        return self.classification_head(features)

    def log_posterior(self, features: np.ndarray) -> np.ndarray:
        """(V, D) features → (V, C) log-posteriors, in the row order given."""
        features = np.asarray(features, dtype=np.float32).reshape(-1, self.feature_dim)
        if features.shape[0] == 0:
            return np.empty((0, self.num_classes), dtype=np.float32)
        device = next(self.parameters()).device
        self.eval()
        with torch.no_grad():
            logits = self(torch.from_numpy(features).to(device))
            return F.log_softmax(logits, dim=-1).cpu().numpy()

    def class_log_posterior(self, feature: np.ndarray) -> np.ndarray:
        """Single voxel: (D,) → (C,)."""
        return self.log_posterior(np.asarray(feature).reshape(1, -1))[0]


def save_classifier(model: VoxelClassifier, path: str, class_set: ClassSet):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    torch.save({
        'model_state': model.state_dict(),
        'class_names': class_set.names,
        'feature_dim': model.feature_dim,
    }, path)


def load_classifier(path: str, class_set: ClassSet, device: Optional[str] = None) -> VoxelClassifier:
    """
    Build the classifier and load trained weights.

    Raises:
        ModelLoadError: missing file, unreadable checkpoint, or a checkpoint
            trained for a different class set / feature layout
    """
    if not path or not os.path.isfile(path):
        raise ModelLoadError(
            f"Classifier checkpoint not found: {path!r}. "
            "Train a model or point 'model_path' at an existing checkpoint."
        )

    device = torch.device(device or ('cuda' if torch.cuda.is_available() else 'cpu'))
    try:
        checkpoint = torch.load(path, map_location=device)
    except Exception as e:
        raise ModelLoadError(f"Could not read classifier checkpoint {path}: {e}") from e

    if not isinstance(checkpoint, dict):
        raise ModelLoadError(f"Unexpected checkpoint contents in {path}: {type(checkpoint).__name__}")

    class_names = checkpoint.get('class_names')
    if class_names is not None and list(class_names) != class_set.names:
        raise ModelLoadError(
            f"Checkpoint classes {list(class_names)} do not match configured classes {class_set.names}"
        )
    feature_dim = int(checkpoint.get('feature_dim', FEATURE_DIM))
    if feature_dim != FEATURE_DIM:
        raise ModelLoadError(f"Checkpoint feature_dim {feature_dim} != {FEATURE_DIM}")

    model = VoxelClassifier(len(class_set), feature_dim).to(device)
    model_state = checkpoint.get('model_state', checkpoint)
    try:
        model.load_state_dict(model_state)
    except (RuntimeError, KeyError, TypeError) as e:
        raise ModelLoadError(f"Checkpoint {path} does not fit the classifier: {e}") from e
    model.eval()
    return model
