# ROS-independent labeling core: partitioning, admission, energy, CRF, decoding

from .class_set import ClassSet
from .cloud import ColoredCloud, concatenate_clouds
from .config import LabelerConfig, load_config
from .errors import ConfigError, FetchError, LabelingError, ModelLoadError
from .voxel import Voxel

__all__ = [
    'ClassSet',
    'ColoredCloud',
    'concatenate_clouds',
    'LabelerConfig',
    'load_config',
    'ConfigError',
    'FetchError',
    'LabelingError',
    'ModelLoadError',
    'Voxel',
]
