"""Exceptions raised by the labeling pipeline and its collaborators."""


class LabelingError(Exception):
    """Base class for all waypoint labeling errors."""


class FetchError(LabelingError):
    """The observation source or the sensor origin could not be retrieved.

    Recoverable: the request fails once, nothing is stored or published.
    """


class ModelLoadError(LabelingError):
    """The classifier checkpoint is missing, unreadable or incompatible."""


class ConfigError(LabelingError):
    """The labeler configuration is missing or holds invalid values."""
