"""
Class Set

The fixed enumeration of semantic classes the labeler predicts. Built once at
startup from configuration and never modified afterwards, so it can be read
from concurrent requests without locking.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from waypoint_seg.labeling.errors import ConfigError


class ClassSet:
    """Bidirectional id <-> name and id <-> display color mapping."""

    def __init__(self, classes: Iterable[Tuple[str, Sequence[int]]]):
        names = []
        colors = []
        for name, color in classes:
            color = tuple(int(c) for c in color)
            if len(color) != 3 or not all(0 <= c <= 255 for c in color):
                raise ConfigError(f"Class '{name}' has an invalid RGB color: {color}")
            names.append(str(name))
            colors.append(color)

        if not names:
            raise ConfigError("At least one class is required")
        if len(set(names)) != len(names):
            raise ConfigError(f"Duplicate class names: {names}")

        self._names = tuple(names)
        self._colors = tuple(colors)
        self._ids: Dict[str, int] = {n: i for i, n in enumerate(self._names)}
        self._color_table = np.array(self._colors, dtype=np.uint8)
        self._color_table.setflags(write=False)

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self):
        return iter(self._names)

    def __repr__(self):
        return f"ClassSet({list(self._names)})"

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def name(self, class_id: int) -> str:
        return self._names[class_id]

    def id(self, name: str) -> int:
        try:
            return self._ids[name]
        except KeyError:
            raise KeyError(f"Unknown class name: {name}") from None

    def color(self, class_id: int) -> Tuple[int, int, int]:
        return self._colors[class_id]

    def id_for_color(self, color: Sequence[int]) -> int:
        color = tuple(int(c) for c in color)
        for i, c in enumerate(self._colors):
            if c == color:
                return i
        raise KeyError(f"No class has color {color}")

    def colors_for(self, labels: np.ndarray) -> np.ndarray:
        """Vectorized label -> RGB lookup, (N,) -> (N, 3) uint8."""
        return self._color_table[np.asarray(labels, dtype=np.int64)]
