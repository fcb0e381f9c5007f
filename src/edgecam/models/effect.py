"""
Effect Models
=============

Color effects applied by the renderer after edge detection.
"""

import logging
import operator
from enum import IntEnum
from typing import Union


logger = logging.getLogger(__name__)


class Effect(IntEnum):
    """
    Post-processing effect selector.

    Values match the shader's `uEffect` branch ids.
    """

    NORMAL = 0
    INVERT = 1
    GRAYSCALE = 2
    SEPIA = 3

    @property
    def label(self) -> str:
        """Display name, e.g. "Grayscale"."""
        return self.name.capitalize()

    @classmethod
    def labels(cls) -> list:
        """Display names of all effects, in id order."""
        return [effect.label for effect in cls]

    @classmethod
    def coerce(cls, value: Union["Effect", int, str, None]) -> "Effect":
        """
        Map an id, name or Effect to an Effect.

        Unknown values fall back to NORMAL; this never raises.

        Args:
            value: Effect, integer id, or case-insensitive name / numeric string

        Returns:
            The matching Effect, or Effect.NORMAL
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            text = value.strip()
            if text.lstrip("-").isdigit():
                value = int(text)
            else:
                try:
                    return cls[text.upper()]
                except KeyError:
                    logger.debug(f"Unknown effect name {value!r}, using NORMAL")
                    return cls.NORMAL

        if value is not None and not isinstance(value, bool):
            try:
                return cls(operator.index(value))
            except (TypeError, ValueError):
                pass

        logger.debug(f"Unknown effect id {value!r}, using NORMAL")
        return cls.NORMAL
