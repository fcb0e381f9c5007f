"""
Pixel Buffer
============

Owned raw snapshot of one camera frame.

Pixels are stored as a flat, row-major numpy array of packed 32-bit ARGB
values:

    bits 24-31  alpha
    bits 16-23  red
    bits  8-15  green
    bits  0-7   blue

Design Rules:
    - pixels.size == width * height, checked at construction
    - The array is copied on construction and marked read-only
    - A buffer is owned by exactly one stage at a time
"""

import operator
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np


ALPHA_SHIFT = 24
RED_SHIFT = 16
GREEN_SHIFT = 8

OPAQUE = np.uint32(0xFF000000)


class MalformedBufferError(ValueError):
    """Raised when a buffer's dimensions disagree with its pixel data."""
    pass


@dataclass(frozen=True, slots=True, eq=False)
class PixelBuffer:
    """
    Immutable packed-ARGB frame.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        pixels: Flat uint32 array of length width * height

    Raises:
        MalformedBufferError: If the pixel count does not match the
            declared dimensions, or the dimensions are negative.
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        for field_name in ("width", "height"):
            value = getattr(self, field_name)
            if isinstance(value, bool):
                raise MalformedBufferError(f"{field_name} must be an integer, got bool")
            try:
                object.__setattr__(self, field_name, operator.index(value))
            except TypeError:
                raise MalformedBufferError(
                    f"{field_name} must be an integer, got {type(value).__name__}"
                ) from None

        if self.width < 0 or self.height < 0:
            raise MalformedBufferError(
                f"Negative dimensions: {self.width}x{self.height}"
            )

        raw = np.asarray(self.pixels)
        if raw.size:
            if raw.dtype.kind not in "iu":
                raise MalformedBufferError(f"Pixels must be integers, got {raw.dtype}")
            if raw.min() < 0 or raw.max() > 0xFFFFFFFF:
                raise MalformedBufferError("Pixel values must fit in 32 bits")
        data = raw.astype(np.uint32).reshape(-1)

        expected = self.width * self.height
        if data.size != expected:
            raise MalformedBufferError(
                f"Pixel count {data.size} does not match "
                f"{self.width}x{self.height} (expected {expected})"
            )

        data.setflags(write=False)
        object.__setattr__(self, "pixels", data)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel data."""
        return f"PixelBuffer(width={self.width}, height={self.height})"

    @property
    def shape(self) -> tuple:
        """(height, width), numpy order."""
        return (self.height, self.width)

    def pixel(self, x: int, y: int) -> int:
        """Packed ARGB value at column x, row y."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height}")
        return int(self.pixels[y * self.width + x])

    def as_grid(self) -> np.ndarray:
        """Read-only (height, width) view of the packed pixels."""
        return self.pixels.reshape(self.height, self.width)

    def to_rgba(self) -> np.ndarray:
        """Unpack into a new (height, width, 4) uint8 RGBA array."""
        grid = self.as_grid()
        rgba = np.empty((self.height, self.width, 4), dtype=np.uint8)
        rgba[..., 0] = (grid >> RED_SHIFT) & 0xFF
        rgba[..., 1] = (grid >> GREEN_SHIFT) & 0xFF
        rgba[..., 2] = grid & 0xFF
        rgba[..., 3] = (grid >> ALPHA_SHIFT) & 0xFF
        return rgba

    @classmethod
    def from_rgba(cls, rgba: np.ndarray) -> "PixelBuffer":
        """
        Pack a (height, width, 4) uint8 RGBA array.

        Raises:
            MalformedBufferError: If the array is not HxWx4
        """
        if rgba.ndim != 3 or rgba.shape[2] != 4:
            raise MalformedBufferError(
                f"Expected (H, W, 4) RGBA array, got shape {rgba.shape}"
            )

        channels = rgba.astype(np.uint32)
        packed = (
            (channels[..., 3] << ALPHA_SHIFT)
            | (channels[..., 0] << RED_SHIFT)
            | (channels[..., 1] << GREEN_SHIFT)
            | channels[..., 2]
        )
        height, width = rgba.shape[:2]
        return cls(width=width, height=height, pixels=packed)

    @classmethod
    def blank(cls, width: int, height: int) -> "PixelBuffer":
        """Transparent black buffer of the given size."""
        return cls(
            width=width,
            height=height,
            pixels=np.zeros(max(width, 0) * max(height, 0), dtype=np.uint32),
        )

    @classmethod
    def filled(cls, width: int, height: int, argb: int) -> "PixelBuffer":
        """Buffer with every pixel set to one packed ARGB value."""
        return cls(
            width=width,
            height=height,
            pixels=np.full(width * height, argb, dtype=np.uint32),
        )


def pack_argb(a: int, r: int, g: int, b: int) -> int:
    """Pack four 8-bit channels into one ARGB integer."""
    return (a << ALPHA_SHIFT) | (r << RED_SHIFT) | (g << GREEN_SHIFT) | b


def unpack_argb(value: Union[int, np.integer]) -> Sequence[int]:
    """Split a packed ARGB integer into (a, r, g, b)."""
    value = int(value)
    return (
        (value >> ALPHA_SHIFT) & 0xFF,
        (value >> RED_SHIFT) & 0xFF,
        (value >> GREEN_SHIFT) & 0xFF,
        value & 0xFF,
    )
