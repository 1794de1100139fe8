"""Intensity projections that flatten a voxel volume into a 2D image.

A volume is an array of shape ``(depth, height, width, channels)`` (or
``(depth, height, width)`` for a single channel) holding 8-bit values.
Projections return an image array of shape ``(height, width, channels)``.
"""

from __future__ import annotations

import abc
import enum
from typing import Sequence

import numpy as np

_F32 = np.float32
_LUMA_R = _F32(0.21)
_LUMA_G = _F32(0.72)
_LUMA_B = _F32(0.07)


class ProjectionType(enum.Enum):
    """The kind of intensity projection."""

    MAXIMUM_INTENSITY = "maximum"
    MINIMUM_INTENSITY = "minimum"
    AVERAGE_INTENSITY = "average"


def _luminance_array(values: np.ndarray) -> np.ndarray:
    """Luminance over the last axis of an array of pixels, as float32."""
    channels = values.shape[-1]
    if channels < 3:
        return values[..., 0].astype(np.float32)
    r = values[..., 0].astype(np.float32)
    g = values[..., 1].astype(np.float32)
    b = values[..., 2].astype(np.float32)
    return (_LUMA_R * r + _LUMA_G * g) + _LUMA_B * b


def luminance(pixel: Sequence[int]) -> float:
    """Return the perceived luminance of a pixel given as channel values.

    Grey pixels (one or two channels) have their grey value as luminance.
    """
    values = np.asarray(pixel, dtype=np.uint8).reshape(1, -1)
    if values.shape[1] == 0:
        raise ValueError("a pixel needs at least one channel")
    return float(_luminance_array(values)[0])


def _as_volume(volume) -> np.ndarray:
    data = np.asarray(volume)
    if data.ndim == 3:
        data = data[..., np.newaxis]
    if data.ndim != 4:
        raise ValueError(
            "volume must have shape (depth, height, width[, channels])"
        )
    if not 1 <= data.shape[3] <= 4:
        raise ValueError(f"volume must have 1..4 channels, got {data.shape[3]}")
    if data.shape[0] == 0:
        raise ValueError("volume must have at least one slice")
    return data.astype(np.uint8, copy=False)


def _black(height: int, width: int, channels: int) -> np.ndarray:
    image = np.zeros((height, width, channels), dtype=np.uint8)
    if channels in (2, 4):
        image[..., -1] = 255
    return image


class Projection(abc.ABC):
    """Base class for projections over an inclusive slab of Z slices.

    A ``slab_end`` of -1 means the last slice of the volume.
    """

    type: ProjectionType

    def __init__(self, slab_start: int = 0, slab_end: int = -1) -> None:
        self.slab_start = slab_start
        self.slab_end = slab_end

    def set_slab_range(self, start: int, end: int) -> None:
        """Set the inclusive slab range, validating it."""
        if end != -1 and start > end:
            raise ValueError(
                "Slab start index must be less than or equal to end index"
            )
        if start < 0:
            raise ValueError("Slab start index must be non-negative")
        self.slab_start = start
        self.slab_end = end

    def _slab(self, data: np.ndarray) -> np.ndarray:
        depth = data.shape[0]
        end = depth - 1 if self.slab_end == -1 else self.slab_end
        start = max(0, min(self.slab_start, depth - 1))
        end = max(start, min(end, depth - 1))
        return data[start:end + 1]

    @abc.abstractmethod
    def apply(self, volume) -> np.ndarray:
        """Project ``volume`` to a ``(height, width, channels)`` image."""


class MaxIntensityProjection(Projection):
    """Keeps, per (x, y), the voxel of greatest luminance in the slab.

    Voxels below ``threshold`` are ignored; where none remain the output
    pixel is black.
    """

    type = ProjectionType.MAXIMUM_INTENSITY

    def __init__(
        self, slab_start: int = 0, slab_end: int = -1, threshold: float = 0.0
    ) -> None:
        super().__init__(slab_start, slab_end)
        self._threshold = _F32(threshold)

    @property
    def threshold(self) -> float:
        """Luminance threshold; setting it clamps the value to 0..255."""
        return float(self._threshold)

    @threshold.setter
    def threshold(self, value: float) -> None:
        self._threshold = _F32(max(0.0, min(255.0, float(value))))

    def apply(self, volume) -> np.ndarray:
        data = _as_volume(volume)
        slab = self._slab(data)
        lum = _luminance_array(slab)
        masked = np.where(lum >= self._threshold, lum, _F32(-1.0))
        index = np.argmax(masked, axis=0)
        best = np.take_along_axis(masked, index[np.newaxis], axis=0)[0]
        chosen = np.take_along_axis(
            slab, index[np.newaxis, :, :, np.newaxis], axis=0
        )[0]
        _, height, width, channels = data.shape
        return np.where(
            (best < 0)[..., np.newaxis], _black(height, width, channels), chosen
        ).astype(np.uint8)


class MinIntensityProjection(Projection):
    """Keeps, per (x, y), the voxel of least luminance in the slab."""

    type = ProjectionType.MINIMUM_INTENSITY

    def __init__(self, slab_start: int = 0, slab_end: int = -1) -> None:
        super().__init__(slab_start, slab_end)

    def apply(self, volume) -> np.ndarray:
        data = _as_volume(volume)
        slab = self._slab(data)
        index = np.argmin(_luminance_array(slab), axis=0)
        return np.take_along_axis(
            slab, index[np.newaxis, :, :, np.newaxis], axis=0
        )[0].astype(np.uint8)


class AverageIntensityProjection(Projection):
    """Per-channel mean (truncated) or median of the slab at each (x, y).

    For an even number of slices the median is the rounded-up average of
    the two middle values.
    """

    type = ProjectionType.AVERAGE_INTENSITY

    def __init__(
        self, slab_start: int = 0, slab_end: int = -1, use_median: bool = False
    ) -> None:
        super().__init__(slab_start, slab_end)
        self.use_median = use_median

    def apply(self, volume) -> np.ndarray:
        data = _as_volume(volume)
        slab = self._slab(data).astype(np.int64)
        count = slab.shape[0]
        if self.use_median:
            ordered = np.sort(slab, axis=0)
            if count % 2:
                result = ordered[count // 2]
            else:
                result = (ordered[count // 2 - 1] + ordered[count // 2] + 1) // 2
        else:
            result = slab.sum(axis=0) // count
        return result.astype(np.uint8)