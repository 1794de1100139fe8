"""Radiance RGBE (.hdr) encoding of linear floating-point pixel data."""

from __future__ import annotations

import os
from typing import Iterable, Union

import numpy as np

_HEADER = b"#?RADIANCE\n# Written by voxelimage\nFORMAT=32-bit_rle_rgbe\n"
_RLE_MIN_WIDTH = 8
_RLE_MAX_WIDTH = 32768
_MAX_DUMP = 128
_MAX_RUN = 127
_TINY = np.float32(1e-32)

FloatData = Union[np.ndarray, Iterable[float]]


def _to_rgbe(row: np.ndarray) -> np.ndarray:
    """Convert a ``(width, components)`` float32 row to ``(width, 4)`` RGBE."""
    if row.shape[1] >= 3:
        linear = row[:, :3]
    else:
        linear = np.repeat(row[:, :1], 3, axis=1)
    maxcomp = linear.max(axis=1)
    keep = ~(maxcomp < _TINY)
    safe_max = np.where(keep, maxcomp, np.float32(1)).astype(np.float32)
    mantissa, exponent = np.frexp(safe_max)
    with np.errstate(all="ignore"):
        normalize = (mantissa.astype(np.float32) * np.float32(256.0)) / safe_max
        scaled = linear * normalize[:, None].astype(np.float32)
        channels = np.trunc(scaled).astype(np.int64) & 0xFF
    rgbe = np.zeros((row.shape[0], 4), dtype=np.uint8)
    rgbe[:, :3] = np.where(keep[:, None], channels, 0)
    rgbe[:, 3] = np.where(keep, (exponent.astype(np.int64) + 128) & 0xFF, 0)
    return rgbe


def _rle_channel(values: bytes) -> bytes:
    """Run-length encode one component plane of a scanline."""
    width = len(values)
    out = bytearray()
    x = 0
    while x < width:
        r = x
        while r + 2 < width:
            if values[r] == values[r + 1] == values[r + 2]:
                break
            r += 1
        if r + 2 >= width:
            r = width
        while x < r:
            length = min(r - x, _MAX_DUMP)
            out.append(length)
            out += values[x:x + length]
            x += length
        if r + 2 < width:
            while r < width and values[r] == values[x]:
                r += 1
            while x < r:
                length = min(r - x, _MAX_RUN)
                out.append(length + 128)
                out.append(values[x])
                x += length
    return bytes(out)


def _encode_scanline(row: np.ndarray) -> bytes:
    width = row.shape[0]
    rgbe = _to_rgbe(row)
    if width < _RLE_MIN_WIDTH or width >= _RLE_MAX_WIDTH:
        return rgbe.tobytes()
    out = bytearray((2, 2, (width >> 8) & 0xFF, width & 0xFF))
    for c in range(4):
        out += _rle_channel(rgbe[:, c].tobytes())
    return bytes(out)


def encode_hdr(
    pixels: FloatData,
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> bytes:
    """Encode linear float ``pixels`` as a Radiance HDR file.

    Alpha, if present, is discarded; grey values are replicated across
    the three colour channels.
    """
    if width <= 0 or height <= 0:
        raise ValueError("image dimensions must be positive")
    if components not in (1, 2, 3, 4):
        raise ValueError(f"components must be 1..4, got {components}")
    if pixels is None:
        raise ValueError("pixel data is required")
    data = np.asarray(pixels, dtype=np.float32).reshape(-1)
    needed = width * height * components
    if data.size < needed:
        raise ValueError("pixel buffer is too small for the given geometry")
    image = data[:needed].reshape(height, width, components)

    out = bytearray(_HEADER)
    out += (
        f"EXPOSURE=          1.0000000000000\n\n-Y {height} +X {width}\n"
    ).encode("ascii")
    rows = image[::-1] if flip_vertically else image
    for row in rows:
        out += _encode_scanline(row)
    return bytes(out)


def write_hdr(
    path: Union[str, os.PathLike],
    pixels: FloatData,
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> None:
    """Encode ``pixels`` as HDR and write the result to ``path``."""
    encoded = encode_hdr(
        pixels, width, height, components, flip_vertically=flip_vertically
    )
    with open(path, "wb") as handle:
        handle.write(encoded)