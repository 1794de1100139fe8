"""PNG encoding of 8-bit interleaved pixel data."""

from __future__ import annotations

import os
from typing import Union

from voxelimage.deflate import crc32, zlib_compress

PNG_SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))

# PNG colour type for 1 (grey), 2 (grey+alpha), 3 (RGB) and 4 (RGBA) channels.
_COLOR_TYPES = {1: 0, 2: 4, 3: 2, 4: 6}

_FILTER_COUNT = 5

BytesLike = Union[bytes, bytearray, memoryview]


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _filter_row(cur: bytes, prior: bytes, n: int, filter_type: int) -> bytes:
    """Apply one PNG filter to a scanline; ``prior`` is the row above."""
    if filter_type == 0:
        return bytes(cur)
    left = bytes(n) + cur[:-n] if n else b""
    upleft = bytes(n) + prior[:-n] if n else b""
    if filter_type == 1:
        values = (z - a for z, a in zip(cur, left))
    elif filter_type == 2:
        values = (z - b for z, b in zip(cur, prior))
    elif filter_type == 3:
        values = (z - ((a + b) >> 1) for z, a, b in zip(cur, left, prior))
    else:
        values = (
            z - _paeth(a, b, c) for z, a, b, c in zip(cur, left, prior, upleft)
        )
    return bytes(v & 0xFF for v in values)


def _estimate(line: bytes) -> int:
    """Sum of absolute values of the bytes read as signed."""
    return sum(b if b < 128 else 256 - b for b in line)


def _chunk(tag: bytes, payload: bytes) -> bytes:
    body = tag + payload
    return (
        len(payload).to_bytes(4, "big")
        + body
        + crc32(body).to_bytes(4, "big")
    )


def encode_png(
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    stride: int = 0,
    compression_level: int = 8,
    force_filter: int = -1,
    flip_vertically: bool = False,
) -> bytes:
    """Encode ``pixels`` as a PNG file and return its bytes.

    ``stride`` is the distance in bytes between the starts of adjacent
    rows (0 means tightly packed). ``force_filter`` in 0..4 forces that
    scanline filter; any other value picks the best filter per row.
    """
    if components not in _COLOR_TYPES:
        raise ValueError(f"components must be 1..4, got {components}")
    if width < 0 or height < 0:
        raise ValueError("image dimensions must be non-negative")
    data = bytes(pixels)
    row_len = width * components
    if stride == 0:
        stride = row_len
    if stride < 0:
        raise ValueError("stride must be non-negative")
    if height > 0 and len(data) < (height - 1) * stride + row_len:
        raise ValueError("pixel buffer is too small for the given geometry")
    if not 0 <= force_filter < _FILTER_COUNT:
        force_filter = -1

    offsets = [stride * j for j in range(height)]
    if flip_vertically:
        offsets.reverse()
    rows = [data[off:off + row_len] for off in offsets]

    filtered = bytearray()
    prior = bytes(row_len)
    for row in rows:
        if force_filter >= 0:
            best_type = force_filter
            best_line = _filter_row(row, prior, components, force_filter)
        else:
            candidates = (
                (t, _filter_row(row, prior, components, t))
                for t in range(_FILTER_COUNT)
            )
            best_type, best_line = min(
                candidates, key=lambda item: _estimate(item[1])
            )
        filtered.append(best_type)
        filtered += best_line
        prior = row

    compressed = zlib_compress(bytes(filtered), compression_level)

    header = (
        width.to_bytes(4, "big")
        + height.to_bytes(4, "big")
        + bytes((8, _COLOR_TYPES[components], 0, 0, 0))
    )
    return (
        PNG_SIGNATURE
        + _chunk(b"IHDR", header)
        + _chunk(b"IDAT", compressed)
        + _chunk(b"IEND", b"")
    )


def write_png(
    path: Union[str, os.PathLike],
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    stride: int = 0,
    compression_level: int = 8,
    force_filter: int = -1,
    flip_vertically: bool = False,
) -> None:
    """Encode ``pixels`` as PNG and write the result to ``path``."""
    encoded = encode_png(
        pixels,
        width,
        height,
        components,
        stride=stride,
        compression_level=compression_level,
        force_filter=force_filter,
        flip_vertically=flip_vertically,
    )
    with open(path, "wb") as handle:
        handle.write(encoded)