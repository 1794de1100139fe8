"""BMP and TGA encoding of 8-bit interleaved pixel data."""

from __future__ import annotations

import os
import struct
from typing import Iterator, Union

BytesLike = Union[bytes, bytearray, memoryview]

_BMP_FILE_HEADER = 14
_BMP_INFO_HEADER = 40
_BMP_V4_HEADER = 108
_TGA_MAX_PACKET = 128

# Background used when an RGBA pixel is flattened without its alpha channel.
_BACKGROUND = (255, 0, 255)


def _validate(
    data: bytes, width: int, height: int, components: int
) -> None:
    if components not in (1, 2, 3, 4):
        raise ValueError(f"components must be 1..4, got {components}")
    if width < 0 or height < 0:
        raise ValueError("image dimensions must be non-negative")
    if len(data) < width * height * components:
        raise ValueError("pixel buffer is too small for the given geometry")


def _rows(
    data: bytes, width: int, height: int, components: int, flip: bool
) -> Iterator[bytes]:
    """Yield rows bottom-up, or top-down when ``flip`` is set."""
    row_len = width * components
    order = range(height) if flip else range(height - 1, -1, -1)
    for j in order:
        yield data[j * row_len:(j + 1) * row_len]


def _truncating_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // denominator
    return -quotient if numerator < 0 else quotient


def _pixel_bytes(
    px: bytes, components: int, write_alpha: bool, expand_mono: bool
) -> bytes:
    """Encode one pixel in BGR(A) order, as both formats store it."""
    if components in (1, 2):
        out = px[0:1] * 3 if expand_mono else px[0:1]
    elif components == 4 and not write_alpha:
        alpha = px[3]
        blended = [
            bg + _truncating_div((px[k] - bg) * alpha, 255)
            for k, bg in enumerate(_BACKGROUND)
        ]
        out = bytes((blended[2] & 0xFF, blended[1] & 0xFF, blended[0] & 0xFF))
    else:
        out = bytes((px[2], px[1], px[0]))
    if write_alpha:
        out += px[components - 1:components]
    return out


def _pixels(row: bytes, components: int) -> Iterator[bytes]:
    for start in range(0, len(row), components):
        yield row[start:start + components]


def encode_bmp(
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> bytes:
    """Encode ``pixels`` as a BMP file and return its bytes.

    Grey input is expanded to RGB; four-channel input is written as a
    32-bit BGRA bitmap with a V4 header, anything else as 24-bit BGR.
    """
    data = bytes(pixels)
    _validate(data, width, height, components)

    out = bytearray()
    if components != 4:
        pad = (-width * 3) & 3
        offset = _BMP_FILE_HEADER + _BMP_INFO_HEADER
        size = offset + (width * 3 + pad) * height
        out += struct.pack("<2sIHHI", b"BM", size & 0xFFFFFFFF, 0, 0, offset)
        out += struct.pack(
            "<IIIHHIIIIII",
            _BMP_INFO_HEADER, width & 0xFFFFFFFF, height & 0xFFFFFFFF,
            1, 24, 0, 0, 0, 0, 0, 0,
        )
        write_alpha = False
    else:
        pad = 0
        offset = _BMP_FILE_HEADER + _BMP_V4_HEADER
        size = offset + width * height * 4
        out += struct.pack("<2sIHHI", b"BM", size & 0xFFFFFFFF, 0, 0, offset)
        out += struct.pack(
            "<IIIHHIIIIII",
            _BMP_V4_HEADER, width & 0xFFFFFFFF, height & 0xFFFFFFFF,
            1, 32, 3, 0, 0, 0, 0, 0,
        )
        out += struct.pack("<IIII", 0xFF0000, 0xFF00, 0xFF, 0xFF000000)
        out += bytes(4 + 12 * 3 + 12)

    if height > 0:
        for row in _rows(data, width, height, components, flip_vertically):
            for px in _pixels(row, components):
                out += _pixel_bytes(px, components, write_alpha, True)
            out += bytes(pad)
    return bytes(out)


def write_bmp(
    path: Union[str, os.PathLike],
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    flip_vertically: bool = False,
) -> None:
    """Encode ``pixels`` as BMP and write the result to ``path``."""
    encoded = encode_bmp(
        pixels, width, height, components, flip_vertically=flip_vertically
    )
    with open(path, "wb") as handle:
        handle.write(encoded)


def _tga_rle_row(
    row: bytes, width: int, components: int, has_alpha: bool
) -> bytes:
    px = list(_pixels(row, components))
    out = bytearray()
    i = 0
    while i < width:
        diff = True
        length = 1
        if i < width - 1:
            length += 1
            diff = px[i] != px[i + 1]
            if diff:
                prev = i
                for k in range(i + 2, width):
                    if length >= _TGA_MAX_PACKET:
                        break
                    if px[prev] != px[k]:
                        prev += 1
                        length += 1
                    else:
                        length -= 1
                        break
            else:
                for k in range(i + 2, width):
                    if length >= _TGA_MAX_PACKET:
                        break
                    if px[i] == px[k]:
                        length += 1
                    else:
                        break

        if diff:
            out.append((length - 1) & 0xFF)
            for p in px[i:i + length]:
                out += _pixel_bytes(p, components, has_alpha, False)
        else:
            out.append((length - 129) & 0xFF)
            out += _pixel_bytes(px[i], components, has_alpha, False)
        i += length
    return bytes(out)


def encode_tga(
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    rle: bool = True,
    flip_vertically: bool = False,
) -> bytes:
    """Encode ``pixels`` as a TGA file and return its bytes.

    With ``rle`` set the pixel data is run-length encoded.
    """
    data = bytes(pixels)
    _validate(data, width, height, components)

    has_alpha = components in (2, 4)
    color_bytes = components - 1 if has_alpha else components
    image_type = 3 if color_bytes < 2 else 2
    if rle:
        image_type += 8
    bits_per_pixel = (color_bytes + int(has_alpha)) * 8

    out = bytearray(
        struct.pack(
            "<BBBHHBHHHHBB",
            0, 0, image_type, 0, 0, 0, 0, 0,
            width & 0xFFFF, height & 0xFFFF,
            bits_per_pixel & 0xFF, 8 if has_alpha else 0,
        )
    )

    rows = _rows(data, width, height, components, flip_vertically)
    for row in rows:
        if rle:
            out += _tga_rle_row(row, width, components, has_alpha)
        else:
            for px in _pixels(row, components):
                out += _pixel_bytes(px, components, has_alpha, False)
    return bytes(out)


def write_tga(
    path: Union[str, os.PathLike],
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    rle: bool = True,
    flip_vertically: bool = False,
) -> None:
    """Encode ``pixels`` as TGA and write the result to ``path``."""
    encoded = encode_tga(
        pixels,
        width,
        height,
        components,
        rle=rle,
        flip_vertically=flip_vertically,
    )
    with open(path, "wb") as handle:
        handle.write(encoded)