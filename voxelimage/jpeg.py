"""Baseline JPEG encoding of 8-bit interleaved pixel data.

The encoder writes a JFIF file with the standard Huffman tables and the
standard quantisation tables scaled by ``quality``. At quality 90 and
below the chroma planes are subsampled 2x2; alpha is ignored.
"""

from __future__ import annotations

import os
from typing import Sequence, Union

import numpy as np

BytesLike = Union[bytes, bytearray, memoryview]

_F32 = np.float32

ZIGZAG = np.array(
    (
        0, 1, 5, 6, 14, 15, 27, 28, 2, 4, 7, 13, 16, 26, 29, 42, 3, 8, 12,
        17, 25, 30, 41, 43, 9, 11, 18, 24, 31, 40, 44, 53, 10, 19, 23, 32,
        39, 45, 52, 54, 20, 22, 33, 38, 46, 51, 55, 60, 21, 34, 37, 47, 50,
        56, 59, 61, 35, 36, 48, 49, 57, 58, 62, 63,
    ),
    dtype=np.intp,
)

_DC_LUM_COUNTS = (0, 1, 5, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0)
_DC_LUM_VALUES = tuple(range(12))
_AC_LUM_COUNTS = (0, 2, 1, 3, 3, 2, 4, 3, 5, 5, 4, 4, 0, 0, 1, 0x7D)
_AC_LUM_VALUES = (
    0x01, 0x02, 0x03, 0x00, 0x04, 0x11, 0x05, 0x12, 0x21, 0x31, 0x41, 0x06,
    0x13, 0x51, 0x61, 0x07, 0x22, 0x71, 0x14, 0x32, 0x81, 0x91, 0xA1, 0x08,
    0x23, 0x42, 0xB1, 0xC1, 0x15, 0x52, 0xD1, 0xF0, 0x24, 0x33, 0x62, 0x72,
    0x82, 0x09, 0x0A, 0x16, 0x17, 0x18, 0x19, 0x1A, 0x25, 0x26, 0x27, 0x28,
    0x29, 0x2A, 0x34, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45,
    0x46, 0x47, 0x48, 0x49, 0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59,
    0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68, 0x69, 0x6A, 0x73, 0x74, 0x75,
    0x76, 0x77, 0x78, 0x79, 0x7A, 0x83, 0x84, 0x85, 0x86, 0x87, 0x88, 0x89,
    0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3,
    0xA4, 0xA5, 0xA6, 0xA7, 0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6,
    0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3, 0xC4, 0xC5, 0xC6, 0xC7, 0xC8, 0xC9,
    0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA, 0xE1, 0xE2,
    0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF1, 0xF2, 0xF3, 0xF4,
    0xF5, 0xF6, 0xF7, 0xF8, 0xF9, 0xFA,
)
_DC_CHROM_COUNTS = (0, 3, 1, 1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0)
_DC_CHROM_VALUES = tuple(range(12))
_AC_CHROM_COUNTS = (0, 2, 1, 2, 4, 4, 3, 4, 7, 5, 4, 4, 0, 1, 2, 0x77)
_AC_CHROM_VALUES = (
    0x00, 0x01, 0x02, 0x03, 0x11, 0x04, 0x05, 0x21, 0x31, 0x06, 0x12, 0x41,
    0x51, 0x07, 0x61, 0x71, 0x13, 0x22, 0x32, 0x81, 0x08, 0x14, 0x42, 0x91,
    0xA1, 0xB1, 0xC1, 0x09, 0x23, 0x33, 0x52, 0xF0, 0x15, 0x62, 0x72, 0xD1,
    0x0A, 0x16, 0x24, 0x34, 0xE1, 0x25, 0xF1, 0x17, 0x18, 0x19, 0x1A, 0x26,
    0x27, 0x28, 0x29, 0x2A, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44,
    0x45, 0x46, 0x47, 0x48, 0x49, 0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58,
    0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68, 0x69, 0x6A, 0x73, 0x74,
    0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x82, 0x83, 0x84, 0x85, 0x86, 0x87,
    0x88, 0x89, 0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A,
    0xA2, 0xA3, 0xA4, 0xA5, 0xA6, 0xA7, 0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4,
    0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3, 0xC4, 0xC5, 0xC6, 0xC7,
    0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA,
    0xE2, 0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF2, 0xF3, 0xF4,
    0xF5, 0xF6, 0xF7, 0xF8, 0xF9, 0xFA,
)

LUMINANCE_QUANT = np.array(
    (
        16, 11, 10, 16, 24, 40, 51, 61, 12, 12, 14, 19, 26, 58, 60, 55, 14,
        13, 16, 24, 40, 57, 69, 56, 14, 17, 22, 29, 51, 87, 80, 62, 18, 22,
        37, 56, 68, 109, 103, 77, 24, 35, 55, 64, 81, 104, 113, 92, 49, 64,
        78, 87, 103, 121, 120, 101, 72, 92, 95, 98, 112, 100, 103, 99,
    ),
    dtype=np.int64,
)
CHROMINANCE_QUANT = np.array(
    (17, 18, 24, 47, 99, 99, 99, 99, 18, 21, 26, 66, 99, 99, 99, 99,
     24, 26, 56, 99, 99, 99, 99, 99, 47, 66, 99, 99, 99, 99, 99, 99)
    + (99,) * 32,
    dtype=np.int64,
)

_SQRT8 = _F32(2.828427125)
_AASF = np.array(
    [
        _F32(v) * _SQRT8
        for v in (
            1.0, 1.387039845, 1.306562965, 1.175875602,
            1.0, 0.785694958, 0.541196100, 0.275899379,
        )
    ],
    dtype=np.float32,
)

_HEAD0 = bytes(
    (0xFF, 0xD8, 0xFF, 0xE0, 0, 0x10, ord("J"), ord("F"), ord("I"), ord("F"),
     0, 1, 1, 0, 0, 1, 0, 1, 0, 0, 0xFF, 0xDB, 0, 0x84, 0)
)
_HEAD2 = bytes((0xFF, 0xDA, 0, 0xC, 3, 1, 0, 2, 0x11, 3, 0x11, 0, 0x3F, 0))

_FILL_BITS = (0x7F, 7)

Code = tuple  # (code, bit length)


def _huffman_codes(counts: Sequence[int], values: Sequence[int]) -> list:
    """Build the canonical code table indexed by symbol."""
    table: list = [(0, 0)] * 256
    code = 0
    symbols = iter(values)
    for length, count in enumerate(counts, start=1):
        for _ in range(count):
            table[next(symbols)] = (code, length)
            code += 1
        code <<= 1
    return table


_YDC = _huffman_codes(_DC_LUM_COUNTS, _DC_LUM_VALUES)
_YAC = _huffman_codes(_AC_LUM_COUNTS, _AC_LUM_VALUES)
_UVDC = _huffman_codes(_DC_CHROM_COUNTS, _DC_CHROM_VALUES)
_UVAC = _huffman_codes(_AC_CHROM_COUNTS, _AC_CHROM_VALUES)


class _BitWriter:
    """MSB-first bit writer with JPEG 0xFF byte stuffing."""

    def __init__(self, out: bytearray) -> None:
        self.out = out
        self.buffer = 0
        self.count = 0

    def write(self, code: int, length: int) -> None:
        self.count += length
        self.buffer |= code << (24 - self.count)
        while self.count >= 8:
            c = (self.buffer >> 16) & 0xFF
            self.out.append(c)
            if c == 0xFF:
                self.out.append(0)
            self.buffer = (self.buffer << 8) & 0xFFFFFF
            self.count -= 8


def _magnitude(value: int) -> tuple:
    """Return the (bits, length) pair that encodes a coefficient."""
    length = max(1, abs(value).bit_length())
    if value < 0:
        value -= 1
    return value & ((1 << length) - 1), length


def _dct(d: list) -> list:
    """Apply the 8-point forward DCT to eight parallel float32 arrays."""
    d0, d1, d2, d3, d4, d5, d6, d7 = d
    tmp0 = d0 + d7
    tmp7 = d0 - d7
    tmp1 = d1 + d6
    tmp6 = d1 - d6
    tmp2 = d2 + d5
    tmp5 = d2 - d5
    tmp3 = d3 + d4
    tmp4 = d3 - d4

    tmp10 = tmp0 + tmp3
    tmp13 = tmp0 - tmp3
    tmp11 = tmp1 + tmp2
    tmp12 = tmp1 - tmp2

    o0 = tmp10 + tmp11
    o4 = tmp10 - tmp11
    z1 = (tmp12 + tmp13) * _F32(0.707106781)
    o2 = tmp13 + z1
    o6 = tmp13 - z1

    tmp10 = tmp4 + tmp5
    tmp11 = tmp5 + tmp6
    tmp12 = tmp6 + tmp7

    z5 = (tmp10 - tmp12) * _F32(0.382683433)
    z2 = tmp10 * _F32(0.541196100) + z5
    z4 = tmp12 * _F32(1.306562965) + z5
    z3 = tmp11 * _F32(0.707106781)

    z11 = tmp7 + z3
    z13 = tmp7 - z3

    return [o0, z11 + z4, o2, z13 - z2, o4, z13 + z2, o6, z11 - z4]


def _quantize(blocks: np.ndarray, fdtbl: np.ndarray) -> list:
    """DCT, quantise and zigzag a stack of 8x8 blocks into int lists."""
    rows = _dct([blocks[:, :, k] for k in range(8)])
    blocks = np.stack(rows, axis=2)
    cols = _dct([blocks[:, k, :] for k in range(8)])
    blocks = np.stack(cols, axis=1)
    v = blocks.reshape(-1, 64) * fdtbl
    rounded = np.where(v < 0, v - _F32(0.5), v + _F32(0.5))
    raster = np.trunc(rounded).astype(np.int64)
    du = np.empty_like(raster)
    du[:, ZIGZAG] = raster
    return du.tolist()


def _encode_block(
    bits: _BitWriter, du: list, dc: int, dc_table: list, ac_table: list
) -> int:
    diff = du[0] - dc
    if diff == 0:
        bits.write(*dc_table[0])
    else:
        value, length = _magnitude(diff)
        bits.write(*dc_table[length])
        bits.write(value, length)

    end = 63
    while end > 0 and du[end] == 0:
        end -= 1
    eob = ac_table[0x00]
    if end == 0:
        bits.write(*eob)
        return du[0]

    zero_run16 = ac_table[0xF0]
    i = 1
    while i <= end:
        start = i
        while du[i] == 0 and i <= end:
            i += 1
        zeros = i - start
        if zeros >= 16:
            for _ in range(zeros >> 4):
                bits.write(*zero_run16)
            zeros &= 15
        value, length = _magnitude(du[i])
        bits.write(*ac_table[(zeros << 4) + length])
        bits.write(value, length)
        i += 1
    if end != 63:
        bits.write(*eob)
    return du[0]


def _scale_table(base: np.ndarray, quality: int) -> np.ndarray:
    return np.clip((base * quality + 50) // 100, 1, 255)


def _divisors(raster_table: np.ndarray) -> np.ndarray:
    tab = raster_table.reshape(8, 8).astype(np.float32)
    scaled = (tab * _AASF[:, None]) * _AASF[None, :]
    return (_F32(1) / scaled).reshape(64).astype(np.float32)


def _to_blocks(plane: np.ndarray) -> np.ndarray:
    h, w = plane.shape
    return plane.reshape(h // 8, 8, w // 8, 8).transpose(0, 2, 1, 3).reshape(
        -1, 8, 8
    )


def encode_jpeg(
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    quality: int = 90,
    flip_vertically: bool = False,
) -> bytes:
    """Encode ``pixels`` as a baseline JPEG file and return its bytes.

    ``quality`` runs from 1 to 100 (0 means 90); values above 90 keep
    full-resolution chroma.
    """
    if width <= 0 or height <= 0:
        raise ValueError("image dimensions must be positive")
    if not 1 <= components <= 4:
        raise ValueError(f"components must be 1..4, got {components}")
    if pixels is None:
        raise ValueError("pixel data is required")
    data = np.frombuffer(bytes(pixels), dtype=np.uint8)
    needed = width * height * components
    if data.size < needed:
        raise ValueError("pixel buffer is too small for the given geometry")

    quality = quality if quality else 90
    subsample = quality <= 90
    quality = min(max(quality, 1), 100)
    quality = 5000 // quality if quality < 50 else 200 - quality * 2

    y_table = _scale_table(LUMINANCE_QUANT, quality)
    uv_table = _scale_table(CHROMINANCE_QUANT, quality)
    y_stored = np.empty(64, dtype=np.uint8)
    y_stored[ZIGZAG] = y_table
    uv_stored = np.empty(64, dtype=np.uint8)
    uv_stored[ZIGZAG] = uv_table
    fdtbl_y = _divisors(y_table)
    fdtbl_uv = _divisors(uv_table)

    out = bytearray(_HEAD0)
    out += y_stored.tobytes()
    out.append(1)
    out += uv_stored.tobytes()
    out += bytes(
        (0xFF, 0xC0, 0, 0x11, 8, (height >> 8) & 0xFF, height & 0xFF,
         (width >> 8) & 0xFF, width & 0xFF, 3, 1,
         0x22 if subsample else 0x11, 0, 2, 0x11, 1, 3, 0x11, 1,
         0xFF, 0xC4, 0x01, 0xA2, 0)
    )
    out += bytes(_DC_LUM_COUNTS) + bytes(_DC_LUM_VALUES)
    out.append(0x10)
    out += bytes(_AC_LUM_COUNTS) + bytes(_AC_LUM_VALUES)
    out.append(1)
    out += bytes(_DC_CHROM_COUNTS) + bytes(_DC_CHROM_VALUES)
    out.append(0x11)
    out += bytes(_AC_CHROM_COUNTS) + bytes(_AC_CHROM_VALUES)
    out += _HEAD2

    image = data[:needed].reshape(height, width, components)
    if flip_vertically:
        image = image[::-1]
    unit = 16 if subsample else 8
    pad_h = -height % unit
    pad_w = -width % unit
    image = np.pad(image, ((0, pad_h), (0, pad_w), (0, 0)), mode="edge")
    green = 1 if components > 2 else 0
    blue = 2 if components > 2 else 0
    r = image[:, :, 0].astype(np.float32)
    g = image[:, :, green].astype(np.float32)
    b = image[:, :, blue].astype(np.float32)
    lum = _F32(0.299) * r + _F32(0.587) * g + _F32(0.114) * b - _F32(128)
    cb = _F32(-0.16874) * r - _F32(0.33126) * g + _F32(0.5) * b
    cr = _F32(0.5) * r - _F32(0.41869) * g - _F32(0.08131) * b

    if subsample:
        hp, wp = lum.shape
        y_blocks = (
            lum.reshape(hp // 16, 2, 8, wp // 16, 2, 8)
            .transpose(0, 3, 1, 4, 2, 5)
            .reshape(-1, 8, 8)
        )

        def _halve(plane: np.ndarray) -> np.ndarray:
            total = (
                (plane[0::2, 0::2] + plane[0::2, 1::2]) + plane[1::2, 0::2]
            ) + plane[1::2, 1::2]
            return total * _F32(0.25)

        u_blocks = _to_blocks(_halve(cb))
        v_blocks = _to_blocks(_halve(cr))
        luma_per_unit = 4
    else:
        y_blocks = _to_blocks(lum)
        u_blocks = _to_blocks(cb)
        v_blocks = _to_blocks(cr)
        luma_per_unit = 1

    y_du = _quantize(y_blocks, fdtbl_y)
    u_du = _quantize(u_blocks, fdtbl_uv)
    v_du = _quantize(v_blocks, fdtbl_uv)

    bits = _BitWriter(out)
    dc_y = dc_u = dc_v = 0
    for unit_index, (u, v) in enumerate(zip(u_du, v_du)):
        first = unit_index * luma_per_unit
        for du in y_du[first:first + luma_per_unit]:
            dc_y = _encode_block(bits, du, dc_y, _YDC, _YAC)
        dc_u = _encode_block(bits, u, dc_u, _UVDC, _UVAC)
        dc_v = _encode_block(bits, v, dc_v, _UVDC, _UVAC)

    bits.write(*_FILL_BITS)
    out += b"\xff\xd9"
    return bytes(out)


def write_jpeg(
    path: Union[str, os.PathLike],
    pixels: BytesLike,
    width: int,
    height: int,
    components: int,
    *,
    quality: int = 90,
    flip_vertically: bool = False,
) -> None:
    """Encode ``pixels`` as JPEG and write the result to ``path``."""
    encoded = encode_jpeg(
        pixels,
        width,
        height,
        components,
        quality=quality,
        flip_vertically=flip_vertically,
    )
    with open(path, "wb") as handle:
        handle.write(encoded)