import random
import struct

import pytest

from voxelimage.bitmap import encode_bmp, encode_tga, write_bmp, write_tga

TGA_HEADER = 18


def _decode_tga_rle(body: bytes, pixel_size: int, count: int) -> bytes:
    out = bytearray()
    pos = 0
    decoded = 0
    while decoded < count:
        header = body[pos]
        pos += 1
        n = (header & 0x7F) + 1
        if header & 0x80:
            out += body[pos:pos + pixel_size] * n
            pos += pixel_size
        else:
            out += body[pos:pos + pixel_size * n]
            pos += pixel_size * n
        decoded += n
    assert pos == len(body)
    return bytes(out)


def _random_image(width, height, comp, seed, palette=3):
    rng = random.Random(seed)
    colours = [bytes(rng.randrange(256) for _ in range(comp)) for _ in range(palette)]
    return b"".join(rng.choice(colours) for _ in range(width * height))


def test_bmp_header_fields():
    out = encode_bmp(bytes(2 * 3 * 3), 2, 3, 3)
    magic, size, _, _, offset = struct.unpack_from("<2sIHHI", out, 0)
    info = struct.unpack_from("<IIIHH", out, 14)
    assert magic == b"BM"
    assert size == len(out)
    assert offset == 54
    assert info == (40, 2, 3, 1, 24)


def test_bmp_bgr_order_and_row_padding():
    out = encode_bmp(bytes((10, 20, 30)), 1, 1, 3)
    assert out[54:] == bytes((30, 20, 10, 0))


def test_bmp_rows_stored_bottom_up():
    out = encode_bmp(bytes((1, 2)), 1, 2, 1)
    body = out[54:]
    assert body[0:3] == bytes((2, 2, 2))
    assert body[4:7] == bytes((1, 1, 1))


def test_bmp_flip_vertically_reverses_rows():
    normal = encode_bmp(bytes((1, 2)), 1, 2, 1)
    flipped = encode_bmp(bytes((2, 1)), 1, 2, 1, flip_vertically=True)
    assert normal == flipped


def test_bmp_grey_alpha_drops_alpha():
    grey_alpha = encode_bmp(bytes((7, 99, 8, 99)), 2, 1, 2)
    grey = encode_bmp(bytes((7, 8)), 2, 1, 1)
    assert grey_alpha == grey


def test_bmp_rgba_uses_v4_header():
    out = encode_bmp(bytes((10, 20, 30, 40)), 1, 1, 4)
    _, size, _, _, offset = struct.unpack_from("<2sIHHI", out, 0)
    header_size, _, _, _, bpp, compression = struct.unpack_from("<IIIHHI", out, 14)
    masks = struct.unpack_from("<IIII", out, 54)
    assert offset == 122
    assert size == len(out)
    assert header_size == 108
    assert bpp == 32
    assert compression == 3
    assert masks == (0xFF0000, 0xFF00, 0xFF, 0xFF000000)
    assert out[122:] == bytes((30, 20, 10, 40))


def test_bmp_zero_height_is_header_only():
    assert len(encode_bmp(b"", 5, 0, 3)) == 54


@pytest.mark.parametrize("width,height", [(-1, 2), (2, -1)])
def test_bmp_negative_dimension_raises(width, height):
    with pytest.raises(ValueError):
        encode_bmp(bytes(16), width, height, 3)


@pytest.mark.parametrize("encode", [encode_bmp, encode_tga])
def test_invalid_components_raise(encode):
    with pytest.raises(ValueError):
        encode(bytes(16), 1, 1, 5)


@pytest.mark.parametrize("encode", [encode_bmp, encode_tga])
def test_short_buffer_raises(encode):
    with pytest.raises(ValueError):
        encode(bytes(5), 2, 1, 3)


@pytest.mark.parametrize(
    "comp,image_type,bpp,descriptor",
    [(1, 3, 8, 0), (2, 3, 16, 8), (3, 2, 24, 0), (4, 2, 32, 8)],
)
def test_tga_uncompressed_header(comp, image_type, bpp, descriptor):
    out = encode_tga(bytes(3 * 2 * comp), 3, 2, comp, rle=False)
    fields = struct.unpack_from("<BBBHHBHHHHBB", out, 0)
    assert fields == (0, 0, image_type, 0, 0, 0, 0, 0, 3, 2, bpp, descriptor)
    assert len(out) == TGA_HEADER + 3 * 2 * comp


@pytest.mark.parametrize("comp", [1, 2, 3, 4])
def test_tga_rle_header_type(comp):
    plain = encode_tga(bytes(comp), 1, 1, comp, rle=False)
    packed = encode_tga(bytes(comp), 1, 1, comp, rle=True)
    assert packed[2] == plain[2] + 8


def test_tga_uncompressed_pixel_order():
    out = encode_tga(bytes((10, 20, 30, 40, 1, 2, 3, 4)), 1, 2, 4, rle=False)
    assert out[TGA_HEADER:] == bytes((3, 2, 1, 4, 30, 20, 10, 40))


def test_tga_rle_run_packet():
    out = encode_tga(bytes((9, 9, 9, 9)), 4, 1, 1, rle=True)
    assert out[TGA_HEADER:] == bytes((131, 9))


@pytest.mark.parametrize("comp", [1, 2, 3, 4])
@pytest.mark.parametrize("flip", [False, True])
@pytest.mark.parametrize("seed", [0, 1, 2])
def test_tga_rle_decodes_to_uncompressed(comp, flip, seed):
    width, height = 300, 4
    data = _random_image(width, height, comp, seed)
    plain = encode_tga(data, width, height, comp, rle=False, flip_vertically=flip)
    packed = encode_tga(data, width, height, comp, rle=True, flip_vertically=flip)
    decoded = _decode_tga_rle(packed[TGA_HEADER:], comp, width * height)
    assert decoded == plain[TGA_HEADER:]


def test_tga_rle_compresses_uniform_image():
    data = bytes([5, 6, 7]) * 200
    packed = encode_tga(data, 200, 1, 3, rle=True)
    plain = encode_tga(data, 200, 1, 3, rle=False)
    assert len(packed) < len(plain)


def test_tga_flip_vertically():
    normal = encode_tga(bytes((1, 2)), 1, 2, 1, rle=False)
    flipped = encode_tga(bytes((2, 1)), 1, 2, 1, rle=False, flip_vertically=True)
    assert normal == flipped


def test_tga_negative_dimension_raises():
    with pytest.raises(ValueError):
        encode_tga(bytes(4), -1, 1, 1)


def test_write_bmp_matches_encode(tmp_path):
    data = _random_image(5, 3, 3, 7)
    path = tmp_path / "out.bmp"
    write_bmp(path, data, 5, 3, 3)
    assert path.read_bytes() == encode_bmp(data, 5, 3, 3)


def test_write_tga_matches_encode(tmp_path):
    data = _random_image(5, 3, 4, 8)
    path = tmp_path / "out.tga"
    write_tga(path, data, 5, 3, 4, rle=True, flip_vertically=True)
    assert path.read_bytes() == encode_tga(data, 5, 3, 4, rle=True, flip_vertically=True)