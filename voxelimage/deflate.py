"""A compact zlib/DEFLATE compressor and CRC-32 checksum.

The compressor emits a single fixed-Huffman block with a hash-chain
match finder and one-step lazy matching. If that output would be larger
than the input, it falls back to stored (uncompressed) blocks.
"""

from __future__ import annotations

_HASH_SIZE = 16384
_WINDOW = 32768
_MAX_MATCH = 258
_MASK32 = 0xFFFFFFFF

_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31, 35, 43, 51, 59,
    67, 83, 99, 115, 131, 163, 195, 227, 258, 259,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3,
    4, 4, 4, 4, 5, 5, 5, 5, 0,
)
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385, 513,
    769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577, 32768,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8,
    9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)


def _make_crc_table() -> tuple[int, ...]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (c >> 1) ^ 0xEDB88320 if c & 1 else c >> 1
        table.append(c)
    return tuple(table)


_CRC_TABLE = _make_crc_table()


def crc32(data: bytes) -> int:
    """Return the CRC-32 (as used by PNG chunks) of ``data``."""
    crc = _MASK32
    for byte in bytes(data):
        crc = (crc >> 8) ^ _CRC_TABLE[(byte ^ crc) & 0xFF]
    return crc ^ _MASK32


def _adler32(data: bytes) -> tuple[int, int]:
    s1, s2 = 1, 0
    for start in range(0, len(data), 5552):
        for byte in data[start:start + 5552]:
            s1 += byte
            s2 += s1
        s1 %= 65521
        s2 %= 65521
    return s1, s2


def _bit_reverse(code: int, bits: int) -> int:
    result = 0
    for _ in range(bits):
        result = (result << 1) | (code & 1)
        code >>= 1
    return result


def _hash3(data: bytes, pos: int) -> int:
    h = data[pos] + (data[pos + 1] << 8) + (data[pos + 2] << 16)
    h ^= (h << 3) & _MASK32
    h = (h + (h >> 5)) & _MASK32
    h ^= (h << 4) & _MASK32
    h = (h + (h >> 17)) & _MASK32
    h ^= (h << 25) & _MASK32
    h = (h + (h >> 6)) & _MASK32
    return h & (_HASH_SIZE - 1)


def _match_length(data: bytes, a: int, b: int, limit: int) -> int:
    limit = min(limit, _MAX_MATCH)
    count = 0
    while count < limit and data[a + count] == data[b + count]:
        count += 1
    return count


class _BitWriter:
    """Accumulates LSB-first bits into a byte array."""

    def __init__(self, out: bytearray) -> None:
        self.out = out
        self.buffer = 0
        self.count = 0

    def add(self, code: int, bits: int) -> None:
        self.buffer |= code << self.count
        self.count += bits
        while self.count >= 8:
            self.out.append(self.buffer & 0xFF)
            self.buffer >>= 8
            self.count -= 8

    def huffman(self, code: int, bits: int) -> None:
        self.add(_bit_reverse(code, bits), bits)

    def symbol(self, n: int) -> None:
        """Write a literal/length symbol with the fixed Huffman code."""
        if n <= 143:
            self.huffman(0x30 + n, 8)
        elif n <= 255:
            self.huffman(0x190 + n - 144, 9)
        elif n <= 279:
            self.huffman(n - 256, 7)
        else:
            self.huffman(0xC0 + n - 280, 8)

    def align(self) -> None:
        while self.count:
            self.add(0, 1)


def zlib_compress(data: bytes, quality: int = 8) -> bytes:
    """Compress ``data`` into a zlib stream.

    ``quality`` bounds the length of each hash chain (values below 5 are
    raised to 5); larger values search harder for matches.
    """
    data = bytes(data)
    length = len(data)
    quality = max(quality, 5)

    out = bytearray((0x78, 0x5E))
    bits = _BitWriter(out)
    bits.add(1, 1)  # BFINAL
    bits.add(1, 2)  # BTYPE = fixed Huffman

    table: dict[int, list[int]] = {}
    i = 0
    while i < length - 3:
        h = _hash3(data, i)
        best = 3
        best_pos: int | None = None
        chain = table.setdefault(h, [])
        for pos in chain:
            if pos > i - _WINDOW:
                d = _match_length(data, pos, i, length - i)
                if d >= best:
                    best = d
                    best_pos = pos
        if len(chain) == 2 * quality:
            del chain[:quality]
        chain.append(i)

        if best_pos is not None:
            # Lazy matching: prefer a literal if the next byte matches longer.
            for pos in table.get(_hash3(data, i + 1), ()):
                if pos > i - (_WINDOW - 1):
                    if _match_length(data, pos, i + 1, length - i - 1) > best:
                        best_pos = None
                        break

        if best_pos is not None:
            dist = i - best_pos
            if dist > _WINDOW - 1 or best > _MAX_MATCH:
                raise AssertionError("match outside deflate limits")
            j = 0
            while best > _LENGTH_BASE[j + 1] - 1:
                j += 1
            bits.symbol(j + 257)
            if _LENGTH_EXTRA[j]:
                bits.add(best - _LENGTH_BASE[j], _LENGTH_EXTRA[j])
            j = 0
            while dist > _DIST_BASE[j + 1] - 1:
                j += 1
            bits.add(_bit_reverse(j, 5), 5)
            if _DIST_EXTRA[j]:
                bits.add(dist - _DIST_BASE[j], _DIST_EXTRA[j])
            i += best
        else:
            bits.symbol(data[i]) if data[i] <= 143 else bits.huffman(
                0x190 + data[i] - 144, 9
            )
            i += 1

    for byte in data[i:]:
        bits.symbol(byte)
    bits.symbol(256)
    bits.align()

    if len(out) > length + 2 + ((length + 32766) // 32767) * 5:
        del out[2:]
        for start in range(0, length, 32767):
            block = data[start:start + 32767]
            size = len(block)
            out.append(1 if start + size == length else 0)
            out += size.to_bytes(2, "little")
            out += (~size & 0xFFFF).to_bytes(2, "little")
            out += block

    s1, s2 = _adler32(data)
    out += s2.to_bytes(2, "big")
    out += s1.to_bytes(2, "big")
    return bytes(out)