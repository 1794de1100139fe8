# voxelimage

Collapse 3-D voxel volumes into 2-D images, and encode images as PNG, BMP,
TGA, Radiance HDR or baseline JPEG files.

## Projections

`voxelimage.projection` works on volumes given as arrays (anything
`numpy.asarray` accepts) of shape `(depth, height, width, channels)`, or
`(depth, height, width)` for a single channel, holding 8-bit values with 1 to
4 channels. Each projection's `apply(volume)` returns a `numpy.uint8` array of
shape `(height, width, channels)`.

A projection covers an inclusive slab of Z slices `[slab_start, slab_end]`;
an end of `-1` means the last slice. When applied, the slab is clamped to the
volume's depth.

- `MaxIntensityProjection(slab_start=0, slab_end=-1, threshold=0.0)` keeps,
  for each `(x, y)`, the voxel of highest luminance among those whose
  luminance is at or above `threshold`. Where no voxel qualifies the output
  pixel is black (with alpha 255 for two- and four-channel volumes).
  Assigning to the `threshold` property clamps the value to 0..255.
- `MinIntensityProjection(slab_start=0, slab_end=-1)` keeps the voxel of
  lowest luminance.
- `AverageIntensityProjection(slab_start=0, slab_end=-1, use_median=False)`
  takes the per-channel mean (truncated), or, when `use_median` is true, the
  per-channel median; for an even number of slices the median is the average
  of the two middle values, rounded up.

Each class has a `type` attribute, a member of the `ProjectionType` enum
(`MAXIMUM_INTENSITY`, `MINIMUM_INTENSITY`, `AVERAGE_INTENSITY`).
`Projection.set_slab_range(start, end)` raises `ValueError` if `start` is
negative, or if `start` is greater than `end` when `end` is not `-1`.

`luminance(pixel)` returns the weighted intensity that the max and min
projections compare: `0.21 R + 0.72 G + 0.07 B` for colour pixels, and the
grey value itself for one- and two-channel pixels.

```python
import numpy as np
from voxelimage.projection import AverageIntensityProjection, MaxIntensityProjection

volume = np.zeros((3, 2, 2, 3), dtype=np.uint8)
volume[:, :, :, 0] = np.array([50, 150, 100])[:, None, None]

MaxIntensityProjection(0, -1).apply(volume)[0, 0]          # array([150, 0, 0])
AverageIntensityProjection(0, -1, use_median=True).apply(volume)[0, 0]
```

## Image encoders

Each encoder takes the pixel data (8 bits per channel, interleaved, top row
first), the width, the height and the number of components (1 = Y, 2 = YA,
3 = RGB, 4 = RGBA). The HDR encoder takes linear floats instead of bytes.
Every format has an `encode_*` function that returns `bytes` and a `write_*`
function that writes those bytes to a path. Invalid component counts or
dimensions, and pixel buffers too small for the geometry, raise `ValueError`.

| Module              | Functions                   | Keyword options                                                  |
|---------------------|-----------------------------|------------------------------------------------------------------|
| `voxelimage.png`    | `encode_png`, `write_png`   | `stride`, `compression_level`, `force_filter`, `flip_vertically` |
| `voxelimage.bitmap` | `encode_bmp`, `write_bmp`   | `flip_vertically`                                                |
| `voxelimage.bitmap` | `encode_tga`, `write_tga`   | `rle`, `flip_vertically`                                         |
| `voxelimage.hdr`    | `encode_hdr`, `write_hdr`   | `flip_vertically`                                                |
| `voxelimage.jpeg`   | `encode_jpeg`, `write_jpeg` | `quality`, `flip_vertically`                                     |

- PNG keeps the number of components. `stride` is the byte distance between
  row starts (0 means tightly packed). `force_filter` in 0..4 forces that
  scanline filter; any other value (default -1) picks the filter per row.
  `compression_level` defaults to 8.
- BMP expands grey to RGB. Four-channel input is written as 32-bit BGRA with
  a V4 header; everything else as 24-bit BGR.
- TGA is run-length encoded unless `rle=False`.
- HDR drops alpha and replicates grey across the three colour channels.
  Width and height must be positive.
- JPEG ignores alpha. `quality` runs from 1 to 100 (default 90; 0 also means
  90). At 90 and below the chroma planes are subsampled 2x2.

`voxelimage.deflate` provides `zlib_compress(data, quality=8)`, the zlib
stream used inside PNG files, and `crc32(data)`, the PNG chunk checksum.

```python
from voxelimage.png import write_png

write_png("out.png", bytes([255, 0, 0] * 4), 2, 2, 3)
```

## What it does not do

The package only writes images. It does not read or decode image files, does
not load volumes from stacks of images, offers no filters or slice
extraction, and has no command-line tool.

## Tests

```
pip install -e .[test]
pytest
```