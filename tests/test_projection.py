import numpy as np
import pytest

from voxelimage.projection import (
    AverageIntensityProjection,
    MaxIntensityProjection,
    MinIntensityProjection,
    Projection,
    ProjectionType,
    luminance,
)


def make_volume(width, height, depth, channels):
    return np.zeros((depth, height, width, channels), dtype=np.uint8)


def set_voxel(vol, x, y, z, rgb):
    channels = vol.shape[3]
    values = list(rgb) + [255] * max(0, channels - len(rgb))
    vol[z, y, x] = values[:channels]


# --- base class ---

def test_projection_type():
    proj = MaxIntensityProjection(0, 5)
    assert proj.type is ProjectionType.MAXIMUM_INTENSITY
    assert MinIntensityProjection().type is ProjectionType.MINIMUM_INTENSITY
    assert AverageIntensityProjection().type is ProjectionType.AVERAGE_INTENSITY


def test_slab_range_valid():
    proj = MaxIntensityProjection(0, 5)
    proj.set_slab_range(2, 4)
    assert (proj.slab_start, proj.slab_end) == (2, 4)
    proj.set_slab_range(3, -1)
    assert (proj.slab_start, proj.slab_end) == (3, -1)


def test_slab_range_start_after_end_raises():
    proj = MaxIntensityProjection(0, 5)
    with pytest.raises(ValueError):
        proj.set_slab_range(5, 3)


def test_slab_range_negative_start_raises():
    proj = MaxIntensityProjection(0, 5)
    with pytest.raises(ValueError):
        proj.set_slab_range(-2, 3)


def test_projection_is_abstract():
    with pytest.raises(TypeError):
        Projection()


def test_luminance_weights():
    assert luminance((200, 0, 0)) == pytest.approx(42.0)
    assert luminance((0, 100, 0)) == pytest.approx(72.0)
    assert luminance((77,)) == 77.0


# --- average ---

def test_mean_uniform_values():
    vol = make_volume(2, 2, 3, 3)
    vol[:] = (100, 0, 0)
    result = AverageIntensityProjection(0, -1, False).apply(vol)
    assert result.shape == (2, 2, 3)
    assert (result == np.array([100, 0, 0])).all()


def test_mean_varying_values():
    vol = make_volume(1, 1, 3, 3)
    set_voxel(vol, 0, 0, 0, (90, 0, 0))
    set_voxel(vol, 0, 0, 1, (100, 0, 0))
    set_voxel(vol, 0, 0, 2, (110, 0, 0))
    result = AverageIntensityProjection(0, -1, False).apply(vol)
    assert result[0, 0].tolist() == [100, 0, 0]


def test_median_odd_slices():
    vol = make_volume(1, 1, 5, 3)
    for z, r in enumerate((50, 150, 100, 200, 10)):
        set_voxel(vol, 0, 0, z, (r, 0, 0))
    result = AverageIntensityProjection(0, -1, True).apply(vol)
    assert result[0, 0].tolist() == [100, 0, 0]


def test_median_even_slices():
    vol = make_volume(1, 1, 4, 3)
    for z, r in enumerate((30, 10, 40, 20)):
        set_voxel(vol, 0, 0, z, (r, 0, 0))
    result = AverageIntensityProjection(0, -1, True).apply(vol)
    assert result[0, 0].tolist() == [25, 0, 0]


def test_median_even_rounds_up():
    vol = make_volume(1, 1, 2, 1)
    vol[:, 0, 0, 0] = (10, 13)
    result = AverageIntensityProjection(0, -1, True).apply(vol)
    assert result[0, 0, 0] == 12


def test_mean_partial_slab():
    vol = make_volume(1, 1, 5, 3)
    for z in range(5):
        set_voxel(vol, 0, 0, z, (z * 50, 0, 0))
    result = AverageIntensityProjection(1, 3, False).apply(vol)
    assert result[0, 0, 0] == 100


def test_use_median_flag():
    vol = make_volume(1, 1, 3, 3)
    set_voxel(vol, 0, 0, 2, (30, 0, 0))
    proj = AverageIntensityProjection(0, -1, False)
    assert proj.apply(vol)[0, 0].tolist() == [10, 0, 0]
    proj.use_median = True
    assert proj.use_median is True
    assert proj.apply(vol)[0, 0].tolist() == [0, 0, 0]


# --- maximum ---

def test_max_intensity_threshold():
    vol = make_volume(3, 3, 3, 1)
    for z in range(3):
        vol[z] = z * 100
    proj = MaxIntensityProjection(0, -1)
    proj.threshold = 200.0 * 0.21
    result = proj.apply(vol)
    assert (result[..., 0] == 200).all()


def test_max_full_volume():
    vol = make_volume(2, 2, 3, 1)
    set_voxel(vol, 0, 0, 0, (50,))
    set_voxel(vol, 0, 0, 1, (150,))
    set_voxel(vol, 0, 0, 2, (100,))
    result = MaxIntensityProjection(0, -1).apply(vol)
    assert result[0, 0, 0] == 150


def test_max_partial_slab():
    vol = make_volume(2, 2, 3, 1)
    set_voxel(vol, 0, 0, 0, (50,))
    set_voxel(vol, 0, 0, 1, (150,))
    set_voxel(vol, 0, 0, 2, (100,))
    result = MaxIntensityProjection(0, 1).apply(vol)
    assert result[0, 0, 0] == 150


def test_max_rgb_picks_brightest_voxel():
    vol = make_volume(1, 1, 2, 3)
    set_voxel(vol, 0, 0, 0, (255, 0, 0))
    set_voxel(vol, 0, 0, 1, (0, 100, 0))
    result = MaxIntensityProjection().apply(vol)
    assert result[0, 0].tolist() == [0, 100, 0]


def test_max_empty_projection_is_black():
    vol = make_volume(2, 2, 2, 1)
    proj = MaxIntensityProjection(0, -1)
    proj.threshold = 200.0
    result = proj.apply(vol)
    assert result[0, 0, 0] == 0


def test_threshold_setter_clamps():
    proj = MaxIntensityProjection()
    proj.threshold = 400.0
    assert proj.threshold == 255.0
    proj.threshold = -3.0
    assert proj.threshold == 0.0


# --- minimum ---

def test_min_full_volume():
    vol = make_volume(2, 2, 3, 1)
    set_voxel(vol, 0, 0, 0, (50,))
    set_voxel(vol, 0, 0, 1, (150,))
    set_voxel(vol, 0, 0, 2, (100,))
    result = MinIntensityProjection(0, -1).apply(vol)
    assert result[0, 0, 0] == 50


def test_min_partial_slab():
    vol = make_volume(2, 2, 3, 1)
    set_voxel(vol, 0, 0, 0, (50,))
    set_voxel(vol, 0, 0, 1, (150,))
    set_voxel(vol, 0, 0, 2, (100,))
    result = MinIntensityProjection(0, 1).apply(vol)
    assert result[0, 0, 0] == 50


def test_slab_out_of_range_is_clamped():
    vol = make_volume(1, 1, 3, 1)
    vol[:, 0, 0, 0] = (10, 20, 30)
    result = MinIntensityProjection(7, 9).apply(vol)
    assert result[0, 0, 0] == 30


def test_three_dimensional_volume_accepted():
    vol = np.array([[[5, 9]], [[7, 1]]], dtype=np.uint8)
    result = MaxIntensityProjection().apply(vol)
    assert result.shape == (1, 2, 1)
    assert result[..., 0].tolist() == [[7, 9]]