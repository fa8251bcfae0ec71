import numpy as np
import pytest

from dmcmatch.core.color_sampler import ColorSampler, SamplingError
from dmcmatch.core.image_manager import image_from_array
from dmcmatch.core.viewport import ViewportTransform


def sampler_for(image, viewport_size=None):
    vw, vh = viewport_size or (image.width, image.height)
    return ColorSampler(image, ViewportTransform(image.width, image.height, vw, vh))


def test_uniform_red_with_aperture_3(red_image):
    sampler = sampler_for(red_image)
    sample = sampler.sample_image_point(50, 50, aperture=3)
    assert (sample.color.r, sample.color.g, sample.color.b) == (255, 0, 0)
    assert sample.hex == "#FF0000"
    assert sample.aperture == 3


def test_canvas_point_is_mapped_through_viewport(gradient_image):
    # 200x150 图像放在 400x300 视口，base_scale = 1 且居中
    sampler = sampler_for(gradient_image, (400, 300))
    vp = sampler.viewport
    cx, cy = vp.image_to_canvas(30, 40)
    sample = sampler.sample(cx, cy)
    assert (sample.image_x, sample.image_y) == (30, 40)
    assert (sample.color.r, sample.color.g) == (30, 40)


def test_rounding_is_half_up(gradient_image):
    sampler = sampler_for(gradient_image)
    sample = sampler.sample(10.5, 20.49)
    assert (sample.image_x, sample.image_y) == (11, 20)


def test_aperture_average(gradient_image):
    sampler = sampler_for(gradient_image)
    sample = sampler.sample_image_point(20, 30, aperture=5)
    # r = x 的均值, g = y 的均值
    assert (sample.color.r, sample.color.g, sample.color.b) == (20, 30, 0)


def test_window_is_clipped_at_edges(gradient_image):
    sampler = sampler_for(gradient_image)
    sample = sampler.sample_image_point(0, 0, aperture=3)
    # 窗口被裁剪为 x,y ∈ {0,1}：均值 0.5 → 1（四舍五入）
    assert (sample.color.r, sample.color.g) == (1, 1)


def test_channel_rounding_of_mixed_window():
    array = np.zeros((3, 3, 3), dtype=np.uint8)
    array[1, 1] = (255, 255, 255)
    sampler = sampler_for(image_from_array(array))
    sample = sampler.sample_image_point(1, 1, aperture=3)
    # 255 / 9 = 28.33
    assert sample.color.r == 28


@pytest.mark.parametrize("point", [(-1, 0), (0, -1), (100, 5), (5, 100)])
def test_out_of_bounds_raises(red_image, point):
    sampler = sampler_for(red_image)
    with pytest.raises(SamplingError):
        sampler.sample_image_point(*point)


def test_canvas_outside_image_raises():
    image = image_from_array(np.zeros((50, 100, 3), dtype=np.uint8))
    sampler = sampler_for(image, (400, 300))
    with pytest.raises(SamplingError):
        sampler.sample(5.0, 5.0)
    assert sampler.peek(5.0, 5.0) is None


@pytest.mark.parametrize("aperture", [0, 2, 4, -1, 1.5])
def test_invalid_aperture(red_image, aperture):
    sampler = sampler_for(red_image)
    with pytest.raises(ValueError):
        sampler.sample(10, 10, aperture)


def test_sampling_never_mutates_buffer(red_image):
    sampler = sampler_for(red_image)
    before = red_image.array.copy()
    sampler.sample(50, 50, 7)
    assert np.array_equal(before, red_image.array)
    assert not red_image.array.flags.writeable


def test_cursor_preview_minimum_size(red_image):
    sampler = sampler_for(red_image)
    preview = sampler.cursor_preview(10, 10, aperture=3)
    assert preview.size == 20.0
    assert preview.color is not None and preview.color.hex == "#FF0000"


def test_cursor_preview_grows_with_zoom(red_image):
    sampler = sampler_for(red_image)
    sampler.viewport.set_zoom(16.0)
    preview = sampler.cursor_preview(10, 10, aperture=5)
    assert preview.size == pytest.approx(80.0)
