import numpy as np
import pytest

from auto_aim.common import InvalidInput, LetterboxParams
from auto_aim.decoder import iou
from auto_aim.letterbox import PAD_VALUE, prepare, to_source_point, to_source_rect


def test_prepare_downscales_and_centers():
    img = np.full((1024, 1280, 3), 7, dtype=np.uint8)
    out, p = prepare(img, 480)
    assert out.shape == (480, 480, 3)
    assert p.scale == pytest.approx(0.375)
    assert (p.pad_x, p.pad_y) == (0, 48)
    assert (out[0, 0] == PAD_VALUE).all()
    assert (out[479, 479] == PAD_VALUE).all()
    assert (out[240, 240] == 7).all()


def test_prepare_upscales_small_roi():
    img = np.zeros((64, 128, 3), dtype=np.uint8)
    out, p = prepare(img, (256, 256))
    assert out.shape == (256, 256, 3)
    assert p.scale == pytest.approx(2.0)
    assert (p.pad_x, p.pad_y) == (0, 64)


def test_prepare_zero_sized_image_fails():
    with pytest.raises(InvalidInput):
        prepare(np.zeros((0, 10, 3), dtype=np.uint8), 64)
    with pytest.raises(InvalidInput):
        prepare(np.zeros((10, 0, 3), dtype=np.uint8), 64)


@pytest.mark.parametrize(
    "size, target, box",
    [
        ((640, 480), 640, (100, 50, 200, 120)),
        ((1280, 1024), 480, (600, 500, 64, 40)),
        ((50, 30), 320, (5, 4, 30, 20)),
        ((300, 900), 416, (10, 700, 250, 190)),
    ],
)
def test_round_trip_keeps_box(size, target, box):
    iw, ih = size
    _, p = prepare(np.zeros((ih, iw, 3), dtype=np.uint8), target)
    x, y, w, h = box
    cx = (x + w / 2) * p.scale + p.pad_x
    cy = (y + h / 2) * p.scale + p.pad_y
    back = to_source_rect(cx, cy, w * p.scale, h * p.scale, p, (iw, ih))
    assert iou(back, box) > 0.99


def test_inverse_clips_to_image():
    p = LetterboxParams(scale=1.0, pad_x=0, pad_y=0)
    x, y, w, h = to_source_rect(5, 5, 40, 40, p, (100, 80))
    assert (x, y) == (0, 0)
    assert x + w <= 100 and y + h <= 80

    x, y, w, h = to_source_rect(95, 75, 40, 40, p, (100, 80))
    assert 0 <= x < 100 and 0 <= y < 80
    assert x + w <= 100 and y + h <= 80


def test_inverse_point():
    p = LetterboxParams(scale=0.5, pad_x=0, pad_y=16)
    assert to_source_point(32, 32, p, (128, 64)) == (64.0, 32.0)
    assert to_source_point(-10, 0, p, (128, 64)) == (0.0, 0.0)
