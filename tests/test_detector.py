import numpy as np
import pytest

from auto_aim.common import InvalidInput
from auto_aim.config import DetectorConfig
from auto_aim.detector import YoloDetector
from tests.fakes import FakeEngine, make_raw

# Model space 64x64; a 128x64 image letterboxes with scale 0.5, pad_y 16.
RAW = make_raw(
    [
        [32, 32, 20, 10, 0.9, 0.1],
        [10, 40, 4, 4, 0.2, 0.3],
    ]
)


def _detector(raw=RAW, **cfg):
    return YoloDetector(FakeEngine(raw, num_classes=2), DetectorConfig(**cfg))


def test_detect_full_frame():
    det = _detector()
    img = np.zeros((64, 128, 3), dtype=np.uint8)
    out = det.detect_in(img, None, frame_id=7)
    assert len(out) == 1
    assert out[0].bbox == (44, 22, 40, 20)
    assert out[0].class_id == 0
    assert out[0].frame_id == 7


def test_engine_receives_nchw_blob():
    det = _detector()
    det.detect(np.zeros((64, 128, 3), dtype=np.uint8))
    (blob,) = det.engine.blobs
    assert blob.shape == (1, 3, 64, 64)
    assert blob.dtype == np.float32
    assert blob.max() <= 1.0


def test_region_results_are_in_frame_coordinates():
    det = _detector()
    img = np.zeros((200, 200, 3), dtype=np.uint8)
    (d,) = det.detect_in(img, (50, 60, 128, 64), frame_id=1)
    assert d.bbox == (94, 82, 40, 20)
    assert d.center == (114.0, 92.0)


def test_base_threshold_is_live():
    cfg = DetectorConfig(conf_threshold=0.5)
    det = YoloDetector(FakeEngine(RAW, num_classes=2), cfg)
    img = np.zeros((64, 128, 3), dtype=np.uint8)
    assert len(det.detect(img)) == 1
    cfg.conf_threshold = 0.95
    assert det.detect(img) == []


def test_empty_image_yields_nothing():
    det = _detector()
    assert det.detect_in(np.zeros((0, 0, 3), dtype=np.uint8)) == []
    assert det.detect_in(np.zeros((0, 0, 3), dtype=np.uint8), (0, 0, 10, 10)) == []
    assert det.engine.blobs == []


def test_malformed_output_propagates():
    bad = np.zeros((1, 5, 10), dtype=np.float32)
    det = _detector(raw=bad)
    with pytest.raises(InvalidInput):
        det.detect_in(np.zeros((64, 128, 3), dtype=np.uint8))
