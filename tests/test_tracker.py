import pytest

from auto_aim.common import Detection, TrackMode
from auto_aim.config import TrackerConfig
from auto_aim.tracker import TrackingStateMachine, best_detection, predict_roi
from tests.fakes import ScriptedDetector


def _det(cls, conf, box):
    return Detection(class_id=cls, confidence=conf, bbox=box)


def _machine(script=None, **cfg):
    return TrackingStateMachine(ScriptedDetector(script), TrackerConfig(**cfg))


def test_search_locks_on_qualifying_detection(frame):
    sm = _machine([[_det(1, 0.55, (100, 100, 50, 50))]], search_conf=0.40)
    res = sm.step(frame, 1)
    assert res.mode == TrackMode.TRACKING
    assert res.roi is None
    assert sm.session.is_tracking
    assert sm.session.lost_count == 0
    assert sm.session.locked_class_id == 1
    assert sm.session.last_box == (100, 100, 50, 50)
    assert sm.session.velocity == (0.0, 0.0)
    assert sm.detector.regions == [None]


def test_search_ignores_low_confidence(frame):
    sm = _machine([[_det(1, 0.35, (100, 100, 50, 50))]], search_conf=0.40)
    res = sm.step(frame, 1)
    assert res.mode == TrackMode.SEARCHING
    assert res.detections == ()
    assert res.target is None
    assert sm.session.last_box is None


def test_search_picks_best_first_on_tie(frame):
    a = _det(0, 0.8, (10, 10, 20, 20))
    b = _det(2, 0.8, (300, 300, 20, 20))
    sm = _machine([[_det(1, 0.5, (0, 0, 5, 5)), a, b]])
    res = sm.step(frame, 1)
    assert res.target is a
    assert sm.session.locked_class_id == 0


def test_lost_after_max_lost_plus_one_misses(frame):
    sm = _machine(max_lost=10)
    sm.session.lock(_det(0, 0.9, (100, 100, 50, 50)))
    for i in range(10):
        res = sm.step(frame, i + 1)
        assert res.mode == TrackMode.TRACKING
        assert res.lost_count == i + 1
    res = sm.step(frame, 11)
    assert res.mode == TrackMode.SEARCHING
    assert res.lost_count == 11
    s = sm.session
    assert not s.is_tracking
    assert s.last_box is None
    assert s.locked_class_id is None
    assert s.lost_count == 0


@pytest.mark.parametrize("max_lost", [0, 1, 3, 7])
def test_exit_exactly_after_max_lost_plus_one(frame, max_lost):
    sm = _machine([[_det(0, 0.9, (200, 200, 40, 40))]], max_lost=max_lost)
    sm.step(frame, 0)
    modes = [sm.step(frame, i + 1).mode for i in range(max_lost + 3)]
    first_search = modes.index(TrackMode.SEARCHING)
    assert first_search == max_lost
    assert all(m == TrackMode.TRACKING for m in modes[:max_lost])


def test_track_filters_class_and_confidence(frame):
    sm = _machine(
        [
            [_det(1, 0.9, (100, 100, 50, 50))],
            [_det(2, 0.95, (105, 100, 50, 50)), _det(1, 0.55, (105, 100, 50, 50))],
        ],
        track_conf=0.60,
    )
    sm.step(frame, 1)
    res = sm.step(frame, 2)
    assert res.mode == TrackMode.TRACKING
    assert res.detections == ()
    assert res.lost_count == 1
    assert sm.session.last_box == (100, 100, 50, 50)


def test_match_updates_velocity_and_next_roi(frame):
    sm = _machine(
        [
            [_det(0, 0.9, (100, 100, 50, 50))],
            [_det(0, 0.8, (110, 104, 50, 50))],
        ]
    )
    sm.step(frame, 1)
    res = sm.step(frame, 2)
    assert res.target.bbox == (110, 104, 50, 50)
    assert sm.session.velocity == (10.0, 4.0)
    assert sm.session.lost_count == 0
    # first tracking ROI: centered on (125, 125), min side 128
    assert sm.detector.regions[1] == (61, 61, 128, 128)

    sm.step(frame, 3)
    # predicted center (135 + 10, 129 + 4)
    assert sm.detector.regions[2] == (81, 69, 128, 128)


def test_miss_resets_count_on_next_match(frame):
    box = (100, 100, 50, 50)
    sm = _machine([[_det(0, 0.9, box)], [], [], [_det(0, 0.9, box)]])
    sm.step(frame, 1)
    sm.step(frame, 2)
    assert sm.step(frame, 3).lost_count == 2
    assert sm.step(frame, 4).lost_count == 0


def test_coasting_reuses_stale_prediction(frame):
    sm = _machine(
        [
            [_det(0, 0.9, (100, 100, 50, 50))],
            [_det(0, 0.9, (120, 100, 50, 50))],
        ]
    )
    sm.step(frame, 1)
    sm.step(frame, 2)
    sm.step(frame, 3)
    sm.step(frame, 4)
    assert sm.detector.regions[2] == sm.detector.regions[3]
    assert sm.session.velocity == (20.0, 0.0)


def test_roi_scales_with_box():
    roi = predict_roi((300, 200, 100, 60), (0, 0), (640, 480), 2.0, 128)
    assert roi == (250, 130, 200, 200)


@pytest.mark.parametrize(
    "box, velocity",
    [
        ((600, 200, 200, 100), (0, 0)),
        ((0, 0, 200, 200), (0, 0)),
        ((440, 380, 200, 100), (30, 30)),
        ((600, 400, 50, 50), (500, 500)),
        ((10, 10, 50, 50), (-400, -400)),
    ],
)
def test_roi_stays_inside_image(box, velocity):
    w, h = 640, 480
    x, y, rw, rh = predict_roi(box, velocity, (w, h), 2.0, 128)
    assert x >= 0 and y >= 0
    assert x + rw <= w and y + rh <= h
    assert rw > 0 and rh > 0


def test_best_detection():
    assert best_detection([]) is None
    a, b = _det(0, 0.7, (0, 0, 1, 1)), _det(1, 0.7, (2, 2, 1, 1))
    assert best_detection([a, b]) is a
    c = _det(2, 0.9, (4, 4, 1, 1))
    assert best_detection([a, c, b]) is c


def test_kalman_velocity_follows_constant_motion(frame):
    script = [[_det(0, 0.9, (100 + 10 * i, 200, 40, 40))] for i in range(8)]
    sm = _machine(script, velocity_filter="kalman")
    for i in range(8):
        sm.step(frame, i + 1)
    vx, vy = sm.session.velocity
    assert 7.0 < vx < 13.0
    assert abs(vy) < 2.0


def test_unknown_velocity_filter_rejected():
    with pytest.raises(ValueError):
        _machine(velocity_filter="ema")
