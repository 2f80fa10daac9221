"""Search / ROI-track state machine holding a single locked target."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from auto_aim.common import Detection, FrameResult, Point, Rect, TrackMode, rect_center
from auto_aim.config import TrackerConfig
from auto_aim.helpers import make_velocity_estimator


@dataclass
class TrackingSession:
    """
    Mutable per-loop state. ``last_box`` and ``locked_class_id`` mean
    something only while ``is_tracking``.
    """
    is_tracking: bool = False
    last_box: Optional[Rect] = None
    velocity: Point = (0.0, 0.0)
    lost_count: int = 0
    locked_class_id: Optional[int] = None

    @property
    def mode(self) -> TrackMode:
        return TrackMode.TRACKING if self.is_tracking else TrackMode.SEARCHING

    def lock(self, det: Detection) -> None:
        self.is_tracking = True
        self.last_box = det.bbox
        self.locked_class_id = det.class_id
        self.velocity = (0.0, 0.0)
        self.lost_count = 0

    def reset(self) -> None:
        self.is_tracking = False
        self.last_box = None
        self.locked_class_id = None
        self.velocity = (0.0, 0.0)
        self.lost_count = 0


def best_detection(dets: Sequence[Detection]) -> Optional[Detection]:
    """Highest confidence; the first one wins a tie."""
    best: Optional[Detection] = None
    for d in dets:
        if best is None or d.confidence > best.confidence:
            best = d
    return best


def clamp_rect(rect: Rect, img_w: int, img_h: int) -> Rect:
    """Keep the top-left inside the image and shrink w/h to fit."""
    x, y, w, h = rect
    x = min(max(0, x), max(0, img_w - 1))
    y = min(max(0, y), max(0, img_h - 1))
    w = max(0, min(w, img_w - x))
    h = max(0, min(h, img_h - y))
    return x, y, w, h


def predict_roi(
    last_box: Rect,
    velocity: Point,
    image_size: Tuple[int, int],
    roi_scale: float,
    min_side: int,
) -> Rect:
    """Square search window around the predicted center, clamped to the image."""
    cx, cy = rect_center(last_box)
    px, py = cx + velocity[0], cy + velocity[1]
    side = int(max(last_box[2], last_box[3]) * roi_scale)
    side = max(side, int(min_side))
    x = int(round(px - side / 2.0))
    y = int(round(py - side / 2.0))
    return clamp_rect((x, y, side, side), image_size[0], image_size[1])


class TrackingStateMachine:
    """
    ``detector`` needs ``detect_in(frame, region, frame_id)`` returning
    full-frame detections (see :class:`auto_aim.detector.YoloDetector`).
    ``cfg`` is read every frame so live-tuned values apply immediately.
    """

    def __init__(self, detector, cfg: TrackerConfig):
        self.detector = detector
        self.cfg = cfg
        self.session = TrackingSession()
        self.velocity_estimator = make_velocity_estimator(cfg)

    def set_velocity_filter(self, name: str) -> None:
        """Swap the estimator; takes effect from the next lock."""
        self.cfg.velocity_filter = name
        self.velocity_estimator = make_velocity_estimator(self.cfg)
        if self.session.is_tracking and self.session.last_box is not None:
            self.velocity_estimator.start(rect_center(self.session.last_box))
            self.session.velocity = (0.0, 0.0)

    # ------------------------------------------------------------------ #
    #   P E R - F R A M E
    # ------------------------------------------------------------------ #
    def step(self, frame_bgr: np.ndarray, frame_id: int) -> FrameResult:
        if self.session.is_tracking:
            return self._track(frame_bgr, frame_id)
        return self._search(frame_bgr, frame_id)

    def _search(self, frame_bgr: np.ndarray, frame_id: int) -> FrameResult:
        dets = self.detector.detect_in(frame_bgr, None, frame_id)
        shown = [d for d in dets if d.confidence > self.cfg.search_conf]
        best = best_detection(shown)
        if best is not None:
            self.session.lock(best)
            self.velocity_estimator.start(best.center)
            print(
                f"[Tracker] Locked class {best.class_id} "
                f"({best.confidence:.2f}) at {best.bbox}"
            )
        return self._result(frame_id, None, shown, best)

    def _track(self, frame_bgr: np.ndarray, frame_id: int) -> FrameResult:
        s = self.session
        ih, iw = frame_bgr.shape[:2]
        roi = predict_roi(
            s.last_box, s.velocity, (iw, ih),
            self.cfg.roi_scale, self.cfg.min_roi_side,
        )
        dets = self.detector.detect_in(frame_bgr, roi, frame_id)
        shown: List[Detection] = [
            d for d in dets
            if d.class_id == s.locked_class_id and d.confidence > self.cfg.track_conf
        ]
        best = best_detection(shown)

        if best is not None:
            s.velocity = self.velocity_estimator.update(best.center)
            s.last_box = best.bbox
            s.lost_count = 0
        else:
            s.lost_count += 1
            self.velocity_estimator.coast()
            if s.lost_count > self.cfg.max_lost:
                print(
                    f"[Tracker] Target lost after {s.lost_count} frames. "
                    "Switching to search mode."
                )
                lost = s.lost_count
                s.reset()
                return self._result(frame_id, roi, shown, None, lost=lost)
        return self._result(frame_id, roi, shown, best)

    def _result(
        self,
        frame_id: int,
        roi: Optional[Rect],
        shown: Sequence[Detection],
        best: Optional[Detection],
        lost: Optional[int] = None,
    ) -> FrameResult:
        return FrameResult(
            frame_id=frame_id,
            mode=self.session.mode,
            roi=roi,
            detections=tuple(shown),
            target=best,
            lost_count=self.session.lost_count if lost is None else lost,
            velocity=self.session.velocity,
        )
