"""Objects that are shared across multiple modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

# (x, y, w, h) in source-image pixels.
Rect = Tuple[int, int, int, int]
Point = Tuple[float, float]


# ------------------------------------------------------------------ #
#   E X C E P T I O N S
# ------------------------------------------------------------------ #
class InvalidInput(ValueError):
    """Malformed tensor shape or zero-sized image."""


class AcquisitionTimeout(RuntimeError):
    """The frame source produced no frame in time."""


class ModelLoadFailure(RuntimeError):
    """The model file is missing or cannot be used by the engine."""


# ------------------------------------------------------------------ #
#   D A T A
# ------------------------------------------------------------------ #
def rect_center(rect: Rect) -> Point:
    x, y, w, h = rect
    return (x + w / 2.0, y + h / 2.0)


@dataclass(frozen=True)
class LetterboxParams:
    """Scale and padding of one letterbox pass; only valid for that image."""
    scale: float
    pad_x: int
    pad_y: int


@dataclass(frozen=True)
class Detection:
    """
    One decoded target. ``bbox`` and ``keypoints`` are in the pixel space of
    the image handed to the detector.
    """
    class_id: int
    confidence: float
    bbox: Rect
    frame_id: int = -1
    keypoints: Tuple[Point, ...] = field(default_factory=tuple)

    @property
    def center(self) -> Point:
        return rect_center(self.bbox)

    def shifted(self, dx: int, dy: int) -> "Detection":
        """Same detection moved by (dx, dy), e.g. ROI → full frame."""
        x, y, w, h = self.bbox
        return Detection(
            class_id=self.class_id,
            confidence=self.confidence,
            bbox=(x + dx, y + dy, w, h),
            frame_id=self.frame_id,
            keypoints=tuple((kx + dx, ky + dy) for kx, ky in self.keypoints),
        )


class TrackMode(str, Enum):
    SEARCHING = "SEARCHING"
    TRACKING = "TRACKING"


@dataclass(frozen=True)
class FrameResult:
    """
    A single-frame snapshot of the tracking loop, handed to the debug sink.
    ``roi`` is None while searching; ``detections`` are the ones that passed
    the current mode's filter.
    """
    frame_id: int
    mode: TrackMode
    roi: Optional[Rect]
    detections: Tuple[Detection, ...]
    target: Optional[Detection]
    lost_count: int
    velocity: Point
