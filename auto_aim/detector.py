"""Letterbox → inference → decode for one frame or one ROI of it."""
from __future__ import annotations

from typing import List, Optional

import numpy as np

from auto_aim.common import Detection, Rect
from auto_aim.config import DetectorConfig
from auto_aim.decoder import decode
from auto_aim.inference import blob_from_image
from auto_aim.letterbox import prepare


class YoloDetector:
    """
    ``engine`` needs ``input_size`` (w, h), ``num_classes`` and
    ``run(blob) -> raw``; see :class:`auto_aim.inference.OnnxEngine`.
    Thresholds are read from ``config`` on every call so live tuning applies.
    """

    def __init__(self, engine, config: DetectorConfig):
        self.engine = engine
        self.config = config

    def detect(self, frame_bgr: np.ndarray, frame_id: int = -1) -> List[Detection]:
        """Returns detections for the whole frame, NMS order (best first)."""
        if frame_bgr is None or frame_bgr.size == 0:
            return []
        padded, params = prepare(frame_bgr, self.engine.input_size)
        raw = self.engine.run(blob_from_image(padded))
        ih, iw = frame_bgr.shape[:2]
        return decode(
            raw,
            num_classes=self.engine.num_classes,
            conf_threshold=self.config.conf_threshold,
            nms_threshold=self.config.nms_threshold,
            params=params,
            image_size=(iw, ih),
            frame_id=frame_id,
            num_keypoints=self.config.num_keypoints,
        )

    def detect_in(
        self,
        frame_bgr: np.ndarray,
        region: Optional[Rect] = None,
        frame_id: int = -1,
    ) -> List[Detection]:
        """
        Detect inside ``region`` (already clamped to the frame) and return
        boxes in full-frame coordinates.
        """
        if region is None:
            return self.detect(frame_bgr, frame_id)
        if frame_bgr is None or frame_bgr.size == 0:
            return []
        x, y, w, h = region
        crop = np.ascontiguousarray(frame_bgr[y:y + h, x:x + w])
        if crop.size == 0:
            return []
        return [d.shifted(x, y) for d in self.detect(crop, frame_id)]
