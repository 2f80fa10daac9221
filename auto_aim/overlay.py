"""Debug drawing: ROI, detections and FPS on top of the camera frame."""
from typing import Tuple

import cv2
import numpy as np

from auto_aim.common import FrameResult, TrackMode

ROI_COLOR = (0, 255, 255)
RED = (0, 0, 255)
BLUE = (255, 0, 0)
FPS_COLOR = (0, 255, 0)


def class_color(class_id: int) -> Tuple[int, int, int]:
    # ids 7‒14 are the red team
    return RED if 7 <= class_id <= 14 else BLUE


def draw_overlay(img: np.ndarray, res: FrameResult, fps: float) -> np.ndarray:
    """Draws in place and returns ``img``."""
    if res.roi is not None and res.mode == TrackMode.TRACKING:
        x, y, w, h = res.roi
        cv2.rectangle(img, (x, y), (x + w, y + h), ROI_COLOR, 2)
        cv2.putText(img, "ROI TRACK", (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, ROI_COLOR, 1)

    for det in res.detections:
        x, y, w, h = det.bbox
        color = class_color(det.class_id)
        cv2.rectangle(img, (x, y), (x + w, y + h), color, 2)
        label = f"{det.class_id} {int(det.confidence * 100)}%"
        cv2.putText(img, label, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
        for kx, ky in det.keypoints:
            cv2.circle(img, (int(kx), int(ky)), 3, color, -1)

    cv2.putText(img, f"FPS: {int(fps)}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1, FPS_COLOR, 2)
    if res.mode == TrackMode.SEARCHING:
        cv2.putText(
            img, "SEARCHING", (img.shape[1] - 160, 30),
            cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 165, 255), 2,
        )
    return img
