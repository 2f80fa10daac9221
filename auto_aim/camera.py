# camera.py
"""Thin VideoCapture wrapper with manual exposure / gain control."""

from __future__ import annotations

import time
from typing import Optional, Tuple

import cv2
import numpy as np

from auto_aim.common import AcquisitionTimeout
from auto_aim.config import CameraConfig

MIN_EXPOSURE = 100.0
GAIN_RANGE = (0.0, 20.0)


def to_bgr(frame: np.ndarray) -> np.ndarray:
    """Gray / BGRA → 3-channel BGR; BGR passes through."""
    if frame.ndim == 2 or (frame.ndim == 3 and frame.shape[2] == 1):
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.ndim == 3 and frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame


class Camera:
    def __init__(self, config: CameraConfig) -> None:
        self.config = config
        self.cap: Optional[cv2.VideoCapture] = None

        # Exposed runtime-queryable values
        self.actual_width: int = 0
        self.actual_height: int = 0
        self.actual_fps: float = 0.0
        self.actual_fourcc_str: str = ""
        self.exposure: Optional[float] = config.exposure
        self.gain: Optional[float] = config.gain

    # ------------------------------------------------------------------ #
    #   I N T E R N A L   H E L P E R S
    # ------------------------------------------------------------------ #
    @staticmethod
    def _get_fourcc_str(fourcc_val: int) -> str:
        if fourcc_val == 0:
            return ""
        return "".join(chr((fourcc_val >> (8 * i)) & 0xFF) for i in range(4))

    # ------------------------------------------------------------------ #
    #   P U B L I C   A P I
    # ------------------------------------------------------------------ #
    def open(self) -> bool:
        """Open camera, apply resolution/fps and switch to manual exposure."""
        self.release()
        backend = cv2.CAP_V4L2 if self.config.use_v4l2 else 0
        self.cap = cv2.VideoCapture(self.config.device_index, backend)
        if not self.cap or not self.cap.isOpened():
            print(f"[Camera] Could not open device {self.config.device_index}")
            self.cap = None
            return False

        if self.config.fourcc_str:
            self.cap.set(
                cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*self.config.fourcc_str)
            )
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        if self.config.fps_request > 0:
            self.cap.set(cv2.CAP_PROP_FPS, self.config.fps_request)

        # Manual exposure and gain
        if self.exposure is not None:
            self.cap.set(cv2.CAP_PROP_AUTO_EXPOSURE, 1)
            self.set_exposure(self.exposure)
        if self.gain is not None:
            self.set_gain(self.gain)

        time.sleep(0.1)  # Let driver settle

        self.actual_fourcc_str = self._get_fourcc_str(
            int(self.cap.get(cv2.CAP_PROP_FOURCC))
        )
        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = self.cap.get(cv2.CAP_PROP_FPS)

        print(
            f"[Camera] {self.actual_width}x{self.actual_height}@{self.actual_fps:.1f} FPS "
            f"(FOURCC='{self.actual_fourcc_str}')"
        )
        if self.actual_width == 0 or self.actual_height == 0:
            print("[Camera] Error: camera returned zero resolution")
            self.release()
            return False
        return True

    def set_exposure(self, value: float) -> None:
        value = max(MIN_EXPOSURE, float(value))
        self.exposure = value
        if self.is_opened():
            self.cap.set(cv2.CAP_PROP_EXPOSURE, value)

    def set_gain(self, value: float) -> None:
        value = min(max(GAIN_RANGE[0], float(value)), GAIN_RANGE[1])
        self.gain = value
        if self.is_opened():
            self.cap.set(cv2.CAP_PROP_GAIN, value)

    # ------------------------------------------------------------------ #
    #   F R A M E S
    # ------------------------------------------------------------------ #
    def try_get_frame(self) -> np.ndarray:
        """
        Blocking read of the next BGR frame.

        Raises AcquisitionTimeout when the device is closed, returns nothing,
        or takes longer than ``read_timeout_s``.
        """
        if not self.is_opened():
            raise AcquisitionTimeout("camera is not open")
        t0 = time.monotonic()
        ret, frame = self.cap.read()
        elapsed = time.monotonic() - t0
        if not ret or frame is None or frame.size == 0:
            raise AcquisitionTimeout("camera returned no frame")
        if elapsed > self.config.read_timeout_s:
            raise AcquisitionTimeout(f"frame took {elapsed * 1000:.0f} ms")
        return to_bgr(frame)

    def is_opened(self) -> bool:
        return bool(self.cap and self.cap.isOpened())

    def release(self) -> None:
        if self.cap:
            print("[Camera] Releasing capture device")
            self.cap.release()
            self.cap = None

    # Convenience for other modules
    def get_properties(self) -> Tuple[int, int, float, str]:
        return (
            self.actual_width,
            self.actual_height,
            self.actual_fps,
            self.actual_fourcc_str,
        )
