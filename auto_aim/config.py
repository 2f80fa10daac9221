"""Typed configuration blobs for the whole system."""
from dataclasses import dataclass, field
from typing import List, Optional


# ---------------------- Camera ----------------------
@dataclass
class CameraConfig:
    device_index: int = 0
    width: int = 1280
    height: int = 1024
    fps_request: int = 200
    use_v4l2: bool = True
    fourcc_str: str = "MJPG"
    read_timeout_s: float = 1.0
    exposure: Optional[float] = 3000.0   # None = leave driver default
    gain: Optional[float] = 12.0         # 0‒20


# --------------------- Detector ---------------------
@dataclass
class DetectorConfig:
    model_path: str = "models/best.onnx"
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    conf_threshold: float = 0.50
    nms_threshold: float = 0.45
    num_keypoints: int = 0               # >0 only for pose models


# ---------------------- Tracker ---------------------
@dataclass
class TrackerConfig:
    search_conf: float = 0.40            # recall while nothing is locked
    track_conf: float = 0.60             # precision once locked
    roi_scale: float = 2.0
    max_lost: int = 10
    min_roi_side: int = 128
    velocity_filter: str = "difference"  # "difference" | "kalman"
    # Only used by the kalman estimator (pixels / frame units)
    measurement_noise_std: float = 3.0
    process_noise_std: float = 2.0


# ---------------------- Display ---------------------
@dataclass
class DisplayConfig:
    enabled: bool = True
    window_name: str = "Auto Aim"
    exposure_step: float = 500.0
