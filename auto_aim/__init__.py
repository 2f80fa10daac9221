"""Auto-aim package – re-export high-level API."""
from .common import (                            # noqa: F401
    AcquisitionTimeout, Detection, FrameResult, InvalidInput,
    ModelLoadFailure, TrackMode,
)
from .config import (                            # noqa: F401
    CameraConfig, DetectorConfig, DisplayConfig, TrackerConfig,
)
from .detector import YoloDetector               # noqa: F401
from .tracker import TrackingStateMachine        # noqa: F401
