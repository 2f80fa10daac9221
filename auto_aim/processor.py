# processor.py
"""Glue logic that wires camera → tracker state machine → debug display.

Live-tuning
-----------
Edit ``runtime_params.json`` while the program is running to change the
detector thresholds (``conf_threshold``, ``nms_threshold``) or the tracker
settings (``search_conf``, ``track_conf``, ``roi_scale``, ``max_lost``,
``min_roi_side``, ``velocity_filter``). Updates take effect on the next frame.
"""
from __future__ import annotations

import time
import traceback
from typing import Optional

import cv2
import numpy as np

from auto_aim.camera import Camera
from auto_aim.common import AcquisitionTimeout, FrameResult, InvalidInput
from auto_aim.config import CameraConfig, DetectorConfig, DisplayConfig, TrackerConfig
from auto_aim.detector import YoloDetector
from auto_aim.helpers import FpsCounter
from auto_aim.inference import OnnxEngine
from auto_aim.live_tuning import RuntimeParamWatcher, apply_params
from auto_aim.overlay import draw_overlay
from auto_aim.tracker import TrackingStateMachine

KEY_ESC = 27


class TargetingProcessor:
    """The main high-level orchestrator."""

    # ------------------------------------------------------------------ #
    #   I N I T
    # ------------------------------------------------------------------ #
    def __init__(
        self,
        camera_cfg: CameraConfig,
        detector_cfg: DetectorConfig,
        tracker_cfg: TrackerConfig,
        display_cfg: DisplayConfig,
        params_path: Optional[str] = "runtime_params.json",
        *,
        camera=None,
        engine=None,
    ):
        # Config blobs --------------------------------------------------
        self.camera_cfg = camera_cfg
        self.detector_cfg = detector_cfg
        self.tracker_cfg = tracker_cfg
        self.display_cfg = display_cfg

        # Collaborators (injectable) ------------------------------------
        self.camera = camera if camera is not None else Camera(camera_cfg)
        self.engine = engine
        self.tracker: Optional[TrackingStateMachine] = None

        # Stats ---------------------------------------------------------
        self.fps = FpsCounter()
        self.frame_id = 0
        self.skipped_frames = 0
        self.last_result: Optional[FrameResult] = None

        self.cam_reopens = 0
        self.max_cam_reopens = 5
        self.camera_lost = False
        self.gap_delay_s = 0.05

        # Live-tuning ---------------------------------------------------
        self.param_watcher = (
            RuntimeParamWatcher(params_path) if params_path else None
        )

    # ------------------------------------------------------------------ #
    #   L I V E   T U N I N G
    # ------------------------------------------------------------------ #
    def _apply_runtime_params(self, *, initial: bool = False) -> None:
        """Push JSON parameters into the detector & tracker config."""
        if self.param_watcher is None:
            return
        changed = apply_params(
            self.param_watcher.params, self.detector_cfg, self.tracker_cfg
        )
        if "velocity_filter" in changed and self.tracker is not None:
            self.tracker.set_velocity_filter(changed["velocity_filter"])
        if changed and not initial:
            print(f"[Runtime] Parameters updated: {changed}")

    # ------------------------------------------------------------------ #
    #   S E T U P / C L E A N U P
    # ------------------------------------------------------------------ #
    def setup(self) -> bool:
        """
        Load the model (ModelLoadFailure propagates) and open the camera.
        Returns False when the camera cannot be opened.
        """
        if self.engine is None:
            self.engine = OnnxEngine(
                self.detector_cfg.model_path,
                providers=self.detector_cfg.providers,
                num_keypoints=self.detector_cfg.num_keypoints,
            )
        self._apply_runtime_params(initial=True)
        detector = YoloDetector(self.engine, self.detector_cfg)
        self.tracker = TrackingStateMachine(detector, self.tracker_cfg)

        if not self.camera.open():
            return False
        self.cam_reopens = 0

        if self.display_cfg.enabled:
            cv2.namedWindow(self.display_cfg.window_name, cv2.WINDOW_NORMAL)
        print("[Processor] Setup complete – press 'q' or ESC to quit.")
        return True

    def cleanup(self) -> None:
        print("[Processor] Cleaning up...")
        self.camera.release()
        if self.display_cfg.enabled:
            cv2.destroyAllWindows()
        print(
            f"[Processor] Exited. Frames: {self.frame_id}, "
            f"skipped: {self.skipped_frames}"
        )

    # ------------------------------------------------------------------ #
    #   F R A M E   P R O C E S S I N G
    # ------------------------------------------------------------------ #
    def _on_acquisition_gap(self, exc: AcquisitionTimeout) -> None:
        """Skip this iteration; tracking state is left untouched."""
        self.skipped_frames += 1
        if self.skipped_frames == 1 or self.skipped_frames % 100 == 0:
            print(f"[Processor] No frame ({exc}); skipped {self.skipped_frames} so far")
        if not self.camera.is_opened() and self.cam_reopens < self.max_cam_reopens:
            self.cam_reopens += 1
            print(f"[Processor] Reopening camera ({self.cam_reopens}/{self.max_cam_reopens})")
            if self.camera.open():
                self.cam_reopens = 0
        elif not self.camera.is_opened():
            print(f"[Processor] Camera lost after {self.max_cam_reopens} reopen attempts")
            self.camera_lost = True
            return
        time.sleep(self.gap_delay_s)

    def process_frame(self) -> Optional[FrameResult]:
        """
        One loop iteration. Returns None when the frame was skipped.
        InvalidInput from the decoder propagates.
        """
        if self.param_watcher is not None and self.param_watcher.maybe_reload():
            self._apply_runtime_params()

        try:
            frame = self.camera.try_get_frame()
        except AcquisitionTimeout as exc:
            self._on_acquisition_gap(exc)
            return None
        if frame is None:
            self._on_acquisition_gap(AcquisitionTimeout("frame source returned None"))
            return None

        self.frame_id += 1
        result = self.tracker.step(frame, self.frame_id)
        self.last_result = result

        if self.fps.tick():
            print(f"[Processor] FPS: {self.fps.fps:.1f} mode={result.mode.value}")

        if self.display_cfg.enabled:
            self._show(frame, result)
        return result

    def _show(self, frame: np.ndarray, result: FrameResult) -> None:
        out = draw_overlay(frame.copy(), result, self.fps.fps)
        cv2.imshow(self.display_cfg.window_name, out)

    def _handle_key(self, key: int) -> bool:
        """Returns False when the user asked to quit."""
        if key in (ord("q"), KEY_ESC):
            return False
        exposure = getattr(self.camera, "exposure", None)
        if exposure is not None and hasattr(self.camera, "set_exposure"):
            if key in (ord("u"), ord("U")):
                self.camera.set_exposure(exposure + self.display_cfg.exposure_step)
                print(f"[Camera] Exposure {self.camera.exposure:.0f}")
            elif key in (ord("j"), ord("J")):
                self.camera.set_exposure(exposure - self.display_cfg.exposure_step)
                print(f"[Camera] Exposure {self.camera.exposure:.0f}")
        return True

    # ------------------------------------------------------------------ #
    #   P U B L I C   R U N
    # ------------------------------------------------------------------ #
    def run(self) -> None:
        if not self.setup():
            self.cleanup()
            return
        self.loop()

    def loop(self) -> None:
        """Process frames until quit, Ctrl-C, camera loss or bad model output."""
        try:
            while True:
                try:
                    self.process_frame()
                except InvalidInput as exc:
                    # Model/decoder contract violation
                    print(f"[Processor] Invalid model output: {exc}")
                    traceback.print_exc()
                    break
                if self.camera_lost:
                    break
                if self.display_cfg.enabled:
                    if not self._handle_key(cv2.waitKey(1) & 0xFF):
                        break
        except KeyboardInterrupt:
            print("\n[Processor] Stopped by user.")
        finally:
            self.cleanup()
