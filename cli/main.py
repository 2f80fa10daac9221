# main.py
"""
Entry-point for the auto-aim target acquisition loop.

Live-tuning
-----------
While the program is running you can edit ``runtime_params.json`` and the new
thresholds / ROI settings will take effect on the very next frame.  See
``auto_aim/live_tuning.py`` for the accepted keys.
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from auto_aim.common import ModelLoadFailure
from auto_aim.config import CameraConfig, DetectorConfig, DisplayConfig, TrackerConfig
from auto_aim.processor import TargetingProcessor


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="YOLO search/ROI-track auto-aim loop")
    p.add_argument("--model", default=DetectorConfig.model_path, help="ONNX model path")
    p.add_argument("--provider", action="append", dest="providers",
                   help="onnxruntime execution provider (repeatable)")
    p.add_argument("--keypoints", type=int, default=0, help="pose keypoints per anchor")
    p.add_argument("--camera", type=int, default=CameraConfig.device_index)
    p.add_argument("--width", type=int, default=CameraConfig.width)
    p.add_argument("--height", type=int, default=CameraConfig.height)
    p.add_argument("--conf", type=float, default=DetectorConfig.conf_threshold)
    p.add_argument("--nms", type=float, default=DetectorConfig.nms_threshold)
    p.add_argument("--search-conf", type=float, default=TrackerConfig.search_conf)
    p.add_argument("--track-conf", type=float, default=TrackerConfig.track_conf)
    p.add_argument("--roi-scale", type=float, default=TrackerConfig.roi_scale)
    p.add_argument("--max-lost", type=int, default=TrackerConfig.max_lost)
    p.add_argument("--min-roi", type=int, default=TrackerConfig.min_roi_side)
    p.add_argument("--velocity", choices=("difference", "kalman"),
                   default=TrackerConfig.velocity_filter)
    p.add_argument("--params", default="runtime_params.json",
                   help="live-tuning JSON file ('' to disable)")
    p.add_argument("--headless", action="store_true", help="no debug window")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    print("Initializing Auto-Aim System…")

    # -------------------- Config blobs --------------------
    cam_cfg = CameraConfig(device_index=args.camera, width=args.width, height=args.height)
    det_cfg = DetectorConfig(
        model_path=args.model,
        conf_threshold=args.conf,
        nms_threshold=args.nms,
        num_keypoints=args.keypoints,
    )
    if args.providers:
        det_cfg.providers = args.providers
    trk_cfg = TrackerConfig(
        search_conf=args.search_conf,
        track_conf=args.track_conf,
        roi_scale=args.roi_scale,
        max_lost=args.max_lost,
        min_roi_side=args.min_roi,
        velocity_filter=args.velocity,
    )
    disp_cfg = DisplayConfig(enabled=not args.headless)

    # ------------------------ Banner ----------------------
    print(
        f"Camera: idx={cam_cfg.device_index}, "
        f"{cam_cfg.width}x{cam_cfg.height}@{cam_cfg.fps_request} FPS"
    )
    print(
        f"Detector: model={det_cfg.model_path}, conf={det_cfg.conf_threshold}, "
        f"nms={det_cfg.nms_threshold}"
    )
    print(
        f"Tracker: search={trk_cfg.search_conf}, track={trk_cfg.track_conf}, "
        f"roi_scale={trk_cfg.roi_scale}, max_lost={trk_cfg.max_lost}, "
        f"min_roi={trk_cfg.min_roi_side}px, velocity={trk_cfg.velocity_filter}"
    )
    if args.params:
        print(f"Hint: edit '{args.params}' at any time to tweak parameters.\n")

    # ------------------------ Run -------------------------
    processor = TargetingProcessor(
        cam_cfg, det_cfg, trk_cfg, disp_cfg, params_path=args.params or None
    )
    try:
        if not processor.setup():
            processor.cleanup()
            print("Camera unavailable, exiting.", file=sys.stderr)
            return 1
    except ModelLoadFailure as exc:
        print(f"[Engine] Model load failed: {exc}", file=sys.stderr)
        return 1

    processor.loop()
    print("Main program finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
