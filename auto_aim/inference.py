"""ONNX Runtime engine: one session, loaded once, reused for every frame."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import cv2
import numpy as np
import onnxruntime as ort

from auto_aim.common import ModelLoadFailure


def blob_from_image(img_bgr: np.ndarray) -> np.ndarray:
    """HWC BGR uint8 → NCHW RGB float32 in [0, 1]."""
    return cv2.dnn.blobFromImage(img_bgr, 1.0 / 255.0, swapRB=True, crop=False)


class OnnxEngine:
    """
    Thin wrapper around ``ort.InferenceSession``.

    Input size and class count are read from the model once. Not thread-safe;
    the pipeline calls it from a single loop.
    """

    def __init__(
        self,
        model_path: str | Path,
        providers: Optional[Sequence[str]] = None,
        num_keypoints: int = 0,
    ) -> None:
        path = Path(model_path).expanduser()
        if not path.is_file():
            raise ModelLoadFailure(f"model file not found: {path}")

        so = ort.SessionOptions()
        so.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        try:
            self.session = ort.InferenceSession(
                str(path),
                sess_options=so,
                providers=list(providers or ["CPUExecutionProvider"]),
            )
        except Exception as exc:  # noqa: BLE001
            raise ModelLoadFailure(f"cannot load {path}: {exc}") from exc

        inp = self.session.get_inputs()[0]
        out = self.session.get_outputs()[0]
        self.input_name: str = inp.name

        in_shape: List = list(inp.shape)
        out_shape: List = list(out.shape)
        if len(in_shape) != 4 or not all(isinstance(d, int) for d in in_shape[2:]):
            raise ModelLoadFailure(f"unsupported input shape {in_shape}")
        if len(out_shape) != 3 or not isinstance(out_shape[1], int):
            raise ModelLoadFailure(f"unsupported output shape {out_shape}")

        self.input_h: int = int(in_shape[2])
        self.input_w: int = int(in_shape[3])
        self.num_keypoints = num_keypoints
        self.num_classes: int = int(out_shape[1]) - 4 - 3 * num_keypoints
        if self.num_classes <= 0:
            raise ModelLoadFailure(
                f"output has {out_shape[1]} channels, too few for "
                f"{num_keypoints} keypoints"
            )

        print(
            f"[Engine] {path.name}: input {self.input_w}x{self.input_h}, "
            f"{self.num_classes} classes, providers={self.session.get_providers()}"
        )

    @property
    def input_size(self) -> tuple:
        return (self.input_w, self.input_h)

    def run(self, blob: np.ndarray) -> np.ndarray:
        """[1, 3, H, W] float32 → raw output [1, channels, anchors]."""
        outputs = self.session.run(None, {self.input_name: blob})
        return np.asarray(outputs[0], dtype=np.float32)
