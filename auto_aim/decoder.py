"""YOLOv8-style output decoding: score filter → letterbox inverse → NMS."""
from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from auto_aim.common import Detection, InvalidInput, LetterboxParams, Rect
from auto_aim.letterbox import to_source_point, to_source_rect


def iou(a: Rect, b: Rect) -> float:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    iw = min(ax + aw, bx + bw) - max(ax, bx)
    ih = min(ay + ah, by + bh) - max(ay, by)
    if iw <= 0 or ih <= 0:
        return 0.0
    inter = iw * ih
    union = aw * ah + bw * bh - inter
    return inter / union if union > 0 else 0.0


def nms(boxes: Sequence[Rect], scores: Sequence[float], iou_thr: float) -> List[int]:
    """
    Greedy class-agnostic NMS. Returns kept indices, best first.

    Equal scores keep input order, so the earlier anchor wins.
    """
    if len(boxes) == 0:
        return []
    xywh = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    x1, y1 = xywh[:, 0], xywh[:, 1]
    x2, y2 = x1 + xywh[:, 2], y1 + xywh[:, 3]
    areas = xywh[:, 2] * xywh[:, 3]

    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    keep: List[int] = []
    while order.size:
        i = int(order[0])
        keep.append(i)
        rest = order[1:]
        iw = np.clip(np.minimum(x2[i], x2[rest]) - np.maximum(x1[i], x1[rest]), 0, None)
        ih = np.clip(np.minimum(y2[i], y2[rest]) - np.maximum(y1[i], y1[rest]), 0, None)
        inter = iw * ih
        union = areas[i] + areas[rest] - inter
        overlap = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)
        order = rest[overlap <= iou_thr]
    return keep


def decode(
    raw: np.ndarray,
    num_classes: int,
    conf_threshold: float,
    nms_threshold: float,
    params: LetterboxParams,
    image_size: Tuple[int, int],
    frame_id: int = -1,
    num_keypoints: int = 0,
) -> List[Detection]:
    """
    Turn one raw output tensor into detections on the source image.

    ``raw`` is channel-major, ``(4 + num_classes + 3 * num_keypoints,
    num_anchors)``, optionally with a leading batch axis of 1. Each anchor
    holds (cx, cy, w, h) in model pixels, then independent class scores,
    then (x, y, visibility) per keypoint. ``image_size`` is (width, height).
    """
    out = np.asarray(raw)
    if out.ndim == 3 and out.shape[0] == 1:
        out = out[0]
    expected = 4 + num_classes + 3 * num_keypoints
    if out.ndim != 2 or out.shape[0] != expected:
        raise InvalidInput(
            f"decoder: expected output ({expected}, anchors), got {tuple(np.shape(raw))}"
        )

    rows = out.T  # (anchors, channels) view
    scores = rows[:, 4:4 + num_classes]
    class_ids = np.argmax(scores, axis=1)
    confs = scores[np.arange(rows.shape[0]), class_ids]
    idx = np.flatnonzero(confs > conf_threshold)
    if idx.size == 0:
        return []

    boxes = [
        to_source_rect(
            float(rows[i, 0]), float(rows[i, 1]),
            float(rows[i, 2]), float(rows[i, 3]),
            params, image_size,
        )
        for i in idx
    ]
    kept = nms(boxes, confs[idx], nms_threshold)

    results: List[Detection] = []
    for k in kept:
        i = idx[k]
        kpts: Tuple = ()
        if num_keypoints:
            raw_k = rows[i, 4 + num_classes:].reshape(num_keypoints, 3)
            kpts = tuple(
                to_source_point(float(kx), float(ky), params, image_size)
                for kx, ky, _ in raw_k
            )
        results.append(
            Detection(
                class_id=int(class_ids[i]),
                confidence=float(confs[i]),
                bbox=boxes[k],
                frame_id=frame_id,
                keypoints=kpts,
            )
        )
    return results
