"""Aspect-preserving resize + padding into the model input, and its inverse."""
from __future__ import annotations

from typing import Tuple, Union

import cv2
import numpy as np

from auto_aim.common import InvalidInput, LetterboxParams, Point, Rect

PAD_VALUE = 114  # YOLO training background

Size = Union[int, Tuple[int, int]]


def _as_wh(target_size: Size) -> Tuple[int, int]:
    if isinstance(target_size, int):
        return target_size, target_size
    return int(target_size[0]), int(target_size[1])


def prepare(image: np.ndarray, target_size: Size) -> Tuple[np.ndarray, LetterboxParams]:
    """
    Fit ``image`` into ``target_size`` (int or (w, h)) keeping its aspect.

    Returns the padded image and the parameters needed to map model-space
    coordinates back onto ``image``.
    """
    if image is None or image.ndim < 2:
        raise InvalidInput("letterbox: image has no pixel data")
    ih, iw = image.shape[:2]
    if iw == 0 or ih == 0:
        raise InvalidInput(f"letterbox: zero-sized image {iw}x{ih}")

    tw, th = _as_wh(target_size)
    scale = min(tw / iw, th / ih)
    nw = min(tw, max(1, int(round(iw * scale))))
    nh = min(th, max(1, int(round(ih * scale))))

    pad_x = (tw - nw) // 2
    pad_y = (th - nh) // 2

    if (nw, nh) != (iw, ih):
        resized = cv2.resize(image, (nw, nh), interpolation=cv2.INTER_LINEAR)
    else:
        resized = image
    padded = cv2.copyMakeBorder(
        resized,
        pad_y, th - nh - pad_y,
        pad_x, tw - nw - pad_x,
        cv2.BORDER_CONSTANT,
        value=(PAD_VALUE, PAD_VALUE, PAD_VALUE),
    )
    return padded, LetterboxParams(scale=scale, pad_x=pad_x, pad_y=pad_y)


def to_source_rect(
    cx: float,
    cy: float,
    w: float,
    h: float,
    params: LetterboxParams,
    image_size: Tuple[int, int],
) -> Rect:
    """
    Model-space (cx, cy, w, h) → source (x, y, w, h), clipped so the box
    stays inside ``image_size`` = (width, height).
    """
    iw, ih = image_size
    s = params.scale
    left = int(round((cx - 0.5 * w - params.pad_x) / s))
    top = int(round((cy - 0.5 * h - params.pad_y) / s))
    width = int(round(w / s))
    height = int(round(h / s))

    left = min(max(0, left), iw - 1)
    top = min(max(0, top), ih - 1)
    width = max(0, min(width, iw - left))
    height = max(0, min(height, ih - top))
    return left, top, width, height


def to_source_point(
    x: float,
    y: float,
    params: LetterboxParams,
    image_size: Tuple[int, int],
) -> Point:
    iw, ih = image_size
    sx = (x - params.pad_x) / params.scale
    sy = (y - params.pad_y) / params.scale
    return (min(max(0.0, sx), iw - 1.0), min(max(0.0, sy), ih - 1.0))
