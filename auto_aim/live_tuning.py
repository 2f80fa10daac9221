# live_tuning.py
"""Hot-reload of detector / tracker parameters from a JSON file."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

from auto_aim.config import DetectorConfig, TrackerConfig


def _unit(v: Any) -> float:
    v = float(v)
    if not 0.0 <= v <= 1.0:
        raise ValueError("must be within [0, 1]")
    return v


def _positive(v: Any) -> float:
    v = float(v)
    if v <= 0:
        raise ValueError("must be > 0")
    return v


def _non_negative_int(v: Any) -> int:
    v = int(v)
    if v < 0:
        raise ValueError("must be >= 0")
    return v


def _side(v: Any) -> int:
    v = int(v)
    if v < 1:
        raise ValueError("must be >= 1")
    return v


def _velocity_filter(v: Any) -> str:
    v = str(v)
    if v not in ("difference", "kalman"):
        raise ValueError("must be 'difference' or 'kalman'")
    return v


# key → (config section, validator)
TUNABLE: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "conf_threshold": ("detector", _unit),
    "nms_threshold": ("detector", _unit),
    "search_conf": ("tracker", _unit),
    "track_conf": ("tracker", _unit),
    "roi_scale": ("tracker", _positive),
    "max_lost": ("tracker", _non_negative_int),
    "min_roi_side": ("tracker", _side),
    "velocity_filter": ("tracker", _velocity_filter),
}


class RuntimeParamWatcher:
    """Watch a JSON file and hot-reload its contents when it changes."""

    def __init__(self, path: str | Path = "runtime_params.json") -> None:
        self.path = Path(path).expanduser().resolve()
        self._stamp: Tuple[float, int] = (0.0, -1)  # (mtime, size)
        self.params: Dict[str, Any] = {}

        print(f"[Runtime] Watching: {self.path}")
        self._load(initial=True)

    # ------------------------------------------------------------------
    #   Internal helpers
    # ------------------------------------------------------------------
    def _load(self, *, initial: bool = False) -> None:
        try:
            # Broken files are reported once per change
            stat = self.path.stat()
            self._stamp = (stat.st_mtime, stat.st_size)
            with self.path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except FileNotFoundError:
            if initial:
                print(
                    f"[Runtime] {self.path} not found – live-tuning disabled "
                    "(create the file to enable)."
                )
            else:
                print(f"[Runtime] {self.path} was deleted – keeping old params.")
            return
        except (OSError, json.JSONDecodeError) as exc:
            print(f"[Runtime] Failed to read {self.path}: {exc}")
            return

        if not isinstance(data, dict):
            print(f"[Runtime] {self.path} must hold a JSON object – ignored.")
            return
        self.params = data
        if not initial:
            print(f"[Runtime] Reloaded parameters from {self.path}")

    # ------------------------------------------------------------------
    #   Public API
    # ------------------------------------------------------------------
    def maybe_reload(self) -> bool:
        """
        If the watched file changed since the last call reload it and
        return **True**, else return **False**.
        """
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return False

        mtime, fsize = self._stamp
        if stat.st_size != fsize or stat.st_mtime != mtime:
            self._load()
            return True
        return False


def apply_params(
    params: Dict[str, Any],
    detector_cfg: DetectorConfig,
    tracker_cfg: TrackerConfig,
) -> Dict[str, Any]:
    """
    Push known keys into the config blobs. Bad values keep the old setting.
    Returns the keys that were changed.
    """
    sections = {"detector": detector_cfg, "tracker": tracker_cfg}
    changed: Dict[str, Any] = {}
    for key, raw in params.items():
        if key not in TUNABLE:
            continue
        section, validate = TUNABLE[key]
        target = sections[section]
        try:
            value = validate(raw)
        except (TypeError, ValueError) as exc:
            print(f"[Runtime] Rejected {key}={raw!r}: {exc}")
            continue
        if getattr(target, key) != value:
            setattr(target, key, value)
            changed[key] = value
    return changed
