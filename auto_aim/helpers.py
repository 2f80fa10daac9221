"""Small utility classes that don’t fit elsewhere."""
from __future__ import annotations

import time
from typing import Optional

import numpy as np
from filterpy.common import Q_discrete_white_noise
from filterpy.kalman import KalmanFilter

from auto_aim.common import Point
from auto_aim.config import TrackerConfig


class DifferenceVelocity:
    """Velocity = new center − previous matched center, per frame."""

    def __init__(self) -> None:
        self.center: Optional[Point] = None

    def start(self, center: Point) -> Point:
        self.center = center
        return (0.0, 0.0)

    def update(self, center: Point) -> Point:
        if self.center is None:
            return self.start(center)
        vx = center[0] - self.center[0]
        vy = center[1] - self.center[1]
        self.center = center
        return (vx, vy)

    def coast(self) -> None:
        pass


class KalmanVelocity:
    """
    Constant-velocity Kalman filter over the target center, Δt = 1 frame.
    Missed frames only run the predict step.
    """

    def __init__(self, cfg: TrackerConfig) -> None:
        self.cfg = cfg
        self.kf = KalmanFilter(dim_x=4, dim_z=2)
        self.kf.F = np.array(
            [
                [1, 0, 1, 0],
                [0, 1, 0, 1],
                [0, 0, 1, 0],
                [0, 0, 0, 1],
            ],
            dtype=float,
        )
        self.kf.H = np.array([[1, 0, 0, 0], [0, 1, 0, 0]], dtype=float)
        self._reset_noise()

    def _reset_noise(self) -> None:
        mvar = self.cfg.measurement_noise_std**2
        self.kf.R = np.diag([mvar, mvar])
        self.kf.Q = Q_discrete_white_noise(
            dim=2, dt=1.0, var=self.cfg.process_noise_std**2,
            order_by_dim=False, block_size=2,
        )

    def start(self, center: Point) -> Point:
        self._reset_noise()
        self.kf.x = np.array([[center[0]], [center[1]], [0.0], [0.0]])
        mvar = self.cfg.measurement_noise_std**2
        # Unknown velocity at lock time
        vvar = max(mvar, self.cfg.process_noise_std**2) * 100.0
        self.kf.P = np.diag([mvar, mvar, vvar, vvar])
        return (0.0, 0.0)

    def update(self, center: Point) -> Point:
        self.kf.predict()
        self.kf.update(np.array([[center[0]], [center[1]]]))
        return (float(self.kf.x[2, 0]), float(self.kf.x[3, 0]))

    def coast(self) -> None:
        self.kf.predict()


def make_velocity_estimator(cfg: TrackerConfig):
    if cfg.velocity_filter == "kalman":
        return KalmanVelocity(cfg)
    if cfg.velocity_filter == "difference":
        return DifferenceVelocity()
    raise ValueError(f"unknown velocity_filter {cfg.velocity_filter!r}")


class FpsCounter:
    """Frames per second over a rolling one-second window."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._start = clock()
        self._frames = 0
        self.fps = 0.0

    def tick(self) -> bool:
        """Count one frame; True when a new one-second figure is ready."""
        self._frames += 1
        now = self._clock()
        elapsed = now - self._start
        if elapsed >= 1.0:
            self.fps = self._frames / elapsed
            self._frames = 0
            self._start = now
            return True
        return False
