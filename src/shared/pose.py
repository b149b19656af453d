"""Pose and velocity value types shared by the monitor and the analysis tools.

Frame conventions follow the estimator output:
  - W: world (inertial) frame
  - B: IMU body frame
  - position_W is the body origin expressed in W (WrWB)
  - orientation_BW rotates vectors from W into B (qBW)
  - velocity_B is the body velocity expressed in B (BvB)

Quaternions are Hamilton, scalar first: (w, x, y, z).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np


def as_vector3(values: Iterable[float] | np.ndarray) -> np.ndarray:
    """Convert a 3-element sequence to a float64 array of shape (3,)."""
    vec = np.asarray(values, dtype=np.float64).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"Expected 3 components, got {vec.shape[0]}")
    return vec


@dataclass(frozen=True, slots=True)
class Quaternion:
    """Rotation quaternion, scalar first."""
    w: float = 1.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def identity(cls) -> Quaternion:
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, values: Iterable[float] | np.ndarray) -> Quaternion:
        w, x, y, z = (float(v) for v in np.asarray(values, dtype=np.float64).reshape(4))
        return cls(w, x, y, z)

    @classmethod
    def from_axis_angle(cls, axis: Iterable[float], angle_rad: float) -> Quaternion:
        a = as_vector3(axis)
        n = float(np.linalg.norm(a))
        if n == 0.0:
            return cls.identity()
        a = a / n
        s = math.sin(angle_rad / 2.0)
        return cls(math.cos(angle_rad / 2.0), a[0] * s, a[1] * s, a[2] * s)

    @property
    def norm(self) -> float:
        return math.sqrt(self.w * self.w + self.x * self.x + self.y * self.y + self.z * self.z)

    def normalized(self) -> Quaternion:
        n = self.norm
        if n == 0.0:
            return Quaternion.identity()
        return Quaternion(self.w / n, self.x / n, self.y / n, self.z / n)

    def to_array(self) -> np.ndarray:
        return np.array([self.w, self.x, self.y, self.z], dtype=np.float64)

    def angle_to(self, other: Quaternion) -> float:
        """Smallest rotation angle (radians) between two unit quaternions."""
        dot = abs(self.w * other.w + self.x * other.x + self.y * other.y + self.z * other.z)
        return 2.0 * math.acos(min(1.0, dot))


@dataclass(frozen=True, slots=True)
class EstimatorSnapshot:
    """Read-only view of one estimator output.

    Only the velocity magnitude and the pose are consumed by the
    health monitor.
    """
    velocity_B: np.ndarray = field(default_factory=lambda: np.zeros(3))
    position_W: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation_BW: Quaternion = field(default_factory=Quaternion.identity)

    @classmethod
    def create(
        cls,
        velocity: Iterable[float],
        position: Iterable[float] = (0.0, 0.0, 0.0),
        orientation: Quaternion | Iterable[float] | None = None,
    ) -> EstimatorSnapshot:
        """Build a snapshot from plain sequences."""
        if orientation is None:
            q = Quaternion.identity()
        elif isinstance(orientation, Quaternion):
            q = orientation
        else:
            q = Quaternion.from_array(orientation)
        return cls(
            velocity_B=as_vector3(velocity),
            position_W=as_vector3(position),
            orientation_BW=q,
        )

    @property
    def speed(self) -> float:
        """Euclidean norm of the body velocity (m/s)."""
        return float(np.linalg.norm(self.velocity_B))
