"""Estimator health gate for the visual-inertial pose filter.

Called once per estimator update. Decides whether the filter output
can be trusted and whether a hard reset should be requested, and keeps
the most recent pose that looked trustworthy (the failsafe pose) so the
host can re-initialize from it.

Signals:
- Velocity norm: a diverging filter typically reports absurd speeds
- Median feature pixel covariance area: tracking quality of the
  landmarks currently in the state

Feature uncertainty only counts while moving. A hovering platform with
noisy features is not necessarily diverging.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable

import numpy as np

from monitor.config import HealthMonitorConfig
from monitor.diagnostics import (
    EVENT_FAULT_COUNTER,
    EVENT_RESET,
    DiagnosticEvent,
    DiagnosticSink,
    LoggingSink,
)
from shared.pose import EstimatorSnapshot, Quaternion

logger = logging.getLogger(__name__)


def feature_cov_median(areas: Iterable[float] | np.ndarray) -> float:
    """Median of the feature pixel covariance areas, 0.0 when empty.

    Uses selection rather than a full sort and takes the element at
    index len // 2, so even-sized inputs yield the upper of the two
    middle values. The input is never reordered.
    """
    if isinstance(areas, np.ndarray):
        values = areas.astype(np.float64, copy=False).reshape(-1)
    else:
        values = np.fromiter(areas, dtype=np.float64)
    if values.size == 0:
        return 0.0
    middle = values.size // 2
    return float(np.partition(values, middle)[middle])


@dataclass(slots=True)
class FailsafePose:
    """Last pose judged healthy enough to fall back to."""
    position_W: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation_BW: Quaternion = field(default_factory=Quaternion.identity)
    cov_area_median: float = 0.0

    def copy(self) -> FailsafePose:
        return replace(self, position_W=self.position_W.copy())


@dataclass(frozen=True, slots=True)
class CycleAssessment:
    """Everything the monitor derived during one evaluation."""
    speed: float
    cov_area_median: float
    unhealthy: bool
    streak: int
    should_reset: bool
    failsafe_updated: bool


class HealthMonitor:
    """Counter-based reset gate with failsafe pose retention.

    Not thread-safe: call from one thread, once per estimator cycle,
    in cycle order. Guard the failsafe accessors externally if another
    thread reads them.

    Usage:
        monitor = HealthMonitor(HealthMonitorConfig(enabled=True))
        if monitor.enabled and monitor.should_reset_estimator(areas, snapshot):
            estimator.reset(monitor.failsafe_position, monitor.failsafe_orientation)
    """

    def __init__(
        self,
        config: HealthMonitorConfig | None = None,
        sink: DiagnosticSink | None = None,
    ):
        self._config = config or HealthMonitorConfig()
        self._sink = sink or LoggingSink()
        self._failsafe = FailsafePose()
        self._num_unhealthy = 0
        self._last: CycleAssessment | None = None

        for warning in self._config.ordering_warnings():
            logger.warning("Health monitor thresholds out of expected order: %s", warning)

    @property
    def config(self) -> HealthMonitorConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def unhealthy_streak(self) -> int:
        """Consecutive unhealthy updates since the last healthy one."""
        return self._num_unhealthy

    @property
    def failsafe_position(self) -> np.ndarray:
        return self._failsafe.position_W.copy()

    @property
    def failsafe_orientation(self) -> Quaternion:
        return self._failsafe.orientation_BW

    @property
    def failsafe_pose(self) -> FailsafePose:
        return self._failsafe.copy()

    @property
    def last_assessment(self) -> CycleAssessment | None:
        """Details of the most recent evaluation, None before the first."""
        return self._last

    def is_unhealthy(self, speed: float, cov_area_median: float) -> bool:
        cfg = self._config
        return speed > cfg.velocity_to_consider_static and (
            speed > cfg.unhealthy_velocity
            or cov_area_median > cfg.unhealthy_feature_pixel_cov_area
        )

    def should_reset_estimator(
        self,
        feature_pixel_cov_areas: Iterable[float] | np.ndarray,
        snapshot: EstimatorSnapshot,
    ) -> bool:
        """Evaluate one estimator cycle.

        Args:
            feature_pixel_cov_areas: covariance ellipse area per tracked feature
            snapshot: estimator output for this cycle

        Returns:
            True if a reset is recommended. Stays True on every further
            unhealthy cycle until a healthy one is seen.
        """
        cfg = self._config
        median = feature_cov_median(feature_pixel_cov_areas)
        speed = snapshot.speed

        should_reset = False
        failsafe_updated = False
        unhealthy = self.is_unhealthy(speed, median)

        if unhealthy:
            self._num_unhealthy += 1
            self._emit(EVENT_FAULT_COUNTER, speed, median)

            # Counter is left as is; the host must see a healthy cycle to clear it.
            if self._num_unhealthy > cfg.max_subsequent_unhealthy_updates:
                self._emit(EVENT_RESET, speed, median)
                should_reset = True
        else:
            if (
                median < cfg.healthy_feature_pixel_cov_area
                and abs(median - self._failsafe.cov_area_median)
                < cfg.healthy_feature_pixel_cov_area_increment
            ):
                self._failsafe.position_W = snapshot.position_W.copy()
                self._failsafe.orientation_BW = snapshot.orientation_BW
                self._failsafe.cov_area_median = median
                failsafe_updated = True
            self._num_unhealthy = 0

        self._last = CycleAssessment(
            speed=speed,
            cov_area_median=median,
            unhealthy=unhealthy,
            streak=self._num_unhealthy,
            should_reset=should_reset,
            failsafe_updated=failsafe_updated,
        )
        return should_reset

    evaluate = should_reset_estimator

    def _emit(self, kind: str, speed: float, median: float) -> None:
        cfg = self._config
        self._sink.record(DiagnosticEvent(
            kind=kind,
            streak=self._num_unhealthy,
            max_streak=cfg.max_subsequent_unhealthy_updates,
            speed=speed,
            speed_limit=cfg.unhealthy_velocity,
            cov_area_median=median,
            cov_area_limit=cfg.unhealthy_feature_pixel_cov_area,
        ))
