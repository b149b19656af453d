"""Diagnostic events emitted by the health monitor.

The monitor never prints. It hands each noteworthy decision to a sink,
which may log it, store it for tests, or forward it to a telemetry
downlink.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

EVENT_FAULT_COUNTER = "fault_counter"
EVENT_RESET = "reset"


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """One monitor decision worth reporting."""
    kind: str                   # EVENT_FAULT_COUNTER or EVENT_RESET
    streak: int                 # consecutive unhealthy updates so far
    max_streak: int             # max_subsequent_unhealthy_updates
    speed: float                # velocity norm (m/s)
    speed_limit: float          # unhealthy_velocity
    cov_area_median: float      # median feature pixel covariance area
    cov_area_limit: float       # unhealthy_feature_pixel_cov_area

    def message(self) -> str:
        if self.kind == EVENT_RESET:
            return (
                f"Will reset estimator. Velocity norm: {self.speed:.3f} "
                f"(limit: {self.speed_limit}), median of feature pixel covariance "
                f"ellipse areas: {self.cov_area_median:.3f} (limit: {self.cov_area_limit})."
            )
        return f"Estimator fault counter: {self.streak}/{self.max_streak}. Might reset soon."


class DiagnosticSink(ABC):
    @abstractmethod
    def record(self, event: DiagnosticEvent) -> None: ...


class LoggingSink(DiagnosticSink):
    """Reports events through the standard logging tree."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def record(self, event: DiagnosticEvent) -> None:
        level = logging.ERROR if event.kind == EVENT_RESET else logging.WARNING
        self._log.log(level, "%s", event.message())


class RecordingSink(DiagnosticSink):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: list[DiagnosticEvent] = []

    def record(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: str) -> list[DiagnosticEvent]:
        return [e for e in self.events if e.kind == kind]
