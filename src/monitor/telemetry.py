"""Telemetry logging of health monitor decisions.

One CSV row per evaluated estimator cycle, for later analysis of fault
streaks, reset recommendations and failsafe pose updates. Rows can be
streamed while the monitor runs (CycleCsvStream) or written in one go
after an offline replay (write_records).
"""

from __future__ import annotations

import csv
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, TextIO

logger = logging.getLogger(__name__)

FIELDS = [
    "timestamp",
    "cycle",
    "speed_mps",
    "cov_area_median",
    "unhealthy",        # 1=unhealthy, 0=healthy
    "streak",
    "should_reset",
    "failsafe_updated",
    "failsafe_x",
    "failsafe_y",
    "failsafe_z",
    "failsafe_rot_deg",  # failsafe orientation change this cycle
]

FLUSH_EVERY = 100


@dataclass(slots=True)
class CycleRecord:
    """Telemetry for a single monitor evaluation."""
    timestamp: float = 0.0
    cycle: int = 0
    speed_mps: float = 0.0
    cov_area_median: float = 0.0
    unhealthy: bool = False
    streak: int = 0
    should_reset: bool = False
    failsafe_updated: bool = False
    failsafe_x: float = 0.0
    failsafe_y: float = 0.0
    failsafe_z: float = 0.0
    failsafe_rot_deg: float = 0.0

    def to_row(self) -> list:
        return [
            f"{self.timestamp:.3f}",
            self.cycle,
            f"{self.speed_mps:.3f}",
            f"{self.cov_area_median:.4f}",
            int(self.unhealthy),
            self.streak,
            int(self.should_reset),
            int(self.failsafe_updated),
            f"{self.failsafe_x:.4f}",
            f"{self.failsafe_y:.4f}",
            f"{self.failsafe_z:.4f}",
            f"{self.failsafe_rot_deg:.3f}",
        ]


def _open_csv(path: Path) -> tuple:
    path.parent.mkdir(parents=True, exist_ok=True)
    f = open(path, "w", newline="")
    writer = csv.writer(f)
    writer.writerow(FIELDS)
    return f, writer


def write_records(path: Path, records: Iterable[CycleRecord]) -> int:
    """Write records to a single CSV file. Returns the row count."""
    f, writer = _open_csv(path)
    with f:
        n = 0
        for rec in records:
            writer.writerow(rec.to_row())
            n += 1
    return n


class CycleCsvStream:
    """Appends cycle records to a timestamped CSV file in log_dir.

    Records logged before start() or after stop() are dropped.
    """

    def __init__(self, log_dir: Path, prefix: str = "health"):
        self._log_dir = log_dir
        self._prefix = prefix
        self._file: TextIO | None = None
        self._writer = None
        self._rows = 0

    @property
    def rows(self) -> int:
        return self._rows

    def start(self) -> Path:
        """Open a new file and write the header. Returns the file path."""
        path = self._log_dir / f"{self._prefix}_{time.strftime('%Y%m%d_%H%M%S')}.csv"
        self._file, self._writer = _open_csv(path)
        self._rows = 0
        logger.info("Streaming cycle telemetry to %s", path)
        return path

    def log(self, record: CycleRecord) -> None:
        if self._writer is None:
            return
        self._writer.writerow(record.to_row())
        self._rows += 1
        if self._rows % FLUSH_EVERY == 0:
            self._file.flush()

    def stop(self) -> None:
        if self._file is None:
            return
        self._file.close()
        self._file = None
        self._writer = None
        logger.info("Cycle telemetry closed after %d rows", self._rows)
