"""Recorded estimator cycles in JSON Lines form.

One JSON object per line:
    {"t": 12.3, "velocity": [vx, vy, vz], "position": [x, y, z],
     "orientation": [w, x, y, z], "feature_cov_areas": [a0, a1, ...]}

"orientation" defaults to identity and "feature_cov_areas" to empty.
Blank lines are skipped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from shared.pose import EstimatorSnapshot, Quaternion

logger = logging.getLogger(__name__)


class CycleLogError(ValueError):
    """Raised for a malformed cycle log line."""

    def __init__(self, path: Path, line_no: int, reason: str):
        super().__init__(f"{path}:{line_no}: {reason}")
        self.path = path
        self.line_no = line_no


@dataclass(slots=True)
class SimCycle:
    """One estimator cycle: snapshot inputs plus feature uncertainties."""
    t: float
    velocity: tuple[float, float, float]
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    orientation: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)
    feature_cov_areas: list[float] = field(default_factory=list)

    def snapshot(self) -> EstimatorSnapshot:
        return EstimatorSnapshot.create(
            velocity=self.velocity,
            position=self.position,
            orientation=Quaternion.from_array(self.orientation).normalized(),
        )

    def to_dict(self) -> dict:
        return {
            "t": self.t,
            "velocity": list(self.velocity),
            "position": list(self.position),
            "orientation": list(self.orientation),
            "feature_cov_areas": list(self.feature_cov_areas),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SimCycle:
        return cls(
            t=float(data["t"]),
            velocity=_triple(data["velocity"], "velocity"),
            position=_triple(data.get("position", (0.0, 0.0, 0.0)), "position"),
            orientation=_quad(data.get("orientation", (1.0, 0.0, 0.0, 0.0))),
            feature_cov_areas=[float(a) for a in data.get("feature_cov_areas", [])],
        )


def _triple(values, name: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"'{name}' needs 3 components, got {len(values)}")
    x, y, z = (float(v) for v in values)
    return x, y, z


def _quad(values) -> tuple[float, float, float, float]:
    if len(values) != 4:
        raise ValueError(f"'orientation' needs 4 components, got {len(values)}")
    w, x, y, z = (float(v) for v in values)
    return w, x, y, z


def read_cycle_log(path: Path) -> list[SimCycle]:
    """Load all cycles from a JSON Lines log."""
    cycles = []
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                cycles.append(SimCycle.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise CycleLogError(path, line_no, str(e)) from e
    logger.debug("Read %d cycles from %s", len(cycles), path)
    return cycles


def write_cycle_log(path: Path, cycles: Iterable[SimCycle]) -> int:
    """Write cycles as JSON Lines. Returns the number written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    n = 0
    with open(path, "w") as f:
        for cycle in cycles:
            f.write(json.dumps(cycle.to_dict()))
            f.write("\n")
            n += 1
    logger.info("Wrote %d cycles to %s", n, path)
    return n
