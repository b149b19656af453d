"""Offline replay of recorded estimator cycles through the health monitor.

Runs a fresh monitor over a cycle log and produces per-cycle decision
records, summary statistics and report files. Decisions are computed
whether or not the configuration enables the monitor; the flag only
tells a host whether to act on them.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path

from analysis.cycle_log import SimCycle
from monitor.config import HealthMonitorConfig
from monitor.diagnostics import DiagnosticSink, RecordingSink
from monitor.health import HealthMonitor
from monitor.telemetry import CycleCsvStream, CycleRecord, write_records
from shared.pose import Quaternion


@dataclass(slots=True)
class ReplayStats:
    """Statistics from a replayed cycle log."""
    duration_s: float = 0.0
    total_cycles: int = 0
    unhealthy_cycles: int = 0
    reset_recommendations: int = 0   # cycles that returned True
    reset_episodes: int = 0          # runs of consecutive True cycles
    longest_streak: int = 0
    failsafe_updates: int = 0
    mean_speed_mps: float = 0.0
    max_speed_mps: float = 0.0
    mean_cov_area_median: float = 0.0
    max_failsafe_rot_deg: float = 0.0  # largest single failsafe orientation jump
    monitor_enabled: bool = False

    def summary(self) -> str:
        return "\n".join([
            f"Duration: {self.duration_s:.1f}s",
            f"Cycles: {self.total_cycles} ({self.unhealthy_cycles} unhealthy)",
            f"Reset Recommendations: {self.reset_recommendations} "
            f"in {self.reset_episodes} episode(s)",
            f"Longest Unhealthy Streak: {self.longest_streak}",
            f"Failsafe Updates: {self.failsafe_updates}",
            f"Speed: {self.mean_speed_mps:.2f} m/s avg, {self.max_speed_mps:.2f} m/s max",
            f"Feature Cov Median: {self.mean_cov_area_median:.3f} avg",
            f"Max Failsafe Rotation: {self.max_failsafe_rot_deg:.1f} deg",
            f"Monitor Enabled: {'yes' if self.monitor_enabled else 'no'}",
        ])


@dataclass(slots=True)
class ReplayResult:
    """Per-cycle records plus summary."""
    records: list[CycleRecord] = field(default_factory=list)
    reset_cycles: list[int] = field(default_factory=list)
    stats: ReplayStats = field(default_factory=ReplayStats)


def replay_cycles(
    cycles: list[SimCycle],
    config: HealthMonitorConfig | None = None,
    sink: DiagnosticSink | None = None,
    telemetry: CycleCsvStream | None = None,
) -> ReplayResult:
    """Evaluate every cycle in order with a new monitor."""
    config = config or HealthMonitorConfig()
    monitor = HealthMonitor(config, sink=sink or RecordingSink())
    result = ReplayResult()
    prev_q = Quaternion.identity()

    for i, cycle in enumerate(cycles):
        reset = monitor.should_reset_estimator(cycle.feature_cov_areas, cycle.snapshot())
        a = monitor.last_assessment
        pos = monitor.failsafe_position
        rec = CycleRecord(
            timestamp=cycle.t,
            cycle=i,
            speed_mps=a.speed,
            cov_area_median=a.cov_area_median,
            unhealthy=a.unhealthy,
            streak=a.streak,
            should_reset=reset,
            failsafe_updated=a.failsafe_updated,
            failsafe_x=float(pos[0]),
            failsafe_y=float(pos[1]),
            failsafe_z=float(pos[2]),
            failsafe_rot_deg=math.degrees(prev_q.angle_to(monitor.failsafe_orientation)),
        )
        result.records.append(rec)
        prev_q = monitor.failsafe_orientation
        if reset:
            result.reset_cycles.append(i)
        if telemetry is not None:
            telemetry.log(rec)

    result.stats = analyze_records(result.records)
    result.stats.monitor_enabled = config.enabled
    return result


def analyze_records(records: list[CycleRecord]) -> ReplayStats:
    """Compute statistics from cycle records."""
    if not records:
        return ReplayStats()

    stats = ReplayStats()
    stats.total_cycles = len(records)
    stats.duration_s = records[-1].timestamp - records[0].timestamp

    prev_reset = False
    for r in records:
        if r.unhealthy:
            stats.unhealthy_cycles += 1
        if r.should_reset:
            stats.reset_recommendations += 1
            if not prev_reset:
                stats.reset_episodes += 1
        prev_reset = r.should_reset
        if r.failsafe_updated:
            stats.failsafe_updates += 1
        stats.longest_streak = max(stats.longest_streak, r.streak)

    speeds = [r.speed_mps for r in records]
    stats.mean_speed_mps = sum(speeds) / len(speeds)
    stats.max_speed_mps = max(speeds)
    stats.mean_cov_area_median = sum(r.cov_area_median for r in records) / len(records)
    stats.max_failsafe_rot_deg = max(r.failsafe_rot_deg for r in records)
    return stats


def save_analysis(result: ReplayResult, output_dir: Path) -> dict[str, Path]:
    """Save replay reports.

    Returns dict of output file paths.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    outputs = {}

    stats_path = output_dir / "replay_stats.txt"
    stats_path.write_text(result.stats.summary())
    outputs["stats"] = stats_path

    stats_json_path = output_dir / "replay_stats.json"
    with open(stats_json_path, "w") as f:
        json.dump({**asdict(result.stats), "reset_cycles": result.reset_cycles}, f, indent=2)
    outputs["stats_json"] = stats_json_path

    cycles_path = output_dir / "replay_cycles.csv"
    write_records(cycles_path, result.records)
    outputs["cycles"] = cycles_path

    return outputs
