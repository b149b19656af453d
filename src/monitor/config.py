"""Runtime configuration for the estimator health monitor."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HealthMonitorConfig(BaseModel):
    """Thresholds for the estimator health gate.

    Keys match the estimator's parameter names, so a parameter dump
    can be validated directly. Unknown keys are ignored.

    Expected (unchecked) ordering:
      healthy_feature_pixel_cov_area <= unhealthy_feature_pixel_cov_area
      velocity_to_consider_static <= unhealthy_velocity
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = Field(default=False, alias="health_monitor_enabled")
    # Feature covariance is not a divergence signal while static.
    velocity_to_consider_static: float = 0.1    # m/s
    max_subsequent_unhealthy_updates: int = 2
    healthy_feature_pixel_cov_area: float = 1.0       # px^2
    healthy_feature_pixel_cov_area_increment: float = 0.3  # px^2
    unhealthy_feature_pixel_cov_area: float = 5.0     # px^2
    unhealthy_velocity: float = 6.0             # m/s

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> HealthMonitorConfig:
        """Build from a flat key-value parameter source. Missing keys use defaults."""
        return cls.model_validate(dict(params))

    def to_params(self) -> dict[str, Any]:
        """Flat key-value form using the parameter names."""
        return self.model_dump(by_alias=True)

    def ordering_warnings(self) -> list[str]:
        """Describe thresholds that violate the expected ordering."""
        warnings = []
        if self.unhealthy_feature_pixel_cov_area < self.healthy_feature_pixel_cov_area:
            warnings.append(
                f"unhealthy_feature_pixel_cov_area ({self.unhealthy_feature_pixel_cov_area}) "
                f"< healthy_feature_pixel_cov_area ({self.healthy_feature_pixel_cov_area})"
            )
        if self.unhealthy_velocity < self.velocity_to_consider_static:
            warnings.append(
                f"unhealthy_velocity ({self.unhealthy_velocity}) "
                f"< velocity_to_consider_static ({self.velocity_to_consider_static})"
            )
        negative = [
            name for name, value in self.model_dump().items()
            if not isinstance(value, bool) and value < 0
        ]
        if negative:
            warnings.append(f"negative thresholds: {', '.join(negative)}")
        return warnings


class GateConfig(BaseModel):
    """Top-level configuration for the offline tools."""
    health: HealthMonitorConfig = HealthMonitorConfig()
    log_level: str = "INFO"     # DEBUG, INFO, WARNING, ERROR

    # Telemetry
    telemetry_dir: Path | None = None    # set to enable CSV cycle logging

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def load_config(path: Path) -> GateConfig:
    """Load a JSON config file.

    Accepts either a full GateConfig document or a flat object of
    monitor parameters. A flat object may also carry the GateConfig
    keys (log_level, telemetry_dir), which are applied as such.
    """
    text = path.read_text()
    data = json.loads(text)
    if isinstance(data, dict) and "health" not in data and (
        data.keys() & _MONITOR_KEYS
    ):
        gate = {k: v for k, v in data.items() if k in GateConfig.model_fields}
        return GateConfig.model_validate({**gate, "health": HealthMonitorConfig.from_params(data)})
    return GateConfig.model_validate_json(text)


_MONITOR_KEYS = {
    field.alias or name for name, field in HealthMonitorConfig.model_fields.items()
} | set(HealthMonitorConfig.model_fields)
