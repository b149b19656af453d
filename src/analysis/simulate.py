"""Synthetic estimator cycle generator for offline monitor testing.

Produces plausible estimator outputs and feature covariance areas for
a handful of flight situations, so thresholds can be tuned without a
recorded dataset.

Usage:
    vio-health simulate divergence -o divergence.jsonl --duration 30 --rate 20
"""

from __future__ import annotations

import math

import numpy as np

from analysis.cycle_log import SimCycle
from shared.pose import Quaternion

SCENARIOS = ("hover", "cruise", "divergence", "dropout")


def _feature_areas(
    rng: np.random.Generator,
    median_area: float,
    num_features: int,
    spread: float = 0.3,
) -> list[float]:
    """Log-normal covariance areas with the given median."""
    if num_features <= 0:
        return []
    areas = rng.lognormal(mean=math.log(max(median_area, 1e-6)), sigma=spread, size=num_features)
    return [float(a) for a in areas]


def _yaw_quaternion(yaw_rad: float) -> tuple[float, float, float, float]:
    w, x, y, z = Quaternion.from_axis_angle((0.0, 0.0, 1.0), yaw_rad).to_array()
    return (float(w), float(x), float(y), float(z))


def generate_hover(
    duration: float = 30.0,
    rate_hz: float = 20.0,
    velocity_noise: float = 0.02,
    median_area: float = 3.0,
    num_features: int = 25,
    seed: int = 0,
) -> list[SimCycle]:
    """Static platform with noisy features.

    Args:
        duration: total time in seconds
        rate_hz: estimator update rate
        velocity_noise: per-axis velocity noise (m/s)
        median_area: median feature covariance area (px^2)
        num_features: tracked features per cycle
        seed: RNG seed
    """
    rng = np.random.default_rng(seed)
    dt = 1.0 / rate_hz
    cycles = []
    for i in range(int(duration * rate_hz) + 1):
        v = rng.normal(0.0, velocity_noise, size=3)
        p = rng.normal(0.0, 0.005, size=3) + np.array([0.0, 0.0, 1.5])
        cycles.append(SimCycle(
            t=i * dt,
            velocity=(float(v[0]), float(v[1]), float(v[2])),
            position=(float(p[0]), float(p[1]), float(p[2])),
            orientation=(1.0, 0.0, 0.0, 0.0),
            feature_cov_areas=_feature_areas(rng, median_area, num_features),
        ))
    return cycles


def generate_cruise(
    duration: float = 30.0,
    rate_hz: float = 20.0,
    speed_mps: float = 3.0,
    median_area: float = 0.2,
    num_features: int = 25,
    seed: int = 0,
) -> list[SimCycle]:
    """Steady forward flight with well-tracked features.

    Args:
        duration: total time in seconds
        rate_hz: estimator update rate
        speed_mps: forward speed
        median_area: median feature covariance area (px^2)
        num_features: tracked features per cycle
        seed: RNG seed
    """
    rng = np.random.default_rng(seed)
    dt = 1.0 / rate_hz
    yaw_rate = 0.05  # rad/s, gentle turn
    cycles = []
    x = y = 0.0
    for i in range(int(duration * rate_hz) + 1):
        t = i * dt
        yaw = yaw_rate * t
        v = rng.normal(0.0, 0.05, size=3) + np.array([speed_mps, 0.0, 0.0])
        cycles.append(SimCycle(
            t=t,
            velocity=(float(v[0]), float(v[1]), float(v[2])),
            position=(x, y, 10.0),
            orientation=_yaw_quaternion(-yaw),
            feature_cov_areas=_feature_areas(rng, median_area, num_features, spread=0.2),
        ))
        x += speed_mps * math.cos(yaw) * dt
        y += speed_mps * math.sin(yaw) * dt
    return cycles


def generate_divergence(
    duration: float = 30.0,
    rate_hz: float = 20.0,
    speed_mps: float = 3.0,
    onset_s: float = 15.0,
    velocity_growth: float = 0.5,
    area_growth: float = 2.0,
    num_features: int = 25,
    seed: int = 0,
) -> list[SimCycle]:
    """Cruise that diverges after onset_s.

    After the onset the reported speed grows exponentially at
    velocity_growth (1/s) and the median covariance area grows linearly
    at area_growth (px^2/s).
    """
    cycles = generate_cruise(
        duration=duration, rate_hz=rate_hz, speed_mps=speed_mps,
        num_features=num_features, seed=seed,
    )
    rng = np.random.default_rng(seed + 1)
    for c in cycles:
        if c.t < onset_s:
            continue
        dt = c.t - onset_s
        scale = math.exp(velocity_growth * dt)
        c.velocity = (c.velocity[0] * scale, c.velocity[1] * scale, c.velocity[2] * scale)
        c.feature_cov_areas = _feature_areas(rng, 0.2 + area_growth * dt, num_features)
    return cycles


def generate_feature_dropout(
    duration: float = 30.0,
    rate_hz: float = 20.0,
    speed_mps: float = 3.0,
    dropout_start_s: float = 10.0,
    dropout_end_s: float = 15.0,
    seed: int = 0,
) -> list[SimCycle]:
    """Cruise with no tracked features between dropout_start_s and dropout_end_s."""
    cycles = generate_cruise(duration=duration, rate_hz=rate_hz, speed_mps=speed_mps, seed=seed)
    for c in cycles:
        if dropout_start_s <= c.t < dropout_end_s:
            c.feature_cov_areas = []
    return cycles


def generate(scenario: str, **kwargs) -> list[SimCycle]:
    """Dispatch to a scenario generator by name."""
    generators = {
        "hover": generate_hover,
        "cruise": generate_cruise,
        "divergence": generate_divergence,
        "dropout": generate_feature_dropout,
    }
    if scenario not in generators:
        raise ValueError(f"Unknown scenario '{scenario}', expected one of {', '.join(SCENARIOS)}")
    return generators[scenario](**kwargs)
