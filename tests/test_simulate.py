"""Tests for the synthetic cycle generator."""

import numpy as np
import pytest

from analysis.cycle_log import SimCycle
from analysis.replay import replay_cycles
from analysis.simulate import (
    SCENARIOS,
    generate,
    generate_cruise,
    generate_divergence,
    generate_feature_dropout,
    generate_hover,
)
from monitor.health import feature_cov_median
from shared.pose import Quaternion


class TestGenerators:
    @pytest.mark.parametrize("scenario", SCENARIOS)
    def test_cycle_count_and_timing(self, scenario):
        cycles = generate(scenario, duration=2.0, rate_hz=10.0)
        assert len(cycles) == 21
        assert all(isinstance(c, SimCycle) for c in cycles)
        assert cycles[-1].t == pytest.approx(2.0)

    def test_unknown_scenario(self):
        with pytest.raises(ValueError):
            generate("barrel_roll")

    def test_seed_is_deterministic(self):
        a = generate_hover(duration=1.0, seed=3)
        b = generate_hover(duration=1.0, seed=3)
        assert [c.velocity for c in a] == [c.velocity for c in b]

    def test_hover_is_near_static(self):
        cycles = generate_hover(duration=5.0)
        speeds = [c.snapshot().speed for c in cycles]
        assert max(speeds) < 0.1

    def test_cruise_speed_and_median(self):
        cycles = generate_cruise(duration=5.0, speed_mps=4.0, median_area=0.2)
        speeds = [c.snapshot().speed for c in cycles]
        assert np.mean(speeds) == pytest.approx(4.0, abs=0.1)
        medians = [feature_cov_median(c.feature_cov_areas) for c in cycles]
        assert np.mean(medians) == pytest.approx(0.2, abs=0.05)

    def test_cruise_moves_forward(self):
        cycles = generate_cruise(duration=5.0, speed_mps=2.0)
        assert cycles[-1].position[0] > cycles[0].position[0] + 5.0

    def test_cruise_turns_about_vertical_axis(self):
        cycles = generate_cruise(duration=10.0, rate_hz=20.0)
        q = cycles[-1].snapshot().orientation_BW
        assert q.norm == pytest.approx(1.0)
        assert q.x == q.y == 0.0
        assert Quaternion.identity().angle_to(q) == pytest.approx(0.5)

    def test_divergence_grows_after_onset(self):
        cycles = generate_divergence(duration=20.0, onset_s=10.0)
        before = [c for c in cycles if c.t < 10.0]
        late = [c for c in cycles if c.t > 15.0]
        assert max(c.snapshot().speed for c in before) < 4.0
        assert min(c.snapshot().speed for c in late) > 20.0
        assert feature_cov_median(late[0].feature_cov_areas) > 5.0

    def test_dropout_window_is_empty(self):
        cycles = generate_feature_dropout(duration=10.0, dropout_start_s=2.0, dropout_end_s=4.0)
        for c in cycles:
            if 2.0 <= c.t < 4.0:
                assert c.feature_cov_areas == []
            else:
                assert len(c.feature_cov_areas) > 0


class TestScenariosThroughMonitor:
    def test_hover_never_unhealthy(self):
        result = replay_cycles(generate_hover(duration=10.0))
        assert result.stats.unhealthy_cycles == 0
        assert result.stats.failsafe_updates == 0

    def test_cruise_is_healthy_and_retains_pose(self):
        result = replay_cycles(generate_cruise(duration=10.0))
        assert result.reset_cycles == []
        assert result.stats.failsafe_updates > 0
        assert result.records[-1].failsafe_x > 20.0

    def test_divergence_triggers_reset_shortly_after_onset(self):
        cycles = generate_divergence(duration=30.0, onset_s=15.0)
        result = replay_cycles(cycles)
        assert result.reset_cycles
        first = result.records[result.reset_cycles[0]]
        assert 15.0 < first.timestamp < 18.0
        assert result.stats.reset_episodes == 1

    def test_divergence_failsafe_before_blowup(self):
        cycles = generate_divergence(duration=30.0, onset_s=15.0)
        result = replay_cycles(cycles)
        last = result.records[-1]
        onset_x = next(c.position[0] for c in cycles if c.t >= 15.0)
        assert last.failsafe_x == pytest.approx(onset_x, abs=3.0)

    def test_dropout_does_not_reset(self):
        result = replay_cycles(generate_feature_dropout(duration=20.0))
        assert result.reset_cycles == []
