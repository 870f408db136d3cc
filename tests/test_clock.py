import logging

import numpy as np
import pytest

from dgu_simulator.core import TimeScaledClock


class TestTimeScaledClock:
    def test_frame_advances_scaled_time(self, bimodal_engine):
        clock = TimeScaledClock(bimodal_engine, time_scale=10, max_steps_per_frame=5000)
        wall_dt = 0.1 * bimodal_engine.compute_stable_dt()

        result = clock.advance_frame(wall_dt)

        assert result.advanced == pytest.approx(10 * wall_dt)
        assert clock.sim_time == pytest.approx(10 * wall_dt)
        assert clock.total_steps == result.steps
        assert clock.last_result is result
        assert clock.partial_frames == 0

    def test_frames_accumulate(self, bimodal_engine):
        clock = TimeScaledClock(bimodal_engine, time_scale=100)
        wall_dt = 0.01 * bimodal_engine.compute_stable_dt()

        for _ in range(25):
            clock.advance_frame(wall_dt)

        assert clock.sim_time == pytest.approx(25 * 100 * wall_dt)
        assert clock.total_steps >= 25

    def test_scale_is_proportional(self, engine_factory):
        slow = TimeScaledClock(engine_factory(), time_scale=1)
        fast = TimeScaledClock(engine_factory(), time_scale=10)
        wall_dt = 0.05 * slow.engine.compute_stable_dt()

        for _ in range(30):
            slow.advance_frame(wall_dt)
            fast.advance_frame(wall_dt)

        assert fast.sim_time == pytest.approx(10 * slow.sim_time, rel=1e-6)

    def test_partial_frame_is_logged(self, bimodal_engine, caplog):
        clock = TimeScaledClock(bimodal_engine, time_scale=1000, max_steps_per_frame=3)
        dt = bimodal_engine.compute_stable_dt()

        with caplog.at_level(logging.WARNING, logger="dgu_simulator.core.clock"):
            result = clock.advance_frame(dt)

        assert result.steps == 3
        assert result.advanced == pytest.approx(3 * dt)
        assert clock.sim_time == pytest.approx(3 * dt)
        assert clock.partial_frames == 1
        assert "Step budget exhausted" in caplog.text

    def test_complete_frame_is_silent(self, bimodal_engine, caplog):
        clock = TimeScaledClock(bimodal_engine, time_scale=1)
        with caplog.at_level(logging.WARNING, logger="dgu_simulator.core.clock"):
            clock.advance_frame(0.5 * bimodal_engine.compute_stable_dt())
        assert caplog.text == ""

    @pytest.mark.parametrize("wall_dt", [0.0, -0.1, np.nan, np.inf])
    def test_invalid_frame_duration_is_ignored(self, bimodal_engine, wall_dt):
        clock = TimeScaledClock(bimodal_engine, time_scale=10)
        before = bimodal_engine.q.copy()

        result = clock.advance_frame(wall_dt)

        assert result.advanced == 0.0
        assert result.steps == 0
        assert clock.sim_time == 0.0
        assert np.array_equal(bimodal_engine.q, before)
