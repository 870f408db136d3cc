"""
Time-Scaled Simulation Clock
============================

Maps elapsed wall-clock time onto simulated centrifugation time:

   Δt_sim = S · Δt_wall

Each frame requests Δt_sim from the transport engine with a bounded step
budget. If the budget runs out first, the frame completes partially and the
shortfall is logged, not raised; the simulated clock only ever records the
time actually advanced.

License: MIT
"""

import math
import logging
from typing import Optional

from .transport import MultiSpeciesTransportEngine, AdvanceResult

logger = logging.getLogger(__name__)


class TimeScaledClock:
    """
    Drives a transport engine from wall-clock frame durations.

    Attributes:
        engine: Transport engine being advanced
        time_scale: Simulated seconds per wall-clock second
        max_steps_per_frame: Explicit step budget per frame
        sim_time: Total simulated time advanced [s]
        total_steps: Total explicit steps taken
        partial_frames: Frames that exhausted their step budget
    """

    def __init__(
        self,
        engine: MultiSpeciesTransportEngine,
        time_scale: float = 1.0,
        max_steps_per_frame: int = 5000,
    ):
        self.engine = engine
        self.time_scale = float(time_scale)
        self.max_steps_per_frame = int(max_steps_per_frame)

        self.sim_time = 0.0
        self.total_steps = 0
        self.partial_frames = 0
        self.last_result: Optional[AdvanceResult] = None

    def advance_frame(self, wall_dt: float) -> AdvanceResult:
        """
        Advance the engine by ``wall_dt · time_scale`` simulated seconds.

        Args:
            wall_dt: Wall-clock duration of the frame [s]

        Returns:
            AdvanceResult for this frame
        """
        if not math.isfinite(wall_dt) or wall_dt <= 0:
            result = AdvanceResult(advanced=0.0, steps=0)
            self.last_result = result
            return result

        requested = wall_dt * self.time_scale
        result = self.engine.advance_by(requested, self.max_steps_per_frame)

        self.sim_time += result.advanced
        self.total_steps += result.steps
        self.last_result = result

        if result.advanced < requested:
            self.partial_frames += 1
            logger.warning(
                f"Step budget exhausted: advanced {result.advanced:.3e}s of "
                f"{requested:.3e}s requested ({result.steps} steps)"
            )

        return result
