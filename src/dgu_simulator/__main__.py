"""
Headless Centrifugation Run
===========================

Command-line entry point: builds the default configuration (overridable by
flags), top-loads the sample and drives the transport engine frame by frame
with a time-scaled clock.

License: MIT
"""

import argparse
import time
import logging
import sys
from typing import List, Optional

from .core import (
    TIME_SCALES,
    MultiSpeciesTransportEngine,
    SimulationConfiguration,
    TimeScaledClock,
    build_engine,
    run_all_validations,
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Density-gradient ultracentrifugation simulation"
    )
    parser.add_argument("--cells", type=int, default=180, help="Radial cells")
    parser.add_argument("--bins", type=int, default=100, help="Particle size bins")
    parser.add_argument(
        "--time-scale",
        type=int,
        default=1000,
        choices=TIME_SCALES,
        help="Simulated seconds per wall-clock second",
    )
    parser.add_argument(
        "--frames", type=int, default=600, help="Number of frames to simulate"
    )
    parser.add_argument(
        "--frame-dt",
        type=float,
        default=1.0 / 60.0,
        help="Wall-clock duration of one frame [seconds]",
    )
    parser.add_argument(
        "--max-steps", type=int, default=5000, help="Explicit step budget per frame"
    )
    parser.add_argument(
        "--top-load-cells",
        type=int,
        default=1,
        help="Width of the loaded sample band [cells]",
    )
    parser.add_argument(
        "--log-interval", type=int, default=60, help="Frames between progress logs"
    )
    parser.add_argument(
        "--realtime", action="store_true", help="Pace frames against the wall clock"
    )
    parser.add_argument(
        "--diagnostics", action="store_true", help="Print engine diagnostics at the end"
    )
    parser.add_argument(
        "--plot", type=str, default=None, help="Save final profiles to this image file"
    )
    parser.add_argument(
        "--validate", action="store_true", help="Run physics validations and exit"
    )
    return parser.parse_args(argv)


def log_progress(
    engine: MultiSpeciesTransportEngine, clock: TimeScaledClock, initial_mass: float
) -> None:
    """Log simulated time, mass drift and the dominant band position."""
    masses = engine.compute_masses()
    drift = abs(masses.total - initial_mass) / initial_mass if initial_mass else 0.0
    dominant = int(engine.weights.argmax())
    centroid = engine.compute_band_moments().centroid[dominant]

    logger.info(
        f"t_sim={clock.sim_time:.1f}s | steps={clock.total_steps} | "
        f"mass drift={drift:.2e} | band[{dominant}] at r={centroid:.5f} m"
    )


def save_plot(engine: MultiSpeciesTransportEngine, path: str) -> None:
    """Plot total and per-bin concentration against radius."""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    report = engine.get_concentrations()
    fig, ax = plt.subplots(figsize=(10, 5))

    # Only the heaviest bins; a hundred thin lines hide the total
    for k in engine.weights.argsort()[-5:]:
        ax.plot(
            engine.r,
            report.species[k],
            linewidth=1,
            alpha=0.6,
            label=f"d={2e9 * engine.bin_radii[k]:.1f} nm",
        )
    ax.plot(engine.r, report.total, color="black", linewidth=2, label="Total")

    ax.set_xlabel("Radius [m]")
    ax.set_ylabel("Concentration [a.u.]")
    ax.set_title("Radial concentration profile")
    ax.legend()
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    logger.info(f"Plot saved to {path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.validate:
        run_all_validations()
        return 0

    logger.info("=" * 70)
    logger.info("DENSITY-GRADIENT ULTRACENTRIFUGATION SIMULATION")
    logger.info("=" * 70)

    try:
        config = SimulationConfiguration(
            radial_cells=args.cells,
            n_bins=args.bins,
            time_scale=args.time_scale,
            max_steps_per_frame=args.max_steps,
        )
        engine = build_engine(config)
        engine.set_initial_top_load(args.top_load_cells)
    except Exception as e:
        logger.error(f"Engine initialization failed: {type(e).__name__}: {e}")
        return 1

    clock = TimeScaledClock(engine, config.time_scale, config.max_steps_per_frame)
    initial_mass = engine.compute_masses().total
    logger.info(
        f"Stable dt: {engine.compute_stable_dt():.3e}s, "
        f"{args.frames} frames of {args.frame_dt:.4f}s at ×{config.time_scale}"
    )

    frame = 0
    try:
        while frame < args.frames:
            frame_start = time.monotonic()

            clock.advance_frame(args.frame_dt)
            frame += 1

            if args.log_interval > 0 and frame % args.log_interval == 0:
                log_progress(engine, clock, initial_mass)

            if args.realtime:
                elapsed = time.monotonic() - frame_start
                sleep_time = max(0.0, args.frame_dt - elapsed)
                if sleep_time > 0:
                    time.sleep(sleep_time)

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")

    log_progress(engine, clock, initial_mass)
    if clock.partial_frames:
        logger.warning(
            f"{clock.partial_frames}/{frame} frames exhausted their step budget"
        )

    if args.diagnostics:
        engine.print_diagnostics()

    if args.plot:
        save_plot(engine, args.plot)

    logger.info("Simulation finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
