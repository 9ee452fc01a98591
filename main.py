import argparse
import logging
import time
from pathlib import Path

import costsim.config as cfg
from costsim.plots import plot_error_by_pools, plot_outcome_shares
from costsim.services.output import write_output
from costsim.services.params import SimParams, load_input_file
from costsim.simulation.sim import simulate_sample

logger = logging.getLogger("costsim")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulate cost system distortion for a sample of firms.")
    parser.add_argument("--input", type=Path, help="input parameter file (defaults to costsim/config.py)")
    parser.add_argument("--output-dir", type=Path, default=Path(cfg.OUTPUT_DIR))
    parser.add_argument("--workers", type=int, default=1, help="processes to spread firms over")
    parser.add_argument("--plots", action="store_true", help="save outcome and error charts")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    params = load_input_file(args.input) if args.input else SimParams.from_config()
    logger.info("Simulating %d firms, seed %d", params.num_firms, params.seed)

    t0 = time.perf_counter()
    try:
        results = simulate_sample(params, workers=args.workers)
    except Exception:
        logger.exception("Simulation aborted")
        raise
    logger.info("Simulation took %.3f s", time.perf_counter() - t0)

    logger.info("Writing output files...")
    write_output(results, args.output_dir)

    if args.plots:
        for i, fig in enumerate(plot_outcome_shares(results.costsys_loop, show=False)):
            fig.savefig(args.output_dir / f"outcomes_{i}.png")
        plot_error_by_pools(results.costsys_error, show=False).savefig(args.output_dir / "cost_error.png")

    # final snapshot
    shares = results.outcome_shares
    if not shares.empty:
        print(shares.round(3).to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
