"""
===========================================================
run_sweep.py
Last Updated: 2026-10-18
===========================================================

Description:
    Script entry point: run the intervention-timing sweep over
    configured (R0, delta_m, kappa) grids and write the result
    table to CSV.

Example Usage:
    sirpeak-sweep --R0 2 3 4 --delta-fractions 0.25 0.5 1 \
                  --kappa-step 0.005 --output results.csv
-----------------------------------------------------------
License: MIT
===========================================================
"""
import argparse
from typing import List, Optional

from sirpeak.experiments import run_sweep, monotonic_violations
from sirpeak.parameters import SweepParameters


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Optimise intervention onset to minimise epidemic peak prevalence")
    parser.add_argument("--R0", type=float, nargs="+", default=[2.0, 3.0, 4.0],
                        help="basic reproduction numbers")
    parser.add_argument("--delta-fractions", type=float, nargs="+", default=[0.25, 0.5, 1.0],
                        help="intervention durations as fractions of the uncontrolled time-to-peak")
    parser.add_argument("--kappa-step", type=float, default=0.005, help="step of the kappa grid over (0, 1]")
    parser.add_argument("--N", type=float, default=1e6, help="population size")
    parser.add_argument("--dt", type=float, default=0.1, help="output step of simulated trajectories")
    parser.add_argument("--xatol", type=float, default=1e-4, help="optimizer tolerance on tau_m")
    parser.add_argument("--on-failure", choices=["mark", "skip", "raise"], default="mark",
                        help="what to do with cells whose optimization fails")
    parser.add_argument("--output", default="sweep_results.csv", help="CSV file for the result table")
    parser.add_argument("--every", type=int, default=50, help="print progress every N cells")
    parser.add_argument("--plot", action="store_true", help="show phi against kappa when done")
    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    try:
        params = SweepParameters(R0_values=tuple(args.R0),
                                 delta_fractions=tuple(args.delta_fractions),
                                 kappa_step=args.kappa_step,
                                 N=args.N,
                                 dt=args.dt,
                                 xatol=args.xatol,
                                 on_failure=args.on_failure,
                                 output_path=args.output)
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}")
    params.print_summary()

    def progress(done, total, key):
        if done % args.every == 0 or done == total:
            R0, frac, kappa = key
            print(f"[{done:>6}/{total}] R0={R0:g} delta_fraction={frac:g} kappa={kappa:g}")

    df = run_sweep(params, progress=progress)

    failed = int((~df["converged"]).sum())
    violations = monotonic_violations(df)
    print(f"\nRows: {len(df):,}  failed cells: {failed}  monotonicity violations: {len(violations)}")
    best = df.dropna(subset=["phi"]).groupby("R0")["phi"].min()
    for R0, phi in best.items():
        print(f"R0={R0:g}: best relative peak change {phi * 100:.1f}%")

    df.to_csv(params.output_path, index=False)
    print(f"Results saved to {params.output_path}")

    if args.plot:
        from sirpeak.utils.figures import plot_phi_vs_kappa
        plot_phi_vs_kappa(df)
    return df


if __name__ == "__main__":
    main()
