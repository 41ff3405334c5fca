"""
Command-line driver for the deception-jamming equilibrium engine.

  python run_equilibrium.py defaults --N 12 > params.json
  python run_equilibrium.py solve params.json --verbose --output result.json
  python run_equilibrium.py solve params.json --compare
  python run_equilibrium.py sweep params.json --variable ND --start 0 --stop 6 --step 1 --workers 4 --oracle
"""

import argparse
import json
import logging
import sys

from bestrespsolver import solve_equilibrium
from channel_model import EquilibriumParams, ParameterError, default_params, random_gains
from equilibrium_sweep import SWEEP_VARIABLES, compare_with_baselines, run_sweep, sweep_range


def load_params(path: str) -> EquilibriumParams:
    with open(path, "r") as f:
        return EquilibriumParams.from_dict(json.load(f))


def write_json(obj: dict, path=None):
    text = json.dumps(obj, indent=2)
    if path:
        with open(path, "w") as f:
            f.write(text)
        print(f"Results saved to {path}")
    else:
        print(text)


def print_summary(result):
    m = result.metrics
    print("=" * 60)
    print(f"Status: {result.status}  (iterations={result.iterations}, maxChange={result.max_change:.3e})")
    print(f"Total real throughput: {m.total_real_throughput:.4f} bits/s/Hz")
    print(f"Jammer waste on decoys: {100 * m.jammer_waste_on_decoys:.1f}%")
    print(f"Dilution factor: {m.dilution_factor:.3f}  "
          f"(active={m.active_channel_count}, real={m.real_channel_count})")
    print(f"Total decoy power: {m.total_decoy_power:.4f}")
    if result.oracle_result is not None:
        print(f"Oracle gap: {m.oracle_gap:.4f}")
        print(f"Improvement over no decoys: {m.improvement_over_no_decoys:.2f}%")
    print("=" * 60)


def cmd_defaults(args):
    params = default_params(args.N)
    if args.gains != "uniform-unit":
        params.h, params.g = random_gains(params.N, params.D, params.M, args.gains, seed=args.seed)
        params.gain_distribution = args.gains
    write_json(params.to_dict(), args.output)


def cmd_solve(args):
    params = load_params(args.params)
    if args.compare:
        result = compare_with_baselines(params, verbose=args.verbose)
    else:
        result = solve_equilibrium(params, verbose=args.verbose)
    print_summary(result)
    if args.output:
        write_json(result.to_dict(), args.output)


def cmd_sweep(args):
    params = load_params(args.params)
    values = sweep_range(args.start, args.stop, args.step)
    result = run_sweep(params, args.variable, values, workers=args.workers,
                       with_oracle=args.oracle, show_progress=True)
    print(result.to_frame().to_string(index=False))
    best = result.best_point
    print(f"\nBest {args.variable} = {best.variable} with U_real = {best.U_real:.4f}")
    if args.output:
        write_json(result.to_dict(), args.output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deception-jamming power allocation equilibrium")
    parser.add_argument('--log-level', type=str, default='WARNING', help='Logging level (default: WARNING)')
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("defaults", help="Print a default parameter set as JSON")
    p.add_argument('--N', type=int, default=12, help='Number of channels (default: 12)')
    p.add_argument('--gains', choices=['uniform-unit', 'uniform', 'rayleigh'], default='uniform-unit',
                   help='Gain generation (default: all gains 1)')
    p.add_argument('--seed', type=int, default=None, help='Seed for random gains')
    p.add_argument('--output', type=str, default=None, help='Output JSON file (default: stdout)')
    p.set_defaults(func=cmd_defaults)

    p = sub.add_parser("solve", help="Run one equilibrium")
    p.add_argument('params', type=str, help='Parameter JSON file')
    p.add_argument('--compare', action='store_true', help='Also run oracle and no-decoy passes')
    p.add_argument('--verbose', action='store_true', help='Print iteration progress')
    p.add_argument('--output', type=str, default=None, help='Output JSON file')
    p.set_defaults(func=cmd_solve)

    p = sub.add_parser("sweep", help="Sweep one parameter")
    p.add_argument('params', type=str, help='Parameter JSON file')
    p.add_argument('--variable', choices=SWEEP_VARIABLES, default='ND', help='Swept parameter (default: ND)')
    p.add_argument('--start', type=float, default=0.0)
    p.add_argument('--stop', type=float, default=6.0)
    p.add_argument('--step', type=float, default=1.0)
    p.add_argument('--workers', type=int, default=None, help='Worker processes (default: one per CPU)')
    p.add_argument('--oracle', action='store_true', help='Also run the oracle jammer at every point')
    p.add_argument('--output', type=str, default=None, help='Output JSON file')
    p.set_defaults(func=cmd_sweep)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format='%(asctime)s %(levelname)s %(message)s')
    try:
        args.func(args)
    except ParameterError as e:
        print(f"Invalid parameters ({e.field}): {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
