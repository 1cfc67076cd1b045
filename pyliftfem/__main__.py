"""Solve the bi-Laplacian on the unit hypercube with lifted discrete Hessians."""
import argparse
import logging
import sys

from pyliftfem.config import ProblemParameters
from pyliftfem.fem.analytic import available_solutions
from pyliftfem.problems.bilaplacian import BiLaplacianLDGLift, convergence_study, observed_rates

logger = logging.getLogger("pyliftfem")


def _parse_args(argv=None):
    p = argparse.ArgumentParser(prog="pyliftfem", description=__doc__)
    p.add_argument("--dim", type=int, default=2, help="Spatial dimension (2 or 3).")
    p.add_argument("--refinements", type=int, default=3, help="Uniform refinements of the unit hypercube.")
    p.add_argument("--degree", type=int, default=2, help="Polynomial degree k of the Q_k spaces.")
    p.add_argument("--penalty-grad", type=float, default=1.0, help="Penalty on the gradient jumps (scaled by 1/h).")
    p.add_argument("--penalty-val", type=float, default=1.0, help="Penalty on the value jumps (scaled by 1/h^3).")
    p.add_argument("--exact", choices=available_solutions(), default="bubble", help="Manufactured solution.")
    p.add_argument("--output-dir", default=".", help="Directory for sparsity_pattern.svg and solution.vtu.")
    p.add_argument("--no-output", action="store_true", help="Do not write any files.")
    p.add_argument("--convergence", type=int, nargs=2, metavar=("LOW", "HIGH"),
                   help="Run refinement levels LOW..HIGH and report observed rates.")
    p.add_argument("--log-level", default="INFO",
                   choices=("DEBUG", "INFO", "WARNING", "ERROR"), help="Logging verbosity.")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        params = ProblemParameters(dim=args.dim,
                                   n_refinements=args.refinements,
                                   degree=args.degree,
                                   penalty_jump_grad=args.penalty_grad,
                                   penalty_jump_val=args.penalty_val,
                                   exact_solution=args.exact,
                                   output_dir=args.output_dir,
                                   write_output=not args.no_output)
        if args.convergence is None:
            errors = BiLaplacianLDGLift(params).run()
            print(f"DG H2 norm of the error: {errors.h2:.6e}")
            print(f"DG H1 norm of the error: {errors.h1:.6e}")
            print(f"   L2 norm of the error: {errors.l2:.6e}")
        else:
            low, high = args.convergence
            if low > high:
                raise ValueError(f"Empty refinement range {low}..{high}.")
            results = convergence_study(params, range(low, high + 1))
            print(f"{'level':>5} {'h':>10} {'H2':>12} {'H1':>12} {'L2':>12}")
            for level, h, e in results:
                print(f"{level:5d} {h:10.4e} {e.h2:12.4e} {e.h1:12.4e} {e.l2:12.4e}")
            for (level, _, _), rates in zip(results[1:], observed_rates(results)):
                print(f"rates {level - 1}->{level}: H2 {rates[0]:.2f}, H1 {rates[1]:.2f}, L2 {rates[2]:.2f}")
    except Exception as exc:
        logger.error("Run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
