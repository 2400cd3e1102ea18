"""Command line interface for the project.

Commands:
- solve: optimise a problem file (or the built-in demo problem)
- show-program: print the assembled conic program without solving it
- backends: list the conic backends and the layout each one consumes
- show-settings: print the resolved settings
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Iterable

import numpy as np
import pandas as pd

from conic_portfolio.config import (
    DEMO_ASSETS,
    DEMO_COVARIANCE,
    DEMO_EXPECTED_RETURNS,
    DEMO_RISK_LIMIT,
    ConfigError,
    ProblemConfig,
    Settings,
    SolverConfig,
    configure_logging,
    get_settings,
    load_config,
)
from conic_portfolio.optimization.backends import BACKENDS, get_adapter
from conic_portfolio.optimization.core.exceptions import ConicPortfolioError, SolverStatusError
from conic_portfolio.optimization.core.program import (
    CombinedConicProgram,
    ConicProgram,
    build_program,
)
from conic_portfolio.optimization.core.reference import solve_reference
from conic_portfolio.optimization.core.solver_utils import SolverParameters
from conic_portfolio.optimization.solvers import optimize_portfolio, spec_from_config

__all__ = ["build_parser", "main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="conic_portfolio CLI")
    parser.add_argument(
        "--structured-logs",
        dest="structured_logs",
        action="store_true",
        help="force structured JSON logs",
    )
    parser.add_argument(
        "--plain-logs",
        dest="structured_logs",
        action="store_false",
        help="force plain text logs",
    )
    parser.add_argument("--log-level", default="WARNING", help="handler log level")
    parser.set_defaults(structured_logs=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show-settings", help="Print the resolved Settings")
    show.add_argument("--json", action="store_true", help="JSON output")

    subparsers.add_parser("backends", help="List the available conic backends")

    for name, help_text in (
        ("solve", "Solve a problem file (demo problem by default)"),
        ("show-program", "Print the assembled conic program"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--config", type=str, help="YAML problem file (relative paths start in configs_dir)"
        )
        sub.add_argument("--backend", choices=sorted(BACKENDS), help="override the backend")
        sub.add_argument("--risk-limit", type=float, help="override the risk limit")
        sub.add_argument("--json", action="store_true", help="JSON output")
        if name == "solve":
            sub.add_argument("--verbose", action="store_true", help="solver trace output")
            sub.add_argument(
                "--compare",
                action="store_true",
                help="cross-check the weights against the CVXPy formulation",
            )

    return parser


def _configure_logging(args: argparse.Namespace, settings: Settings) -> None:
    configure_logging(
        settings=settings,
        structured=args.structured_logs,
        level=str(args.log_level).upper(),
        context={"command": args.command},
        solver_trace=bool(getattr(args, "verbose", False)),
    )


def _print_payload(payload: dict[str, Any], *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        for key, value in payload.items():
            print(f"{key}: {value}")


def _load_problem(args: argparse.Namespace, settings: Settings) -> ProblemConfig:
    if args.config:
        config = load_config(
            args.config,
            ProblemConfig,
            project_root=settings.project_root,
            configs_dir=settings.configs_dir,
        )
    else:
        config = ProblemConfig(
            assets=list(DEMO_ASSETS),
            expected_returns=list(DEMO_EXPECTED_RETURNS),
            covariance=[list(row) for row in DEMO_COVARIANCE],
            risk_limit=DEMO_RISK_LIMIT,
            solver=SolverConfig(
                backend=settings.default_backend,
                verbose=settings.solver_verbose,
                sparsity_tolerance=settings.sparsity_tolerance,
            ),
        )

    solver_updates: dict[str, Any] = {}
    if args.backend:
        solver_updates["backend"] = args.backend
    if getattr(args, "verbose", False):
        solver_updates["verbose"] = True
    updates: dict[str, Any] = {}
    if solver_updates:
        updates["solver"] = config.solver.model_copy(update=solver_updates)
    if args.risk_limit is not None:
        updates["risk_limit"] = args.risk_limit
    if updates:
        config = ProblemConfig.model_validate({**config.model_dump(), **updates})
    return config


def _program_payload(program: ConicProgram) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "convention": program.convention,
        "cost": program.cost.tolist(),
        "cones": [f"{type(cone).__name__}({cone.dim})" for cone in program.cones],
    }
    if isinstance(program, CombinedConicProgram):
        payload["matrix"] = program.matrix.to_dense().tolist()
        payload["rhs"] = program.rhs.tolist()
        payload["nnz"] = program.matrix.nnz
    else:
        payload["equality_matrix"] = program.equality_matrix.to_dense().tolist()
        payload["equality_rhs"] = program.equality_rhs.tolist()
        payload["inequality_matrix"] = program.inequality_matrix.to_dense().tolist()
        payload["inequality_rhs"] = program.inequality_rhs.tolist()
        payload["nnz"] = program.equality_matrix.nnz + program.inequality_matrix.nnz
    return payload


def _print_program(payload: dict[str, Any]) -> None:
    for key, value in payload.items():
        if key.endswith("matrix"):
            print(f"\n{key}")
            print(pd.DataFrame(value).to_string(float_format=lambda v: f"{v: .6f}"))
        else:
            print(f"\n{key}: {value}")


def _show_program(args: argparse.Namespace, settings: Settings) -> int:
    config = _load_problem(args, settings)
    adapter = get_adapter(config.solver.backend)
    program = build_program(
        spec_from_config(config),
        adapter.convention,
        tolerance=config.solver.sparsity_tolerance,
    )
    payload = _program_payload(program)
    payload["backend"] = adapter.name
    if args.json:
        _print_payload(payload, as_json=True)
    else:
        _print_program(payload)
    return 0


def _solve(args: argparse.Namespace, settings: Settings) -> int:
    config = _load_problem(args, settings)
    spec = spec_from_config(config)
    try:
        result = optimize_portfolio(
            spec,
            backend=config.solver.backend,
            parameters=SolverParameters.from_config(config.solver),
            tolerance=config.solver.sparsity_tolerance,
        )
    except SolverStatusError as exc:
        _print_payload(
            {"status": exc.status.value, "backend": exc.backend, "error": str(exc)},
            as_json=args.json,
        )
        return 2

    payload = result.to_dict(include_weights=True)
    if args.compare:
        reference = solve_reference(spec)
        comparison: dict[str, Any] = {
            "solver": reference.summary.solver,
            "status": reference.summary.status,
        }
        if reference.weights is not None:
            gap = np.abs(reference.weights.to_numpy() - result.weights.to_numpy())
            comparison["max_abs_weight_gap"] = float(gap.max())
        payload["reference"] = comparison
    _print_payload(payload, as_json=args.json)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    settings = get_settings()
    _configure_logging(args, settings)

    try:
        if args.command == "show-settings":
            _print_payload(settings.to_dict(), as_json=args.json)
        elif args.command == "backends":
            for name, adapter_cls in sorted(BACKENDS.items()):
                print(f"{name}: {adapter_cls.convention} layout")
        elif args.command == "show-program":
            return _show_program(args, settings)
        elif args.command == "solve":
            return _solve(args, settings)
        else:  # pragma: no cover - argparse rejects unknown commands
            parser.error(f"Unknown command: {args.command}")
    except (ConfigError, ConicPortfolioError, ValueError, RuntimeError) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
