# -*- coding: utf-8 -*-
"""Invert command: solve the navigation offsets of a project."""

import argparse
import logging
from pathlib import Path

from navadjust_lib.constants import CONVERGENCE_EPSILON
from navadjust_lib.constants import MAX_ITERATIONS
from navadjust_lib.errors import NavAdjustError
from navadjust_lib.io import load_project
from navadjust_lib.io import save_project
from navadjust_lib.solver import RelaxationSolver

logger = logging.getLogger(__name__)


def _log_progress(
    message: str | None = None,
    completed: int | None = None,
    total: int | None = None,
) -> None:
    if message:
        logger.debug("%s", message)


def invert(args: list[str]) -> int:
    """Entry point for the invert command."""
    parser = argparse.ArgumentParser(
        prog="navadjust invert",
        description="Invert the ties of a project into navigation offsets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  navadjust invert -i survey.json                       # Update in place
  navadjust invert -i survey.json -o solved.json        # Write elsewhere
  navadjust invert -i survey.json --smoothing 0         # No temporal smoothing

Notes:
  - Reaching the iteration cap is not an error; the best solution found
    is saved and reported as not fully converged
""",
    )

    parser.add_argument(
        "-i",
        "--input-file",
        type=Path,
        required=True,
        help="Project file path (.json)",
    )
    parser.add_argument(
        "-o",
        "--output-file",
        type=Path,
        default=None,
        help="Output project path (default: overwrite the input)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=MAX_ITERATIONS,
        help=f"Maximum relaxation passes (default: {MAX_ITERATIONS})",
    )
    parser.add_argument(
        "--epsilon",
        type=float,
        default=CONVERGENCE_EPSILON,
        help=f"Convergence threshold (default: {CONVERGENCE_EPSILON})",
    )
    parser.add_argument(
        "--smoothing",
        type=float,
        default=None,
        help="Override the project smoothing weight",
    )
    parser.add_argument(
        "--no-blocks",
        action="store_true",
        help="Skip the coarse block estimate",
    )

    parsed_args = parser.parse_args(args)

    try:
        project = load_project(parsed_args.input_file)
        if parsed_args.smoothing is not None:
            project.settings.smoothing = parsed_args.smoothing

        solver = RelaxationSolver(
            max_iterations=parsed_args.max_iterations,
            epsilon=parsed_args.epsilon,
            estimate_blocks=not parsed_args.no_blocks,
        )
        result = solver.invert(project, on_progress=_log_progress)
        save_project(project, parsed_args.output_file or parsed_args.input_file)

    except FileNotFoundError:
        logger.exception("FileNotFoundError")
        return 1

    except NavAdjustError as e:
        logger.error("Error: %s", e)  # noqa: TRY400
        return 1

    except Exception:
        logger.exception("Unknown Problem ...")
        return 1

    print(  # noqa: T201
        f"{result.status_message}: misfit {result.initial_misfit:.4f} -> "
        f"{result.final_misfit:.4f}"
    )
    for message in result.messages:
        print(message)  # noqa: T201
    return 0
