# -*- coding: utf-8 -*-
"""Crossings command: detect the crossings of a project.

Reads a project, optionally appends survey files from ingested section
summaries, finds every new crossing and writes the project back.
"""

import argparse
import logging
from pathlib import Path

from navadjust_lib.crossing import CrossingDetector
from navadjust_lib.enums import FileStatus
from navadjust_lib.errors import NavAdjustError
from navadjust_lib.interface import NavAdjustInterface
from navadjust_lib.io import load_project
from navadjust_lib.io import save_project
from navadjust_lib.project.models import Project

logger = logging.getLogger(__name__)


def _log_progress(
    message: str | None = None,
    completed: int | None = None,
    total: int | None = None,
) -> None:
    if message:
        logger.info("%s", message)


def crossings(args: list[str]) -> int:
    """Entry point for the crossings command."""
    parser = argparse.ArgumentParser(
        prog="navadjust crossings",
        description="Detect overlapping sections of a navigation adjustment project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  navadjust crossings -i survey.json                        # Update in place
  navadjust crossings -i survey.json -o out.json            # Write elsewhere
  navadjust crossings -i survey.json -a line12.json         # Import then detect
  navadjust crossings -i new.json --new -a line1.json -a line2.json

Notes:
  - Existing crossings are kept, only new pairs are added
  - --rebuild discards every crossing first and is refused once any
    crossing has been analyzed
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
        "-a",
        "--add-sections",
        type=Path,
        action="append",
        default=[],
        help="Section summary file to import as a new survey file (repeatable)",
    )
    parser.add_argument(
        "-s",
        "--status",
        choices=[status.value for status in FileStatus],
        default=FileStatus.GOOD.value,
        help="Status given to imported files",
    )
    parser.add_argument(
        "--new",
        action="store_true",
        help="Start a new project instead of reading the input file",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Discard and re-detect every crossing",
    )

    parsed_args = parser.parse_args(args)

    try:
        if parsed_args.new:
            project = Project(name=parsed_args.input_file.stem)
        else:
            project = load_project(parsed_args.input_file, on_progress=_log_progress)

        start_file = project.num_files
        for path in parsed_args.add_sections:
            NavAdjustInterface.import_sections(
                project, path, status=FileStatus(parsed_args.status)
            )

        detector = CrossingDetector()
        if parsed_args.rebuild:
            found = detector.rebuild(project, force=True, on_progress=_log_progress)
        else:
            # earlier files were compared against each other when imported
            first = start_file if parsed_args.add_sections and not parsed_args.new else 0
            found = detector.find_crossings(
                project, start_file=first, on_progress=_log_progress
            )

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
        f"{len(found)} new crossings, {project.num_crossings} total "
        f"({project.num_truecrossings} true crossings)"
    )
    return 0
