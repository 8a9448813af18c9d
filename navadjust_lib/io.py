# -*- coding: utf-8 -*-
"""File I/O operations for navigation adjustment projects.

This module provides thin wrappers around NavAdjustInterface:

    from navadjust_lib.io import load_project, save_project

    project = load_project(Path("survey.json"))
    save_project(project, Path("survey.json"))
"""

from pathlib import Path

from navadjust_lib.interface import CancellationToken
from navadjust_lib.interface import NavAdjustInterface
from navadjust_lib.interface import ProgressCallback
from navadjust_lib.project.models import Project

__all__ = [
    "CancellationToken",
    "ProgressCallback",
    "load_project",
    "save_project",
]


def load_project(
    path: Path | str,
    *,
    on_progress: ProgressCallback | None = None,
) -> Project:
    """Load a project from a JSON file.

    Args:
        path: Path to the project file
        on_progress: Optional progress callback

    Returns:
        The loaded Project
    """
    return NavAdjustInterface.load_project_json(Path(path), on_progress=on_progress)


def save_project(project: Project, path: Path | str) -> None:
    """Save a project to a JSON file."""
    NavAdjustInterface.save_json(project, Path(path))
