# -*- coding: utf-8 -*-
"""Unified interface for project I/O.

This module provides the primary entry point for reading and writing
navigation adjustment projects. It follows a simple pattern:

1. Files are read as JSON text
2. JSON feeds directly to Pydantic models via ``model_validate_json()``
3. Models serialize back via ``model_dump_json()``

Ingested section summaries are read the same way and appended to a
project as a new survey file.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Protocol

from pydantic import TypeAdapter

from navadjust_lib.constants import JSON_ENCODING
from navadjust_lib.constants import PROJECT_FORMAT
from navadjust_lib.enums import FileStatus
from navadjust_lib.project.models import Project
from navadjust_lib.project.models import SectionRecord
from navadjust_lib.project.models import SurveyFile

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_SECTION_RECORDS = TypeAdapter(list[SectionRecord])


class ProgressCallback(Protocol):
    """Protocol for progress callbacks."""

    def __call__(
        self,
        message: str | None = None,
        completed: int | None = None,
        total: int | None = None,
    ) -> None:
        """Report progress."""
        ...


class CancellationToken:
    """Token for checking if an operation should be cancelled."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled = True


class NavAdjustInterface:
    """Unified interface for project I/O.

    Example:
        # Load a project
        project = NavAdjustInterface.load_project_json(Path("survey.json"))

        # Append a new survey file from ingested section summaries
        NavAdjustInterface.import_sections(project, Path("line12.json"))

        # Save
        NavAdjustInterface.save_json(project, Path("survey.json"))
    """

    # -------------------------------------------------------------------------
    # JSON Methods
    # -------------------------------------------------------------------------

    @classmethod
    def save_json(cls, project: Project, path: Path) -> None:
        """Save a project as JSON.

        Args:
            project: Project to serialize
            path: Path to write JSON file
        """
        json_str = project.model_dump_json(indent=2, by_alias=True)
        path.write_text(json_str, encoding=JSON_ENCODING)
        logger.info("Saved project %s to %s", project.name, path)

    @classmethod
    def load_project_json(
        cls,
        path: Path,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> Project:
        """Load a project from JSON.

        Counters and block assignments are recomputed during validation.

        Args:
            path: Path to JSON file
            on_progress: Optional progress callback

        Returns:
            Deserialized project

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a navadjust project
        """
        if on_progress:
            on_progress(message=f"Reading {path}")
        json_str = path.read_text(encoding=JSON_ENCODING)
        project = Project.model_validate_json(json_str)
        if project.format != PROJECT_FORMAT:
            raise ValueError(
                f"{path} is not a navadjust project (format={project.format!r})"
            )
        logger.info(
            "Loaded project %s: %d files, %d sections, %d crossings, %d ties",
            project.name,
            project.num_files,
            project.num_sections,
            project.num_crossings,
            project.num_ties,
        )
        return project

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    @classmethod
    def load_section_records(cls, path: Path) -> list[SectionRecord]:
        """Load ingested section summaries from a JSON array."""
        json_str = path.read_text(encoding=JSON_ENCODING)
        return _SECTION_RECORDS.validate_json(json_str)

    @classmethod
    def import_sections(
        cls,
        project: Project,
        path: Path,
        *,
        status: FileStatus = FileStatus.GOOD,
        name: str | None = None,
    ) -> SurveyFile:
        """Append a survey file read from a section summary file.

        Args:
            project: Project to extend
            path: JSON array of section records
            status: Initial file status
            name: File name (default: the path stem)

        Returns:
            The new SurveyFile
        """
        records = cls.load_section_records(path)
        return project.add_file(name or path.stem, records, status=status)
