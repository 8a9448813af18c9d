# -*- coding: utf-8 -*-
"""Editing session over one project.

A :class:`NavAdjustSession` owns a project together with the current
crossing / tie selection and the tie being edited. Edits from different
sources (manual picking, automatic picking) must go through one session
at a time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from navadjust_lib.crossing.detector import CrossingDetector
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import FileStatus
from navadjust_lib.errors import StateError
from navadjust_lib.interface import NavAdjustInterface
from navadjust_lib.misfit.engine import MisfitEngine
from navadjust_lib.models import ZERO
from navadjust_lib.solver.relaxation import RelaxationSolver
from navadjust_lib.ties import manager
from navadjust_lib.ties import selection
from navadjust_lib.ties.manager import TieEdit
from navadjust_lib.ties.selection import ALL_CROSSINGS

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from navadjust_lib.enums import TieMode
    from navadjust_lib.interface import CancellationToken
    from navadjust_lib.interface import ProgressCallback
    from navadjust_lib.misfit.models import MisfitResult
    from navadjust_lib.misfit.models import Soundings
    from navadjust_lib.project.models import Crossing
    from navadjust_lib.project.models import Project
    from navadjust_lib.project.models import SectionRecord
    from navadjust_lib.project.models import SurveyFile
    from navadjust_lib.solver.base import NavigationSolver
    from navadjust_lib.solver.models import InversionResult
    from navadjust_lib.ties.selection import SelectionFilter

logger = logging.getLogger(__name__)


class NavAdjustSession:
    """A project plus its selection and editing state.

    Attributes:
        project: The project being edited
        crossing_id: Selected crossing, or None
        tie_id: Selected tie of that crossing, or None
        edit: Tie being edited for the selected crossing
        misfit: Last misfit computed for the selected crossing
        selection: Filter applied by the next / previous operations
    """

    def __init__(
        self,
        project: Project,
        *,
        on_progress: ProgressCallback | None = None,
        detector: CrossingDetector | None = None,
        engine: MisfitEngine | None = None,
        solver: NavigationSolver | None = None,
    ) -> None:
        self.project = project
        self.on_progress = on_progress
        self.detector = detector or CrossingDetector()
        self.engine = engine or MisfitEngine(z_width=project.settings.zoffset_width)
        self.solver = solver or RelaxationSolver()
        self.selection: SelectionFilter = ALL_CROSSINGS
        self.crossing_id: int | None = None
        self.tie_id: int | None = None
        self.edit = TieEdit()
        self.misfit: MisfitResult | None = None

    # -------------------------------------------------------------------------
    # Project level
    # -------------------------------------------------------------------------

    def import_file(
        self,
        name: str,
        records: Iterable[SectionRecord],
        status: FileStatus = FileStatus.GOOD,
    ) -> SurveyFile:
        """Add a survey file and detect its crossings."""
        survey_file = self.project.add_file(name, records, status=status)
        self.detector.find_crossings(
            self.project, start_file=survey_file.id, on_progress=self.on_progress
        )
        return survey_file

    def find_crossings(self, cancellation: CancellationToken | None = None) -> list[Crossing]:
        return self.detector.find_crossings(
            self.project, on_progress=self.on_progress, cancellation=cancellation
        )

    def invert(self, cancellation: CancellationToken | None = None) -> InversionResult:
        return self.solver.invert(
            self.project, on_progress=self.on_progress, cancellation=cancellation
        )

    def save(self, path: Path) -> None:
        NavAdjustInterface.save_json(self.project, path)

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def crossing(self) -> Crossing:
        """The selected crossing.

        Raises:
            StateError: If no crossing is selected
        """
        if self.crossing_id is None:
            raise StateError("No crossing selected")
        return self.project.crossings[self.crossing_id]

    def select_crossing(self, crossing_id: int | None) -> int | None:
        """Select a crossing and load its first tie into the edit."""
        if crossing_id is not None:
            manager.get_crossing(self.project, crossing_id)
        self.crossing_id = crossing_id
        self.misfit = None
        if crossing_id is not None and self.crossing.ties:
            self.select_tie(0)
        else:
            self.tie_id = None
            self.edit = TieEdit()
        return crossing_id

    def select_tie(self, tie_id: int) -> TieEdit:
        self.edit = manager.reset_tie(self.project, self._require_crossing(), tie_id)
        self.tie_id = tie_id
        return self.edit

    def next_crossing(self) -> int | None:
        return self.select_crossing(
            selection.select_next(self.project, self.crossing_id, self.selection)
        )

    def previous_crossing(self) -> int | None:
        return self.select_crossing(
            selection.select_previous(self.project, self.crossing_id, self.selection)
        )

    def next_unset_crossing(self) -> int | None:
        return self.select_crossing(
            selection.select_next_unset(self.project, self.crossing_id, self.selection)
        )

    def _require_crossing(self) -> int:
        if self.crossing_id is None:
            raise StateError("No crossing selected")
        return self.crossing_id

    def _require_tie(self) -> int:
        if self.tie_id is None:
            raise StateError("No tie selected")
        return self.tie_id

    # -------------------------------------------------------------------------
    # Ties
    # -------------------------------------------------------------------------

    def compute_misfit(
        self,
        soundings_1: Soundings,
        soundings_2: Soundings,
        search_half_width: int | None = None,
    ) -> MisfitResult:
        """Compute the misfit of the selected crossing around the edit offset.

        The edit takes the misfit minimum and its uncertainty ellipsoid.
        """
        self.misfit = self.engine.compute_misfit(
            self.crossing,
            soundings_1,
            soundings_2,
            self.edit.offset,
            search_half_width=search_half_width,
            on_progress=self.on_progress,
        )
        self.edit.offset = self.misfit.min_offset
        self.edit.ellipsoid = self.misfit.ellipsoid
        return self.misfit

    def add_tie(self) -> int:
        """Store the edit as a new tie of the selected crossing."""
        crossing_id = self._require_crossing()
        self.tie_id = manager.add_tie(
            self.project,
            crossing_id,
            self.edit.offset,
            snav_1=self.edit.snav_1,
            snav_2=self.edit.snav_2,
            ellipsoid=self.edit.ellipsoid,
            mode=self.edit.mode,
        )
        self.edit = manager.reset_tie(self.project, crossing_id, self.tie_id)
        return self.tie_id

    def save_tie(self) -> None:
        """Store the edit into the selected tie."""
        manager.update_tie(
            self.project, self._require_crossing(), self._require_tie(), self.edit
        )

    def reset_tie(self) -> TieEdit:
        """Discard the edit and reload the selected tie."""
        return self.select_tie(self._require_tie())

    def delete_tie(self, demote_to: CrossingStatus = CrossingStatus.SKIP) -> int | None:
        crossing_id = self._require_crossing()
        self.tie_id = manager.delete_tie(
            self.project, crossing_id, self._require_tie(), demote_to=demote_to
        )
        if self.tie_id is None:
            self.edit = TieEdit(offset=self.edit.offset, mode=self.edit.mode)
        else:
            self.edit = manager.reset_tie(self.project, crossing_id, self.tie_id)
        return self.tie_id

    def set_tie_mode(self, mode: TieMode) -> None:
        self.edit.mode = mode
        if self.tie_id is not None:
            manager.set_tie_mode(self.project, self._require_crossing(), self.tie_id, mode)

    def skip_crossing(self) -> None:
        manager.skip_crossing(self.project, self._require_crossing())
        self.tie_id = None
        self.edit = TieEdit(offset=ZERO)
