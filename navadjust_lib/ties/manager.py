# -*- coding: utf-8 -*-
"""Creation and deletion of ties.

Every mutation keeps the project counters (``num_ties``,
``num_crossings_analyzed``, ``num_truecrossings_analyzed``) and the tie
count of each referenced nav point consistent, and flags a current
inversion as out of date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import TieMode
from navadjust_lib.errors import StateError
from navadjust_lib.models import ZERO
from navadjust_lib.models import Ellipsoid
from navadjust_lib.models import Vector3D
from navadjust_lib.project.models import GlobalTie
from navadjust_lib.project.models import Tie

if TYPE_CHECKING:
    from navadjust_lib.enums import FileStatus
    from navadjust_lib.misfit.models import MisfitResult
    from navadjust_lib.project.models import Crossing
    from navadjust_lib.project.models import Project

logger = logging.getLogger(__name__)


@dataclass
class TieEdit:
    """An in-progress tie being edited before it is stored.

    Attributes:
        offset: Offset of side 2 relative to side 1 (m)
        snav_1: Nav point on side 1 (None picks the lowest unused one)
        snav_2: Nav point on side 2 (None picks the lowest unused one)
        mode: Axes observed by the solver
        ellipsoid: Uncertainty (None uses the default)
    """

    offset: Vector3D = ZERO
    snav_1: int | None = None
    snav_2: int | None = None
    mode: TieMode = TieMode.XYZ
    ellipsoid: Ellipsoid | None = None

    @classmethod
    def from_tie(cls, tie: Tie) -> TieEdit:
        return cls(
            offset=tie.offset,
            snav_1=tie.snav_1,
            snav_2=tie.snav_2,
            mode=tie.mode,
            ellipsoid=tie.ellipsoid,
        )

    @classmethod
    def from_misfit(cls, result: MisfitResult, mode: TieMode = TieMode.XYZ) -> TieEdit:
        """Edit holding the misfit minimum and its ellipsoid."""
        return cls(offset=result.min_offset, mode=mode, ellipsoid=result.ellipsoid)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_crossing(project: Project, crossing_id: int) -> Crossing:
    if not 0 <= crossing_id < project.num_crossings:
        raise StateError(f"No crossing {crossing_id}")
    return project.crossings[crossing_id]


def _get_tie(crossing: Crossing, crossing_id: int, tie_id: int) -> Tie:
    if not 0 <= tie_id < crossing.num_ties:
        raise StateError(f"Crossing {crossing_id} has no tie {tie_id}")
    return crossing.ties[tie_id]


def _pick_snav(num_snav: int, used: set[int], preferred: int | None) -> int | None:
    if preferred is not None and 0 <= preferred < num_snav and preferred not in used:
        return preferred
    for snav in range(num_snav):
        if snav not in used:
            return snav
    return None


def _count_tie(project: Project, crossing: Crossing, tie: Tie, delta: int) -> None:
    section_1 = project.section(*crossing.side_1)
    section_2 = project.section(*crossing.side_2)
    section_1.nav_points[tie.snav_1].num_ties += delta
    section_2.nav_points[tie.snav_2].num_ties += delta
    project.num_ties += delta


def _set_analyzed(project: Project, crossing: Crossing, status: CrossingStatus) -> None:
    """Change the crossing status, keeping the analyzed counters in step."""
    delta = int(status.analyzed) - int(crossing.status.analyzed)
    project.num_crossings_analyzed += delta
    if crossing.true_crossing:
        project.num_truecrossings_analyzed += delta
    crossing.status = status


# ---------------------------------------------------------------------------
# Crossing ties
# ---------------------------------------------------------------------------


def add_tie(
    project: Project,
    crossing_id: int,
    offset: Vector3D,
    *,
    snav_1: int | None = None,
    snav_2: int | None = None,
    ellipsoid: Ellipsoid | None = None,
    mode: TieMode = TieMode.XYZ,
) -> int:
    """Add a tie to a crossing.

    The nav points default to the caller-supplied ones (typically those
    nearest the intersection of the two tracks); if absent or already tied
    in this crossing, the lowest unused nav point of that side is used.

    Args:
        project: Project holding the crossing
        crossing_id: Index of the crossing
        offset: Offset of side 2 relative to side 1 (m)
        snav_1: Preferred nav point on side 1
        snav_2: Preferred nav point on side 2
        ellipsoid: Uncertainty of the offset
        mode: Axes observed by the solver

    Returns:
        Index of the new tie

    Raises:
        StateError: If every nav point of a side is already tied
    """
    crossing = get_crossing(project, crossing_id)
    section_1 = project.section(*crossing.side_1)
    section_2 = project.section(*crossing.side_2)

    picked_1 = _pick_snav(section_1.num_snav, {t.snav_1 for t in crossing.ties}, snav_1)
    picked_2 = _pick_snav(section_2.num_snav, {t.snav_2 for t in crossing.ties}, snav_2)
    if picked_1 is None or picked_2 is None:
        raise StateError(f"Crossing {crossing_id} has no untied nav points left")

    tie = Tie(
        mode=mode,
        snav_1=picked_1,
        snav_1_time=section_1.nav_points[picked_1].time_d,
        snav_2=picked_2,
        snav_2_time=section_2.nav_points[picked_2].time_d,
    )
    if ellipsoid is not None:
        tie.ellipsoid = ellipsoid
    tie.set_offset(offset, crossing.scale)

    crossing.ties.append(tie)
    _count_tie(project, crossing, tie, +1)
    _set_analyzed(project, crossing, CrossingStatus.SET)
    project.mark_ties_changed()

    logger.info(
        "Added tie %d to crossing %d (snav %d:%d) offset (%.2f, %.2f, %.3f) m",
        crossing.num_ties - 1,
        crossing_id,
        picked_1,
        picked_2,
        *offset,
    )
    return crossing.num_ties - 1


def delete_tie(
    project: Project,
    crossing_id: int,
    tie_id: int,
    *,
    demote_to: CrossingStatus = CrossingStatus.SKIP,
) -> int | None:
    """Delete a tie and compact the remaining ones.

    Args:
        project: Project holding the crossing
        crossing_id: Index of the crossing
        tie_id: Index of the tie to delete
        demote_to: Status given to the crossing when its last tie is removed
            (NONE or SKIP)

    Returns:
        Index of the tie to select next, or None if no tie remains
    """
    if demote_to is CrossingStatus.SET:
        raise ValueError("A crossing without ties cannot be SET")
    crossing = get_crossing(project, crossing_id)
    tie = _get_tie(crossing, crossing_id, tie_id)

    crossing.ties.pop(tie_id)
    _count_tie(project, crossing, tie, -1)
    project.mark_ties_changed()
    logger.info("Deleted tie %d of crossing %d", tie_id, crossing_id)

    if not crossing.ties:
        _set_analyzed(project, crossing, demote_to)
        return None
    return min(tie_id, crossing.num_ties - 1)


def set_tie_mode(project: Project, crossing_id: int, tie_id: int, mode: TieMode) -> None:
    tie = _get_tie(get_crossing(project, crossing_id), crossing_id, tie_id)
    if tie.mode is not mode:
        tie.mode = mode
        project.mark_ties_changed()


def update_tie(project: Project, crossing_id: int, tie_id: int, edit: TieEdit) -> None:
    """Store an in-progress edit into an existing tie."""
    crossing = get_crossing(project, crossing_id)
    tie = _get_tie(crossing, crossing_id, tie_id)
    section_1 = project.section(*crossing.side_1)
    section_2 = project.section(*crossing.side_2)

    _count_tie(project, crossing, tie, -1)
    if edit.snav_1 is not None:
        if not 0 <= edit.snav_1 < section_1.num_snav:
            _count_tie(project, crossing, tie, +1)
            raise StateError(f"Nav point {edit.snav_1} is not on side 1")
        tie.snav_1 = edit.snav_1
        tie.snav_1_time = section_1.nav_points[edit.snav_1].time_d
    if edit.snav_2 is not None:
        if not 0 <= edit.snav_2 < section_2.num_snav:
            _count_tie(project, crossing, tie, +1)
            raise StateError(f"Nav point {edit.snav_2} is not on side 2")
        tie.snav_2 = edit.snav_2
        tie.snav_2_time = section_2.nav_points[edit.snav_2].time_d
    _count_tie(project, crossing, tie, +1)

    tie.mode = edit.mode
    if edit.ellipsoid is not None:
        tie.ellipsoid = edit.ellipsoid
    tie.set_offset(edit.offset, crossing.scale)
    project.mark_ties_changed()


def reset_tie(project: Project, crossing_id: int, tie_id: int) -> TieEdit:
    """Reload an in-progress edit from the stored tie."""
    return TieEdit.from_tie(_get_tie(get_crossing(project, crossing_id), crossing_id, tie_id))


def _clear_ties(project: Project, crossing: Crossing) -> None:
    for tie in crossing.ties:
        _count_tie(project, crossing, tie, -1)
    if crossing.ties:
        project.mark_ties_changed()
    crossing.ties = []


def skip_crossing(project: Project, crossing_id: int) -> None:
    """Remove every tie of a crossing and mark it analyzed but rejected."""
    crossing = get_crossing(project, crossing_id)
    _clear_ties(project, crossing)
    _set_analyzed(project, crossing, CrossingStatus.SKIP)


def unset_crossing(project: Project, crossing_id: int) -> None:
    """Remove every tie of a crossing and mark it as not analyzed."""
    crossing = get_crossing(project, crossing_id)
    _clear_ties(project, crossing)
    _set_analyzed(project, crossing, CrossingStatus.NONE)


# ---------------------------------------------------------------------------
# Global ties & file status
# ---------------------------------------------------------------------------


def set_global_tie(
    project: Project,
    file_id: int,
    section_id: int,
    snav: int,
    offset: Vector3D,
    sigma: tuple[float, float, float],
    mode: TieMode = TieMode.XYZ,
) -> GlobalTie:
    """Tie a nav point to an absolute external reference.

    Replaces any global tie already set on the section.

    Args:
        offset: Absolute offset the nav point should receive (m)
        sigma: East, north and down uncertainty (m)
    """
    section = project.section(file_id, section_id)
    if not 0 <= snav < section.num_snav:
        raise StateError(f"Section {file_id}:{section_id} has no nav point {snav}")
    if section.global_tie is not None:
        delete_global_tie(project, file_id, section_id)

    tie = GlobalTie.from_sigmas(
        snav,
        offset,
        project.section_scale(file_id, section_id),
        *sigma,
        mode=mode,
        snav_time=section.nav_points[snav].time_d,
    )
    section.global_tie = tie
    section.nav_points[snav].num_ties += 1
    project.num_global_ties += 1
    project.mark_ties_changed()
    return tie


def delete_global_tie(project: Project, file_id: int, section_id: int) -> None:
    section = project.section(file_id, section_id)
    if section.global_tie is None:
        raise StateError(f"Section {file_id}:{section_id} has no global tie")
    section.nav_points[section.global_tie.snav].num_ties -= 1
    section.global_tie = None
    project.num_global_ties -= 1
    project.mark_ties_changed()


def set_file_status(project: Project, file_id: int, status: FileStatus) -> None:
    """Change how strongly a file's navigation may be adjusted."""
    survey_file = project.files[file_id]
    if survey_file.status is not status:
        logger.info("File %d status %s -> %s", file_id, survey_file.status.value, status.value)
        survey_file.status = status
        project.mark_ties_changed()
