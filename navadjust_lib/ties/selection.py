# -*- coding: utf-8 -*-
"""Crossing selection.

Selection state is never stored here: every function takes the current
crossing index and returns the next one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import OverlapCategory
from navadjust_lib.enums import SelectionScope

if TYPE_CHECKING:
    from collections.abc import Callable

    from navadjust_lib.project.models import Crossing
    from navadjust_lib.project.models import Project


@dataclass(frozen=True)
class SelectionFilter:
    """Restricts which crossings may be selected.

    Attributes:
        scope: Part of the project the crossing must touch
        block: Block id for ``SelectionScope.BLOCK``
        file_id: File id for ``FILE`` and ``SECTION`` scopes
        section_id: Section id for ``SECTION`` scope
        overlap: Minimum overlap category
        true_only: Only true crossings
        tied_only: Only crossings holding at least one tie
    """

    scope: SelectionScope = SelectionScope.ALL
    block: int | None = None
    file_id: int | None = None
    section_id: int | None = None
    overlap: OverlapCategory = OverlapCategory.ANY
    true_only: bool = False
    tied_only: bool = False

    def matches(self, project: Project, crossing: Crossing) -> bool:
        if crossing.overlap < self.overlap.minimum:
            return False
        if self.true_only and not crossing.true_crossing:
            return False
        if self.tied_only and crossing.num_ties == 0:
            return False

        match self.scope:
            case SelectionScope.ALL:
                return True
            case SelectionScope.BLOCK:
                return self.block in (
                    project.files[crossing.file_id_1].block,
                    project.files[crossing.file_id_2].block,
                )
            case SelectionScope.FILE:
                return self.file_id is not None and crossing.involves(self.file_id)
            case SelectionScope.SECTION:
                return (
                    self.file_id is not None
                    and self.section_id is not None
                    and crossing.involves(self.file_id, self.section_id)
                )
        return False


ALL_CROSSINGS = SelectionFilter()


def _search(
    project: Project,
    current: int | None,
    step: int,
    accept: Callable[[Crossing], bool],
) -> int | None:
    total = project.num_crossings
    if total == 0:
        return None
    if current is None:
        current = -1 if step > 0 else total
    for n in range(1, total + 1):
        index = (current + step * n) % total
        if accept(project.crossings[index]):
            return index
    return None


def select_next(
    project: Project, current: int | None, selection: SelectionFilter = ALL_CROSSINGS
) -> int | None:
    """Index of the next matching crossing after ``current``, wrapping around."""
    return _search(project, current, +1, lambda c: selection.matches(project, c))


def select_previous(
    project: Project, current: int | None, selection: SelectionFilter = ALL_CROSSINGS
) -> int | None:
    """Index of the previous matching crossing before ``current``, wrapping around."""
    return _search(project, current, -1, lambda c: selection.matches(project, c))


def select_next_unset(
    project: Project, current: int | None, selection: SelectionFilter = ALL_CROSSINGS
) -> int | None:
    """Index of the next matching crossing that has not been analyzed."""
    return _search(
        project,
        current,
        +1,
        lambda c: c.status is CrossingStatus.NONE and selection.matches(project, c),
    )
