# -*- coding: utf-8 -*-
"""Detection of overlapping sections.

A crossing is a pair of sections whose coverage masks overlap once each
section is shifted by its current navigation offset. Detection compares
every section against all earlier sections, skipping neighbours that are
trivially continuous, and appends new crossings to the project in
canonical order.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from shapely.geometry import box
from shapely.ops import unary_union

from navadjust_lib.constants import CROSSING_PROGRESS_INTERVAL
from navadjust_lib.constants import MASK_DIM
from navadjust_lib.constants import OVERLAP_FLOOR_PERCENT
from navadjust_lib.constants import SECTION_KEY_FACTOR
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.errors import StateError
from navadjust_lib.models import Bounds
from navadjust_lib.project.models import Crossing

if TYPE_CHECKING:
    from navadjust_lib.interface import CancellationToken
    from navadjust_lib.interface import ProgressCallback
    from navadjust_lib.project.models import Project
    from navadjust_lib.project.models import Section

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Canonical ordering
# ---------------------------------------------------------------------------


def section_key(file_id: int, section_id: int) -> int:
    """Combine a (file, section) pair into one sortable integer."""
    return file_id * SECTION_KEY_FACTOR + section_id


def canonical_sides(
    file_id_1: int, section_1: int, file_id_2: int, section_2: int
) -> tuple[int, int, int, int]:
    """Order two sections so that side 1 sorts first."""
    if section_key(file_id_1, section_1) <= section_key(file_id_2, section_2):
        return (file_id_1, section_1, file_id_2, section_2)
    return (file_id_2, section_2, file_id_1, section_1)


def crossing_sort_key(crossing: Crossing) -> tuple[int, int, int, int]:
    """Canonical sort key of a crossing.

    Crossings are ordered by their later section first, then by their
    earlier section, then by side 1 and side 2. Crossings found for newly
    imported files therefore sort after every existing crossing.
    """
    key_1 = section_key(crossing.file_id_1, crossing.section_1)
    key_2 = section_key(crossing.file_id_2, crossing.section_2)
    return (max(key_1, key_2), min(key_1, key_2), key_1, key_2)


def compare_crossings(a: Crossing, b: Crossing) -> int:
    """Three-way comparison of two crossings under the canonical order."""
    key_a = crossing_sort_key(a)
    key_b = crossing_sort_key(b)
    return (key_a > key_b) - (key_a < key_b)


sort_crossings = functools.partial(sorted, key=crossing_sort_key)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


def _cross(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * by - ay * bx


def segments_intersect(
    p1: tuple[float, float],
    p2: tuple[float, float],
    q1: tuple[float, float],
    q2: tuple[float, float],
) -> bool:
    """Test whether segment p1→p2 intersects segment q1→q2.

    Solves ``p1 + s*(p2-p1) = q1 + t*(q2-q1)`` for s and t. Parallel
    segments never intersect.
    """
    rx, ry = p2[0] - p1[0], p2[1] - p1[1]
    sx, sy = q2[0] - q1[0], q2[1] - q1[1]
    denominator = _cross(rx, ry, sx, sy)
    if denominator == 0.0:
        return False
    qpx, qpy = q1[0] - p1[0], q1[1] - p1[1]
    s = _cross(qpx, qpy, sx, sy) / denominator
    t = _cross(qpx, qpy, rx, ry) / denominator
    return 0.0 <= s <= 1.0 and 0.0 <= t <= 1.0


def is_true_crossing(section_1: Section, section_2: Section) -> bool:
    """True if the first→last nav point chords of two sections intersect."""
    return segments_intersect(
        section_1.nav_points[0].position,
        section_1.nav_points[-1].position,
        section_2.nav_points[0].position,
        section_2.nav_points[-1].position,
    )


def _shifted_bounds(section: Section) -> Bounds:
    return section.bounds.shifted(*section.mid_offset_deg)


def _covered_cells(section: Section) -> np.ndarray:
    """Absolute (lon0, lon1, lat0, lat1) boxes of the covered mask cells."""
    bounds = _shifted_bounds(section)
    dx = bounds.width / MASK_DIM
    dy = bounds.height / MASK_DIM
    rows, cols = np.nonzero(section.mask)
    lon0 = bounds.lon_min + dx * cols
    lat0 = bounds.lat_min + dy * rows
    return np.column_stack([lon0, lon0 + dx, lat0, lat0 + dy])


def _cell_area(section: Section) -> float:
    bounds = section.bounds
    return (bounds.width / MASK_DIM) * (bounds.height / MASK_DIM)


@dataclass(frozen=True)
class OverlapResult:
    """Coverage overlap between two sections.

    Attributes:
        noverlap_1: Covered cells of side 1 overlapping side 2
        noverlap_2: Covered cells of side 2 overlapping side 1
        ncoverage_1: Covered cells of side 1
        ncoverage_2: Covered cells of side 2
        fraction: Area-weighted overlap fraction (0..1)
    """

    noverlap_1: int
    noverlap_2: int
    ncoverage_1: int
    ncoverage_2: int
    fraction: float

    @property
    def overlaps(self) -> bool:
        return self.noverlap_1 > 0 and self.noverlap_2 > 0

    @property
    def percent(self) -> int:
        """Overlap percentage, never below the 1 percent floor."""
        return max(OVERLAP_FLOOR_PERCENT, int(100.0 * self.fraction))


def _pairwise_overlap(cells_1: np.ndarray, cells_2: np.ndarray) -> np.ndarray:
    """Boolean (n1, n2) matrix of overlapping cell pairs."""
    return (
        (cells_1[:, None, 0] < cells_2[None, :, 1])
        & (cells_1[:, None, 1] > cells_2[None, :, 0])
        & (cells_1[:, None, 2] < cells_2[None, :, 3])
        & (cells_1[:, None, 3] > cells_2[None, :, 2])
    )


def coverage_overlap(section_1: Section, section_2: Section) -> OverlapResult:
    """Compare the coverage masks of two sections cell by cell.

    Each side's covered cells are placed in absolute coordinates using its
    own bounding box, cell size and current offset.
    """
    cells_1 = _covered_cells(section_1)
    cells_2 = _covered_cells(section_2)
    ncoverage_1 = len(cells_1)
    ncoverage_2 = len(cells_2)
    disjoint = not _shifted_bounds(section_1).overlaps(_shifted_bounds(section_2))
    if disjoint or ncoverage_1 == 0 or ncoverage_2 == 0:
        return OverlapResult(0, 0, ncoverage_1, ncoverage_2, 0.0)

    pairs = _pairwise_overlap(cells_1, cells_2)
    noverlap_1 = int(pairs.any(axis=1).sum())
    noverlap_2 = int(pairs.any(axis=0).sum())

    area_1 = _cell_area(section_1)
    area_2 = _cell_area(section_2)
    total = area_1 + area_2
    fraction = 0.0
    if total > 0.0:
        fraction = (area_1 / total) * (noverlap_1 / ncoverage_1) + (
            area_2 / total
        ) * (noverlap_2 / ncoverage_2)
    return OverlapResult(noverlap_1, noverlap_2, ncoverage_1, ncoverage_2, fraction)


def overlap_bounds(section_1: Section, section_2: Section) -> Bounds | None:
    """Bounding box of the region where both sections have coverage.

    Returns:
        Bounds of the common covered area, or None if there is none
    """
    if not _shifted_bounds(section_1).overlaps(_shifted_bounds(section_2)):
        return None
    cells_1 = _covered_cells(section_1)
    cells_2 = _covered_cells(section_2)
    if len(cells_1) == 0 or len(cells_2) == 0:
        return None

    pairs = _pairwise_overlap(cells_1, cells_2)
    area_1 = unary_union(
        [box(c[0], c[2], c[1], c[3]) for c in cells_1[pairs.any(axis=1)]]
    )
    area_2 = unary_union(
        [box(c[0], c[2], c[1], c[3]) for c in cells_2[pairs.any(axis=0)]]
    )
    common = area_1.intersection(area_2)
    if common.is_empty:
        return None
    lon_min, lat_min, lon_max, lat_max = common.bounds
    return Bounds(lon_min=lon_min, lon_max=lon_max, lat_min=lat_min, lat_max=lat_max)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def is_continuous_neighbor(
    project: Project, side_a: tuple[int, int], side_b: tuple[int, int]
) -> bool:
    """True if two sections are the same or directly continuous."""
    if side_a == side_b:
        return True
    first, second = sorted((side_a, side_b), key=lambda s: section_key(*s))
    if not project.section(*second).continuity:
        return False
    return project.previous_section(*second) == first


class CrossingDetector:
    """Finds and maintains the crossings of a project."""

    def find_crossings(
        self,
        project: Project,
        *,
        start_file: int = 0,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[Crossing]:
        """Detect crossings between every section and all earlier sections.

        Existing crossings are kept; only pairs not yet present are added.
        Running the detector again on unchanged input adds nothing.

        Args:
            project: Project to scan; new crossings are appended to it
            start_file: First file whose sections are compared against
                earlier ones
            on_progress: Optional progress callback
            cancellation: Optional cancellation token

        Returns:
            The newly added crossings

        Raises:
            InterruptedError: If cancellation was requested
        """
        sides = [(f, s) for f, s, _ in project.iter_sections()]
        sections = [project.section(*side) for side in sides]
        total = len(sections)
        if total == 0:
            return []

        shifted = [_shifted_bounds(section) for section in sections]
        lon_min = np.array([b.lon_min for b in shifted])
        lon_max = np.array([b.lon_max for b in shifted])
        lat_min = np.array([b.lat_min for b in shifted])
        lat_max = np.array([b.lat_max for b in shifted])

        existing = {(c.side_1, c.side_2) for c in project.crossings}
        found: list[Crossing] = []

        for index, side in enumerate(sides):
            if cancellation and cancellation.cancelled:
                raise InterruptedError("Operation cancelled")
            if index and index % CROSSING_PROGRESS_INTERVAL == 0 and on_progress:
                on_progress(
                    message=(
                        f"Checked {index} of {total} sections, "
                        f"{len(found)} new crossings"
                    ),
                    completed=index,
                    total=total,
                )
            if side[0] < start_file:
                continue

            candidates = np.nonzero(
                (lon_min[:index] < lon_max[index])
                & (lon_max[:index] > lon_min[index])
                & (lat_min[:index] < lat_max[index])
                & (lat_max[:index] > lat_min[index])
            )[0]
            for other in candidates:
                other_side = sides[other]
                if is_continuous_neighbor(project, side, other_side):
                    continue
                file_1, section_1, file_2, section_2 = canonical_sides(
                    *other_side, *side
                )
                if ((file_1, section_1), (file_2, section_2)) in existing:
                    continue

                result = coverage_overlap(sections[other], sections[index])
                if not result.overlaps:
                    continue

                scale = project.crossing_scale(file_1, section_1, file_2, section_2)
                crossing = Crossing(
                    file_id_1=file_1,
                    section_1=section_1,
                    file_id_2=file_2,
                    section_2=section_2,
                    overlap=result.percent,
                    true_crossing=is_true_crossing(
                        project.section(file_1, section_1),
                        project.section(file_2, section_2),
                    ),
                    mtodeglon=scale.mtodeglon,
                    mtodeglat=scale.mtodeglat,
                )
                existing.add((crossing.side_1, crossing.side_2))
                found.append(crossing)

        project.crossings = sort_crossings(project.crossings + found)
        project.num_truecrossings = sum(c.true_crossing for c in project.crossings)

        logger.info(
            "Found %d new crossings (%d total, %d true crossings)",
            len(found),
            project.num_crossings,
            project.num_truecrossings,
        )
        if on_progress:
            on_progress(
                message=f"Found {len(found)} new crossings",
                completed=total,
                total=total,
            )
        return found

    def rebuild(
        self,
        project: Project,
        *,
        force: bool = False,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[Crossing]:
        """Discard every crossing and detect them again.

        Args:
            project: Project whose crossings are replaced
            force: Allow discarding existing unanalyzed crossings
            on_progress: Optional progress callback
            cancellation: Optional cancellation token

        Raises:
            StateError: If any crossing has already been analyzed, or if
                crossings exist and ``force`` is not set
        """
        analyzed = sum(c.status is not CrossingStatus.NONE for c in project.crossings)
        if analyzed:
            raise StateError(
                f"Refusing to rebuild crossings: {analyzed} crossings have "
                "already been analyzed"
            )
        if project.crossings and not force:
            raise StateError(
                f"Refusing to rebuild crossings: {project.num_crossings} "
                "crossings exist, use force to discard them"
            )
        previous = project.crossings
        project.crossings = []
        try:
            return self.find_crossings(
                project, on_progress=on_progress, cancellation=cancellation
            )
        except InterruptedError:
            project.crossings = previous
            raise

    def update_overlap(self, project: Project, crossing: Crossing) -> int:
        """Recompute the overlap percentage of a crossing from current offsets.

        Returns:
            The new overlap percentage
        """
        result = coverage_overlap(
            project.section(*crossing.side_1), project.section(*crossing.side_2)
        )
        crossing.overlap = result.percent
        return crossing.overlap

    def overlap_bounds(self, project: Project, crossing: Crossing) -> Bounds | None:
        return overlap_bounds(
            project.section(*crossing.side_1), project.section(*crossing.side_2)
        )
