# -*- coding: utf-8 -*-
"""Tests for crossing detection and the canonical crossing order."""

import itertools

import pytest

from navadjust_lib.constants import MASK_DIM
from navadjust_lib.crossing import CrossingDetector
from navadjust_lib.crossing import OverlapResult
from navadjust_lib.crossing import canonical_sides
from navadjust_lib.crossing import compare_crossings
from navadjust_lib.crossing import coverage_overlap
from navadjust_lib.crossing import crossing_sort_key
from navadjust_lib.crossing import is_continuous_neighbor
from navadjust_lib.crossing import overlap_bounds
from navadjust_lib.crossing import section_key
from navadjust_lib.crossing import segments_intersect
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.errors import StateError
from navadjust_lib.interface import CancellationToken
from navadjust_lib.models import Vector3D
from navadjust_lib.project.models import Crossing
from navadjust_lib.project.models import Project
from navadjust_lib.ties import skip_crossing
from tests.conftest import east_line
from tests.conftest import far_line
from tests.conftest import make_record
from tests.conftest import north_line


def _crossing(f1: int, s1: int, f2: int, s2: int) -> Crossing:
    return Crossing(
        file_id_1=f1,
        section_1=s1,
        file_id_2=f2,
        section_2=s2,
        mtodeglon=1e-5,
        mtodeglat=1e-5,
    )


def _grid_project() -> Project:
    """Three east lines crossed by three north lines."""
    project = Project()
    for k, lat in enumerate((9.995, 10.0, 10.005)):
        project.add_file(
            f"east{k}",
            [make_record((-0.01, lat), (0.01, lat), 500.0 * k, 500.0 * k + 400.0)],
        )
    for k, lon in enumerate((-0.005, 0.0, 0.005)):
        t0 = 2000.0 + 500.0 * k
        project.add_file(
            f"north{k}",
            [make_record((lon, 9.99), (lon, 10.01), t0, t0 + 400.0)],
        )
    return project


# ---------------------------------------------------------------------------
# Canonical order
# ---------------------------------------------------------------------------


class TestCanonicalOrder:
    """Tests for the canonical crossing order."""

    def test_section_key(self):
        assert section_key(2, 7) == 200_007
        assert section_key(0, 99_999) < section_key(1, 0)

    def test_canonical_sides(self):
        assert canonical_sides(3, 1, 0, 4) == (0, 4, 3, 1)
        assert canonical_sides(0, 4, 3, 1) == (0, 4, 3, 1)

    def test_new_files_sort_last(self):
        """Crossings of a later section come after every earlier one."""
        old = _crossing(0, 5, 1, 9)
        new = _crossing(0, 0, 2, 0)
        assert crossing_sort_key(old) < crossing_sort_key(new)

    def test_total_order(self):
        crossings = [
            _crossing(f1, s1, f2, s2)
            for f1, s1, f2, s2 in [
                (0, 0, 1, 0),
                (0, 1, 1, 0),
                (0, 0, 2, 0),
                (1, 0, 2, 0),
                (0, 0, 0, 2),
                (1, 1, 2, 3),
            ]
        ]
        for a, b in itertools.product(crossings, repeat=2):
            assert compare_crossings(a, b) == -compare_crossings(b, a)
            if a is not b:
                assert compare_crossings(a, b) != 0
        for a, b, c in itertools.product(crossings, repeat=3):
            if compare_crossings(a, b) < 0 and compare_crossings(b, c) < 0:
                assert compare_crossings(a, c) < 0

    def test_detected_crossings_are_sorted(self):
        project = _grid_project()
        CrossingDetector().find_crossings(project)
        keys = [crossing_sort_key(c) for c in project.crossings]
        assert keys == sorted(keys)
        for crossing in project.crossings:
            assert section_key(*crossing.side_1) < section_key(*crossing.side_2)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class TestGeometry:
    """Tests for segment intersection and coverage overlap."""

    def test_segments_cross(self):
        assert segments_intersect((0, 0), (2, 2), (0, 2), (2, 0))

    def test_segments_disjoint(self):
        assert not segments_intersect((0, 0), (1, 0), (0, 1), (1, 2))

    def test_parallel_segments_never_intersect(self):
        assert not segments_intersect((0, 0), (1, 0), (0, 0), (2, 0))

    def test_overlap_floor(self):
        """A tiny nonzero overlap still reports one percent."""
        result = OverlapResult(1, 1, 625, 625, 0.0016)
        assert result.overlaps
        assert result.percent == 1

    def test_coverage_overlap_full(self):
        section = east_line().to_section()
        result = coverage_overlap(section, section)
        assert result.ncoverage_1 == MASK_DIM * MASK_DIM
        assert result.noverlap_1 == result.ncoverage_1
        assert result.percent == 100

    def test_coverage_overlap_empty_mask(self):
        section = east_line().to_section()
        empty = east_line().to_section()
        empty.coverage = [[False] * MASK_DIM for _ in range(MASK_DIM)]
        result = coverage_overlap(section, empty)
        assert not result.overlaps
        assert result.ncoverage_2 == 0

    def test_disjoint_boxes(self):
        """Sections whose boxes do not meet share no coverage."""
        east = east_line().to_section()
        far = far_line().to_section()
        result = coverage_overlap(east, far)
        assert not result.overlaps
        assert result.ncoverage_1 == MASK_DIM * MASK_DIM
        assert result.ncoverage_2 == MASK_DIM * MASK_DIM
        assert overlap_bounds(east, far) is None


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class TestCrossingDetector:
    """Tests for CrossingDetector."""

    def test_finds_single_crossing(self, crossing_project):
        assert crossing_project.num_crossings == 1
        crossing = crossing_project.crossings[0]
        assert crossing.side_1 == (0, 0)
        assert crossing.side_2 == (1, 0)
        assert crossing.true_crossing
        assert crossing.status is CrossingStatus.NONE
        assert 1 <= crossing.overlap <= 100
        assert crossing.mtodeglon > 0.0
        assert crossing_project.num_truecrossings == 1

    def test_idempotent(self, crossing_project):
        before = [(c.side_1, c.side_2) for c in crossing_project.crossings]
        found = CrossingDetector().find_crossings(crossing_project)
        assert found == []
        assert [(c.side_1, c.side_2) for c in crossing_project.crossings] == before

    def test_grid(self):
        project = _grid_project()
        found = CrossingDetector().find_crossings(project)
        pairs = {(c.file_id_1, c.file_id_2) for c in found}
        # every east line crosses every north line
        assert {(e, n) for e in range(3) for n in range(3, 6)} <= pairs
        assert len(pairs) == len(found)

    def test_continuous_neighbours_excluded(self):
        first = make_record((-0.01, 10.0), (0.0, 10.0), 0.0, 200.0)
        second = make_record((-0.002, 10.0), (0.01, 10.0), 200.0, 400.0, continuity=True)
        project = Project()
        project.add_file("a", [first, second])
        assert is_continuous_neighbor(project, (0, 0), (0, 1))
        assert CrossingDetector().find_crossings(project) == []

    def test_discontinuous_sections_cross(self):
        first = make_record((-0.01, 10.0), (0.0, 10.0), 0.0, 200.0)
        second = make_record((-0.002, 10.0), (0.01, 10.0), 500.0, 700.0)
        project = Project()
        project.add_file("a", [first, second])
        assert not is_continuous_neighbor(project, (0, 0), (0, 1))
        assert len(CrossingDetector().find_crossings(project)) == 1

    def test_continuity_across_files(self):
        project = Project()
        project.add_file("a", [east_line()])
        project.add_file("b", [east_line(t0=400.0, continuity=True)])
        assert is_continuous_neighbor(project, (1, 0), (0, 0))
        assert CrossingDetector().find_crossings(project) == []

    def test_start_file(self, crossing_project):
        """Only sections of new files are compared against earlier ones."""
        crossing_project.add_file("late", [north_line(t0=5000.0)])
        found = CrossingDetector().find_crossings(crossing_project, start_file=3)
        assert [(c.side_1, c.side_2) for c in found] == [((0, 0), (3, 0)), ((1, 0), (3, 0))]
        assert crossing_project.crossings[0].side_2 == (1, 0)

    def test_progress(self):
        messages = []

        def on_progress(message=None, completed=None, total=None):
            messages.append(message)

        project = Project()
        for k in range(30):
            lon = 0.1 * k
            project.add_file(
                f"f{k}",
                [make_record((lon, 10.0), (lon + 0.01, 10.0), 1000.0 * k, 1000.0 * k + 400)],
            )
        CrossingDetector().find_crossings(project, on_progress=on_progress)
        assert any(m.startswith("Checked 25 of 30 sections") for m in messages)
        assert messages[-1].startswith("Found")

    def test_cancellation(self):
        token = CancellationToken()
        token.cancel()
        project = _grid_project()
        with pytest.raises(InterruptedError, match="cancelled"):
            CrossingDetector().find_crossings(project, cancellation=token)
        assert project.crossings == []

    def test_rebuild(self, crossing_project):
        found = CrossingDetector().rebuild(crossing_project, force=True)
        assert len(found) == 1
        assert crossing_project.num_crossings == 1

    def test_rebuild_refused_after_analysis(self, crossing_project):
        skip_crossing(crossing_project, 0)
        with pytest.raises(StateError, match="already been analyzed"):
            CrossingDetector().rebuild(crossing_project, force=True)
        assert crossing_project.num_crossings == 1

    def test_rebuild_needs_force(self, crossing_project):
        """Existing crossings are only discarded on request."""
        before = list(crossing_project.crossings)
        with pytest.raises(StateError, match="use force"):
            CrossingDetector().rebuild(crossing_project)
        assert crossing_project.crossings == before

    def test_rebuild_empty_store(self):
        project = Project()
        project.add_file("east", [east_line()])
        project.add_file("north", [north_line()])
        assert len(CrossingDetector().rebuild(project)) == 1

    def test_rebuild_cancelled_keeps_crossings(self, crossing_project):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(InterruptedError):
            CrossingDetector().rebuild(crossing_project, force=True, cancellation=token)
        assert crossing_project.num_crossings == 1

    def test_update_overlap_floor(self, crossing_project):
        """Moving a side far away leaves the overlap at the one percent floor."""
        crossing = crossing_project.crossings[0]
        section = crossing_project.section(1, 0)
        scale = crossing_project.section_scale(1, 0)
        for point in section.nav_points:
            point.set_offset(Vector3D(50_000.0, 0.0, 0.0), scale)
        assert CrossingDetector().update_overlap(crossing_project, crossing) == 1

    def test_overlap_bounds(self, crossing_project):
        crossing = crossing_project.crossings[0]
        bounds = CrossingDetector().overlap_bounds(crossing_project, crossing)
        side_1 = crossing_project.section(*crossing.side_1).bounds
        side_2 = crossing_project.section(*crossing.side_2).bounds
        assert bounds is not None
        assert bounds.lon_min >= max(side_1.lon_min, side_2.lon_min) - 1e-9
        assert bounds.lon_max <= min(side_1.lon_max, side_2.lon_max) + 1e-9
        assert bounds.lat_min >= max(side_1.lat_min, side_2.lat_min) - 1e-9
        assert bounds.lat_max <= min(side_1.lat_max, side_2.lat_max) + 1e-9
