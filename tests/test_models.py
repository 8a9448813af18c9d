# -*- coding: utf-8 -*-
"""Tests for geometric primitives and the project store."""

import pytest
from pydantic import ValidationError

from navadjust_lib.constants import MASK_DIM
from navadjust_lib.enums import FileStatus
from navadjust_lib.enums import InversionStatus
from navadjust_lib.geo_utils import coordinate_scale
from navadjust_lib.models import DOWN
from navadjust_lib.models import EAST
from navadjust_lib.models import NORTH
from navadjust_lib.models import ZERO
from navadjust_lib.models import Bounds
from navadjust_lib.models import Ellipsoid
from navadjust_lib.models import SnavRef
from navadjust_lib.models import Vector3D
from navadjust_lib.project.models import Crossing
from navadjust_lib.project.models import NavPointRecord
from navadjust_lib.project.models import Project
from navadjust_lib.project.models import SurveyFile
from tests.conftest import east_line
from tests.conftest import make_record

# ---------------------------------------------------------------------------
# Vector3D
# ---------------------------------------------------------------------------


class TestVector3D:
    """Tests for Vector3D arithmetic."""

    def test_add_sub(self):
        a = Vector3D(1, 2, 3)
        b = Vector3D(4, 5, 6)
        assert a + b == Vector3D(5, 7, 9)
        assert b - a == Vector3D(3, 3, 3)

    def test_scale_and_neg(self):
        a = Vector3D(2, -3, 4)
        assert a * 2 == Vector3D(4, -6, 8)
        assert 2 * a == Vector3D(4, -6, 8)
        assert -a == Vector3D(-2, 3, -4)

    def test_length(self):
        assert Vector3D(3, 4, 0).length == pytest.approx(5.0)
        assert ZERO.length == 0.0

    def test_dot_cross(self):
        assert EAST.dot(NORTH) == 0.0
        assert EAST.cross(NORTH) == DOWN

    def test_normalized(self):
        unit = Vector3D(0, 3, 4).normalized()
        assert unit.length == pytest.approx(1.0)
        assert unit.y == pytest.approx(0.6)

    def test_normalize_zero(self):
        """A zero vector has no direction."""
        with pytest.raises(ValueError, match="zero-length"):
            ZERO.normalized()


class TestSnavRef:
    """Tests for nav point references."""

    def test_str(self):
        assert str(SnavRef(1, 2, 3)) == "1:2:3"

    def test_hashable(self):
        assert {SnavRef(0, 0, 1): "a"}[SnavRef(0, 0, 1)] == "a"


# ---------------------------------------------------------------------------
# Bounds & Ellipsoid
# ---------------------------------------------------------------------------


class TestBounds:
    """Tests for Bounds."""

    def test_center_and_size(self):
        bounds = Bounds(lon_min=0.0, lon_max=2.0, lat_min=10.0, lat_max=11.0)
        assert bounds.width == 2.0
        assert bounds.height == 1.0
        assert bounds.center == (1.0, 10.5)

    def test_shifted(self):
        bounds = Bounds(lon_min=0.0, lon_max=1.0, lat_min=0.0, lat_max=1.0)
        moved = bounds.shifted(0.5, -0.5)
        assert moved.lon_min == 0.5
        assert moved.lat_max == 0.5

    def test_overlaps(self):
        a = Bounds(lon_min=0.0, lon_max=1.0, lat_min=0.0, lat_max=1.0)
        b = Bounds(lon_min=0.5, lon_max=1.5, lat_min=0.5, lat_max=1.5)
        c = Bounds(lon_min=1.0, lon_max=2.0, lat_min=0.0, lat_max=1.0)
        assert a.overlaps(b)
        assert b.overlaps(a)
        # touching edges share no area
        assert not a.overlaps(c)


class TestEllipsoid:
    """Tests for the uncertainty ellipsoid."""

    def test_axis_aligned(self):
        ellipsoid = Ellipsoid.axis_aligned(1.0, 2.0, 0.5)
        assert ellipsoid.axes == (EAST, NORTH, DOWN)
        assert ellipsoid.radii == (1.0, 2.0, 0.5)
        assert ellipsoid.vertical_index == 2

    def test_rejects_non_unit_axis(self):
        with pytest.raises(ValidationError, match="unit vector"):
            Ellipsoid(axes=(Vector3D(2, 0, 0), NORTH, DOWN))

    def test_vertical_index_rotated(self):
        ellipsoid = Ellipsoid(axes=(DOWN, EAST, NORTH), radii=(0.1, 1.0, 1.0))
        assert ellipsoid.vertical_index == 0


# ---------------------------------------------------------------------------
# Coordinate scale
# ---------------------------------------------------------------------------


class TestCoordinateScale:
    """Tests for the degrees-per-metre scale."""

    def test_equator(self):
        scale = coordinate_scale(0.0)
        assert 1.0 / scale.mtodeglon == pytest.approx(111_320, rel=1e-3)
        assert 1.0 / scale.mtodeglat == pytest.approx(110_574, rel=1e-3)

    def test_longitude_shrinks_with_latitude(self):
        assert coordinate_scale(60.0).mtodeglon == pytest.approx(
            2.0 * coordinate_scale(0.0).mtodeglon, rel=1e-2
        )

    def test_round_trip(self):
        scale = coordinate_scale(45.0)
        x_m, y_m = scale.to_meters(*scale.to_degrees(12.5, -7.0))
        assert x_m == pytest.approx(12.5)
        assert y_m == pytest.approx(-7.0)

    def test_pole_is_finite(self):
        scale = coordinate_scale(90.0)
        assert scale.mtodeglon > 0.0
        assert scale.mtodeglon < 1.0


# ---------------------------------------------------------------------------
# Project store
# ---------------------------------------------------------------------------


class TestNavPoint:
    """Tests for nav point offsets."""

    def test_set_offset_keeps_units_consistent(self):
        project = Project()
        project.add_file("a", [east_line()])
        point = project.nav_point(SnavRef(0, 0, 1))
        scale = project.section_scale(0, 0)
        point.set_offset(Vector3D(100.0, -50.0, 1.5), scale)
        assert point.offset == Vector3D(100.0, -50.0, 1.5)
        assert point.lon_offset == pytest.approx(100.0 * scale.mtodeglon)
        assert point.lat_offset == pytest.approx(-50.0 * scale.mtodeglat)
        assert point.position[0] == pytest.approx(point.lon + point.lon_offset)

    def test_latitude_is_validated(self):
        with pytest.raises(ValidationError):
            NavPointRecord(time_d=0.0, lon=0.0, lat=95.0)

    def test_time_alias(self):
        record = NavPointRecord.model_validate({"time": 12.0, "lon": 1.0, "lat": 2.0})
        assert record.time_d == 12.0


class TestSection:
    """Tests for section records and sections."""

    def test_to_section(self):
        record = make_record((0.0, 0.0), (0.01, 0.0), 0.0, 40.0, count=5)
        section = record.to_section()
        assert record.nav_point_count == 5
        assert section.num_snav == 5
        assert section.mid_snav == 2
        assert section.time_end == 40.0
        assert section.mask.shape == (MASK_DIM, MASK_DIM)
        assert section.mask.all()

    def test_coverage_shape_is_validated(self):
        record = make_record((0.0, 0.0), (0.01, 0.0), 0.0, 40.0)
        section = record.to_section()
        data = section.model_dump()
        data["coverage"] = [[True] * 3] * 3
        with pytest.raises(ValidationError, match="Coverage mask"):
            type(section).model_validate(data)


class TestCrossingModel:
    """Tests for the crossing model."""

    def test_sides_must_differ(self):
        with pytest.raises(ValidationError, match="distinct"):
            Crossing(
                file_id_1=0,
                section_1=0,
                file_id_2=0,
                section_2=0,
                mtodeglon=1e-5,
                mtodeglat=1e-5,
            )

    def test_involves(self):
        crossing = Crossing(
            file_id_1=0,
            section_1=1,
            file_id_2=2,
            section_2=0,
            mtodeglon=1e-5,
            mtodeglat=1e-5,
        )
        assert crossing.involves(0)
        assert crossing.involves(2, 0)
        assert not crossing.involves(0, 0)
        assert not crossing.involves(1)


class TestProject:
    """Tests for the project store."""

    def test_file_ids_match_positions(self):
        with pytest.raises(ValidationError, match="does not match"):
            Project(files=[SurveyFile(id=1, name="wrong")])

    def test_first_imported_section_is_not_continuous(self):
        project = Project()
        project.add_file("a", [east_line(continuity=True)])
        assert not project.section(0, 0).continuity

    def test_blocks_follow_continuity(self):
        project = Project()
        project.add_file("a", [east_line()])
        project.add_file("b", [east_line(t0=500.0, continuity=True)])
        project.add_file("c", [east_line(t0=1000.0)])
        assert [f.block for f in project.files] == [0, 0, 1]
        assert project.assign_blocks() == 2

    def test_canonical_ref_follows_continuity(self):
        project = Project()
        project.add_file(
            "a",
            [east_line(), east_line(t0=400.0, continuity=True)],
        )
        project.add_file("b", [east_line(t0=800.0, continuity=True)])
        assert project.canonical_ref(SnavRef(0, 1, 0)) == SnavRef(0, 0, 4)
        assert project.canonical_ref(SnavRef(1, 0, 0)) == SnavRef(0, 1, 4)
        assert project.canonical_ref(SnavRef(0, 1, 2)) == SnavRef(0, 1, 2)

    def test_previous_section(self):
        project = Project()
        project.add_file("a", [east_line(), east_line(t0=400.0)])
        project.add_file("b", [east_line(t0=800.0)])
        assert project.previous_section(0, 0) is None
        assert project.previous_section(0, 1) == (0, 0)
        assert project.previous_section(1, 0) == (0, 1)

    def test_counts(self, crossing_project):
        assert crossing_project.num_files == 3
        assert crossing_project.num_sections == 3
        assert crossing_project.num_nav_points == 15
        assert len(list(crossing_project.iter_nav_points())) == 15

    def test_section_crossings(self, crossing_project):
        assert crossing_project.section_crossings(0, 0) == [0]
        assert crossing_project.section_crossings(2, 0) == []

    def test_recount_matches_incremental_counters(self, tied_project):
        counters = (
            tied_project.num_ties,
            tied_project.num_crossings_analyzed,
            tied_project.num_truecrossings,
            tied_project.num_truecrossings_analyzed,
        )
        tied_project.recount()
        assert counters == (
            tied_project.num_ties,
            tied_project.num_crossings_analyzed,
            tied_project.num_truecrossings,
            tied_project.num_truecrossings_analyzed,
        )
        assert counters == (1, 1, 1, 1)

    def test_mark_ties_changed(self):
        project = Project()
        project.mark_ties_changed()
        assert project.inversion is InversionStatus.NONE
        project.inversion = InversionStatus.CURRENT
        project.mark_ties_changed()
        assert project.inversion is InversionStatus.OLD

    def test_import_status(self):
        project = Project()
        survey_file = project.add_file("a", [east_line()], status=FileStatus.POOR)
        assert survey_file.id == 0
        assert project.files[0].status is FileStatus.POOR
