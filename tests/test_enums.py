# -*- coding: utf-8 -*-
"""Tests for enums module."""

import pytest

from navadjust_lib.enums import AxisGroup
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import FileStatus
from navadjust_lib.enums import OverlapCategory
from navadjust_lib.enums import TieMode


class TestFileStatus:
    """Tests for FileStatus enum."""

    def test_values(self):
        """Test enum values."""
        assert FileStatus("good") is FileStatus.GOOD
        assert FileStatus.FIXED_XY.value == "fixed_xy"

    @pytest.mark.parametrize(
        ("status", "fixed_xy", "fixed_z"),
        [
            (FileStatus.GOOD, False, False),
            (FileStatus.POOR, False, False),
            (FileStatus.FIXED, True, True),
            (FileStatus.FIXED_XY, True, False),
            (FileStatus.FIXED_Z, False, True),
        ],
    )
    def test_fixed_groups(self, status, fixed_xy, fixed_z):
        """Test which axis groups each status holds."""
        assert status.is_fixed_xy is fixed_xy
        assert status.is_fixed_z is fixed_z
        assert status.is_fixed(AxisGroup.XY) is fixed_xy
        assert status.is_fixed(AxisGroup.Z) is fixed_z

    def test_is_poor(self):
        """Only POOR is poor."""
        assert FileStatus.POOR.is_poor
        assert not FileStatus.FIXED.is_poor


class TestAxisGroup:
    """Tests for AxisGroup enum."""

    def test_components(self):
        """Test vector components of each group."""
        assert AxisGroup.XY.components == (0, 1)
        assert AxisGroup.Z.components == (2,)


class TestCrossingStatus:
    """Tests for CrossingStatus enum."""

    def test_analyzed(self):
        """SET and SKIP count as analyzed."""
        assert not CrossingStatus.NONE.analyzed
        assert CrossingStatus.SET.analyzed
        assert CrossingStatus.SKIP.analyzed


class TestTieMode:
    """Tests for TieMode enum."""

    def test_observed_groups(self):
        """Test which groups each mode observes."""
        assert TieMode.XYZ.observes_xy and TieMode.XYZ.observes_z
        assert TieMode.XY.observes_xy and not TieMode.XY.observes_z
        assert not TieMode.Z.observes_xy and TieMode.Z.observes_z


class TestOverlapCategory:
    """Tests for OverlapCategory enum."""

    def test_minimum(self):
        """Test minimum overlap percentages."""
        assert [c.minimum for c in OverlapCategory] == [0, 25, 50, 75]
