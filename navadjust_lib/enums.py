# -*- coding: utf-8 -*-
"""Enumerations for navigation adjustment projects.

This module contains all enumerations used by the project store, the tie
manager and the inversion solver.
"""

from enum import Enum


class FileStatus(str, Enum):
    """How strongly the navigation of a survey file may be adjusted.

    Attributes:
        GOOD: Navigation is trusted; moves as much as its peers
        POOR: Navigation is doubtful; absorbs most of a shared correction
        FIXED: Navigation is held in all three axes
        FIXED_XY: Horizontal navigation is held, depth may move
        FIXED_Z: Depth is held, horizontal navigation may move
    """

    GOOD = "good"
    POOR = "poor"
    FIXED = "fixed"
    FIXED_XY = "fixed_xy"
    FIXED_Z = "fixed_z"

    @property
    def is_fixed_xy(self) -> bool:
        """True if horizontal offsets of this file are held at zero."""
        return self in (FileStatus.FIXED, FileStatus.FIXED_XY)

    @property
    def is_fixed_z(self) -> bool:
        """True if vertical offsets of this file are held at zero."""
        return self in (FileStatus.FIXED, FileStatus.FIXED_Z)

    def is_fixed(self, group: "AxisGroup") -> bool:
        """True if this file is held on the given axis group."""
        if group is AxisGroup.XY:
            return self.is_fixed_xy
        return self.is_fixed_z

    @property
    def is_poor(self) -> bool:
        return self is FileStatus.POOR


class AxisGroup(str, Enum):
    """Axis groups that can be fixed independently.

    Attributes:
        XY: Horizontal (east, north)
        Z: Vertical
    """

    XY = "xy"
    Z = "z"

    @property
    def components(self) -> tuple[int, ...]:
        """Indices of the vector components belonging to this group."""
        return (0, 1) if self is AxisGroup.XY else (2,)


class CrossingStatus(str, Enum):
    """Analysis state of a crossing.

    Attributes:
        NONE: Not analyzed yet
        SET: At least one tie was picked
        SKIP: Analyzed and rejected
    """

    NONE = "none"
    SET = "set"
    SKIP = "skip"

    @property
    def analyzed(self) -> bool:
        return self is not CrossingStatus.NONE


class TieMode(str, Enum):
    """Which offset components of a tie are observed by the solver.

    Attributes:
        XYZ: All three components
        XY: Horizontal components only
        Z: Vertical component only
    """

    XYZ = "xyz"
    XY = "xy"
    Z = "z"

    @property
    def observes_xy(self) -> bool:
        return self is not TieMode.Z

    @property
    def observes_z(self) -> bool:
        return self is not TieMode.XY


class InversionStatus(str, Enum):
    """State of the project navigation solution.

    Attributes:
        NONE: Never inverted
        CURRENT: Solution reflects every stored tie
        OLD: Ties changed since the last inversion
    """

    NONE = "none"
    CURRENT = "current"
    OLD = "old"


class MisfitCenter(str, Enum):
    """Where the z window of a misfit volume is centered.

    Attributes:
        TRIAL: On the z component of the trial offset
        AUTO: On zero, letting the search find the vertical offset
    """

    TRIAL = "trial"
    AUTO = "auto"


class SelectionScope(str, Enum):
    """Restricts crossing selection to part of a project.

    Attributes:
        ALL: Every crossing
        BLOCK: Crossings touching a given block (survey)
        FILE: Crossings touching a given file
        SECTION: Crossings touching a given section
    """

    ALL = "all"
    BLOCK = "block"
    FILE = "file"
    SECTION = "section"


class OverlapCategory(str, Enum):
    """Minimum overlap a crossing must have to be selected.

    Attributes:
        ANY: No restriction
        QUARTER: At least 25 percent
        HALF: At least 50 percent
        MOST: At least 75 percent
    """

    ANY = "any"
    QUARTER = "quarter"
    HALF = "half"
    MOST = "most"

    @property
    def minimum(self) -> int:
        """Minimum overlap percentage for this category."""
        return {
            OverlapCategory.ANY: 0,
            OverlapCategory.QUARTER: 25,
            OverlapCategory.HALF: 50,
            OverlapCategory.MOST: 75,
        }[self]


class PreconditionReason(str, Enum):
    """Why an inversion was refused.

    Attributes:
        EMPTY_PROJECT: No file holds any navigation point
        NO_TIES: No tie or global tie is available
        TOO_FEW_CROSSINGS: Not enough crossings have been analyzed
        NONPOSITIVE_SIGMA: A tie has a zero or negative uncertainty radius
    """

    EMPTY_PROJECT = "empty_project"
    NO_TIES = "no_ties"
    TOO_FEW_CROSSINGS = "too_few_crossings"
    NONPOSITIVE_SIGMA = "nonpositive_sigma"


class Severity(str, Enum):
    """Message severity levels.

    Attributes:
        ERROR: Fatal error
        WARNING: Non-fatal condition, computation continued
    """

    ERROR = "error"
    WARNING = "warning"
