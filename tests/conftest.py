# -*- coding: utf-8 -*-
"""Pytest configuration and fixtures.

Every project used by the tests is synthetic: survey files are built from
straight-line section records with a fully covered mask, so no data files
are needed.

The standard crossing project holds three single-section files:

- file 0 runs east along latitude 10,
- file 1 runs north along longitude 0 and crosses file 0 at its middle,
- file 2 lies far away and crosses nothing.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from collections.abc import Sequence
from pathlib import Path

import numpy as np
import pytest

from navadjust_lib.constants import MASK_DIM
from navadjust_lib.crossing import CrossingDetector
from navadjust_lib.geo_utils import CoordinateScale
from navadjust_lib.misfit import Soundings
from navadjust_lib.models import Ellipsoid
from navadjust_lib.models import Vector3D
from navadjust_lib.project.models import NavPointRecord
from navadjust_lib.project.models import Project
from navadjust_lib.project.models import SectionRecord
from navadjust_lib.ties import add_tie

# =============================================================================
# Constants
# =============================================================================

#: Offset of the end-to-end tie (east, north, down) in metres
E2E_OFFSET = Vector3D(10.0, -5.0, 0.2)

#: Uncertainty of the end-to-end tie in metres
E2E_SIGMA = 2.0

#: Nav point tied on each side of the standard crossing (the middle one)
TIED_SNAV = 2


# =============================================================================
# Builders
# =============================================================================


def make_record(
    start: tuple[float, float],
    end: tuple[float, float],
    t0: float,
    t1: float,
    *,
    count: int = 5,
    continuity: bool = False,
    times: Sequence[float] | None = None,
    pad: float = 0.002,
) -> SectionRecord:
    """Straight-line section record from ``start`` to ``end`` (lon, lat)."""
    lons = np.linspace(start[0], end[0], count)
    lats = np.linspace(start[1], end[1], count)
    stamps = np.linspace(t0, t1, count) if times is None else np.asarray(times)
    return SectionRecord(
        ping_count=10 * count,
        beam_count=101,
        continuity=continuity,
        time_start=float(stamps[0]),
        time_end=float(stamps[-1]),
        lon_min=float(lons.min()) - pad,
        lon_max=float(lons.max()) + pad,
        lat_min=float(lats.min()) - pad,
        lat_max=float(lats.max()) + pad,
        depth_min=40.0,
        depth_max=60.0,
        coverage_mask=[[True] * MASK_DIM for _ in range(MASK_DIM)],
        nav_points=[
            NavPointRecord(
                ping_index=10 * i,
                distance=float(i),
                time_d=float(stamps[i]),
                lon=float(lons[i]),
                lat=float(lats[i]),
            )
            for i in range(count)
        ],
    )


def east_line(t0: float = 0.0, **kwargs) -> SectionRecord:
    return make_record((-0.01, 10.0), (0.01, 10.0), t0, t0 + 400.0, **kwargs)


def north_line(t0: float = 1000.0, **kwargs) -> SectionRecord:
    return make_record((0.0, 9.99), (0.0, 10.01), t0, t0 + 400.0, **kwargs)


def far_line(t0: float = 2000.0, **kwargs) -> SectionRecord:
    return make_record((1.0, 10.5), (1.02, 10.5), t0, t0 + 400.0, **kwargs)


def build_crossing_project(
    east: SectionRecord | None = None, north: SectionRecord | None = None
) -> Project:
    """Three-file project with its single crossing detected."""
    project = Project(name="synthetic")
    project.add_file("east", [east or east_line()])
    project.add_file("north", [north or north_line()])
    project.add_file("far", [far_line()])
    CrossingDetector().find_crossings(project)
    return project


def add_e2e_tie(project: Project) -> int:
    return add_tie(
        project,
        0,
        E2E_OFFSET,
        snav_1=TIED_SNAV,
        snav_2=TIED_SNAV,
        ellipsoid=Ellipsoid.axis_aligned(E2E_SIGMA, E2E_SIGMA, E2E_SIGMA),
    )


def write_sections(path: Path, records: list[SectionRecord]) -> Path:
    """Write section records the way the ingestion step delivers them."""
    path.write_text(
        json.dumps([record.model_dump(mode="json", by_alias=True) for record in records]),
        encoding="utf-8",
    )
    return path


def bowl_depth(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Smooth seafloor with a unique lateral fit (depth in metres)."""
    return 50.0 + 0.002 * (x * x + y * y) + 0.3 * np.sin(x / 15.0)


def bowl_soundings(
    scale: CoordinateScale,
    origin: tuple[float, float],
    shift: Vector3D = Vector3D(0.0, 0.0, 0.0),
    half_width: float = 100.0,
    spacing: float = 2.0,
) -> Soundings:
    """Soundings of the bowl surface seen by a track displaced by ``-shift``.

    Moving the returned soundings by ``(shift.x, shift.y)`` and adding
    ``shift.z`` to their depths reproduces the true surface.
    """
    axis = np.arange(-half_width, half_width + spacing, spacing)
    x, y = np.meshgrid(axis, axis)
    x = x.ravel()
    y = y.ravel()
    depth = bowl_depth(x, y) - shift.z
    lon = origin[0] + (x - shift.x) * scale.mtodeglon
    lat = origin[1] + (y - shift.y) * scale.mtodeglat
    return Soundings(lon=lon, lat=lat, depth=depth)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def record_factory() -> Callable[..., SectionRecord]:
    """Return the straight-line section record builder."""
    return make_record


@pytest.fixture
def crossing_project() -> Project:
    """Three-file project with one detected, unanalyzed true crossing."""
    return build_crossing_project()


@pytest.fixture
def tied_project(crossing_project: Project) -> Project:
    """Crossing project whose crossing holds the end-to-end tie."""
    add_e2e_tie(crossing_project)
    crossing_project.settings.smoothing = 0.0
    return crossing_project
