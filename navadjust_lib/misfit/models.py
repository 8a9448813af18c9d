# -*- coding: utf-8 -*-
"""Data structures for misfit computation."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

import numpy as np

from navadjust_lib.models import Bounds

if TYPE_CHECKING:
    from collections.abc import Iterable

    from navadjust_lib.models import Ellipsoid
    from navadjust_lib.models import Vector3D


@dataclass
class Soundings:
    """Bathymetry samples of one section.

    Depths are positive down, in metres; positions are in degrees.
    """

    lon: np.ndarray
    lat: np.ndarray
    depth: np.ndarray

    def __post_init__(self) -> None:
        self.lon = np.asarray(self.lon, dtype=float)
        self.lat = np.asarray(self.lat, dtype=float)
        self.depth = np.asarray(self.depth, dtype=float)
        if not (self.lon.shape == self.lat.shape == self.depth.shape):
            raise ValueError("lon, lat and depth must have the same shape")
        valid = np.isfinite(self.lon) & np.isfinite(self.lat) & np.isfinite(self.depth)
        self.lon = self.lon[valid].ravel()
        self.lat = self.lat[valid].ravel()
        self.depth = self.depth[valid].ravel()

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float, float]]) -> Soundings:
        """Build from (lon, lat, depth) triples."""
        array = np.asarray(list(points), dtype=float).reshape(-1, 3)
        return cls(lon=array[:, 0], lat=array[:, 1], depth=array[:, 2])

    def __len__(self) -> int:
        return len(self.depth)

    @property
    def bounds(self) -> Bounds:
        return Bounds(
            lon_min=float(self.lon.min()),
            lon_max=float(self.lon.max()),
            lat_min=float(self.lat.min()),
            lat_max=float(self.lat.max()),
        )


@dataclass
class MisfitResult:
    """Misfit volume of a crossing and the offset that minimizes it.

    ``misfit[k, j, i]`` is the RMS depth difference when side 2 is moved by
    ``(dx[i], dy[j], dz[k])`` metres; it is NaN where too few grid cells
    overlap. ``counts[j, i]`` is the number of overlapping grid cells for a
    lateral offset. ``severity_table`` holds ascending quantile boundaries of
    the nonzero misfit values.
    """

    dx: np.ndarray
    dy: np.ndarray
    dz: np.ndarray
    misfit: np.ndarray
    counts: np.ndarray
    trial_offset: Vector3D
    min_offset: Vector3D
    min_misfit: float
    min_offset_fixed_z: Vector3D
    threshold: float
    cell_size: float
    ellipsoid: Ellipsoid
    severity_table: list[float] = field(default_factory=list)

    @property
    def z_step(self) -> float:
        return float(self.dz[1] - self.dz[0]) if len(self.dz) > 1 else 0.0

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.misfit.shape
