# -*- coding: utf-8 -*-
"""Geometric primitives shared by every navadjust_lib component.

Offsets are expressed in a local metric frame: ``x`` east, ``y`` north and
``z`` depth (positive down), all in metres.
"""

from __future__ import annotations

from typing import NamedTuple

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

# ---------------------------------------------------------------------------
# Vectors
# ---------------------------------------------------------------------------


class Vector3D(NamedTuple):
    """An immutable 3-D vector (east, north, down) in metres."""

    x: float
    y: float
    z: float

    def __add__(self, other: Vector3D) -> Vector3D:  # type: ignore[override]
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3D) -> Vector3D:
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector3D:  # type: ignore[override]
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vector3D:
        return self.__mul__(scalar)

    def __neg__(self) -> Vector3D:
        return Vector3D(-self.x, -self.y, -self.z)

    @property
    def length(self) -> float:
        """Euclidean length of the vector."""
        return (self.x**2 + self.y**2 + self.z**2) ** 0.5

    def dot(self, other: Vector3D) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector3D) -> Vector3D:
        return Vector3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def normalized(self) -> Vector3D:
        """Unit vector in the same direction.

        Raises:
            ValueError: If the vector has zero length
        """
        length = self.length
        if length == 0.0:
            raise ValueError("Cannot normalize a zero-length vector")
        return self * (1.0 / length)


ZERO = Vector3D(0.0, 0.0, 0.0)

EAST = Vector3D(1.0, 0.0, 0.0)
NORTH = Vector3D(0.0, 1.0, 0.0)
DOWN = Vector3D(0.0, 0.0, 1.0)


class SnavRef(NamedTuple):
    """Index-based reference to one navigation point of a project."""

    file_id: int
    section_id: int
    snav_id: int

    def __str__(self) -> str:
        return f"{self.file_id}:{self.section_id}:{self.snav_id}"


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------


class Bounds(BaseModel):
    """Axis-aligned longitude / latitude bounding box in degrees."""

    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float

    model_config = ConfigDict(frozen=True)

    @property
    def width(self) -> float:
        return self.lon_max - self.lon_min

    @property
    def height(self) -> float:
        return self.lat_max - self.lat_min

    @property
    def center(self) -> tuple[float, float]:
        return (
            0.5 * (self.lon_min + self.lon_max),
            0.5 * (self.lat_min + self.lat_max),
        )

    def shifted(self, dlon: float, dlat: float) -> Bounds:
        """Return the box translated by (dlon, dlat) degrees."""
        return Bounds(
            lon_min=self.lon_min + dlon,
            lon_max=self.lon_max + dlon,
            lat_min=self.lat_min + dlat,
            lat_max=self.lat_max + dlat,
        )

    def overlaps(self, other: Bounds) -> bool:
        """True if the two boxes share a region of nonzero area."""
        return (
            self.lon_min < other.lon_max
            and self.lon_max > other.lon_min
            and self.lat_min < other.lat_max
            and self.lat_max > other.lat_min
        )


# ---------------------------------------------------------------------------
# Uncertainty
# ---------------------------------------------------------------------------


class Ellipsoid(BaseModel):
    """Uncertainty ellipsoid of a tie offset.

    ``axes`` holds three orthogonal unit vectors and ``radii`` the matching
    1-sigma radii in metres.
    """

    axes: tuple[Vector3D, Vector3D, Vector3D] = (EAST, NORTH, DOWN)
    radii: tuple[float, float, float] = Field(default=(1.0, 1.0, 1.0))

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_axes(self) -> Ellipsoid:
        for axis in self.axes:
            if abs(axis.length - 1.0) > 1.0e-6:
                raise ValueError(f"Ellipsoid axis {axis} is not a unit vector")
        return self

    @classmethod
    def axis_aligned(cls, sigma_x: float, sigma_y: float, sigma_z: float) -> Ellipsoid:
        """Ellipsoid aligned with east, north and down."""
        return cls(axes=(EAST, NORTH, DOWN), radii=(sigma_x, sigma_y, sigma_z))

    @property
    def vertical_index(self) -> int:
        """Index of the axis closest to vertical."""
        return max(range(3), key=lambda i: abs(self.axes[i].z))
