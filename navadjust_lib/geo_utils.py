# -*- coding: utf-8 -*-
"""Conversions between angular and local metric offsets."""

from __future__ import annotations

from functools import lru_cache
from typing import NamedTuple

from pyproj import Geod

_GEOD = Geod(ellps="WGS84")

#: Angular step used to measure the local length of a degree
_PROBE_DEG = 0.01

#: Latitudes are clamped to this magnitude to keep a degree of longitude finite
_MAX_LATITUDE = 89.9


class CoordinateScale(NamedTuple):
    """Degrees per metre at a reference latitude.

    Attributes:
        mtodeglon: Degrees of longitude per metre east
        mtodeglat: Degrees of latitude per metre north
    """

    mtodeglon: float
    mtodeglat: float

    def to_meters(self, dlon: float, dlat: float) -> tuple[float, float]:
        """Convert a (dlon, dlat) degree offset to (east, north) metres."""
        return (dlon / self.mtodeglon, dlat / self.mtodeglat)

    def to_degrees(self, x_m: float, y_m: float) -> tuple[float, float]:
        """Convert an (east, north) metre offset to (dlon, dlat) degrees."""
        return (x_m * self.mtodeglon, y_m * self.mtodeglat)


@lru_cache(maxsize=4096)
def _scale_at(latitude: float) -> CoordinateScale:
    _, _, meters_lon = _GEOD.inv(0.0, latitude, _PROBE_DEG, latitude)
    _, _, meters_lat = _GEOD.inv(
        0.0, latitude - 0.5 * _PROBE_DEG, 0.0, latitude + 0.5 * _PROBE_DEG
    )
    return CoordinateScale(
        mtodeglon=_PROBE_DEG / meters_lon,
        mtodeglat=_PROBE_DEG / meters_lat,
    )


def coordinate_scale(latitude: float) -> CoordinateScale:
    """Return the degrees-per-metre scale on WGS84 at ``latitude``.

    Args:
        latitude: Reference latitude in degrees

    Returns:
        CoordinateScale for offsets near that latitude
    """
    latitude = max(-_MAX_LATITUDE, min(_MAX_LATITUDE, float(latitude)))
    # round so nearby sections share a cache entry
    return _scale_at(round(latitude, 4))
