# -*- coding: utf-8 -*-
"""Misfit search between the bathymetry of two crossing sections."""

from navadjust_lib.misfit.engine import MisfitEngine
from navadjust_lib.misfit.engine import grid_average
from navadjust_lib.misfit.engine import severity_table
from navadjust_lib.misfit.engine import uncertainty_ellipsoid
from navadjust_lib.misfit.models import MisfitResult
from navadjust_lib.misfit.models import Soundings

__all__ = [
    "MisfitEngine",
    "MisfitResult",
    "Soundings",
    "grid_average",
    "severity_table",
    "uncertainty_ellipsoid",
]
