# -*- coding: utf-8 -*-
"""Crossing detection between overlapping sections."""

from navadjust_lib.crossing.detector import CrossingDetector
from navadjust_lib.crossing.detector import OverlapResult
from navadjust_lib.crossing.detector import canonical_sides
from navadjust_lib.crossing.detector import compare_crossings
from navadjust_lib.crossing.detector import coverage_overlap
from navadjust_lib.crossing.detector import crossing_sort_key
from navadjust_lib.crossing.detector import is_continuous_neighbor
from navadjust_lib.crossing.detector import is_true_crossing
from navadjust_lib.crossing.detector import overlap_bounds
from navadjust_lib.crossing.detector import section_key
from navadjust_lib.crossing.detector import segments_intersect

__all__ = [
    "CrossingDetector",
    "OverlapResult",
    "canonical_sides",
    "compare_crossings",
    "coverage_overlap",
    "crossing_sort_key",
    "is_continuous_neighbor",
    "is_true_crossing",
    "overlap_bounds",
    "section_key",
    "segments_intersect",
]
