# -*- coding: utf-8 -*-
"""How a tie correction is shared between its two endpoints.

The share depends only on the pair of file statuses and the axis group,
so every combination is computed once into :data:`STATUS_SPLIT`.

For one axis group:

* both sides held: neither moves;
* one side held: the other side takes the whole correction;
* equal quality (GOOD/GOOD or POOR/POOR): 50/50;
* mixed quality: the POOR side takes ``SOFT_WEIGHT_HIGH`` and the GOOD
  side ``SOFT_WEIGHT_LOW``.

A file held only on the other axis group counts as GOOD.
"""

from __future__ import annotations

from itertools import product
from typing import NamedTuple

import numpy as np

from navadjust_lib.constants import SOFT_WEIGHT_HIGH
from navadjust_lib.constants import SOFT_WEIGHT_LOW
from navadjust_lib.enums import AxisGroup
from navadjust_lib.enums import FileStatus


class Split(NamedTuple):
    """Share of a correction applied to side 1 and side 2."""

    side_1: float
    side_2: float


class AxisSplit(NamedTuple):
    """Correction shares for the horizontal and vertical axis groups."""

    xy: Split
    z: Split

    def side_1_vector(self) -> np.ndarray:
        """Per-component (east, north, down) share of side 1."""
        return np.array([self.xy.side_1, self.xy.side_1, self.z.side_1])

    def side_2_vector(self) -> np.ndarray:
        return np.array([self.xy.side_2, self.xy.side_2, self.z.side_2])


def _split(status_1: FileStatus, status_2: FileStatus, group: AxisGroup) -> Split:
    fixed_1 = status_1.is_fixed(group)
    fixed_2 = status_2.is_fixed(group)
    if fixed_1 and fixed_2:
        return Split(0.0, 0.0)
    if fixed_1:
        return Split(0.0, 1.0)
    if fixed_2:
        return Split(1.0, 0.0)
    if status_1.is_poor == status_2.is_poor:
        return Split(0.5, 0.5)
    if status_1.is_poor:
        return Split(SOFT_WEIGHT_HIGH, SOFT_WEIGHT_LOW)
    return Split(SOFT_WEIGHT_LOW, SOFT_WEIGHT_HIGH)


def build_split_table() -> dict[tuple[FileStatus, FileStatus], AxisSplit]:
    return {
        (status_1, status_2): AxisSplit(
            xy=_split(status_1, status_2, AxisGroup.XY),
            z=_split(status_1, status_2, AxisGroup.Z),
        )
        for status_1, status_2 in product(FileStatus, repeat=2)
    }


#: (status of side 1, status of side 2) -> correction shares
STATUS_SPLIT: dict[tuple[FileStatus, FileStatus], AxisSplit] = build_split_table()


def global_split(status: FileStatus) -> np.ndarray:
    """Per-component share taken by a nav point tied to a fixed reference."""
    return np.array(
        [
            0.0 if status.is_fixed_xy else 1.0,
            0.0 if status.is_fixed_xy else 1.0,
            0.0 if status.is_fixed_z else 1.0,
        ]
    )
