# -*- coding: utf-8 -*-
"""Densify a sparse offset solution onto every nav point.

Along each continuous track, untied nav points take the time-weighted
linear interpolation between the nearest tied points before and after
them. Points beyond the first or last tied point of a track take the
value of that tied point. Tracks without any tied point keep their input
values. Tied points are never modified, so interpolating twice gives the
same result as interpolating once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from navadjust_lib.models import Vector3D
from navadjust_lib.solver.models import NavNetwork

if TYPE_CHECKING:
    from navadjust_lib.models import SnavRef
    from navadjust_lib.project.models import Project


def _interpolate_track(times: np.ndarray, values: np.ndarray, tied: np.ndarray) -> np.ndarray:
    size = len(times)
    positions = np.arange(size)

    # forward walk: most recent tied point at or before each position
    previous = np.maximum.accumulate(np.where(tied, positions, -1))
    # backward walk: next tied point at or after each position
    following = np.minimum.accumulate(np.where(tied, positions, size)[::-1])[::-1]

    has_previous = previous >= 0
    has_following = following < size
    prev_idx = np.where(has_previous, previous, 0)
    next_idx = np.where(has_following, following, 0)

    out = values.copy()
    only_previous = ~tied & has_previous & ~has_following
    only_following = ~tied & ~has_previous & has_following
    out[only_previous] = values[prev_idx[only_previous]]
    out[only_following] = values[next_idx[only_following]]

    between = ~tied & has_previous & has_following
    if between.any():
        t0 = times[prev_idx[between]]
        t1 = times[next_idx[between]]
        span = t1 - t0
        safe = np.where(span > 0.0, span, 1.0)
        weight = np.where(span > 0.0, (times[between] - t0) / safe, 0.5)
        weight = np.clip(weight, 0.0, 1.0)[:, None]
        out[between] = (1.0 - weight) * values[prev_idx[between]] + weight * values[
            next_idx[between]
        ]
    return out


def interpolate_offsets(
    network: NavNetwork, values: np.ndarray, tied: np.ndarray
) -> np.ndarray:
    """Fill the untied unknowns of a network from the tied ones.

    Args:
        network: Network providing tracks and times
        values: (n, 3) offsets; only the tied rows are read, except on
            tracks without any tied point
        tied: (n,) mask of tied unknowns

    Returns:
        New (n, 3) array of dense offsets
    """
    out = np.array(values, dtype=float, copy=True)
    for track in network.tracks:
        mask = tied[track]
        if mask.all() or not mask.any():
            continue
        out[track] = _interpolate_track(network.times[track], out[track], mask)
    return out


def interpolate_solution(
    project: Project, sparse: dict[SnavRef, Vector3D]
) -> dict[SnavRef, Vector3D]:
    """Densify offsets given for some nav points onto every nav point.

    Args:
        project: Project providing tracks and times
        sparse: Offsets of the tied nav points

    Returns:
        Offset of every nav point of the project
    """
    network = NavNetwork.from_project(project)
    values = np.zeros((network.num_points, 3))
    tied = np.zeros(network.num_points, dtype=bool)
    for ref, offset in sparse.items():
        k = network.index[ref]
        values[k] = offset
        tied[k] = True
    dense = interpolate_offsets(network, values, tied)
    return {ref: Vector3D(*map(float, dense[k])) for ref, k in network.index.items()}
