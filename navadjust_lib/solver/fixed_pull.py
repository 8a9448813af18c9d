# -*- coding: utf-8 -*-
"""Pull free files toward fixed references before fine solving.

Fixed files and files carrying global ties are seeds of a walk through the
file-level tie graph. Every other file reached from a seed inherits the
seed's correction plus the residuals of the ties crossed on the way. When
several seeds reach a file, their corrections are averaged with weight
``1 / hops**2``. Horizontal and vertical components are handled
separately because a file may be fixed on only one of them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from navadjust_lib.enums import AxisGroup

if TYPE_CHECKING:
    from navadjust_lib.solver.models import NavNetwork

logger = logging.getLogger(__name__)


def hop_counts(num_nodes: int, edges: list[tuple[int, int]], seed: int) -> np.ndarray:
    """Number of edges between ``seed`` and every node.

    Relaxes the edge list forward and backward until no hop count changes.
    Unreachable nodes get ``inf``.
    """
    hops = np.full(num_nodes, np.inf)
    hops[seed] = 0.0
    changed = True
    while changed:
        changed = False
        for a, b in edges:
            if hops[a] + 1 < hops[b]:
                hops[b] = hops[a] + 1
                changed = True
        for a, b in reversed(edges):
            if hops[b] + 1 < hops[a]:
                hops[a] = hops[b] + 1
                changed = True
    return hops


def _propagate(
    hops: np.ndarray,
    edges: list[tuple[int, int, np.ndarray]],
    seed_value: np.ndarray,
    seed: int,
) -> np.ndarray:
    """Carry a seed correction outward, level by level."""
    values = np.full((len(hops), len(seed_value)), np.nan)
    values[seed] = seed_value
    finite = hops[np.isfinite(hops)]
    for level in range(1, int(finite.max()) + 1 if len(finite) else 1):
        sums = np.zeros_like(values)
        counts = np.zeros(len(hops))
        for file_1, file_2, residual in edges:
            if hops[file_2] == level and hops[file_1] == level - 1:
                sums[file_2] += values[file_1] + residual
                counts[file_2] += 1
            elif hops[file_1] == level and hops[file_2] == level - 1:
                sums[file_1] += values[file_2] - residual
                counts[file_1] += 1
        reached = counts > 0
        values[reached] = sums[reached] / counts[reached, None]
    return values


def fixed_pull_offsets(network: NavNetwork, start: np.ndarray) -> np.ndarray:
    """Correction of each file pulling it toward the fixed references.

    Args:
        network: Network of the project
        start: (n, 3) starting offsets of the unknowns

    Returns:
        (num_files, 3) corrections in metres; zero for fixed files and
        files not connected to any seed
    """
    num_files = len(network.statuses)
    corrections = np.zeros((num_files, 3))

    for group in (AxisGroup.XY, AxisGroup.Z):
        components = list(group.components)

        seeds: dict[int, np.ndarray] = {
            file_id: np.zeros(len(components))
            for file_id, status in enumerate(network.statuses)
            if status.is_fixed(group)
        }
        pulls: dict[int, list[np.ndarray]] = {}
        for obs in network.observations:
            if not obs.is_global or not obs.axes.components[components].all():
                continue
            file_id = int(network.file_ids[obs.point_2])
            if file_id in seeds and network.statuses[file_id].is_fixed(group):
                continue
            residual = obs.offset[components] - start[obs.point_2, components]
            pulls.setdefault(file_id, []).append(residual)
        for file_id, residuals in pulls.items():
            seeds[file_id] = np.mean(residuals, axis=0)
        if not seeds:
            continue

        edges: list[tuple[int, int, np.ndarray]] = []
        for file_1, file_2, k in network.file_edges:
            obs = network.observations[k]
            if not obs.axes.components[components].all():
                continue
            model = start[obs.point_2, components] - start[obs.point_1, components]
            edges.append((file_1, file_2, obs.offset[components] - model))
        links = [(file_1, file_2) for file_1, file_2, _ in edges]

        weighted = np.zeros((num_files, len(components)))
        total = np.zeros(num_files)
        for seed, seed_value in seeds.items():
            hops = hop_counts(num_files, links, seed)
            values = _propagate(hops, edges, seed_value, seed)
            reached = np.isfinite(hops) & (hops > 0)
            weight = np.zeros(num_files)
            weight[reached] = 1.0 / hops[reached] ** 2
            weighted[reached] += weight[reached, None] * values[reached]
            total += weight

        pulled = total > 0
        group_corrections = np.zeros((num_files, len(components)))
        group_corrections[pulled] = weighted[pulled] / total[pulled, None]
        for seed, seed_value in seeds.items():
            group_corrections[seed] = seed_value
        for file_id, status in enumerate(network.statuses):
            if status.is_fixed(group):
                group_corrections[file_id] = 0.0
        corrections[:, components] = group_corrections

        logger.info(
            "Pulled %d files toward %d %s references",
            int(pulled.sum()),
            len(seeds),
            group.value,
        )
    return corrections
