# -*- coding: utf-8 -*-
"""Coarse offset estimate of each block.

A block is a run of files linked by continuity. Before solving for every
nav point, each block is treated as rigid and given one 3-D offset that
best satisfies the crossing ties between blocks. Ties inside a block and
global ties are ignored. Blocks holding a file fixed on an axis group are
pinned to zero on that group.

Each component is solved independently as a weighted least-squares
problem on a sparse design matrix. For an unconstrained network the
minimum-norm solution is returned.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse import identity
from scipy.sparse.linalg import lsqr
from scipy.sparse.linalg import spsolve

from navadjust_lib.constants import BLOCK_SOLVER_TOLERANCE
from navadjust_lib.constants import FIXED_BLOCK_WEIGHT
from navadjust_lib.enums import AxisGroup
from navadjust_lib.enums import Severity
from navadjust_lib.errors import SolverMessage

if TYPE_CHECKING:
    from navadjust_lib.solver.models import NavNetwork

logger = logging.getLogger(__name__)

_COMPONENT_GROUPS = (AxisGroup.XY, AxisGroup.XY, AxisGroup.Z)
_COMPONENT_NAMES = ("east", "north", "down")


def _component_variance(network: NavNetwork, k: int, component: int) -> float:
    axes = network.observations[k].axes
    active = axes.active & (axes.sigmas > 0.0)
    return float(np.sum((axes.sigmas[active] * axes.axes[active, component]) ** 2))


def _solve_component(
    rows: list[int],
    cols: list[int],
    vals: list[float],
    rhs: list[float],
    num_blocks: int,
    name: str,
    messages: list[SolverMessage],
) -> np.ndarray:
    n_rows = len(rhs)
    A = coo_matrix((vals, (rows, cols)), shape=(n_rows, num_blocks)).tocsr()
    b = np.asarray(rhs, dtype=float)

    solution, istop, *_ = lsqr(
        A, b, atol=BLOCK_SOLVER_TOLERANCE, btol=BLOCK_SOLVER_TOLERANCE
    )
    if istop in (0, 1, 2):
        return solution

    logger.warning(
        "Least-squares block estimate (%s) stopped with code %d, "
        "falling back to direct solve",
        name,
        istop,
    )
    messages.append(
        SolverMessage(
            Severity.WARNING,
            f"Block estimate ({name}) fell back to a direct solve",
        )
    )
    N = (A.T @ A + BLOCK_SOLVER_TOLERANCE * identity(num_blocks)).tocsc()
    return np.asarray(spsolve(N, A.T @ b)).ravel()


def estimate_block_offsets(
    network: NavNetwork,
) -> tuple[np.ndarray, list[SolverMessage]]:
    """Estimate one rigid offset per block from the crossing ties.

    Args:
        network: Network whose observations link the blocks

    Returns:
        (num_blocks, 3) offsets in metres, and any solver messages
    """
    num_blocks = network.num_blocks
    offsets = np.zeros((num_blocks, 3))
    messages: list[SolverMessage] = []
    if num_blocks <= 1:
        return offsets, messages

    blocks = np.asarray(network.blocks, dtype=int)
    block_of_point = blocks[network.file_ids]

    for component in range(3):
        group = _COMPONENT_GROUPS[component]
        rows: list[int] = []
        cols: list[int] = []
        vals: list[float] = []
        rhs: list[float] = []

        for k, obs in enumerate(network.observations):
            if obs.is_global or not obs.axes.components[component]:
                continue
            block_1 = int(block_of_point[obs.point_1])
            block_2 = int(block_of_point[obs.point_2])
            if block_1 == block_2:
                continue
            variance = _component_variance(network, k, component)
            if variance <= 0.0:
                continue
            weight = 1.0 / np.sqrt(variance)
            row = len(rhs)
            rows += [row, row]
            cols += [block_2, block_1]
            vals += [weight, -weight]
            rhs.append(weight * float(obs.offset[component]))

        tie_rows = len(rhs)
        pinned = {
            network.blocks[file_id]
            for file_id, status in enumerate(network.statuses)
            if status.is_fixed(group)
        }
        for block in sorted(pinned):
            rows.append(len(rhs))
            cols.append(block)
            vals.append(np.sqrt(FIXED_BLOCK_WEIGHT))
            rhs.append(0.0)

        if tie_rows == 0:
            continue
        offsets[:, component] = _solve_component(
            rows, cols, vals, rhs, num_blocks, _COMPONENT_NAMES[component], messages
        )
        for block in pinned:
            offsets[block, component] = 0.0

    logger.info("Estimated offsets of %d blocks", num_blocks)
    for block, offset in enumerate(offsets):
        logger.debug("Block %d offset (%.2f, %.2f, %.3f) m", block, *offset)
    return offsets, messages
