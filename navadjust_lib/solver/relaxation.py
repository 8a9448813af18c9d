# -*- coding: utf-8 -*-
"""Iterative relaxation solver for navigation offsets.

Algorithm
---------
1. **Block estimate.**  Every block (run of files linked by continuity) is
   given one rigid offset fitted to the ties between blocks.
2. **Fixed pull.**  If any file is fixed or any global tie exists, free
   files are pulled toward those references through the tie graph.
3. **Relaxation.**  The unknowns are the offsets of the nav points touched
   by a tie. Each pass:

   * projects every tie residual onto its observed uncertainty axes, each
     weighted by ``sqrt(offset_weight / sigma)`` (the vertical axis also by
     the z weight), and shares the correction between the two endpoints
     according to their file statuses;
   * applies global ties the same way against their absolute target;
   * adds first and second time-derivative smoothing between consecutive
     unknowns of a continuous track, weighted ``smoothing / dt`` and
     ``smoothing / dt**2``;
   * solves each unknown's 3x3 accumulated weight against its accumulated
     correction and adds the result to the solution;
   * interpolates the solution onto every nav point and uses it as the
     working offsets of the next pass.

   Iteration stops when the change in the correction norm, relative to
   the initial misfit, falls below ``epsilon``, or at ``max_iterations``
   (the best solution found is then returned, flagged as not converged).
4. **Commit.**  Offsets are written onto every nav point, the predicted
   offset of every tie is recorded and the inversion is marked current.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from navadjust_lib.constants import CONVERGENCE_EPSILON
from navadjust_lib.constants import ITERATION_LOG_INTERVAL
from navadjust_lib.constants import MAX_ITERATIONS
from navadjust_lib.constants import MIN_ANALYZED_CROSSINGS
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import InversionStatus
from navadjust_lib.enums import PreconditionReason
from navadjust_lib.enums import Severity
from navadjust_lib.errors import AllocationError
from navadjust_lib.errors import PreconditionError
from navadjust_lib.errors import SolverMessage
from navadjust_lib.models import SnavRef
from navadjust_lib.models import Vector3D
from navadjust_lib.solver.base import NavigationSolver
from navadjust_lib.solver.blocks import estimate_block_offsets
from navadjust_lib.solver.fixed_pull import fixed_pull_offsets
from navadjust_lib.solver.interpolate import interpolate_offsets
from navadjust_lib.solver.models import InversionResult
from navadjust_lib.solver.models import NavNetwork
from navadjust_lib.solver.models import observation_axes
from navadjust_lib.solver.weights import STATUS_SPLIT
from navadjust_lib.solver.weights import global_split

if TYPE_CHECKING:
    from navadjust_lib.interface import CancellationToken
    from navadjust_lib.interface import ProgressCallback
    from navadjust_lib.project.models import OffsetRecord
    from navadjust_lib.project.models import Project
    from navadjust_lib.project.models import ProjectSettings

logger = logging.getLogger(__name__)

#: Initial misfits below this are treated as already solved
_MISFIT_FLOOR = 1.0e-9


# ---------------------------------------------------------------------------
# Observation arrays
# ---------------------------------------------------------------------------


class _Observations:
    """Every observation of a network packed into arrays."""

    def __init__(self, network: NavNetwork, settings: ProjectSettings) -> None:
        observations = network.observations
        count = len(observations)
        self.point_1 = np.array(
            [-1 if o.point_1 is None else o.point_1 for o in observations], dtype=int
        )
        self.point_2 = np.array([o.point_2 for o in observations], dtype=int)
        self.offset = np.array([o.offset for o in observations], dtype=float).reshape(
            count, 3
        )
        self.axes = np.array([o.axes.axes for o in observations], dtype=float).reshape(
            count, 3, 3
        )
        self.sigmas = np.array([o.axes.sigmas for o in observations], dtype=float).reshape(
            count, 3
        )
        self.active = np.array([o.axes.active for o in observations], dtype=bool).reshape(
            count, 3
        )
        vertical = np.array([o.axes.vertical for o in observations], dtype=bool).reshape(
            count, 3
        )
        self.components = np.array(
            [o.axes.components for o in observations], dtype=float
        ).reshape(count, 3)

        weights = np.zeros((count, 3))
        safe = np.where(self.active, self.sigmas, 1.0)
        weights[self.active] = np.sqrt(settings.offset_weight / safe[self.active])
        weights[vertical] *= settings.z_weight
        self.weights = weights

        # sum_k w_k a_k a_k^T
        self.normal = np.einsum("tk,tki,tkj->tij", weights, self.axes, self.axes)

        statuses = network.statuses
        file_ids = network.file_ids
        self.share_1 = np.zeros((count, 3))
        self.share_2 = np.zeros((count, 3))
        for t, obs in enumerate(observations):
            status_2 = statuses[file_ids[obs.point_2]]
            if obs.point_1 is None:
                self.share_2[t] = global_split(status_2)
                continue
            split = STATUS_SPLIT[(statuses[file_ids[obs.point_1]], status_2)]
            self.share_1[t] = split.side_1_vector()
            self.share_2[t] = split.side_2_vector()

        self.is_pair = self.point_1 >= 0
        self.num_active = int(self.active.sum())

    def projected_residuals(self, x: np.ndarray) -> np.ndarray:
        """(count, 3) residual components along each observation axis."""
        model = x[self.point_2].copy()
        model[self.is_pair] -= x[self.point_1[self.is_pair]]
        residual = (self.offset - model) * self.components
        return np.einsum("tki,ti->tk", self.axes, residual)

    def misfit(self, projected: np.ndarray) -> float:
        """Sigma-normalized RMS of the observed residual components."""
        if self.num_active == 0:
            return 0.0
        safe = np.where(self.active, self.sigmas, 1.0)
        normalized = np.where(self.active, projected / safe, 0.0)
        return float(np.sqrt(np.sum(normalized**2) / self.num_active))


# ---------------------------------------------------------------------------
# Smoothing
# ---------------------------------------------------------------------------


def _smoothing_terms(
    network: NavNetwork,
    tied: np.ndarray,
    smoothing: float,
    messages: list[SolverMessage],
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """First and second derivative terms between consecutive unknowns.

    Returns:
        (pairs (P, 2), pair weights (P,), triples (Q, 3), triple weights (Q,))
    """
    pairs: list[tuple[int, int]] = []
    pair_weights: list[float] = []
    triples: list[tuple[int, int, int]] = []
    triple_weights: list[float] = []

    if smoothing > 0.0:
        for track in network.tracks:
            unknowns = track[tied[track]]
            times = network.times[unknowns]
            for i in range(1, len(unknowns)):
                dt = times[i] - times[i - 1]
                if dt <= 0.0:
                    ref_a = network.refs[unknowns[i - 1]]
                    ref_b = network.refs[unknowns[i]]
                    logger.warning(
                        "Zero time step between nav points %s and %s, "
                        "smoothing skipped",
                        ref_a,
                        ref_b,
                    )
                    messages.append(
                        SolverMessage(
                            Severity.WARNING,
                            "Zero time step between tied nav points, smoothing skipped",
                            ref=f"{ref_a}-{ref_b}",
                        )
                    )
                    continue
                pairs.append((unknowns[i - 1], unknowns[i]))
                pair_weights.append(smoothing / dt)
            for i in range(2, len(unknowns)):
                dt = times[i] - times[i - 2]
                if dt <= 0.0:
                    continue
                triples.append((unknowns[i - 2], unknowns[i - 1], unknowns[i]))
                triple_weights.append(smoothing / dt**2)

    return (
        np.asarray(pairs, dtype=int).reshape(-1, 2),
        np.asarray(pair_weights, dtype=float),
        np.asarray(triples, dtype=int).reshape(-1, 3),
        np.asarray(triple_weights, dtype=float),
    )


# ---------------------------------------------------------------------------
# Solver class
# ---------------------------------------------------------------------------


class RelaxationSolver(NavigationSolver):
    """Weighted relaxation solver with temporal smoothing.

    Args:
        max_iterations: Maximum number of relaxation passes.
        epsilon: Convergence threshold on the relative change of the
            correction norm.
        min_analyzed_crossings: Analyzed crossings required unless every
            true crossing is analyzed.
        estimate_blocks: Run the block estimate first.
        fixed_pull: Run the fixed pull stage when fixed references exist.
    """

    def __init__(
        self,
        max_iterations: int = MAX_ITERATIONS,
        epsilon: float = CONVERGENCE_EPSILON,
        min_analyzed_crossings: int = MIN_ANALYZED_CROSSINGS,
        estimate_blocks: bool = True,
        fixed_pull: bool = True,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations
        self.epsilon = epsilon
        self.min_analyzed_crossings = min_analyzed_crossings
        self.estimate_blocks = estimate_blocks
        self.fixed_pull = fixed_pull

    @property
    def name(self) -> str:
        return "Relaxation"

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def check_preconditions(self, project: Project) -> None:
        """Refuse to invert a project that cannot be solved.

        Raises:
            PreconditionError: With the reason the project was refused
        """
        if project.num_nav_points == 0:
            raise PreconditionError(
                "Project has no navigation points", PreconditionReason.EMPTY_PROJECT
            )

        enough = project.num_crossings_analyzed >= self.min_analyzed_crossings
        all_true = project.num_truecrossings_analyzed == project.num_truecrossings
        if not (enough or all_true):
            raise PreconditionError(
                f"Only {project.num_crossings_analyzed} crossings analyzed "
                f"({project.num_truecrossings_analyzed} of "
                f"{project.num_truecrossings} true crossings); at least "
                f"{self.min_analyzed_crossings} or every true crossing required",
                PreconditionReason.TOO_FEW_CROSSINGS,
            )

        num_ties = 0
        for crossing_id, crossing in enumerate(project.crossings):
            if crossing.status is not CrossingStatus.SET:
                continue
            for tie_id, tie in enumerate(crossing.ties):
                self._check_sigma(tie, crossing_id, tie_id)
                num_ties += 1
        for _, _, section in project.iter_sections():
            if section.global_tie is not None:
                self._check_sigma(section.global_tie, None, None)
                num_ties += 1

        if num_ties == 0:
            raise PreconditionError(
                "Project has no ties to invert", PreconditionReason.NO_TIES
            )

    @staticmethod
    def _check_sigma(
        record: OffsetRecord, crossing_id: int | None, tie_id: int | None
    ) -> None:
        axes = observation_axes(record.ellipsoid, record.mode)
        if np.any(axes.sigmas[axes.active] <= 0.0):
            raise PreconditionError(
                "Tie uncertainty must be strictly positive on every observed axis",
                PreconditionReason.NONPOSITIVE_SIGMA,
                crossing_id=crossing_id,
                tie_id=tie_id,
            )

    # -------------------------------------------------------------------------
    # Inversion
    # -------------------------------------------------------------------------

    def invert(
        self,
        project: Project,
        *,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> InversionResult:
        """Solve the navigation offsets of a project and commit them.

        Raises:
            PreconditionError: If the project cannot be inverted
            AllocationError: If working arrays cannot be allocated
            InterruptedError: If cancellation was requested (nothing is
                committed)
        """
        self.check_preconditions(project)
        try:
            network = NavNetwork.from_project(project)
            result, solution, blocks = self.solve(
                network,
                project.settings,
                on_progress=on_progress,
                cancellation=cancellation,
            )
        except MemoryError as e:
            raise AllocationError("Unable to allocate inversion arrays") from e

        self._commit(project, network, solution, blocks)
        logger.info(
            "%s inversion: %s, misfit %.4f -> %.4f",
            self.name,
            result.status_message,
            result.initial_misfit,
            result.final_misfit,
        )
        return result

    def solve(
        self,
        network: NavNetwork,
        settings: ProjectSettings,
        *,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> tuple[InversionResult, np.ndarray, np.ndarray]:
        """Run every stage on a network without touching the project.

        Returns:
            (result, (n, 3) dense offsets, (num_blocks, 3) block offsets)
        """
        messages: list[SolverMessage] = []
        n = network.num_points
        fixed = network.fixed
        tied = network.tied
        unknowns = np.nonzero(tied)[0]

        x = np.zeros((n, 3))
        blocks = np.zeros((network.num_blocks, 3))
        if self.estimate_blocks:
            blocks, block_messages = estimate_block_offsets(network)
            messages.extend(block_messages)
            if n:
                x = blocks[np.asarray(network.blocks, dtype=int)[network.file_ids]].copy()

        has_fixed = any(s.is_fixed_xy or s.is_fixed_z for s in network.statuses)
        has_global = any(o.is_global for o in network.observations)
        if self.fixed_pull and (has_fixed or has_global):
            x += fixed_pull_offsets(network, x)[network.file_ids]
        x[fixed] = 0.0

        obs = _Observations(network, settings)
        pairs, pair_w, triples, triple_w = _smoothing_terms(
            network, tied, settings.smoothing, messages
        )

        initial_misfit = obs.misfit(obs.projected_residuals(x))
        best_x = x.copy()
        best_misfit = initial_misfit
        misfit = initial_misfit
        converged = initial_misfit < _MISFIT_FLOOR
        iterations = 0
        last_norm = 0.0
        eye = np.eye(3)

        while not converged and iterations < self.max_iterations:
            if cancellation and cancellation.cancelled:
                raise InterruptedError("Operation cancelled")
            iterations += 1

            weight = np.zeros((n, 3, 3))
            accum = np.zeros((n, 3))

            projected = obs.projected_residuals(x)
            # sum_k w_k c_k a_k
            correction = np.einsum("tk,tk,tki->ti", obs.weights, projected, obs.axes)
            np.add.at(weight, obs.point_2, obs.normal)
            np.add.at(accum, obs.point_2, correction * obs.share_2)
            pair_obs = obs.is_pair
            np.add.at(weight, obs.point_1[pair_obs], obs.normal[pair_obs])
            np.add.at(
                accum,
                obs.point_1[pair_obs],
                -correction[pair_obs] * obs.share_1[pair_obs],
            )

            if len(pairs):
                a, b = pairs[:, 0], pairs[:, 1]
                diff = (x[b] - x[a]) * pair_w[:, None]
                term = pair_w[:, None, None] * eye
                np.add.at(weight, a, term)
                np.add.at(accum, a, diff)
                np.add.at(weight, b, term)
                np.add.at(accum, b, -diff)
            if len(triples):
                a, mid, c = triples[:, 0], triples[:, 1], triples[:, 2]
                target = 0.5 * (x[a] + x[c]) - x[mid]
                np.add.at(weight, mid, triple_w[:, None, None] * eye)
                np.add.at(accum, mid, target * triple_w[:, None])

            step = np.zeros((n, 3))
            if len(unknowns):
                step[unknowns] = np.einsum(
                    "nij,nj->ni", np.linalg.pinv(weight[unknowns]), accum[unknowns]
                )
            step[fixed] = 0.0

            x = interpolate_offsets(network, x + step, tied)

            norm = float(np.linalg.norm(step))
            misfit = obs.misfit(obs.projected_residuals(x))
            if misfit < best_misfit:
                best_misfit = misfit
                best_x = x.copy()

            ratio = abs(norm - last_norm) / initial_misfit
            converged = ratio < self.epsilon
            last_norm = norm

            logger.debug(
                "Iteration %d: misfit %.6f, correction %.6g, ratio %.3g",
                iterations,
                misfit,
                norm,
                ratio,
            )
            if iterations % ITERATION_LOG_INTERVAL == 0:
                logger.info("Iteration %d: misfit %.6f", iterations, misfit)
            if on_progress:
                on_progress(
                    message=(
                        f"Inversion iteration {iterations}: misfit {misfit:.4f}, "
                        f"convergence ratio {ratio:.3g}"
                    ),
                    completed=iterations,
                    total=self.max_iterations,
                )

        if iterations == 0:
            x = interpolate_offsets(network, x, tied)
        if not converged:
            x = best_x
            misfit = best_misfit
            logger.warning(
                "Inversion not fully converged after %d iterations", iterations
            )
            messages.append(
                SolverMessage(
                    Severity.WARNING,
                    f"Not fully converged after {iterations} iterations",
                )
            )

        offsets = {
            ref: Vector3D(*map(float, x[k])) for ref, k in network.index.items()
        }
        sparse = {network.refs[k]: offsets[network.refs[k]] for k in unknowns}
        result = InversionResult(
            converged=converged,
            iterations=iterations,
            initial_misfit=initial_misfit,
            final_misfit=misfit,
            offsets=offsets,
            sparse_offsets=sparse,
            block_offsets=[Vector3D(*map(float, b)) for b in blocks],
            messages=messages,
        )
        return result, x, blocks

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    @staticmethod
    def _commit(
        project: Project,
        network: NavNetwork,
        solution: np.ndarray,
        blocks: np.ndarray,
    ) -> None:
        def offset_of(ref: SnavRef) -> Vector3D:
            return Vector3D(*map(float, solution[network.index[ref]]))

        for file_id, section_id, section in project.iter_sections():
            scale = project.section_scale(file_id, section_id)
            for snav_id, point in enumerate(section.nav_points):
                point.set_offset(offset_of(SnavRef(file_id, section_id, snav_id)), scale)
            if section.global_tie is not None:
                section.global_tie.set_inversion_offset(
                    offset_of(SnavRef(file_id, section_id, section.global_tie.snav)),
                    scale,
                )

        for crossing in project.crossings:
            for tie in crossing.ties:
                model = offset_of(SnavRef(*crossing.side_2, tie.snav_2)) - offset_of(
                    SnavRef(*crossing.side_1, tie.snav_1)
                )
                tie.set_inversion_offset(model, crossing.scale)

        for survey_file in project.files:
            if survey_file.block < len(blocks):
                survey_file.block_offset = Vector3D(*map(float, blocks[survey_file.block]))

        project.inversion = InversionStatus.CURRENT
