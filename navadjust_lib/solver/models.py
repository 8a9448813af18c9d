# -*- coding: utf-8 -*-
"""Data structures for the navigation inversion.

This module decouples the solver from the project store: a
:class:`NavNetwork` holds one offset unknown per distinct nav point, the
continuous tracks linking them in time and every tie expressed as an
observation between unknowns. Solvers operate purely on these arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

import numpy as np

from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import TieMode
from navadjust_lib.models import DOWN
from navadjust_lib.models import SnavRef
from navadjust_lib.models import Vector3D

if TYPE_CHECKING:
    from navadjust_lib.enums import FileStatus
    from navadjust_lib.errors import SolverMessage
    from navadjust_lib.models import Ellipsoid
    from navadjust_lib.project.models import OffsetRecord
    from navadjust_lib.project.models import Project


# ---------------------------------------------------------------------------
# Observation axes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObservationAxes:
    """Axes along which a tie residual is observed.

    Rows of ``axes`` are unit vectors; rows with ``active`` False are
    padding and carry no weight.

    Attributes:
        axes: (3, 3) unit vectors
        sigmas: (3,) 1-sigma radius of each axis (m)
        active: (3,) which rows are observed
        vertical: (3,) which row is the vertical axis
        components: (3,) which residual components (east, north, down) are
            observed
    """

    axes: np.ndarray
    sigmas: np.ndarray
    active: np.ndarray
    vertical: np.ndarray
    components: np.ndarray


def _horizontal(vector: Vector3D) -> Vector3D:
    return Vector3D(vector.x, vector.y, 0.0)


def observation_axes(ellipsoid: Ellipsoid, mode: TieMode) -> ObservationAxes:
    """Select the axes of an ellipsoid observed under a tie mode.

    ``XYZ`` uses the three ellipsoid axes. ``XY`` uses the horizontal
    projection of the two non-vertical axes, made orthonormal. ``Z`` uses
    the vertical direction with the radius of the most vertical axis.
    """
    radii = np.asarray(ellipsoid.radii, dtype=float)
    vertical_index = ellipsoid.vertical_index

    match mode:
        case TieMode.XYZ:
            vertical = np.zeros(3, dtype=bool)
            vertical[vertical_index] = True
            return ObservationAxes(
                axes=np.asarray(ellipsoid.axes, dtype=float),
                sigmas=radii,
                active=np.ones(3, dtype=bool),
                vertical=vertical,
                components=np.ones(3, dtype=bool),
            )
        case TieMode.XY:
            first, second = (i for i in range(3) if i != vertical_index)
            h_first = _horizontal(ellipsoid.axes[first])
            h_second = _horizontal(ellipsoid.axes[second])
            if h_first.length < h_second.length:
                first, second = second, first
                h_first = h_second
            e1 = h_first.normalized()
            e2 = Vector3D(-e1.y, e1.x, 0.0)
            return ObservationAxes(
                axes=np.array([e1, e2, DOWN], dtype=float),
                sigmas=np.array([radii[first], radii[second], 1.0]),
                active=np.array([True, True, False]),
                vertical=np.zeros(3, dtype=bool),
                components=np.array([True, True, False]),
            )
        case TieMode.Z:
            return ObservationAxes(
                axes=np.array([DOWN, (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)], dtype=float),
                sigmas=np.array([radii[vertical_index], 1.0, 1.0]),
                active=np.array([True, False, False]),
                vertical=np.array([True, False, False]),
                components=np.array([False, False, True]),
            )
    raise ValueError(f"Unknown tie mode: {mode}")


# ---------------------------------------------------------------------------
# Network primitives
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TieObservation:
    """A tie expressed between network unknowns.

    For a crossing tie the observation states ``x[point_2] - x[point_1] ==
    offset``; for a global tie (``point_1`` is None) it states
    ``x[point_2] == offset``.
    """

    point_1: int | None
    point_2: int
    offset: np.ndarray
    axes: ObservationAxes
    mode: TieMode
    label: str

    @property
    def is_global(self) -> bool:
        return self.point_1 is None


@dataclass
class NavNetwork:
    """The nav point network used by navigation solvers.

    Attributes:
        refs: Canonical reference of each unknown, in time order per track.
        index: Every nav point reference (shared points included) -> unknown.
        times: (n,) time of each unknown.
        file_ids: (n,) file owning each unknown.
        tracks: Index arrays of the unknowns of each continuous track.
        statuses: Status of each file.
        blocks: Block of each file.
        observations: Every SET crossing tie and global tie.
    """

    refs: list[SnavRef] = field(default_factory=list)
    index: dict[SnavRef, int] = field(default_factory=dict)
    times: np.ndarray = field(default_factory=lambda: np.zeros(0))
    file_ids: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=int))
    tracks: list[np.ndarray] = field(default_factory=list)
    statuses: list[FileStatus] = field(default_factory=list)
    blocks: list[int] = field(default_factory=list)
    observations: list[TieObservation] = field(default_factory=list)

    # -- adjacency cache (built lazily) ------------------------------------

    _file_edges: list[tuple[int, int, int]] | None = field(
        default=None, init=False, repr=False
    )

    @property
    def num_points(self) -> int:
        return len(self.refs)

    @property
    def num_blocks(self) -> int:
        return max(self.blocks) + 1 if self.blocks else 0

    @property
    def tied(self) -> np.ndarray:
        """(n,) mask of unknowns referenced by at least one observation."""
        mask = np.zeros(self.num_points, dtype=bool)
        for obs in self.observations:
            mask[obs.point_2] = True
            if obs.point_1 is not None:
                mask[obs.point_1] = True
        return mask

    @property
    def fixed(self) -> np.ndarray:
        """(n, 3) mask of components held at their starting value."""
        fixed_xy = np.array([s.is_fixed_xy for s in self.statuses], dtype=bool)
        fixed_z = np.array([s.is_fixed_z for s in self.statuses], dtype=bool)
        mask = np.zeros((self.num_points, 3), dtype=bool)
        if self.num_points:
            mask[:, 0] = mask[:, 1] = fixed_xy[self.file_ids]
            mask[:, 2] = fixed_z[self.file_ids]
        return mask

    @property
    def file_edges(self) -> list[tuple[int, int, int]]:
        """(file_1, file_2, observation index) of every crossing tie
        linking two different files (lazily built, cached)."""
        if self._file_edges is None:
            edges = []
            for k, obs in enumerate(self.observations):
                if obs.point_1 is None:
                    continue
                file_1 = int(self.file_ids[obs.point_1])
                file_2 = int(self.file_ids[obs.point_2])
                if file_1 != file_2:
                    edges.append((file_1, file_2, k))
            self._file_edges = edges
        return self._file_edges

    # -- factory -----------------------------------------------------------

    @classmethod
    def from_project(cls, project: Project) -> NavNetwork:
        """Build the network of a project.

        The first nav point of a section with ``continuity`` is the same
        unknown as the last nav point of the previous section, and the two
        sections share a track.
        """
        network = cls(
            statuses=[f.status for f in project.files],
            blocks=[f.block for f in project.files],
        )
        times: list[float] = []
        file_ids: list[int] = []
        track: list[int] = []

        for file_id, section_id, section in project.iter_sections():
            if not section.continuity and track:
                network.tracks.append(np.asarray(track, dtype=int))
                track = []
            for snav_id, point in enumerate(section.nav_points):
                ref = SnavRef(file_id, section_id, snav_id)
                canonical = project.canonical_ref(ref)
                if canonical != ref:
                    network.index[ref] = network.index[canonical]
                    continue
                network.index[ref] = len(network.refs)
                track.append(len(network.refs))
                network.refs.append(ref)
                times.append(point.time_d)
                file_ids.append(file_id)
        if track:
            network.tracks.append(np.asarray(track, dtype=int))

        network.times = np.asarray(times, dtype=float)
        network.file_ids = np.asarray(file_ids, dtype=int)

        for crossing_id, crossing in enumerate(project.crossings):
            if crossing.status is not CrossingStatus.SET:
                continue
            for tie_id, tie in enumerate(crossing.ties):
                network.observations.append(
                    _observation(
                        tie,
                        network.index[SnavRef(*crossing.side_1, tie.snav_1)],
                        network.index[SnavRef(*crossing.side_2, tie.snav_2)],
                        f"crossing {crossing_id} tie {tie_id}",
                    )
                )
        for file_id, section_id, section in project.iter_sections():
            if section.global_tie is not None:
                ref = SnavRef(file_id, section_id, section.global_tie.snav)
                network.observations.append(
                    _observation(
                        section.global_tie,
                        None,
                        network.index[ref],
                        f"global tie {ref}",
                    )
                )
        return network


def _observation(
    record: OffsetRecord, point_1: int | None, point_2: int, label: str
) -> TieObservation:
    return TieObservation(
        point_1=point_1,
        point_2=point_2,
        offset=np.asarray(record.offset, dtype=float),
        axes=observation_axes(record.ellipsoid, record.mode),
        mode=record.mode,
        label=label,
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class InversionResult:
    """Outcome of a navigation inversion.

    Attributes:
        converged: False if the iteration cap was reached first.
        iterations: Relaxation passes run.
        initial_misfit: Sigma-normalized RMS tie residual before relaxing.
        final_misfit: Sigma-normalized RMS tie residual of the solution.
        offsets: Solved offset of every nav point (shared points included).
        sparse_offsets: Solved offset of the tied nav points only.
        block_offsets: Offset estimated for each block.
        messages: Non-fatal conditions met while solving.
    """

    converged: bool
    iterations: int
    initial_misfit: float
    final_misfit: float
    offsets: dict[SnavRef, Vector3D] = field(default_factory=dict)
    sparse_offsets: dict[SnavRef, Vector3D] = field(default_factory=dict)
    block_offsets: list[Vector3D] = field(default_factory=list)
    messages: list[SolverMessage] = field(default_factory=list)

    @property
    def status_message(self) -> str:
        if self.converged:
            return f"Converged after {self.iterations} iterations"
        return f"Not fully converged after {self.iterations} iterations"
