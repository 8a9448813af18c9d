# -*- coding: utf-8 -*-
"""Offset search between the bathymetry of two crossing sections.

Both sides are averaged onto square grids of fixed cell count in a local
metric frame. Side 2 is then moved through a window of lateral offsets
(whole grid cells around the trial offset) and a range of vertical
offsets; for each candidate the RMS depth difference over the cells
populated on both sides is recorded. The resulting volume gives the
best offset and an uncertainty ellipsoid around it.

Sign convention: an offset ``(dx, dy, dz)`` moves side 2 by ``dx`` metres
east and ``dy`` metres north, and adds ``dz`` to its depths. The misfit
is computed from ``depth_1 - (depth_2 + dz)``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from navadjust_lib.constants import ELLIPSOID_ALIGNMENT_DOT
from navadjust_lib.constants import MISFIT_ELLIPSOID_FACTOR
from navadjust_lib.constants import MISFIT_GRID_DIM
from navadjust_lib.constants import MISFIT_MIN_SAMPLES
from navadjust_lib.constants import MISFIT_SEVERITY_LEVELS
from navadjust_lib.constants import MISFIT_THRESHOLD_RELAX
from navadjust_lib.constants import MISFIT_Z_LEVELS
from navadjust_lib.constants import SIGMA_MIN_XY
from navadjust_lib.constants import SIGMA_MIN_Z
from navadjust_lib.constants import ZOFFSET_WIDTH_DEFAULT
from navadjust_lib.enums import MisfitCenter
from navadjust_lib.errors import AllocationError
from navadjust_lib.errors import MisfitError
from navadjust_lib.misfit.models import MisfitResult
from navadjust_lib.models import DOWN
from navadjust_lib.models import EAST
from navadjust_lib.models import Ellipsoid
from navadjust_lib.models import Vector3D

if TYPE_CHECKING:
    from navadjust_lib.geo_utils import CoordinateScale
    from navadjust_lib.interface import ProgressCallback
    from navadjust_lib.misfit.models import Soundings
    from navadjust_lib.project.models import Crossing

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Gridding
# ---------------------------------------------------------------------------


def grid_average(
    x: np.ndarray,
    y: np.ndarray,
    depth: np.ndarray,
    x_origin: float,
    y_origin: float,
    cell_size: float,
    dim: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Average samples onto a ``dim`` x ``dim`` grid.

    Cell ``[j, i]`` is centered on ``(x_origin + i*cell_size,
    y_origin + j*cell_size)``. Samples outside the grid are dropped.

    Returns:
        (mean depth, sample count) arrays of shape (dim, dim); the mean is
        zero where the count is zero
    """
    i = np.rint((x - x_origin) / cell_size).astype(int)
    j = np.rint((y - y_origin) / cell_size).astype(int)
    inside = (i >= 0) & (i < dim) & (j >= 0) & (j < dim)
    flat = j[inside] * dim + i[inside]
    total = np.bincount(flat, weights=depth[inside], minlength=dim * dim)
    count = np.bincount(flat, minlength=dim * dim)
    mean = np.divide(total, count, out=np.zeros_like(total), where=count > 0)
    return mean.reshape(dim, dim), count.reshape(dim, dim)


def _pair_slices(offset: int, dim: int) -> tuple[slice, slice]:
    """Slices pairing grid 1 index ``n`` with grid 2 index ``n - offset``."""
    if offset >= 0:
        return slice(offset, dim), slice(0, dim - offset)
    return slice(0, dim + offset), slice(-offset, dim)


def severity_table(values: np.ndarray, levels: int = MISFIT_SEVERITY_LEVELS) -> list[float]:
    """Histogram-equalized boundaries of the nonzero finite values.

    Returns:
        ``levels + 1`` ascending quantile boundaries, or an empty list
    """
    values = np.asarray(values, dtype=float)
    values = values[np.isfinite(values) & (values > 0.0)]
    if values.size == 0:
        return []
    return np.quantile(values, np.linspace(0.0, 1.0, levels + 1)).tolist()


# ---------------------------------------------------------------------------
# Uncertainty ellipsoid
# ---------------------------------------------------------------------------


def _axis_radius(
    vectors: np.ndarray, lengths: np.ndarray, axis: Vector3D, fallback: float
) -> float:
    if len(vectors):
        alignment = np.abs(vectors @ np.asarray(axis)) / lengths
        aligned = alignment > ELLIPSOID_ALIGNMENT_DOT
        if aligned.any():
            return max(float(lengths[aligned].max()), fallback)
    return fallback


def uncertainty_ellipsoid(
    offsets: np.ndarray,
    misfits: np.ndarray,
    minimum: Vector3D,
    min_misfit: float,
    cell_size: float,
    z_step: float,
) -> Ellipsoid:
    """Derive an uncertainty ellipsoid around the misfit minimum.

    The first axis points to the farthest sample whose misfit stays within
    ``MISFIT_ELLIPSOID_FACTOR`` times the minimum. The second axis is
    horizontal and orthogonal to it, the third completes the frame and
    points down. Each radius is the farthest such sample aligned with the
    axis.

    Args:
        offsets: (n, 3) candidate offsets in metres
        misfits: (n,) misfit of each candidate (NaN if unqualified)
        minimum: Offset of the misfit minimum
        min_misfit: Misfit at the minimum
        cell_size: Lateral grid spacing (m)
        z_step: Vertical grid spacing (m)
    """
    eligible = np.isfinite(misfits) & (misfits <= MISFIT_ELLIPSOID_FACTOR * min_misfit)
    vectors = offsets[eligible] - np.asarray(minimum)
    lengths = np.linalg.norm(vectors, axis=1)
    nonzero = lengths > 0.0
    vectors = vectors[nonzero]
    lengths = lengths[nonzero]

    if len(vectors):
        longest = int(np.argmax(lengths))
        axis_1 = Vector3D(*(vectors[longest] / lengths[longest]))
    else:
        axis_1 = EAST

    axis_2 = axis_1.cross(DOWN)
    axis_2 = axis_2.normalized() if axis_2.length > 1.0e-9 else EAST
    axis_3 = axis_1.cross(axis_2).normalized()
    if axis_3.z < 0.0:
        axis_3 = -axis_3

    radii = []
    for axis in (axis_1, axis_2, axis_3):
        vertical = abs(axis.z) > 0.5
        fallback = max(z_step, SIGMA_MIN_Z) if vertical else max(cell_size, SIGMA_MIN_XY)
        radii.append(_axis_radius(vectors, lengths, axis, fallback))

    return Ellipsoid(axes=(axis_1, axis_2, axis_3), radii=tuple(radii))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class MisfitEngine:
    """Computes misfit volumes for crossings.

    Args:
        grid_dim: Number of grid cells along each lateral side
        z_levels: Number of vertical offsets searched
        z_width: Width (m) of the vertical window
        center: Whether the vertical window is centered on the trial
            offset or on zero
        min_samples: Initial number of overlapping grid cells required for
            a lateral offset to qualify
    """

    def __init__(
        self,
        grid_dim: int = MISFIT_GRID_DIM,
        z_levels: int = MISFIT_Z_LEVELS,
        z_width: float = ZOFFSET_WIDTH_DEFAULT,
        center: MisfitCenter = MisfitCenter.TRIAL,
        min_samples: int = MISFIT_MIN_SAMPLES,
    ) -> None:
        if grid_dim < 3:
            raise ValueError("grid_dim must be at least 3")
        if z_levels < 1:
            raise ValueError("z_levels must be at least 1")
        self.grid_dim = grid_dim
        self.z_levels = z_levels
        self.z_width = z_width
        self.center = center
        self.min_samples = min_samples

    def z_offsets(self, trial_z: float) -> np.ndarray:
        center = trial_z if self.center is MisfitCenter.TRIAL else 0.0
        if self.z_levels == 1:
            return np.array([center])
        return center + np.linspace(-0.5 * self.z_width, 0.5 * self.z_width, self.z_levels)

    def compute_misfit(
        self,
        crossing: Crossing,
        soundings_1: Soundings,
        soundings_2: Soundings,
        trial_offset: Vector3D,
        search_half_width: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> MisfitResult:
        """Search for the offset of side 2 that best matches side 1.

        Args:
            crossing: Crossing whose scale converts degrees to metres
            soundings_1: Bathymetry of side 1
            soundings_2: Bathymetry of side 2
            trial_offset: Offset (m) around which the lateral window is
                centered
            search_half_width: Half width of the lateral window in grid
                cells (default: a quarter of the grid)
            on_progress: Optional progress callback

        Returns:
            MisfitResult with the volume, minimum and ellipsoid

        Raises:
            MisfitError: If the two sides share no gridded cell
            AllocationError: If the volume cannot be allocated
        """
        if len(soundings_1) == 0 or len(soundings_2) == 0:
            raise MisfitError("Both sections need soundings to compute a misfit")

        half = self.grid_dim // 4 if search_half_width is None else search_half_width
        half = max(0, min(half, self.grid_dim - 1))
        scale = crossing.scale

        x1, y1, x2, y2, cell_size, x_origin, y_origin = self._layout(
            scale, soundings_1, soundings_2, trial_offset
        )
        grid_1, count_1 = grid_average(
            x1, y1, soundings_1.depth, x_origin, y_origin, cell_size, self.grid_dim
        )
        grid_2, count_2 = grid_average(
            x2, y2, soundings_2.depth, x_origin, y_origin, cell_size, self.grid_dim
        )
        if on_progress:
            on_progress(message="Misfit grid ready")

        shifts = np.arange(-half, half + 1)
        dx = trial_offset.x + shifts * cell_size
        dy = trial_offset.y + shifts * cell_size
        dz = self.z_offsets(trial_offset.z)

        try:
            misfit = np.full((len(dz), len(shifts), len(shifts)), np.nan)
            counts = np.zeros((len(shifts), len(shifts)), dtype=int)
        except MemoryError as e:
            raise AllocationError("Unable to allocate misfit volume") from e

        present_1 = count_1 > 0
        present_2 = count_2 > 0
        for jj, j_off in enumerate(shifts):
            rows_1, rows_2 = _pair_slices(int(j_off), self.grid_dim)
            for ii, i_off in enumerate(shifts):
                cols_1, cols_2 = _pair_slices(int(i_off), self.grid_dim)
                both = present_1[rows_1, cols_1] & present_2[rows_2, cols_2]
                n = int(both.sum())
                counts[jj, ii] = n
                if n == 0:
                    continue
                diff = (grid_1[rows_1, cols_1] - grid_2[rows_2, cols_2])[both]
                s1 = diff.sum()
                s2 = (diff * diff).sum()
                # sum((diff - dz)^2) for every dz at once
                squares = s2 - 2.0 * dz * s1 + n * dz * dz
                misfit[:, jj, ii] = np.sqrt(np.maximum(squares, 0.0) / n)

        threshold = self._qualifying_threshold(counts)
        misfit[:, counts < threshold] = np.nan

        k, jj, ii = np.unravel_index(np.nanargmin(misfit), misfit.shape)
        min_offset = Vector3D(float(dx[ii]), float(dy[jj]), float(dz[k]))
        min_misfit = float(misfit[k, jj, ii])

        k_trial = int(np.argmin(np.abs(dz - trial_offset.z)))
        plane = misfit[k_trial]
        jj_z, ii_z = np.unravel_index(np.nanargmin(plane), plane.shape)
        min_offset_fixed_z = Vector3D(float(dx[ii_z]), float(dy[jj_z]), float(dz[k_trial]))

        zz, yy, xx = np.meshgrid(dz, dy, dx, indexing="ij")
        offsets = np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()])
        z_step = float(dz[1] - dz[0]) if len(dz) > 1 else 0.0
        ellipsoid = uncertainty_ellipsoid(
            offsets, misfit.ravel(), min_offset, min_misfit, cell_size, z_step
        )

        logger.debug(
            "Misfit minimum %.3f at (%.2f, %.2f, %.3f) m, threshold %.1f",
            min_misfit,
            *min_offset,
            threshold,
        )
        if on_progress:
            on_progress(message=f"Misfit minimum {min_misfit:.3f} m")

        return MisfitResult(
            dx=dx,
            dy=dy,
            dz=dz,
            misfit=misfit,
            counts=counts,
            trial_offset=trial_offset,
            min_offset=min_offset,
            min_misfit=min_misfit,
            min_offset_fixed_z=min_offset_fixed_z,
            threshold=threshold,
            cell_size=cell_size,
            ellipsoid=ellipsoid,
            severity_table=severity_table(misfit),
        )

    def _layout(
        self,
        scale: CoordinateScale,
        soundings_1: Soundings,
        soundings_2: Soundings,
        trial_offset: Vector3D,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, float, float, float]:
        """Project both sides to metres and size the common grid.

        Side 2 is already moved by the lateral part of the trial offset.
        """
        lon_0, lat_0 = soundings_1.bounds.center
        x1 = (soundings_1.lon - lon_0) / scale.mtodeglon
        y1 = (soundings_1.lat - lat_0) / scale.mtodeglat
        x2 = (soundings_2.lon - lon_0) / scale.mtodeglon + trial_offset.x
        y2 = (soundings_2.lat - lat_0) / scale.mtodeglat + trial_offset.y

        x_min = max(x1.min(), x2.min())
        x_max = min(x1.max(), x2.max())
        y_min = max(y1.min(), y2.min())
        y_max = min(y1.max(), y2.max())
        if x_min > x_max or y_min > y_max:
            x_min = min(x1.min(), x2.min())
            x_max = max(x1.max(), x2.max())
            y_min = min(y1.min(), y2.min())
            y_max = max(y1.max(), y2.max())

        extent = max(x_max - x_min, y_max - y_min)
        cell_size = extent / (self.grid_dim - 1) if extent > 0.0 else 1.0
        half_span = 0.5 * (self.grid_dim - 1) * cell_size
        x_origin = 0.5 * (x_min + x_max) - half_span
        y_origin = 0.5 * (y_min + y_max) - half_span
        return x1, y1, x2, y2, cell_size, x_origin, y_origin

    def _qualifying_threshold(self, counts: np.ndarray) -> float:
        """Relax the sample threshold until some lateral offset qualifies."""
        if not (counts > 0).any():
            raise MisfitError("Sections share no gridded bathymetry")
        threshold = float(self.min_samples)
        while not (counts >= threshold).any():
            relaxed = threshold / MISFIT_THRESHOLD_RELAX
            logger.debug("No offset with %g samples, relaxing to %g", threshold, relaxed)
            threshold = relaxed
        return threshold
