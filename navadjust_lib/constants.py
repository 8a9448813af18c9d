# -*- coding: utf-8 -*-
"""Constants used throughout the navadjust_lib library.

This module centralizes all constant values to ensure consistency
and avoid magic numbers scattered across the codebase.
"""

# -----------------------------------------------------------------------------
# Project Format
# -----------------------------------------------------------------------------

#: Format identifier written into saved project files
PROJECT_FORMAT: str = "navadjust_project"

#: Version of the saved project layout
PROJECT_FORMAT_VERSION: str = "1.0"

#: Encoding used for JSON files
JSON_ENCODING = "utf-8"

# -----------------------------------------------------------------------------
# Sections & Coverage
# -----------------------------------------------------------------------------

#: Number of cells along each side of a section coverage mask
MASK_DIM: int = 25

#: Multiplier combining (file, section) into a single sortable key
SECTION_KEY_FACTOR: int = 100_000

#: Default maximum section length (km)
SECTION_LENGTH_DEFAULT: float = 0.14

#: Default maximum number of soundings per section
SECTION_SOUNDINGS_DEFAULT: int = 100_000

#: Minimum overlap percentage reported for an overlapping crossing
OVERLAP_FLOOR_PERCENT: int = 1

#: Emit a progress message every N sections scanned
CROSSING_PROGRESS_INTERVAL: int = 25

# -----------------------------------------------------------------------------
# Misfit Grids
# -----------------------------------------------------------------------------

#: Number of grid cells along each lateral side of a misfit grid
MISFIT_GRID_DIM: int = 61

#: Number of z levels in a misfit volume
MISFIT_Z_LEVELS: int = 51

#: Default width (m) of the z window searched by the misfit engine
ZOFFSET_WIDTH_DEFAULT: float = 5.0

#: Initial minimum number of paired soundings for a lateral offset to qualify
MISFIT_MIN_SAMPLES: int = 100

#: Factor by which the minimum-sample threshold is relaxed
MISFIT_THRESHOLD_RELAX: int = 10

#: Misfit values up to this multiple of the minimum bound the ellipsoid
MISFIT_ELLIPSOID_FACTOR: float = 3.0

#: Minimum dot product between a sample direction and an ellipsoid axis
ELLIPSOID_ALIGNMENT_DOT: float = 0.8

#: Number of bins in the misfit severity table
MISFIT_SEVERITY_LEVELS: int = 10

# -----------------------------------------------------------------------------
# Tie Uncertainty
# -----------------------------------------------------------------------------

#: Smallest horizontal uncertainty radius (m)
SIGMA_MIN_XY: float = 0.1

#: Smallest vertical uncertainty radius (m)
SIGMA_MIN_Z: float = 0.001

#: Uncertainty radius (m) given to ties created without a misfit estimate
SIGMA_DEFAULT: float = 100.0

# -----------------------------------------------------------------------------
# Inversion
# -----------------------------------------------------------------------------

#: Default temporal smoothing weight
SMOOTHING_DEFAULT: float = 2.0

#: Default weight applied to tie offsets
OFFSET_WEIGHT_DEFAULT: float = 1.0

#: Default extra weight applied to the vertical tie axis
Z_WEIGHT_DEFAULT: float = 1.0

#: Share of a correction given to the lower-quality side of a mixed pair
SOFT_WEIGHT_HIGH: float = 0.995

#: Share of a correction given to the higher-quality side of a mixed pair
SOFT_WEIGHT_LOW: float = 0.005

#: Analyzed crossings required before inverting (unless all true crossings are)
MIN_ANALYZED_CROSSINGS: int = 10

#: Relative change in perturbation norm below which the relaxation stops
CONVERGENCE_EPSILON: float = 1.0e-5

#: Maximum number of relaxation passes
MAX_ITERATIONS: int = 1000

#: Log relaxation progress every N passes
ITERATION_LOG_INTERVAL: int = 25

#: Weight pinning a fixed block to zero in the block estimate
FIXED_BLOCK_WEIGHT: float = 1.0e6

#: Relative tolerance handed to the sparse least-squares solver
BLOCK_SOLVER_TOLERANCE: float = 1.0e-12
