# -*- coding: utf-8 -*-
"""Project store models.

This module contains the Pydantic models holding a navigation adjustment
project in memory:
- NavPoint: A sampled navigation control point of a section
- Section: A time-contiguous piece of a survey file with its coverage mask
- SurveyFile: One survey track, an ordered list of sections
- Tie / GlobalTie: Observed navigation offsets
- Crossing: A candidate overlap between two sections
- Project: The whole store with its analysis counters

Every cross reference is an integer index (file id, section id, nav point
id, crossing id, tie id) into the owning list. Offsets are kept both in
degrees and in local metres; conversions go through a CoordinateScale.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator
from pydantic_extra_types.coordinate import Latitude  # noqa: TC002
from pydantic_extra_types.coordinate import Longitude  # noqa: TC002

from navadjust_lib.constants import MASK_DIM
from navadjust_lib.constants import OFFSET_WEIGHT_DEFAULT
from navadjust_lib.constants import PROJECT_FORMAT
from navadjust_lib.constants import PROJECT_FORMAT_VERSION
from navadjust_lib.constants import SECTION_LENGTH_DEFAULT
from navadjust_lib.constants import SECTION_SOUNDINGS_DEFAULT
from navadjust_lib.constants import SIGMA_DEFAULT
from navadjust_lib.constants import SMOOTHING_DEFAULT
from navadjust_lib.constants import Z_WEIGHT_DEFAULT
from navadjust_lib.constants import ZOFFSET_WIDTH_DEFAULT
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import FileStatus
from navadjust_lib.enums import InversionStatus
from navadjust_lib.enums import TieMode
from navadjust_lib.geo_utils import CoordinateScale
from navadjust_lib.geo_utils import coordinate_scale
from navadjust_lib.models import ZERO
from navadjust_lib.models import Bounds
from navadjust_lib.models import Ellipsoid
from navadjust_lib.models import SnavRef
from navadjust_lib.models import Vector3D

if TYPE_CHECKING:
    from collections.abc import Iterable
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


def _default_ellipsoid() -> Ellipsoid:
    return Ellipsoid.axis_aligned(SIGMA_DEFAULT, SIGMA_DEFAULT, SIGMA_DEFAULT)


def _empty_mask() -> list[list[bool]]:
    return [[False] * MASK_DIM for _ in range(MASK_DIM)]


# ---------------------------------------------------------------------------
# Navigation points & offsets
# ---------------------------------------------------------------------------


class NavPoint(BaseModel):
    """A navigation control point at which an offset unknown may be solved.

    ``lon``/``lat`` are the original positions; the solved offset is stored
    in degrees (``lon_offset``, ``lat_offset``) and metres (``*_offset_m``).
    """

    model_config = ConfigDict(populate_by_name=True)

    ping_index: int = 0
    distance: float = 0.0
    time_d: float = Field(alias="time")
    lon: Longitude
    lat: Latitude
    lon_offset: float = 0.0
    lat_offset: float = 0.0
    x_offset_m: float = 0.0
    y_offset_m: float = 0.0
    z_offset_m: float = 0.0
    num_ties: int = 0

    @property
    def offset(self) -> Vector3D:
        """Solved offset in metres."""
        return Vector3D(self.x_offset_m, self.y_offset_m, self.z_offset_m)

    @property
    def position(self) -> tuple[float, float]:
        """Adjusted (lon, lat) of this point."""
        return (self.lon + self.lon_offset, self.lat + self.lat_offset)

    def set_offset(self, offset: Vector3D, scale: CoordinateScale) -> None:
        self.x_offset_m, self.y_offset_m, self.z_offset_m = offset
        self.lon_offset, self.lat_offset = scale.to_degrees(offset.x, offset.y)


class OffsetRecord(BaseModel):
    """Observed offset plus the offset predicted by the last inversion."""

    model_config = ConfigDict(populate_by_name=True)

    mode: TieMode = TieMode.XYZ
    offset_x: float = 0.0
    offset_y: float = 0.0
    offset_x_m: float = 0.0
    offset_y_m: float = 0.0
    offset_z_m: float = 0.0
    ellipsoid: Ellipsoid = Field(default_factory=_default_ellipsoid)
    inversion_status: InversionStatus = InversionStatus.NONE
    inversion_offset_x: float = 0.0
    inversion_offset_y: float = 0.0
    inversion_offset_x_m: float = 0.0
    inversion_offset_y_m: float = 0.0
    inversion_offset_z_m: float = 0.0

    @property
    def offset(self) -> Vector3D:
        """Observed offset in metres."""
        return Vector3D(self.offset_x_m, self.offset_y_m, self.offset_z_m)

    @property
    def inversion_offset(self) -> Vector3D:
        """Offset predicted by the last inversion, in metres."""
        return Vector3D(
            self.inversion_offset_x_m,
            self.inversion_offset_y_m,
            self.inversion_offset_z_m,
        )

    @property
    def residual(self) -> Vector3D | None:
        """Model minus observed offset, or None before any inversion."""
        if self.inversion_status is InversionStatus.NONE:
            return None
        return self.inversion_offset - self.offset

    def set_offset(self, offset: Vector3D, scale: CoordinateScale) -> None:
        self.offset_x_m, self.offset_y_m, self.offset_z_m = offset
        self.offset_x, self.offset_y = scale.to_degrees(offset.x, offset.y)

    def set_inversion_offset(self, offset: Vector3D, scale: CoordinateScale) -> None:
        (
            self.inversion_offset_x_m,
            self.inversion_offset_y_m,
            self.inversion_offset_z_m,
        ) = offset
        self.inversion_offset_x, self.inversion_offset_y = scale.to_degrees(
            offset.x, offset.y
        )
        self.inversion_status = InversionStatus.CURRENT


class Tie(OffsetRecord):
    """Observed offset between one nav point on each side of a crossing.

    The offset is the displacement to apply to side 2 relative to side 1.
    """

    snav_1: int
    snav_1_time: float = 0.0
    snav_2: int
    snav_2_time: float = 0.0


class GlobalTie(OffsetRecord):
    """Observed absolute offset of a single nav point."""

    snav: int
    snav_time: float = 0.0

    @classmethod
    def from_sigmas(
        cls,
        snav: int,
        offset: Vector3D,
        scale: CoordinateScale,
        sigma_x: float,
        sigma_y: float,
        sigma_z: float,
        mode: TieMode = TieMode.XYZ,
        snav_time: float = 0.0,
    ) -> GlobalTie:
        """Build a global tie with an east/north/down aligned ellipsoid."""
        tie = cls(
            snav=snav,
            snav_time=snav_time,
            mode=mode,
            ellipsoid=Ellipsoid.axis_aligned(sigma_x, sigma_y, sigma_z),
        )
        tie.set_offset(offset, scale)
        return tie


# ---------------------------------------------------------------------------
# Sections & files
# ---------------------------------------------------------------------------


class Section(BaseModel):
    """A time-contiguous subdivision of a survey file.

    ``coverage[j][i]`` marks the mask cell at latitude row ``j`` and
    longitude column ``i`` of the section bounding box.
    """

    model_config = ConfigDict(populate_by_name=True)

    num_pings: int = 0
    num_beams: int = 0
    continuity: bool = False
    distance: float = 0.0
    time_start: float = 0.0
    time_end: float = 0.0
    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float
    depth_min: float = 0.0
    depth_max: float = 0.0
    coverage: list[list[bool]] = Field(default_factory=_empty_mask)
    nav_points: list[NavPoint] = Field(min_length=1)
    global_tie: GlobalTie | None = None

    @field_validator("coverage")
    @classmethod
    def _check_coverage(cls, value: list[list[bool]]) -> list[list[bool]]:
        if len(value) != MASK_DIM or any(len(row) != MASK_DIM for row in value):
            raise ValueError(f"Coverage mask must be {MASK_DIM}x{MASK_DIM}")
        return value

    @property
    def bounds(self) -> Bounds:
        return Bounds(
            lon_min=self.lon_min,
            lon_max=self.lon_max,
            lat_min=self.lat_min,
            lat_max=self.lat_max,
        )

    @property
    def mask(self) -> np.ndarray:
        """Coverage mask as a (lat, lon) boolean array."""
        return np.asarray(self.coverage, dtype=bool)

    @property
    def num_snav(self) -> int:
        return len(self.nav_points)

    @property
    def mid_snav(self) -> int:
        return len(self.nav_points) // 2

    @property
    def mid_offset_deg(self) -> tuple[float, float]:
        """Current (lon, lat) offset of the middle nav point."""
        point = self.nav_points[self.mid_snav]
        return (point.lon_offset, point.lat_offset)


class SurveyFile(BaseModel):
    """One survey track made of ordered sections."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    status: FileStatus = FileStatus.GOOD
    block: int = 0
    block_offset: Vector3D = ZERO
    sections: list[Section] = Field(default_factory=list)

    @property
    def num_sections(self) -> int:
        return len(self.sections)


# ---------------------------------------------------------------------------
# Crossings
# ---------------------------------------------------------------------------


class Crossing(BaseModel):
    """A candidate overlap between two sections.

    Side 1 always sorts before side 2 under the canonical section key.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: CrossingStatus = CrossingStatus.NONE
    true_crossing: bool = False
    overlap: int = 0
    file_id_1: int
    section_1: int
    file_id_2: int
    section_2: int
    mtodeglon: float
    mtodeglat: float
    ties: list[Tie] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_sides(self) -> Crossing:
        if self.side_1 == self.side_2:
            raise ValueError("Crossing sides must be distinct sections")
        return self

    @property
    def side_1(self) -> tuple[int, int]:
        return (self.file_id_1, self.section_1)

    @property
    def side_2(self) -> tuple[int, int]:
        return (self.file_id_2, self.section_2)

    @property
    def num_ties(self) -> int:
        return len(self.ties)

    @property
    def scale(self) -> CoordinateScale:
        return CoordinateScale(mtodeglon=self.mtodeglon, mtodeglat=self.mtodeglat)

    def involves(self, file_id: int, section_id: int | None = None) -> bool:
        """True if either side lies in ``file_id`` (and ``section_id``)."""
        for side_file, side_section in (self.side_1, self.side_2):
            if side_file == file_id and section_id in (None, side_section):
                return True
        return False


# ---------------------------------------------------------------------------
# Ingestion records
# ---------------------------------------------------------------------------


class NavPointRecord(BaseModel):
    """A navigation point as delivered by the ingestion step."""

    model_config = ConfigDict(populate_by_name=True)

    ping_index: int = 0
    distance: float = 0.0
    time_d: float = Field(alias="time")
    lon: Longitude
    lat: Latitude


class SectionRecord(BaseModel):
    """Per-section summary delivered by the ingestion step."""

    model_config = ConfigDict(populate_by_name=True)

    ping_count: int = 0
    beam_count: int = 0
    continuity: bool = False
    distance: float = 0.0
    time_start: float
    time_end: float
    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float
    depth_min: float = 0.0
    depth_max: float = 0.0
    coverage_mask: list[list[bool]] = Field(default_factory=_empty_mask)
    nav_points: list[NavPointRecord] = Field(min_length=1)

    @property
    def nav_point_count(self) -> int:
        return len(self.nav_points)

    def to_section(self) -> Section:
        return Section(
            num_pings=self.ping_count,
            num_beams=self.beam_count,
            continuity=self.continuity,
            distance=self.distance,
            time_start=self.time_start,
            time_end=self.time_end,
            lon_min=self.lon_min,
            lon_max=self.lon_max,
            lat_min=self.lat_min,
            lat_max=self.lat_max,
            depth_min=self.depth_min,
            depth_max=self.depth_max,
            coverage=[list(row) for row in self.coverage_mask],
            nav_points=[
                NavPoint(
                    ping_index=record.ping_index,
                    distance=record.distance,
                    time_d=record.time_d,
                    lon=record.lon,
                    lat=record.lat,
                )
                for record in self.nav_points
            ],
        )


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


class ProjectSettings(BaseModel):
    """Scalar controls persisted with a project."""

    model_config = ConfigDict(populate_by_name=True)

    smoothing: float = Field(default=SMOOTHING_DEFAULT, ge=0.0)
    offset_weight: float = Field(default=OFFSET_WEIGHT_DEFAULT, gt=0.0)
    z_weight: float = Field(default=Z_WEIGHT_DEFAULT, gt=0.0)
    section_length: float = Field(default=SECTION_LENGTH_DEFAULT, gt=0.0)
    section_soundings: int = Field(default=SECTION_SOUNDINGS_DEFAULT, gt=0)
    zoffset_width: float = Field(default=ZOFFSET_WIDTH_DEFAULT, gt=0.0)


class Project(BaseModel):
    """A complete navigation adjustment project.

    The analysis counters are derived data: they are recomputed whenever a
    project is validated and kept up to date by the tie manager.
    """

    model_config = ConfigDict(populate_by_name=True)

    format: str = PROJECT_FORMAT
    version: str = PROJECT_FORMAT_VERSION
    name: str = "navadjust"
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    inversion: InversionStatus = InversionStatus.NONE
    files: list[SurveyFile] = Field(default_factory=list)
    crossings: list[Crossing] = Field(default_factory=list)
    num_ties: int = 0
    num_global_ties: int = 0
    num_crossings_analyzed: int = 0
    num_truecrossings: int = 0
    num_truecrossings_analyzed: int = 0

    @model_validator(mode="after")
    def _derive_counters(self) -> Project:
        for index, survey_file in enumerate(self.files):
            if survey_file.id != index:
                raise ValueError(
                    f"File id {survey_file.id} does not match its position {index}"
                )
        self._check_references()
        self.assign_blocks()
        self.recount()
        return self

    def _check_references(self) -> None:
        """Reject crossings and ties pointing outside the stored tracks."""

        def nav_count(file_id: int, section_id: int) -> int:
            if not 0 <= file_id < len(self.files):
                raise ValueError(f"Crossing refers to missing file {file_id}")
            sections = self.files[file_id].sections
            if not 0 <= section_id < len(sections):
                raise ValueError(
                    f"Crossing refers to missing section {file_id}:{section_id}"
                )
            return len(sections[section_id].nav_points)

        for crossing_id, crossing in enumerate(self.crossings):
            count_1 = nav_count(crossing.file_id_1, crossing.section_1)
            count_2 = nav_count(crossing.file_id_2, crossing.section_2)
            for tie_id, tie in enumerate(crossing.ties):
                if not (0 <= tie.snav_1 < count_1 and 0 <= tie.snav_2 < count_2):
                    raise ValueError(
                        f"Tie {tie_id} of crossing {crossing_id} refers to a "
                        f"missing nav point ({tie.snav_1}, {tie.snav_2})"
                    )

        for file_id, section_id, section in self.iter_sections():
            tie = section.global_tie
            if tie is not None and not 0 <= tie.snav < len(section.nav_points):
                raise ValueError(
                    f"Global tie of section {file_id}:{section_id} refers to "
                    f"missing nav point {tie.snav}"
                )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def num_files(self) -> int:
        return len(self.files)

    @property
    def num_sections(self) -> int:
        return sum(f.num_sections for f in self.files)

    @property
    def num_crossings(self) -> int:
        return len(self.crossings)

    @property
    def num_nav_points(self) -> int:
        return sum(s.num_snav for _, _, s in self.iter_sections())

    def section(self, file_id: int, section_id: int) -> Section:
        return self.files[file_id].sections[section_id]

    def nav_point(self, ref: SnavRef) -> NavPoint:
        return self.files[ref.file_id].sections[ref.section_id].nav_points[ref.snav_id]

    def iter_sections(self) -> Iterator[tuple[int, int, Section]]:
        for survey_file in self.files:
            for section_id, section in enumerate(survey_file.sections):
                yield survey_file.id, section_id, section

    def iter_nav_points(self) -> Iterator[tuple[SnavRef, NavPoint]]:
        for file_id, section_id, section in self.iter_sections():
            for snav_id, point in enumerate(section.nav_points):
                yield SnavRef(file_id, section_id, snav_id), point

    def section_crossings(self, file_id: int, section_id: int) -> list[int]:
        """Indices of the crossings touching a section."""
        return [
            crossing_id
            for crossing_id, crossing in enumerate(self.crossings)
            if crossing.involves(file_id, section_id)
        ]

    def previous_section(self, file_id: int, section_id: int) -> tuple[int, int] | None:
        """Return the section preceding (file_id, section_id) in time."""
        if section_id > 0:
            return (file_id, section_id - 1)
        for prev_file in range(file_id - 1, -1, -1):
            if self.files[prev_file].sections:
                return (prev_file, self.files[prev_file].num_sections - 1)
        return None

    def canonical_ref(self, ref: SnavRef) -> SnavRef:
        """Resolve a nav point shared with the end of the previous section.

        The first nav point of a section with ``continuity`` is the last nav
        point of the previous section.
        """
        while ref.snav_id == 0 and self.section(ref.file_id, ref.section_id).continuity:
            previous = self.previous_section(ref.file_id, ref.section_id)
            if previous is None:
                break
            last = self.section(*previous).num_snav - 1
            ref = SnavRef(previous[0], previous[1], last)
        return ref

    @property
    def bounds(self) -> Bounds | None:
        sections = [s for _, _, s in self.iter_sections()]
        if not sections:
            return None
        return Bounds(
            lon_min=min(s.lon_min for s in sections),
            lon_max=max(s.lon_max for s in sections),
            lat_min=min(s.lat_min for s in sections),
            lat_max=max(s.lat_max for s in sections),
        )

    @property
    def scale(self) -> CoordinateScale:
        """Degrees per metre at the center of the project."""
        bounds = self.bounds
        return coordinate_scale(bounds.center[1] if bounds else 0.0)

    def section_scale(self, file_id: int, section_id: int) -> CoordinateScale:
        section = self.section(file_id, section_id)
        return coordinate_scale(0.5 * (section.lat_min + section.lat_max))

    def crossing_scale(
        self, file_id_1: int, section_1: int, file_id_2: int, section_2: int
    ) -> CoordinateScale:
        """Degrees per metre at the mean latitude of two sections."""
        a = self.section(file_id_1, section_1)
        b = self.section(file_id_2, section_2)
        latitude = 0.25 * (a.lat_min + a.lat_max + b.lat_min + b.lat_max)
        return coordinate_scale(latitude)

    # -------------------------------------------------------------------------
    # Bookkeeping
    # -------------------------------------------------------------------------

    def assign_blocks(self) -> int:
        """Group files linked by continuity into blocks.

        Returns:
            Number of blocks
        """
        block = -1
        for survey_file in self.files:
            starts_block = (
                block < 0
                or not survey_file.sections
                or not survey_file.sections[0].continuity
            )
            if starts_block:
                block += 1
            survey_file.block = block
        return block + 1

    def recount(self) -> None:
        """Recompute every analysis counter and nav point tie count."""
        for _, point in self.iter_nav_points():
            point.num_ties = 0

        self.num_ties = 0
        self.num_global_ties = 0
        self.num_crossings_analyzed = 0
        self.num_truecrossings = 0
        self.num_truecrossings_analyzed = 0

        for crossing in self.crossings:
            if crossing.true_crossing:
                self.num_truecrossings += 1
            if crossing.status.analyzed:
                self.num_crossings_analyzed += 1
                if crossing.true_crossing:
                    self.num_truecrossings_analyzed += 1
            section_1 = self.section(crossing.file_id_1, crossing.section_1)
            section_2 = self.section(crossing.file_id_2, crossing.section_2)
            for tie in crossing.ties:
                section_1.nav_points[tie.snav_1].num_ties += 1
                section_2.nav_points[tie.snav_2].num_ties += 1
                self.num_ties += 1

        for _, _, section in self.iter_sections():
            if section.global_tie is not None:
                section.nav_points[section.global_tie.snav].num_ties += 1
                self.num_global_ties += 1

    def mark_ties_changed(self) -> None:
        """Flag a current inversion as out of date."""
        if self.inversion is InversionStatus.CURRENT:
            self.inversion = InversionStatus.OLD

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def add_file(
        self,
        name: str,
        records: Iterable[SectionRecord],
        status: FileStatus = FileStatus.GOOD,
    ) -> SurveyFile:
        """Append a survey file built from ingested section records.

        Args:
            name: File name or identifier
            records: Section summaries in time order
            status: Initial file status

        Returns:
            The new SurveyFile
        """
        sections = [record.to_section() for record in records]
        if sections and not self.files:
            sections[0].continuity = False

        survey_file = SurveyFile(
            id=len(self.files),
            name=name,
            status=status,
            sections=sections,
        )
        self.files.append(survey_file)
        self.assign_blocks()
        logger.info(
            "Imported file %d (%s): %d sections",
            survey_file.id,
            name,
            survey_file.num_sections,
        )
        return survey_file
