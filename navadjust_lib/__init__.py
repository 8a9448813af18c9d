# -*- coding: utf-8 -*-
"""navadjust_lib - Navigation adjustment for overlapping swath survey tracks.

This library detects crossings between survey sections, estimates the
offset between their bathymetry, manages the resulting ties and inverts
them into a navigation correction for every nav point.

Example:
    from pathlib import Path
    from navadjust_lib import NavAdjustSession, load_project

    project = load_project(Path("survey.json"))
    session = NavAdjustSession(project)
    session.find_crossings()
    result = session.invert()
    print(result.status_message)
"""

__version__ = "0.1.0"

from navadjust_lib.crossing import CrossingDetector
from navadjust_lib.enums import CrossingStatus
from navadjust_lib.enums import FileStatus
from navadjust_lib.enums import InversionStatus
from navadjust_lib.enums import MisfitCenter
from navadjust_lib.enums import TieMode
from navadjust_lib.errors import AllocationError
from navadjust_lib.errors import MisfitError
from navadjust_lib.errors import NavAdjustError
from navadjust_lib.errors import PreconditionError
from navadjust_lib.errors import StateError
from navadjust_lib.interface import CancellationToken
from navadjust_lib.interface import NavAdjustInterface
from navadjust_lib.interface import ProgressCallback
from navadjust_lib.io import load_project
from navadjust_lib.io import save_project
from navadjust_lib.misfit import MisfitEngine
from navadjust_lib.misfit import MisfitResult
from navadjust_lib.misfit import Soundings
from navadjust_lib.models import ZERO
from navadjust_lib.models import Ellipsoid
from navadjust_lib.models import SnavRef
from navadjust_lib.models import Vector3D
from navadjust_lib.project import Crossing
from navadjust_lib.project import Project
from navadjust_lib.project import SectionRecord
from navadjust_lib.session import NavAdjustSession
from navadjust_lib.solver import InversionResult
from navadjust_lib.solver import RelaxationSolver

__all__ = [
    "ZERO",
    "AllocationError",
    "CancellationToken",
    "Crossing",
    "CrossingDetector",
    "CrossingStatus",
    "Ellipsoid",
    "FileStatus",
    "InversionResult",
    "InversionStatus",
    "MisfitCenter",
    "MisfitEngine",
    "MisfitError",
    "MisfitResult",
    "NavAdjustError",
    "NavAdjustInterface",
    "NavAdjustSession",
    "PreconditionError",
    "ProgressCallback",
    "Project",
    "RelaxationSolver",
    "SectionRecord",
    "SnavRef",
    "Soundings",
    "StateError",
    "TieMode",
    "Vector3D",
    "__version__",
    "load_project",
    "save_project",
]
