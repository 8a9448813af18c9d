# -*- coding: utf-8 -*-
"""Project store: files, sections, nav points, crossings and ties."""

from navadjust_lib.project.models import Crossing
from navadjust_lib.project.models import GlobalTie
from navadjust_lib.project.models import NavPoint
from navadjust_lib.project.models import NavPointRecord
from navadjust_lib.project.models import OffsetRecord
from navadjust_lib.project.models import Project
from navadjust_lib.project.models import ProjectSettings
from navadjust_lib.project.models import Section
from navadjust_lib.project.models import SectionRecord
from navadjust_lib.project.models import SurveyFile
from navadjust_lib.project.models import Tie

__all__ = [
    "Crossing",
    "GlobalTie",
    "NavPoint",
    "NavPointRecord",
    "OffsetRecord",
    "Project",
    "ProjectSettings",
    "Section",
    "SectionRecord",
    "SurveyFile",
    "Tie",
]
