# -*- coding: utf-8 -*-
"""Tie management and crossing selection."""

from navadjust_lib.ties.manager import TieEdit
from navadjust_lib.ties.manager import add_tie
from navadjust_lib.ties.manager import delete_global_tie
from navadjust_lib.ties.manager import delete_tie
from navadjust_lib.ties.manager import get_crossing
from navadjust_lib.ties.manager import reset_tie
from navadjust_lib.ties.manager import set_file_status
from navadjust_lib.ties.manager import set_global_tie
from navadjust_lib.ties.manager import set_tie_mode
from navadjust_lib.ties.manager import skip_crossing
from navadjust_lib.ties.manager import unset_crossing
from navadjust_lib.ties.manager import update_tie
from navadjust_lib.ties.selection import SelectionFilter
from navadjust_lib.ties.selection import select_next
from navadjust_lib.ties.selection import select_next_unset
from navadjust_lib.ties.selection import select_previous

__all__ = [
    "SelectionFilter",
    "TieEdit",
    "add_tie",
    "delete_global_tie",
    "delete_tie",
    "get_crossing",
    "reset_tie",
    "select_next",
    "select_next_unset",
    "select_previous",
    "set_file_status",
    "set_global_tie",
    "set_tie_mode",
    "skip_crossing",
    "unset_crossing",
    "update_tie",
]
