# -*- coding: utf-8 -*-
"""Navigation inversion solvers.

Usage::

    from navadjust_lib.solver import RelaxationSolver

    result = RelaxationSolver().invert(project)
    print(result.status_message)

To create a custom solver, subclass :class:`NavigationSolver` and
implement the :meth:`~NavigationSolver.invert` method.
"""

from navadjust_lib.solver.base import NavigationSolver
from navadjust_lib.solver.blocks import estimate_block_offsets
from navadjust_lib.solver.fixed_pull import fixed_pull_offsets
from navadjust_lib.solver.interpolate import interpolate_offsets
from navadjust_lib.solver.interpolate import interpolate_solution
from navadjust_lib.solver.models import InversionResult
from navadjust_lib.solver.models import NavNetwork
from navadjust_lib.solver.models import TieObservation
from navadjust_lib.solver.models import observation_axes
from navadjust_lib.solver.relaxation import RelaxationSolver
from navadjust_lib.solver.weights import STATUS_SPLIT

__all__ = [
    "STATUS_SPLIT",
    "InversionResult",
    "NavNetwork",
    "NavigationSolver",
    "RelaxationSolver",
    "TieObservation",
    "estimate_block_offsets",
    "fixed_pull_offsets",
    "interpolate_offsets",
    "interpolate_solution",
    "observation_axes",
]
