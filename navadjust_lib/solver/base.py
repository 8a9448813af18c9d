# -*- coding: utf-8 -*-
"""Abstract base class for navigation solvers.

To implement a new solver algorithm:

1. Subclass ``NavigationSolver``.
2. Implement the ``invert`` method.
3. Optionally override ``name`` for logging / UI labels.

The solver receives a :class:`Project`, solves for an offset at every nav
point from the stored ties and commits the solution to the project.
Components of files fixed on an axis group must **not** be moved.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from navadjust_lib.interface import CancellationToken
    from navadjust_lib.interface import ProgressCallback
    from navadjust_lib.project.models import Project
    from navadjust_lib.solver.models import InversionResult


class NavigationSolver(ABC):
    """Abstract base class for navigation inversion algorithms.

    Subclasses must implement :meth:`invert`.  The contract is:

    * Input: a :class:`Project` with ties set on its crossings.
    * Output: an :class:`InversionResult`; the solved offsets are also
      written onto the project's nav points.
    * Preconditions are checked before anything is modified.
    """

    @property
    def name(self) -> str:
        """Human-readable name of the solver (for logging / UI)."""
        return self.__class__.__name__

    @abstractmethod
    def invert(
        self,
        project: Project,
        *,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> InversionResult:
        """Solve and commit the navigation offsets of a project.

        Args:
            project: Project to invert.
            on_progress: Optional progress callback.
            cancellation: Optional cancellation token, checked between
                iterations.

        Returns:
            The inversion result.
        """
        ...
