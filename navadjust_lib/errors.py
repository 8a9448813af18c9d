# -*- coding: utf-8 -*-
"""Error handling for navigation adjustment.

This module provides the exception hierarchy raised by the library and
the message records collected for non-fatal conditions.
"""

from __future__ import annotations

from dataclasses import dataclass

from navadjust_lib.enums import PreconditionReason
from navadjust_lib.enums import Severity


@dataclass(frozen=True)
class SolverMessage:
    """A non-fatal condition reported while solving.

    This is a data record, not an exception.

    Attributes:
        severity: ERROR or WARNING
        message: Human-readable message
        ref: Identifier of the item involved (optional)
    """

    severity: Severity
    message: str
    ref: str | None = None

    def __str__(self) -> str:
        """Format as human-readable message string."""
        base = f"{self.severity.value}: {self.message}"
        if self.ref:
            base += f" ({self.ref})"
        return base


class NavAdjustError(Exception):
    """Base class of all errors raised by navadjust_lib.

    Attributes:
        message: Error message
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return self.message


class PreconditionError(NavAdjustError):
    """An operation was refused before any state was modified.

    Attributes:
        message: Error message
        reason: Machine-readable reason
        crossing_id: Offending crossing, if any
        tie_id: Offending tie within the crossing, if any
    """

    def __init__(
        self,
        message: str,
        reason: PreconditionReason,
        crossing_id: int | None = None,
        tie_id: int | None = None,
    ):
        self.reason = reason
        self.crossing_id = crossing_id
        self.tie_id = tie_id
        super().__init__(message)

    def __str__(self) -> str:
        if self.crossing_id is None:
            return f"{self.message} [{self.reason.value}]"
        location = f"crossing {self.crossing_id}"
        if self.tie_id is not None:
            location += f", tie {self.tie_id}"
        return f"{self.message} [{self.reason.value}] ({location})"


class AllocationError(NavAdjustError):
    """Working arrays could not be allocated."""


class StateError(NavAdjustError):
    """A state change was refused because it is destructive or impossible."""


class MisfitError(NavAdjustError):
    """Two sections share no gridded bathymetry."""
