"""
Shared types for availability-related functionality.

This module contains shared data classes used by the availability checker,
the recurrence expander and the orchestrator to ensure type safety and
consistency.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Occurrence:
    """One calendar slot of a (possibly recurring) appointment."""
    date: date
    time: time


@dataclass(frozen=True)
class ConflictInfo:
    """The appointment currently occupying a slot."""
    patient_id: int
    patient_name: str
    appointment_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "appointment_id": self.appointment_id,
        }


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Result of an availability check.

    ``conflict`` is only set when ``available`` is False.
    """
    available: bool
    conflict: Optional[ConflictInfo] = None
