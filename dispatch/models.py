"""
Purpose: Result and log types for rider assignment.
What it does:
Defines what an assignment attempt hands back to the API layer and what
gets written to `rider_assignment_logs` for analytics.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from riders.models import RiderScore


class AssignmentType(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class TimeRange(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class AssignmentLog:
    order_id: str
    rider_id: str
    assignment_type: AssignmentType
    assigned_at: datetime
    assignment_score: Optional[float] = None


@dataclass
class AssignmentResult:
    success: bool
    message: str
    assigned_rider_id: Optional[str] = None
    fallback_to_manual: bool = False
    candidate_riders: List[RiderScore] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str, candidates: Optional[List[RiderScore]] = None,
                fallback_to_manual: bool = True) -> AssignmentResult:
        return cls(
            success=False,
            message=message,
            fallback_to_manual=fallback_to_manual,
            candidate_riders=list(candidates or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "assigned_rider_id": self.assigned_rider_id,
            "fallback_to_manual": self.fallback_to_manual,
            "candidate_riders": [candidate.to_dict() for candidate in self.candidate_riders],
        }


@dataclass(frozen=True)
class TopRider:
    rider_id: str
    assignments: int
    average_score: Optional[float]


@dataclass(frozen=True)
class AssignmentAnalytics:
    time_range: TimeRange
    total_assignments: int = 0
    automatic_assignments: int = 0
    manual_assignments: int = 0
    top_riders: List[TopRider] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_range": self.time_range.value,
            "total_assignments": self.total_assignments,
            "automatic_assignments": self.automatic_assignments,
            "manual_assignments": self.manual_assignments,
            "top_riders": [
                {"rider_id": top.rider_id, "assignments": top.assignments, "average_score": top.average_score}
                for top in self.top_riders
            ],
        }
