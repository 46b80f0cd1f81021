"""
Riders domain package.

Public API:
- Domain models: Rider, RiderStatus, RiderPerformance, RiderRating, RiderScore
- Policy: AssignmentPolicy, default_assignment_policy
- Selection: filter_available_riders, score_candidate, rank_scores
"""
from .models import Rider, RiderPerformance, RiderRating, RiderScore, RiderStatus, ScoreFactors
from .policy import AssignmentPolicy, default_assignment_policy
from .selection import (
    RiderCandidate,
    filter_available_riders,
    performance_from_orders,
    rank_scores,
    rating_from_scores,
    score_candidate,
)

__all__ = [
    "Rider",
    "RiderPerformance",
    "RiderRating",
    "RiderScore",
    "RiderStatus",
    "ScoreFactors",
    "AssignmentPolicy",
    "default_assignment_policy",
    "RiderCandidate",
    "filter_available_riders",
    "performance_from_orders",
    "rank_scores",
    "rating_from_scores",
    "score_candidate",
]
