#Expose the rider assignment pipeline:
#Assignment service (the "one call" entry point for automatic and manual assignment)
#Result / log / analytics types

from .dispatcher import RiderAssignmentService  #the main class to call to assign an order to a rider
from .models import (
    AssignmentAnalytics,
    AssignmentLog,
    AssignmentResult,
    AssignmentType,
    TimeRange,
    TopRider,
)

__all__ = [
    "RiderAssignmentService",
    "AssignmentAnalytics",
    "AssignmentLog",
    "AssignmentResult",
    "AssignmentType",
    "TimeRange",
    "TopRider",
]
