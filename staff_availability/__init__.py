from staff_availability.engine import AvailabilityEngine, AvailabilityQueryRunner
from staff_availability.models import AvailabilityRequest, AvailabilityResponse
from staff_availability.overlap import overlaps

__all__ = [
    "AvailabilityEngine",
    "AvailabilityQueryRunner",
    "AvailabilityRequest",
    "AvailabilityResponse",
    "overlaps",
]
