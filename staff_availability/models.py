"""
Domain models for the availability engine.
"""

from datetime import date, time
from enum import StrEnum
from statistics import fmean

from pydantic import BaseModel, Field, field_validator, model_validator

from staff_availability.overlap import overlaps, parse_time

UNKNOWN_LABEL = "Unknown"


class AssignmentMode(StrEnum):
    INDIVIDUAL = "individual"
    TEAM = "team"


class QueryState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class TimeWindow(BaseModel):
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: time | str) -> time:
        if isinstance(value, str):
            return parse_time(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.start_time >= self.end_time:
            raise ValueError("invalid_window: start_time must be before end_time")
        return self

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(
            self.start_time, self.end_time, other.start_time, other.end_time
        )


class StaffMember(BaseModel):
    id: str
    full_name: str
    staff_number: str = ""
    skills: list[str] = Field(default_factory=list)
    ratings: list[float] = Field(default_factory=list)  # historical reviews

    @property
    def average_rating(self) -> float:
        return fmean(self.ratings) if self.ratings else 0.0


class Team(BaseModel):
    id: str
    name: str
    is_active: bool = True
    members: list[StaffMember] = Field(default_factory=list)


class TeamMembership(BaseModel):
    team_id: str
    staff_id: str


class ServiceRequirement(BaseModel):
    service_id: str
    required_skill_tag: str
    name: str = ""


class ExistingBooking(BaseModel):
    id: str
    booking_date: date
    start_time: time
    end_time: time
    staff_id: str | None = None
    team_id: str | None = None
    status: str = "pending"
    recurring_group_id: str | None = None
    service_name: str | None = None
    customer_name: str | None = None

    @property
    def is_assigned(self) -> bool:
        return self.staff_id is not None or self.team_id is not None

    def overlaps(self, window: TimeWindow) -> bool:
        return overlaps(
            window.start_time, window.end_time, self.start_time, self.end_time
        )


class UnavailabilityPeriod(BaseModel):
    staff_id: str
    unavailable_date: date
    start_time: time | None = None  # None on either end means all day
    end_time: time | None = None
    reason: str | None = None
    notes: str | None = None

    @property
    def is_all_day(self) -> bool:
        return self.start_time is None or self.end_time is None

    def blocks(self, window: TimeWindow) -> bool:
        if self.is_all_day:
            return True
        return overlaps(
            window.start_time, window.end_time, self.start_time, self.end_time
        )


class BookingConflict(BaseModel):
    booking_id: str
    booking_date: date
    start_time: time
    end_time: time
    service_name: str = UNKNOWN_LABEL
    customer_name: str = UNKNOWN_LABEL
    assignment: str = "staff"  # "staff" or "team"


class UnavailabilityReason(BaseModel):
    reason: str = "Unavailable"
    start_time: time | None = None
    end_time: time | None = None
    notes: str | None = None


class StaffAvailabilityResult(BaseModel):
    staff_id: str
    staff_number: str = ""
    full_name: str
    skills: list[str] = Field(default_factory=list)
    rating: float = 0.0
    is_available: bool
    conflicts: list[BookingConflict] = Field(default_factory=list)
    unavailability_reasons: list[UnavailabilityReason] = Field(
        default_factory=list
    )
    skill_match: float = 0.0
    jobs_today: int = 0
    score: float = 0.0


class TeamMemberAvailability(BaseModel):
    staff_id: str
    full_name: str
    is_available: bool
    conflicts: list[BookingConflict] = Field(default_factory=list)
    unavailability_reasons: list[UnavailabilityReason] = Field(
        default_factory=list
    )
    rating: float = 0.0
    jobs_today: int = 0


class TeamAvailabilityResult(BaseModel):
    team_id: str
    team_name: str
    total_members: int
    available_members: int
    members: list[TeamMemberAvailability] = Field(default_factory=list)
    team_conflicts: list[BookingConflict] = Field(default_factory=list)
    is_fully_available: bool
    team_match: float = 0.0
    jobs_today: int = 0
    score: float = 0.0


class DateAvailability(BaseModel):
    is_available: bool
    conflicts: list[BookingConflict] = Field(default_factory=list)
    unavailability_reasons: list[UnavailabilityReason] = Field(
        default_factory=list
    )


class MultiDateStaffResult(BaseModel):
    staff_id: str
    staff_number: str = ""
    full_name: str
    skills: list[str] = Field(default_factory=list)
    rating: float = 0.0
    is_available_all_dates: bool
    available_dates_count: int
    total_dates_count: int
    date_availability: dict[date, DateAvailability] = Field(
        default_factory=dict
    )
    available_dates: list[date] = Field(default_factory=list)
    conflicting_dates: list[date] = Field(default_factory=list)
    all_conflicts: list[BookingConflict] = Field(default_factory=list)
    skill_match: float = 0.0
    jobs_count: int = 0
    score: float = 0.0


class MemberRef(BaseModel):
    staff_id: str
    full_name: str


class UnavailableMember(MemberRef):
    reason: str


class TeamDateAvailability(BaseModel):
    available_members_count: int
    available_members: list[MemberRef] = Field(default_factory=list)
    unavailable_members: list[UnavailableMember] = Field(default_factory=list)
    team_conflicts: list[BookingConflict] = Field(default_factory=list)
    is_fully_available: bool


class MultiDateTeamResult(BaseModel):
    team_id: str
    team_name: str
    total_members: int
    is_available_all_dates: bool
    available_dates_count: int
    total_dates_count: int
    date_availability: dict[date, TeamDateAvailability] = Field(
        default_factory=dict
    )
    available_dates: list[date] = Field(default_factory=list)
    conflicting_dates: list[date] = Field(default_factory=list)
    members: list[TeamMemberAvailability] = Field(default_factory=list)
    team_match: float = 0.0
    score: float = 0.0


StaffResult = StaffAvailabilityResult | MultiDateStaffResult
TeamResult = TeamAvailabilityResult | MultiDateTeamResult


class AvailabilityRequest(BaseModel):
    dates: list[date] = Field(default_factory=list)
    start_time: time | None = None
    end_time: time | None = None
    service_id: str | None = None
    mode: AssignmentMode = AssignmentMode.INDIVIDUAL
    exclude_booking_id: str | None = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: time | str | None) -> time | None:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return parse_time(value)
        return value

    @property
    def is_complete(self) -> bool:
        return bool(
            self.dates
            and self.start_time is not None
            and self.end_time is not None
            and self.service_id
        )

    @property
    def unique_dates(self) -> list[date]:
        return list(dict.fromkeys(self.dates))


class AvailabilityResponse(BaseModel):
    state: QueryState = QueryState.IDLE
    staff_results: list[StaffResult] = Field(default_factory=list)
    team_results: list[TeamResult] = Field(default_factory=list)
    service_skill_tag: str = ""
    multi_date: bool = False
    error: str | None = None


class ConflictCheckRequest(BaseModel):
    staff_id: str | None = None
    team_id: str | None = None
    booking_date: date
    start_time: time
    end_time: time
    exclude_booking_id: str | None = None


class ScheduleConflict(BaseModel):
    booking: ExistingBooking
    conflict_type: str  # "staff", "team" or "both"
    message: str
