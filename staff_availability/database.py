from collections.abc import Iterable, Sequence
from datetime import date
from itertools import count
from typing import Generic, Protocol, TypeVar

from staff_availability.config import DEFAULT_INACTIVE_STATUSES
from staff_availability.models import (
    AssignmentMode,
    ExistingBooking,
    ServiceRequirement,
    StaffMember,
    Team,
    TeamMembership,
    TimeWindow,
    UnavailabilityPeriod,
)

Record = StaffMember | Team | ExistingBooking | ServiceRequirement | UnavailabilityPeriod

V = TypeVar("V")
R = TypeVar("R")

KINDS: dict[type, str] = {
    StaffMember: "staff",
    Team: "team",
    ExistingBooking: "booking",
    ServiceRequirement: "service",
    UnavailabilityPeriod: "unavailability",
}


class AvailabilityStore(Protocol):
    """
    Read-only view of the booking data store.

    Every method may raise; the engine turns failures into an error result.
    """

    async def get_service_requirement(
        self, service_id: str
    ) -> ServiceRequirement | None: ...

    async def list_candidates(
        self, mode: AssignmentMode
    ) -> list[StaffMember] | list[Team]: ...

    async def list_conflicting_bookings(
        self,
        dates: Sequence[date],
        window: TimeWindow,
        exclude_ids: Iterable[str] = (),
    ) -> list[ExistingBooking]: ...

    async def list_bookings_on_dates(
        self, dates: Sequence[date]
    ) -> list[ExistingBooking]: ...

    async def list_unavailability(
        self, staff_id: str, on_date: date
    ) -> list[UnavailabilityPeriod]: ...

    async def list_unavailability_on_dates(
        self, dates: Sequence[date]
    ) -> list[UnavailabilityPeriod]: ...

    async def list_team_memberships(
        self, *, staff_id: str | None = None, team_id: str | None = None
    ) -> list[TeamMembership]: ...

    async def get_booking(self, booking_id: str) -> ExistingBooking | None: ...

    async def list_recurring_group_ids(self, group_id: str) -> list[str]: ...


class InMemoryRecordDatabase(Generic[V]):
    """
    In-memory records grouped by kind, each kind keyed by record id.

    A scan walks one kind only and returns records in insertion order.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, V]] = {}

    def put(self, kind: str, key: str, value: V) -> None:
        self._tables.setdefault(kind, {})[key] = value

    def get(self, kind: str, key: str) -> V | None:
        return self._tables.get(kind, {}).get(key)

    def scan(self, kind: str) -> list[V]:
        return list(self._tables.get(kind, {}).values())


class InMemoryAvailabilityStore:
    """
    AvailabilityStore backed by an InMemoryRecordDatabase.

    Staff are listed by name, teams (active only) by name; bookings come back
    in insertion order.
    """

    def __init__(
        self,
        db: InMemoryRecordDatabase[Record] | None = None,
        *,
        inactive_statuses: Iterable[str] = DEFAULT_INACTIVE_STATUSES,
    ) -> None:
        self.db: InMemoryRecordDatabase[Record] = (
            db if db is not None else InMemoryRecordDatabase()
        )
        self.inactive_statuses = frozenset(s.lower() for s in inactive_statuses)
        self._unavailability_ids = count(1)

    # loading

    def add_staff(self, staff: StaffMember) -> None:
        self.db.put(KINDS[StaffMember], staff.id, staff)

    def add_team(self, team: Team) -> None:
        self.db.put(KINDS[Team], team.id, team)

    def add_booking(self, booking: ExistingBooking) -> None:
        self.db.put(KINDS[ExistingBooking], booking.id, booking)

    def add_service(self, service: ServiceRequirement) -> None:
        self.db.put(KINDS[ServiceRequirement], service.service_id, service)

    def add_unavailability(self, period: UnavailabilityPeriod) -> None:
        self.db.put(
            KINDS[UnavailabilityPeriod], str(next(self._unavailability_ids)), period
        )

    # reads

    def _records(self, kind: type[R]) -> list[R]:
        return [r for r in self.db.scan(KINDS[kind]) if isinstance(r, kind)]

    def _active_bookings(self) -> list[ExistingBooking]:
        return [
            b
            for b in self._records(ExistingBooking)
            if b.status.lower() not in self.inactive_statuses
        ]

    async def get_service_requirement(
        self, service_id: str
    ) -> ServiceRequirement | None:
        service = self.db.get(KINDS[ServiceRequirement], service_id)
        return service if isinstance(service, ServiceRequirement) else None

    async def list_candidates(
        self, mode: AssignmentMode
    ) -> list[StaffMember] | list[Team]:
        if mode == AssignmentMode.TEAM:
            teams = [t for t in self._records(Team) if t.is_active]
            return sorted(teams, key=lambda t: t.name)
        return sorted(self._records(StaffMember), key=lambda s: s.full_name)

    async def list_conflicting_bookings(
        self,
        dates: Sequence[date],
        window: TimeWindow,
        exclude_ids: Iterable[str] = (),
    ) -> list[ExistingBooking]:
        wanted = set(dates)
        excluded = set(exclude_ids)
        return [
            b
            for b in self._active_bookings()
            if b.booking_date in wanted
            and b.id not in excluded
            and b.overlaps(window)
        ]

    async def list_bookings_on_dates(
        self, dates: Sequence[date]
    ) -> list[ExistingBooking]:
        wanted = set(dates)
        return [b for b in self._active_bookings() if b.booking_date in wanted]

    async def list_unavailability(
        self, staff_id: str, on_date: date
    ) -> list[UnavailabilityPeriod]:
        return [
            p
            for p in self._records(UnavailabilityPeriod)
            if p.staff_id == staff_id and p.unavailable_date == on_date
        ]

    async def list_unavailability_on_dates(
        self, dates: Sequence[date]
    ) -> list[UnavailabilityPeriod]:
        wanted = set(dates)
        return [
            p
            for p in self._records(UnavailabilityPeriod)
            if p.unavailable_date in wanted
        ]

    async def list_team_memberships(
        self, *, staff_id: str | None = None, team_id: str | None = None
    ) -> list[TeamMembership]:
        # inactive teams still count: their bookings block members
        memberships = [
            TeamMembership(team_id=team.id, staff_id=member.id)
            for team in sorted(self._records(Team), key=lambda t: t.name)
            for member in team.members
        ]
        return [
            m
            for m in memberships
            if (staff_id is None or m.staff_id == staff_id)
            and (team_id is None or m.team_id == team_id)
        ]

    async def get_booking(self, booking_id: str) -> ExistingBooking | None:
        booking = self.db.get(KINDS[ExistingBooking], booking_id)
        return booking if isinstance(booking, ExistingBooking) else None

    async def list_recurring_group_ids(self, group_id: str) -> list[str]:
        return [
            b.id
            for b in self._records(ExistingBooking)
            if b.recurring_group_id == group_id
        ]
