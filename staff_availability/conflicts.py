import logging
from collections.abc import Iterable
from datetime import date

from staff_availability.config import EngineSettings
from staff_availability.database import AvailabilityStore
from staff_availability.models import (
    BookingConflict,
    ExistingBooking,
    ScheduleConflict,
    TimeWindow,
    UnavailabilityPeriod,
    UnavailabilityReason,
)
from staff_availability.teams import TeamMembershipResolver

logger = logging.getLogger(__name__)


def to_conflict(
    booking: ExistingBooking,
    *,
    assignment: str = "staff",
    unknown_label: str,
) -> BookingConflict:
    return BookingConflict(
        booking_id=booking.id,
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        service_name=booking.service_name or unknown_label,
        customer_name=booking.customer_name or unknown_label,
        assignment=assignment,
    )


def to_reason(period: UnavailabilityPeriod) -> UnavailabilityReason:
    return UnavailabilityReason(
        reason=period.reason or "Unavailable",
        start_time=period.start_time,
        end_time=period.end_time,
        notes=period.notes,
    )


class ConflictDetector:
    """
    Matches already-fetched bookings and unavailability against a window.

    The detector does no I/O. Bookings in an inactive status are dropped here
    as well as by the store, so a store with its own status filter cannot
    make the configured one a no-op. The exclusion set is expected to be
    applied already; the window is re-checked so every caller shares one
    overlap rule.
    """

    def __init__(
        self,
        bookings: Iterable[ExistingBooking],
        resolver: TeamMembershipResolver,
        *,
        settings: EngineSettings | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.bookings = [
            b
            for b in bookings
            if b.is_assigned and self.settings.is_active_status(b.status)
        ]
        self.resolver = resolver

    @property
    def unknown_label(self) -> str:
        return self.settings.unknown_label

    def _on(self, on_date: date, window: TimeWindow) -> list[ExistingBooking]:
        return [
            b
            for b in self.bookings
            if b.booking_date == on_date and b.overlaps(window)
        ]

    def staff_conflicts(
        self, staff_id: str, on_date: date, window: TimeWindow
    ) -> list[BookingConflict]:
        """Direct bookings plus bookings of any team the staff belongs to."""
        return [
            to_conflict(
                b,
                assignment="staff" if b.staff_id == staff_id else "team",
                unknown_label=self.unknown_label,
            )
            for b in self._on(on_date, window)
            if self.resolver.blocks_staff(b, staff_id)
        ]

    def team_conflicts(
        self, team_id: str, on_date: date, window: TimeWindow
    ) -> list[BookingConflict]:
        return [
            to_conflict(b, assignment="team", unknown_label=self.unknown_label)
            for b in self._on(on_date, window)
            if self.resolver.blocks_team(b, team_id)
        ]

    @staticmethod
    def unavailability_reasons(
        periods: Iterable[UnavailabilityPeriod],
        staff_id: str,
        on_date: date,
        window: TimeWindow,
    ) -> list[UnavailabilityReason]:
        return [
            to_reason(p)
            for p in periods
            if p.staff_id == staff_id
            and p.unavailable_date == on_date
            and p.blocks(window)
        ]


def count_jobs(
    bookings: Iterable[ExistingBooking],
    staff_id: str,
    on_date: date,
    resolver: TeamMembershipResolver,
    settings: EngineSettings | None = None,
) -> int:
    """Active bookings assigned to the staff on the date, overlapping or not."""
    settings = settings or EngineSettings()
    return sum(
        1
        for b in bookings
        if b.booking_date == on_date
        and settings.is_active_status(b.status)
        and resolver.blocks_staff(b, staff_id)
    )


async def resolve_exclusion_ids(
    store: AvailabilityStore, exclude_booking_id: str | None
) -> list[str]:
    """
    Ids to leave out of conflict checks while editing a booking.

    Editing one occurrence of a recurring series must not conflict with its
    siblings, so the whole group is excluded.
    """
    if not exclude_booking_id:
        return []

    booking = await store.get_booking(exclude_booking_id)
    if booking is None or not booking.recurring_group_id:
        return [exclude_booking_id]

    sibling_ids = await store.list_recurring_group_ids(booking.recurring_group_id)
    if exclude_booking_id not in sibling_ids:
        sibling_ids = [exclude_booking_id, *sibling_ids]
    logger.info(
        "exclusion_expanded_to_recurring_group",
        extra={
            "extra": {
                "booking_id": exclude_booking_id,
                "recurring_group_id": booking.recurring_group_id,
                "excluded": len(sibling_ids),
            }
        },
    )
    return sibling_ids


CONFLICT_MESSAGES = {
    "staff": "Staff is already booked at this time",
    "team": "Team is already booked at this time",
    "both": "Staff and team are already booked at this time",
}


async def check_booking_conflicts(
    store: AvailabilityStore,
    *,
    booking_date: date,
    window: TimeWindow,
    staff_id: str | None = None,
    team_id: str | None = None,
    exclude_booking_id: str | None = None,
    settings: EngineSettings | None = None,
) -> list[ScheduleConflict]:
    """
    Conflicts for a prospective assignment, checked right before saving.

    A staff assignment is checked against the staff's own and team bookings;
    a team assignment against bookings made for the team. A booking that
    blocks both the staff and the team is reported once as "both". Editing a
    recurring booking excludes its whole series. Unassigned bookings cannot
    conflict and skip the store entirely.
    """
    if not staff_id and not team_id:
        return []

    settings = settings or EngineSettings()
    exclude_ids = await resolve_exclusion_ids(store, exclude_booking_id)
    bookings = await store.list_conflicting_bookings(
        [booking_date], window, exclude_ids
    )

    resolver = TeamMembershipResolver()
    if staff_id:
        resolver.update(await store.list_team_memberships(staff_id=staff_id))

    conflicts: list[ScheduleConflict] = []
    for booking in bookings:
        if not booking.overlaps(window) or not settings.is_active_status(
            booking.status
        ):
            continue
        staff_hit = bool(staff_id) and resolver.blocks_staff(booking, staff_id)
        team_hit = bool(team_id) and resolver.blocks_team(booking, team_id)
        if staff_hit and team_hit:
            conflict_type = "both"
        elif staff_hit:
            conflict_type = "staff"
        elif team_hit:
            conflict_type = "team"
        else:
            continue
        conflicts.append(
            ScheduleConflict(
                booking=booking,
                conflict_type=conflict_type,
                message=CONFLICT_MESSAGES[conflict_type],
            )
        )
    return conflicts
