from datetime import date, time

import pytest

from staff_availability.database import InMemoryAvailabilityStore
from staff_availability.engine import AvailabilityEngine
from staff_availability.models import (
    ExistingBooking,
    ServiceRequirement,
    StaffMember,
    Team,
)

DAY = date(2025, 7, 2)


def booking(
    booking_id: str,
    start: str,
    end: str,
    *,
    on: date = DAY,
    staff_id: str | None = None,
    team_id: str | None = None,
    status: str = "confirmed",
    recurring_group_id: str | None = None,
) -> ExistingBooking:
    return ExistingBooking(
        id=booking_id,
        booking_date=on,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        staff_id=staff_id,
        team_id=team_id,
        status=status,
        recurring_group_id=recurring_group_id,
        service_name="Deep Clean",
        customer_name="Pat Customer",
    )


@pytest.fixture
def alice() -> StaffMember:
    return StaffMember(
        id="alice-id",
        full_name="Alice Ongwele",
        staff_number="S-001",
        skills=["Cleaning"],
        ratings=[5, 4],
    )


@pytest.fixture
def barry() -> StaffMember:
    return StaffMember(
        id="barry-id",
        full_name="Barry Kozumikov",
        staff_number="S-002",
        skills=["Deep Cleaning"],
        ratings=[3],
    )


@pytest.fixture
def wei() -> StaffMember:
    return StaffMember(
        id="wei-id",
        full_name="Wei Yan",
        staff_number="S-003",
        skills=["Gardening"],
    )


@pytest.fixture
def store(alice, barry, wei) -> InMemoryAvailabilityStore:
    store = InMemoryAvailabilityStore()
    store.add_service(
        ServiceRequirement(
            service_id="svc-clean", required_skill_tag="Cleaning", name="Clean"
        )
    )
    for staff in (alice, barry, wei):
        store.add_staff(staff)
    return store


@pytest.fixture
def team_store(store, alice, barry, wei) -> InMemoryAvailabilityStore:
    carol = StaffMember(id="carol-id", full_name="Carol Diaz", skills=["cleaning"])
    store.add_staff(carol)
    store.add_team(
        Team(id="team-a", name="Alpha", members=[alice, carol, wei])
    )
    store.add_team(Team(id="team-b", name="Bravo", members=[barry]))
    store.add_team(
        Team(id="team-z", name="Zulu", is_active=False, members=[wei])
    )
    return store


@pytest.fixture
def engine(store) -> AvailabilityEngine:
    return AvailabilityEngine(store)
