from collections.abc import Iterable

from staff_availability.models import ExistingBooking, Team, TeamMembership


class TeamMembershipResolver:
    """
    Staff <-> team lookup, both ways.

    A booking assigned to a team blocks every member of that team, so member
    conflict searches go through `blocks_staff`.
    """

    def __init__(self, memberships: Iterable[TeamMembership] = ()) -> None:
        self._members_by_team: dict[str, list[str]] = {}
        self._teams_by_staff: dict[str, list[str]] = {}
        self.update(memberships)

    @classmethod
    def from_teams(cls, teams: Iterable[Team]) -> "TeamMembershipResolver":
        resolver = cls()
        resolver.add_teams(teams)
        return resolver

    def add_teams(self, teams: Iterable[Team]) -> None:
        for team in teams:
            for member in team.members:
                self.add(team.id, member.id)

    def add(self, team_id: str, staff_id: str) -> None:
        members = self._members_by_team.setdefault(team_id, [])
        if staff_id not in members:
            members.append(staff_id)
        teams = self._teams_by_staff.setdefault(staff_id, [])
        if team_id not in teams:
            teams.append(team_id)

    def update(self, memberships: Iterable[TeamMembership]) -> None:
        for membership in memberships:
            self.add(membership.team_id, membership.staff_id)

    def team_ids_for(self, staff_id: str) -> list[str]:
        return list(self._teams_by_staff.get(staff_id, []))

    def member_ids_for(self, team_id: str) -> list[str]:
        return list(self._members_by_team.get(team_id, []))

    def blocks_staff(self, booking: ExistingBooking, staff_id: str) -> bool:
        if booking.staff_id == staff_id:
            return True
        return (
            booking.team_id is not None
            and booking.team_id in self.team_ids_for(staff_id)
        )

    def blocks_team(self, booking: ExistingBooking, team_id: str) -> bool:
        return booking.team_id == team_id
