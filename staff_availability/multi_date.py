"""
Availability across several dates (recurring bookings).

Works on one batched booking fetch and one batched unavailability fetch for
all requested dates; nothing here touches the store.
"""

from collections.abc import Sequence
from datetime import date

from staff_availability.conflicts import ConflictDetector
from staff_availability.models import (
    DateAvailability,
    MemberRef,
    MultiDateStaffResult,
    MultiDateTeamResult,
    StaffMember,
    Team,
    TeamDateAvailability,
    TeamMemberAvailability,
    TimeWindow,
    UnavailabilityPeriod,
    UnavailableMember,
)
from staff_availability.scoring import (
    multi_date_staff_score,
    multi_date_team_score,
    rank,
)
from staff_availability.skills import exact_skill_match, team_coverage


def _staff_by_date(
    staff: StaffMember,
    dates: Sequence[date],
    window: TimeWindow,
    detector: ConflictDetector,
    periods: Sequence[UnavailabilityPeriod],
) -> dict[date, DateAvailability]:
    by_date: dict[date, DateAvailability] = {}
    for on_date in dates:
        conflicts = detector.staff_conflicts(staff.id, on_date, window)
        reasons = detector.unavailability_reasons(
            periods, staff.id, on_date, window
        )
        by_date[on_date] = DateAvailability(
            is_available=not conflicts and not reasons,
            conflicts=conflicts,
            unavailability_reasons=reasons,
        )
    return by_date


def aggregate_staff(
    roster: Sequence[StaffMember],
    dates: Sequence[date],
    window: TimeWindow,
    detector: ConflictDetector,
    periods: Sequence[UnavailabilityPeriod],
    required_skill: str,
) -> list[MultiDateStaffResult]:
    total = len(dates)
    results: list[MultiDateStaffResult] = []
    for staff in roster:
        by_date = _staff_by_date(staff, dates, window, detector, periods)
        available = [d for d in dates if by_date[d].is_available]
        conflicting = [d for d in dates if not by_date[d].is_available]
        all_conflicts = [c for d in dates for c in by_date[d].conflicts]
        skill = exact_skill_match(staff.skills, required_skill)
        avg_rating = staff.average_rating

        results.append(
            MultiDateStaffResult(
                staff_id=staff.id,
                staff_number=staff.staff_number,
                full_name=staff.full_name,
                skills=staff.skills,
                rating=round(avg_rating, 1),
                is_available_all_dates=len(available) == total,
                available_dates_count=len(available),
                total_dates_count=total,
                date_availability=by_date,
                available_dates=available,
                conflicting_dates=conflicting,
                all_conflicts=all_conflicts,
                skill_match=skill,
                jobs_count=len(all_conflicts),
                score=multi_date_staff_score(
                    len(available), total, avg_rating, skill
                ),
            )
        )
    return rank(results)


def _team_on_date(
    team: Team,
    on_date: date,
    window: TimeWindow,
    detector: ConflictDetector,
    periods: Sequence[UnavailabilityPeriod],
) -> TeamDateAvailability:
    team_conflicts = detector.team_conflicts(team.id, on_date, window)
    available: list[MemberRef] = []
    unavailable: list[UnavailableMember] = []
    for member in team.members:
        if detector.staff_conflicts(member.id, on_date, window):
            reason = "Has existing booking"
        else:
            reasons = detector.unavailability_reasons(
                periods, member.id, on_date, window
            )
            if not reasons:
                available.append(
                    MemberRef(staff_id=member.id, full_name=member.full_name)
                )
                continue
            reason = reasons[0].reason
        unavailable.append(
            UnavailableMember(
                staff_id=member.id, full_name=member.full_name, reason=reason
            )
        )

    return TeamDateAvailability(
        available_members_count=len(available),
        available_members=available,
        unavailable_members=unavailable,
        team_conflicts=team_conflicts,
        is_fully_available=not team_conflicts and not unavailable,
    )


def _member_summary(
    member: StaffMember,
    dates: Sequence[date],
    window: TimeWindow,
    detector: ConflictDetector,
    periods: Sequence[UnavailabilityPeriod],
) -> TeamMemberAvailability:
    conflicts = [
        c for d in dates for c in detector.staff_conflicts(member.id, d, window)
    ]
    reasons = [
        r
        for d in dates
        for r in detector.unavailability_reasons(periods, member.id, d, window)
    ]
    return TeamMemberAvailability(
        staff_id=member.id,
        full_name=member.full_name,
        is_available=not conflicts and not reasons,
        conflicts=conflicts,
        unavailability_reasons=reasons,
        rating=round(member.average_rating, 1),
        jobs_today=len(conflicts),
    )


def aggregate_teams(
    roster: Sequence[Team],
    dates: Sequence[date],
    window: TimeWindow,
    detector: ConflictDetector,
    periods: Sequence[UnavailabilityPeriod],
    required_skill: str,
) -> list[MultiDateTeamResult]:
    total = len(dates)
    results: list[MultiDateTeamResult] = []
    for team in roster:
        by_date = {
            d: _team_on_date(team, d, window, detector, periods) for d in dates
        }
        available = [d for d in dates if by_date[d].is_fully_available]
        conflicting = [d for d in dates if not by_date[d].is_fully_available]
        coverage = team_coverage(team.members, required_skill)

        results.append(
            MultiDateTeamResult(
                team_id=team.id,
                team_name=team.name,
                total_members=len(team.members),
                is_available_all_dates=len(available) == total,
                available_dates_count=len(available),
                total_dates_count=total,
                date_availability=by_date,
                available_dates=available,
                conflicting_dates=conflicting,
                members=[
                    _member_summary(m, dates, window, detector, periods)
                    for m in team.members
                ],
                team_match=coverage,
                score=multi_date_team_score(len(available), total, coverage),
            )
        )
    return rank(results)
