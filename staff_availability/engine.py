import asyncio
import logging
from datetime import date

from staff_availability.config import EngineSettings
from staff_availability.conflicts import (
    ConflictDetector,
    count_jobs,
    resolve_exclusion_ids,
)
from staff_availability.database import AvailabilityStore
from staff_availability.models import (
    AssignmentMode,
    AvailabilityRequest,
    AvailabilityResponse,
    QueryState,
    StaffAvailabilityResult,
    StaffMember,
    Team,
    TeamAvailabilityResult,
    TeamMemberAvailability,
    TeamMembership,
    TimeWindow,
    UnavailabilityPeriod,
)
from staff_availability.multi_date import aggregate_staff, aggregate_teams
from staff_availability.scoring import (
    rank,
    staff_score,
    team_average_rating,
    team_score,
)
from staff_availability.skills import skill_match, team_skill_match
from staff_availability.teams import TeamMembershipResolver

logger = logging.getLogger(__name__)

INVALID_WINDOW = "invalid_window: start_time must be before end_time"


def _first_error(exc: BaseException) -> BaseException:
    # concurrent reads fail as an ExceptionGroup; report the read that broke
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return exc


class AvailabilityEngine:
    """
    Ranks staff or teams for a requested service window.

    `check_availability` never raises: store failures come back as a failed
    response with no results.
    """

    def __init__(
        self, store: AvailabilityStore, settings: EngineSettings | None = None
    ) -> None:
        self.store = store
        self.settings = settings or EngineSettings()

    async def check_availability(
        self, request: AvailabilityRequest
    ) -> AvailabilityResponse:
        if not request.is_complete:
            return AvailabilityResponse(state=QueryState.IDLE)

        if request.start_time >= request.end_time:
            logger.warning(
                "availability_invalid_window",
                extra={
                    "extra": {
                        "start_time": request.start_time.isoformat(),
                        "end_time": request.end_time.isoformat(),
                    }
                },
            )
            return AvailabilityResponse(state=QueryState.FAILED, error=INVALID_WINDOW)

        window = TimeWindow(start_time=request.start_time, end_time=request.end_time)
        dates = request.unique_dates
        multi_date = len(dates) > 1

        try:
            skill_tag = await self._required_skill(request.service_id)
            exclude_ids = await resolve_exclusion_ids(
                self.store, request.exclude_booking_id
            )
            staff_results: list = []
            team_results: list = []
            if request.mode == AssignmentMode.TEAM:
                if multi_date:
                    team_results = await self._teams_multi_date(
                        dates, window, exclude_ids, skill_tag
                    )
                else:
                    team_results = await self._teams_single_date(
                        dates[0], window, exclude_ids, skill_tag
                    )
            elif multi_date:
                staff_results = await self._staff_multi_date(
                    dates, window, exclude_ids, skill_tag
                )
            else:
                staff_results = await self._staff_single_date(
                    dates[0], window, exclude_ids, skill_tag
                )
        except Exception as exc:
            cause = _first_error(exc)
            logger.exception(
                "availability_check_failed",
                extra={
                    "extra": {
                        "service_id": request.service_id,
                        "mode": request.mode.value,
                        "dates": [d.isoformat() for d in dates],
                    }
                },
            )
            return AvailabilityResponse(
                state=QueryState.FAILED,
                multi_date=multi_date,
                error=str(cause) or type(cause).__name__,
            )

        logger.info(
            "availability_check_complete",
            extra={
                "extra": {
                    "mode": request.mode.value,
                    "dates": len(dates),
                    "staff": len(staff_results),
                    "teams": len(team_results),
                }
            },
        )
        return AvailabilityResponse(
            state=QueryState.READY,
            staff_results=staff_results,
            team_results=team_results,
            service_skill_tag=skill_tag,
            multi_date=multi_date,
        )

    async def _required_skill(self, service_id: str) -> str:
        service = await self.store.get_service_requirement(service_id)
        if service is None:
            # unknown service scores as "no skill match" instead of failing
            logger.warning(
                "service_requirement_not_found",
                extra={"extra": {"service_id": service_id}},
            )
            return ""
        return service.required_skill_tag

    async def _fan_out(
        self, staff_ids: list[str], on_date: date
    ) -> tuple[list[TeamMembership], list[UnavailabilityPeriod]]:
        # one pair of reads per staff member, merged only after all finish;
        # the first failed read cancels the rest
        async with asyncio.TaskGroup() as tg:
            tasks = [
                (
                    tg.create_task(self.store.list_team_memberships(staff_id=staff_id)),
                    tg.create_task(self.store.list_unavailability(staff_id, on_date)),
                )
                for staff_id in staff_ids
            ]
        memberships: list[TeamMembership] = []
        periods: list[UnavailabilityPeriod] = []
        for membership_task, periods_task in tasks:
            memberships.extend(membership_task.result())
            periods.extend(periods_task.result())
        return memberships, periods

    async def _staff_single_date(
        self,
        on_date: date,
        window: TimeWindow,
        exclude_ids: list[str],
        skill_tag: str,
    ) -> list[StaffAvailabilityResult]:
        roster: list[StaffMember] = await self.store.list_candidates(
            AssignmentMode.INDIVIDUAL
        )
        if not roster:
            return []

        bookings = await self.store.list_conflicting_bookings(
            [on_date], window, exclude_ids
        )
        day_bookings = await self.store.list_bookings_on_dates([on_date])
        memberships, periods = await self._fan_out([s.id for s in roster], on_date)
        resolver = TeamMembershipResolver(memberships)
        detector = ConflictDetector(bookings, resolver, settings=self.settings)

        results: list[StaffAvailabilityResult] = []
        for staff in roster:
            conflicts = detector.staff_conflicts(staff.id, on_date, window)
            reasons = detector.unavailability_reasons(
                periods, staff.id, on_date, window
            )
            skill = skill_match(staff.skills, skill_tag)
            jobs_today = count_jobs(
                day_bookings, staff.id, on_date, resolver, self.settings
            )
            avg_rating = staff.average_rating

            results.append(
                StaffAvailabilityResult(
                    staff_id=staff.id,
                    staff_number=staff.staff_number,
                    full_name=staff.full_name,
                    skills=staff.skills,
                    rating=round(avg_rating, 1),
                    is_available=not conflicts and not reasons,
                    conflicts=conflicts,
                    unavailability_reasons=reasons,
                    skill_match=skill,
                    jobs_today=jobs_today,
                    score=staff_score(skill, avg_rating, jobs_today),
                )
            )
        return rank(results)

    async def _teams_single_date(
        self,
        on_date: date,
        window: TimeWindow,
        exclude_ids: list[str],
        skill_tag: str,
    ) -> list[TeamAvailabilityResult]:
        roster: list[Team] = await self.store.list_candidates(AssignmentMode.TEAM)
        if not roster:
            return []

        bookings = await self.store.list_conflicting_bookings(
            [on_date], window, exclude_ids
        )
        day_bookings = await self.store.list_bookings_on_dates([on_date])
        resolver = TeamMembershipResolver.from_teams(roster)
        member_ids = list(
            dict.fromkeys(
                staff_id
                for team in roster
                for staff_id in resolver.member_ids_for(team.id)
            )
        )
        memberships, periods = await self._fan_out(member_ids, on_date)
        # other teams the members belong to, inactive ones included
        resolver.update(memberships)
        detector = ConflictDetector(bookings, resolver, settings=self.settings)

        results: list[TeamAvailabilityResult] = []
        for team in roster:
            team_conflicts = detector.team_conflicts(team.id, on_date, window)
            members: list[TeamMemberAvailability] = []
            for member in team.members:
                conflicts = detector.staff_conflicts(member.id, on_date, window)
                reasons = detector.unavailability_reasons(
                    periods, member.id, on_date, window
                )
                members.append(
                    TeamMemberAvailability(
                        staff_id=member.id,
                        full_name=member.full_name,
                        is_available=not conflicts and not reasons,
                        conflicts=conflicts,
                        unavailability_reasons=reasons,
                        rating=round(member.average_rating, 1),
                        jobs_today=count_jobs(
                            day_bookings, member.id, on_date, resolver, self.settings
                        ),
                    )
                )

            available = sum(1 for m in members if m.is_available)
            team_match = team_skill_match(team.members, skill_tag)
            avg_rating = team_average_rating(
                [m.average_rating for m in team.members]
            )
            team_jobs = sum(m.jobs_today for m in members)

            results.append(
                TeamAvailabilityResult(
                    team_id=team.id,
                    team_name=team.name,
                    total_members=len(members),
                    available_members=0 if team_conflicts else available,
                    members=members,
                    team_conflicts=team_conflicts,
                    is_fully_available=not team_conflicts
                    and available == len(members),
                    team_match=team_match,
                    jobs_today=team_jobs,
                    score=team_score(team_match, avg_rating, team_jobs),
                )
            )
        return rank(results)

    async def _batched_reads(
        self, dates: list[date], window: TimeWindow, exclude_ids: list[str]
    ):
        async with asyncio.TaskGroup() as tg:
            bookings_task = tg.create_task(
                self.store.list_conflicting_bookings(dates, window, exclude_ids)
            )
            periods_task = tg.create_task(self.store.list_unavailability_on_dates(dates))
            memberships_task = tg.create_task(self.store.list_team_memberships())
        bookings = bookings_task.result()
        resolver = TeamMembershipResolver(memberships_task.result())
        logger.info(
            "multi_date_conflicts_fetched",
            extra={"extra": {"bookings": len(bookings), "dates": len(dates)}},
        )
        return bookings, periods_task.result(), resolver

    async def _staff_multi_date(
        self,
        dates: list[date],
        window: TimeWindow,
        exclude_ids: list[str],
        skill_tag: str,
    ):
        roster: list[StaffMember] = await self.store.list_candidates(
            AssignmentMode.INDIVIDUAL
        )
        if not roster:
            return []
        bookings, periods, resolver = await self._batched_reads(
            dates, window, exclude_ids
        )
        detector = ConflictDetector(bookings, resolver, settings=self.settings)
        return aggregate_staff(roster, dates, window, detector, periods, skill_tag)

    async def _teams_multi_date(
        self,
        dates: list[date],
        window: TimeWindow,
        exclude_ids: list[str],
        skill_tag: str,
    ):
        roster: list[Team] = await self.store.list_candidates(AssignmentMode.TEAM)
        if not roster:
            return []
        bookings, periods, resolver = await self._batched_reads(
            dates, window, exclude_ids
        )
        resolver.add_teams(roster)
        detector = ConflictDetector(bookings, resolver, settings=self.settings)
        return aggregate_teams(roster, dates, window, detector, periods, skill_tag)


class AvailabilityQueryRunner:
    """
    Keeps the latest visible response for a caller that re-queries on every
    input change.

    Each submit takes a new generation token; a response whose token is no
    longer current when it resolves is dropped, so a slow old query can never
    overwrite a newer one.
    """

    def __init__(self, engine: AvailabilityEngine) -> None:
        self.engine = engine
        self.latest = AvailabilityResponse()
        self._generation = 0

    @property
    def state(self) -> QueryState:
        return self.latest.state

    async def submit(
        self, request: AvailabilityRequest
    ) -> AvailabilityResponse | None:
        self._generation += 1
        token = self._generation

        if not request.is_complete:
            self.latest = AvailabilityResponse(state=QueryState.IDLE)
            return self.latest

        self.latest = self.latest.model_copy(update={"state": QueryState.LOADING})
        response = await self.engine.check_availability(request)
        if token != self._generation:
            logger.debug(
                "stale_availability_result_discarded",
                extra={"extra": {"token": token, "current": self._generation}},
            )
            return None

        self.latest = response
        return response
