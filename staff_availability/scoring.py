"""
Composite candidate scores.

Single date (0-100):
    skill (0-80 rescaled to 0-70) + performance (0-15) + workload (0-15)

Multi date (0-100):
    individual: availability 50 + rating 30 + exact skill 20
    team:       availability 60 + skill coverage 40

Each path uses its own formula; they are never mixed within one response.
"""

from collections.abc import Sequence
from statistics import fmean
from typing import Protocol, TypeVar

SKILL_SCALE = 0.875  # 0-80 -> 0-70
PERFORMANCE_WEIGHT = 15
WORKLOAD_CEILING = 15
STAFF_JOB_PENALTY = 3
TEAM_JOB_PENALTY = 2
MAX_RATING = 5


class _Scored(Protocol):
    score: float


S = TypeVar("S", bound=_Scored)


def performance_score(avg_rating: float) -> float:
    return (avg_rating / MAX_RATING) * PERFORMANCE_WEIGHT


def workload_score(jobs: int, penalty: int) -> float:
    return max(0, WORKLOAD_CEILING - jobs * penalty)


def staff_score(skill: float, avg_rating: float, jobs_today: int) -> float:
    score = (
        skill * SKILL_SCALE
        + performance_score(avg_rating)
        + workload_score(jobs_today, STAFF_JOB_PENALTY)
    )
    return round(score, 2)


def team_average_rating(ratings: Sequence[float]) -> float:
    # unrated members do not drag the team down
    rated = [r for r in ratings if r > 0]
    return fmean(rated) if rated else 0.0


def team_score(team_match: float, avg_rating: float, team_jobs_today: int) -> float:
    score = (
        team_match * SKILL_SCALE
        + performance_score(avg_rating)
        + workload_score(team_jobs_today, TEAM_JOB_PENALTY)
    )
    return round(score, 2)


def multi_date_staff_score(
    available_dates: int, total_dates: int, avg_rating: float, skill: float
) -> float:
    if total_dates <= 0:
        return 0.0
    score = (
        (available_dates / total_dates) * 50
        + (avg_rating / MAX_RATING) * 30
        + (skill / 100) * 20
    )
    return round(score, 2)


def multi_date_team_score(
    available_dates: int, total_dates: int, coverage: float
) -> float:
    if total_dates <= 0:
        return 0.0
    score = (available_dates / total_dates) * 60 + (coverage / 100) * 40
    return round(score, 2)


def rank(results: list[S]) -> list[S]:
    """Highest score first; ties keep roster order (sorted() is stable)."""
    return sorted(results, key=lambda r: r.score, reverse=True)
