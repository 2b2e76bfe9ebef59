"""
Skill matching between declared skill tags and a required service type.

Single-date scores are tiered (0-80). The multi-date path uses the coarser
exact-match / coverage percentages (0-100).
"""

from collections.abc import Iterable, Sequence

from staff_availability.models import StaffMember

EXACT_MATCH = 80
PARTIAL_MATCH = 50

TEAM_DEEP_MATCH = 80
TEAM_SINGLE_MATCH = 60
TEAM_PARTIAL_MATCH = 40
TEAM_OTHER_SKILLS = 20


def _normalize(skills: Iterable[str] | None) -> list[str]:
    return [s.strip().lower() for s in (skills or []) if s and s.strip()]


def _is_partial(skill: str, required: str) -> bool:
    return skill in required or required in skill


def skill_match(skills: Iterable[str] | None, required: str) -> int:
    normalized = _normalize(skills)
    required = required.strip().lower()
    if not normalized or not required:
        return 0
    if required in normalized:
        return EXACT_MATCH
    if any(_is_partial(skill, required) for skill in normalized):
        return PARTIAL_MATCH
    return 0


def team_skill_match(members: Sequence[StaffMember], required: str) -> int:
    """
    Team fit rewards depth of coverage: two exact matches beat one.

    Exact matches are counted per member, so a member listing the same tag
    twice still counts once.
    """
    required = required.strip().lower()
    member_skills = [_normalize(m.skills) for m in members]
    if not any(member_skills):
        return 0
    if not required:
        return TEAM_OTHER_SKILLS

    exact = sum(1 for skills in member_skills if required in skills)
    if exact >= 2:
        return TEAM_DEEP_MATCH
    if exact == 1:
        return TEAM_SINGLE_MATCH
    if any(
        _is_partial(skill, required) for skills in member_skills for skill in skills
    ):
        return TEAM_PARTIAL_MATCH
    return TEAM_OTHER_SKILLS


def exact_skill_match(skills: Iterable[str] | None, required: str) -> int:
    required = required.strip().lower()
    if required and required in _normalize(skills):
        return 100
    return 0


def team_coverage(members: Sequence[StaffMember], required: str) -> float:
    """Percentage of members holding the required skill exactly."""
    if not members:
        return 0.0
    covered = sum(1 for m in members if exact_skill_match(m.skills, required))
    return round(covered / len(members) * 100, 2)
