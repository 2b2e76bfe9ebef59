from datetime import time
from typing import Protocol, TypeVar


class _Comparable(Protocol):
    def __lt__(self, other, /) -> bool: ...
    def __gt__(self, other, /) -> bool: ...


T = TypeVar("T", bound=_Comparable)


def overlaps(a_start: T, a_end: T, b_start: T, b_end: T) -> bool:
    """
    Strict half-open overlap test.

    Windows that only share a boundary (10-12 and 12-14) do not overlap.
    """
    return a_start < b_end and a_end > b_start


def parse_time(value: time | str) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid time of day: {value!r}") from exc
