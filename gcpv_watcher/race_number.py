# gcpv_watcher/race_number.py
"""
Race-number ordering.

Race numbers look like "21A": digits then exactly one uppercase letter. They sort
by the numeric part first ("9A" < "10A"), then by the letter.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .errors import FormatError
from .models import RACE_NUMBER_RE, Race


def parse_race_number(race_number: str) -> Tuple[int, str]:
    m = RACE_NUMBER_RE.fullmatch(race_number or "")
    if not m:
        raise FormatError(f"Invalid race number format: {race_number!r}")
    return int(m.group(1)), m.group(2)


def is_race_number(text: str) -> bool:
    return bool(RACE_NUMBER_RE.fullmatch(text or ""))


def compare_race_numbers(a: Optional[str], b: Optional[str]) -> int:
    """cmp-style comparison; None sorts before any race number."""
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1

    ka, kb = parse_race_number(a), parse_race_number(b)
    if ka[0] != kb[0]:
        return -1 if ka[0] < kb[0] else 1
    if ka[1] != kb[1]:
        return -1 if ka[1] < kb[1] else 1
    return 0


def compare_races(a: Optional[Race], b: Optional[Race]) -> int:
    return compare_race_numbers(a.race_number if a is not None else None,
                                b.race_number if b is not None else None)


race_number_key = parse_race_number


def sort_race_numbers(numbers: Iterable[str]) -> List[str]:
    return sorted(numbers, key=race_number_key)


def sort_races(races: Iterable[Race]) -> List[Race]:
    """Stable sort by race number."""
    return sorted(races, key=lambda r: race_number_key(r.race_number))
