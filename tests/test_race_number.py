import itertools

import pytest

from gcpv_watcher.errors import FormatError
from gcpv_watcher.race_number import (
    compare_race_numbers,
    compare_races,
    is_race_number,
    parse_race_number,
    sort_race_numbers,
    sort_races,
)

from conftest import race


def test_sort_is_numeric_then_letter():
    assert sort_race_numbers(["100A", "3B", "3A", "22A", "10A"]) == ["3A", "3B", "10A", "22A", "100A"]


def test_nine_sorts_before_ten():
    assert compare_race_numbers("9A", "10A") < 0
    assert compare_race_numbers("10A", "9A") > 0


def test_equal_numbers_compare_equal():
    assert compare_race_numbers("21A", "21A") == 0


def test_letter_breaks_ties():
    assert compare_race_numbers("5B", "5A") > 0


def test_parse_splits_number_and_letter():
    assert parse_race_number("21A") == (21, "A")


@pytest.mark.parametrize("bad", ["", "A21", "21", "21a", "21AB", " 21A", "２１A"])
def test_invalid_race_numbers_raise(bad):
    assert not is_race_number(bad)
    with pytest.raises(FormatError):
        parse_race_number(bad)
    with pytest.raises(FormatError):
        compare_race_numbers(bad, "1A")


def test_none_sorts_first():
    assert compare_race_numbers(None, None) == 0
    assert compare_race_numbers(None, "1A") < 0
    assert compare_race_numbers("1A", None) > 0


def test_compare_races_uses_race_numbers():
    assert compare_races(race("2A"), race("10A")) < 0
    assert compare_races(None, race("1A")) < 0


def test_sort_races_is_stable_for_equal_numbers():
    first, second = race("3A", "first"), race("3A", "second")
    out = sort_races([race("10A"), first, second])
    assert [r.title for r in out[:2]] == ["first", "second"]
    assert out[-1].race_number == "10A"


NUMBERS = ["1A", "1B", "2A", "9A", "9Z", "10A", "11C", "99B", "100A", "101A"]


def sign(n):
    return (n > 0) - (n < 0)


@pytest.mark.parametrize("a, b", list(itertools.product(NUMBERS, repeat=2)))
def test_compare_is_antisymmetric(a, b):
    assert sign(compare_race_numbers(a, b)) == -sign(compare_race_numbers(b, a))
    assert (compare_race_numbers(a, b) == 0) == (a == b)


@pytest.mark.parametrize("a, b, c", list(itertools.permutations(NUMBERS, 3)))
def test_compare_is_transitive(a, b, c):
    if compare_race_numbers(a, b) < 0 and compare_race_numbers(b, c) < 0:
        assert compare_race_numbers(a, c) < 0


def test_listed_numbers_are_already_in_order():
    assert sort_race_numbers(reversed(NUMBERS)) == NUMBERS
