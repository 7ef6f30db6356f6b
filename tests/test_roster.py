import pytest

from gcpv_watcher.models import Racer
from gcpv_watcher.providers import FileRowSource, StaticRowSource, filter_comment_lines
from gcpv_watcher.roster import RosterParser, describe_racers, parse_roster, roster_snapshot


def test_parses_rows_and_skips_comments(tmp_path):
    path = tmp_path / "Lynx.ppl"
    path.write_text("; id,last,first,club\n689,Dixon,Frankie,Hamilton\n# x\n963,White,Gale,Hamilton\n",
                    encoding="ascii")
    roster = RosterParser(FileRowSource(path, line_filter=filter_comment_lines)).parse()
    assert set(roster) == {689, 963}
    assert roster[689] == Racer(689, "Dixon", "Frankie", "Hamilton")
    assert roster[689].display_name == "Dixon, Frankie"


@pytest.mark.parametrize("row", [
    "abc,Dixon,Frankie,Hamilton",
    "689,Dixon,Frankie",
    "689,,Frankie,Hamilton",
    "689,Dixon,,Hamilton",
    "689,Dixon,Frankie,",
])
def test_bad_rows_are_skipped(row):
    assert parse_roster([row, "1,A,B,C"]) == {1: Racer(1, "A", "B", "C")}


def test_later_row_wins():
    roster = parse_roster(["1,A,B,C", "1,X,Y,Z"])
    assert roster[1].last_name == "X"


def test_static_source():
    roster = RosterParser(StaticRowSource(["  7 , Lee , Parker , Milton "])).parse()
    assert roster[7] == Racer(7, "Lee", "Parker", "Milton")


def test_snapshot_is_read_only():
    snap = roster_snapshot({1: Racer(1, "A", "B", "C")})
    with pytest.raises(TypeError):
        snap[2] = Racer(2, "D", "E", "F")


class TestDescribeRacers:
    def test_no_racers(self):
        assert describe_racers({}) == "No racers"

    def test_known_and_unknown_by_lane(self):
        roster = {100: Racer(100, "Dixon", "Frankie", "Hamilton")}
        assert describe_racers({200: 2, 100: 1}, roster) == \
            "Lane 1: 100 Dixon, Frankie (Hamilton), Lane 2: 200"

    def test_without_roster(self):
        assert describe_racers({5: 3}) == "Lane 3: 5"
