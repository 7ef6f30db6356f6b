import sys
from pathlib import Path

from gcpv_watcher.evt_parser import EvtParser
from gcpv_watcher.providers import FileRowSource, filter_comment_lines
from gcpv_watcher.roster import RosterParser, describe_racers

evt_path = Path(sys.argv[1] if len(sys.argv) > 1 else "lynx/Lynx.evt")
encoding = sys.argv[2] if len(sys.argv) > 2 else "ascii"

races = EvtParser(FileRowSource(evt_path, encoding=encoding, line_filter=filter_comment_lines)).parse()

roster = {}
ppl_path = evt_path.with_name("Lynx.ppl")
if ppl_path.is_file():
    roster = RosterParser(FileRowSource(ppl_path, encoding=encoding, line_filter=filter_comment_lines)).parse()

print("=" * 100)
print(f"{evt_path} - {len(races)} race(s), {len(roster)} racer(s) in roster")
print("=" * 100)
print(f"{'Race':<8} {'Laps':<6} {'Title'}")
print("-" * 100)
for r in races:
    print(f"{r.race_number:<8} {str(r.laps):<6} {r.title}")
    print(f"{'':<15} {describe_racers(r.racers, roster)}")
