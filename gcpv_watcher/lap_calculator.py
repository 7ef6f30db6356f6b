# gcpv_watcher/lap_calculator.py
"""
Lap count from an export's track-params text, e.g. "1500 111M" -> 13.5.

Short-track ovals are 111 m when the text says so, otherwise 100 m is assumed.
The first known distance (longest first) found anywhere in the text wins.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal

from .errors import FormatError

DEFAULT_TRACK_LENGTH = 100
SHORT_TRACK_LENGTH = 111

# Longest first so "1500" is not read as "500" or "50".
KNOWN_DISTANCES = (5000, 3000, 2000, 1500, 1000, 800, 777, 500, 400, 333, 300, 200, 100, 50)

_ONE_PLACE = Decimal("0.1")


def laps_for_distance(distance: int, track_length: int) -> Decimal:
    if track_length == 0:
        raise FormatError("Track length cannot be zero.")
    if distance < 0:
        raise FormatError("Distance cannot be negative.")
    if track_length < 0:
        raise FormatError("Track length cannot be negative.")
    return (Decimal(distance) / Decimal(track_length)).quantize(_ONE_PLACE, rounding=ROUND_HALF_EVEN)


def calculate_laps(track_params: str) -> Decimal:
    if not track_params or not track_params.strip():
        return Decimal(0)

    track_length = SHORT_TRACK_LENGTH if "111m" in track_params.lower() else DEFAULT_TRACK_LENGTH

    for distance in KNOWN_DISTANCES:
        if str(distance) in track_params:
            return laps_for_distance(distance, track_length)
    return Decimal(0)
