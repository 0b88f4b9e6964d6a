# trsync - Remote control client for the Transmission BitTorrent daemon
# Copyright (C) 2025  Anton Larionov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

import math
from functools import cache


@cache
def print_size(num: int, suffix: str = "B", size_bytes: int = 1000) -> str:
    """Format a number of bytes as a human-readable size string."""
    r_unit = None
    r_num = None

    for unit in ("", "k", "M", "G", "T", "P", "E", "Z", "Y"):
        if abs(num) < size_bytes:
            r_unit = unit
            r_num = num
            break
        num /= size_bytes

    r_size = f"{r_num:.2f}".rstrip("0").rstrip(".")

    return f"{r_size} {r_unit}{suffix}"


@cache
def print_speed(num: int, suffix: str = "B", speed_bytes: int = 1000) -> str:
    """Format a rate in bytes per second as a human-readable string."""
    r_unit = None
    r_num = None

    for unit, digits in (
        ("", 0),
        ("K", 0),
        ("M", 2),
        ("G", 2),
        ("T", 2),
        ("P", 2),
    ):
        if abs(num) < speed_bytes:
            r_unit = unit
            r_num = round(num, digits)
            break
        num /= speed_bytes

    r_size = f"{r_num:.2f}".rstrip("0").rstrip(".")

    return f"{r_size} {r_unit}{suffix}/s"


@cache
def print_ratio(ratio: float) -> str:
    # Transmission reports -1 (not available) and -2 (infinite)
    if math.isinf(ratio) or ratio == -2:
        return "∞"
    if ratio < 0:
        return "-"
    return f"{ratio:.2f}"


@cache
def print_eta(seconds: int) -> str:
    """Format a torrent ETA; negative values mean unknown or not applicable."""
    if seconds < 0:
        return "-"

    intervals = (
        ("d", 86400),
        ("h", 3600),
        ("m", 60),
        ("s", 1),
    )
    result = []

    for key, count in intervals:
        value = seconds // count
        if value:
            seconds -= value * count
            result.append(f"{value}{key}")

    return " ".join(result[:2]) if result else "0s"
