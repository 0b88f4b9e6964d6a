from collections import Counter
from collections.abc import Iterable
from typing import NamedTuple

from ..torrent.models import Torrent, TorrentStatus, TorrentStatusCalc


class SortOrder(NamedTuple):
    id: str
    name: str
    key_asc: str
    key_desc: str
    sort_func: None


def _eta_group(t: Torrent) -> int:
    # torrents without a meaningful eta go after the ones with a real eta
    match t.status_calc:
        case TorrentStatusCalc.COMPLETE:
            return 5
        case TorrentStatusCalc.SEEDING:
            return 4
        case TorrentStatusCalc.PAUSED:
            return 3
        case TorrentStatusCalc.STALLED:
            return 2
    if t.eta <= 0:
        return 1
    return 0


sort_orders = [
    SortOrder("name", "Name", "n", "N", lambda t: t.name.lower()),
    SortOrder("age", "Date Added", "a", "A", lambda t: t.added_date),
    SortOrder("status", "Status", "t", "T", lambda t: t.status_calc.value),
    SortOrder(
        "eta", "Remaining Time", "e", "E", lambda t: (_eta_group(t), t.eta)
    ),
]


def get_sort_order_by_id(sort_id: str) -> SortOrder:
    """Get sort order by ID.

    Raises:
        ValueError: If sort_id is not found
    """
    for sort_order in sort_orders:
        if sort_order.id == sort_id:
            return sort_order
    raise ValueError(f"Unknown sort order ID: {sort_id}")


def sort_torrents(
    torrents: Iterable[Torrent], order: SortOrder, ascending: bool = True
) -> list[Torrent]:
    """Sort torrents; ties keep alphabetical order by name."""
    by_name = sorted(torrents, key=lambda t: t.name.lower())
    if order.id == "name":
        return by_name if ascending else by_name[::-1]
    return sorted(by_name, key=order.sort_func, reverse=not ascending)


def should_disable_pause(selection: list[Torrent]) -> bool:
    return not selection or (
        len(selection) == 1 and selection[0].status == TorrentStatus.STOPPED
    )


def should_disable_resume(selection: list[Torrent]) -> bool:
    return not selection or (
        len(selection) == 1 and selection[0].status != TorrentStatus.STOPPED
    )


def count_by_status(
    torrents: Iterable[Torrent],
) -> dict[TorrentStatusCalc, int]:
    """Number of torrents per display status, for the status summary."""
    return dict(Counter(t.status_calc for t in torrents))
