"""In-memory state of the active server, written from one event loop only."""

from collections.abc import Callable
from dataclasses import dataclass

from ..torrent.models import (
    Server,
    SessionInfo,
    SessionStats,
    Torrent,
    TorrentFiles,
)
from ..util.log import get_logger, log_time

logger = get_logger()


@dataclass(frozen=True)
class DispatchTag:
    """Identity of the cache state a request was dispatched against."""

    server: Server | None
    generation: int
    seq: int


class SessionCache:
    """Torrent list, session data and lazily loaded file lists.

    The cache has a single writer: the owner's event loop. Results coming
    back from worker threads are applied only after being marshalled to
    that loop, so no locking is done here.

    Every server switch bumps ``generation``; results tagged with an older
    generation are stale and must not be applied. Mutations stamp the ids
    they touch with a sequence number so that a poll dispatched before the
    mutation can't overwrite its optimistic state. File lists carry their
    own stamps, cleared only by a file list load.
    """

    def __init__(self) -> None:
        self.torrents: list[Torrent] = []
        self.session_stats: SessionStats | None = None
        self.session_info: SessionInfo | None = None
        self.files: dict[int, TorrentFiles] = {}
        self.active_server: Server | None = None
        self.generation = 0

        self._seq = 0
        self._mutation_seq: dict[int, int] = {}
        self._file_mutation_seq: dict[int, int] = {}
        self._listeners: list[Callable[["SessionCache"], None]] = []

    # ========================================================================
    # Change Notification
    # ========================================================================

    def subscribe(self, listener: Callable[["SessionCache"], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[["SessionCache"], None]) -> None:
        self._listeners.remove(listener)

    def changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ========================================================================
    # Server & Dispatch Tagging
    # ========================================================================

    @log_time
    def set_server(self, server: Server | None) -> None:
        """Switch the active server and forget the previous one."""
        self.active_server = server
        self.clear()

    def clear(self) -> None:
        self.generation += 1
        self.torrents = []
        self.session_stats = None
        self.session_info = None
        self.files = {}
        self._mutation_seq = {}
        self._file_mutation_seq = {}
        self.changed()

    def next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def tag(self) -> DispatchTag:
        return DispatchTag(
            self.active_server, self.generation, self.next_seq()
        )

    def is_current(self, tag: DispatchTag) -> bool:
        return (
            tag.generation == self.generation
            and tag.server == self.active_server
        )

    def stamp(self, ids: list[int]) -> int:
        """Record that the given torrents were just mutated locally."""
        seq = self.next_seq()
        for torrent_id in ids:
            self._mutation_seq[torrent_id] = seq
        return seq

    def stamp_files(self, torrent_id: int) -> int:
        """Record that the file list of a torrent was just mutated locally."""
        seq = self.next_seq()
        self._file_mutation_seq[torrent_id] = seq
        return seq

    # ========================================================================
    # Lookups
    # ========================================================================

    def torrent(self, torrent_id: int) -> Torrent | None:
        for t in self.torrents:
            if t.id == torrent_id:
                return t
        return None

    def index_of(self, torrent_id: int) -> int | None:
        for i, t in enumerate(self.torrents):
            if t.id == torrent_id:
                return i
        return None

    def by_id(self) -> dict[int, Torrent]:
        return {t.id: t for t in self.torrents}

    # ========================================================================
    # Poll Results
    # ========================================================================

    @log_time
    def apply_torrents(
        self, torrents: list[Torrent], tag: DispatchTag
    ) -> bool:
        """Replace the torrent list with a polled snapshot.

        Returns:
            False if the snapshot was stale and discarded
        """
        if not self.is_current(tag):
            logger.debug(
                f"Discarding torrent list from {tag.server} "
                f"(generation {tag.generation})"
            )
            return False

        local = self.by_id()
        merged: list[Torrent] = []
        seen: set[int] = set()

        for t in torrents:
            if t.id in seen:
                continue
            seen.add(t.id)

            if self._mutation_seq.get(t.id, -1) > tag.seq:
                # mutated after this poll was sent: keep local state,
                # and don't bring back a torrent removed locally
                if t.id in local:
                    merged.append(local[t.id])
            else:
                merged.append(t)

        self.torrents = merged
        self._mutation_seq = {
            k: v for k, v in self._mutation_seq.items() if v > tag.seq
        }

        # file lists of removed torrents are useless now
        self.files = {k: v for k, v in self.files.items() if k in seen}

        self.changed()
        return True

    @log_time
    def apply_session_stats(
        self, stats: SessionStats, tag: DispatchTag
    ) -> bool:
        if not self.is_current(tag):
            return False
        self.session_stats = stats
        self.changed()
        return True

    def apply_session_info(self, info: SessionInfo, tag: DispatchTag) -> bool:
        if not self.is_current(tag):
            return False
        self.session_info = info
        self.changed()
        return True

    def apply_files(
        self, torrent_id: int, files: TorrentFiles, tag: DispatchTag
    ) -> bool:
        if not self.is_current(tag):
            return False
        if (
            torrent_id in self.files
            and self._file_mutation_seq.get(torrent_id, -1) > tag.seq
        ):
            logger.debug(f"Keeping locally changed files of {torrent_id}")
            return False
        self.files[torrent_id] = files
        self._file_mutation_seq.pop(torrent_id, None)
        self.changed()
        return True

    # ========================================================================
    # Local Writes
    # ========================================================================

    def replace_torrent(self, torrent: Torrent) -> None:
        """Replace the cached record with the same id, keeping its position."""
        index = self.index_of(torrent.id)
        if index is None:
            raise KeyError(torrent.id)
        self.torrents[index] = torrent

    def remove_torrent(self, torrent_id: int) -> tuple[int, Torrent] | None:
        index = self.index_of(torrent_id)
        if index is None:
            return None
        return index, self.torrents.pop(index)

    def insert_torrent(self, index: int, torrent: Torrent) -> None:
        if self.index_of(torrent.id) is not None:
            return
        self.torrents.insert(min(index, len(self.torrents)), torrent)
