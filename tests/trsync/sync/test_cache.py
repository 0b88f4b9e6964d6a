from dataclasses import replace

import pytest

from trsync.sync.cache import SessionCache
from trsync.torrent.models import (
    FilePriority,
    Server,
    SessionStats,
    Torrent,
    TorrentFile,
    TorrentFiles,
    TorrentFileStats,
    TorrentStatus,
)


def torrent(torrent_id: int, name: str | None = None, **kwargs) -> Torrent:
    return Torrent(
        id=torrent_id,
        name=name or f"torrent-{torrent_id}",
        status=kwargs.pop("status", TorrentStatus.DOWNLOADING),
        **kwargs,
    )


def one_file(name: str = "a") -> TorrentFiles:
    return TorrentFiles(
        (TorrentFile(name, 10, 0),),
        (TorrentFileStats(0, True, FilePriority.NORMAL),),
    )


class TestServerSwitch:
    """Test cases for server selection and dispatch tagging."""

    def test_set_server_clears_state(self, cache, office):
        """Test that switching servers drops everything cached."""
        cache.apply_torrents([torrent(1)], cache.tag())
        cache.apply_session_stats(SessionStats(1, 0, 1, 0, 0), cache.tag())
        generation = cache.generation

        cache.set_server(office)

        assert cache.active_server == office
        assert cache.torrents == []
        assert cache.session_stats is None
        assert cache.files == {}
        assert cache.generation == generation + 1

    def test_stale_tag_rejected(self, cache, office):
        """Test that results dispatched for another server are discarded."""
        tag = cache.tag()
        cache.set_server(office)

        assert not cache.is_current(tag)
        assert cache.apply_torrents([torrent(1)], tag) is False
        stats = SessionStats(1, 0, 1, 0, 0)
        assert cache.apply_session_stats(stats, tag) is False
        assert cache.torrents == []
        assert cache.session_stats is None

    def test_reselecting_same_server_is_new_generation(self, cache, home):
        """Test that selecting the same server again also discards."""
        tag = cache.tag()
        cache.set_server(home)

        assert not cache.is_current(tag)

    def test_sequence_increases(self, cache):
        """Test that dispatch sequence numbers are monotonic."""
        first = cache.tag()
        second = cache.tag()
        stamp = cache.stamp([1])

        assert first.seq < second.seq < stamp


class TestApplyTorrents:
    """Test cases for merging polled torrent lists."""

    def test_replaces_list(self, cache):
        """Test that a snapshot replaces the list and keeps its order."""
        cache.apply_torrents([torrent(1), torrent(2)], cache.tag())
        cache.apply_torrents([torrent(3), torrent(1)], cache.tag())

        assert [t.id for t in cache.torrents] == [3, 1]

    def test_idempotent(self, cache):
        """Test that applying the same snapshot twice changes nothing."""
        snapshot = [torrent(1), torrent(2, percent_done=0.5)]

        cache.apply_torrents(snapshot, cache.tag())
        first = list(cache.torrents)
        cache.apply_torrents(snapshot, cache.tag())

        assert cache.torrents == first

    def test_deduplicates_ids(self, cache):
        """Test that duplicate ids keep the first record only."""
        cache.apply_torrents(
            [torrent(1, "first"), torrent(1, "second")], cache.tag()
        )

        assert [t.name for t in cache.torrents] == ["first"]

    def test_prunes_files_of_removed_torrents(self, cache):
        """Test that file lists of vanished torrents are dropped."""
        cache.apply_torrents([torrent(1), torrent(2)], cache.tag())
        cache.files[1] = one_file()
        cache.files[2] = one_file()

        cache.apply_torrents([torrent(2)], cache.tag())

        assert list(cache.files) == [2]

    def test_older_poll_keeps_local_mutation(self, cache):
        """Test that a poll sent before a mutation can't undo it."""
        cache.apply_torrents([torrent(1, "old")], cache.tag())
        poll = cache.tag()

        cache.replace_torrent(replace(cache.torrent(1), name="new"))
        cache.stamp([1])

        cache.apply_torrents([torrent(1, "old"), torrent(2)], poll)

        assert cache.torrent(1).name == "new"
        assert cache.torrent(2) is not None

    def test_newer_poll_overrides_local_mutation(self, cache):
        """Test that a poll sent after a mutation is authoritative."""
        cache.apply_torrents([torrent(1, "old")], cache.tag())
        cache.replace_torrent(replace(cache.torrent(1), name="new"))
        cache.stamp([1])

        cache.apply_torrents([torrent(1, "server")], cache.tag())

        assert cache.torrent(1).name == "server"

    def test_older_poll_does_not_resurrect_removed(self, cache):
        """Test that a locally removed torrent stays removed."""
        cache.apply_torrents([torrent(1), torrent(2)], cache.tag())
        poll = cache.tag()

        cache.remove_torrent(1)
        cache.stamp([1])

        cache.apply_torrents([torrent(1), torrent(2)], poll)

        assert [t.id for t in cache.torrents] == [2]

    def test_stamps_pruned_after_newer_poll(self, cache):
        """Test that stamps older than an applied poll no longer apply."""
        cache.apply_torrents([torrent(1, "old")], cache.tag())
        cache.stamp([1])
        cache.apply_torrents([torrent(1, "server")], cache.tag())

        assert cache._mutation_seq == {}


class TestApplyFiles:
    """Test cases for lazily loaded file lists."""

    def test_apply(self, cache):
        """Test that a loaded file list is stored per torrent."""
        assert cache.apply_files(1, one_file(), cache.tag())
        assert len(cache.files[1]) == 1

    def test_stale(self, cache, office):
        """Test that files of another server are discarded."""
        tag = cache.tag()
        cache.set_server(office)

        assert cache.apply_files(1, one_file(), tag) is False
        assert cache.files == {}

    def test_older_load_keeps_local_mutation(self, cache):
        """Test that a load sent before a file mutation can't undo it."""
        cache.files[1] = one_file("local")
        load = cache.tag()
        cache.stamp_files(1)

        assert cache.apply_files(1, one_file("server"), load) is False
        assert cache.files[1].files[0].name == "local"

    def test_torrent_poll_keeps_file_stamp(self, cache):
        """Test that a newer torrent poll doesn't unguard a file mutation."""
        cache.apply_torrents([torrent(1)], cache.tag())
        cache.files[1] = one_file()
        load = cache.tag()
        stats = cache.files[1].file_stats[0]
        cache.files[1] = TorrentFiles(
            cache.files[1].files, (replace(stats, wanted=False),)
        )
        cache.stamp_files(1)

        assert cache.apply_torrents([torrent(1)], cache.tag())
        assert cache.apply_files(1, one_file(), load) is False
        assert cache.files[1].file_stats[0].wanted is False

    def test_newer_load_clears_file_stamp(self, cache):
        """Test that a load sent after a file mutation replaces the list."""
        cache.files[1] = one_file("local")
        cache.stamp_files(1)

        assert cache.apply_files(1, one_file("server"), cache.tag())
        assert cache.files[1].files[0].name == "server"
        assert cache._file_mutation_seq == {}


class TestLocalWrites:
    """Test cases for optimistic write helpers."""

    def test_replace_missing(self, cache):
        """Test that replacing an unknown torrent is an error."""
        with pytest.raises(KeyError):
            cache.replace_torrent(torrent(9))

    def test_remove_and_insert(self, cache):
        """Test that removal reports the position used to restore."""
        cache.apply_torrents([torrent(1), torrent(2), torrent(3)], cache.tag())

        index, removed = cache.remove_torrent(2)
        assert index == 1
        assert [t.id for t in cache.torrents] == [1, 3]

        cache.insert_torrent(index, removed)
        assert [t.id for t in cache.torrents] == [1, 2, 3]

    def test_remove_missing(self, cache):
        """Test that removing an unknown torrent is a no-op."""
        assert cache.remove_torrent(9) is None

    def test_insert_existing_is_ignored(self, cache):
        """Test that a torrent that came back is not duplicated."""
        cache.apply_torrents([torrent(1)], cache.tag())
        cache.insert_torrent(0, torrent(1))

        assert len(cache.torrents) == 1


class TestListeners:
    """Test cases for change notification."""

    def test_notified_on_change(self, cache):
        """Test that listeners run after each applied change."""
        seen = []
        cache.subscribe(lambda c: seen.append(len(c.torrents)))

        cache.apply_torrents([torrent(1)], cache.tag())
        cache.set_server(Server("x", "h", 1))

        assert seen == [1, 0]

    def test_not_notified_when_stale(self, cache, office):
        """Test that discarded results don't notify."""
        seen = []
        tag = cache.tag()
        cache.set_server(office)
        cache.subscribe(lambda c: seen.append(True))

        cache.apply_torrents([torrent(1)], tag)

        assert seen == []

    def test_unsubscribe(self):
        """Test that unsubscribed listeners are not called."""
        cache = SessionCache()
        seen = []

        def listener(c):
            seen.append(True)

        cache.subscribe(listener)
        cache.unsubscribe(listener)
        cache.clear()

        assert seen == []
