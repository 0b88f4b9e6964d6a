import asyncio
import threading

import pytest
import pytest_asyncio

from trsync.sync.engine import PollState
from trsync.sync.store import Store
from trsync.torrent.models import SessionInfo, Torrent, TorrentStatus


@pytest_asyncio.fixture
async def store(notifier, client_factory):
    store = Store(notifier, client_factory, interval=60)
    yield store
    for client in client_factory.created:
        for gate in client.gates.values():
            gate.set()
    await store.close()


@pytest.mark.asyncio
class TestSelectServer:
    """Test cases for switching the active server."""

    async def test_starts_polling(self, store, client_factory, home):
        """Test that selecting a server loads its data right away."""
        store.select_server(home)
        client = client_factory.created[0]
        client.torrents = [Torrent(1, "a", TorrentStatus.DOWNLOADING)]
        client.session = SessionInfo(download_dir="/data")

        await asyncio.sleep(0.05)
        await store.engine.drain()

        assert store.server == home
        assert client.server == home
        assert store.engine.state == PollState.POLLING
        assert [t.id for t in store.cache.torrents] == [1]
        assert store.cache.session_info.download_dir == "/data"

    async def test_switch_discards_old_results(
        self, store, client_factory, home, office
    ):
        """Test that a late answer from the old server is dropped."""
        store.select_server(home)
        old = client_factory.created[0]
        old.torrents = [Torrent(1, "old", TorrentStatus.DOWNLOADING)]
        gate = old.gates["get_torrents"] = threading.Event()
        await asyncio.sleep(0.05)

        store.select_server(office)
        gate.set()
        await asyncio.sleep(0.05)
        await store.engine.drain()

        assert len(client_factory.created) == 2
        assert store.server == office
        assert store.cache.torrents == []

    async def test_select_none(self, store, client_factory, home):
        """Test that clearing the server stops polling."""
        store.select_server(home)
        await asyncio.sleep(0.05)

        store.select_server(None)

        assert store.client is None
        assert store.server is None
        assert store.engine.state == PollState.IDLE
        assert store.cache.torrents == []

    async def test_remove_active_server(self, store, home, office):
        """Test that removing the active server leaves the store idle."""
        store.select_server(home)

        store.remove_server(office)
        assert store.server == home

        store.remove_server(home)
        assert store.server is None

    async def test_close_waits_for_every_session_load(
        self, store, client_factory, home, office
    ):
        """Test that close also waits for the previous server's load."""
        store.select_server(home)
        gate = client_factory.created[0].gates["get_session"] = (
            threading.Event()
        )
        store.select_server(office)
        await asyncio.sleep(0.05)
        assert len(store._session_tasks) == 2

        closing = asyncio.create_task(store.close())
        await asyncio.sleep(0.05)
        assert not closing.done()

        gate.set()
        await closing
        assert store._session_tasks == set()


@pytest.mark.asyncio
class TestStore:
    """Test cases for store-wide behaviour."""

    async def test_independent_instances(self, notifier, client_factory, home):
        """Test that two stores don't share state."""
        first = Store(notifier, client_factory, interval=60)
        second = Store(notifier, client_factory, interval=60)
        try:
            first.select_server(home)
            assert second.server is None
            assert second.cache is not first.cache
        finally:
            await first.close()
            await second.close()

    async def test_mutation_refreshes(self, store, client_factory, home):
        """Test that actions needing a refresh trigger a poll."""
        store.select_server(home)
        client = client_factory.created[0]
        await asyncio.sleep(0.05)
        await store.engine.drain()
        polls = len(client.called("get_torrents"))

        await store.reconciler.start_all()

        assert len(client.called("get_torrents")) == polls + 1

    async def test_update_interval(self, store):
        """Test that the interval is clamped to the minimum."""
        store.update_interval(0.1)

        assert store.engine.interval == 1.0

    async def test_close(self, store, home):
        """Test that closing stops the schedule."""
        store.select_server(home)

        await store.close()

        assert store.engine.state == PollState.IDLE
