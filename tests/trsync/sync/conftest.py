import threading

import pytest

from trsync.sync.cache import SessionCache
from trsync.sync.engine import SyncEngine
from trsync.sync.notify import RecordingNotifier
from trsync.sync.reconciler import MutationReconciler
from trsync.torrent.models import (
    ClientError,
    RenameResult,
    Server,
    SessionInfo,
    SessionStats,
    TorrentFiles,
    TransmissionResponse,
)

SUCCESS = TransmissionResponse.SUCCESS

HOME = Server("home", "nas.local", 9091)
OFFICE = Server("office", "10.0.0.2", 9091, username="me", password="pw")


def _simple(name):
    def method(self, *args):
        return self._respond(name, *args)

    method.__name__ = name
    return method


class FakeClient:
    """In-memory stand-in for TransmissionClient.

    ``responses`` overrides the outcome per method name and ``gates``
    holds a call until the test sets the event.
    """

    def __init__(self, server: Server | None = None):
        self.server = server
        self.torrents = []
        self.stats = SessionStats(0, 0, 0, 0, 0)
        self.session = SessionInfo()
        self.files: dict[int, TorrentFiles] = {}
        self.responses: dict[str, TransmissionResponse] = {}
        self.gates: dict[str, threading.Event] = {}
        self.calls: list[tuple] = []
        self.unreadable: set[str] = set()
        self._next_id = 100

    def _respond(self, name, *args):
        self.calls.append((name, *args))
        gate = self.gates.get(name)
        if gate is not None:
            gate.wait(timeout=5)
        return self.responses.get(name, SUCCESS)

    def called(self, name) -> list[tuple]:
        return [c[1:] for c in self.calls if c[0] == name]

    def get_torrents(self):
        snapshot = list(self.torrents)
        response = self._respond("get_torrents")
        return response, snapshot if response == SUCCESS else None

    def get_session_stats(self):
        snapshot = self.stats
        response = self._respond("get_session_stats")
        return response, snapshot if response == SUCCESS else None

    def get_session(self):
        response = self._respond("get_session")
        return response, self.session if response == SUCCESS else None

    def get_files(self, torrent_id):
        files = self.files.get(torrent_id, TorrentFiles())
        response = self._respond("get_files", torrent_id)
        return response, files if response == SUCCESS else None

    def add_torrent(self, value, download_dir=None):
        if value in self.unreadable:
            raise ClientError(f"Torrent file not readable: {value}")
        response = self._respond("add_torrent", value, download_dir)
        if response != SUCCESS:
            return response, None
        self._next_id += 1
        return response, self._next_id

    def rename_path(self, torrent_id, path, name):
        response = self._respond("rename_path", torrent_id, path, name)
        if response != SUCCESS:
            return response, None
        return response, RenameResult(torrent_id, path, name)

    set_session = _simple("set_session")
    remove_torrents = _simple("remove_torrents")
    start = _simple("start")
    start_now = _simple("start_now")
    stop = _simple("stop")
    start_all = _simple("start_all")
    stop_all = _simple("stop_all")
    verify = _simple("verify")
    reannounce = _simple("reannounce")
    queue_move = _simple("queue_move")
    set_torrents = _simple("set_torrents")
    set_labels = _simple("set_labels")
    set_bandwidth_priority = _simple("set_bandwidth_priority")
    set_files_wanted = _simple("set_files_wanted")
    set_files_priority = _simple("set_files_priority")


@pytest.fixture
def home():
    return HOME


@pytest.fixture
def office():
    return OFFICE


@pytest.fixture
def fake_client():
    client = FakeClient(HOME)
    yield client
    # never leave worker threads blocked on a gate
    for gate in client.gates.values():
        gate.set()


@pytest.fixture
def client_factory():
    """Factory recording every client it creates, for Store tests."""
    created: list[FakeClient] = []

    def factory(server: Server) -> FakeClient:
        client = FakeClient(server)
        created.append(client)
        return client

    factory.created = created
    yield factory
    for client in created:
        for gate in client.gates.values():
            gate.set()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cache():
    cache = SessionCache()
    cache.set_server(HOME)
    return cache


@pytest.fixture
def engine(cache, fake_client, notifier):
    return SyncEngine(cache, lambda: fake_client, notifier)


@pytest.fixture
def refreshes():
    return []


@pytest.fixture
def reconciler(cache, fake_client, notifier, refreshes):
    async def refresh():
        refreshes.append(True)

    return MutationReconciler(
        cache, lambda: fake_client, notifier, refresh=refresh
    )
