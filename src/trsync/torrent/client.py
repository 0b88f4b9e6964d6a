"""Transmission RPC client with typed results."""

import os
import threading
from collections.abc import Callable
from typing import Any

from transmission_rpc import Client as TransmissionRPCClient
from transmission_rpc.error import (
    TransmissionAuthError,
    TransmissionConnectError,
    TransmissionError,
    TransmissionTimeoutError,
)

from ..util.log import get_logger, log_time
from ..util.misc import is_torrent_link
from .changeset import SessionChangeset, TorrentChangeset
from .fields import (
    TORRENT_FILES_PROJECTION,
    TORRENT_LIST_PROJECTION,
    parse_session_info,
    parse_session_stats,
    parse_torrent,
    parse_torrent_files,
)
from .models import (
    ClientError,
    FilePriority,
    QueueDirection,
    RenameResult,
    Server,
    SessionInfo,
    SessionStats,
    Torrent,
    TorrentFiles,
    TransmissionResponse,
)

logger = get_logger()

_PARSE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)

# change_torrent argument for each file priority
_FILE_PRIORITY_ARGS: dict[FilePriority, str] = {
    FilePriority.LOW: "priority_low",
    FilePriority.NORMAL: "priority_normal",
    FilePriority.HIGH: "priority_high",
}


class TransmissionClient:
    """Typed wrapper over ``transmission_rpc.Client``.

    Every method is blocking and returns a ``TransmissionResponse``
    (together with the parsed payload where the call returns data);
    library errors never escape as exceptions:

    - ``TransmissionAuthError`` -> ``unauthorized``
    - ``TransmissionConnectError``/``TransmissionTimeoutError`` -> ``failed``
    - any other ``TransmissionError`` (rejected request) -> ``configError``
    - a payload that can't be decoded -> ``failed``

    The library connects in its constructor, so the underlying client is
    created on first use and again after a failed attempt.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, server: Server, timeout: float = DEFAULT_TIMEOUT):
        self.server = server
        self.timeout = timeout
        self._client: TransmissionRPCClient | None = None
        self._lock = threading.Lock()

    # ========================================================================
    # Session & Global Settings
    # ========================================================================

    @log_time
    def get_session(self) -> tuple[TransmissionResponse, SessionInfo | None]:
        return self._request(
            "session-get",
            lambda c: c.get_session(),
            lambda s: parse_session_info(s.fields),
        )

    @log_time
    def set_session(self, changeset: SessionChangeset) -> TransmissionResponse:
        return self._command(
            "session-set", lambda c: c.set_session(**changeset.changed())
        )

    @log_time
    def get_session_stats(
        self,
    ) -> tuple[TransmissionResponse, SessionStats | None]:
        return self._request(
            "session-stats",
            lambda c: c.session_stats(),
            lambda s: parse_session_stats(s.fields),
        )

    @log_time
    def free_space(self, path: str) -> tuple[TransmissionResponse, int | None]:
        return self._request("free-space", lambda c: c.free_space(path), int)

    @log_time
    def port_test(self) -> tuple[TransmissionResponse, bool | None]:
        return self._request("port-test", lambda c: c.port_test(), bool)

    @log_time
    def blocklist_update(self) -> tuple[TransmissionResponse, int | None]:
        return self._request(
            "blocklist-update", lambda c: c.blocklist_update(), int
        )

    # ========================================================================
    # Torrent Retrieval
    # ========================================================================

    @log_time
    def get_torrents(
        self,
    ) -> tuple[TransmissionResponse, list[Torrent] | None]:
        return self._request(
            "torrent-get",
            lambda c: c.get_torrents(arguments=TORRENT_LIST_PROJECTION),
            lambda torrents: [parse_torrent(t.fields) for t in torrents],
        )

    @log_time
    def get_files(
        self, torrent_id: int
    ) -> tuple[TransmissionResponse, TorrentFiles | None]:
        def parse(torrents) -> TorrentFiles:
            if not torrents:
                return TorrentFiles()
            return parse_torrent_files(torrents[0].fields)

        return self._request(
            "torrent-get",
            lambda c: c.get_torrents(
                ids=[torrent_id], arguments=TORRENT_FILES_PROJECTION
            ),
            parse,
        )

    # ========================================================================
    # Torrent Lifecycle Operations
    # ========================================================================

    @log_time
    def add_torrent(
        self, value: str, download_dir: str | None = None
    ) -> tuple[TransmissionResponse, int | None]:
        """Add a torrent from magnet link, URL or path to a .torrent file.

        A torrent the daemon already has counts as added and returns the
        id of the existing one.

        Raises:
            ClientError: If the torrent file can't be read
        """
        torrent: str | bytes
        if is_torrent_link(value):
            torrent = value.strip()
        else:
            file = os.path.expanduser(value)
            try:
                with open(file, "rb") as f:
                    torrent = f.read()
            except OSError as e:
                raise ClientError(f"Torrent file not readable: {e}")

        return self._request(
            "torrent-add",
            lambda c: c.add_torrent(torrent, download_dir=download_dir),
            lambda t: int(t.id),
        )

    @log_time
    def remove_torrents(
        self, ids: list[int], delete_local_data: bool = False
    ) -> TransmissionResponse:
        return self._command(
            "torrent-remove",
            lambda c: c.remove_torrent(
                list(ids), delete_data=delete_local_data
            ),
        )

    @log_time
    def start(self, ids: list[int]) -> TransmissionResponse:
        return self._command(
            "torrent-start", lambda c: c.start_torrent(list(ids))
        )

    @log_time
    def start_now(self, ids: list[int]) -> TransmissionResponse:
        return self._command(
            "torrent-start-now",
            lambda c: c.start_torrent(list(ids), bypass_queue=True),
        )

    @log_time
    def stop(self, ids: list[int]) -> TransmissionResponse:
        return self._command(
            "torrent-stop", lambda c: c.stop_torrent(list(ids))
        )

    @log_time
    def start_all(self) -> TransmissionResponse:
        return self._command("torrent-start", lambda c: c.start_all())

    @log_time
    def stop_all(self) -> TransmissionResponse:
        def stop_all(c: TransmissionRPCClient) -> None:
            torrents = c.get_torrents(arguments=["id"])
            if torrents:
                c.stop_torrent([t.id for t in torrents])

        return self._command("torrent-stop", stop_all)

    @log_time
    def verify(self, ids: list[int]) -> TransmissionResponse:
        return self._command(
            "torrent-verify", lambda c: c.verify_torrent(list(ids))
        )

    @log_time
    def reannounce(self, ids: list[int]) -> TransmissionResponse:
        return self._command(
            "torrent-reannounce", lambda c: c.reannounce_torrent(list(ids))
        )

    @log_time
    def queue_move(
        self, direction: QueueDirection, ids: list[int]
    ) -> TransmissionResponse:
        return self._command(
            f"queue-move-{direction.value}",
            lambda c: getattr(c, direction.method)(list(ids)),
        )

    # ========================================================================
    # Torrent Organization & Metadata
    # ========================================================================

    @log_time
    def rename_path(
        self, torrent_id: int, path: str, name: str
    ) -> tuple[TransmissionResponse, RenameResult | None]:
        """Rename a file or folder inside a torrent.

        To rename the torrent root pass the torrent name as ``path``.
        """

        def parse(renamed: tuple[str, str]) -> RenameResult:
            new_path, new_name = renamed
            return RenameResult(id=torrent_id, path=new_path, name=new_name)

        return self._request(
            "torrent-rename-path",
            lambda c: c.rename_torrent_path(torrent_id, path, name),
            parse,
        )

    @log_time
    def set_torrents(
        self, ids: list[int], changeset: TorrentChangeset
    ) -> TransmissionResponse:
        return self._command(
            "torrent-set",
            lambda c: c.change_torrent(list(ids), **changeset.changed()),
        )

    @log_time
    def set_labels(
        self, ids: list[int], labels: list[str]
    ) -> TransmissionResponse:
        return self._command(
            "torrent-set",
            lambda c: c.change_torrent(list(ids), labels=list(labels)),
        )

    @log_time
    def set_bandwidth_priority(
        self, ids: list[int], priority: int
    ) -> TransmissionResponse:
        return self._command(
            "torrent-set",
            lambda c: c.change_torrent(list(ids), bandwidth_priority=priority),
        )

    # ========================================================================
    # File Operations
    # ========================================================================

    @log_time
    def set_files_wanted(
        self, torrent_id: int, indices: list[int], wanted: bool
    ) -> TransmissionResponse:
        key = "files_wanted" if wanted else "files_unwanted"
        return self._command(
            "torrent-set",
            lambda c: c.change_torrent([torrent_id], **{key: list(indices)}),
        )

    @log_time
    def set_files_priority(
        self, torrent_id: int, indices: list[int], priority: FilePriority
    ) -> TransmissionResponse:
        key = _FILE_PRIORITY_ARGS[priority]
        return self._command(
            "torrent-set",
            lambda c: c.change_torrent([torrent_id], **{key: list(indices)}),
        )

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _connect(self) -> TransmissionRPCClient:
        with self._lock:
            if self._client is None:
                s = self.server
                try:
                    self._client = TransmissionRPCClient(
                        protocol=s.scheme,
                        host=s.host,
                        port=s.port,
                        path=s.path,
                        username=s.username,
                        password=s.password,
                        timeout=self.timeout,
                    )
                except ValueError as e:
                    # raised for an unsupported protocol
                    raise TransmissionError(f"Invalid server address: {e}")
            return self._client

    def _command(
        self, method: str, call: Callable[[TransmissionRPCClient], Any]
    ) -> TransmissionResponse:
        response, _ = self._request(method, call)
        return response

    def _request(
        self,
        method: str,
        call: Callable[[TransmissionRPCClient], Any],
        parse: Callable[[Any], Any] | None = None,
    ) -> tuple[TransmissionResponse, Any]:
        """Run one library call and fold its outcome into a response."""
        try:
            result = call(self._connect())
        except TransmissionAuthError as e:
            return self._failure(method, TransmissionResponse.UNAUTHORIZED, e)
        except (TransmissionTimeoutError, TransmissionConnectError) as e:
            return self._failure(method, TransmissionResponse.FAILED, e)
        except TransmissionError as e:
            return self._failure(method, TransmissionResponse.CONFIG_ERROR, e)

        if parse is None:
            return TransmissionResponse.SUCCESS, None

        try:
            return TransmissionResponse.SUCCESS, parse(result)
        except _PARSE_ERRORS as e:
            logger.warning(f"Failed to decode {method} response: {e!r}")
            return TransmissionResponse.FAILED, None

    def _failure(
        self, method: str, response: TransmissionResponse, error: Exception
    ) -> tuple[TransmissionResponse, None]:
        logger.warning(f"RPC {method} on {self.server.name}: {error}")
        return response, None
