"""Optimistic local mutations with revert on failure."""

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

from ..torrent.changeset import SessionChangeset, TorrentChangeset
from ..torrent.client import TransmissionClient
from ..torrent.models import (
    ClientError,
    FilePriority,
    QueueDirection,
    Torrent,
    TorrentFiles,
    TorrentStatus,
    TransmissionResponse,
    ValidationError,
)
from ..util.log import get_logger, log_time
from ..util.misc import (
    is_torrent_link,
    is_valid_magnet,
    summarize_failures,
    validate_new_name,
)
from .cache import DispatchTag, SessionCache
from .notify import Notifier, describe_response

logger = get_logger()

T = TypeVar("T")

Completion = Callable[[TransmissionResponse], None] | None
Revert = Callable[[], None]


class MutationReconciler:
    """Applies user mutations to the cache before the daemon confirms them.

    Every optimistic operation follows the same steps:

    1. snapshot the values it is about to touch
    2. apply the new values to the cache, on the loop
    3. send the request from a worker thread
    4. on anything but success restore the snapshot exactly, then call
       ``on_complete`` and report the failure

    Reverts are skipped when the active server changed while the request
    was in flight, since the cache then holds another server's data.
    """

    def __init__(
        self,
        cache: SessionCache,
        client_provider: Callable[[], TransmissionClient | None],
        notifier: Notifier,
        refresh: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.cache = cache
        self.notifier = notifier
        self._client_provider = client_provider
        self._refresh = refresh

    # ========================================================================
    # File Operations
    # ========================================================================

    @log_time
    async def set_wanted(
        self,
        torrent_id: int,
        indices: list[int],
        wanted: bool,
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Include or exclude files from download."""
        revert = self._apply_file_stats(
            torrent_id, indices, lambda s: replace(s, wanted=wanted)
        )
        return await self._commit(
            "Failed to update files",
            lambda c: c.set_files_wanted(torrent_id, indices, wanted),
            revert,
            on_complete,
        )

    @log_time
    async def set_priority(
        self,
        torrent_id: int,
        indices: list[int],
        priority: FilePriority,
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Change the priority of several files with a single request."""
        revert = self._apply_file_stats(
            torrent_id, indices, lambda s: replace(s, priority=priority)
        )
        return await self._commit(
            "Failed to update file priority",
            lambda c: c.set_files_priority(torrent_id, indices, priority),
            revert,
            on_complete,
        )

    def _apply_file_stats(self, torrent_id: int, indices: list[int], change):
        files = self.cache.files.get(torrent_id)
        if files is None:
            # file list not loaded yet, nothing to show optimistically
            return _noop

        for i in indices:
            if not 0 <= i < len(files):
                raise ValidationError(
                    f"File index {i} out of range for torrent {torrent_id}"
                )

        snapshot = {i: files.file_stats[i] for i in indices}
        self._write_file_stats(
            torrent_id, {i: change(s) for i, s in snapshot.items()}
        )
        self.cache.stamp_files(torrent_id)

        def revert() -> None:
            self._write_file_stats(torrent_id, snapshot)

        return revert

    def _write_file_stats(self, torrent_id: int, values: dict) -> None:
        files = self.cache.files.get(torrent_id)
        if files is None:
            return
        if any(i >= len(files) for i in values):
            # list was reloaded with another shape, nothing to restore into
            return

        stats = list(files.file_stats)
        for i, value in values.items():
            stats[i] = value
        self.cache.files[torrent_id] = TorrentFiles(files.files, tuple(stats))

    # ========================================================================
    # Start & Stop
    # ========================================================================

    async def toggle_pause(
        self, torrent: Torrent, on_complete: Completion = None
    ) -> TransmissionResponse:
        if torrent.is_stopped:
            return await self.resume([torrent.id], on_complete)
        return await self.pause([torrent.id], on_complete)

    @log_time
    async def pause(
        self, ids: list[int], on_complete: Completion = None
    ) -> TransmissionResponse:
        return await self._start_stop(ids, False, on_complete)

    @log_time
    async def resume(
        self, ids: list[int], on_complete: Completion = None
    ) -> TransmissionResponse:
        return await self._start_stop(ids, True, on_complete)

    async def _start_stop(
        self, ids: list[int], start: bool, on_complete: Completion
    ) -> TransmissionResponse:
        tag = self.cache.tag()
        if start:
            response = await self._call(lambda c: c.start(ids))
        else:
            response = await self._call(lambda c: c.stop(ids))

        if response == TransmissionResponse.SUCCESS:
            if self.cache.is_current(tag):
                self._set_status(ids, start)
        else:
            # the row keeps its previous state, the user may simply retry
            logger.warning(
                f"Failed to {'start' if start else 'stop'} {ids}: "
                f"{response.value}"
            )
            if response.is_terminal:
                self.notifier.error(
                    "Failed to change torrent state",
                    describe_response(response),
                )

        if on_complete:
            on_complete(response)
        return response

    def _set_status(self, ids: list[int], start: bool) -> None:
        for torrent_id in ids:
            t = self.cache.torrent(torrent_id)
            if t is None:
                continue
            if not start:
                status = TorrentStatus.STOPPED
            elif t.percent_done < 1:
                status = TorrentStatus.DOWNLOADING
            else:
                status = TorrentStatus.SEEDING
            self.cache.replace_torrent(replace(t, status=status))

        self.cache.stamp(ids)
        self.cache.changed()

    @log_time
    async def start_now(
        self, ids: list[int], on_complete: Completion = None
    ) -> TransmissionResponse:
        """Start bypassing the download queue."""
        return await self._commit(
            "Failed to start torrents",
            lambda c: c.start_now(ids),
            on_complete=on_complete,
        )

    @log_time
    async def start_all(
        self, on_complete: Completion = None
    ) -> TransmissionResponse:
        return await self._commit(
            "Failed to start all torrents",
            lambda c: c.start_all(),
            on_complete=on_complete,
            refresh=True,
        )

    @log_time
    async def stop_all(
        self, on_complete: Completion = None
    ) -> TransmissionResponse:
        return await self._commit(
            "Failed to stop all torrents",
            lambda c: c.stop_all(),
            on_complete=on_complete,
            refresh=True,
        )

    @log_time
    async def verify(
        self, ids: list[int], on_complete: Completion = None
    ) -> TransmissionResponse:
        return await self._commit(
            "Failed to verify torrents",
            lambda c: c.verify(ids),
            on_complete=on_complete,
        )

    @log_time
    async def reannounce(
        self, ids: list[int], on_complete: Completion = None
    ) -> TransmissionResponse:
        return await self._commit(
            "Failed to reannounce torrents",
            lambda c: c.reannounce(ids),
            on_complete=on_complete,
        )

    # ========================================================================
    # Torrent Operations
    # ========================================================================

    @log_time
    async def rename(
        self,
        torrent_id: int,
        new_name: str,
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Rename the torrent root folder or single file.

        Raises:
            ValidationError: If the name is rejected locally
            ClientError: If the torrent is not in the cache
        """
        if error := validate_new_name(new_name):
            raise ValidationError(error)
        name = new_name.strip()

        torrent = self.cache.torrent(torrent_id)
        if torrent is None:
            raise ClientError(f"Torrent {torrent_id} not found")
        old_name = torrent.name

        old_files = self.cache.files.get(torrent_id)
        self.cache.replace_torrent(replace(torrent, name=name))
        if old_files is not None:
            self.cache.files[torrent_id] = _rename_root(
                old_files, old_name, name
            )
            self.cache.stamp_files(torrent_id)
        self.cache.stamp([torrent_id])

        def revert() -> None:
            current = self.cache.torrent(torrent_id)
            if current is not None:
                self.cache.replace_torrent(replace(current, name=old_name))
            if old_files is not None and torrent_id in self.cache.files:
                files = self.cache.files[torrent_id]
                if len(files) == len(old_files):
                    self.cache.files[torrent_id] = TorrentFiles(
                        old_files.files, files.file_stats
                    )

        return await self._commit(
            "Failed to rename torrent",
            lambda c: c.rename_path(torrent_id, old_name, name)[0],
            revert,
            on_complete,
            refresh=True,
        )

    @log_time
    async def queue_move(
        self,
        direction: QueueDirection,
        ids: list[int],
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Move torrents in the queue; the new order arrives with the poll."""
        return await self._commit(
            "Failed to move torrents in queue",
            lambda c: c.queue_move(direction, ids),
            on_complete=on_complete,
        )

    @log_time
    async def remove(
        self,
        ids: list[int],
        delete_local_data: bool = False,
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        removed: list[tuple[int, Torrent]] = []
        removed_files: dict[int, TorrentFiles] = {}
        for torrent_id in ids:
            if entry := self.cache.remove_torrent(torrent_id):
                removed.append(entry)
            if torrent_id in self.cache.files:
                removed_files[torrent_id] = self.cache.files.pop(torrent_id)
        self.cache.stamp(ids)

        def revert() -> None:
            # reinsert in reverse removal order so every torrent lands on
            # the index it was removed from
            for index, t in reversed(removed):
                self.cache.insert_torrent(index, t)
            for torrent_id, files in removed_files.items():
                self.cache.files.setdefault(torrent_id, files)

        return await self._commit(
            "Failed to remove torrents",
            lambda c: c.remove_torrents(ids, delete_local_data),
            revert,
            on_complete,
        )

    @log_time
    async def update_labels(
        self,
        ids: list[int],
        labels: list[str],
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Replace the labels of the torrents; blank labels are dropped."""
        labels = [label.strip() for label in labels if label.strip()]
        revert = self._apply_torrents(ids, labels=tuple(labels))
        return await self._commit(
            "Failed to update labels",
            lambda c: c.set_labels(ids, labels),
            revert,
            on_complete,
        )

    @log_time
    async def set_bandwidth_priority(
        self,
        ids: list[int],
        priority: int,
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        revert = self._apply_torrents(ids, bandwidth_priority=priority)
        return await self._commit(
            "Failed to update bandwidth priority",
            lambda c: c.set_bandwidth_priority(ids, priority),
            revert,
            on_complete,
        )

    @log_time
    async def set_torrent_settings(
        self,
        ids: list[int],
        changeset: TorrentChangeset,
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Send per-torrent settings; an empty changeset sends nothing."""
        if changeset.is_empty():
            if on_complete:
                on_complete(TransmissionResponse.SUCCESS)
            return TransmissionResponse.SUCCESS

        revert = _noop
        if changeset.bandwidth_priority is not None:
            revert = self._apply_torrents(
                ids, bandwidth_priority=changeset.bandwidth_priority
            )
        return await self._commit(
            "Failed to update torrent settings",
            lambda c: c.set_torrents(ids, changeset),
            revert,
            on_complete,
        )

    def _apply_torrents(self, ids: list[int], **changes: Any) -> Revert:
        snapshot: dict[int, dict[str, Any]] = {}
        for torrent_id in ids:
            t = self.cache.torrent(torrent_id)
            if t is None:
                continue
            snapshot[torrent_id] = {k: getattr(t, k) for k in changes}
            self.cache.replace_torrent(replace(t, **changes))
        self.cache.stamp(ids)

        def revert() -> None:
            for torrent_id, values in snapshot.items():
                t = self.cache.torrent(torrent_id)
                if t is not None:
                    self.cache.replace_torrent(replace(t, **values))

        return revert

    @log_time
    async def apply_torrent_settings(
        self,
        torrent_id: int,
        desired: dict[str, Any],
        on_complete: Completion = None,
    ) -> TransmissionResponse:
        """Send only the settings that differ from the cached torrent.

        Raises:
            ClientError: If the torrent is not in the cache
            ValueError: If a setting name is unknown
        """
        current = self.cache.torrent(torrent_id)
        if current is None:
            raise ClientError(f"Torrent {torrent_id} is not loaded")

        changeset = TorrentChangeset.diff(current, desired)
        return await self.set_torrent_settings(
            [torrent_id], changeset, on_complete
        )

    # ========================================================================
    # Session Settings
    # ========================================================================

    @log_time
    async def apply_session_settings(
        self, desired: dict[str, Any], on_complete: Completion = None
    ) -> TransmissionResponse:
        """Send only the settings that differ from the cached session.

        Raises:
            ClientError: If session settings were not loaded yet
            ValueError: If a setting name is unknown
        """
        current = self.cache.session_info
        if current is None:
            raise ClientError("Session settings are not loaded")

        changeset = SessionChangeset.diff(current, desired)
        if changeset.is_empty():
            logger.debug("Session settings unchanged, nothing to send")
            if on_complete:
                on_complete(TransmissionResponse.SUCCESS)
            return TransmissionResponse.SUCCESS

        self.cache.session_info = changeset.apply_to(current)

        def revert() -> None:
            info = self.cache.session_info
            if info is not None:
                restore = {k: getattr(current, k) for k in changeset.changed()}
                self.cache.session_info = replace(info, **restore)

        return await self._commit(
            "Failed to update session settings",
            lambda c: c.set_session(changeset),
            revert,
            on_complete,
        )

    # ========================================================================
    # Adding Torrents
    # ========================================================================

    @log_time
    async def add_torrents(
        self, sources: list[str], download_dir: str | None = None
    ) -> tuple[list[int], list[tuple[str, str]]]:
        """Add torrents from magnet links, URLs or local .torrent files.

        Individual failures don't stop the batch; they are reported
        together in a single notification.

        Returns:
            Tuple of (ids of added torrents, list of (source name, error))
        """
        added: list[int] = []
        failures: list[tuple[str, str]] = []

        for source in sources:
            name = _source_name(source)
            if source.strip().lower().startswith("magnet:") and (
                not is_valid_magnet(source)
            ):
                failures.append((name, "Invalid magnet link."))
                continue

            try:
                response, torrent_id = await self._call(
                    lambda c: c.add_torrent(source, download_dir)
                )
            except ClientError as e:
                failures.append((name, str(e)))
                continue

            if response == TransmissionResponse.SUCCESS:
                added.append(torrent_id)
            else:
                failures.append((name, describe_response(response)))

        if summary := summarize_failures(failures):
            self.notifier.error(*summary)
        if added:
            logger.info(f"Added {len(added)} torrents")
            await self._after_success()

        return added, failures

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    async def _call(self, fn: Callable[[TransmissionClient], T]) -> T:
        client = self._client_provider()
        if client is None:
            raise ClientError("No server selected")
        return await asyncio.to_thread(fn, client)

    async def _commit(
        self,
        brief: str,
        fn: Callable[[TransmissionClient], TransmissionResponse],
        revert: Revert | None = None,
        on_complete: Completion = None,
        refresh: bool = False,
    ) -> TransmissionResponse:
        tag = self.cache.tag()
        if revert is not None:
            self.cache.changed()

        try:
            response = await self._call(fn)
        except ClientError:
            if revert is not None:
                self._revert(tag, revert)
            raise

        if response != TransmissionResponse.SUCCESS:
            if revert is not None:
                self._revert(tag, revert)
            if on_complete:
                on_complete(response)
            self.notifier.error(brief, describe_response(response))
            return response

        if on_complete:
            on_complete(response)
        if refresh:
            await self._after_success()
        return response

    def _revert(self, tag: DispatchTag, revert: Revert) -> None:
        if not self.cache.is_current(tag):
            logger.debug("Server changed during mutation, skipping revert")
            return
        revert()
        logger.warning("Mutation failed, local changes reverted")
        self.cache.changed()

    async def _after_success(self) -> None:
        if self._refresh is not None:
            await self._refresh()


def _noop() -> None:
    pass


def _source_name(source: str) -> str:
    if is_torrent_link(source):
        return source.strip()
    return os.path.basename(os.path.expanduser(source))


def _rename_root(files: TorrentFiles, old: str, new: str) -> TorrentFiles:
    renamed = []
    for f in files.files:
        if f.name == old:
            renamed.append(replace(f, name=new))
        elif f.name.startswith(old + "/"):
            renamed.append(replace(f, name=new + f.name[len(old):]))
        else:
            renamed.append(f)
    return TorrentFiles(tuple(renamed), files.file_stats)
