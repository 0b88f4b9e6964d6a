"""Periodic full-refresh polling of the active server."""

import asyncio
from collections.abc import Callable
from enum import Enum

from ..torrent.client import TransmissionClient
from ..torrent.models import TransmissionResponse
from ..util.log import get_logger, log_time
from .cache import DispatchTag, SessionCache
from .notify import Notifier

logger = get_logger()

ClientProvider = Callable[[], TransmissionClient | None]


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class SyncEngine:
    """Keeps the session cache eventually consistent with the daemon.

    Each tick fetches the torrent list and the session statistics in
    parallel and applies each result on its own. Ticks are not serialized:
    the next one fires on schedule even if the previous one is still
    waiting for the network, and whichever snapshot arrives last wins.

    Failed ticks keep the previous cache values. Only a run of
    ``UNAUTHORIZED_LIMIT`` unauthorized ticks is reported to the UI.
    """

    DEFAULT_INTERVAL = 5.0
    MIN_INTERVAL = 1.0
    UNAUTHORIZED_LIMIT = 3

    def __init__(
        self,
        cache: SessionCache,
        client_provider: ClientProvider,
        notifier: Notifier,
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        self.cache = cache
        self.notifier = notifier
        self.interval = self.clamp_interval(interval)
        self.unauthorized_count = 0
        self.connection_error = False

        self._client_provider = client_provider
        self._timer: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    @classmethod
    def clamp_interval(cls, interval: float) -> float:
        return max(cls.MIN_INTERVAL, float(interval))

    @property
    def state(self) -> PollState:
        if self._timer is not None and not self._timer.done():
            return PollState.POLLING
        return PollState.IDLE

    # ========================================================================
    # Schedule
    # ========================================================================

    def start_polling(self, interval: float | None = None) -> None:
        """Start the repeating poll; the first tick fires immediately.

        Must be called from the event loop that owns the cache.
        """
        if interval is not None:
            self.interval = self.clamp_interval(interval)

        self.stop_polling()
        logger.info(f"Start polling every {self.interval}s")
        self._timer = asyncio.get_running_loop().create_task(self._run())

    def stop_polling(self) -> None:
        """Cancel the schedule; ticks already in flight are left to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("Polling stopped")

    def update_interval(self, interval: float) -> None:
        self.interval = self.clamp_interval(interval)
        if self.state == PollState.POLLING:
            self.start_polling()

    async def refresh_now(self) -> None:
        """Run one out-of-band tick independent of the schedule."""
        await self._spawn_tick()

    async def drain(self) -> None:
        """Wait for all ticks currently in flight."""
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

    def reset(self) -> None:
        """Forget the unauthorized streak, e.g. after a server switch."""
        self.unauthorized_count = 0
        if self.connection_error:
            self.connection_error = False
            self.notifier.connection_error(False)

    async def _run(self) -> None:
        while True:
            self._spawn_tick()
            await asyncio.sleep(self.interval)

    def _spawn_tick(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.tick())
        self._ticks.add(task)
        task.add_done_callback(self._tick_done)
        return task

    def _tick_done(self, task: asyncio.Task) -> None:
        self._ticks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Poll tick crashed", exc_info=task.exception()
            )

    # ========================================================================
    # Poll Tick
    # ========================================================================

    @log_time
    async def tick(self) -> None:
        client = self._client_provider()
        if client is None:
            return

        tag = self.cache.tag()
        logger.debug(f"Poll tick {tag.seq} on {tag.server}")

        responses = await asyncio.gather(
            self._poll_torrents(client, tag),
            self._poll_session_stats(client, tag),
        )

        if not self.cache.is_current(tag):
            logger.debug(f"Poll tick {tag.seq} is stale, ignoring outcome")
            return

        self._record_outcome(responses)

    async def _poll_torrents(
        self, client: TransmissionClient, tag: DispatchTag
    ) -> TransmissionResponse:
        response, torrents = await asyncio.to_thread(client.get_torrents)
        if response == TransmissionResponse.SUCCESS:
            if self.cache.apply_torrents(torrents, tag):
                logger.debug(f"Loaded {len(torrents)} torrents")
        else:
            logger.warning(f"Torrent list poll failed: {response.value}")
        return response

    async def _poll_session_stats(
        self, client: TransmissionClient, tag: DispatchTag
    ) -> TransmissionResponse:
        response, stats = await asyncio.to_thread(client.get_session_stats)
        if response == TransmissionResponse.SUCCESS:
            self.cache.apply_session_stats(stats, tag)
        else:
            logger.warning(f"Session stats poll failed: {response.value}")
        return response

    def _record_outcome(self, responses: list[TransmissionResponse]) -> None:
        if TransmissionResponse.UNAUTHORIZED in responses:
            self.unauthorized_count += 1
            logger.warning(
                f"Unauthorized poll ({self.unauthorized_count} in a row)"
            )
            if (
                self.unauthorized_count >= self.UNAUTHORIZED_LIMIT
                and not self.connection_error
            ):
                self.connection_error = True
                self.notifier.connection_error(True)
                self.notifier.error(
                    "Couldn't authorize with the server.",
                    "Check the username and password of this server.",
                )
        elif TransmissionResponse.SUCCESS in responses:
            self.reset()

    # ========================================================================
    # On-demand Loads
    # ========================================================================

    @log_time
    async def fetch_session(self) -> TransmissionResponse:
        """Load daemon settings (download dir, version, limits)."""
        client = self._client_provider()
        if client is None:
            return TransmissionResponse.CONFIG_ERROR

        tag = self.cache.tag()
        response, info = await asyncio.to_thread(client.get_session)
        if response == TransmissionResponse.SUCCESS:
            self.cache.apply_session_info(info, tag)
        return response

    @log_time
    async def fetch_files(self, torrent_id: int) -> TransmissionResponse:
        """Load the file list of one torrent; not part of the bulk poll."""
        client = self._client_provider()
        if client is None:
            return TransmissionResponse.CONFIG_ERROR

        tag = self.cache.tag()
        response, files = await asyncio.to_thread(client.get_files, torrent_id)
        if response == TransmissionResponse.SUCCESS:
            self.cache.apply_files(torrent_id, files, tag)
        return response
