"""Owner of the sync state for one application instance."""

import asyncio
from collections.abc import Callable

from ..torrent.client import TransmissionClient
from ..torrent.models import Server
from ..util.log import get_logger, log_time
from .cache import SessionCache
from .engine import SyncEngine
from .notify import Notifier
from .reconciler import MutationReconciler

logger = get_logger()


class Store:
    """Wires the cache, poll engine and mutation reconciler together.

    A store is a plain object: create as many as needed (one per window,
    one per test). All methods must be called from the event loop that
    owns it.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        client_factory: Callable[[Server], TransmissionClient] = (
            TransmissionClient
        ),
        interval: float = SyncEngine.DEFAULT_INTERVAL,
    ) -> None:
        self.notifier = notifier or Notifier()
        self.cache = SessionCache()
        self.client: TransmissionClient | None = None

        self._client_factory = client_factory
        self._session_tasks: set[asyncio.Task] = set()

        self.engine = SyncEngine(
            self.cache, self._current_client, self.notifier, interval
        )
        self.reconciler = MutationReconciler(
            self.cache,
            self._current_client,
            self.notifier,
            refresh=self.engine.refresh_now,
        )

    @property
    def server(self) -> Server | None:
        return self.cache.active_server

    def _current_client(self) -> TransmissionClient | None:
        return self.client

    @log_time
    def select_server(self, server: Server | None) -> None:
        """Make ``server`` the active server and start polling it.

        Everything cached for the previous server is dropped right away;
        responses still in flight for it are discarded when they arrive.
        Passing None stops polling and leaves the store empty.
        """
        self.engine.stop_polling()
        self.cache.set_server(server)
        self.engine.reset()

        if server is None:
            self.client = None
            logger.info("No active server")
            return

        logger.info(f"Switching to server {server!r}")
        self.client = self._client_factory(server)
        task = asyncio.get_running_loop().create_task(
            self.engine.fetch_session()
        )
        self._session_tasks.add(task)
        task.add_done_callback(self._session_tasks.discard)
        self.engine.start_polling()

    def remove_server(self, server: Server) -> None:
        """Forget a server; if it is the active one the store goes idle."""
        if server == self.server:
            self.select_server(None)

    def update_interval(self, interval: float) -> None:
        self.engine.update_interval(interval)

    async def close(self) -> None:
        self.engine.stop_polling()
        await self.engine.drain()
        if self._session_tasks:
            await asyncio.gather(
                *self._session_tasks, return_exceptions=True
            )
