#!/usr/bin/env python3

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

import argparse
import sys

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from .config import (
    TrackSetAction,
    TrackSetTrueAction,
    create_default_config,
    get_available_profiles,
    get_config_path,
    load_config,
    merge_config_with_args,
    server_from_config,
)
from .sync.cache import SessionCache
from .sync.engine import SyncEngine
from .sync.notify import Notifier, describe_response
from .sync.store import Store
from .torrent.client import TransmissionClient
from .torrent.models import (
    ClientError,
    Server,
    TorrentStatusCalc,
    TransmissionResponse,
)
from .ui.dialog.remove import RemoveTorrentDialog
from .ui.messages import (
    CacheUpdatedEvent,
    ConnectionChangedEvent,
    MoveTorrentCommand,
    Notification,
    PauseTorrentCommand,
    ReannounceTorrentCommand,
    RemoveTorrentCommand,
    ResumeTorrentCommand,
    ToggleTorrentCommand,
    VerifyTorrentCommand,
)
from .ui.models import count_by_status, sort_orders, sort_torrents
from .ui.widget.torrent_table import TorrentTable
from .util.log import get_logger, init_logger, log_time
from .util.misc import is_valid_magnet
from .util.print import print_speed
from .version import __version__

logger = get_logger()


class AppNotifier(Notifier):
    """Forwards core reports to the app as textual messages."""

    def __init__(self, app: App) -> None:
        self.app = app

    def error(self, brief: str, detail: str = "") -> None:
        super().error(brief, detail)
        message = f"{brief}\n{detail}" if detail else brief
        self.app.post_message(Notification(message, "warning"))

    def info(self, message: str) -> None:
        super().info(message)
        self.app.post_message(Notification(message))

    def connection_error(self, is_error: bool) -> None:
        super().connection_error(is_error)
        self.app.post_message(ConnectionChangedEvent(is_error))


class MainApp(App):
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("s", "next_sort_order", "[Torrent] Sort order"),
        Binding("S", "toggle_sort_direction", "[Torrent] Sort direction"),
        Binding("y", "start_all_torrents", "[Torrent] Start all"),
        Binding("Y", "stop_all_torrents", "[Torrent] Stop all"),
        Binding("ctrl+r", "refresh", "[App] Refresh now"),
        Binding("d", "toggle_dark", "[UI] Toggle theme"),
        Binding("q", "quit", "[App] Quit", priority=True),
    ]

    @log_time
    def __init__(
        self, server: Server, refresh_interval: float, version: str
    ) -> None:
        super().__init__()

        logger.info(f"Initializing trsync application v{version}")

        self.title = f"trsync {version}"
        self.server = server
        self.store = Store(AppNotifier(self), interval=refresh_interval)

        self.sort_index = 0
        self.sort_asc = True

    @log_time
    def compose(self) -> ComposeResult:
        yield Header()
        yield TorrentTable(id="torrent-table")
        yield Footer()

    @log_time
    def on_mount(self) -> None:
        self.store.cache.subscribe(self._cache_changed)
        self.store.select_server(self.server)
        self.query_one(TorrentTable).focus()
        logger.info("Application startup completed")

    async def on_unmount(self) -> None:
        await self.store.close()
        logger.info("trsync application shutdown")

    def _cache_changed(self, cache: SessionCache) -> None:
        self.post_message(CacheUpdatedEvent())

    @on(CacheUpdatedEvent)
    def handle_cache_updated_event(self, event: CacheUpdatedEvent) -> None:
        cache = self.store.cache
        self.query_one(TorrentTable).r_torrents = sort_torrents(
            cache.torrents, sort_orders[self.sort_index], self.sort_asc
        )

        counts = count_by_status(cache.torrents)
        if (stats := cache.session_stats) is not None:
            self.sub_title = (
                f"{self.server.name}: {stats.torrent_count} torrents "
                f"({counts.get(TorrentStatusCalc.DOWNLOADING, 0)} down, "
                f"{counts.get(TorrentStatusCalc.SEEDING, 0)} up), "
                f"↓ {print_speed(stats.download_speed)} "
                f"↑ {print_speed(stats.upload_speed)}"
            )
        else:
            self.sub_title = self.server.name

    @on(ConnectionChangedEvent)
    def handle_connection_changed_event(
        self, event: ConnectionChangedEvent
    ) -> None:
        if event.is_error:
            self.sub_title = f"{self.server.name}: not authorized"

    @on(Notification)
    def handle_notification(self, event: Notification) -> None:
        timeout = 3 if event.severity == "information" else 5

        self.notify(
            message=event.message, severity=event.severity, timeout=timeout
        )

    # ========================================================================
    # Torrent Commands
    # ========================================================================

    @on(ToggleTorrentCommand)
    @work
    async def handle_toggle_torrent_command(
        self, event: ToggleTorrentCommand
    ) -> None:
        torrent = self.store.cache.torrent(event.torrent_id)
        if torrent is None:
            return

        def done(response: TransmissionResponse) -> None:
            if response == TransmissionResponse.SUCCESS:
                state = "started" if torrent.is_stopped else "stopped"
                self.post_message(Notification(f"Torrent {state}"))

        await self._run_guarded(
            self.store.reconciler.toggle_pause(torrent, done)
        )

    @on(PauseTorrentCommand)
    @work
    async def handle_pause_torrent_command(
        self, event: PauseTorrentCommand
    ) -> None:
        await self._run_guarded(
            self.store.reconciler.pause([event.torrent_id]), "Torrent stopped"
        )

    @on(ResumeTorrentCommand)
    @work
    async def handle_resume_torrent_command(
        self, event: ResumeTorrentCommand
    ) -> None:
        await self._run_guarded(
            self.store.reconciler.resume([event.torrent_id]),
            "Torrent started",
        )

    @on(VerifyTorrentCommand)
    @work
    async def handle_verify_torrent_command(
        self, event: VerifyTorrentCommand
    ) -> None:
        await self._run_guarded(
            self.store.reconciler.verify([event.torrent_id]),
            "Torrent sent to verification",
        )

    @on(ReannounceTorrentCommand)
    @work
    async def handle_reannounce_torrent_command(
        self, event: ReannounceTorrentCommand
    ) -> None:
        await self._run_guarded(
            self.store.reconciler.reannounce([event.torrent_id]),
            "Torrent reannounce started",
        )

    @on(MoveTorrentCommand)
    @work
    async def handle_move_torrent_command(
        self, event: MoveTorrentCommand
    ) -> None:
        await self._run_guarded(
            self.store.reconciler.queue_move(
                event.direction, [event.torrent_id]
            )
        )

    @on(RemoveTorrentCommand)
    def handle_remove_torrent_command(
        self, event: RemoveTorrentCommand
    ) -> None:
        torrent = self.store.cache.torrent(event.torrent_id)
        if torrent is None:
            return

        def on_dismiss(delete_local_data: bool | None) -> None:
            if delete_local_data is not None:
                self.run_worker(
                    self._run_guarded(
                        self.store.reconciler.remove(
                            [event.torrent_id], delete_local_data
                        ),
                        "Torrent removed",
                    )
                )

        self.push_screen(
            RemoveTorrentDialog([torrent.name], event.delete_local_data),
            on_dismiss,
        )

    @work
    async def action_start_all_torrents(self) -> None:
        await self._run_guarded(
            self.store.reconciler.start_all(), "All torrents started"
        )

    @work
    async def action_stop_all_torrents(self) -> None:
        await self._run_guarded(
            self.store.reconciler.stop_all(), "All torrents stopped"
        )

    @work(exclusive=True)
    async def action_refresh(self) -> None:
        await self.store.engine.refresh_now()

    def action_next_sort_order(self) -> None:
        self.sort_index = (self.sort_index + 1) % len(sort_orders)
        self.post_message(
            Notification(f"Sorted by {sort_orders[self.sort_index].name}")
        )
        self.post_message(CacheUpdatedEvent())

    def action_toggle_sort_direction(self) -> None:
        self.sort_asc = not self.sort_asc
        self.post_message(CacheUpdatedEvent())

    async def _run_guarded(self, mutation, success_message: str = "") -> None:
        try:
            response = await mutation
        except ClientError as e:
            self.post_message(Notification(str(e), "warning"))
            return

        if response == TransmissionResponse.SUCCESS and success_message:
            self.post_message(Notification(success_message))


def _setup_argument_parser(version: str) -> argparse.ArgumentParser:
    """Set up and return the argument parser."""
    p = argparse.ArgumentParser(
        prog="trsync",
        description="Remote control client for the Transmission daemon",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Actions
    p.add_argument(
        "-a",
        "--add-torrent",
        type=str,
        metavar="PATH_OR_MAGNET",
        help="Add torrent from file path or magnet link and exit",
    )
    p.add_argument(
        "--download-dir",
        type=str,
        help="Download directory for --add-torrent (default: daemon's)",
    )
    p.add_argument(
        "--create-config",
        action="store_true",
        help="Create default configuration file and exit",
    )

    # Server
    p.add_argument(
        "--host",
        type=str,
        default="localhost",
        action=TrackSetAction,
        help="Transmission daemon host for connection",
    )
    p.add_argument(
        "--port",
        type=int,
        default=9091,
        action=TrackSetAction,
        help="Transmission daemon port for connection",
    )
    p.add_argument(
        "--path",
        type=str,
        default="/transmission/rpc",
        action=TrackSetAction,
        help="RPC path of the Transmission daemon",
    )
    p.add_argument(
        "--https",
        action=TrackSetTrueAction,
        help="Connect to the daemon over HTTPS",
    )
    p.add_argument(
        "--username",
        type=str,
        action=TrackSetAction,
        help="Transmission daemon username for connection",
    )
    p.add_argument(
        "--password",
        type=str,
        action=TrackSetAction,
        help="Transmission daemon password for connection",
    )

    # Sync
    p.add_argument(
        "--refresh-interval",
        type=float,
        default=SyncEngine.DEFAULT_INTERVAL,
        action=TrackSetAction,
        help="Refresh interval (in seconds, at least "
        f"{SyncEngine.MIN_INTERVAL:g}) for loading data from daemon",
    )

    # Profiles
    p.add_argument(
        "--profile",
        type=str,
        action=TrackSetAction,
        help="Load server profile from trsync-PROFILE.conf",
    )
    p.add_argument(
        "--profiles",
        action="store_true",
        help="List available configuration profiles and exit",
    )

    # Other
    p.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        action=TrackSetAction,
        help="Set logging level",
    )
    p.add_argument(
        "--version",
        action="version",
        version="%(prog)s " + version,
        help="Show version and exit",
    )

    return p


def _handle_add_torrent_mode(server: Server, value: str, download_dir) -> None:
    """Handle non-interactive add-torrent mode."""
    if value.strip().lower().startswith("magnet:") and not is_valid_magnet(
        value
    ):
        print("Failed to add torrent: Invalid magnet link", file=sys.stderr)
        sys.exit(1)

    try:
        client = TransmissionClient(server)
        response, _ = client.add_torrent(value, download_dir)
    except ClientError as e:
        print(f"Failed to add torrent: {e}", file=sys.stderr)
        sys.exit(1)

    if response != TransmissionResponse.SUCCESS:
        print(
            f"Failed to add torrent: {describe_response(response)}",
            file=sys.stderr,
        )
        sys.exit(1)

    print(f"Successfully added torrent to daemon at {server.url}")
    sys.exit(0)


def _handle_profiles_command():
    """Handle --profiles command to list available profiles."""
    profiles = get_available_profiles()
    if profiles:
        print("Available profiles:")
        for profile in profiles:
            print(f"  - {profile}")
    else:
        print("No profiles found")
    sys.exit(0)


def _handle_create_config_command(profile: str | None):
    """Handle --create-config command to create config file."""
    config_path = get_config_path(profile)
    try:
        create_default_config(config_path)
    except ClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if profile:
        print(f"Profile config file created: {config_path}")
    else:
        print(f"Config file created: {config_path}")
    sys.exit(0)


@log_time
def _handle_commands(args) -> None:
    if args.profiles:
        logger.info("Listing available configuration profiles")
        _handle_profiles_command()

    # must happen before the config is loaded
    if args.create_config:
        logger.info("Creating default configuration file")
        _handle_create_config_command(getattr(args, "profile", None))


@log_time
def create_app():
    """Create and return a MainApp instance."""
    parser = _setup_argument_parser(__version__)
    args = parser.parse_args()

    _handle_commands(args)

    profile = getattr(args, "profile", None)
    try:
        config = load_config(profile)
    except ClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    merge_config_with_args(config, args)

    init_logger(args.log_level)

    logger.info(f"Start trsync {__version__}...")
    if profile:
        logger.info(f"Using configuration profile: {profile}")

    server = server_from_config(vars(args), profile)
    logger.info(f"Server: {server!r}")

    if args.add_torrent:
        logger.info(f"Running in add-torrent mode: {args.add_torrent}")
        _handle_add_torrent_mode(server, args.add_torrent, args.download_dir)

    return MainApp(
        server=server,
        refresh_interval=args.refresh_interval,
        version=__version__,
    )


@log_time
def cli():
    """CLI entry point. Creates and runs the MainApp."""

    # set terminal title
    print("\33]0;trsync\a", end="", flush=True)

    app = create_app()
    logger.info("Starting trsync application")
    try:
        app.run()
    finally:
        # clean terminal title
        print("\33]0;\a", end="", flush=True)


if __name__ == "__main__":
    cli()
