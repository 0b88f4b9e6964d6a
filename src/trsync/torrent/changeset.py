"""Changesets for session and per-torrent settings.

A changeset holds only the fields the user actually changed. Unset
fields stay ``None`` and are never sent to the daemon. Field names match
the keyword arguments of ``transmission_rpc.Client.set_session`` and
``transmission_rpc.Client.change_torrent``.
"""

from dataclasses import dataclass, fields, replace
from typing import Any

from .models import SessionInfo, Torrent


def _check_known(cls, desired: dict[str, Any], kind: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(desired) - known
    if unknown:
        raise ValueError(f"Unknown {kind}: {', '.join(sorted(unknown))}")
@dataclass
class SessionChangeset:
    download_dir: str | None = None

    speed_limit_down: int | None = None
    speed_limit_down_enabled: bool | None = None
    speed_limit_up: int | None = None
    speed_limit_up_enabled: bool | None = None
    alt_speed_down: int | None = None
    alt_speed_up: int | None = None
    alt_speed_enabled: bool | None = None

    incomplete_dir: str | None = None
    incomplete_dir_enabled: bool | None = None
    start_added_torrents: bool | None = None
    rename_partial_files: bool | None = None

    download_queue_enabled: bool | None = None
    download_queue_size: int | None = None
    seed_queue_enabled: bool | None = None
    seed_queue_size: int | None = None
    seed_ratio_limited: bool | None = None
    seed_ratio_limit: float | None = None
    idle_seeding_limit: int | None = None
    idle_seeding_limit_enabled: bool | None = None
    queue_stalled_enabled: bool | None = None
    queue_stalled_minutes: int | None = None

    peer_port: int | None = None
    peer_port_random_on_start: bool | None = None
    port_forwarding_enabled: bool | None = None
    dht_enabled: bool | None = None
    pex_enabled: bool | None = None
    lpd_enabled: bool | None = None
    encryption: str | None = None
    utp_enabled: bool | None = None
    peer_limit_global: int | None = None
    peer_limit_per_torrent: int | None = None

    blocklist_enabled: bool | None = None
    blocklist_url: str | None = None

    @classmethod
    def diff(
        cls, current: SessionInfo, desired: dict[str, Any]
    ) -> "SessionChangeset":
        """Build a changeset from the values that differ from the server.

        Args:
            current: Last known server settings
            desired: Setting name to wanted value; unknown names raise
                ValueError
        """
        _check_known(cls, desired, "session settings")

        changes = {
            name: value
            for name, value in desired.items()
            if value is not None and getattr(current, name) != value
        }
        return cls(**changes)

    def changed(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.changed()

    def apply_to(self, session: SessionInfo) -> SessionInfo:
        """Return the settings as they will look once the change lands."""
        return replace(session, **self.changed())


@dataclass
class TorrentChangeset:
    """Per-torrent bandwidth, seeding and peer settings."""

    bandwidth_priority: int | None = None
    download_limit: int | None = None
    download_limited: bool | None = None
    upload_limit: int | None = None
    upload_limited: bool | None = None
    honors_session_limits: bool | None = None
    group: str | None = None
    location: str | None = None
    peer_limit: int | None = None
    seed_idle_limit: int | None = None
    seed_idle_mode: int | None = None
    seed_ratio_limit: float | None = None
    seed_ratio_mode: int | None = None

    # Settings the torrent list carries, by the Torrent attribute they map to
    _CURRENT_ATTRS = {
        "bandwidth_priority": "bandwidth_priority",
        "location": "download_dir",
    }

    @classmethod
    def diff(
        cls, current: Torrent, desired: dict[str, Any]
    ) -> "TorrentChangeset":
        """Build a changeset from the values that differ from the torrent.

        Settings the torrent list does not carry are kept whenever they
        are not None.

        Args:
            current: Last known state of the torrent
            desired: Setting name to wanted value; unknown names raise
                ValueError
        """
        _check_known(cls, desired, "torrent settings")

        changes = {}
        for name, value in desired.items():
            if value is None:
                continue
            attr = cls._CURRENT_ATTRS.get(name)
            if attr is not None and getattr(current, attr) == value:
                continue
            changes[name] = value
        return cls(**changes)

    def changed(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.changed()

