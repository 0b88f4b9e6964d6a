from dataclasses import dataclass

from textual.message import Message

from ..torrent.models import QueueDirection

# Commands


@dataclass
class ToggleTorrentCommand(Message):
    torrent_id: int


@dataclass
class PauseTorrentCommand(Message):
    torrent_id: int


@dataclass
class ResumeTorrentCommand(Message):
    torrent_id: int


@dataclass
class RemoveTorrentCommand(Message):
    torrent_id: int
    delete_local_data: bool = False


@dataclass
class VerifyTorrentCommand(Message):
    torrent_id: int


@dataclass
class ReannounceTorrentCommand(Message):
    torrent_id: int


@dataclass
class MoveTorrentCommand(Message):
    torrent_id: int
    direction: QueueDirection


# Events


@dataclass
class CacheUpdatedEvent(Message):
    pass


@dataclass
class ConnectionChangedEvent(Message):
    is_error: bool


# Common


@dataclass
class Notification(Message):
    message: str
    severity: str = "information"
