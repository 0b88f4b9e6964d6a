from dataclasses import dataclass
from enum import Enum, IntEnum


class TransmissionResponse(str, Enum):
    """Outcome of a single RPC call.

    Every transport problem, HTTP status and server-side rejection is
    folded into one of these values before it reaches a caller.
    """

    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    CONFIG_ERROR = "configError"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether the outcome needs re-auth or a settings review."""
        return self in (
            TransmissionResponse.UNAUTHORIZED,
            TransmissionResponse.CONFIG_ERROR,
        )


class TorrentStatus(IntEnum):
    STOPPED = 0
    QUEUED_TO_VERIFY = 1
    VERIFYING = 2
    QUEUED_TO_DOWNLOAD = 3
    DOWNLOADING = 4
    QUEUED_TO_SEED = 5
    SEEDING = 6


class TorrentStatusCalc(str, Enum):
    COMPLETE = "Complete"
    PAUSED = "Paused"
    QUEUED = "Queued"
    VERIFYING_LOCAL_DATA = "Verifying local data"
    RETRIEVING_METADATA = "Retrieving metadata"
    DOWNLOADING = "Downloading"
    SEEDING = "Seeding"
    STALLED = "Stalled"
    UNKNOWN = "Unknown"


class FilePriority(IntEnum):
    LOW = -1
    NORMAL = 0
    HIGH = 1


class QueueDirection(str, Enum):
    TOP = "top"
    UP = "up"
    DOWN = "down"
    BOTTOM = "bottom"

    @property
    def method(self) -> str:
        """Name of the client method moving torrents this way."""
        return f"queue_{self.value}"


@dataclass(frozen=True)
class Server:
    """Connection settings of a remote Transmission daemon (immutable).

    Two servers are the same active server only if every field matches.
    """

    name: str
    host: str
    port: int
    scheme: str = "http"
    path: str = "/transmission/rpc"
    username: str | None = None
    password: str | None = None

    @property
    def url(self) -> str:
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{self.scheme}://{self.host}:{self.port}{path}"

    def __repr__(self) -> str:
        # keep credentials out of logs
        return (
            f"Server(name={self.name!r}, url={self.url!r}, "
            f"username={self.username!r})"
        )


@dataclass(frozen=True)
class Torrent:
    """Data Transfer Object for torrent list view (immutable).

    Note: All size fields are in bytes, all speed fields are in bytes/second.
    """

    id: int
    name: str
    status: int
    percent_done: float = 0.0
    metadata_percent_complete: float = 1.0
    is_stalled: bool = False
    is_finished: bool = False
    error: int = 0
    error_string: str = ""
    eta: int = -1  # seconds, negative when unknown
    total_size: int = 0  # bytes
    size_when_done: int = 0  # bytes
    left_until_done: int = 0  # bytes
    have_valid: int = 0  # bytes
    have_unchecked: int = 0  # bytes
    downloaded_ever: int = 0  # bytes
    uploaded_ever: int = 0  # bytes
    upload_ratio: float = 0.0
    rate_download: int = 0  # bytes/second
    rate_upload: int = 0  # bytes/second
    peers_connected: int = 0
    peers_getting_from_us: int = 0
    peers_sending_to_us: int = 0
    queue_position: int = 0
    added_date: int = 0  # unix timestamp
    activity_date: int = 0  # unix timestamp
    download_dir: str = ""
    labels: tuple[str, ...] = ()
    magnet_link: str = ""
    primary_mime_type: str | None = None
    bandwidth_priority: int = 0
    desired_available: int = 0  # bytes

    @property
    def downloaded_calc(self) -> int:
        return self.have_unchecked + self.have_valid

    @property
    def status_calc(self) -> TorrentStatusCalc:
        return calculate_status(
            self.status,
            self.percent_done,
            self.metadata_percent_complete,
            self.is_stalled,
        )

    @property
    def is_stopped(self) -> bool:
        return self.status == TorrentStatus.STOPPED


def calculate_status(
    status: int,
    percent_done: float,
    metadata_percent_complete: float,
    is_stalled: bool,
) -> TorrentStatusCalc:
    """Derive the display status category from raw torrent flags."""
    if status == TorrentStatus.STOPPED:
        if percent_done == 1:
            return TorrentStatusCalc.COMPLETE
        return TorrentStatusCalc.PAUSED

    if status in (
        TorrentStatus.QUEUED_TO_VERIFY,
        TorrentStatus.QUEUED_TO_DOWNLOAD,
        TorrentStatus.QUEUED_TO_SEED,
    ):
        return TorrentStatusCalc.QUEUED

    if status == TorrentStatus.VERIFYING:
        return TorrentStatusCalc.VERIFYING_LOCAL_DATA

    if status == TorrentStatus.DOWNLOADING:
        if metadata_percent_complete < 1:
            return TorrentStatusCalc.RETRIEVING_METADATA
        if is_stalled:
            return TorrentStatusCalc.STALLED
        return TorrentStatusCalc.DOWNLOADING

    if status == TorrentStatus.SEEDING:
        return TorrentStatusCalc.SEEDING

    return TorrentStatusCalc.UNKNOWN


@dataclass(frozen=True)
class TorrentFile:
    """Data Transfer Object for torrent file information.

    Note: All size fields are in bytes.
    """

    name: str
    length: int
    bytes_completed: int

    @property
    def percent_done(self) -> float:
        if self.length == 0:
            return 1.0
        return self.bytes_completed / self.length


@dataclass(frozen=True)
class TorrentFileStats:
    """Per-file download state, the unit of optimistic file mutations."""

    bytes_completed: int
    wanted: bool
    priority: FilePriority


@dataclass(frozen=True)
class TorrentFiles:
    """File list of one torrent with its positionally aligned stats.

    ``files[i]`` and ``file_stats[i]`` always describe the same file.
    """

    files: tuple[TorrentFile, ...] = ()
    file_stats: tuple[TorrentFileStats, ...] = ()

    def __post_init__(self) -> None:
        if len(self.files) != len(self.file_stats):
            raise ValueError(
                f"File list and file stats are not aligned: "
                f"{len(self.files)} files, {len(self.file_stats)} stats"
            )

    def __len__(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class CumulativeStats:
    downloaded_bytes: int
    uploaded_bytes: int
    files_added: int
    seconds_active: int
    session_count: int


@dataclass(frozen=True)
class SessionStats:
    """Aggregate counts and speeds reported by ``session-stats``.

    Note: All speed fields are in bytes/second.
    """

    active_torrent_count: int
    paused_torrent_count: int
    torrent_count: int
    download_speed: int
    upload_speed: int
    cumulative_stats: CumulativeStats | None = None
    current_stats: CumulativeStats | None = None


@dataclass(frozen=True)
class SessionInfo:
    """Daemon settings reported by ``session-get`` that the client manages.

    Note: speed limits are in kB/s as reported by Transmission.
    """

    download_dir: str = ""
    version: str = ""

    speed_limit_down: int = 0
    speed_limit_down_enabled: bool = False
    speed_limit_up: int = 0
    speed_limit_up_enabled: bool = False
    alt_speed_down: int = 0
    alt_speed_up: int = 0
    alt_speed_enabled: bool = False

    incomplete_dir: str = ""
    incomplete_dir_enabled: bool = False
    start_added_torrents: bool = True
    rename_partial_files: bool = True

    download_queue_enabled: bool = False
    download_queue_size: int = 0
    seed_queue_enabled: bool = False
    seed_queue_size: int = 0
    seed_ratio_limited: bool = False
    seed_ratio_limit: float = 2.0
    idle_seeding_limit: int = 30
    idle_seeding_limit_enabled: bool = False
    queue_stalled_enabled: bool = False
    queue_stalled_minutes: int = 30

    peer_port: int = 51413
    peer_port_random_on_start: bool = False
    port_forwarding_enabled: bool = False
    dht_enabled: bool = True
    pex_enabled: bool = True
    lpd_enabled: bool = False
    encryption: str = "preferred"
    utp_enabled: bool = True
    peer_limit_global: int = 200
    peer_limit_per_torrent: int = 50

    blocklist_enabled: bool = False
    blocklist_url: str = ""


@dataclass(frozen=True)
class RenameResult:
    """Response of ``torrent-rename-path``."""

    id: int
    path: str
    name: str


class ClientError(Exception):
    """Base exception for all client errors."""

    pass


class ValidationError(ClientError):
    """Input rejected locally before any request is sent."""

    pass
