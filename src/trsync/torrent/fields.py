"""Wire field names of the Transmission RPC protocol.

Keys on the left are in-memory attribute names, values on the right are
the exact JSON keys the daemon sends. ``transmission_rpc`` exposes them
unchanged through the ``fields`` dict of its objects. The daemon mixes
camelCase and hyphenated keys, so every table is spelled out rather than
derived.
"""

from typing import Any

from .models import (
    CumulativeStats,
    FilePriority,
    SessionInfo,
    SessionStats,
    Torrent,
    TorrentFile,
    TorrentFiles,
    TorrentFileStats,
)

TORRENT_FIELDS: dict[str, str] = {
    "id": "id",
    "name": "name",
    "status": "status",
    "percent_done": "percentDone",
    "metadata_percent_complete": "metadataPercentComplete",
    "is_stalled": "isStalled",
    "is_finished": "isFinished",
    "error": "error",
    "error_string": "errorString",
    "eta": "eta",
    "total_size": "totalSize",
    "size_when_done": "sizeWhenDone",
    "left_until_done": "leftUntilDone",
    "have_valid": "haveValid",
    "have_unchecked": "haveUnchecked",
    "downloaded_ever": "downloadedEver",
    "uploaded_ever": "uploadedEver",
    "upload_ratio": "uploadRatio",
    "rate_download": "rateDownload",
    "rate_upload": "rateUpload",
    "peers_connected": "peersConnected",
    "peers_getting_from_us": "peersGettingFromUs",
    "peers_sending_to_us": "peersSendingToUs",
    "queue_position": "queuePosition",
    "added_date": "addedDate",
    "activity_date": "activityDate",
    "download_dir": "downloadDir",
    "labels": "labels",
    "magnet_link": "magnetLink",
    "primary_mime_type": "primary-mime-type",
    "bandwidth_priority": "bandwidthPriority",
    "desired_available": "desiredAvailable",
}

FILE_FIELDS: dict[str, str] = {
    "name": "name",
    "length": "length",
    "bytes_completed": "bytesCompleted",
}

FILE_STATS_FIELDS: dict[str, str] = {
    "bytes_completed": "bytesCompleted",
    "wanted": "wanted",
    "priority": "priority",
}

CUMULATIVE_STATS_FIELDS: dict[str, str] = {
    "downloaded_bytes": "downloadedBytes",
    "uploaded_bytes": "uploadedBytes",
    "files_added": "filesAdded",
    "seconds_active": "secondsActive",
    "session_count": "sessionCount",
}

SESSION_STATS_FIELDS: dict[str, str] = {
    "active_torrent_count": "activeTorrentCount",
    "paused_torrent_count": "pausedTorrentCount",
    "torrent_count": "torrentCount",
    "download_speed": "downloadSpeed",
    "upload_speed": "uploadSpeed",
    "cumulative_stats": "cumulative-stats",
    "current_stats": "current-stats",
}

SESSION_FIELDS: dict[str, str] = {
    "download_dir": "download-dir",
    "version": "version",
    "speed_limit_down": "speed-limit-down",
    "speed_limit_down_enabled": "speed-limit-down-enabled",
    "speed_limit_up": "speed-limit-up",
    "speed_limit_up_enabled": "speed-limit-up-enabled",
    "alt_speed_down": "alt-speed-down",
    "alt_speed_up": "alt-speed-up",
    "alt_speed_enabled": "alt-speed-enabled",
    "incomplete_dir": "incomplete-dir",
    "incomplete_dir_enabled": "incomplete-dir-enabled",
    "start_added_torrents": "start-added-torrents",
    "rename_partial_files": "rename-partial-files",
    "download_queue_enabled": "download-queue-enabled",
    "download_queue_size": "download-queue-size",
    "seed_queue_enabled": "seed-queue-enabled",
    "seed_queue_size": "seed-queue-size",
    "seed_ratio_limited": "seedRatioLimited",
    "seed_ratio_limit": "seedRatioLimit",
    "idle_seeding_limit": "idle-seeding-limit",
    "idle_seeding_limit_enabled": "idle-seeding-limit-enabled",
    "queue_stalled_enabled": "queue-stalled-enabled",
    "queue_stalled_minutes": "queue-stalled-minutes",
    "peer_port": "peer-port",
    "peer_port_random_on_start": "peer-port-random-on-start",
    "port_forwarding_enabled": "port-forwarding-enabled",
    "dht_enabled": "dht-enabled",
    "pex_enabled": "pex-enabled",
    "lpd_enabled": "lpd-enabled",
    "encryption": "encryption",
    "utp_enabled": "utp-enabled",
    "peer_limit_global": "peer-limit-global",
    "peer_limit_per_torrent": "peer-limit-per-torrent",
    "blocklist_enabled": "blocklist-enabled",
    "blocklist_url": "blocklist-url",
}

TORRENT_LIST_PROJECTION: list[str] = list(TORRENT_FIELDS.values())
TORRENT_FILES_PROJECTION: list[str] = ["id", "files", "fileStats"]


def from_wire(values: dict[str, Any], table: dict[str, str]) -> dict[str, Any]:
    """Translate wire keys to in-memory keys, dropping unknown keys."""
    return {k: values[w] for k, w in table.items() if w in values}


def parse_torrent(data: dict[str, Any]) -> Torrent:
    values = from_wire(data, TORRENT_FIELDS)
    if "labels" in values:
        values["labels"] = tuple(values["labels"] or ())
    return Torrent(**values)


def parse_cumulative_stats(
    data: dict[str, Any] | None,
) -> CumulativeStats | None:
    if not data:
        return None
    values = from_wire(data, CUMULATIVE_STATS_FIELDS)
    for name in CUMULATIVE_STATS_FIELDS:
        values.setdefault(name, 0)
    return CumulativeStats(**values)


def parse_session_stats(data: dict[str, Any]) -> SessionStats:
    values = from_wire(data, SESSION_STATS_FIELDS)
    values["cumulative_stats"] = parse_cumulative_stats(
        values.get("cumulative_stats")
    )
    values["current_stats"] = parse_cumulative_stats(
        values.get("current_stats")
    )
    return SessionStats(**values)


def parse_session_info(data: dict[str, Any]) -> SessionInfo:
    return SessionInfo(**from_wire(data, SESSION_FIELDS))


def parse_torrent_files(data: dict[str, Any]) -> TorrentFiles:
    files = tuple(
        TorrentFile(**from_wire(f, FILE_FIELDS)) for f in data.get("files", [])
    )
    file_stats = []
    for s in data.get("fileStats", []):
        values = from_wire(s, FILE_STATS_FIELDS)
        values["priority"] = FilePriority(values.get("priority", 0))
        file_stats.append(TorrentFileStats(**values))

    return TorrentFiles(files=files, file_stats=tuple(file_stats))
