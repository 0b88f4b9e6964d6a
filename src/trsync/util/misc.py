import unicodedata
from urllib.parse import parse_qsl, urlsplit

from .log import log_time

MAGNET_MAX_LENGTH = 4096

FAILURE_SUMMARY_MAX_LISTED = 10


@log_time
def is_torrent_link(text: str) -> bool:
    """Check if text appears to be a torrent link or magnet URI.

    Case-insensitive check for magnet:, http://, or https:// prefixes.
    """
    return text.strip().lower().startswith(("magnet:", "http://", "https://"))


@log_time
def is_valid_magnet(magnet: str) -> bool:
    """Check that a magnet URI carries a BitTorrent info hash.

    Requires the magnet scheme and an ``xt`` parameter starting with
    ``urn:btih:``; overlong links are rejected.
    """
    if len(magnet) > MAGNET_MAX_LENGTH:
        return False

    parts = urlsplit(magnet.strip())
    if parts.scheme.lower() != "magnet":
        return False

    for key, value in parse_qsl(parts.query):
        if key.lower() == "xt":
            return value.lower().startswith("urn:btih:")

    return False


@log_time
def validate_new_name(name: str) -> str | None:
    """Validate a proposed name for a torrent root or path component.

    Returns:
        None if the name is valid, otherwise a short error message
    """
    trimmed = name.strip()
    if not trimmed:
        return "Name cannot be empty."
    if "/" in trimmed or ":" in trimmed:
        return "Name cannot contain path separators."
    if any(unicodedata.category(ch) == "Cc" for ch in trimmed):
        return "Name contains invalid characters."
    return None


def summarize_failures(
    failures: list[tuple[str, str]],
    max_listed: int = FAILURE_SUMMARY_MAX_LISTED,
) -> tuple[str, str] | None:
    """Collapse per-item failures into a single brief/detail pair.

    Args:
        failures: List of (item name, error message) tuples
        max_listed: Maximum number of items listed in the detail text

    Returns:
        Tuple of (brief, detail), or None when there are no failures
    """
    if not failures:
        return None

    count = len(failures)
    if count == 1:
        name, message = failures[0]
        return f"Failed to open '{name}'", message

    listed = failures[:max_listed]
    details = "\n".join(f"- {name}: {message}" for name, message in listed)
    remainder = count - len(listed)
    if remainder > 0:
        details += f"\n...and {remainder} more"

    return f"Failed to open {count} torrent files", details
