"""Notification sink through which the core reports to the UI layer."""

from ..torrent.models import TransmissionResponse
from ..util.log import get_logger

logger = get_logger()


class Notifier:
    """Receives error and connection-state reports from the core.

    The default implementation only logs; UI adapters override the
    methods they can display.
    """

    def error(self, brief: str, detail: str = "") -> None:
        """Report an error with a short headline and optional details."""
        logger.warning(f"{brief} {detail}".strip())

    def info(self, message: str) -> None:
        logger.info(message)

    def connection_error(self, is_error: bool) -> None:
        """Report a change of the connection-error flag."""
        if is_error:
            logger.error("Connection to server lost")
        else:
            logger.info("Connection to server restored")


class RecordingNotifier(Notifier):
    """Notifier that keeps everything it receives, for tests and scripts."""

    def __init__(self) -> None:
        self.errors: list[tuple[str, str]] = []
        self.messages: list[str] = []
        self.connection_events: list[bool] = []

    def error(self, brief: str, detail: str = "") -> None:
        super().error(brief, detail)
        self.errors.append((brief, detail))

    def info(self, message: str) -> None:
        super().info(message)
        self.messages.append(message)

    def connection_error(self, is_error: bool) -> None:
        super().connection_error(is_error)
        self.connection_events.append(is_error)


def describe_response(response: TransmissionResponse) -> str:
    match response:
        case TransmissionResponse.UNAUTHORIZED:
            return "The server rejected the credentials."
        case TransmissionResponse.CONFIG_ERROR:
            return "The server rejected the request; check the settings."
        case TransmissionResponse.FAILED:
            return "Couldn't reach the server."
    return ""
