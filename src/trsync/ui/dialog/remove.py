import textwrap

from textual.app import ComposeResult
from textual.binding import Binding
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Label, Static

from ...util.log import log_time
from ..util import subtitle_keys

MAX_LISTED_NAMES = 5


def remove_description(delete_local_data: bool) -> str:
    if delete_local_data:
        return (
            "All data downloaded for this torrent will be deleted. "
            "Are you sure you want to remove it?"
        )
    return (
        "Once removed, continuing the transfer will require the torrent "
        "file. Are you sure you want to remove it?"
    )


def remove_title(names: list[str], delete_local_data: bool) -> str:
    target = f"'{names[0]}'" if len(names) == 1 else f"{len(names)} torrents"
    if delete_local_data:
        return f"Remove {target} and delete data?"
    return f"Remove {target}?"


class RemoveTorrentDialog(ModalScreen[bool | None]):
    """Asks before removing torrents.

    Dismisses with None when cancelled, otherwise with the chosen
    ``delete_local_data`` flag.
    """

    BINDINGS = [
        Binding("y", "confirm", "[Confirmation] Yes"),
        Binding("d", "toggle_delete", "[Confirmation] Toggle data removal"),
        Binding("n,x,escape", "close", "[Confirmation] No"),
    ]

    r_delete_local_data: bool = reactive(False)

    @log_time
    def __init__(self, names: list[str], delete_local_data: bool = False):
        self.names = names
        super().__init__()
        self.set_reactive(
            RemoveTorrentDialog.r_delete_local_data, delete_local_data
        )

    @log_time
    def compose(self) -> ComposeResult:
        yield RemoveTorrentWidget(self.names, self.r_delete_local_data)

    def watch_r_delete_local_data(self, delete_local_data: bool) -> None:
        for widget in self.query(RemoveTorrentWidget):
            widget.r_delete_local_data = delete_local_data

    def action_toggle_delete(self) -> None:
        self.r_delete_local_data = not self.r_delete_local_data

    def action_confirm(self) -> None:
        self.dismiss(self.r_delete_local_data)

    def action_close(self) -> None:
        self.dismiss(None)


class RemoveTorrentWidget(Static):
    r_delete_local_data: bool = reactive(False, recompose=True)

    def __init__(self, names: list[str], delete_local_data: bool) -> None:
        self.names = names
        super().__init__()
        self.set_reactive(
            RemoveTorrentWidget.r_delete_local_data, delete_local_data
        )

    @log_time
    def compose(self) -> ComposeResult:
        yield Label(remove_title(self.names, self.r_delete_local_data))

        if len(self.names) > 1:
            yield Label("")
            for name in self.names[:MAX_LISTED_NAMES]:
                yield Label(f"- {textwrap.shorten(name, 54)}")
            if len(self.names) > MAX_LISTED_NAMES:
                yield Label(
                    f"...and {len(self.names) - MAX_LISTED_NAMES} more"
                )

        yield Label("")
        for line in textwrap.wrap(
            remove_description(self.r_delete_local_data), 56
        ):
            yield Label(line)

    def on_mount(self) -> None:
        self.border_title = "Remove"
        self.border_subtitle = subtitle_keys(
            ("Y", "Yes"), ("D", "Delete data"), ("N", "No")
        )
