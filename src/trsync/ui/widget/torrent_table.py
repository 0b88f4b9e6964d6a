from rich.text import Text
from textual.binding import Binding
from textual.reactive import reactive
from textual.widgets import DataTable

from ...torrent.models import QueueDirection, Torrent, TorrentStatusCalc
from ...util.log import log_time
from ...util.print import print_eta, print_ratio, print_size, print_speed
from ..messages import (
    MoveTorrentCommand,
    PauseTorrentCommand,
    ReannounceTorrentCommand,
    RemoveTorrentCommand,
    ResumeTorrentCommand,
    ToggleTorrentCommand,
    VerifyTorrentCommand,
)
from ..models import should_disable_pause, should_disable_resume

STATUS_STYLES = {
    TorrentStatusCalc.DOWNLOADING: "bold green",
    TorrentStatusCalc.SEEDING: "cyan",
    TorrentStatusCalc.COMPLETE: "dim cyan",
    TorrentStatusCalc.PAUSED: "dim",
    TorrentStatusCalc.STALLED: "yellow",
    TorrentStatusCalc.RETRIEVING_METADATA: "yellow",
}


class TorrentTable(DataTable):
    """Torrent list; rows are keyed by torrent id."""

    BINDINGS = [
        Binding("k", "cursor_up", "[Navigation] Move up"),
        Binding("j", "cursor_down", "[Navigation] Move down"),
        Binding("p", "toggle_torrent", "[Torrent] Toggle state"),
        Binding("P", "pause_torrent", "[Torrent] Pause"),
        Binding("u", "resume_torrent", "[Torrent] Resume"),
        Binding("r", "remove_torrent", "[Torrent] Remove"),
        Binding("R", "trash_torrent", "[Torrent] Trash with data"),
        Binding("v", "verify_torrent", "[Torrent] Verify"),
        Binding("c", "reannounce_torrent", "[Torrent] Reannounce"),
        Binding("K", "move('up')", "[Queue] Move up"),
        Binding("J", "move('down')", "[Queue] Move down"),
        Binding("g", "move('top')", "[Queue] Move to top"),
        Binding("G", "move('bottom')", "[Queue] Move to bottom"),
    ]

    COLUMNS = ("Name", "Status", "Done", "Size", "Down", "Up", "ETA", "Ratio")

    r_torrents: list[Torrent] = reactive(list, always_update=True)

    def __init__(self, **kwargs) -> None:
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)

    def on_mount(self) -> None:
        self.add_columns(*self.COLUMNS)

    @log_time
    def watch_r_torrents(self, torrents: list[Torrent]) -> None:
        selected = self.selected_id

        self.clear()
        for t in torrents:
            self.add_row(*self.render_torrent(t), key=str(t.id))

        if selected is not None and any(t.id == selected for t in torrents):
            self.move_cursor(row=self.get_row_index(str(selected)))
        self.refresh_bindings()

    def on_data_table_row_highlighted(
        self, event: DataTable.RowHighlighted
    ) -> None:
        self.refresh_bindings()

    @staticmethod
    def render_torrent(t: Torrent) -> tuple[str | Text, ...]:
        status = t.status_calc
        return (
            t.name,
            Text(status.value, style=STATUS_STYLES.get(status, "")),
            f"{t.percent_done:.0%}",
            print_size(t.size_when_done),
            print_speed(t.rate_download),
            print_speed(t.rate_upload),
            print_eta(t.eta),
            print_ratio(t.upload_ratio),
        )

    @property
    def selected_torrent(self) -> Torrent | None:
        torrent_id = self.selected_id
        for t in self.r_torrents:
            if t.id == torrent_id:
                return t
        return None

    def check_action(
        self, action: str, parameters: tuple[object, ...]
    ) -> bool | None:
        if action == "pause_torrent":
            selection = [t] if (t := self.selected_torrent) else []
            return None if should_disable_pause(selection) else True
        if action == "resume_torrent":
            selection = [t] if (t := self.selected_torrent) else []
            return None if should_disable_resume(selection) else True
        return True

    @property
    def selected_id(self) -> int | None:
        if self.row_count == 0:
            return None
        row_key, _ = self.coordinate_to_cell_key(self.cursor_coordinate)
        return int(row_key.value)

    def action_toggle_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(ToggleTorrentCommand(torrent_id))

    def action_pause_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(PauseTorrentCommand(torrent_id))

    def action_resume_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(ResumeTorrentCommand(torrent_id))

    def action_remove_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(RemoveTorrentCommand(torrent_id))

    def action_trash_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(
                RemoveTorrentCommand(torrent_id, delete_local_data=True)
            )

    def action_verify_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(VerifyTorrentCommand(torrent_id))

    def action_reannounce_torrent(self) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(ReannounceTorrentCommand(torrent_id))

    def action_move(self, direction: str) -> None:
        if (torrent_id := self.selected_id) is not None:
            self.post_message(
                MoveTorrentCommand(torrent_id, QueueDirection(direction))
            )
