"""Monitor dashboard — builds Rich renderables from MonitorState."""

from __future__ import annotations

from datetime import datetime

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hpx.tui.state import MonitorState

_LIST_STYLES = {
    "whitelist": "green",
    "blacklist": "red",
    "graylist": "yellow",
}


class MonitorDisplay:
    """Builds the dashboard shown while a temporary program is attached."""

    def render(self, state: MonitorState) -> Group:
        panels = [self._render_header(state)]
        for list_name in ("whitelist", "blacklist", "graylist"):
            if list_name in state.observed:
                panels.append(self._render_list(state, list_name))
        return Group(*panels)

    def _render_header(self, state: MonitorState) -> Panel:
        polled = (
            datetime.fromtimestamp(state.last_poll).strftime("%H:%M:%S")
            if state.last_poll
            else "never"
        )
        text = Text.from_markup(
            f"[bold]HPX[/bold]  Program: [cyan]{state.program_name}[/cyan]"
            f" (id {state.program_id})   Interface: [cyan]{state.interface}[/cyan]\n"
            f"Polls: {state.polls}   Last poll: {polled}   "
            "[dim]Ctrl+C to detach[/dim]"
        )
        return Panel(text, style="bold")

    def _render_list(self, state: MonitorState, list_name: str) -> Panel:
        style = _LIST_STYLES[list_name]
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="dim")
        table.add_column()

        table.add_row("Preloaded IPs", str(state.preloaded.get(list_name, 0)))
        table.add_row(f"Total {list_name}ed IPs", f"[bold]{state.total(list_name)}[/bold]")
        last = state.last_ip(list_name)
        table.add_row("Last IP", f"[bold]{last}[/bold]" if last else f"No {list_name}ed IPs.")

        for record in state.busiest(list_name, limit=3):
            if record.rx_packets:
                table.add_row(
                    f"  {record.ip}",
                    f"{record.rx_packets} packets, {record.fast_packets} fast",
                )

        return Panel(table, title=list_name.upper(), border_style=style)
