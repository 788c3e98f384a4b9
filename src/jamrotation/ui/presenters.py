from __future__ import annotations

from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.models import Band, Instrument, Musician
from ..core.stats import MusicianStats, SessionStats
from ..data.catalog import Game
from ..features.session.schemas import TimerPayload

_ROLE_STYLE = {
    Instrument.DRUMS: "bold red",
    Instrument.BASS: "bold yellow",
    Instrument.GUITAR: "bold green",
    Instrument.KEYS: "bold cyan",
    Instrument.VOICE: "bold magenta",
    Instrument.OTHER: "bold white",
}


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class RichPresenter:
    def __init__(self, *, no_color: bool = False, console: Console | None = None):
        if console is not None:
            self.console = console
        elif no_color:
            self.console = Console(force_terminal=False, color_system=None)
        else:
            self.console = Console()

    def info(self, message: str) -> None:
        self.console.print(f"[green]✓[/] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]✗[/] {message}")

    def _role(self, role: Instrument, label: str | None = None) -> str:
        style = _ROLE_STYLE.get(role, "bold")
        return f"[{style}]{label or role.value}[/]"

    def show_roster(self, musicians: Sequence[Musician]) -> None:
        table = Table(title="Roster", box=box.SIMPLE_HEAVY)
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Handle")
        table.add_column("Instruments")
        table.add_column("Status")
        for musician in musicians:
            instruments = ", ".join(self._role(inst, musician.role_label(inst)) for inst in musician.instruments)
            status = "[green]ACTIVE[/]" if musician.is_active else "[yellow]PAUSED[/]"
            table.add_row(musician.id, musician.display_name, f"@{musician.username}", instruments, status)
        self.console.print(table)

    def band_panel(self, band: Band, *, title: str | None = None, timer: TimerPayload | None = None) -> Panel:
        lines = []
        for member in band.members:
            label = member.musician.role_label(member.role)
            lines.append(f"{self._role(member.role, label.ljust(10))} {member.musician.display_name}")
        if not lines:
            lines.append("[dim]no members yet[/]")
        subtitle = f"{band.duration_minutes:g} min"
        if band.is_manual:
            subtitle += " • manual"
        if timer is not None:
            state = "running" if timer.running else "paused"
            lines.insert(0, f"[bold]{format_clock(timer.seconds_left)}[/] {state}\n")
        return Panel("\n".join(lines), title=title or band.name, subtitle=subtitle, border_style="cyan", expand=False)

    def show_band(self, band: Band, *, title: str | None = None) -> None:
        self.console.print(self.band_panel(band, title=title))

    def show_queue(self, queue: Sequence[Band], timer: TimerPayload) -> None:
        if not queue:
            self.console.print("[dim]Queue is empty.[/]")
            return
        head, rest = queue[0], queue[1:]
        self.console.print(self.band_panel(head, title=f"ON STAGE: {head.name}", timer=timer))
        for position, band in enumerate(rest, start=2):
            self.console.print(self.band_panel(band, title=f"#{position} {band.name}"))

    def show_history(self, history: Sequence[Band]) -> None:
        table = Table(title="History", box=box.SIMPLE_HEAVY)
        table.add_column("#", justify="right")
        table.add_column("Band")
        table.add_column("Members")
        table.add_column("Ended")
        table.add_column("Games")
        for index, band in enumerate(history, start=1):
            members = ", ".join(member.musician.display_name for member in band.members)
            table.add_row(str(index), band.name, members, band.end_time or "-", ", ".join(band.played_games) or "-")
        self.console.print(table)

    def show_stats(self, stats: SessionStats) -> None:
        grid = Table.grid(padding=(0, 1))
        grid.add_column(style="bold cyan", justify="right")
        grid.add_column()
        grid.add_row("Jams", f"{stats.total_jams} ({stats.archived_jams} played)")
        grid.add_row("Marathon", _highlight(stats.marathon, f"{stats.marathon.minutes_played:g} min" if stats.marathon else ""))
        grid.add_row(
            "All-rounder",
            _highlight(stats.all_rounder, f"{len(stats.all_rounder.instruments_played)} instruments" if stats.all_rounder else ""),
        )
        self.console.print(Panel(grid, title="Hall of Fame", border_style="yellow", expand=False))

        top = Table(title="Most appearances", box=box.SIMPLE)
        top.add_column("Musician")
        top.add_column("Jams", justify="right")
        top.add_column("Minutes", justify="right")
        for entry in stats.top_musicians:
            top.add_row(entry.name, str(entry.appearances), f"{entry.minutes_played:g}")
        self.console.print(top)

        roles = Table(title="Roles", box=box.SIMPLE)
        roles.add_column("Role")
        roles.add_column("Count", justify="right")
        for role, count in stats.role_totals:
            roles.add_row(self._role(role), str(count))
        self.console.print(roles)

    def show_games(self, games: Sequence[Game]) -> None:
        for game in games:
            self.console.print(Panel(game.description, title=f"{game.title} [dim]({game.id})[/]", expand=False))


def _highlight(entry: MusicianStats | None, detail: str) -> str:
    if entry is None:
        return "[dim]-[/]"
    return f"{entry.name} [dim]({detail})[/]"
