"""Rich terminal rendering of Freight and Stage state.

Color scheme
------------
- green   : Successful verification, approval
- red     : Failed / Error verification
- yellow  : Pending / Running verification
- magenta : Aborted / Inconclusive verification
"""

from __future__ import annotations

from datetime import datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from freightline.models.freight import Freight
from freightline.models.history import VerificationPhase
from freightline.models.stage import Stage

_PHASE_STYLES: dict[VerificationPhase, str] = {
    VerificationPhase.SUCCESSFUL: "green",
    VerificationPhase.FAILED: "bold red",
    VerificationPhase.ERROR: "bold red",
    VerificationPhase.PENDING: "yellow",
    VerificationPhase.RUNNING: "yellow",
    VerificationPhase.ABORTED: "magenta",
    VerificationPhase.INCONCLUSIVE: "magenta",
}


def _ts(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "[dim]-[/dim]"


def format_duration(value: timedelta) -> str:
    """Render a duration as ``1h2m3s``."""
    seconds = int(value.total_seconds())
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{secs}s"


def _artifact_summary(freight: Freight) -> str:
    parts = [f"{c.repo_url}@{c.id[:7]}" for c in freight.commits]
    parts += [f"{i.repo_url}:{i.tag or i.digest}" for i in freight.images]
    parts += [f"{c.name or c.repo_url}@{c.version}" for c in freight.charts]
    parts += [f"{a.artifact_type}:{a.version}" for a in freight.artifacts]
    return "\n".join(parts) if parts else "[dim]-[/dim]"


class ResourceRenderer:
    """Renders Freight lists and Stage histories as Rich tables.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def freight_table(self, freight: list[Freight], title: str = "Freight") -> Table:
        table = Table(title=title, header_style="bold cyan", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Origin")
        table.add_column("Artifacts")
        table.add_column("In use by")
        table.add_column("Verified in", style="green")
        table.add_column("Approved for", style="green")
        for f in freight:
            table.add_row(
                f.name[:12],
                str(f.origin),
                _artifact_summary(f),
                ", ".join(sorted(f.status.currently_in)) or "[dim]-[/dim]",
                ", ".join(sorted(f.status.verified_in)) or "[dim]-[/dim]",
                ", ".join(sorted(f.status.approved_for)) or "[dim]-[/dim]",
            )
        return table

    def freight_history_table(self, stage: Stage) -> Table:
        table = Table(title=f"Freight history of {stage.name}", header_style="bold cyan")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Freight", style="cyan", no_wrap=True)
        table.add_column("Origin")
        table.add_column("Artifacts")
        for i, ref in enumerate(stage.status.freight_history):
            table.add_row(
                str(i),
                ref.name[:12],
                str(ref.origin) if ref.origin else "[dim]-[/dim]",
                str(len(ref.commits) + len(ref.images) + len(ref.charts) + len(ref.artifacts)),
            )
        return table

    def verification_table(self, stage: Stage) -> Table:
        table = Table(title=f"Verification history of {stage.name}", header_style="bold cyan")
        table.add_column("#", style="dim", justify="right")
        table.add_column("ID", no_wrap=True)
        table.add_column("Phase", justify="center")
        table.add_column("Actor")
        table.add_column("Started")
        table.add_column("Finished")
        table.add_column("Message")
        for i, info in enumerate(stage.status.verification_history):
            if info.phase is None:
                phase = "[dim]-[/dim]"
            else:
                style = _PHASE_STYLES.get(info.phase, "")
                phase = f"[{style}]{info.phase.value}[/{style}]"
            table.add_row(
                str(i),
                info.id,
                phase,
                info.actor or "[dim]-[/dim]",
                _ts(info.start_time),
                _ts(info.finish_time),
                info.message or "[dim]-[/dim]",
            )
        return table

    def freight_panel(self, freight: Freight, heading: str) -> Panel:
        lines = [
            f"[bold green]{heading}[/bold green]",
            "",
            f"[bold]Name:[/bold]       {freight.name}",
            f"[bold]Namespace:[/bold]  {freight.namespace}",
            f"[bold]Origin:[/bold]     {freight.origin}",
            f"[bold]Commits:[/bold]    {len(freight.commits)}",
            f"[bold]Images:[/bold]     {len(freight.images)}",
            f"[bold]Charts:[/bold]     {len(freight.charts)}",
            f"[bold]Artifacts:[/bold]  {len(freight.artifacts)}",
        ]
        return Panel(
            "\n".join(lines),
            title="[bold]Freightline[/bold]",
            border_style="green",
            padding=(1, 2),
        )

    def print_stage_history(self, stage: Stage) -> None:
        self.console.print(self.freight_history_table(stage))
        self.console.print()
        self.console.print(self.verification_table(stage))
