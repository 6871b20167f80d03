"""Error reports and the terminal diagnostic overlay."""

import traceback as tb
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from relive.errors import describe

RESUME_HINT = "If you fix the problem and update the file the program will resume"


class ErrorReport(BaseModel):
    """What the error state shows to the developer."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    message: str
    traceback: str = ""
    file: str | None = None
    entry_point: str | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        file: str | None = None,
        entry_point: str | None = None,
        with_traceback: bool = True,
    ) -> "ErrorReport":
        trace = ""
        if with_traceback:
            trace = "".join(tb.format_exception(exc)).replace("\t", "").strip()
        return cls(message=describe(exc), traceback=trace, file=file, entry_point=entry_point)


def render_error(report: ErrorReport) -> Panel:
    """Build the rich renderable for an error report."""
    parts = [
        Text(RESUME_HINT, style="cyan"),
        Rule(style="grey50"),
        Text(report.message, style="bold"),
    ]
    if report.file:
        parts.append(Text(f"in {report.file}", style="grey62"))
    if report.traceback:
        parts.extend([Text(""), Text(report.traceback, style="grey74")])

    return Panel(
        Group(*parts),
        title="[bold red]An error has occurred[/bold red]",
        subtitle="relive",
        border_style="red",
    )


class TerminalOverlay:
    """Draw handler that prints each error report once to a console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(stderr=True)
        self._shown: str | None = None

    def __call__(self, report: ErrorReport) -> None:
        if report.id == self._shown:
            return
        self._shown = report.id
        self.console.print(render_error(report))
