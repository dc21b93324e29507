"""Rich-based progress display for issue summary runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from tqdm import tqdm

if TYPE_CHECKING:
    from .models import IssueSummaryResult

RECENT_BATCHES_SHOWN = 5
BAR_WIDTH = 30


@dataclass
class BatchStart:
    """First paper of a batch as reported by the progress callback."""

    current: int
    paper_title: str
    started_at: float = field(default_factory=time.time)


class RichProgressTracker:
    """Live panel fed by the pipeline's ``on_progress`` callback.

    Instances are callable with ``(current, total, paper_title)``. ``current``
    is the position of the first paper of the batch being started, so the bar
    moves one batch at a time.
    """

    def __init__(self, title: str, console: Console | None = None) -> None:
        self.console = console or Console()
        self.title = title
        self.current = 0
        self.total = 0
        self.batches: list[BatchStart] = []
        self.status = "pending"  # pending, running, completed, failed
        self.details = ""
        self.token_usage = 0
        self.estimated_cost = 0.0
        self._live: Live | None = None
        self._start_time: float = time.time()

    def start(self) -> None:
        """Start the live display."""
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop the live display."""
        if self._live:
            self._live.stop()
            self._live = None

    def __call__(self, current: int, total: int, paper_title: str) -> None:
        self.status = "running"
        self.current = current
        self.total = total
        self.batches.append(BatchStart(current=current, paper_title=paper_title))
        self._refresh()

    def finish(self, result: IssueSummaryResult) -> None:
        self.status = "completed"
        self.current = self.total = result.paper_count
        self.token_usage = result.tokens_extraction + result.tokens_synthesis
        self.estimated_cost = result.cost_estimate
        failed = len(result.failed_papers)
        self.details = f"{len(result.extractions)} extracted, {failed} failed"
        self._refresh()

    def fail(self, error: Exception) -> None:
        self.status = "failed"
        self.details = str(error)
        self._refresh()

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._render())

    def _render(self) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Content", ratio=1)

        header = Text(f"📚 {self.title}")
        header.stylize("bold cyan")
        table.add_row(header)
        table.add_row(self._format_bar())

        for batch in self.batches[-RECENT_BATCHES_SHOWN:]:
            line = Text(f"   ├── #{batch.current} {batch.paper_title}")
            line.stylize("dim")
            table.add_row(line)

        if self.details:
            details = Text(f"   {self.details}")
            details.stylize("red" if self.status == "failed" else "green")
            table.add_row(details)

        footer = Text()
        footer.append("💰 Token Usage: ", style="bold yellow")
        footer.append(f"{self.token_usage:,}", style="yellow")
        footer.append(" | Est. Cost: ", style="dim")
        footer.append(f"${self.estimated_cost:.4f}", style="green")
        footer.append(
            f" | Elapsed: {self._format_time(time.time() - self._start_time)}",
            style="dim",
        )
        table.add_row(footer)

        return Panel(
            table,
            title="[bold blue]Issue Trend Synthesis[/bold blue]",
            border_style="blue",
        )

    def _format_bar(self) -> Text:
        ratio = self.current / self.total if self.total else 0.0
        filled = int(ratio * BAR_WIDTH)
        bar = Text(f"   {'█' * filled}{'░' * (BAR_WIDTH - filled)} ")
        bar.append(f"{self.current}/{self.total} papers", style="bold")
        if self.status == "running":
            bar.stylize("yellow")
        elif self.status == "completed":
            bar.stylize("green")
        elif self.status == "failed":
            bar.stylize("red")
        return bar

    def _format_time(self, seconds: float) -> str:
        """Format elapsed time as human readable string."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m{secs:02d}s"


class TqdmProgressAdapter:
    """Same callback interface as :class:`RichProgressTracker`, drawn with tqdm."""

    def __init__(self, title: str, **kwargs) -> None:
        self.title = title
        self._kwargs = kwargs
        self._bar: tqdm | None = None

    def start(self) -> None:
        pass

    def stop(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def __call__(self, current: int, total: int, paper_title: str) -> None:
        if self._bar is None:
            self._bar = tqdm(total=total, desc=self.title, unit="paper", **self._kwargs)
        self._bar.set_postfix_str(paper_title[:40])
        self._bar.update(max(current - self._bar.n, 0))

    def finish(self, result: IssueSummaryResult) -> None:
        if self._bar is not None:
            self._bar.update(max(result.paper_count - self._bar.n, 0))

    def fail(self, error: Exception) -> None:
        pass
