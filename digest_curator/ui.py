"""Friendly CLI interface for pipeline progress, built on rich."""

import time
from contextlib import contextmanager
from dataclasses import dataclass

from rich import box
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text


@dataclass
class StageResult:
    """Result from a pipeline stage."""
    input_count: int
    output_count: int
    duration: float
    details: str | None = None


class FriendlyUI:
    """Progress display for the curation pipeline.

    Everything goes to stderr so the rendered digest can be piped from stdout.
    """

    def __init__(self, verbose: bool = False, console: Console | None = None):
        self.verbose = verbose
        self.start_time = time.time()
        self.stage_results: dict[str, StageResult] = {}
        self.console = console or Console(stderr=True)

    def show_banner(self):
        """Show the startup banner."""
        title = Text("DIGEST CURATOR", style="bold bright_cyan")
        subtitle = Text("code intelligence and developer tooling digest", style="dim bright_blue")
        self.console.print(Panel(
            Align.center(Text.assemble(title, "\n", subtitle)),
            border_style="bright_cyan",
            box=box.ROUNDED,
        ))

    def _message(self, label: str, color: str, message: str):
        styled_message = Text()
        styled_message.append("▸ ", style=f"bold {color}")
        styled_message.append(label, style=f"bold black on {color}")
        styled_message.append(" ", style=color)
        styled_message.append(message, style=color)
        self.console.print(styled_message)

    def info(self, message: str):
        self._message("INFO", "bright_blue", message)

    def success(self, message: str):
        self._message("SUCCESS", "bright_green", message)

    def warning(self, message: str):
        self._message("WARNING", "bright_yellow", message)

    def error(self, message: str):
        self._message("ERROR", "bright_red", message)

    def verbose_log(self, message: str):
        """Log message only in verbose mode."""
        if self.verbose:
            self.console.print(Text(f"   ◦ {message}", style="dim bright_cyan"))

    def show_model_info(self, model_name: str):
        model_text = Text()
        model_text.append("▸ MODEL: ", style="bold bright_magenta")
        model_text.append(model_name, style="bold bright_cyan")
        self.console.print(model_text)

    @contextmanager
    def stage(self, name: str):
        """Context manager showing a spinner while a pipeline stage runs."""
        stage_start = time.time()

        with Progress(
            SpinnerColumn("dots", style="bold bright_green"),
            TextColumn("[bold bright_cyan]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(name, total=None)
            try:
                yield progress, task
            except Exception as e:
                self.error(f"{name} failed: {e}")
                raise

        duration = time.time() - stage_start
        self.console.print(f"   [dim]{name} completed in {duration:.1f}s[/dim]")

    def record_stage(self, name: str, input_count: int, output_count: int, duration: float = 0.0,
                     details: str | None = None):
        self.stage_results[name] = StageResult(input_count, output_count, duration, details)
        self.verbose_log(f"{name}: {input_count} -> {output_count}" + (f" ({details})" if details else ""))

    def show_final_summary(self,
                           total_items: int,
                           curated_items: int,
                           unique_items: int,
                           selected_items: int,
                           model_used: str,
                           output_file: str | None = None):
        """Show the end-of-run summary table."""
        duration = time.time() - self.start_time

        summary_table = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
        summary_table.add_column("Metric", style="dim blue")
        summary_table.add_column("Value", style="bold bright_blue")

        summary_table.add_row("Candidate items", str(total_items))
        summary_table.add_row("Rated by curator", str(curated_items))
        summary_table.add_row("After dedupe", str(unique_items))
        summary_table.add_row("Final selection", str(selected_items))
        summary_table.add_row("Model used", model_used)
        if output_file:
            summary_table.add_row("Output file", output_file)
        summary_table.add_row("Total time", f"{duration:.1f}s")

        self.console.print()
        self.console.print(Panel(
            summary_table,
            title="[bold cyan]Digest ready[/bold cyan]",
            title_align="center",
            box=box.ROUNDED,
            border_style="bright_blue",
        ))


# Global UI instance
_ui_instance: FriendlyUI | None = None


def init_ui(verbose: bool = False) -> FriendlyUI:
    """Initialize UI for the session."""
    global _ui_instance
    _ui_instance = FriendlyUI(verbose=verbose)
    return _ui_instance
