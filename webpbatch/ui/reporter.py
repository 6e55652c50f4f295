import threading
from typing import Optional
from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table
from rich.text import Text
from webpbatch.domain.events import ConversionFinished, DiscoveryFinished, FileConverted, FileEvent, FileFailed
from webpbatch.infrastructure.event_bus import EventBus
from webpbatch.ui.formatting import format_duration, format_percent, format_size

NAME_WIDTH = 30
COLUMN_WIDTH = 10


class Reporter:
    """Subscribes to EventBus and prints one row per file plus the run totals."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None):
        self.bus = bus
        self.console = console or Console(highlight=False)
        self._lock = threading.Lock()
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(FileEvent, self.on_file_finished)
        self.bus.subscribe(ConversionFinished, self.on_conversion_finished)

    @staticmethod
    def _row(name: str, input_size: str, output_size: str, duration: str) -> str:
        return (
            f"{name:<{NAME_WIDTH}} | {input_size:<{COLUMN_WIDTH}} | "
            f"{output_size:<{COLUMN_WIDTH}} | {duration:<{COLUMN_WIDTH}}"
        )

    def on_discovery_finished(self, event: DiscoveryFinished):
        with self._lock:
            self.console.print(f"[dim]{event.files_found} file(s) found under {event.root}[/]")
            self.console.print(Text(self._row("Name", "Input", "Output", "Duration"), style="bold"))

    def on_file_finished(self, event: FileEvent):
        result = event.result
        row = Text(self._row(
            result.path.name,
            format_size(result.input_size),
            format_size(result.output_size),
            format_duration(result.duration_seconds),
        ))
        if isinstance(event, FileFailed):
            row.stylize("red")
            row.append(f"  {event.error_message}", style="red")
        elif isinstance(event, FileConverted) and result.used_fallback:
            row.append("  (kept initial)", style="yellow")

        with self._lock:
            self.console.print(row)

    def on_conversion_finished(self, event: ConversionFinished):
        stats = event.stats
        table = Table(title="TOTAL", box=SIMPLE, title_justify="left")
        table.add_column("Input Size")
        table.add_column("Output Size")
        table.add_column("Reduction")
        table.add_column("Duration")
        table.add_column("Images Count")
        table.add_row(
            format_size(stats.total_input_size),
            format_size(stats.total_output_size),
            format_percent(stats.reduction_percent),
            format_duration(event.duration_seconds),
            str(stats.file_count),
        )

        with self._lock:
            self.console.print()
            self.console.print(table)
            if stats.failed_count:
                self.console.print(f"[red]{stats.failed_count} file(s) failed to convert[/]")
