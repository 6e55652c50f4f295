"""Domain events for the conversion pipeline.

Events flow through the EventBus and decouple the engine from the console
reporter. Subscribers are called synchronously on the publishing thread, so
per-file events arrive from worker threads.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from pydantic import BaseModel
from .models import AggregateStats, ConversionResult


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class DiscoveryFinished(Event):
    """Emitted once the input tree has been flattened."""

    root: Path
    files_found: int


class FileEvent(Event):
    """Base class for events about a single converted file."""

    result: ConversionResult


class FileConverted(FileEvent):
    """Emitted when a file was written successfully."""

    pass


class FileFailed(FileEvent):
    """Emitted when a file failed and was folded in as a zero-output result."""

    error_message: str


class ConversionFinished(Event):
    """Emitted after every task finished and results were reduced."""

    stats: AggregateStats
    duration_seconds: float
