from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class PathSet(BaseModel):
    """Flattened input tree plus the root it mirrors onto."""
    root: Path
    files: List[Path] = Field(default_factory=list)
    output_root: Path

class ConversionTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: Path
    output: Path

class ConversionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    input_size: int = Field(default=0, ge=0)
    output_size: int = Field(default=0, ge=0)
    ok: bool = True
    output_path: Optional[Path] = None
    duration_seconds: float = 0.0
    error_message: Optional[str] = None
    used_fallback: bool = False

    @classmethod
    def failed(cls, path: Path, input_size: int, error_message: str, duration_seconds: float = 0.0) -> "ConversionResult":
        return cls(
            path=path,
            input_size=input_size,
            output_size=0,
            ok=False,
            error_message=error_message,
            duration_seconds=duration_seconds,
        )

class AggregateStats(BaseModel):
    """Run totals. ``combine`` is associative and commutative, identity is ``AggregateStats()``."""
    model_config = ConfigDict(frozen=True)

    total_input_size: int = Field(default=0, ge=0)
    total_output_size: int = Field(default=0, ge=0)
    file_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)

    @classmethod
    def from_result(cls, result: ConversionResult) -> "AggregateStats":
        return cls(
            total_input_size=result.input_size,
            total_output_size=result.output_size if result.ok else 0,
            file_count=1,
            failed_count=0 if result.ok else 1,
        )

    def combine(self, other: "AggregateStats") -> "AggregateStats":
        return AggregateStats(
            total_input_size=self.total_input_size + other.total_input_size,
            total_output_size=self.total_output_size + other.total_output_size,
            file_count=self.file_count + other.file_count,
            failed_count=self.failed_count + other.failed_count,
        )

    __add__ = combine

    @property
    def reduction_percent(self) -> float:
        if self.total_input_size == 0:
            return 0.0
        return 100.0 * (self.total_input_size - self.total_output_size) / self.total_input_size
