import os
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

FallbackSource = Literal["original", "pixels"]

def _default_threads() -> int:
    return os.cpu_count() or 1

class ConversionConfig(BaseModel):
    """Settings shared read-only by every conversion task of a run."""
    model_config = ConfigDict(frozen=True)

    # quality and method are range-checked by the encoder, not here
    quality: int = 100
    lossless: bool = True  # only honored at quality 100
    method: int = 6
    max_depth: int = Field(default=8, ge=0)
    use_initial_if_smaller: bool = False
    fallback_source: FallbackSource = "original"
    threads: int = Field(default_factory=_default_threads, gt=0)
    debug: bool = False

    @field_validator("lossless", "use_initial_if_smaller", mode="before")
    @classmethod
    def coerce_flag(cls, v):
        # CLI and YAML both accept 0/1 for flags
        if isinstance(v, int) and not isinstance(v, bool):
            if v not in (0, 1):
                raise ValueError(f"Flag must be 0 or 1, got {v}")
            return bool(v)
        return v

class AppConfig(BaseModel):
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    log_path: Optional[str] = None
