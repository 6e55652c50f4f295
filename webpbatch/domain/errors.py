"""Exception hierarchy for the conversion pipeline.

Setup errors are fatal and abort the run before any file is touched.
Everything derived from ``FileConversionError`` is recovered at the task
boundary by the engine and reported as a failed file.
"""

from enum import IntEnum
from typing import Optional


class ConversionError(Exception):
    """Base class for all webpbatch errors."""


class SetupError(ConversionError):
    """Invalid input path, unusable output path or bad configuration."""


class FileConversionError(ConversionError):
    """A single file could not be converted; sibling files are unaffected."""


class MissingStemError(FileConversionError):
    pass


class DecodeError(FileConversionError):
    pass


class EncodeStatus(IntEnum):
    """Status vocabulary of the native WebP encoder."""

    OK = 0
    OUT_OF_MEMORY = 1
    BITSTREAM_OUT_OF_MEMORY = 2
    NULL_PARAMETER = 3
    INVALID_CONFIGURATION = 4
    BAD_DIMENSION = 5
    PARTITION0_OVERFLOW = 6
    PARTITION_OVERFLOW = 7
    BAD_WRITE = 8
    FILE_TOO_BIG = 9
    USER_ABORT = 10
    ENCODER_FAILURE = 11


class EncodeError(FileConversionError):
    def __init__(self, status: EncodeStatus, detail: Optional[str] = None):
        self.status = status
        message = f"Failed to convert image ({status.name})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class OutputWriteError(FileConversionError):
    """Creating the output directory or writing the output file failed."""
