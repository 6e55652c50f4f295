import logging
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "webpbatch.log"


def log_file_path(output_dir: Path, log_path: Optional[Path] = None) -> Path:
    """Returns the file a run logs to: the explicit log path or webpbatch.log in the output root."""
    return Path(log_path) if log_path else (output_dir / LOG_FILE_NAME)


def setup_logging(output_dir: Path, debug: bool = False, log_path: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging configuration for a conversion run.

    Creates the output root (and parents) and a webpbatch.log file in it.
    Console output belongs to the reporter, so log records only go to the file.

    Args:
        output_dir: Output root of the run
        debug: If True, enable DEBUG level logging with per-file timings
        log_path: Optional path to log file (overrides output_dir)
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_file_path(output_dir, log_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(threadName)s - %(message)s',
        handlers=[logging.FileHandler(log_file)],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger("webpbatch")
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
