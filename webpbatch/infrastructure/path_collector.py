import logging
import os
from pathlib import Path
from typing import List, Tuple
from webpbatch.domain.models import PathSet

logger = logging.getLogger(__name__)

def flatten(root: Path, max_depth: int) -> List[Path]:
    """Returns every file under ``root`` that sits at most ``max_depth`` levels below it.

    ``root`` itself is depth 0; a regular file root is returned as is,
    whatever the depth bound. Unreadable entries are skipped one by one.
    The order of the result is unspecified.
    """
    root = Path(root)
    if root.is_file():
        return [root]

    files: List[Path] = []
    if not root.is_dir():
        return files

    stack: List[Tuple[Path, int]] = [(root, 0)]
    while stack:
        directory, depth = stack.pop()
        if depth + 1 > max_depth:
            continue

        try:
            entries = os.scandir(directory)
        except OSError as e:
            logger.warning(f"Cannot list directory {directory}: {e}")
            continue

        with entries:
            for entry in entries:
                try:
                    if entry.is_file():
                        files.append(Path(entry.path))
                    elif entry.is_dir():
                        stack.append((Path(entry.path), depth + 1))
                except OSError as e:
                    logger.warning(f"Skipping unreadable entry {entry.path}: {e}")

    return files

class PathCollector:
    """Flattens an input root into a PathSet bounded by a maximum depth."""

    def __init__(self, max_depth: int = 8):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self.max_depth = max_depth

    def collect(self, root: Path, output_root: Path) -> PathSet:
        files = flatten(root, self.max_depth)
        logger.info(f"Discovery finished: root={root}, max_depth={self.max_depth}, files={len(files)}")
        return PathSet(root=root, files=files, output_root=output_root)
