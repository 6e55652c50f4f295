"""Parallel batch conversion engine.

Fans out one independent task per discovered file on a thread pool, then
folds the per-file results into run totals with an associative, commutative
combine, so neither completion order nor pool size affects the totals.

Per file: read → decode → encode → fallback decision → write. Every
per-file failure, including I/O errors while creating directories or
writing output, is contained at the task boundary and counted as a file
with zero output.
"""

import concurrent.futures
import logging
import threading
import time
from functools import reduce
from pathlib import Path
from typing import Optional
from webpbatch.config.models import ConversionConfig
from webpbatch.domain.errors import FileConversionError, MissingStemError, OutputWriteError
from webpbatch.domain.events import ConversionFinished, DiscoveryFinished, FileConverted, FileFailed
from webpbatch.domain.models import AggregateStats, ConversionResult, ConversionTask, PathSet
from webpbatch.infrastructure.event_bus import EventBus
from webpbatch.infrastructure.image_decoder import ImageDecoder
from webpbatch.infrastructure.webp_encoder import WebPEncoder
from webpbatch.pipeline.fallback import FallbackPolicy

OUTPUT_SUFFIX = ".webp"


def mirror_path(input_path: Path, input_root: Path, output_root: Path) -> Path:
    """Rewrites ``input_path`` onto ``output_root``, keeping its part below ``input_root``.

    Paths outside ``input_root`` map to ``output_root`` itself.
    """
    try:
        rel_path = input_path.relative_to(input_root)
    except ValueError:
        return output_root
    return output_root / rel_path


def resolve_output_file(task: ConversionTask) -> Path:
    """Creates the directory the output goes into and returns the output file path.

    The file name is the input stem with the ``.webp`` suffix.
    """
    stem = task.input.stem
    if not stem:
        raise MissingStemError(f"The file name: {task.input.name!r} does not exist!")
    file_name = f"{stem}{OUTPUT_SUFFIX}"
    target = task.output

    try:
        if target.is_dir():
            return target / file_name
        if not target.exists():
            if target.suffix:
                target.parent.mkdir(parents=True, exist_ok=True)
            else:
                target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(f"Cannot create output directory for {task.input.name}: {e}") from e

    # Existing regular file targets (in-place runs) also land next to the target
    return target.parent / file_name


class ConversionEngine:
    """Converts a PathSet to WebP in parallel and reduces results to AggregateStats.

    Args:
        config: Immutable run configuration, shared by all tasks.
        event_bus: Receives DiscoveryFinished, FileConverted, FileFailed and
            ConversionFinished events.
        decoder: Image decoder adapter (defaults to Pillow).
        encoder: WebP encoder adapter (defaults to Pillow's libwebp plugin).
        policy: Fallback policy (defaults to ``config.fallback_source``).
    """

    def __init__(
        self,
        config: ConversionConfig,
        event_bus: EventBus,
        decoder: Optional[ImageDecoder] = None,
        encoder: Optional[WebPEncoder] = None,
        policy: Optional[FallbackPolicy] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.decoder = decoder or ImageDecoder()
        self.encoder = encoder or WebPEncoder()
        self.policy = policy or FallbackPolicy(config.fallback_source)
        self.logger = logging.getLogger(__name__)

    def build_task(self, input_path: Path, paths: PathSet) -> ConversionTask:
        return ConversionTask(
            input=input_path,
            output=mirror_path(input_path, paths.root, paths.output_root),
        )

    def convert_file(self, task: ConversionTask) -> ConversionResult:
        """Converts one file. Raises FileConversionError on any per-file failure."""
        start_time = time.monotonic()
        input_path = task.input
        filename = input_path.name

        if not input_path.stem:
            raise MissingStemError(f"The file name: {filename!r} does not exist!")

        try:
            original = input_path.read_bytes()
        except OSError as e:
            raise FileConversionError(f"Cannot read {filename}: {e}") from e
        input_size = len(original)

        pixels = self.decoder.decode(original, name=filename)

        with self.encoder.encode(pixels, self.config) as encoded:
            output_path = resolve_output_file(task)
            resolution = self.policy.resolve(
                encoded,
                original=original,
                pixels=pixels,
                input_size=input_size,
                use_initial_if_smaller=self.config.use_initial_if_smaller,
            )
            if resolution.used_fallback and self.policy.keeps_input_format:
                output_path = output_path.with_name(f"{input_path.stem}{input_path.suffix}")

            try:
                output_path.write_bytes(resolution.payload)
            except OSError as e:
                raise OutputWriteError(f"Cannot write {output_path}: {e}") from e

        if resolution.used_fallback:
            self.logger.info(
                f"Kept initial data for {filename}: encoded output was larger than {input_size} bytes"
            )

        return ConversionResult(
            path=input_path,
            input_size=input_size,
            output_size=resolution.reported_output_size,
            ok=True,
            output_path=output_path,
            duration_seconds=time.monotonic() - start_time,
            used_fallback=resolution.used_fallback,
        )

    def _input_size(self, path: Path) -> int:
        try:
            return path.stat().st_size
        except OSError:
            return 0

    def _publish(self, event) -> None:
        """Publishes a per-file event; a failing subscriber does not fail the task."""
        try:
            self.event_bus.publish(event)
        except Exception:
            self.logger.exception(f"Subscriber failed on {type(event).__name__}")

    def _run_task(self, task: ConversionTask) -> ConversionResult:
        """Task boundary: never raises for per-file problems."""
        filename = task.input.name
        start_time = time.monotonic()

        if self.config.debug:
            self.logger.debug(f"PROCESS_START: {filename} (thread {threading.get_ident()})")

        try:
            result = self.convert_file(task)
        except FileConversionError as e:
            self.logger.error(f"Failed to convert {task.input}: {e}")
            result = ConversionResult.failed(
                task.input, self._input_size(task.input), str(e), time.monotonic() - start_time
            )
        except Exception as e:
            # Log exception but don't take sibling tasks down
            self.logger.exception(f"Unexpected error converting {task.input}")
            result = ConversionResult.failed(
                task.input, self._input_size(task.input), f"Exception: {e}", time.monotonic() - start_time
            )

        if result.ok:
            self.logger.info(
                f"Converted {filename}: {result.input_size} -> {result.output_size} bytes "
                f"({result.duration_seconds:.2f}s)"
            )
            self._publish(FileConverted(result=result))
        else:
            self._publish(FileFailed(result=result, error_message=result.error_message or "Unknown error"))

        if self.config.debug:
            self.logger.debug(f"PROCESS_END: {filename} ok={result.ok} elapsed={result.duration_seconds:.2f}s")
        return result

    def run(self, paths: PathSet) -> AggregateStats:
        start_time = time.monotonic()
        self.event_bus.publish(DiscoveryFinished(root=paths.root, files_found=len(paths.files)))

        tasks = [self.build_task(path, paths) for path in paths.files]
        self.logger.info(
            f"Conversion started: files={len(tasks)}, threads={self.config.threads}, "
            f"quality={self.config.quality}, lossless={self.config.lossless}, method={self.config.method}"
        )

        stats = AggregateStats()
        if tasks:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=self.config.threads, thread_name_prefix="convert"
            ) as executor:
                futures = [executor.submit(self._run_task, task) for task in tasks]
                results = (future.result() for future in concurrent.futures.as_completed(futures))
                stats = reduce(
                    AggregateStats.combine,
                    (AggregateStats.from_result(result) for result in results),
                    stats,
                )

        duration = time.monotonic() - start_time
        self.logger.info(
            f"Conversion finished: files={stats.file_count}, failed={stats.failed_count}, "
            f"input={stats.total_input_size}, output={stats.total_output_size}, "
            f"reduction={stats.reduction_percent:.1f}%, elapsed={duration:.2f}s"
        )
        self.event_bus.publish(ConversionFinished(stats=stats, duration_seconds=duration))
        return stats
