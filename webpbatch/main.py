import os
import traceback
import typer
from pathlib import Path
from typing import Optional
from pydantic import ValidationError

from webpbatch.config.loader import load_config
from webpbatch.config.models import ConversionConfig
from webpbatch.domain.errors import SetupError
from webpbatch.infrastructure.event_bus import EventBus
from webpbatch.infrastructure.logging import log_file_path, setup_logging
from webpbatch.infrastructure.path_collector import PathCollector
from webpbatch.pipeline.engine import ConversionEngine
from webpbatch.ui.reporter import Reporter

EXIT_SETUP_ERROR = 1
EXIT_FILES_FAILED = 2

app = typer.Typer(help="webpbatch - batch convert image trees to WebP")


def resolve_input_path(input_path: Path) -> Path:
    if not input_path.is_file() and not input_path.is_dir():
        raise SetupError(f"The path: {input_path} does not exist!")
    return input_path


def resolve_output_path(input_path: Path, output: Optional[Path]) -> Path:
    """Explicit outputs are made absolute; otherwise the input's parent is used."""
    if output is None:
        output_dir = input_path.parent
    elif output.is_absolute():
        output_dir = output
    else:
        output_dir = Path(os.getcwd()) / output

    if output_dir.exists() and not output_dir.is_dir():
        raise SetupError(f"The output path: {output_dir} is not a directory!")
    return output_dir


def build_config(base: ConversionConfig, **overrides) -> ConversionConfig:
    """Applies CLI overrides that were actually given on top of the loaded config."""
    given = {key: value for key, value in overrides.items() if value is not None}
    if not given:
        return base
    # model_copy skips validation, so rebuild from a dict
    return ConversionConfig(**{**base.model_dump(), **given})


@app.command()
def convert(
    input_path: Path = typer.Argument(..., help="Image file or directory to convert"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output root (defaults to the input's parent)"),
    quality: Optional[int] = typer.Option(None, "--quality", "-q", help="Quality from 0 to 100 [default: 100]"),
    lossless: Optional[int] = typer.Option(None, "--lossless", "-l", min=0, max=1, help="Lossless 0/1, only used at quality 100 [default: 1]"),
    method: Optional[int] = typer.Option(None, "--method", "-m", help="Effort from 0 (fast) to 6 (slow) [default: 6]"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=0, help="Maximum directory depth [default: 8]"),
    use_initial_if_smaller: Optional[int] = typer.Option(
        None, "--use-initial-if-smaller", min=0, max=1,
        help="Keep the initial data when encoding does not shrink a file [default: 0]"
    ),
    fallback_source: Optional[str] = typer.Option(
        None, "--fallback-source",
        help="What to keep when falling back: original (file bytes) or pixels (decoded pixels)"
    ),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", min=1, help="Worker threads [default: CPU count]"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file"),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Enable verbose debug logging [default: off]"),
):
    """Convert every image under INPUT_PATH to WebP, mirroring the tree at the output root."""
    try:
        try:
            app_config = load_config(config_path)
            config = build_config(
                app_config.conversion,
                quality=quality,
                lossless=lossless,
                method=method,
                max_depth=max_depth,
                use_initial_if_smaller=use_initial_if_smaller,
                fallback_source=fallback_source,
                threads=threads,
                debug=debug,
            )
            input_path = resolve_input_path(input_path)
            output_root = resolve_output_path(input_path, output)
        except (SetupError, FileNotFoundError, ValidationError) as exc:
            typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=EXIT_SETUP_ERROR)

        log_file = log_path or (Path(app_config.log_path) if app_config.log_path else None)
        try:
            logger = setup_logging(output_root, debug=config.debug, log_path=log_file)
        except OSError as exc:
            typer.secho(f"Error: cannot use output path {output_root}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=EXIT_SETUP_ERROR)

        logger.info(f"webpbatch started: input={input_path}, output={output_root}")
        logger.info(
            f"Config: quality={config.quality}, lossless={config.lossless}, method={config.method}, "
            f"max_depth={config.max_depth}, use_initial_if_smaller={config.use_initial_if_smaller}, "
            f"fallback_source={config.fallback_source}, threads={config.threads}, debug={config.debug}"
        )

        bus = EventBus()
        Reporter(bus)

        paths = PathCollector(max_depth=config.max_depth).collect(input_path, output_root)
        # The active log sits inside the input tree on in-place runs
        active_log = log_file_path(output_root, log_file).resolve()
        paths = paths.model_copy(update={"files": [p for p in paths.files if p.resolve() != active_log]})
        engine = ConversionEngine(config=config, event_bus=bus)
        stats = engine.run(paths)

        if stats.failed_count:
            logger.warning(f"{stats.failed_count} of {stats.file_count} file(s) failed")
            raise typer.Exit(code=EXIT_FILES_FAILED)

    except KeyboardInterrupt:
        typer.secho("\nConversion stopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except Exception as e:
        with open("error.log", "a") as f:
            traceback.print_exc(file=f)
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
