"""
Command-Line Interface

Thin driver around OCRPipeline: loads an image, runs recognition and
writes the requested outputs.

Usage:
    regionocr recognize photo.jpg
    regionocr recognize sign.png --mode text-detection --annotated boxes.png
    regionocr recognize scan.png --lang eng+fra --hocr page.hocr
    regionocr fetch-models eng fra
    regionocr demo
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import cv2
from loguru import logger
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import OCRConfig, load_config
from .errors import OCRError
from .ocr.engine import EngineMode
from .ocr.ocr_engine import RecognitionMode
from .ocr.provisioning import ModelProvider
from .pipeline import OCRPipeline, RecognitionResult
from .samples import SAMPLE_TEXT, hello_world_image

MODE_CHOICES = [m.value.replace('_', '-') for m in RecognitionMode]
ENGINE_MODE_CHOICES = [m.name.lower().replace('_', '-') for m in EngineMode]


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None):
    """Configure loguru logging."""
    logger.remove()

    log_level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=log_level,
        colorize=True
    )

    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="10 MB"
        )


def logging_options(func):
    """-v/--verbose and --log-file, shared by every command."""
    func = click.option(
        '--log-file',
        type=click.Path(path_type=Path),
        default=None,
        help='Write logs to file'
    )(func)
    func = click.option(
        '--verbose', '-v',
        is_flag=True,
        help='Enable verbose logging'
    )(func)
    return func


def _build_config(config_path: Optional[Path], **overrides) -> OCRConfig:
    return load_config(config_path).merge(**overrides)


def _open_pipeline(ctx: click.Context, config: OCRConfig) -> OCRPipeline:
    """Pipeline from config; tests inject engine_factory/provider via ctx.obj."""
    obj = ctx.obj or {}
    return OCRPipeline.from_config(
        config,
        engine_factory=obj.get('engine_factory'),
        provider=obj.get('provider'),
        detector=obj.get('detector'),
    )


def _print_result(console: Console, result: RecognitionResult) -> None:
    table = Table(title="Recognition Summary")

    table.add_column("Mode", style="cyan")
    table.add_column("Attempt")
    table.add_column("Words", justify="right")
    table.add_column("Regions", justify="right")
    table.add_column("Time (ms)", justify="right")

    table.add_row(
        result.mode.value,
        result.attempt.value if result.attempt else "-",
        str(len(result.characters)),
        str(len(result.regions)),
        f"{result.processing_time:.0f}",
    )

    console.print(table)
    console.print()
    if result.is_empty:
        console.print("[yellow]No text recognized[/]")
    else:
        console.print("[bold]Text:[/]")
        console.print(result.text, markup=False, highlight=False)


@click.group()
@click.version_option(__version__, prog_name='regionocr')
def main():
    """
    regionocr - Extract text from images with Tesseract.
    """


@main.command()
@click.argument('image_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    '--mode', '-m',
    type=click.Choice(MODE_CHOICES),
    default=None,
    help='Recognition mode (default: full-page, or the configured mode)'
)
@click.option(
    '--lang', '-l',
    'language',
    default=None,
    help='Tesseract language code (e.g., eng, fra, eng+deu)'
)
@click.option(
    '--tessdata-dir',
    'model_dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Directory holding .traineddata files'
)
@click.option(
    '--engine-mode',
    type=click.Choice(ENGINE_MODE_CHOICES),
    default=None,
    help='Tesseract OCR engine mode'
)
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='YAML configuration file'
)
@click.option(
    '--no-invert',
    is_flag=True,
    help='Skip inverted channels during text detection'
)
@click.option(
    '--annotated',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write the annotated image here'
)
@click.option(
    '--hocr',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write hOCR markup here (full-page mode only)'
)
@click.option(
    '--json-report',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write detailed JSON report'
)
@logging_options
@click.pass_context
def recognize(
    ctx: click.Context,
    image_path: Path,
    mode: Optional[str],
    language: Optional[str],
    model_dir: Optional[Path],
    engine_mode: Optional[str],
    config_path: Optional[Path],
    no_invert: bool,
    annotated: Optional[Path],
    hocr: Optional[Path],
    json_report: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
):
    """
    Recognize text in IMAGE_PATH.

    Examples:

        regionocr recognize receipt.jpg

        regionocr recognize street.png -m text-detection --annotated out.png
    """
    setup_logging(verbose=verbose, log_file=log_file)
    console = Console()

    image = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    if image is None:
        console.print(f"[bold red]Error: cannot read image {image_path}[/]")
        raise SystemExit(1)

    try:
        config = _build_config(
            config_path,
            mode=mode,
            language=language,
            model_dir=str(model_dir) if model_dir else None,
            engine_mode=engine_mode,
            check_invert=False if no_invert else None,
        )
        with _open_pipeline(ctx, config) as pipeline:
            console.print(f"Processing: {image_path.name}")
            result = pipeline.run(image)
    except OCRError as e:
        console.print(f"[bold red]Error: {e}[/]")
        if verbose:
            logger.exception("Full traceback:")
        raise SystemExit(1)

    _print_result(console, result)

    if annotated:
        if not cv2.imwrite(str(annotated), result.annotated_image):
            console.print(f"[bold red]Error: cannot write {annotated}[/]")
            raise SystemExit(1)
        console.print(f"[green]✓ Annotated image written to: {annotated}[/]")

    if hocr:
        if result.structured_text is None:
            console.print("[yellow]Warning: hOCR is only produced in full-page mode[/]")
        else:
            hocr.write_text(result.structured_text, encoding='utf-8')
            console.print(f"[green]✓ hOCR written to: {hocr}[/]")

    if json_report:
        report = result.to_dict()
        report['source_file'] = str(image_path)
        with open(json_report, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, default=str)
        console.print(f"Report written to: {json_report}")


@main.command('fetch-models')
@click.argument('languages', nargs=-1, required=True)
@click.option(
    '--tessdata-dir',
    'model_dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Directory holding .traineddata files'
)
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='YAML configuration file'
)
@logging_options
@click.pass_context
def fetch_models(
    ctx: click.Context,
    languages,
    model_dir: Optional[Path],
    config_path: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
):
    """Download trained data for LANGUAGES (e.g. eng fra osd)."""
    setup_logging(verbose=verbose, log_file=log_file)
    console = Console()

    try:
        config = _build_config(config_path, model_dir=str(model_dir) if model_dir else None)
        provider = (ctx.obj or {}).get('provider') or ModelProvider(
            url_template=config.model_url_template,
            timeout=config.download_timeout,
            max_retries=config.download_retries,
        )
        paths = provider.ensure_models(config.model_dir, languages)
    except OCRError as e:
        console.print(f"[bold red]Error: {e}[/]")
        raise SystemExit(1)

    for path in paths:
        console.print(f"[green]✓[/] {path}")


@main.command()
@click.option('--lang', '-l', 'language', default=None, help='Tesseract language code')
@click.option(
    '--tessdata-dir',
    'model_dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Directory holding .traineddata files'
)
@click.option(
    '--annotated',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write the annotated sample image here'
)
@logging_options
@click.pass_context
def demo(
    ctx: click.Context,
    language: Optional[str],
    model_dir: Optional[Path],
    annotated: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
):
    """Recognize a built-in 'Hello, world' sample image."""
    setup_logging(verbose=verbose, log_file=log_file)
    console = Console()
    console.print("[bold blue]regionocr demo[/]")
    console.print(f"Expected: {SAMPLE_TEXT}")
    console.print()

    try:
        config = _build_config(
            None,
            language=language,
            model_dir=str(model_dir) if model_dir else None,
        )
        with _open_pipeline(ctx, config) as pipeline:
            version = getattr(pipeline.engine, 'version', None)
            if version:
                console.print(f"Engine: Tesseract {version}")
            result = pipeline.run(hello_world_image(), RecognitionMode.FULL_PAGE)
    except OCRError as e:
        console.print(f"[bold red]Error: {e}[/]")
        raise SystemExit(1)

    _print_result(console, result)

    if annotated:
        cv2.imwrite(str(annotated), result.annotated_image)
        console.print(f"[green]✓ Annotated image written to: {annotated}[/]")


if __name__ == "__main__":
    main()
