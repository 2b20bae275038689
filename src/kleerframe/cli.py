import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .catalog import describe_photo, scan_directory
from .config import Settings
from .dedup.controls import PipelineControls
from .dedup.distance import confidence, hamming_distance
from .dedup.hash import fingerprint_image, select_backend
from .dedup.pipeline import run_pipeline_sync
from .dedup.search import SimilaritySearch
from .errors import DecodeFailure, InvalidGridError
from .logging import get_logger, set_level
from .output.report import build_report, write_report_json

app = typer.Typer(help="KLEERFRAME – near-duplicate photo finder", no_args_is_help=True)


def safe_echo(message: str) -> None:
    """Echo message, replacing symbols the console cannot encode."""
    try:
        typer.echo(message)
    except UnicodeEncodeError:
        typer.echo(message.replace("✅", "[OK]").replace("📷", "[IMG]").replace("🔄", "[DUP]").replace("📋", "[RPT]"))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"kleerframe {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline details"),
) -> None:
    """Find near-duplicate photos by perceptual fingerprint."""
    if verbose:
        get_logger(__name__)
        set_level(logging.DEBUG)


@app.command("hash")
def hash_command(
    image: Path = typer.Argument(..., help="Image file to fingerprint"),
    grid_size: int = typer.Option(32, help="Edge length of the grayscale grid"),
) -> None:
    """Print the perceptual fingerprint of an image."""
    logger = get_logger(__name__)
    try:
        fingerprint = fingerprint_image(image, grid_size, select_backend(grid_size))
    except DecodeFailure as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc
    except InvalidGridError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=2) from exc
    typer.echo(fingerprint)


@app.command()
def compare(
    hash_a: str = typer.Argument(..., help="First fingerprint (hex)"),
    hash_b: str = typer.Argument(..., help="Second fingerprint (hex)"),
    threshold: int = typer.Option(10, min=0, help="Maximum distance considered similar"),
) -> None:
    """Compare two fingerprints."""
    logger = get_logger(__name__)
    try:
        distance = hamming_distance(hash_a, hash_b)
    except ValueError as exc:
        logger.error(f"Cannot compare fingerprints: {exc}")
        raise typer.Exit(code=1) from exc

    settings = Settings()
    typer.echo(f"distance: {distance}")
    typer.echo(f"confidence: {confidence(distance, settings.search_confidence_slope):.0f}")
    typer.echo(f"similar: {'yes' if distance <= threshold else 'no'}")


@app.command()
def scan(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory of photos to scan"),
    window_minutes: float = typer.Option(15.0, help="Half-width of the capture-time window in minutes"),
    pair_threshold: int = typer.Option(20, help="Maximum fingerprint distance between matched photos"),
    batch_size: int = typer.Option(5, help="Photos fingerprinted concurrently per batch"),
    advanced: bool = typer.Option(True, "--advanced/--basic", help="Collapse overlapping matches into clusters"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="Scan subdirectories"),
    report: Optional[Path] = typer.Option(None, "--report", "-r", help="Write a JSON report to this path"),
    include_fingerprints: bool = typer.Option(False, help="Include every fingerprint in the report"),
) -> None:
    """
    Scan a directory for near-duplicate photos.

    Photos taken within the time window of each other whose fingerprints are
    close are grouped, and redundant groups are collapsed.
    """
    logger = get_logger(__name__)

    settings = Settings(window_minutes=window_minutes, pair_threshold=pair_threshold, batch_size=batch_size)
    try:
        settings.validate()
    except ValueError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=2) from exc

    photos = scan_directory(directory, recursive=recursive)
    logger.info(f"Scanning {len(photos)} photos in {directory}")

    fingerprints = {}

    def _progress(processed: int, total: int) -> None:
        logger.info(f"Fingerprinted {processed}/{total} photos")

    snapshot = run_pipeline_sync(
        photos,
        settings=settings,
        controls=PipelineControls(),
        fingerprints=fingerprints,
        advanced=advanced,
        on_progress=_progress,
    )

    safe_echo("\n✅ Scan complete!")
    safe_echo(f"📷 Photos scanned: {snapshot.processed}/{snapshot.total} ({snapshot.stats.failed} unreadable)")
    if not snapshot.has_matches:
        safe_echo("🔄 No matches found")
    else:
        safe_echo(f"🔄 Matches: {len(snapshot.candidates)} (from {snapshot.raw_count} raw candidates)")
        for match in snapshot.candidates:
            names = ", ".join(photo.filename for photo in match.photos)
            safe_echo(f"   {match.confidence:.0f}% {names}")

    if report is not None:
        written = write_report_json(
            build_report(snapshot, str(directory), fingerprints if include_fingerprints else None),
            report,
        )
        safe_echo(f"📋 Report: {written}")


@app.command()
def similar(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Reference photo"),
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory to search"),
    threshold: int = typer.Option(20, min=0, help="Maximum fingerprint distance to report"),
) -> None:
    """List photos in a directory that look like the reference photo."""
    logger = get_logger(__name__)

    try:
        reference = describe_photo(image, image.parent)
        reference = replace(reference, id=reference.uri)
    except OSError as exc:
        logger.error(f"Cannot read {image}: {exc}")
        raise typer.Exit(code=1) from exc

    photos = [p for p in scan_directory(directory) if p.uri != reference.uri]
    search = SimilaritySearch(settings=Settings(search_threshold=threshold))
    try:
        hits = search.search(reference, photos)
    except DecodeFailure as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    if not hits:
        safe_echo("No similar photos found")
        return

    for hit in hits:
        safe_echo(f"{hit.similarity:5.0f}%  distance {hit.distance:2d}  {hit.photo.filename}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
