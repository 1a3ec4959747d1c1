"""CLI interface for lufs-meter."""

import logging
import math
from pathlib import Path
from uuid import uuid4

import typer

from .interfaces.cli_handlers import format_lufs, measure_path, resolve_config, run_batch_measurement
from .utils.config import DecoderKind

app = typer.Typer(help="EBU R128 / ITU-R BS.1770 integrated loudness meter")


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _echo_progress(estimate_lufs: float, fraction_complete: float) -> None:
    percent = "?" if math.isnan(fraction_complete) else f"{fraction_complete * 100:5.1f}%"
    typer.echo(f"\r{percent}  {format_lufs(estimate_lufs)}", nl=False, err=True)


@app.command("measure")
def measure_command(
    path: Path = typer.Argument(..., help="Audio file to measure."),
    config: Path | None = typer.Option(None, "--config", "-c", help="JSON/YAML meter config."),
    decoder: DecoderKind | None = typer.Option(
        None,
        "--decoder",
        case_sensitive=False,
        help="PCM decoder: auto, soundfile, pedalboard or ffmpeg.",
    ),
    report_json: Path | None = typer.Option(
        None,
        "--report-json",
        help="Optional path to write the loudness report as JSON.",
    ),
    progress: bool = typer.Option(False, "--progress", help="Show progress while measuring."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    """Measure integrated loudness of one audio file."""

    _configure_logging(log_level)
    correlation_id = str(uuid4())
    report = measure_path(
        path,
        resolve_config(config, decoder),
        correlation_id=correlation_id,
        progress_callback=_echo_progress if progress else None,
        report_json=report_json,
    )
    if progress:
        typer.echo("", err=True)
    typer.echo(f"Integrated loudness: {format_lufs(report.integrated_lufs)}")
    typer.echo(f"Duration: {report.duration_seconds:.2f} s")
    typer.echo(f"Correlation ID: {correlation_id}")


@app.command("batch-measure")
def batch_measure_command(
    paths: list[Path] = typer.Argument(..., help="Audio files to measure."),
    config: Path | None = typer.Option(None, "--config", "-c", help="JSON/YAML meter config."),
    decoder: DecoderKind | None = typer.Option(
        None,
        "--decoder",
        case_sensitive=False,
        help="PCM decoder: auto, soundfile, pedalboard or ffmpeg.",
    ),
    concurrency_limit: int = typer.Option(
        4,
        "--concurrency-limit",
        min=1,
        help="Maximum number of files measured concurrently.",
    ),
    report_json: Path | None = typer.Option(
        None,
        "--report-json",
        help="Optional path to write all results and the summary as JSON.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    """Measure integrated loudness of several audio files concurrently."""

    _configure_logging(log_level)
    results, summary = run_batch_measurement(
        paths,
        resolve_config(config, decoder),
        concurrency_limit=concurrency_limit,
        report_json=report_json,
    )

    for item in results:
        if item["status"] == "succeeded":
            typer.echo(
                f"[OK] #{item['index']} {item['source']} "
                f"{format_lufs(item['integrated_lufs'])} correlation_id={item['correlation_id']}"
            )
        else:
            typer.echo(
                f"[FAILED] #{item['index']} {item['source']} "
                f"error={item['error']} correlation_id={item['correlation_id']}"
            )

    typer.echo(
        "Summary: "
        f"total={summary['total']} "
        f"succeeded={summary['succeeded']} "
        f"failed={summary['failed']}"
    )
    if summary["failed"]:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
