"""CLI-facing handlers that delegate to application services."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any
import json
from uuid import uuid4

from lufs_meter.application.measurement_service import LoudnessReport, MeasureLoudness
from lufs_meter.infrastructure.logging_event_publisher import LoggingEventPublisher
from lufs_meter.meter import ProgressCallback
from lufs_meter.utils.config import DecoderKind, MeterConfig, load_meter_config

_event_publisher = LoggingEventPublisher()


def resolve_config(config_path: Path | None, decoder: DecoderKind | None = None) -> MeterConfig:
    """Load the meter config file (if any) and apply CLI overrides."""

    config = load_meter_config(config_path) if config_path is not None else MeterConfig()
    if decoder is not None:
        config = config.model_copy(update={"decoder": decoder})
    return config


def format_lufs(value: float | None) -> str:
    if value is None or value == float("-inf"):
        return "-inf LUFS (silent)"
    return f"{value:.2f} LUFS"


def _write_report(report_json: Path, payload: Any) -> None:
    report_json.parent.mkdir(parents=True, exist_ok=True)
    report_json.write_text(json.dumps(payload, indent=2))


def measure_path(
    path: Path,
    config: MeterConfig,
    correlation_id: str,
    progress_callback: ProgressCallback | None = None,
    report_json: Path | None = None,
) -> LoudnessReport:
    service = MeasureLoudness(config=config, event_publisher=_event_publisher)
    report = service.measure_file(path, correlation_id=correlation_id, progress_callback=progress_callback)
    if report_json is not None:
        _write_report(report_json, report.as_dict())
    return report


def run_batch_measurement(
    paths: list[Path],
    config: MeterConfig,
    concurrency_limit: int,
    report_json: Path | None = None,
) -> tuple[list[dict[str, Any]], dict[str, int]]:
    """Measure many files, one meter per worker thread."""

    if not paths:
        raise ValueError("No input files were provided.")

    def _process(path: Path, item_index: int) -> dict[str, Any]:
        correlation_id = str(uuid4())
        try:
            report = measure_path(path, config, correlation_id=correlation_id)
            return {
                "index": item_index,
                "source": str(path),
                "status": "succeeded",
                "correlation_id": correlation_id,
                **report.as_dict(),
            }
        except Exception as error:  # noqa: BLE001
            return {
                "index": item_index,
                "source": str(path),
                "status": "failed",
                "correlation_id": correlation_id,
                "error": str(error),
            }

    safe_concurrency = max(1, concurrency_limit)
    results: list[dict[str, Any]] = []
    with ThreadPoolExecutor(max_workers=safe_concurrency) as executor:
        futures = [executor.submit(_process, path, idx) for idx, path in enumerate(paths, start=1)]
        for future in as_completed(futures):
            results.append(future.result())

    results.sort(key=lambda item: item["index"])
    success_count = sum(1 for item in results if item["status"] == "succeeded")
    summary = {
        "total": len(results),
        "succeeded": success_count,
        "failed": len(results) - success_count,
    }
    if report_json is not None:
        _write_report(report_json, {"results": results, "summary": summary})
    return results, summary
