"""Typer CLI entrypoint for the capacity engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from .config import read_settings
from .container import create_container
from .logging import configure_logging
from .pipeline import CapacityPipeline

app = typer.Typer(help="Recruiter capacity, rebalancing and scenario CLI.")

DatasetOption = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Dataset JSON path.")
OutputOption = typer.Option(..., exists=False, file_okay=True, dir_okay=False, resolve_path=True, help="Output JSON path.")
ConfigOption = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path.")
LogLevelOption = typer.Option("INFO", help="Log level for structured logging.")


def _build_pipeline(config: Optional[Path], log_level: str) -> CapacityPipeline:
    settings: dict[str, Any] = {}
    if config:
        try:
            settings = read_settings(config)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_name="config") from exc

    configure_logging(log_level)

    container = create_container(settings=settings)
    return container.pipeline()


@app.command()
def utilization(
    dataset: Path = DatasetOption,
    output: Path = OutputOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Compute per-recruiter utilization."""
    pipeline = _build_pipeline(config, log_level)
    result = pipeline.utilization(dataset_path=dataset, output_path=output)
    typer.echo(f"Computed utilization for {len(result['rows'])} recruiters. Results saved to {output}.")


@app.command()
def rebalance(
    dataset: Path = DatasetOption,
    output: Path = OutputOption,
    max_suggestions: Optional[int] = typer.Option(None, min=0, help="Maximum suggestions to return."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Rank requisition reassignments for overloaded recruiters."""
    pipeline = _build_pipeline(config, log_level)
    result = pipeline.rebalance(dataset_path=dataset, output_path=output, max_suggestions=max_suggestions)
    typer.echo(f"Generated {len(result['suggestions'])} suggestions. Results saved to {output}.")


@app.command()
def simulate(
    dataset: Path = DatasetOption,
    output: Path = OutputOption,
    req_id: str = typer.Option(..., help="Requisition to move."),
    target: str = typer.Option(..., help="Recruiter receiving the requisition."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Simulate moving one requisition to another recruiter."""
    pipeline = _build_pipeline(config, log_level)
    try:
        result = pipeline.simulate(
            dataset_path=dataset,
            output_path=output,
            req_id=req_id,
            target_recruiter_id=target,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_name="req_id") from exc
    delay = result["net_impact"]["delay_reduction_days"]
    typer.echo(f"Net delay reduction {delay:.2f} days. Results saved to {output}.")


@app.command()
def scenario(
    dataset: Path = DatasetOption,
    scenario_file: Path = typer.Option(
        ..., "--scenario", exists=True, readable=True, dir_okay=False, help="Scenario JSON path."
    ),
    output: Path = OutputOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Evaluate a what-if scenario."""
    pipeline = _build_pipeline(config, log_level)
    try:
        result = pipeline.scenario(dataset_path=dataset, scenario_path=scenario_file, output_path=output)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_name="scenario") from exc
    typer.echo(f"Scenario {result['scenario_id']}: {result['feasibility']}. Results saved to {output}.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
