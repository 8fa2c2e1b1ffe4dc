"""File-level orchestration around the pure engine."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pendulum
import structlog
from pydantic import BaseModel, ValidationError

from . import __version__
from .core import (
    ReassignmentCandidate,
    compute_utilization,
    infer_team_capacity,
    simulate_move,
    suggest_reassignments,
)
from .scenarios import Benchmarks, build_context, run_scenario
from .schemas import Candidate, Dataset, DateRange, EngineConfig, Event, Requisition, ScenarioInput, User

_COLLECTIONS: dict[str, type[BaseModel]] = {
    "requisitions": Requisition,
    "candidates": Candidate,
    "events": Event,
    "users": User,
}


class DatasetLoadError(ValueError):
    """Raised when a dataset document contains invalid records."""

    def __init__(self, errors: list[str], partial: Dataset):
        super().__init__("Dataset loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Dataset loading failed: {self.errors}"


class DatasetLoader:
    """Load a JSON snapshot of requisitions, candidates, events and users."""

    def load(self, path: Path) -> Dataset:
        with path.open("r", encoding="utf-8") as handle:
            try:
                document = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid dataset JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise ValueError("Dataset JSON must be an object")

        errors: list[str] = []
        collections: dict[str, list[BaseModel]] = {}
        for name, model in _COLLECTIONS.items():
            records: list[BaseModel] = []
            for idx, raw in enumerate(document.get(name) or []):
                try:
                    records.append(model.model_validate(raw))
                except ValidationError as exc:
                    errors.append(f"{name}[{idx}]: {_first_error(exc)}")
            collections[name] = records

        date_range: DateRange | None = None
        if document.get("date_range") is not None:
            try:
                date_range = DateRange.model_validate(document["date_range"])
            except ValidationError as exc:
                errors.append(f"date_range: {_first_error(exc)}")

        dataset = Dataset(
            requisitions=tuple(collections["requisitions"]),
            candidates=tuple(collections["candidates"]),
            events=tuple(collections["events"]),
            users=tuple(collections["users"]),
            date_range=date_range,
        )
        if errors:
            raise DatasetLoadError(errors, dataset)
        return dataset


@dataclass(slots=True)
class ScenarioRequest:
    scenario: ScenarioInput
    benchmarks: Benchmarks | None = None
    fit_scores: dict[str, dict[str, float]] = field(default_factory=dict)
    hm_latency_days: dict[str, float] | None = None


class ScenarioLoader:
    """Load a scenario request document."""

    def load(self, path: Path) -> ScenarioRequest:
        with path.open("r", encoding="utf-8") as handle:
            try:
                document = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid scenario JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise ValueError("Scenario JSON must be an object")
        benchmarks = document.get("benchmarks")
        if isinstance(benchmarks, dict):
            unknown = sorted(set(benchmarks) - {item.name for item in fields(Benchmarks)})
            if unknown:
                raise ValueError(f"Unknown benchmark fields: {', '.join(unknown)}")
        return ScenarioRequest(
            scenario=ScenarioInput.model_validate(
                {"scenario_id": document.get("scenario_id"), "params": document.get("params") or {}}
            ),
            benchmarks=Benchmarks(**benchmarks) if isinstance(benchmarks, dict) else None,
            fit_scores=document.get("fit_scores") or {},
            hm_latency_days=document.get("hm_latency_days"),
        )


class OutputWriter:
    """Persist engine results."""

    def __init__(self, indent: int = 2) -> None:
        self._indent = indent

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=self._indent),
            encoding="utf-8",
        )


def to_payload(result: Any) -> Any:
    """Plain JSON-compatible data for an engine result."""
    data = asdict(result) if is_dataclass(result) else result
    return json.loads(json.dumps(data, default=_json_default, ensure_ascii=False))


class CapacityPipeline:
    """Load inputs, run one engine operation and write the result."""

    def __init__(
        self,
        *,
        config: EngineConfig,
        loader: DatasetLoader | None = None,
        scenario_loader: ScenarioLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._config = config
        self._loader = loader or DatasetLoader()
        self._scenarios = scenario_loader or ScenarioLoader()
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    @property
    def config(self) -> EngineConfig:
        return self._config

    def utilization(self, *, dataset_path: Path, output_path: Path) -> dict[str, Any]:
        dataset, errors = self._load(dataset_path)
        result = compute_utilization(dataset, self._config)
        self._logger.info(
            "utilization.result",
            recruiters=len(result.rows),
            overall=round(result.summary.overall_utilization, 4),
            confidence=result.confidence.level,
        )
        return self._emit("utilization", result, output_path, errors)

    def rebalance(
        self,
        *,
        dataset_path: Path,
        output_path: Path,
        max_suggestions: int | None = None,
    ) -> dict[str, Any]:
        dataset, errors = self._load(dataset_path)
        result = suggest_reassignments(dataset, self._config, max_suggestions=max_suggestions)
        return self._emit("rebalance", result, output_path, errors)

    def simulate(
        self,
        *,
        dataset_path: Path,
        output_path: Path,
        req_id: str,
        target_recruiter_id: str,
    ) -> dict[str, Any]:
        dataset, errors = self._load(dataset_path)
        req = dataset.requisition(req_id)
        if req is None or req.recruiter_id is None:
            raise ValueError(f"Requisition {req_id!r} not found or unassigned")
        move = ReassignmentCandidate(req_id, req.recruiter_id, target_recruiter_id)
        capacities = infer_team_capacity(dataset, self._config)
        result = simulate_move(move, dataset, self._config, capacities=capacities)
        self._logger.info(
            "simulation.result",
            req_id=req_id,
            source=move.source_recruiter_id,
            target=move.target_recruiter_id,
            delay_reduction_days=round(result.net_impact.delay_reduction_days, 4),
        )
        return self._emit("simulate", result, output_path, errors)

    def scenario(self, *, dataset_path: Path, scenario_path: Path, output_path: Path) -> dict[str, Any]:
        dataset, errors = self._load(dataset_path)
        request = self._scenarios.load(scenario_path)
        context = build_context(
            dataset,
            self._config,
            benchmarks=request.benchmarks,
            fit_scores=request.fit_scores,
            hm_latency_days=request.hm_latency_days,
        )
        result = run_scenario(request.scenario, context, self._config)
        return self._emit("scenario", result, output_path, errors)

    def _load(self, path: Path) -> tuple[Dataset, list[str]]:
        try:
            return self._loader.load(path), []
        except DatasetLoadError as exc:
            self._logger.warning("dataset.partial_load", errors=exc.errors)
            return exc.partial, list(exc.errors)

    def _emit(self, command: str, result: Any, output_path: Path, errors: list[str]) -> dict[str, Any]:
        payload = to_payload(result)
        metadata = {
            "command": command,
            "errors": errors,
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
        }
        self._writer.write(output_path, {"metadata": metadata, "result": payload})
        return payload


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
