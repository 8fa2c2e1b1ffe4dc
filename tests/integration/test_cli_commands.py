from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from hrcapacity.cli import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write_json(path: Path, payload: object) -> None:
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


def dataset_payload() -> dict:
    requisitions = []
    candidates = []
    layout = {"rec_a": [5, 5, 5, 5], "rec_b": [1], "rec_c": [1]}
    for recruiter_id, counts in layout.items():
        for index, count in enumerate(counts, start=1):
            req_id = f"{recruiter_id.upper()}-{index}"
            requisitions.append(
                {
                    "req_id": req_id,
                    "title": "Backend Engineer",
                    "status": "Open",
                    "recruiter_id": recruiter_id,
                    "hiring_manager_id": "hm_1",
                }
            )
            candidates.extend(
                {"candidate_id": f"{req_id}-{slot}", "req_id": req_id, "current_stage": "Phone Screen"}
                for slot in range(count)
            )
    return {
        "requisitions": requisitions,
        "candidates": candidates,
        "events": [
            {
                "event_id": "E-1",
                "candidate_id": "REC_A-1-0",
                "req_id": "REC_A-1",
                "event_type": "STAGE_CHANGE",
                "from_stage": "Applied",
                "to_stage": "Phone Screen",
                "event_at": "2025-02-01T10:00:00Z",
            }
        ],
        "users": [
            {"user_id": "rec_a", "name": "Ada Archer", "role": "Recruiter"},
            {"user_id": "rec_b", "name": "Bea Baker", "role": "Recruiter"},
            {"user_id": "rec_c", "name": "Cy Cole", "role": "Recruiter"},
        ],
        "date_range": {"start": "2025-01-01", "end": "2025-03-01"},
    }


@pytest.fixture
def dataset_path(tmp_path: Path) -> Path:
    path = tmp_path / "dataset.json"
    write_json(path, dataset_payload())
    return path


def read_output(path: Path) -> dict:
    rendered = json.loads(path.read_text(encoding="utf-8"))
    assert set(rendered) == {"metadata", "result"}
    return rendered


def test_utilization_command_writes_report(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    output_path = tmp_path / "out" / "utilization.json"

    result = runner.invoke(app, ["utilization", "--dataset", str(dataset_path), "--output", str(output_path)])

    assert result.exit_code == 0, result.stdout
    rendered = read_output(output_path)
    assert rendered["metadata"]["command"] == "utilization"
    assert rendered["metadata"]["errors"] == []
    assert rendered["metadata"]["app_version"]
    rows = rendered["result"]["rows"]
    assert [row["recruiter_id"] for row in rows][0] == "rec_a"
    assert rows[0]["status"] == "critical"
    assert rows[0]["recruiter_name"] == "Ada Archer"


def test_rebalance_command_respects_limit(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    output_path = tmp_path / "rebalance.json"

    result = runner.invoke(
        app,
        [
            "rebalance",
            "--dataset",
            str(dataset_path),
            "--output",
            str(output_path),
            "--max-suggestions",
            "2",
        ],
    )

    assert result.exit_code == 0, result.stdout
    payload = read_output(output_path)["result"]
    assert payload["is_balanced"] is False
    assert [item["rank"] for item in payload["suggestions"]] == [1, 2]
    assert all(item["source_recruiter_id"] == "rec_a" for item in payload["suggestions"])


def test_simulate_command_reports_net_impact(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    output_path = tmp_path / "simulate.json"

    result = runner.invoke(
        app,
        [
            "simulate",
            "--dataset",
            str(dataset_path),
            "--output",
            str(output_path),
            "--req-id",
            "REC_A-1",
            "--target",
            "rec_b",
        ],
    )

    assert result.exit_code == 0, result.stdout
    payload = read_output(output_path)["result"]
    assert payload["move"] == {
        "req_id": "REC_A-1",
        "source_recruiter_id": "rec_a",
        "target_recruiter_id": "rec_b",
    }
    assert payload["net_impact"]["delay_reduction_days"] > 0


def test_simulate_unknown_req_fails(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    result = runner.invoke(
        app,
        [
            "simulate",
            "--dataset",
            str(dataset_path),
            "--output",
            str(tmp_path / "simulate.json"),
            "--req-id",
            "MISSING",
            "--target",
            "rec_b",
        ],
    )

    assert result.exit_code != 0
    assert not (tmp_path / "simulate.json").exists()


def test_scenario_command_with_anonymized_config(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    scenario_path = tmp_path / "scenario.json"
    config_path = tmp_path / "config.yaml"
    output_path = tmp_path / "scenario-out.json"
    write_json(scenario_path, {"scenario_id": "RECRUITER_DEPARTS", "params": {"recruiter_id": "rec_b"}})
    config_path.write_text("engine:\n  privacy_mode: anonymized\noutput:\n  indent: 4\n", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "scenario",
            "--dataset",
            str(dataset_path),
            "--scenario",
            str(scenario_path),
            "--output",
            str(output_path),
            "--config",
            str(config_path),
        ],
    )

    assert result.exit_code == 0, result.stdout
    text = output_path.read_text(encoding="utf-8")
    payload = json.loads(text)["result"]
    assert payload["scenario_id"] == "RECRUITER_DEPARTS"
    assert payload["feasibility"] in {"ON_TRACK", "AT_RISK", "IMPOSSIBLE"}
    assert payload["action_plan"]
    for name in ("Ada Archer", "Bea Baker", "Cy Cole"):
        assert name not in text
    assert '\n    "metadata"' in text


def test_scenario_command_rejects_unknown_scenario(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    scenario_path = tmp_path / "scenario.json"
    write_json(scenario_path, {"scenario_id": "MERGE_TEAMS", "params": {}})

    result = runner.invoke(
        app,
        [
            "scenario",
            "--dataset",
            str(dataset_path),
            "--scenario",
            str(scenario_path),
            "--output",
            str(tmp_path / "scenario-out.json"),
        ],
    )

    assert result.exit_code != 0


def test_scenario_command_rejects_unknown_benchmarks(tmp_path: Path, dataset_path: Path, runner: CliRunner) -> None:
    scenario_path = tmp_path / "scenario.json"
    write_json(
        scenario_path,
        {"scenario_id": "HIRING_FREEZE", "params": {"freeze_weeks": 4}, "benchmarks": {"ttf": 30}},
    )

    result = runner.invoke(
        app,
        [
            "scenario",
            "--dataset",
            str(dataset_path),
            "--scenario",
            str(scenario_path),
            "--output",
            str(tmp_path / "scenario-out.json"),
        ],
    )

    assert result.exit_code != 0
    assert not (tmp_path / "scenario-out.json").exists()


def test_invalid_records_are_reported_in_metadata(tmp_path: Path, runner: CliRunner) -> None:
    payload = dataset_payload()
    payload["candidates"].append({"candidate_id": "BAD-1", "req_id": "REC_B-1", "disposition": "ghosted"})
    dataset_path = tmp_path / "dataset.json"
    write_json(dataset_path, payload)
    output_path = tmp_path / "utilization.json"

    result = runner.invoke(app, ["utilization", "--dataset", str(dataset_path), "--output", str(output_path)])

    assert result.exit_code == 0, result.stdout
    errors = read_output(output_path)["metadata"]["errors"]
    assert len(errors) == 1
    assert errors[0].startswith("candidates[")
