import json

import pytest

from econ_engine.cli import OPERATIONS, main, run_operation


def _write(tmp_path, name, payload):
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_npv_operation_prints_json(tmp_path):
    path = _write(tmp_path, "npv.json", {"initial_investment": 1000, "cash_flows": [1100], "discount_rate": 0.1})
    lines = []
    assert main(["npv", "--input", path], out=lines.append) == 0
    data = json.loads(lines[0])
    assert data["kind"] == "npv"
    assert data["npv"] == pytest.approx(0, abs=1e-9)


def test_engine_error_returns_one(tmp_path):
    path = _write(tmp_path, "bad.json", {"kloc": -5})
    lines = []
    assert main(["parametric", "--input", path], out=lines.append) == 1
    error = json.loads(lines[0])["error"]
    assert error["kind"] == "INVALID_INPUT"
    assert error["field"] == "source_size_kloc"


def test_unexpected_argument_returns_two(tmp_path):
    path = _write(tmp_path, "extra.json", {"kloc": 10, "lines_of_code": 1})
    assert main(["parametric", "--input", path], out=lambda _: None) == 2


def test_missing_input_file_returns_two(tmp_path):
    assert main(["roi", "--input", str(tmp_path / "nope.json")], out=lambda _: None) == 2


def test_config_override_applies(tmp_path):
    params = _write(tmp_path, "p.json", {"kloc": 10})
    config = tmp_path / "engine.yaml"
    config.write_text("estimation:\n  cost_per_person_month: 1\n", encoding="utf-8")
    lines = []
    assert main(["parametric", "--input", params, "--config", str(config)], out=lines.append) == 0
    data = json.loads(lines[0])
    assert data["cost"] == pytest.approx(data["effort"])


def test_every_operation_is_callable():
    assert set(OPERATIONS) >= {"comprehensive", "monte-carlo", "decision-tree", "compare-estimations"}
    result = run_operation("roi", {"total_investment": 100, "total_return": 150})
    assert result.roi_pct == pytest.approx(50)


def test_non_mapping_input_returns_two(tmp_path):
    path = _write(tmp_path, "list.json", [1, 2, 3])
    assert main(["roi", "--input", path], out=lambda _: None) == 2


def test_type_error_inside_operation_propagates(tmp_path, monkeypatch):
    def failing_roi(total_investment, total_return):
        raise TypeError("unsupported operand")

    monkeypatch.setitem(OPERATIONS, "roi", (failing_roi, False))
    path = _write(tmp_path, "roi.json", {"total_investment": 100, "total_return": 150})
    with pytest.raises(TypeError, match="unsupported operand"):
        main(["roi", "--input", path], out=lambda _: None)


def test_comprehensive_output_keeps_interpretations(tmp_path):
    path = _write(tmp_path, "case.json", {"initial_investment": 100000, "cash_flows": [30000, 40000, 50000, 60000]})
    lines = []
    assert main(["comprehensive", "--input", path], out=lines.append) == 0
    data = json.loads(lines[0])
    assert data["roi"]["interpretation"] == "Profitable"
    assert data["irr"]["interpretation"] == "Positive return"


def test_budget_forecast_operation(tmp_path):
    path = _write(
        tmp_path,
        "forecast.json",
        {"budget_plan": {"totalBudget": 100000}, "spent_to_date": 40000, "time_elapsed": 4, "total_timeframe": 10},
    )
    lines = []
    assert main(["budget-forecast", "--input", path], out=lines.append) == 0
    data = json.loads(lines[0])
    assert data["kind"] == "budget_forecast"
    assert data["trend"] == "linear"
    assert data["projected_total"] == pytest.approx(100000)
