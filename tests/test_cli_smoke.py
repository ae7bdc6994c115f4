import json

from nestegg.__main__ import main
from tests.helpers import clone_config, write_config


def _short(sample_config_dict: dict) -> dict:
    data = clone_config(sample_config_dict)
    data["simulation"]["end_month"] = "2026-12"
    return data


def test_validate_mode_exits_zero(sample_config_path, capsys):
    code = main([str(sample_config_path), "--validate"])
    assert code == 0
    assert "Config is valid." in capsys.readouterr().out


def test_invalid_config_returns_one(tmp_path, sample_config_dict, capsys):
    data = clone_config(sample_config_dict)
    data["withdrawal_routing"] = [{"account_id": "ghost", "percentage": 1}]
    code = main([str(write_config(tmp_path, data)), "--validate"])
    assert code == 1
    assert "unknown account 'ghost'" in capsys.readouterr().err


def test_missing_config_file_returns_two(tmp_path):
    assert main([str(tmp_path / "nope.json"), "--validate"]) == 2


def test_schema_error_returns_two(tmp_path, sample_config_dict, capsys):
    data = clone_config(sample_config_dict)
    del data["person"]
    code = main([str(write_config(tmp_path, data))])
    assert code == 2
    assert "person: missing required field" in capsys.readouterr().err


def test_summary_and_json_output(tmp_path, sample_config_dict, capsys):
    config_path = write_config(tmp_path, _short(sample_config_dict))
    output_path = tmp_path / "out" / "result.json"
    code = main([str(config_path), "--summary", "--json", str(output_path)])

    assert code == 0
    out = capsys.readouterr().out
    assert "Mode: deterministic" in out
    assert "Years: 2025-2026" in out
    assert "Seed: 42" in out
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert [row["year"] for row in payload["annual"]] == [2025, 2026]
    assert len(payload["months"]) == 24


def test_mode_override_runs_monte_carlo(tmp_path, sample_config_dict, capsys):
    config_path = write_config(tmp_path, _short(sample_config_dict))
    code = main([str(config_path), "--mode", "monte_carlo", "--trials", "3", "--seed", "7", "--summary"])
    assert code == 0
    out = capsys.readouterr().out
    assert "Mode: monte_carlo" in out
    assert "(3 trials)" in out
    assert "Seed: 7" in out


def test_rolling_windows(tmp_path, sample_config_dict, capsys):
    config_path = write_config(tmp_path, _short(sample_config_dict))
    code = main([str(config_path), "--rolling", "1926", "1930", "--summary"])
    assert code == 0
    assert "(4 trials)" in capsys.readouterr().out


def test_historical_data_running_out_returns_two(tmp_path, sample_config_dict, capsys):
    data = _short(sample_config_dict)
    data["levers"]["market"] = {"mode": "historical", "historical_returns": [0.01] * 6}
    code = main([str(write_config(tmp_path, data))])
    assert code == 2
    assert "Simulation failed" in capsys.readouterr().err


def test_bad_precision_returns_two(tmp_path, sample_config_dict, capsys):
    data = _short(sample_config_dict)
    data["precision"] = {"digits": 0}
    code = main([str(write_config(tmp_path, data))])
    assert code == 2
    assert "precision.digits" in capsys.readouterr().err
