import json

import pytest

from kessan import config as config_module
from kessan.config import load_config
from kessan.run_logger import log_step, log_step_if_enabled


ENV_KEYS = [
    "MAX_DOCUMENT_BYTES",
    "CSV_DELIMITER",
    "BALANCE_TOLERANCE_RATIO",
    "BALANCE_TOLERANCE_YEN",
    "RATIO_ANOMALY_THRESHOLD",
    "GROWTH_ANOMALY_THRESHOLD",
    "ANALYSIS_MAX_CONCURRENCY",
    "RUN_LOG_DIR",
    "DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.setattr(config_module, "load_dotenv", lambda: None)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = load_config()
    assert config.max_document_bytes == 100 * 1024 * 1024
    assert config.csv_delimiter == ","
    assert config.balance_tolerance_ratio == 0.01
    assert config.balance_tolerance_yen == 1.0
    assert config.ratio_anomaly_threshold == 0.30
    assert config.growth_anomaly_threshold == 0.50
    assert config.analysis_max_concurrency == 4
    assert config.run_log_dir == ""
    assert config.debug is False


def test_environment_overrides(clean_env):
    clean_env.setenv("MAX_DOCUMENT_BYTES", "2048")
    clean_env.setenv("CSV_DELIMITER", "tab")
    clean_env.setenv("BALANCE_TOLERANCE_RATIO", "0.005")
    clean_env.setenv("RUN_LOG_DIR", " outputs ")
    clean_env.setenv("DEBUG", "TRUE")
    config = load_config()
    assert config.max_document_bytes == 2048
    assert config.csv_delimiter == "\t"
    assert config.balance_tolerance_ratio == 0.005
    assert config.run_log_dir == "outputs"
    assert config.debug is True


@pytest.mark.parametrize("raw, expected", [("0", 1), ("64", 16), ("many", 4), ("8", 8)])
def test_concurrency_is_clamped(clean_env, raw, expected):
    clean_env.setenv("ANALYSIS_MAX_CONCURRENCY", raw)
    assert load_config().analysis_max_concurrency == expected


def test_invalid_numeric_setting_is_a_config_error(clean_env):
    clean_env.setenv("RATIO_ANOMALY_THRESHOLD", "thirty percent")
    with pytest.raises(ValueError):
        load_config()


def test_log_step_appends_json_lines(tmp_path):
    log_step(tmp_path / "run", "analysis", {"company": "テスト株式会社", "score": float("nan")})
    log_step(tmp_path / "run", "batch", {"items": 2})
    lines = (tmp_path / "run" / "run.log").read_text(encoding="utf-8").splitlines()
    entries = [json.loads(line) for line in lines]
    assert [e["step"] for e in entries] == ["analysis", "batch"]
    assert entries[0]["payload"] == {"company": "テスト株式会社", "score": None}
    assert "テスト株式会社" in lines[0]


def test_log_step_if_enabled_skips_empty_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    log_step_if_enabled("", "analysis", {"x": 1})
    assert not (tmp_path / "run.log").exists()
