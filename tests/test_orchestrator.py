import json

import pytest

from kessan.anomaly import AnomalyThresholds
from kessan.models import DocumentInput
from kessan.orchestrator import (
    AnalysisOptions,
    analyze_batch,
    analyze_financial_data,
    compute_quality_score,
    export_to_json,
)
from kessan.cashflow import analyze_cash_flow
from kessan.statement_parser import parse_statement
from tests.helpers.statement_builder import corrupt_xlsx_bytes, csv_bytes, make_config, sample_figures, sample_rows


def _statement():
    return parse_statement(csv_bytes(sample_rows()), "statement.csv", config=make_config())


def test_analyze_financial_data_composes_all_parts():
    industry = {
        "roe": {"average": 8.0, "top_quartile": 12.0},
        "operating_margin": {"average": 6.0, "top_quartile": 9.0},
    }
    result = analyze_financial_data(_statement(), industry_data=industry, config=make_config())
    assert result.metrics["profitability"]["roe"] == 7.5
    assert result.cash_flow.pattern.key == "healthy_growth"
    assert result.benchmark_ratings["roe"].rating == "average"
    assert result.benchmark_ratings["operating_margin"].rating == "top"
    assert result.benchmark_summary.score == 75.0
    assert result.anomaly_report is not None
    assert result.quality_score is not None
    assert result.overall_rating in ("excellent", "good", "fair", "poor")
    assert result.company["name"] == "サンプル工業株式会社"


def test_prior_year_enables_growth_and_anomalies():
    previous = dict(sample_figures(), revenue=50_000_000, net_income=2_000_000)
    result = analyze_financial_data(sample_figures(), previous_year=previous, config=make_config())
    assert result.metrics["growth"]["revenue_growth"] == 100.0
    metrics = [a.metric for a in result.anomaly_report.anomalies]
    assert "net_margin" in metrics
    assert result.flags["efficiency.total_asset_turnover"] == "ok"


def test_options_can_disable_benchmark_and_anomalies():
    options = AnalysisOptions(include_benchmark=False, include_anomaly_detection=False)
    result = analyze_financial_data(
        sample_figures(),
        industry_data={"roe": {"average": 1.0, "top_quartile": 2.0}},
        options=options,
        config=make_config(),
    )
    assert result.benchmark_ratings is None
    assert result.anomaly_report is None
    payload = result.to_dict()
    assert payload["benchmark"] is None
    assert payload["anomalies"] is None


def test_custom_anomaly_thresholds():
    previous = dict(sample_figures(), net_income=4_000_000)
    loose = AnalysisOptions(anomaly_thresholds=AnomalyThresholds(ratio=0.5, growth=0.5))
    result = analyze_financial_data(sample_figures(), previous, options=loose, config=make_config())
    assert "net_margin" not in [a.metric for a in result.anomaly_report.anomalies]


def test_quality_score_renormalises_over_rated_groups():
    cash_flow = analyze_cash_flow({})
    assert compute_quality_score({"profitability": {}, "growth": {}}, cash_flow) is None
    only_profitability = {"profitability": {"roe": "excellent", "roa": "fair"}}
    assert compute_quality_score(only_profitability, cash_flow) == pytest.approx(75.0)


def test_empty_figures_still_produce_a_result():
    result = analyze_financial_data({}, config=make_config())
    assert result.quality_score is None
    assert result.overall_rating is None
    assert result.cash_flow.status == "insufficient_data"
    json.dumps(result.to_dict())


def test_batch_keeps_order_and_isolates_failures():
    items = [
        DocumentInput(csv_bytes(sample_rows()), "ok.csv"),
        DocumentInput(b"\x00\x01\x02binary", "broken.bin"),
        sample_figures(),
        DocumentInput(csv_bytes([["売上高", "1,000"]]), "no-period.csv"),
    ]
    results = analyze_batch(items, config=make_config(analysis_max_concurrency=3))
    assert [r.index for r in results] == [0, 1, 2, 3]
    assert [r.ok for r in results] == [True, False, True, False]
    assert results[1].error_kind == "UnsupportedFormatError"
    assert results[3].error_kind == "ValidationError"
    assert results[0].result.company["name"] == "サンプル工業株式会社"


def test_batch_valid_and_malformed_document():
    items = [_statement(), DocumentInput(b"", "empty.csv")]
    results = analyze_batch(items, config=make_config())
    assert len(results) == 2
    assert results[0].ok
    assert not results[1].ok
    assert results[1].to_dict()["result"] is None


def test_batch_survives_workbook_with_broken_xml():
    items = [
        DocumentInput(csv_bytes(sample_rows()), "ok.csv"),
        DocumentInput(corrupt_xlsx_bytes(), "broken.xlsx"),
    ]
    results = analyze_batch(items, config=make_config())
    assert [r.ok for r in results] == [True, False]
    assert results[1].error_kind == "ExtractionError"
    assert results[0].result.metrics["profitability"]["roe"] == 7.5


def test_batch_previous_years_align_with_items():
    previous = dict(sample_figures(), revenue=80_000_000)
    results = analyze_batch([sample_figures(), sample_figures()], previous_years=[previous], config=make_config())
    assert results[0].result.metrics["growth"]["revenue_growth"] == 25.0
    assert results[1].result.metrics["growth"]["revenue_growth"] is None
    assert analyze_batch([], config=make_config()) == []


def test_batch_writes_run_log(tmp_path):
    config = make_config(run_log_dir=str(tmp_path))
    analyze_batch([sample_figures(), DocumentInput(b"", "x.csv")], config=config)
    steps = [json.loads(line)["step"] for line in (tmp_path / "run.log").read_text(encoding="utf-8").splitlines()]
    assert steps.count("analysis") == 1
    assert "batch_item" in steps
    assert steps[-1] == "batch"


@pytest.mark.parametrize("debug", [True, False])
def test_debug_adds_traceback_to_failed_item_log(tmp_path, debug):
    config = make_config(run_log_dir=str(tmp_path), debug=debug)
    analyze_batch([DocumentInput(b"", "x.csv")], config=config)
    entries = [json.loads(line) for line in (tmp_path / "run.log").read_text(encoding="utf-8").splitlines()]
    payload = next(e["payload"] for e in entries if e["step"] == "batch_item")
    assert payload["error_kind"] == "UnsupportedFormatError"
    if debug:
        assert "Traceback" in payload["traceback"]
        assert "UnsupportedFormatError" in payload["traceback"]
    else:
        assert "traceback" not in payload


def test_export_to_json(tmp_path):
    result = analyze_financial_data(_statement(), config=make_config())
    path = export_to_json(result, tmp_path / "out" / "analysis.json")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["metrics"]["profitability"]["roe"] == 7.5
    assert payload["cash_flow"]["pattern"]["label"] == "healthy growth"
    assert "サンプル工業株式会社" in path.read_text(encoding="utf-8")
