from kessan.financials import compute_financial_metrics, flatten_metrics, statement_figures
from kessan.statement_parser import parse_statement
from tests.helpers.statement_builder import csv_bytes, make_config, sample_rows


def test_compute_financial_metrics_from_parsed_statement():
    statement = parse_statement(csv_bytes(sample_rows()), "statement.csv", config=make_config())
    metrics, flags, notes = compute_financial_metrics(statement)
    assert metrics["profitability"]["operating_margin"] == 10.0
    assert metrics["profitability"]["roa"] == 3.0
    assert metrics["profitability"]["roe"] == 7.5
    assert metrics["safety"]["interest_coverage_ratio"] is not None
    assert flags["efficiency.payables_turnover"] == "approximate"
    assert metrics["growth"]["revenue_growth"] is None
    assert any(note.startswith("growth.revenue_growth") for note in notes)


def test_statement_figures_accepts_plain_mapping_with_amount_text():
    figures = statement_figures({"revenue": "1,200千円", "net_income": 30, "bad": "n/a", "none": None})
    assert figures == {"revenue": 1_200_000.0, "net_income": 30.0, "bad": None, "none": None}
    assert statement_figures(None) == {}


def test_compute_financial_metrics_with_previous_year_mapping():
    current = {"revenue": 120, "total_assets": 100, "net_income": 12}
    previous = {"revenue": 100, "total_assets": 100}
    metrics, flags, _ = compute_financial_metrics(current, previous)
    assert metrics["growth"]["revenue_growth"] == 20.0
    assert metrics["efficiency"]["total_asset_turnover"] == 1.2
    assert flags["efficiency.total_asset_turnover"] == "ok"


def test_flatten_metrics():
    flat = flatten_metrics({"profitability": {"roe": 1.0}, "growth": {"revenue_growth": None}})
    assert flat == {"roe": 1.0, "revenue_growth": None}
