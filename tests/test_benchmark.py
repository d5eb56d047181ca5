import pytest

from kessan.benchmark import (
    BenchmarkRating,
    IndustryBenchmark,
    benchmark_metric,
    benchmark_metrics,
    build_industry_benchmark,
    summarize_benchmarks,
)


@pytest.mark.parametrize(
    "value, rating",
    [
        (20, "top"),
        (15, "top"),
        (12, "above-average"),
        (10, "above-average"),
        (8, "average"),
        (5, "below-average"),
        (4.9, "bottom"),
    ],
)
def test_benchmark_bands(value, rating):
    result = benchmark_metric(value, industry_average=10, top_quartile=15)
    assert result.rating == rating
    assert result.delta_from_average == pytest.approx(value - 10)


def test_build_industry_benchmark_from_peers():
    benchmark = build_industry_benchmark("roe", [2, 4, 6, 8, None, "x"])
    assert benchmark.average == 5.0
    assert benchmark.median == 5.0
    assert benchmark.top_quartile == pytest.approx(6.5)
    assert build_industry_benchmark("roe", [7]).top_quartile == 7
    assert build_industry_benchmark("roe", []) is None


def test_benchmark_metrics_only_rates_metrics_present_on_both_sides():
    values = {"roe": 12.0, "roa": None, "equity_ratio": 45.0}
    industry = {
        "roe": {"average": 8.0, "top_quartile": 14.0},
        "roa": {"average": 4.0, "top_quartile": 7.0},
        "equity_ratio": IndustryBenchmark("equity_ratio", average=40.0, top_quartile=44.0),
        "current_ratio": {"average": 150.0, "top_quartile": 200.0},
    }
    ratings = benchmark_metrics(values, industry)
    assert set(ratings) == {"roe", "equity_ratio"}
    assert ratings["roe"].rating == "above-average"
    assert ratings["equity_ratio"].rating == "top"


def test_summarize_benchmarks_equal_weights():
    ratings = {
        "roe": BenchmarkRating("top", 5.0),
        "roa": BenchmarkRating("average", -1.0),
    }
    summary = summarize_benchmarks(ratings)
    assert summary.score == 75.0
    assert summary.label == "good"
    assert summary.counts["top"] == 1
    assert summary.counts["bottom"] == 0


def test_summarize_benchmarks_custom_weights():
    ratings = {
        "roe": BenchmarkRating("top", 5.0),
        "roa": BenchmarkRating("bottom", -4.0),
    }
    summary = summarize_benchmarks(ratings, weights={"roe": 3.0})
    assert summary.score == 75.0
    assert summarize_benchmarks(ratings, weights={"roa": 3.0}).label == "poor"


def test_summarize_without_ratings_has_no_score():
    summary = summarize_benchmarks({})
    assert summary.score is None
    assert summary.to_dict()["score"] is None
