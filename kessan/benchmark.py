import statistics
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from .models import to_jsonable
from .ratio_calculator import as_number


TOP = "top"
ABOVE_AVERAGE = "above-average"
AVERAGE = "average"
BELOW_AVERAGE = "below-average"
BOTTOM = "bottom"

TIERS = (TOP, ABOVE_AVERAGE, AVERAGE, BELOW_AVERAGE, BOTTOM)
TIER_POINTS = {TOP: 100, ABOVE_AVERAGE: 75, AVERAGE: 50, BELOW_AVERAGE: 25, BOTTOM: 0}


@dataclass(frozen=True)
class IndustryBenchmark:
    metric: str
    average: float
    top_quartile: float
    median: Optional[float] = None


@dataclass(frozen=True)
class BenchmarkRating:
    rating: str
    delta_from_average: float


@dataclass(frozen=True)
class BenchmarkSummary:
    score: Optional[float]
    label: Optional[str]
    counts: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {"score": to_jsonable(self.score), "label": self.label, "counts": dict(self.counts)}


def build_industry_benchmark(metric: str, data_points: Iterable[Any]) -> Optional[IndustryBenchmark]:
    """Peer reference values from raw peer observations; None without any."""
    values = sorted(v for v in (as_number(p) for p in data_points) if v is not None)
    if not values:
        return None
    if len(values) == 1:
        top_quartile = values[0]
    else:
        top_quartile = statistics.quantiles(values, n=4, method="inclusive")[2]
    return IndustryBenchmark(
        metric=metric,
        average=statistics.fmean(values),
        top_quartile=top_quartile,
        median=statistics.median(values),
    )


def benchmark_metric(value: float, industry_average: float, top_quartile: float) -> BenchmarkRating:
    """Rate a value against peer reference values.

    Bands, checked in order: >= top quartile is "top", >= average is
    "above-average", >= 0.8 x average is "average", >= 0.5 x average is
    "below-average", anything else "bottom".
    """
    if value >= top_quartile:
        rating = TOP
    elif value >= industry_average:
        rating = ABOVE_AVERAGE
    elif value >= 0.8 * industry_average:
        rating = AVERAGE
    elif value >= 0.5 * industry_average:
        rating = BELOW_AVERAGE
    else:
        rating = BOTTOM
    return BenchmarkRating(rating=rating, delta_from_average=value - industry_average)


def _reference(entry: Any) -> Optional[IndustryBenchmark]:
    if isinstance(entry, IndustryBenchmark):
        return entry
    if isinstance(entry, Mapping):
        average = as_number(entry.get("average"))
        top_quartile = as_number(entry.get("top_quartile"))
        if average is None or top_quartile is None:
            return None
        return IndustryBenchmark(
            metric=str(entry.get("metric", "")),
            average=average,
            top_quartile=top_quartile,
            median=as_number(entry.get("median")),
        )
    return None


def benchmark_metrics(
    values: Mapping[str, Optional[float]],
    industry_data: Optional[Mapping[str, Any]],
) -> Dict[str, BenchmarkRating]:
    """Ratings for metrics that have both a value and peer reference data.

    ``industry_data`` maps metric name to an ``IndustryBenchmark`` or a dict
    with ``average`` and ``top_quartile`` keys.
    """
    ratings: Dict[str, BenchmarkRating] = {}
    for metric, entry in (industry_data or {}).items():
        value = as_number(values.get(metric))
        reference = _reference(entry)
        if value is None or reference is None:
            continue
        ratings[metric] = benchmark_metric(value, reference.average, reference.top_quartile)
    return ratings


def _label(score: float) -> str:
    if score >= 80:
        return "excellent"
    if score >= 65:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


def summarize_benchmarks(
    ratings: Mapping[str, BenchmarkRating],
    weights: Optional[Mapping[str, float]] = None,
) -> BenchmarkSummary:
    counts = Counter(r.rating for r in ratings.values())
    tier_counts = {tier: counts.get(tier, 0) for tier in TIERS}
    weights = weights or {}
    total_weight = 0.0
    weighted = 0.0
    for metric, rating in ratings.items():
        weight = float(weights.get(metric, 1.0))
        if weight <= 0:
            continue
        weighted += TIER_POINTS[rating.rating] * weight
        total_weight += weight
    if total_weight == 0:
        return BenchmarkSummary(score=None, label=None, counts=tier_counts)
    score = weighted / total_weight
    return BenchmarkSummary(score=score, label=_label(score), counts=tier_counts)
