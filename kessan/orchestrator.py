import json
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .anomaly import PEER_AVERAGE, PRIOR_PERIOD, AnomalyReport, AnomalyThresholds, build_anomaly_report
from .benchmark import BenchmarkRating, BenchmarkSummary, benchmark_metrics, summarize_benchmarks
from .cashflow import CashFlowAnalysis, analyze_cash_flow
from .config import AppConfig, load_config
from .errors import KessanError
from .financials import FigureSource, compute_financial_metrics, flatten_metrics, statement_figures
from .models import DocumentInput, ParsedStatement, to_jsonable
from .ratio_calculator import FinancialRatioCalculator
from .run_logger import log_step_if_enabled
from .statement_parser import parse_statement


QUALITY_WEIGHTS = {
    "profitability": 0.30,
    "safety": 0.25,
    "efficiency": 0.20,
    "growth": 0.15,
    "cash_flow": 0.10,
}
RATING_POINTS = {"excellent": 100, "good": 75, "fair": 50, "poor": 25}

BatchItem = Union[ParsedStatement, DocumentInput, Mapping[str, Any]]


@dataclass(frozen=True)
class AnalysisOptions:
    include_benchmark: bool = True
    include_anomaly_detection: bool = True
    anomaly_thresholds: Optional[AnomalyThresholds] = None
    benchmark_weights: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class AnalysisResult:
    metrics: Dict[str, Dict[str, Optional[float]]]
    flags: Dict[str, str]
    ratings: Dict[str, Dict[str, str]]
    notes: List[str]
    cash_flow: CashFlowAnalysis
    benchmark_ratings: Optional[Dict[str, BenchmarkRating]] = None
    benchmark_summary: Optional[BenchmarkSummary] = None
    anomaly_report: Optional[AnomalyReport] = None
    quality_score: Optional[float] = None
    overall_rating: Optional[str] = None
    company: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        benchmark = None
        if self.benchmark_ratings is not None:
            benchmark = {
                "ratings": to_jsonable(self.benchmark_ratings),
                "summary": to_jsonable(self.benchmark_summary),
            }
        return {
            "company": to_jsonable(self.company),
            "metrics": to_jsonable(self.metrics),
            "flags": dict(self.flags),
            "ratings": to_jsonable(self.ratings),
            "notes": list(self.notes),
            "cash_flow": self.cash_flow.to_dict(),
            "benchmark": benchmark,
            "anomalies": to_jsonable(self.anomaly_report),
            "quality_score": to_jsonable(self.quality_score),
            "overall_rating": self.overall_rating,
        }


@dataclass(frozen=True)
class BatchItemResult:
    index: int
    result: Optional[AnalysisResult] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "ok": self.ok,
            "result": self.result.to_dict() if self.result is not None else None,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


def rating_for_score(score: Optional[float]) -> Optional[str]:
    if score is None:
        return None
    if score >= 80:
        return "excellent"
    if score >= 65:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


def compute_quality_score(
    ratings: Mapping[str, Mapping[str, str]],
    cash_flow: CashFlowAnalysis,
) -> Optional[float]:
    """Weighted 0..100 score over the groups that have at least one rating."""
    group_scores: Dict[str, float] = {}
    for group, values in ratings.items():
        points = [RATING_POINTS[r] for r in values.values() if r in RATING_POINTS]
        if points:
            group_scores[group] = sum(points) / len(points)
    cash_rating = rating_for_score(cash_flow.health_score)
    if cash_rating is not None:
        group_scores["cash_flow"] = RATING_POINTS[cash_rating]

    total_weight = sum(QUALITY_WEIGHTS[g] for g in group_scores if g in QUALITY_WEIGHTS)
    if total_weight == 0:
        return None
    weighted = sum(score * QUALITY_WEIGHTS[g] for g, score in group_scores.items() if g in QUALITY_WEIGHTS)
    return weighted / total_weight


def _peer_averages(industry_data: Mapping[str, Any]) -> Dict[str, Optional[float]]:
    averages: Dict[str, Optional[float]] = {}
    for metric, entry in industry_data.items():
        if isinstance(entry, Mapping):
            averages[metric] = entry.get("average")
        else:
            averages[metric] = getattr(entry, "average", None)
    return averages


def _company_summary(statement: FigureSource) -> Dict[str, Any]:
    if not isinstance(statement, ParsedStatement):
        return {}
    return {
        "name": statement.company.name,
        "industry_code": statement.company.industry_code,
        "industry_name": statement.company.industry_name,
        "period": statement.period.label,
        "warnings": [w.code for w in statement.warnings],
    }


def analyze_financial_data(
    statement: FigureSource,
    previous_year: FigureSource = None,
    industry_data: Optional[Mapping[str, Any]] = None,
    options: Optional[AnalysisOptions] = None,
    config: Optional[AppConfig] = None,
) -> AnalysisResult:
    config = config or load_config()
    options = options or AnalysisOptions()

    metrics, flags, notes = compute_financial_metrics(statement, previous_year)
    ratings = FinancialRatioCalculator.rate_all(metrics)
    cash_flow = analyze_cash_flow(statement_figures(statement))
    flat = flatten_metrics(metrics)

    benchmark_ratings = None
    benchmark_summary = None
    if options.include_benchmark and industry_data:
        benchmark_ratings = benchmark_metrics(flat, industry_data)
        benchmark_summary = summarize_benchmarks(benchmark_ratings, options.benchmark_weights)

    anomaly_report = None
    if options.include_anomaly_detection:
        thresholds = options.anomaly_thresholds or AnomalyThresholds(
            ratio=config.ratio_anomaly_threshold,
            growth=config.growth_anomaly_threshold,
        )
        baselines: Dict[str, Dict[str, Optional[float]]] = {}
        if previous_year is not None:
            prior_metrics, _, _ = compute_financial_metrics(previous_year)
            baselines[PRIOR_PERIOD] = flatten_metrics(prior_metrics)
        if industry_data:
            baselines[PEER_AVERAGE] = _peer_averages(industry_data)
        anomaly_report = build_anomaly_report(flat, baselines, thresholds)

    quality_score = compute_quality_score(ratings, cash_flow)
    result = AnalysisResult(
        metrics=metrics,
        flags=flags,
        ratings=ratings,
        notes=notes,
        cash_flow=cash_flow,
        benchmark_ratings=benchmark_ratings,
        benchmark_summary=benchmark_summary,
        anomaly_report=anomaly_report,
        quality_score=quality_score,
        overall_rating=rating_for_score(quality_score),
        company=_company_summary(statement),
    )
    log_step_if_enabled(
        config.run_log_dir,
        "analysis",
        {
            "company": result.company.get("name"),
            "quality_score": quality_score,
            "overall_rating": result.overall_rating,
            "cash_flow_pattern": cash_flow.pattern.key if cash_flow.pattern else None,
            "anomalies": len(anomaly_report.anomalies) if anomaly_report else 0,
        },
    )
    return result


def _as_statement(item: BatchItem, config: AppConfig) -> FigureSource:
    if isinstance(item, DocumentInput):
        return parse_statement(item.data, item.hint, config=config)
    return item


def _analyze_item(
    index: int,
    item: BatchItem,
    previous_year: Optional[BatchItem],
    industry_data: Optional[Mapping[str, Any]],
    options: Optional[AnalysisOptions],
    config: AppConfig,
) -> BatchItemResult:
    try:
        statement = _as_statement(item, config)
        previous = _as_statement(previous_year, config) if previous_year is not None else None
        result = analyze_financial_data(statement, previous, industry_data, options, config)
    except KessanError as exc:
        payload = {"index": index, "error_kind": type(exc).__name__, "error": str(exc)}
        if config.debug:
            payload["traceback"] = traceback.format_exc()
        log_step_if_enabled(config.run_log_dir, "batch_item", payload)
        return BatchItemResult(index=index, error_kind=type(exc).__name__, error_message=str(exc))
    return BatchItemResult(index=index, result=result)


def analyze_batch(
    items: Sequence[BatchItem],
    previous_years: Optional[Sequence[Optional[BatchItem]]] = None,
    industry_data: Optional[Mapping[str, Any]] = None,
    options: Optional[AnalysisOptions] = None,
    config: Optional[AppConfig] = None,
) -> List[BatchItemResult]:
    """Analyse every item on a thread pool; slot i of the output is item i.

    A documented error in one item becomes that slot's error entry and
    leaves the other slots untouched.
    """
    config = config or load_config()
    items = list(items)
    previous = list(previous_years or [])
    previous += [None] * (len(items) - len(previous))
    if not items:
        return []

    workers = max(1, min(config.analysis_max_concurrency, len(items)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_analyze_item, i, item, previous[i], industry_data, options, config)
            for i, item in enumerate(items)
        ]
        results = [fut.result() for fut in futures]

    log_step_if_enabled(
        config.run_log_dir,
        "batch",
        {"items": len(results), "failed": [r.index for r in results if not r.ok]},
    )
    return results


def export_to_json(payload: Any, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    _write_json(path, to_jsonable(payload))
    return path


def _write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
