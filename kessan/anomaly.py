"""Outlier swings against a prior period or peer averages.

A missing baseline is a normal state: the metric is simply left undecided.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import to_jsonable
from .ratio_calculator import as_number


PRIOR_PERIOD = "prior_period"
PEER_AVERAGE = "peer_average"
ABSOLUTE_LIMIT = "absolute_limit"

BASELINE_NAMES = {PRIOR_PERIOD: "the prior period", PEER_AVERAGE: "the peer average"}

INFO = "info"
WARNING = "warning"
CRITICAL = "critical"

# metric -> (minimum, maximum); None means unbounded on that side.
ABSOLUTE_LIMITS: Dict[str, Tuple[Optional[float], Optional[float]]] = {
    "equity_ratio": (10.0, None),
    "roe": (-10.0, None),
    "current_ratio": (50.0, None),
    "debt_ratio": (None, 300.0),
}


@dataclass(frozen=True)
class AnomalyThresholds:
    ratio: float = 0.30
    growth: float = 0.50

    def for_metric(self, metric: str) -> float:
        return self.growth if metric.endswith("_growth") else self.ratio


@dataclass(frozen=True)
class Anomaly:
    metric: str
    current: float
    baseline: float
    baseline_kind: str
    change_ratio: float
    threshold: float
    severity: str
    direction: str
    description: str = ""


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: List[Anomaly] = field(default_factory=list)
    undetermined: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anomalies": to_jsonable(self.anomalies),
            "undetermined": list(self.undetermined),
            "counts": severity_counts(self.anomalies),
            "summary": summarize_anomalies(self.anomalies),
        }


def severity_counts(anomalies: Sequence[Anomaly]) -> Dict[str, int]:
    counts = {INFO: 0, WARNING: 0, CRITICAL: 0}
    for anomaly in anomalies:
        counts[anomaly.severity] += 1
    return counts


def summarize_anomalies(anomalies: Sequence[Anomaly]) -> str:
    """One headline with severity counts, then one line per anomaly."""
    if not anomalies:
        return "No anomalies detected."
    counts = severity_counts(anomalies)
    lines = [
        f"Anomalies detected: {len(anomalies)} "
        f"({counts[CRITICAL]} critical, {counts[WARNING]} warning, {counts[INFO]} info)"
    ]
    for anomaly in anomalies:
        lines.append(f"[{anomaly.severity.upper()}] {anomaly.description}")
    return "\n".join(lines)


def _describe_swing(
    metric: str, current: float, baseline: float, baseline_kind: str, change_ratio: float
) -> str:
    verb = "rose" if current > baseline else "fell"
    against = BASELINE_NAMES.get(baseline_kind, baseline_kind)
    return f"{metric} {verb} {change_ratio:.0%} against {against} ({baseline:,.2f} to {current:,.2f})"


def _severity(change_ratio: float, threshold: float) -> str:
    if change_ratio < 1.5 * threshold:
        return INFO
    if change_ratio < 2 * threshold:
        return WARNING
    return CRITICAL


def _decidable(current: Any, baseline: Any) -> bool:
    base = as_number(baseline)
    return as_number(current) is not None and base is not None and base != 0


def detect_anomalies(
    current: Mapping[str, Optional[float]],
    baseline: Optional[Mapping[str, Optional[float]]],
    thresholds: Optional[AnomalyThresholds] = None,
    baseline_kind: str = PRIOR_PERIOD,
) -> List[Anomaly]:
    """Metrics whose relative swing |cur - base| / |base| exceeds the threshold.

    Growth metrics (names ending in ``_growth``) use the growth threshold,
    everything else the ratio threshold. Metrics without a usable baseline
    are skipped. Largest swing first.
    """
    if not baseline:
        return []
    thresholds = thresholds or AnomalyThresholds()
    found: List[Anomaly] = []
    for metric, value in current.items():
        base_value = baseline.get(metric)
        if not _decidable(value, base_value):
            continue
        cur = as_number(value)
        base = as_number(base_value)
        change_ratio = abs(cur - base) / abs(base)
        threshold = thresholds.for_metric(metric)
        if change_ratio <= threshold:
            continue
        found.append(
            Anomaly(
                metric=metric,
                current=cur,
                baseline=base,
                baseline_kind=baseline_kind,
                change_ratio=change_ratio,
                threshold=threshold,
                severity=_severity(change_ratio, threshold),
                direction="increase" if cur > base else "decrease",
                description=_describe_swing(metric, cur, base, baseline_kind, change_ratio),
            )
        )
    found.sort(key=lambda a: a.change_ratio, reverse=True)
    return found


def check_absolute_limits(
    current: Mapping[str, Optional[float]],
    limits: Optional[Mapping[str, Tuple[Optional[float], Optional[float]]]] = None,
) -> List[Anomaly]:
    """Breaches of fixed floors and ceilings, e.g. an equity ratio under 10%.

    A breach more than half the limit's magnitude away is critical, any other
    breach a warning.
    """
    found: List[Anomaly] = []
    for metric, (minimum, maximum) in (ABSOLUTE_LIMITS if limits is None else limits).items():
        value = as_number(current.get(metric))
        if value is None:
            continue
        if minimum is not None and value < minimum:
            limit, direction = minimum, "below_minimum"
            description = f"{metric} at {value:,.2f} is below the minimum of {limit:,.2f}"
        elif maximum is not None and value > maximum:
            limit, direction = maximum, "above_maximum"
            description = f"{metric} at {value:,.2f} is above the maximum of {limit:,.2f}"
        else:
            continue
        breach = abs(value - limit) / abs(limit) if limit else abs(value - limit)
        found.append(
            Anomaly(
                metric=metric,
                current=value,
                baseline=limit,
                baseline_kind=ABSOLUTE_LIMIT,
                change_ratio=breach,
                threshold=0.5,
                severity=CRITICAL if breach > 0.5 else WARNING,
                direction=direction,
                description=description,
            )
        )
    return found


def build_anomaly_report(
    current: Mapping[str, Optional[float]],
    baselines: Optional[Mapping[str, Optional[Mapping[str, Optional[float]]]]] = None,
    thresholds: Optional[AnomalyThresholds] = None,
    include_absolute_limits: bool = True,
) -> AnomalyReport:
    """Run every baseline (kind -> metric mapping) and collect the results.

    ``undetermined`` lists metrics with a value that no baseline could judge.
    """
    baselines = {kind: data for kind, data in (baselines or {}).items() if data}
    anomalies: List[Anomaly] = []
    for kind, data in baselines.items():
        anomalies.extend(detect_anomalies(current, data, thresholds, baseline_kind=kind))
    if include_absolute_limits:
        anomalies.extend(check_absolute_limits(current))
    anomalies.sort(key=lambda a: a.change_ratio, reverse=True)

    undetermined = [
        metric
        for metric, value in current.items()
        if as_number(value) is not None
        and not any(_decidable(value, data.get(metric)) for data in baselines.values())
    ]
    return AnomalyReport(anomalies=anomalies, undetermined=undetermined)
