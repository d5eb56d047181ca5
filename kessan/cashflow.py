"""Cash flow pattern classification.

The signs of operating, investing and financing cash flow place a company in
one of eight patterns. All eight are listed explicitly in ``PATTERNS``.
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import to_jsonable
from .ratio_calculator import as_number


HEALTHY = "healthy"
CAUTION = "caution"
CRITICAL = "critical"

Signs = Tuple[str, str, str]


@dataclass(frozen=True)
class CashFlowPattern:
    key: str
    signs: Signs
    label: str
    health: str
    description: str


PATTERNS: Dict[Signs, CashFlowPattern] = {
    ("+", "+", "+"): CashFlowPattern(
        "cash_accumulation",
        ("+", "+", "+"),
        "cash accumulation",
        CAUTION,
        "Cash comes in from operations, asset sales and financing at once; "
        "often a build-up ahead of a large investment or restructuring.",
    ),
    ("+", "+", "-"): CashFlowPattern(
        "debt_reduction",
        ("+", "+", "-"),
        "debt reduction",
        CAUTION,
        "Operating cash and asset sales are used to repay debt or return capital.",
    ),
    ("+", "-", "+"): CashFlowPattern(
        "active_expansion",
        ("+", "-", "+"),
        "active expansion",
        HEALTHY,
        "Operations generate cash and new financing adds to it to fund investment.",
    ),
    ("+", "-", "-"): CashFlowPattern(
        "healthy_growth",
        ("+", "-", "-"),
        "healthy growth",
        HEALTHY,
        "Operating cash covers both investment and repayments.",
    ),
    ("-", "+", "+"): CashFlowPattern(
        "distress_liquidation",
        ("-", "+", "+"),
        "distress liquidation",
        CRITICAL,
        "Operations burn cash, covered by selling assets and raising funds.",
    ),
    ("-", "+", "-"): CashFlowPattern(
        "recovery_restructuring",
        ("-", "+", "-"),
        "recovery/restructuring",
        CAUTION,
        "Operations burn cash while asset sales fund debt repayment.",
    ),
    ("-", "-", "+"): CashFlowPattern(
        "early_stage_funding",
        ("-", "-", "+"),
        "early-stage/distress funding",
        CRITICAL,
        "Operations and investment both consume cash, financed externally.",
    ),
    ("-", "-", "-"): CashFlowPattern(
        "cash_depletion",
        ("-", "-", "-"),
        "cash depletion",
        CRITICAL,
        "Every activity consumes cash; reserves are being drawn down.",
    ),
}

HEALTH_POINTS = {HEALTHY: 20, CAUTION: 10, CRITICAL: 0}


def _sign(value: float) -> str:
    return "+" if value > 0 else "-"


def classify_cash_flow_pattern(
    operating: Optional[float],
    investing: Optional[float],
    financing: Optional[float],
) -> Optional[CashFlowPattern]:
    """Pattern for the three net cash flows; None when any is missing."""
    values = [as_number(operating), as_number(investing), as_number(financing)]
    if any(value is None for value in values):
        return None
    return PATTERNS[(_sign(values[0]), _sign(values[1]), _sign(values[2]))]


@dataclass(frozen=True)
class CashFlowAnalysis:
    operating_cf: Optional[float]
    investing_cf: Optional[float]
    financing_cf: Optional[float]
    free_cash_flow: Optional[float]
    cf_margin: Optional[float]
    pattern: Optional[CashFlowPattern]
    health_score: Optional[float]
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operating_cf": to_jsonable(self.operating_cf),
            "investing_cf": to_jsonable(self.investing_cf),
            "financing_cf": to_jsonable(self.financing_cf),
            "free_cash_flow": to_jsonable(self.free_cash_flow),
            "cf_margin": to_jsonable(self.cf_margin),
            "pattern": to_jsonable(self.pattern),
            "health_score": to_jsonable(self.health_score),
            "status": self.status,
            "summary": describe_cash_flow(self),
        }


def _health_score(
    operating: float,
    free_cash_flow: float,
    cf_margin: Optional[float],
    pattern: CashFlowPattern,
) -> float:
    score = 0
    if operating > 0:
        score += 30
    if free_cash_flow > 0:
        score += 30
    if cf_margin is not None:
        if cf_margin >= 15:
            score += 20
        elif cf_margin >= 10:
            score += 15
        elif cf_margin >= 5:
            score += 10
        elif cf_margin >= 0:
            score += 5
    score += HEALTH_POINTS[pattern.health]
    return float(min(score, 100))


def analyze_cash_flow(figures: Mapping[str, Any]) -> CashFlowAnalysis:
    operating = as_number(figures.get("operating_cf"))
    investing = as_number(figures.get("investing_cf"))
    financing = as_number(figures.get("financing_cf"))
    revenue = as_number(figures.get("revenue"))

    free_cash_flow = None
    if operating is not None and investing is not None:
        free_cash_flow = operating + investing
    cf_margin = None
    if operating is not None and revenue:
        cf_margin = operating * 100 / revenue

    pattern = classify_cash_flow_pattern(operating, investing, financing)
    if pattern is None:
        return CashFlowAnalysis(
            operating, investing, financing, free_cash_flow, cf_margin, None, None, "insufficient_data"
        )
    score = _health_score(operating, free_cash_flow, cf_margin, pattern)
    return CashFlowAnalysis(operating, investing, financing, free_cash_flow, cf_margin, pattern, score, "ok")


def describe_cash_flow(analysis: CashFlowAnalysis) -> str:
    if analysis.pattern is None:
        return "Cash flow pattern undetermined: a net cash flow figure is missing."
    lines = [
        f"Operating CF: {analysis.operating_cf:,.0f} yen",
        f"Investing CF: {analysis.investing_cf:,.0f} yen",
        f"Financing CF: {analysis.financing_cf:,.0f} yen",
        f"Free CF: {analysis.free_cash_flow:,.0f} yen",
    ]
    if analysis.cf_margin is not None:
        lines.append(f"CF margin: {analysis.cf_margin:.2f}%")
    lines.append(f"Pattern: {analysis.pattern.label} ({analysis.pattern.health})")
    lines.append(f"  {analysis.pattern.description}")
    lines.append(f"Health score: {analysis.health_score:.0f}/100")
    return "\n".join(lines)
