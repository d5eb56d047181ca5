import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


OK = "ok"
APPROXIMATE = "approximate"
INSUFFICIENT_DATA = "insufficient_data"
ZERO_DENOMINATOR = "zero_denominator"

GROUPS = ("profitability", "safety", "efficiency", "growth")

# (excellent, good, fair) lower bounds; reversed metrics are upper bounds.
RATING_THRESHOLDS: Dict[str, Tuple[float, float, float]] = {
    "roe": (15, 10, 5),
    "roa": (10, 5, 2),
    "operating_margin": (15, 10, 5),
    "gross_margin": (40, 30, 20),
    "ordinary_margin": (10, 7, 4),
    "net_margin": (8, 5, 3),
    "equity_ratio": (50, 40, 30),
    "current_ratio": (200, 150, 100),
    "quick_ratio": (120, 100, 80),
    "fixed_to_long_term_ratio": (80, 90, 100),
    "debt_ratio": (100, 150, 200),
    "interest_coverage_ratio": (10, 5, 2),
    "total_asset_turnover": (1.5, 1.0, 0.7),
    "receivables_turnover": (12, 8, 6),
    "inventory_turnover": (12, 8, 5),
    "fixed_asset_turnover": (3.0, 2.0, 1.5),
    "revenue_growth": (20, 10, 5),
    "operating_income_growth": (30, 15, 8),
    "ordinary_income_growth": (25, 12, 6),
    "total_asset_growth": (15, 8, 3),
    "employee_growth": (10, 5, 2),
}
LOWER_IS_BETTER = {"fixed_to_long_term_ratio", "debt_ratio"}
# Payables turnover is rated on a middle band rather than a floor.
PAYABLES_BANDS = (("excellent", 8, 12), ("good", 6, 15), ("fair", 4, 18))

TURNOVER_BALANCES = (
    ("total_asset_turnover", "total_assets"),
    ("receivables_turnover", "accounts_receivable"),
    ("inventory_turnover", "inventory"),
    ("payables_turnover", "accounts_payable"),
    ("fixed_asset_turnover", "fixed_assets"),
)
GROWTH_FIGURES = (
    ("revenue_growth", "revenue"),
    ("operating_income_growth", "operating_income"),
    ("ordinary_income_growth", "ordinary_income"),
    ("total_asset_growth", "total_assets"),
    ("employee_growth", "employee_count"),
)


def as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    return None


def rate_metric(metric: str, value: Optional[float]) -> Optional[str]:
    """Qualitative rating (excellent/good/fair/poor) for one metric value."""
    if value is None:
        return None
    if metric == "payables_turnover":
        for rating, low, high in PAYABLES_BANDS:
            if low <= value <= high:
                return rating
        return "poor"
    thresholds = RATING_THRESHOLDS.get(metric)
    if thresholds is None:
        return None
    excellent, good, fair = thresholds
    if metric in LOWER_IS_BETTER:
        if value <= excellent:
            return "excellent"
        if value <= good:
            return "good"
        if value <= fair:
            return "fair"
        return "poor"
    if value >= excellent:
        return "excellent"
    if value >= good:
        return "good"
    if value >= fair:
        return "fair"
    return "poor"


class FinancialRatioCalculator:
    """Ratio groups over flat figure mappings in yen.

    Every metric is either a finite float or None. ``flags`` records why a
    metric is None (or that it is approximate), ``notes`` explains it.
    """

    def __init__(
        self,
        figures: Mapping[str, Any],
        previous: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.figures = dict(figures or {})
        self.previous = dict(previous or {})
        self.flags: Dict[str, str] = {}
        self.notes: List[str] = []

    def _pick(self, keys: Sequence[str], source: Optional[Mapping[str, Any]] = None):
        data = self.figures if source is None else source
        values = [as_number(data.get(key)) for key in keys]
        missing = [key for key, value in zip(keys, values) if value is None]
        return values, missing

    def _mark(self, name: str, flag: str, note: str = "") -> None:
        self.flags[name] = flag
        if note:
            self.notes.append(note)

    def _divide(
        self,
        group: str,
        metric: str,
        numerator: Optional[float],
        denominator: Optional[float],
        missing: Sequence[str] = (),
        scale: float = 100.0,
        approximate: bool = False,
    ) -> Optional[float]:
        name = f"{group}.{metric}"
        if missing or numerator is None or denominator is None:
            self._mark(name, INSUFFICIENT_DATA, f"{name} missing {', '.join(missing)}")
            return None
        if denominator == 0:
            self._mark(name, ZERO_DENOMINATOR, f"{name} not computed, denominator is 0")
            return None
        # Scale before dividing so percentages of whole yen stay exact.
        result = numerator * scale / denominator
        if not math.isfinite(result):
            self._mark(name, ZERO_DENOMINATOR, f"{name} not finite")
            return None
        if approximate:
            self._mark(name, APPROXIMATE, f"{name} uses the ending balance, no prior-year balance")
        else:
            self._mark(name, OK)
        return result

    def _ratio(self, group: str, metric: str, numerator_key: str, denominator_key: str, scale: float = 100.0):
        (numerator, denominator), missing = self._pick([numerator_key, denominator_key])
        return self._divide(group, metric, numerator, denominator, missing, scale=scale)

    def _gross_profit(self) -> Tuple[Optional[float], List[str]]:
        (gross,), _ = self._pick(["gross_profit"])
        if gross is not None:
            return gross, []
        (revenue, cost), missing = self._pick(["revenue", "cost_of_sales"])
        if missing:
            return None, ["gross_profit"]
        return revenue - cost, []

    def calculate_profitability_ratios(self) -> Dict[str, Optional[float]]:
        group = "profitability"
        gross, gross_missing = self._gross_profit()
        (revenue,), revenue_missing = self._pick(["revenue"])
        return {
            "roe": self._ratio(group, "roe", "net_income", "total_equity"),
            "roa": self._ratio(group, "roa", "net_income", "total_assets"),
            "operating_margin": self._ratio(group, "operating_margin", "operating_income", "revenue"),
            "gross_margin": self._divide(
                group, "gross_margin", gross, revenue, gross_missing + revenue_missing
            ),
            "ordinary_margin": self._ratio(group, "ordinary_margin", "ordinary_income", "revenue"),
            "net_margin": self._ratio(group, "net_margin", "net_income", "revenue"),
        }

    def calculate_safety_ratios(self) -> Dict[str, Optional[float]]:
        group = "safety"
        (current_assets, current_liabilities), quick_missing = self._pick(
            ["current_assets", "current_liabilities"]
        )
        (inventory,), _ = self._pick(["inventory"])
        quick_assets = None
        if current_assets is not None:
            quick_assets = current_assets - (inventory or 0.0)

        (fixed_assets, equity, fixed_liabilities), long_term_missing = self._pick(
            ["fixed_assets", "total_equity", "fixed_liabilities"]
        )
        long_term_capital = None
        if equity is not None and fixed_liabilities is not None:
            long_term_capital = equity + fixed_liabilities

        return {
            "equity_ratio": self._ratio(group, "equity_ratio", "total_equity", "total_assets"),
            "current_ratio": self._ratio(group, "current_ratio", "current_assets", "current_liabilities"),
            "quick_ratio": self._divide(
                group, "quick_ratio", quick_assets, current_liabilities, quick_missing
            ),
            "fixed_to_long_term_ratio": self._divide(
                group, "fixed_to_long_term_ratio", fixed_assets, long_term_capital, long_term_missing
            ),
            "debt_ratio": self._ratio(group, "debt_ratio", "total_liabilities", "total_equity"),
            "interest_coverage_ratio": self._ratio(
                group, "interest_coverage_ratio", "operating_income", "interest_expense", scale=1.0
            ),
        }

    def calculate_efficiency_ratios(self) -> Dict[str, Optional[float]]:
        """Turnover = revenue / average(prior, current) balance.

        Without a prior-year balance the ending balance is used and the
        metric is flagged approximate.
        """
        group = "efficiency"
        results: Dict[str, Optional[float]] = {}
        for metric, balance_key in TURNOVER_BALANCES:
            (revenue, ending), missing = self._pick(["revenue", balance_key])
            (beginning,), _ = self._pick([balance_key], source=self.previous)
            balance = ending
            approximate = beginning is None
            if ending is not None and beginning is not None:
                balance = (beginning + ending) / 2
            results[metric] = self._divide(
                group, metric, revenue, balance, missing, scale=1.0, approximate=approximate
            )
        return results

    def calculate_growth_ratios(self) -> Dict[str, Optional[float]]:
        """Year-over-year change in percent; None without a prior-year figure."""
        group = "growth"
        results: Dict[str, Optional[float]] = {}
        for metric, key in GROWTH_FIGURES:
            name = f"{group}.{metric}"
            (current,), missing = self._pick([key])
            (prior,), prior_missing = self._pick([key], source=self.previous)
            if missing or prior_missing:
                reasons = missing + [f"prior {k}" for k in prior_missing]
                self._mark(name, INSUFFICIENT_DATA, f"{name} missing {', '.join(reasons)}")
                results[metric] = None
                continue
            results[metric] = self._divide(group, metric, current - prior, abs(prior), scale=100.0)
        return results

    def calculate_all_ratios(self) -> Dict[str, Dict[str, Optional[float]]]:
        self.flags = {}
        self.notes = []
        return {
            "profitability": self.calculate_profitability_ratios(),
            "safety": self.calculate_safety_ratios(),
            "efficiency": self.calculate_efficiency_ratios(),
            "growth": self.calculate_growth_ratios(),
        }

    @staticmethod
    def rate_all(metrics: Mapping[str, Mapping[str, Optional[float]]]) -> Dict[str, Dict[str, str]]:
        ratings: Dict[str, Dict[str, str]] = {}
        for group, values in metrics.items():
            ratings[group] = {}
            for metric, value in values.items():
                rating = rate_metric(metric, value)
                if rating is not None:
                    ratings[group][metric] = rating
        return ratings
