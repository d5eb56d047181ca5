import math
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import AmountParseError
from .models import ParsedStatement
from .normalizer import parse_amount, to_yen
from .ratio_calculator import FinancialRatioCalculator


FigureSource = Union[ParsedStatement, Mapping[str, Any], None]


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    try:
        return to_yen(parse_amount(str(value)))
    except AmountParseError:
        return None


def statement_figures(source: FigureSource) -> Dict[str, Optional[float]]:
    """Flat figure mapping from a ParsedStatement or a plain dict of amounts.

    Plain dict values may be numbers in yen or amount text such as "1,200千円".
    """
    if source is None:
        return {}
    if isinstance(source, ParsedStatement):
        return source.figures()
    return {str(key): _coerce_number(value) for key, value in source.items()}


def compute_financial_metrics(
    statement: FigureSource,
    previous_year: FigureSource = None,
) -> Tuple[Dict[str, Dict[str, Optional[float]]], Dict[str, str], List[str]]:
    calculator = FinancialRatioCalculator(statement_figures(statement), statement_figures(previous_year))
    metrics = calculator.calculate_all_ratios()
    return metrics, dict(calculator.flags), list(calculator.notes)


def flatten_metrics(metrics: Mapping[str, Mapping[str, Optional[float]]]) -> Dict[str, Optional[float]]:
    flat: Dict[str, Optional[float]] = {}
    for values in metrics.values():
        flat.update(values)
    return flat
