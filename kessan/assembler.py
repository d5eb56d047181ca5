from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .errors import ValidationError
from .models import (
    AccountItem,
    BalanceSheet,
    CashFlowStatement,
    CompanyInfo,
    DocumentFormat,
    FiscalPeriod,
    IncomeStatement,
    ParsedStatement,
    ParseWarning,
)
from .tables import (
    BALANCE_SHEET,
    BUCKET_STATEMENT,
    CASH_FLOW,
    INCOME_STATEMENT,
    TOTAL_RULES,
    TOTAL_STATEMENT,
    classify_account,
    total_key_for,
)


STATEMENTS = (BALANCE_SHEET, INCOME_STATEMENT, CASH_FLOW)


@dataclass(frozen=True)
class BalanceTolerance:
    """Two figures agree when they differ by at most max(ratio * |reference|, minimum_yen)."""

    ratio: float = 0.01
    minimum_yen: float = 1.0

    def allowed(self, reference: float) -> float:
        return max(self.ratio * abs(reference), self.minimum_yen)

    def agrees(self, reference: float, other: float) -> bool:
        return abs(reference - other) <= self.allowed(reference)


def assemble_statement(
    items: Sequence[AccountItem],
    company: CompanyInfo,
    period: FiscalPeriod,
    *,
    source_format: Optional[DocumentFormat] = None,
    tolerance: Optional[BalanceTolerance] = None,
    employee_count: Optional[float] = None,
    warnings: Iterable[ParseWarning] = (),
) -> ParsedStatement:
    """Classify items into the three statements and reconcile their totals.

    Raises ValidationError when nothing belonging to an income statement was
    found; every other inconsistency becomes a warning.
    """
    tolerance = tolerance or BalanceTolerance()
    notes: List[ParseWarning] = list(warnings)

    classified: Dict[str, List[AccountItem]] = {name: [] for name in STATEMENTS}
    reported: Dict[str, Dict[str, float]] = {name: {} for name in STATEMENTS}
    unclassified: List[AccountItem] = []

    for item in items:
        name = item.normalized_name
        classification = classify_account(name, item.section)
        if classification is not None:
            bucket, key = classification
            classified[BUCKET_STATEMENT[bucket]].append(replace(item, bucket=bucket, key=key))
            continue
        total_key = total_key_for(name, item.section)
        if total_key is None:
            unclassified.append(item)
            continue
        statement_reported = reported[TOTAL_STATEMENT[total_key]]
        if total_key in statement_reported:
            notes.append(
                ParseWarning(
                    "duplicate_total",
                    f"{name} appears more than once; the first value is kept",
                    item.amount.original,
                )
            )
            continue
        statement_reported[total_key] = item.amount.yen

    if not classified[INCOME_STATEMENT] and not reported[INCOME_STATEMENT]:
        raise ValidationError("no income statement items were found")

    incomplete = _incomplete_statements(unclassified)
    effective, checks = _compute_totals(classified, reported, incomplete)

    for key, computed in checks.items():
        value = reported[TOTAL_STATEMENT[key]][key]
        if not tolerance.agrees(value, computed):
            notes.append(
                ParseWarning(
                    "total_mismatch",
                    f"reported {key} {value:,.0f} differs from the sum of its components {computed:,.0f}",
                )
            )

    balance_warning = _check_balance(effective, tolerance)
    if balance_warning is not None:
        notes.append(balance_warning)

    if not classified[BALANCE_SHEET] and not reported[BALANCE_SHEET]:
        notes.append(ParseWarning("statement_missing", "no balance sheet items were found"))
    if not classified[CASH_FLOW] and not reported[CASH_FLOW]:
        notes.append(ParseWarning("statement_missing", "no cash flow statement items were found"))
    if unclassified:
        names = ", ".join(item.normalized_name for item in unclassified[:10])
        notes.append(
            ParseWarning("unclassified", f"{len(unclassified)} line items matched no account", names)
        )

    def totals_for(statement: str) -> Dict[str, Optional[float]]:
        return {key: effective.get(key) for key, owner in TOTAL_STATEMENT.items() if owner == statement}

    return ParsedStatement(
        company=company,
        period=period,
        balance_sheet=BalanceSheet(
            items=tuple(classified[BALANCE_SHEET]),
            totals=totals_for(BALANCE_SHEET),
            reported=dict(reported[BALANCE_SHEET]),
        ),
        income_statement=IncomeStatement(
            items=tuple(classified[INCOME_STATEMENT]),
            totals=totals_for(INCOME_STATEMENT),
            reported=dict(reported[INCOME_STATEMENT]),
        ),
        cash_flow_statement=CashFlowStatement(
            items=tuple(classified[CASH_FLOW]),
            totals=totals_for(CASH_FLOW),
            reported=dict(reported[CASH_FLOW]),
        ),
        warnings=tuple(notes),
        source_format=source_format,
        employee_count=employee_count,
        unclassified=tuple(unclassified),
    )


def _incomplete_statements(unclassified: Sequence[AccountItem]) -> Set[str]:
    # An unclassified line without section context could belong anywhere.
    incomplete: Set[str] = set()
    for item in unclassified:
        if item.section is None:
            return set(STATEMENTS)
        incomplete.add(item.section)
    return incomplete


def _compute_totals(
    classified: Dict[str, List[AccountItem]],
    reported: Dict[str, Dict[str, float]],
    incomplete: Set[str],
) -> Tuple[Dict[str, Optional[float]], Dict[str, float]]:
    """Return effective totals (reported wins) and computed values worth checking."""
    bucket_sums: Dict[str, float] = {}
    for statement_items in classified.values():
        for item in statement_items:
            bucket_sums[item.bucket] = bucket_sums.get(item.bucket, 0.0) + item.amount.yen
    all_reported: Dict[str, float] = {}
    for statement_reported in reported.values():
        all_reported.update(statement_reported)

    effective: Dict[str, Optional[float]] = {}
    complete: Dict[str, bool] = {}
    checks: Dict[str, float] = {}
    for key, rule in TOTAL_RULES.items():
        value, is_complete = _apply_rule(rule, bucket_sums, effective, complete, incomplete, all_reported)
        if key in all_reported:
            effective[key] = all_reported[key]
            complete[key] = True
            if value is not None and is_complete:
                checks[key] = value
        else:
            effective[key] = value
            complete[key] = is_complete
    for key, value in all_reported.items():
        effective.setdefault(key, value)
    return effective, checks


def _apply_rule(rule, bucket_sums, effective, complete, incomplete, all_reported):
    total = 0.0
    seen = False
    is_complete = True
    for sign, name, required in rule:
        if name.startswith("@"):
            bucket = name[1:]
            value = bucket_sums.get(bucket)
            part_complete = BUCKET_STATEMENT[bucket] not in incomplete
        else:
            value = effective.get(name)
            part_complete = complete.get(name, False) or name in all_reported
        if value is None:
            if required:
                return None, False
            continue
        total += sign * value
        seen = True
        is_complete = is_complete and part_complete
    if not seen:
        return None, False
    return total, is_complete


def _check_balance(
    effective: Dict[str, Optional[float]], tolerance: BalanceTolerance
) -> Optional[ParseWarning]:
    assets = effective.get("total_assets")
    liabilities = effective.get("total_liabilities")
    equity = effective.get("total_equity")
    if liabilities is not None and equity is not None:
        other_side = liabilities + equity
    else:
        other_side = effective.get("liabilities_and_equity")
    if assets is None or other_side is None:
        return None
    if tolerance.agrees(assets, other_side):
        return None
    return ParseWarning(
        "balance_mismatch",
        f"total assets {assets:,.0f} differ from liabilities and equity {other_side:,.0f}",
    )
