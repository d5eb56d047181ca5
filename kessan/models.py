import math
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .tables import BALANCE_SHEET, BUCKET_KIND, CASH_FLOW, INCOME_STATEMENT, UNKNOWN


class AmountUnit(Enum):
    YEN = "円"
    THOUSAND_YEN = "千円"
    MILLION_YEN = "百万円"
    HUNDRED_MILLION_YEN = "億円"

    @property
    def scale(self) -> float:
        return UNIT_SCALES[self]


UNIT_SCALES = {
    AmountUnit.YEN: 1.0,
    AmountUnit.THOUSAND_YEN: 1e3,
    AmountUnit.MILLION_YEN: 1e6,
    AmountUnit.HUNDRED_MILLION_YEN: 1e8,
}


class DocumentFormat(Enum):
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    CSV = "csv"


def to_jsonable(value: Any) -> Any:
    """Convert models and results into plain JSON data.

    Non-finite floats become None so output never carries NaN or Infinity.
    """
    if value is None or isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return str(value)


@dataclass(frozen=True)
class Amount:
    value: float
    unit: AmountUnit = AmountUnit.YEN
    original: str = field(default="", compare=False)

    @property
    def yen(self) -> float:
        return self.value * self.unit.scale


@dataclass(frozen=True)
class AccountItem:
    raw_name: str
    normalized_name: str
    amount: Amount
    section: Optional[str] = None
    bucket: Optional[str] = None
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.normalized_name:
            object.__setattr__(self, "normalized_name", self.raw_name)

    @property
    def kind(self) -> str:
        return BUCKET_KIND.get(self.bucket, "other")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_name": self.raw_name,
            "normalized_name": self.normalized_name,
            "amount": self.amount.value,
            "unit": self.amount.unit.value,
            "yen": to_jsonable(self.amount.yen),
            "section": self.section,
            "bucket": self.bucket,
            "kind": self.kind,
        }


@dataclass(frozen=True)
class FiscalPeriod:
    start: date
    end: date
    label: str = ""

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"fiscal period end {self.end} is not after start {self.start}")
        if not self.label:
            object.__setattr__(self, "label", f"{self.end.year}年{self.end.month}月期")


@dataclass(frozen=True)
class CompanyInfo:
    name: str = UNKNOWN
    industry_code: Optional[int] = None
    industry_name: str = UNKNOWN


@dataclass(frozen=True)
class ParseWarning:
    code: str
    message: str
    raw_text: str = ""


@dataclass(frozen=True)
class StatementSection:
    """Classified items of one statement plus its totals in yen.

    ``totals`` holds the value used downstream (reported wins over computed),
    ``reported`` only the totals that appeared in the document.
    """

    items: Tuple[AccountItem, ...] = ()
    totals: Mapping[str, Optional[float]] = field(default_factory=dict)
    reported: Mapping[str, float] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return bool(self.items) or bool(self.reported)

    def value(self, key: str) -> Optional[float]:
        return self.totals.get(key)

    def items_in(self, bucket: str) -> List[AccountItem]:
        return [item for item in self.items if item.bucket == bucket]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "totals": to_jsonable(dict(self.totals)),
            "reported": to_jsonable(dict(self.reported)),
        }


class BalanceSheet(StatementSection):
    statement = BALANCE_SHEET


class IncomeStatement(StatementSection):
    statement = INCOME_STATEMENT


class CashFlowStatement(StatementSection):
    statement = CASH_FLOW


@dataclass(frozen=True)
class ParsedStatement:
    company: CompanyInfo
    period: FiscalPeriod
    balance_sheet: BalanceSheet
    income_statement: IncomeStatement
    cash_flow_statement: CashFlowStatement
    warnings: Tuple[ParseWarning, ...] = ()
    source_format: Optional[DocumentFormat] = None
    employee_count: Optional[float] = None
    unclassified: Tuple[AccountItem, ...] = ()

    def figures(self) -> Dict[str, Optional[float]]:
        """Flatten totals and keyed line items into one figure mapping."""
        figures: Dict[str, Optional[float]] = {}
        for section in (self.balance_sheet, self.income_statement, self.cash_flow_statement):
            figures.update(section.totals)
            for item in section.items:
                if item.key is None:
                    continue
                figures[item.key] = (figures.get(item.key) or 0.0) + item.amount.yen
        figures["employee_count"] = self.employee_count
        return figures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company": to_jsonable(self.company),
            "period": to_jsonable(self.period),
            "balance_sheet": self.balance_sheet.to_dict(),
            "income_statement": self.income_statement.to_dict(),
            "cash_flow_statement": self.cash_flow_statement.to_dict(),
            "warnings": to_jsonable(self.warnings),
            "source_format": to_jsonable(self.source_format),
            "employee_count": to_jsonable(self.employee_count),
            "unclassified": [item.to_dict() for item in self.unclassified],
        }


@dataclass(frozen=True)
class RawCell:
    text: str
    sheet: str = ""
    row: int = 0
    column: int = 0


@dataclass(frozen=True)
class RawTable:
    source_format: DocumentFormat
    rows: Tuple[Tuple[RawCell, ...], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(cell.text.strip() for row in self.rows for cell in row)


@dataclass(frozen=True)
class DocumentInput:
    data: bytes
    hint: str = ""
