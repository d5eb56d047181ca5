import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .assembler import BalanceTolerance, assemble_statement
from .config import AppConfig, load_config
from .errors import AmountParseError, DocumentTooLargeError, FieldParseError, ValidationError
from .extraction import extract_table
from .format_detector import detect_format
from .models import (
    AccountItem,
    AmountUnit,
    CompanyInfo,
    DocumentFormat,
    FiscalPeriod,
    ParsedStatement,
    ParseWarning,
    RawTable,
)
from .normalizer import (
    clean_text,
    detect_unit_declaration,
    find_dates,
    get_industry_name,
    is_known_account,
    is_nil_amount,
    lookup_key,
    normalize_account_name,
    parse_amount,
    parse_number,
    parse_period_label,
)
from .run_logger import log_step_if_enabled
from .tables import INDUSTRY_NAMES, SECTION_HEADINGS, SHEET_ABBREVIATIONS, SHEET_SECTIONS, UNKNOWN


ACCOUNT_HEADER_KEYWORDS = ("勘定科目", "科目", "項目", "科目名", "account", "item")
CURRENT_KEYWORDS = ("当期", "当年度", "当事業年度", "current")
PRIOR_KEYWORDS = ("前期", "前年度", "前事業年度", "prior", "previous")
AMOUNT_KEYWORDS = ("金額", "amount")

COMPANY_LABELS = ("会社名", "企業名", "商号", "company", "companyname")
INDUSTRY_LABELS = ("業種コード", "業種", "industry")
EMPLOYEE_LABELS = ("従業員数", "従業員", "employees")
PERIOD_START_LABELS = ("期首", "開始日", "自")
PERIOD_END_LABELS = ("期末", "決算日", "終了日", "至")
PERIOD_LABELS = ("事業年度", "会計期間", "対象期間", "fiscalyear")
METADATA_LABELS = (
    COMPANY_LABELS
    + INDUSTRY_LABELS
    + EMPLOYEE_LABELS
    + PERIOD_START_LABELS
    + PERIOD_END_LABELS
    + PERIOD_LABELS
)
SINGLE_DATE_MARKERS = ("現在", "期末", "決算", "至", "末日")
COMPANY_MARKERS = ("株式会社", "(株)", "有限会社", "合同会社")

_ENUMERATION_RE = re.compile(
    r"^(?:[ⅠⅡⅢⅣⅤⅥⅦⅧⅨⅩ]+\.?|[(（]?\d{1,2}[)）.．]|[(（][一二三四五六七八九十a-z]+[)）]|[一二三四五六七八九十]+[、.．])\s*"
)
_DIGITS_RE = re.compile(r"\d+")


@dataclass
class _Columns:
    account: int
    current: Optional[int]
    ordinal: int = 0


@dataclass
class _ParseState:
    default_unit: AmountUnit
    unit: AmountUnit = AmountUnit.YEN
    section: Optional[str] = None
    sheet: Optional[str] = None
    columns: Optional[_Columns] = None
    ordinal: int = 0
    company: Optional[str] = None
    industry_code: Optional[int] = None
    employee_count: Optional[float] = None
    start: Optional[date] = None
    end: Optional[date] = None
    label_end: Optional[date] = None
    items: List[AccountItem] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.unit = self.default_unit


def parse_statement(
    data: bytes,
    hint: str = "",
    config: Optional[AppConfig] = None,
) -> ParsedStatement:
    """Turn an uploaded PDF, xlsx or CSV document into a ParsedStatement.

    The size ceiling is checked before any parsing work starts.
    """
    config = config or load_config()
    data = bytes(data)
    if len(data) > config.max_document_bytes:
        raise DocumentTooLargeError(len(data), config.max_document_bytes)
    fmt = detect_format(data, hint)
    table = extract_table(fmt, data, delimiter=_delimiter_for(hint, config))
    tolerance = BalanceTolerance(
        ratio=config.balance_tolerance_ratio,
        minimum_yen=config.balance_tolerance_yen,
    )
    statement = statement_from_table(table, tolerance=tolerance)
    log_step_if_enabled(
        config.run_log_dir,
        "parse_statement",
        {
            "hint": hint,
            "format": fmt.value,
            "rows": len(table.rows),
            "company": statement.company.name,
            "period": statement.period.label,
            "warnings": [w.code for w in statement.warnings],
        },
    )
    return statement


def read_document(path: Union[str, Path], max_bytes: int) -> bytes:
    path = Path(path)
    size = path.stat().st_size
    if size > max_bytes:
        raise DocumentTooLargeError(size, max_bytes)
    return path.read_bytes()


def parse_statement_file(path: Union[str, Path], config: Optional[AppConfig] = None) -> ParsedStatement:
    config = config or load_config()
    data = read_document(path, config.max_document_bytes)
    return parse_statement(data, hint=Path(path).name, config=config)


def statement_from_table(
    table: RawTable,
    tolerance: Optional[BalanceTolerance] = None,
    default_unit: AmountUnit = AmountUnit.YEN,
) -> ParsedStatement:
    state = _ParseState(default_unit=default_unit)
    for row in table.rows:
        _interpret_row(state, table.source_format, row[0].sheet if row else "", [clean_text(c.text) for c in row])

    period = _resolve_period(state)
    industry_name = get_industry_name(state.industry_code)
    company = CompanyInfo(
        name=state.company or UNKNOWN,
        industry_code=state.industry_code,
        industry_name=industry_name,
    )
    return assemble_statement(
        state.items,
        company,
        period,
        source_format=table.source_format,
        tolerance=tolerance,
        employee_count=state.employee_count,
        warnings=state.warnings,
    )


def _delimiter_for(hint: str, config: AppConfig) -> str:
    value = (hint or "").lower()
    if value.endswith(".tsv") or "tab-separated" in value:
        return "\t"
    return config.csv_delimiter


def _interpret_row(state: _ParseState, fmt: DocumentFormat, sheet: str, texts: List[str]) -> None:
    if sheet != state.sheet:
        state.sheet = sheet
        if fmt is DocumentFormat.SPREADSHEET:
            state.section = _section_for_sheet(sheet)
            state.columns = None
            state.ordinal = 0
            state.unit = state.default_unit

    cells = [text for text in texts if text]
    if not cells:
        return
    joined = " ".join(cells)
    has_amount = any(_is_amount_text(text) for text in cells[1:])

    unit = detect_unit_declaration(joined)
    if unit is not None:
        state.unit = unit
    heading = None if has_amount else _section_heading(cells)
    if heading is not None:
        state.section = heading

    if _take_labelled_metadata(state, texts, cells):
        return
    if not has_amount:
        label = _clean_label(cells[0])
        if len(cells) > 1 and is_known_account(label):
            state.warnings.append(
                ParseWarning("amount_unparsed", f"amount for {label} could not be read", " ".join(cells[1:]))
            )
            return
        header = _header_columns(texts)
        if header is not None:
            state.columns = header
            state.ordinal = header.ordinal
            if header.current is not None and state.end is None:
                state.end = _column_date(texts[header.current])
            return
        _take_loose_metadata(state, cells, joined)
        return
    if unit is not None:
        return
    _take_account_row(state, texts)


def _section_for_sheet(name: str) -> Optional[str]:
    key = lookup_key(name or "")
    if key in SHEET_ABBREVIATIONS:
        return SHEET_ABBREVIATIONS[key]
    heading = _match_heading(key)
    if heading is not None:
        return heading
    for marker, section in SHEET_SECTIONS:
        if marker in key:
            return section
    return None


def _match_heading(key: str) -> Optional[str]:
    for marker, section in SECTION_HEADINGS:
        if marker in key:
            return section
    return None


def _section_heading(cells: Sequence[str]) -> Optional[str]:
    for text in cells[:2]:
        section = _match_heading(lookup_key(text))
        if section is not None:
            return section
    return None


def _is_amount_text(text: str) -> bool:
    if is_nil_amount(text):
        return True
    try:
        parse_amount(text)
    except AmountParseError:
        return False
    return True


def _has_keyword(key: str, keywords: Sequence[str]) -> bool:
    return any(keyword in key for keyword in keywords)


def _column_date(text: str) -> Optional[date]:
    dates = find_dates(text)
    if dates:
        return max(dates)
    return parse_period_label(text)


def _header_columns(texts: List[str]) -> Optional[_Columns]:
    """Locate the account and current-period columns of a header row.

    The current column is the one marked 当期/current, else the latest dated
    column, else the single amount column.
    """
    keys = [lookup_key(text) for text in texts]
    accounts = [i for i, key in enumerate(keys) if key in ACCOUNT_HEADER_KEYWORDS]
    account = accounts[0] if accounts else None
    keyword_columns = [
        i
        for i, key in enumerate(keys)
        if key and i != account and _has_keyword(key, CURRENT_KEYWORDS + PRIOR_KEYWORDS + AMOUNT_KEYWORDS)
    ]
    dated_columns = [(i, _column_date(texts[i])) for i, key in enumerate(keys) if key and i != account]
    dated_columns = [(i, end) for i, end in dated_columns if end is not None]

    if keyword_columns:
        amount_columns = keyword_columns
        current = next((i for i in amount_columns if _has_keyword(keys[i], CURRENT_KEYWORDS)), None)
        if current is None:
            current = next((i for i in amount_columns if not _has_keyword(keys[i], PRIOR_KEYWORDS)), None)
        # A bare "前期 当期" row without an account column still fixes the order.
        marked = all(_has_keyword(keys[i], CURRENT_KEYWORDS + PRIOR_KEYWORDS) for i in amount_columns)
    elif len(dated_columns) >= 2 and account is not None:
        amount_columns = [i for i, _ in dated_columns]
        current = max(dated_columns, key=lambda pair: pair[1])[0]
        marked = True
    else:
        return None
    if current is None:
        return None
    if len(accounts) > 1:
        # Side-by-side blocks such as assets left, liabilities right.
        block = [i for i in amount_columns if i < accounts[1]]
        if current in block:
            return _Columns(account=0, current=None, ordinal=block.index(current))
    ordinal = amount_columns.index(current)
    if account is None:
        if not marked:
            return None
        # Only the order is known; rows are read in free mode.
        return _Columns(account=0, current=None, ordinal=ordinal)
    return _Columns(account=account, current=current, ordinal=ordinal)


def _label_value(texts: List[str]) -> str:
    cells = [text for text in texts if text]
    first = cells[0]
    for separator in ("：", ":"):
        if separator in first:
            value = first.split(separator, 1)[1].strip()
            if value:
                return value
    return cells[1] if len(cells) > 1 else ""


def _split_inline_label(cells: List[str]) -> List[str]:
    # PDF text keeps "会社名 サンプル株式会社" in one cell when a single space separates them.
    if len(cells) != 1 or " " not in cells[0]:
        return cells
    head, rest = cells[0].split(" ", 1)
    if lookup_key(head) in METADATA_LABELS:
        return [head, rest.strip()]
    return cells


def _take_labelled_metadata(state: _ParseState, texts: List[str], cells: List[str]) -> bool:
    split = _split_inline_label(cells)
    if split is not cells:
        cells = texts = split
    key = lookup_key(re.split(r"[:：]", cells[0], maxsplit=1)[0])
    if key in COMPANY_LABELS:
        value = _label_value(texts)
        if value and state.company is None:
            state.company = value
        return True
    if key in INDUSTRY_LABELS:
        _take_industry(state, _label_value(texts))
        return True
    if key in EMPLOYEE_LABELS:
        value = _label_value(texts)
        try:
            state.employee_count = parse_number(value)
        except FieldParseError:
            state.warnings.append(
                ParseWarning("employee_count_unparsed", "employee count could not be read", value)
            )
        return True
    if key in PERIOD_START_LABELS + PERIOD_END_LABELS + PERIOD_LABELS:
        dates = find_dates(" ".join(cells))
        if len(dates) >= 2:
            _set_period(state, dates[0], dates[1])
        elif len(dates) == 1 and key in PERIOD_START_LABELS:
            state.start = state.start or dates[0]
        elif len(dates) == 1:
            state.end = state.end or dates[0]
        else:
            state.label_end = state.label_end or parse_period_label(" ".join(cells))
        return True
    return False


def _take_industry(state: _ParseState, value: str) -> None:
    digits = _DIGITS_RE.search(value or "")
    if digits:
        state.industry_code = int(digits.group(0))
        return
    for code, name in INDUSTRY_NAMES.items():
        if value and name == value.strip():
            state.industry_code = code
            return


def _take_loose_metadata(state: _ParseState, cells: List[str], joined: str) -> None:
    if state.company is None:
        for text in cells:
            if any(marker in text.replace("（株）", "(株)") for marker in COMPANY_MARKERS):
                state.company = text
                break
    dates = find_dates(joined)
    if len(dates) >= 2:
        _set_period(state, dates[0], dates[1])
    elif len(dates) == 1 and _has_keyword(joined, SINGLE_DATE_MARKERS):
        state.end = state.end or dates[0]
    if state.label_end is None:
        state.label_end = parse_period_label(joined)


def _set_period(state: _ParseState, first: date, second: date) -> None:
    if state.start is not None and state.end is not None:
        return
    start, end = min(first, second), max(first, second)
    if (start.month, start.day) == (end.month, end.day) and start.year < end.year:
        # Two balance sheet dates a year apart: prior and current period ends.
        start = start + timedelta(days=1)
    state.start, state.end = start, end


def _clean_label(text: str) -> str:
    return _ENUMERATION_RE.sub("", clean_text(text)).strip()


def _take_account_row(state: _ParseState, texts: List[str]) -> None:
    columns = state.columns
    if columns is not None and columns.current is not None and columns.current < len(texts):
        label_index = columns.account if columns.account < len(texts) and texts[columns.account] else None
        if label_index is None:
            label_index = next(
                (i for i, text in enumerate(texts[: columns.current]) if text and not _is_amount_text(text)),
                None,
            )
        if label_index is not None:
            _add_item(state, texts[label_index], texts[columns.current])
        return
    for raw_name, amounts in _label_groups(texts):
        if amounts:
            _add_item(state, raw_name, amounts[state.ordinal] if state.ordinal < len(amounts) else amounts[0])


def _label_groups(texts: List[str]) -> List[Tuple[str, List[str]]]:
    """Split a free-layout row into (label, amounts) groups.

    Printed balance sheets put assets and liabilities side by side, so one
    row can hold several labels, each followed by its own amounts.
    """
    groups: List[Tuple[str, List[str]]] = []
    for text in texts:
        if not text:
            continue
        if _is_amount_text(text):
            if groups:
                groups[-1][1].append(text)
            continue
        if (
            groups
            and not groups[-1][1]
            and is_known_account(_clean_label(groups[-1][0]))
            and not is_known_account(_clean_label(text))
        ):
            # Note text between an account and its amounts.
            continue
        groups.append((text, []))
    return groups


def _add_item(state: _ParseState, raw_name: str, amount_text: str) -> None:
    if not amount_text or is_nil_amount(amount_text):
        return
    label = _clean_label(raw_name)
    if not label:
        return
    try:
        amount = parse_amount(amount_text, default_unit=state.unit)
    except AmountParseError:
        if is_known_account(label):
            state.warnings.append(
                ParseWarning("amount_unparsed", f"amount for {label} could not be read", amount_text)
            )
        return
    state.items.append(
        AccountItem(
            raw_name=raw_name,
            normalized_name=normalize_account_name(label),
            amount=amount,
            section=state.section,
        )
    )


def _one_year_before(end: date) -> date:
    try:
        previous = end.replace(year=end.year - 1)
    except ValueError:
        previous = date(end.year - 1, 2, 28)
    return previous + timedelta(days=1)


def _one_year_after(start: date) -> date:
    try:
        following = start.replace(year=start.year + 1)
    except ValueError:
        following = date(start.year + 1, 3, 1)
    return following - timedelta(days=1)


def _resolve_period(state: _ParseState) -> FiscalPeriod:
    start, end = state.start, state.end
    if end is None and start is None:
        end = state.label_end
    if start is None and end is None:
        raise ValidationError("fiscal period could not be found in the document")
    if start is None:
        start = _one_year_before(end)
        state.warnings.append(
            ParseWarning("period_inferred", f"period start inferred as {start.isoformat()} from the end date")
        )
    elif end is None:
        end = _one_year_after(start)
        state.warnings.append(
            ParseWarning("period_inferred", f"period end inferred as {end.isoformat()} from the start date")
        )
    try:
        return FiscalPeriod(start=start, end=end)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
