import re
import unicodedata
from datetime import date, timedelta
from types import MappingProxyType
from typing import List, Optional, Tuple, Union

from .errors import AmountParseError, DateParseError, FieldParseError
from .models import Amount, AmountUnit
from .tables import ACCOUNT_SYNONYMS, ERA_START_YEARS, INDUSTRY_NAMES, UNKNOWN


NEGATIVE_MARKS = "-−ー‐－–△▲"
NIL_MARKS = {"-", "−", "ー", "‐", "－", "–", "—", "―"}

# Longest suffix first so 百万円 is not read as 円.
UNIT_SUFFIXES: Tuple[Tuple[str, AmountUnit], ...] = (
    ("百万円", AmountUnit.MILLION_YEN),
    ("百萬円", AmountUnit.MILLION_YEN),
    ("億円", AmountUnit.HUNDRED_MILLION_YEN),
    ("千円", AmountUnit.THOUSAND_YEN),
    ("百万", AmountUnit.MILLION_YEN),
    ("百萬", AmountUnit.MILLION_YEN),
    ("億", AmountUnit.HUNDRED_MILLION_YEN),
    ("千", AmountUnit.THOUSAND_YEN),
    ("円", AmountUnit.YEN),
)

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_WHITESPACE_RE = re.compile(r"\s+")
_UNIT_DECLARATION_RE = re.compile(r"単位[:：]?(百万円|百萬円|千円|億円|円)")
_ENGLISH_UNIT_RE = re.compile(r"in(thousands|millions|hundredsofmillions)ofyen")

_ERA_DATE_RE = re.compile(
    r"(?<![A-Za-z])(令和|平成|昭和|大正|明治|[RHSTM])\s*(元|\d{1,2})\s*[年./-]\s*"
    r"(\d{1,2})\s*[月./-]\s*(\d{1,2})\s*日?"
)
_GREGORIAN_DATE_RE = re.compile(
    r"(?<!\d)(\d{4})\s*[年./-]\s*(\d{1,2})\s*[月./-]\s*(\d{1,2})(?!\d)\s*日?"
)
_PERIOD_LABEL_RE = re.compile(r"(?<!\d)(\d{4})年(\d{1,2})月期")


def lookup_key(text: str) -> str:
    """Key used for table lookups: NFKC, no whitespace, lower case."""
    return _WHITESPACE_RE.sub("", unicodedata.normalize("NFKC", text)).lower()


_SYNONYM_INDEX = MappingProxyType({lookup_key(k): v for k, v in ACCOUNT_SYNONYMS.items()})


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", str(text).replace("\u0000", " ")).strip()


def _compact(text: str) -> str:
    value = unicodedata.normalize("NFKC", str(text))
    value = _WHITESPACE_RE.sub("", value)
    return value.replace(",", "").replace("、", "")


def _split_unit(text: str, default_unit: AmountUnit) -> Tuple[str, AmountUnit]:
    for suffix, unit in UNIT_SUFFIXES:
        if text.endswith(suffix):
            return text[: -len(suffix)], unit
    return text, default_unit


def _strip_parentheses(text: str) -> Tuple[str, bool]:
    if len(text) >= 2 and text.startswith("(") and text.endswith(")"):
        return text[1:-1], True
    return text, False


def parse_amount(text: str, default_unit: AmountUnit = AmountUnit.YEN) -> Amount:
    """Parse a Japanese monetary amount such as ``△1,234千円`` or ``(1,234)円``.

    A number without a unit suffix takes ``default_unit``.
    """
    if text is None:
        raise AmountParseError("amount is missing", "")
    original = str(text)
    body = _compact(original)
    if not body:
        raise AmountParseError("amount is empty", original)

    body, negative = _strip_parentheses(body)
    body, unit = _split_unit(body, default_unit)
    body, inner = _strip_parentheses(body)
    if inner:
        if negative:
            raise AmountParseError(f"unrecognised amount: {original}", original)
        negative = True
    body = body.lstrip("¥")
    if body[:1] and body[0] in NEGATIVE_MARKS:
        if negative:
            raise AmountParseError(f"unrecognised amount: {original}", original)
        negative = True
        body = body[1:].lstrip("¥")

    if not _NUMBER_RE.fullmatch(body):
        raise AmountParseError(f"unrecognised amount: {original}", original)
    value = float(body)
    return Amount(value=-value if negative else value, unit=unit, original=original)


def to_yen(amount: Amount) -> float:
    return amount.value * amount.unit.scale


def is_nil_amount(text: str) -> bool:
    """True for the dash placeholders statements print instead of an amount."""
    return _compact(text) in NIL_MARKS


def parse_number(text: str) -> float:
    """Parse a plain count such as ``1,234人``."""
    original = str(text)
    body = _compact(original).rstrip("人名")
    negative = False
    if body[:1] and body[0] in NEGATIVE_MARKS:
        negative = True
        body = body[1:]
    if not _NUMBER_RE.fullmatch(body):
        raise FieldParseError(f"unrecognised number: {original}", original)
    value = float(body)
    return -value if negative else value


def detect_unit_declaration(text: str) -> Optional[AmountUnit]:
    compact = lookup_key(text)
    match = _UNIT_DECLARATION_RE.search(compact)
    if match:
        unit = match.group(1).replace("百萬", "百万")
        return AmountUnit(unit)
    match = _ENGLISH_UNIT_RE.search(compact)
    if match:
        return {
            "thousands": AmountUnit.THOUSAND_YEN,
            "millions": AmountUnit.MILLION_YEN,
            "hundredsofmillions": AmountUnit.HUNDRED_MILLION_YEN,
        }[match.group(1)]
    return None


def normalize_account_name(text: str) -> str:
    """Collapse whitespace and map known synonyms to their canonical label.

    Unknown labels come back as the collapsed text, so the function is
    idempotent.
    """
    collapsed = clean_text(text)
    if not collapsed:
        return collapsed
    return _SYNONYM_INDEX.get(lookup_key(collapsed), collapsed)


def is_known_account(name: str) -> bool:
    return lookup_key(name) in _SYNONYM_INDEX


def _era_year(era: str, year: str) -> int:
    offset = 1 if year == "元" else int(year)
    return ERA_START_YEARS[era] + offset


def _date_matches(text: str) -> List[Tuple[int, int, int, int]]:
    value = unicodedata.normalize("NFKC", text)
    found = []
    for match in _ERA_DATE_RE.finditer(value):
        year = _era_year(match.group(1), match.group(2))
        found.append((match.start(), year, int(match.group(3)), int(match.group(4))))
    for match in _GREGORIAN_DATE_RE.finditer(value):
        found.append((match.start(), int(match.group(1)), int(match.group(2)), int(match.group(3))))
    found.sort()
    return found


def parse_date(text: str) -> date:
    """Parse the first date in ``text``; Gregorian or Japanese era notation."""
    if not text:
        raise DateParseError("date is empty", "")
    matches = _date_matches(str(text))
    if not matches:
        raise DateParseError(f"unrecognised date: {text}", str(text))
    _, year, month, day = matches[0]
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise DateParseError(f"invalid date: {text}", str(text)) from exc


def find_dates(text: str) -> List[date]:
    dates = []
    for _, year, month, day in _date_matches(str(text or "")):
        try:
            dates.append(date(year, month, day))
        except ValueError:
            continue
    return dates


def parse_period_label(text: str) -> Optional[date]:
    """Month end for a fiscal year label such as ``2024年3月期``.

    With several labels the latest one wins.
    """
    ends = []
    for match in _PERIOD_LABEL_RE.finditer(unicodedata.normalize("NFKC", str(text or ""))):
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            continue
        if month == 12:
            ends.append(date(year, 12, 31))
        else:
            ends.append(date(year, month + 1, 1) - timedelta(days=1))
    return max(ends) if ends else None


def get_industry_name(code: Union[int, str, None]) -> str:
    if isinstance(code, bool) or code is None:
        return UNKNOWN
    if isinstance(code, str):
        value = unicodedata.normalize("NFKC", code).strip()
        if not value.isdigit():
            return UNKNOWN
        code = int(value)
    return INDUSTRY_NAMES.get(code, UNKNOWN)
