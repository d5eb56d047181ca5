from datetime import date

import pytest

from kessan.errors import AmountParseError, DateParseError, FieldParseError
from kessan.models import AmountUnit
from kessan.normalizer import (
    detect_unit_declaration,
    find_dates,
    get_industry_name,
    is_nil_amount,
    normalize_account_name,
    parse_amount,
    parse_date,
    parse_number,
    parse_period_label,
    to_yen,
)
from kessan.tables import ACCOUNT_SYNONYMS


@pytest.mark.parametrize(
    "unit, scale",
    [("円", 1), ("千円", 1_000), ("百万円", 1_000_000), ("億円", 100_000_000)],
)
def test_to_yen_applies_unit_scale(unit, scale):
    for number in (0, 7, 1234, 98765):
        assert to_yen(parse_amount(f"{number}{unit}")) == number * scale


def test_parse_amount_ignores_full_width_digits_and_separators():
    assert parse_amount("１，２３４千円") == parse_amount("1,234千円")
    assert parse_amount("１２３４").value == 1234
    assert parse_amount("1、234").value == 1234


def test_amount_equality_ignores_source_text():
    wide = parse_amount("１，２３４千円")
    narrow = parse_amount("1,234千円")
    assert wide.original == "１，２３４千円"
    assert wide == narrow
    assert hash(wide) == hash(narrow)
    assert parse_amount("1,234円") != narrow


def test_parse_amount_negative_conventions():
    assert parse_amount("(1,234)円").value == -1234
    assert parse_amount("（1,234）").value == -1234
    assert parse_amount("(1,234千円)").value == -1234
    assert parse_amount("△500").value == -500
    assert parse_amount("▲500千円").value == -500
    assert parse_amount("−42").value == -42
    assert parse_amount("¥1,000").value == 1000


def test_parse_amount_keeps_unit_and_default():
    amount = parse_amount("3億円")
    assert amount.unit is AmountUnit.HUNDRED_MILLION_YEN
    assert amount.yen == 300_000_000
    assert parse_amount("25", default_unit=AmountUnit.MILLION_YEN).yen == 25_000_000
    assert parse_amount("25百万").unit is AmountUnit.MILLION_YEN


@pytest.mark.parametrize("text", ["", "abc", "1,2a3", "千円", "((1))", "△(5)"])
def test_parse_amount_rejects_non_numeric_text(text):
    with pytest.raises(AmountParseError):
        parse_amount(text)


def test_amount_parse_error_is_a_value_error_and_keeps_text():
    with pytest.raises(ValueError) as excinfo:
        parse_amount("n/a")
    assert excinfo.value.text == "n/a"


def test_is_nil_amount_recognises_dash_placeholders():
    assert is_nil_amount("-")
    assert is_nil_amount("―")
    assert not is_nil_amount("0")


def test_parse_number_strips_count_suffix():
    assert parse_number("1,234人") == 1234
    with pytest.raises(FieldParseError):
        parse_number("約百人")


def test_detect_unit_declaration():
    assert detect_unit_declaration("（単位：百万円）") is AmountUnit.MILLION_YEN
    assert detect_unit_declaration("単位 千円") is AmountUnit.THOUSAND_YEN
    assert detect_unit_declaration("(In millions of yen)") is AmountUnit.MILLION_YEN
    assert detect_unit_declaration("売上高") is None


def test_normalize_account_name_maps_synonyms():
    assert normalize_account_name("現金預金") == "現金及び預金"
    assert normalize_account_name("  売上高 ") == "売上高"
    assert normalize_account_name("謎の 　 勘定") == "謎の 勘定"


def test_normalize_account_name_is_idempotent_over_table():
    for name in list(ACCOUNT_SYNONYMS) + ["未知の科目", "  その他  雑収入 "]:
        once = normalize_account_name(name)
        assert normalize_account_name(once) == once


def test_parse_date_formats_agree():
    expected = date(2024, 3, 31)
    assert parse_date("令和6年3月31日") == expected
    assert parse_date("2024-03-31") == expected
    assert parse_date("2024/3/31") == expected
    assert parse_date("2024年03月31日") == expected
    assert parse_date("R6.3.31") == expected


def test_parse_date_first_year_of_era():
    assert parse_date("令和元年5月1日") == date(2019, 5, 1)
    assert parse_date("平成31年4月30日") == date(2019, 4, 30)


@pytest.mark.parametrize("text", ["", "三月末", "2024-13-01", "令和6年2月30日"])
def test_parse_date_rejects_unknown_text(text):
    with pytest.raises(DateParseError):
        parse_date(text)


def test_find_dates_and_period_label():
    assert find_dates("自 2023年4月1日 至 2024年3月31日") == [date(2023, 4, 1), date(2024, 3, 31)]
    assert parse_period_label("2023年3月期 2024年3月期") == date(2024, 3, 31)
    assert parse_period_label("2024年2月期") == date(2024, 2, 29)
    assert parse_period_label("売上高") is None


def test_get_industry_name():
    assert get_industry_name(16) == "電気機器"
    assert get_industry_name("１６") == "電気機器"
    assert get_industry_name(999) == "unknown"
    assert get_industry_name(None) == "unknown"
