import pytest

from kessan.assembler import BalanceTolerance
from kessan.errors import ValidationError
from kessan.tables import BALANCE_SHEET, CASH_FLOW, INCOME_STATEMENT


from tests.helpers.statement_builder import build_statement


BS = BALANCE_SHEET
PL = INCOME_STATEMENT
CF = CASH_FLOW


def _codes(statement):
    return [w.code for w in statement.warnings]


def _balanced_lines(equity="80000000"):
    return [
        ("現金及び預金", "50000000", BS),
        ("売掛金", "40000000", BS),
        ("土地", "110000000", BS),
        ("資産合計", "200000000", BS),
        ("買掛金", "60000000", BS),
        ("長期借入金", "60000000", BS),
        ("負債合計", "120000000", BS),
        ("資本金", equity, BS),
        ("純資産合計", equity, BS),
        ("売上高", "100000000", PL),
        ("営業利益", "10000000", PL),
        ("当期純利益", "6000000", PL),
        ("税引前当期純利益", "9000000", CF),
        ("営業活動によるキャッシュ・フロー", "9000000", CF),
    ]


def test_exact_balance_emits_no_balance_warning():
    statement = build_statement(_balanced_lines())
    assert "balance_mismatch" not in _codes(statement)
    assert statement.balance_sheet.value("total_assets") == 200_000_000
    assert statement.balance_sheet.value("current_assets") == 90_000_000


def test_balance_mismatch_beyond_tolerance_emits_exactly_one_warning():
    statement = build_statement(_balanced_lines(equity="70000000"))
    assert _codes(statement).count("balance_mismatch") == 1


def test_balance_difference_within_tolerance_is_accepted():
    statement = build_statement(_balanced_lines(equity="81000000"))
    assert "balance_mismatch" not in _codes(statement)
    strict = build_statement(_balanced_lines(equity="81000000"), tolerance=BalanceTolerance(ratio=0.001))
    assert _codes(strict).count("balance_mismatch") == 1


def test_tolerance_minimum_is_one_yen():
    tolerance = BalanceTolerance()
    assert tolerance.agrees(10, 11)
    assert not tolerance.agrees(10, 12)
    assert tolerance.allowed(1_000_000) == 10_000


def test_missing_income_statement_is_a_validation_error():
    with pytest.raises(ValidationError):
        build_statement([("現金及び預金", "100", BS), ("資産合計", "100", BS)])


def test_missing_balance_sheet_and_cash_flow_are_warnings():
    statement = build_statement([("売上高", "1000", PL), ("当期純利益", "100", PL)])
    assert _codes(statement).count("statement_missing") == 2
    assert statement.income_statement.found
    assert not statement.cash_flow_statement.found


def test_computes_totals_missing_from_document():
    statement = build_statement(
        [
            ("売上高", "1000", PL),
            ("売上原価", "600", PL),
            ("販売費及び一般管理費", "250", PL),
        ]
    )
    totals = statement.income_statement.totals
    assert totals["gross_profit"] == 400
    assert totals["operating_income"] == 150
    assert totals["ordinary_income"] == 150


def test_reported_total_wins_and_mismatch_is_a_warning():
    statement = build_statement(
        [
            ("売上高", "1000", PL),
            ("売上原価", "600", PL),
            ("売上総利益", "450", PL),
        ]
    )
    assert statement.income_statement.value("gross_profit") == 450
    assert "total_mismatch" in _codes(statement)


def test_unclassified_lines_do_not_trigger_total_mismatch():
    statement = build_statement(
        [
            ("売上高", "1000", PL),
            ("売上原価", "600", PL),
            ("雑収入の特殊項目", "50", PL),
            ("売上総利益", "450", PL),
        ]
    )
    codes = _codes(statement)
    assert "total_mismatch" not in codes
    assert "unclassified" in codes
    assert [item.normalized_name for item in statement.unclassified] == ["雑収入の特殊項目"]


def test_duplicate_total_keeps_first_value():
    statement = build_statement(
        [("売上高", "1000", PL), ("当期純利益", "100", PL), ("当期純利益", "90", PL)]
    )
    assert statement.income_statement.value("net_income") == 100
    assert "duplicate_total" in _codes(statement)


def test_pre_tax_income_inside_cash_flow_is_an_operating_item():
    statement = build_statement(
        [
            ("売上高", "1000", PL),
            ("税引前当期純利益", "120", PL),
            ("税引前当期純利益", "120", CF),
            ("減価償却費", "30", CF),
        ]
    )
    assert statement.income_statement.value("income_before_taxes") == 120
    assert statement.cash_flow_statement.value("operating_cf") == 150
    assert "duplicate_total" not in _codes(statement)
    figures = statement.figures()
    assert figures["depreciation"] == 30


def test_classified_items_carry_bucket_and_kind():
    statement = build_statement([("売上高", "1000", PL), ("買掛金", "300", BS)])
    payable = statement.balance_sheet.items[0]
    assert payable.bucket == "current_liabilities"
    assert payable.key == "accounts_payable"
    assert payable.kind == "liability"
    assert statement.figures()["accounts_payable"] == 300
