"""Static lookup tables shared by the normalizer, parser and assembler.

Every table is a read-only mapping so callers cannot mutate shared state.
"""
from types import MappingProxyType
from typing import Dict, Optional, Tuple


UNKNOWN = "unknown"

BALANCE_SHEET = "balance_sheet"
INCOME_STATEMENT = "income_statement"
CASH_FLOW = "cash_flow"


def _frozen(data: Dict) -> MappingProxyType:
    return MappingProxyType(dict(data))


# Raw account label -> canonical label. Canonical labels map to themselves.
ACCOUNT_SYNONYMS = _frozen(
    {
        # 資産の部
        "現金及び預金": "現金及び預金",
        "現金預金": "現金及び預金",
        "現金・預金": "現金及び預金",
        "現金及び現金同等物": "現金及び預金",
        "受取手形": "受取手形",
        "売掛金": "売掛金",
        "売掛債権": "売掛金",
        "受取手形及び売掛金": "受取手形及び売掛金",
        "売上債権": "受取手形及び売掛金",
        "商品": "商品",
        "製品": "製品",
        "商品及び製品": "商品及び製品",
        "仕掛品": "仕掛品",
        "原材料": "原材料",
        "原材料及び貯蔵品": "原材料及び貯蔵品",
        "貯蔵品": "貯蔵品",
        "棚卸資産": "棚卸資産",
        "たな卸資産": "棚卸資産",
        "前払費用": "前払費用",
        "繰延税金資産": "繰延税金資産",
        "その他流動資産": "その他流動資産",
        "貸倒引当金": "貸倒引当金",
        "有形固定資産": "有形固定資産",
        "建物": "建物",
        "建物及び構築物": "建物及び構築物",
        "構築物": "構築物",
        "機械装置": "機械装置",
        "機械及び装置": "機械装置",
        "車両運搬具": "車両運搬具",
        "工具器具備品": "工具器具備品",
        "工具、器具及び備品": "工具器具備品",
        "土地": "土地",
        "建設仮勘定": "建設仮勘定",
        "無形固定資産": "無形固定資産",
        "ソフトウェア": "ソフトウェア",
        "ソフトウエア": "ソフトウェア",
        "のれん": "のれん",
        "投資その他の資産": "投資その他の資産",
        "投資有価証券": "投資有価証券",
        "長期貸付金": "長期貸付金",
        # 負債の部
        "支払手形": "支払手形",
        "買掛金": "買掛金",
        "買掛債務": "買掛金",
        "支払手形及び買掛金": "支払手形及び買掛金",
        "仕入債務": "支払手形及び買掛金",
        "短期借入金": "短期借入金",
        "未払金": "未払金",
        "未払費用": "未払費用",
        "未払法人税等": "未払法人税等",
        "賞与引当金": "賞与引当金",
        "その他流動負債": "その他流動負債",
        "長期借入金": "長期借入金",
        "社債": "社債",
        "退職給付引当金": "退職給付引当金",
        "退職給付に係る負債": "退職給付引当金",
        # 純資産の部
        "資本金": "資本金",
        "資本剰余金": "資本剰余金",
        "利益剰余金": "利益剰余金",
        "自己株式": "自己株式",
        # 合計
        "流動資産": "流動資産合計",
        "流動資産合計": "流動資産合計",
        "固定資産": "固定資産合計",
        "固定資産合計": "固定資産合計",
        "有形固定資産合計": "有形固定資産",
        "無形固定資産合計": "無形固定資産",
        "投資その他の資産合計": "投資その他の資産",
        "資産合計": "資産合計",
        "資産の部合計": "資産合計",
        "総資産": "資産合計",
        "流動負債": "流動負債合計",
        "流動負債合計": "流動負債合計",
        "固定負債": "固定負債合計",
        "固定負債合計": "固定負債合計",
        "負債合計": "負債合計",
        "負債の部合計": "負債合計",
        "株主資本合計": "株主資本合計",
        "純資産": "純資産合計",
        "純資産合計": "純資産合計",
        "純資産の部合計": "純資産合計",
        "自己資本": "純資産合計",
        "負債純資産合計": "負債純資産合計",
        "負債及び純資産合計": "負債純資産合計",
        # 損益計算書
        "売上高": "売上高",
        "売上高合計": "売上高",
        "売上": "売上高",
        "営業収益": "売上高",
        "売上収益": "売上高",
        "売上原価": "売上原価",
        "売上総利益": "売上総利益",
        "粗利益": "売上総利益",
        "販売費及び一般管理費": "販売費及び一般管理費",
        "販管費": "販売費及び一般管理費",
        "販売費・一般管理費": "販売費及び一般管理費",
        "営業利益": "営業利益",
        "営業外収益": "営業外収益",
        "営業外収益合計": "営業外収益",
        "受取利息": "受取利息",
        "受取配当金": "受取配当金",
        "営業外費用": "営業外費用",
        "営業外費用合計": "営業外費用",
        "支払利息": "支払利息",
        "経常利益": "経常利益",
        "特別利益": "特別利益",
        "特別利益合計": "特別利益",
        "特別損失": "特別損失",
        "特別損失合計": "特別損失",
        "税引前当期純利益": "税引前当期純利益",
        "税金等調整前当期純利益": "税引前当期純利益",
        "法人税等": "法人税等",
        "法人税、住民税及び事業税": "法人税等",
        "当期純利益": "当期純利益",
        "親会社株主に帰属する当期純利益": "当期純利益",
        # キャッシュ・フロー計算書
        "減価償却費": "減価償却費",
        "営業活動によるキャッシュ・フロー": "営業活動によるキャッシュ・フロー",
        "営業活動によるキャッシュフロー": "営業活動によるキャッシュ・フロー",
        "営業キャッシュ・フロー": "営業活動によるキャッシュ・フロー",
        "営業CF": "営業活動によるキャッシュ・フロー",
        "投資活動によるキャッシュ・フロー": "投資活動によるキャッシュ・フロー",
        "投資活動によるキャッシュフロー": "投資活動によるキャッシュ・フロー",
        "投資キャッシュ・フロー": "投資活動によるキャッシュ・フロー",
        "投資CF": "投資活動によるキャッシュ・フロー",
        "財務活動によるキャッシュ・フロー": "財務活動によるキャッシュ・フロー",
        "財務活動によるキャッシュフロー": "財務活動によるキャッシュ・フロー",
        "財務キャッシュ・フロー": "財務活動によるキャッシュ・フロー",
        "財務CF": "財務活動によるキャッシュ・フロー",
        "有形固定資産の取得による支出": "有形固定資産の取得による支出",
        "配当金の支払額": "配当金の支払額",
        # English labels
        "cash and deposits": "現金及び預金",
        "accounts receivable": "売掛金",
        "inventories": "棚卸資産",
        "inventory": "棚卸資産",
        "total current assets": "流動資産合計",
        "total non-current assets": "固定資産合計",
        "total assets": "資産合計",
        "accounts payable": "買掛金",
        "total current liabilities": "流動負債合計",
        "total non-current liabilities": "固定負債合計",
        "total liabilities": "負債合計",
        "total net assets": "純資産合計",
        "total equity": "純資産合計",
        "total liabilities and net assets": "負債純資産合計",
        "net sales": "売上高",
        "revenue": "売上高",
        "cost of sales": "売上原価",
        "gross profit": "売上総利益",
        "selling, general and administrative expenses": "販売費及び一般管理費",
        "operating income": "営業利益",
        "operating profit": "営業利益",
        "interest expenses": "支払利息",
        "ordinary income": "経常利益",
        "ordinary profit": "経常利益",
        "income before income taxes": "税引前当期純利益",
        "income taxes": "法人税等",
        "net income": "当期純利益",
        "profit": "当期純利益",
        "net cash provided by operating activities": "営業活動によるキャッシュ・フロー",
        "net cash used in investing activities": "投資活動によるキャッシュ・フロー",
        "net cash used in financing activities": "財務活動によるキャッシュ・フロー",
    }
)


# Fine-grained bucket -> owning statement.
BUCKET_STATEMENT = _frozen(
    {
        "current_assets": BALANCE_SHEET,
        "tangible_assets": BALANCE_SHEET,
        "intangible_assets": BALANCE_SHEET,
        "investment_assets": BALANCE_SHEET,
        "current_liabilities": BALANCE_SHEET,
        "fixed_liabilities": BALANCE_SHEET,
        "equity": BALANCE_SHEET,
        "revenue": INCOME_STATEMENT,
        "cost_of_sales": INCOME_STATEMENT,
        "sga": INCOME_STATEMENT,
        "non_operating_income": INCOME_STATEMENT,
        "non_operating_expenses": INCOME_STATEMENT,
        "income_taxes": INCOME_STATEMENT,
        "operating_activities": CASH_FLOW,
        "investing_activities": CASH_FLOW,
        "financing_activities": CASH_FLOW,
    }
)

# Fine-grained bucket -> broad account kind.
BUCKET_KIND = _frozen(
    {
        "current_assets": "asset",
        "tangible_assets": "asset",
        "intangible_assets": "asset",
        "investment_assets": "asset",
        "current_liabilities": "liability",
        "fixed_liabilities": "liability",
        "equity": "equity",
        "revenue": "revenue",
        "non_operating_income": "revenue",
        "cost_of_sales": "expense",
        "sga": "expense",
        "non_operating_expenses": "expense",
        "income_taxes": "expense",
        "operating_activities": "cash-flow-activity",
        "investing_activities": "cash-flow-activity",
        "financing_activities": "cash-flow-activity",
    }
)


# Canonical line item -> (bucket, figure key). Items sharing a figure key are summed.
ACCOUNT_CLASSIFICATION = _frozen(
    {
        "現金及び預金": ("current_assets", "cash"),
        "受取手形": ("current_assets", "accounts_receivable"),
        "売掛金": ("current_assets", "accounts_receivable"),
        "受取手形及び売掛金": ("current_assets", "accounts_receivable"),
        "商品": ("current_assets", "inventory"),
        "製品": ("current_assets", "inventory"),
        "商品及び製品": ("current_assets", "inventory"),
        "仕掛品": ("current_assets", "inventory"),
        "原材料": ("current_assets", "inventory"),
        "原材料及び貯蔵品": ("current_assets", "inventory"),
        "貯蔵品": ("current_assets", "inventory"),
        "棚卸資産": ("current_assets", "inventory"),
        "前払費用": ("current_assets", None),
        "繰延税金資産": ("current_assets", None),
        "その他流動資産": ("current_assets", None),
        "貸倒引当金": ("current_assets", None),
        "建物": ("tangible_assets", None),
        "建物及び構築物": ("tangible_assets", None),
        "構築物": ("tangible_assets", None),
        "機械装置": ("tangible_assets", None),
        "車両運搬具": ("tangible_assets", None),
        "工具器具備品": ("tangible_assets", None),
        "土地": ("tangible_assets", None),
        "建設仮勘定": ("tangible_assets", None),
        "ソフトウェア": ("intangible_assets", None),
        "のれん": ("intangible_assets", None),
        "投資有価証券": ("investment_assets", None),
        "長期貸付金": ("investment_assets", None),
        "支払手形": ("current_liabilities", "accounts_payable"),
        "買掛金": ("current_liabilities", "accounts_payable"),
        "支払手形及び買掛金": ("current_liabilities", "accounts_payable"),
        "短期借入金": ("current_liabilities", "short_term_debt"),
        "未払金": ("current_liabilities", None),
        "未払費用": ("current_liabilities", None),
        "未払法人税等": ("current_liabilities", None),
        "賞与引当金": ("current_liabilities", None),
        "その他流動負債": ("current_liabilities", None),
        "長期借入金": ("fixed_liabilities", "long_term_debt"),
        "社債": ("fixed_liabilities", "long_term_debt"),
        "退職給付引当金": ("fixed_liabilities", None),
        "資本金": ("equity", None),
        "資本剰余金": ("equity", None),
        "利益剰余金": ("equity", None),
        "自己株式": ("equity", None),
        "売上高": ("revenue", None),
        "売上原価": ("cost_of_sales", None),
        "販売費及び一般管理費": ("sga", None),
        "受取利息": ("non_operating_income", None),
        "受取配当金": ("non_operating_income", None),
        "支払利息": ("non_operating_expenses", "interest_expense"),
        "法人税等": ("income_taxes", None),
    }
)

# Line items that only make sense inside the cash flow statement. While the
# parser is inside a cash flow section only this table is consulted.
CASH_FLOW_CLASSIFICATION = _frozen(
    {
        "税引前当期純利益": ("operating_activities", None),
        "当期純利益": ("operating_activities", None),
        "減価償却費": ("operating_activities", "depreciation"),
        "有形固定資産の取得による支出": ("investing_activities", "capital_expenditure"),
        "配当金の支払額": ("financing_activities", "dividends_paid"),
    }
)


# Canonical total label -> total key.
TOTAL_ACCOUNTS = _frozen(
    {
        "流動資産合計": "current_assets",
        "有形固定資産": "tangible_fixed_assets",
        "無形固定資産": "intangible_fixed_assets",
        "投資その他の資産": "investments_and_other_assets",
        "固定資産合計": "fixed_assets",
        "資産合計": "total_assets",
        "流動負債合計": "current_liabilities",
        "固定負債合計": "fixed_liabilities",
        "負債合計": "total_liabilities",
        "株主資本合計": "shareholders_equity",
        "純資産合計": "total_equity",
        "負債純資産合計": "liabilities_and_equity",
        "売上総利益": "gross_profit",
        "営業利益": "operating_income",
        "営業外収益": "non_operating_income",
        "営業外費用": "non_operating_expenses",
        "経常利益": "ordinary_income",
        "特別利益": "extraordinary_income",
        "特別損失": "extraordinary_losses",
        "税引前当期純利益": "income_before_taxes",
        "当期純利益": "net_income",
        "営業活動によるキャッシュ・フロー": "operating_cf",
        "投資活動によるキャッシュ・フロー": "investing_cf",
        "財務活動によるキャッシュ・フロー": "financing_cf",
    }
)

# Total key -> owning statement. Totals without a rule below are reported-only.
TOTAL_STATEMENT = _frozen(
    {
        "current_assets": BALANCE_SHEET,
        "tangible_fixed_assets": BALANCE_SHEET,
        "intangible_fixed_assets": BALANCE_SHEET,
        "investments_and_other_assets": BALANCE_SHEET,
        "fixed_assets": BALANCE_SHEET,
        "total_assets": BALANCE_SHEET,
        "current_liabilities": BALANCE_SHEET,
        "fixed_liabilities": BALANCE_SHEET,
        "total_liabilities": BALANCE_SHEET,
        "shareholders_equity": BALANCE_SHEET,
        "total_equity": BALANCE_SHEET,
        "liabilities_and_equity": BALANCE_SHEET,
        "revenue": INCOME_STATEMENT,
        "cost_of_sales": INCOME_STATEMENT,
        "gross_profit": INCOME_STATEMENT,
        "sga": INCOME_STATEMENT,
        "operating_income": INCOME_STATEMENT,
        "non_operating_income": INCOME_STATEMENT,
        "non_operating_expenses": INCOME_STATEMENT,
        "ordinary_income": INCOME_STATEMENT,
        "extraordinary_income": INCOME_STATEMENT,
        "extraordinary_losses": INCOME_STATEMENT,
        "income_before_taxes": INCOME_STATEMENT,
        "income_taxes": INCOME_STATEMENT,
        "net_income": INCOME_STATEMENT,
        "operating_cf": CASH_FLOW,
        "investing_cf": CASH_FLOW,
        "financing_cf": CASH_FLOW,
    }
)

# Total key -> (sign, component, required). "@name" sums a bucket, plain
# names refer to another total. Rules are listed in dependency order.
TOTAL_RULES = _frozen(
    {
        "current_assets": ((1, "@current_assets", True),),
        "tangible_fixed_assets": ((1, "@tangible_assets", True),),
        "intangible_fixed_assets": ((1, "@intangible_assets", True),),
        "investments_and_other_assets": ((1, "@investment_assets", True),),
        "fixed_assets": (
            (1, "tangible_fixed_assets", False),
            (1, "intangible_fixed_assets", False),
            (1, "investments_and_other_assets", False),
        ),
        "total_assets": ((1, "current_assets", True), (1, "fixed_assets", False)),
        "current_liabilities": ((1, "@current_liabilities", True),),
        "fixed_liabilities": ((1, "@fixed_liabilities", True),),
        "total_liabilities": ((1, "current_liabilities", True), (1, "fixed_liabilities", False)),
        "total_equity": ((1, "@equity", True),),
        "liabilities_and_equity": ((1, "total_liabilities", True), (1, "total_equity", True)),
        "revenue": ((1, "@revenue", True),),
        "cost_of_sales": ((1, "@cost_of_sales", True),),
        "gross_profit": ((1, "revenue", True), (-1, "cost_of_sales", False)),
        "sga": ((1, "@sga", True),),
        "operating_income": ((1, "gross_profit", True), (-1, "sga", True)),
        "non_operating_income": ((1, "@non_operating_income", True),),
        "non_operating_expenses": ((1, "@non_operating_expenses", True),),
        "ordinary_income": (
            (1, "operating_income", True),
            (1, "non_operating_income", False),
            (-1, "non_operating_expenses", False),
        ),
        "income_before_taxes": (
            (1, "ordinary_income", True),
            (1, "extraordinary_income", False),
            (-1, "extraordinary_losses", False),
        ),
        "income_taxes": ((1, "@income_taxes", True),),
        "net_income": ((1, "income_before_taxes", True), (-1, "income_taxes", False)),
        "operating_cf": ((1, "@operating_activities", True),),
        "investing_cf": ((1, "@investing_activities", True),),
        "financing_cf": ((1, "@financing_activities", True),),
    }
)


# Headings that open a statement section, matched against a lookup key.
SECTION_HEADINGS: Tuple[Tuple[str, str], ...] = (
    ("貸借対照表", BALANCE_SHEET),
    ("財政状態計算書", BALANCE_SHEET),
    ("balancesheet", BALANCE_SHEET),
    ("損益計算書", INCOME_STATEMENT),
    ("incomestatement", INCOME_STATEMENT),
    ("statementofincome", INCOME_STATEMENT),
    ("profitandloss", INCOME_STATEMENT),
    ("キャッシュ・フロー計算書", CASH_FLOW),
    ("キャッシュフロー計算書", CASH_FLOW),
    ("statementofcashflows", CASH_FLOW),
    ("cashflowstatement", CASH_FLOW),
)

# Worksheet names that imply a section.
SHEET_SECTIONS: Tuple[Tuple[str, str], ...] = (
    ("貸借", BALANCE_SHEET),
    ("損益", INCOME_STATEMENT),
    ("キャッシュ", CASH_FLOW),
)
SHEET_ABBREVIATIONS = _frozen({"bs": BALANCE_SHEET, "pl": INCOME_STATEMENT, "cf": CASH_FLOW})


# Era name -> Gregorian year preceding era year 1.
ERA_START_YEARS = _frozen(
    {
        "令和": 2018,
        "平成": 1988,
        "昭和": 1925,
        "大正": 1911,
        "明治": 1867,
        "R": 2018,
        "H": 1988,
        "S": 1925,
        "T": 1911,
        "M": 1867,
    }
)


# Tokyo Stock Exchange 33 sector classification.
INDUSTRY_NAMES = _frozen(
    {
        1: "水産・農林業",
        2: "鉱業",
        3: "建設業",
        4: "食料品",
        5: "繊維製品",
        6: "パルプ・紙",
        7: "化学",
        8: "医薬品",
        9: "石油・石炭製品",
        10: "ゴム製品",
        11: "ガラス・土石製品",
        12: "鉄鋼",
        13: "非鉄金属",
        14: "金属製品",
        15: "機械",
        16: "電気機器",
        17: "輸送用機器",
        18: "精密機器",
        19: "その他製品",
        20: "電気・ガス業",
        21: "陸運業",
        22: "海運業",
        23: "空運業",
        24: "倉庫・運輸関連業",
        25: "情報・通信業",
        26: "卸売業",
        27: "小売業",
        28: "銀行業",
        29: "証券、商品先物取引業",
        30: "保険業",
        31: "その他金融業",
        32: "不動産業",
        33: "サービス業",
    }
)


def classify_account(name: str, section: Optional[str]) -> Optional[Tuple[str, Optional[str]]]:
    """Return (bucket, figure key) for a canonical line item, or None."""
    if section == CASH_FLOW:
        return CASH_FLOW_CLASSIFICATION.get(name)
    return ACCOUNT_CLASSIFICATION.get(name)


def total_key_for(name: str, section: Optional[str]) -> Optional[str]:
    """Return the total key for a canonical total label, or None.

    Inside a cash flow section only cash flow totals count; income lines such
    as 税引前当期純利益 are operating items there.
    """
    key = TOTAL_ACCOUNTS.get(name)
    if key is None:
        return None
    if section == CASH_FLOW and TOTAL_STATEMENT[key] != CASH_FLOW:
        return None
    return key
