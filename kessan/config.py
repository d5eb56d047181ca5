import os
from dataclasses import dataclass
from dotenv import load_dotenv


@dataclass
class AppConfig:
    max_document_bytes: int
    csv_delimiter: str
    balance_tolerance_ratio: float
    balance_tolerance_yen: float
    ratio_anomaly_threshold: float
    growth_anomaly_threshold: float
    analysis_max_concurrency: int
    run_log_dir: str
    debug: bool


def load_config() -> AppConfig:
    load_dotenv()
    try:
        analysis_max_concurrency = int(os.getenv("ANALYSIS_MAX_CONCURRENCY", "4"))
    except ValueError:
        analysis_max_concurrency = 4
    analysis_max_concurrency = max(1, min(analysis_max_concurrency, 16))

    delimiter = os.getenv("CSV_DELIMITER", ",")
    if delimiter in ("\\t", "tab"):
        delimiter = "\t"

    return AppConfig(
        max_document_bytes=int(os.getenv("MAX_DOCUMENT_BYTES", str(100 * 1024 * 1024))),
        csv_delimiter=delimiter or ",",
        balance_tolerance_ratio=float(os.getenv("BALANCE_TOLERANCE_RATIO", "0.01")),
        balance_tolerance_yen=float(os.getenv("BALANCE_TOLERANCE_YEN", "1")),
        ratio_anomaly_threshold=float(os.getenv("RATIO_ANOMALY_THRESHOLD", "0.30")),
        growth_anomaly_threshold=float(os.getenv("GROWTH_ANOMALY_THRESHOLD", "0.50")),
        analysis_max_concurrency=analysis_max_concurrency,
        run_log_dir=os.getenv("RUN_LOG_DIR", "").strip(),
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )
