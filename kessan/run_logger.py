import json
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .models import to_jsonable


_WRITE_LOCK = threading.Lock()


def log_step(output_dir: Path, step: str, payload: Dict[str, Any]) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    log_path = output_dir / "run.log"
    entry = {"ts": time.time(), "step": step, "payload": to_jsonable(payload)}
    with _WRITE_LOCK, open(log_path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False) + "\n")


def log_step_if_enabled(run_log_dir: Optional[str], step: str, payload: Dict[str, Any]) -> None:
    if run_log_dir:
        log_step(Path(run_log_dir), step, payload)
