import json
from pathlib import Path
from typing import Any, Dict, Optional

HISTORY_PATH = Path.home() / ".bpsr_verify_history.jsonl"


def log_event(action: str, payload: Dict[str, Any], path: Optional[Path] = None) -> None:
    """
    Append a simple JSON line to history for traceability.
    """
    record = {"action": action, **payload}
    target = path or HISTORY_PATH
    try:
        with target.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError:
        # History failures should not break signing or verification.
        pass
