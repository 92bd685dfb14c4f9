import math
import re
from typing import List, Dict, Any, Optional

from corun_rules import CoRunRule
from validators import is_numeric

# "make T1, T2 and T3 co-run", "add A and B corun", "T4, T5 co run"
_CORUN_PHRASE = re.compile(
    r"""
    (?:make|add)?\s*
    (?P<head>[\w,\s]+?)              # comma separated task list
    (?:\s+and\s+(?P<last>\w+))?\s*   # task after the final "and"
    co[-\s]?run
    """,
    re.VERBOSE,
)


def parse_natural_rule(text: str) -> Optional[CoRunRule]:
    """
    Heuristic reading of a free-text co-run request. Returns None when the
    phrase is not recognised or names fewer than two tasks.
    """
    if not text:
        return None
    match = _CORUN_PHRASE.search(text.lower().strip())
    if not match:
        return None

    tasks = [part.strip().upper() for part in match.group("head").split(",") if part.strip()]
    if match.group("last"):
        tasks.append(match.group("last").strip().upper())

    if len(tasks) < 2:
        return None
    return CoRunRule(tasks)


def _duration_bucket(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    if text and not is_numeric(text):
        return "NaNmin"
    duration = float(text) if text else 0.0
    # Round half up to the nearest ten.
    return f"{int(math.floor(duration / 10 + 0.5) * 10)}min"


def suggest_corun_rules(tasks: List[Dict[str, Any]]) -> List[CoRunRule]:
    """Tasks of similar duration (nearest ten) are proposed as co-run groups."""
    grouped: Dict[str, List[str]] = {}
    for task in tasks:
        task_id = task.get("TaskID")
        if not task_id:
            continue
        grouped.setdefault(_duration_bucket(task.get("Duration")), []).append(str(task_id).strip())

    return [CoRunRule(group) for group in grouped.values() if len(group) >= 2]
