import json
import math
import re
from typing import List, Dict, Any, Optional, Iterable, Set

ENTITIES = ("clients", "workers", "tasks")
CROSS_ERROR_TYPES = ("InvalidTaskReference", "UnusedSkill")

REQUIRED_CLIENT_COLUMNS = ["ClientID", "ClientName", "PriorityLevel", "RequestedTaskIDs"]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
# Plain decimal notation: no digit separators, no inf/nan words
_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


# --------- Validation Error Class ---------
class ValidationError:
    def __init__(self, error_type: str, message: str, entity: str, row: int, field: str):
        self.error_type = error_type
        self.message = message
        self.entity = entity
        self.row = row
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.error_type,
            "message": self.message,
            "entity": self.entity,
            "row": self.row,
            "field": self.field,
        }

    def __eq__(self, other):
        if not isinstance(other, ValidationError):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ValidationError({self.error_type!r}, row={self.row}, field={self.field!r})"


# --------- Cell parsing helpers ---------

def is_missing(value: Any) -> bool:
    # Blank cells arrive as "" or None; "0" is a real value.
    return not value


def split_list(value: Any) -> List[str]:
    """Comma-separated cell -> trimmed tokens (empty tokens kept)."""
    if value is None:
        return [""]
    return [part.strip() for part in str(value).split(",")]


def parse_skills(value: Any) -> List[str]:
    """Skill list cell such as "[cook, clean]" -> ["cook", "clean"]."""
    if value is None:
        return []
    text = str(value).replace("[", "").replace("]", "")
    return [skill.strip() for skill in text.split(",") if skill.strip()]


def parse_priority(value: Any) -> Optional[int]:
    """Leading-integer parse, so "3", " 3" and "3.0" all read as 3."""
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        # More digits than int() will convert; far outside any valid range anyway.
        return None


def is_numeric(value: Any) -> bool:
    text = str(value).strip()
    if not _DECIMAL.fullmatch(text):
        return False
    return math.isfinite(float(text))


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


# --------- Per-entity validators ---------

def validate_clients(clients: List[Dict[str, Any]]) -> List[ValidationError]:
    errors = []

    for row_idx, client in enumerate(clients):
        for col in REQUIRED_CLIENT_COLUMNS:
            if is_missing(client.get(col)):
                errors.append(ValidationError(
                    "MissingColumn", f"Missing value for {col}", "clients", row_idx, col
                ))

        priority = parse_priority(client.get("PriorityLevel"))
        if priority is None or priority < 1 or priority > 5:
            errors.append(ValidationError(
                "InvalidPriority", "PriorityLevel should be between 1 and 5",
                "clients", row_idx, "PriorityLevel"
            ))

        attributes = client.get("AttributesJSON")
        if attributes and isinstance(attributes, str):
            try:
                json.loads(attributes, parse_constant=_reject_constant)
            except (ValueError, RecursionError):
                errors.append(ValidationError(
                    "InvalidJSON", "AttributesJSON is not valid JSON",
                    "clients", row_idx, "AttributesJSON"
                ))

    return errors


def _validate_ids(
    rows: List[Dict[str, Any]],
    entity: str,
    id_field: str,
    missing_type: str,
    duplicate_type: str,
    row_idx: int,
    seen: Set[Any],
) -> List[ValidationError]:
    errors = []
    value = rows[row_idx].get(id_field)

    if is_missing(value):
        errors.append(ValidationError(
            missing_type, f"{id_field} is required", entity, row_idx, id_field
        ))
    if value in seen:
        errors.append(ValidationError(
            duplicate_type, f"Duplicate {id_field} {value}", entity, row_idx, id_field
        ))
    # Updated even for missing IDs, so a repeated blank ID counts as a duplicate.
    seen.add(value)
    return errors


def validate_workers(workers: List[Dict[str, Any]]) -> List[ValidationError]:
    errors = []
    seen_ids = set()

    for row_idx, worker in enumerate(workers):
        errors.extend(_validate_ids(
            workers, "workers", "WorkerID", "MissingWorkerID", "DuplicateWorkerID", row_idx, seen_ids
        ))

        if is_missing(worker.get("WorkerName")):
            errors.append(ValidationError(
                "MissingWorkerName", "WorkerName is required", "workers", row_idx, "WorkerName"
            ))

    return errors


def validate_tasks(tasks: List[Dict[str, Any]]) -> List[ValidationError]:
    errors = []
    seen_ids = set()

    for row_idx, task in enumerate(tasks):
        errors.extend(_validate_ids(
            tasks, "tasks", "TaskID", "MissingTaskID", "DuplicateTaskID", row_idx, seen_ids
        ))

        duration = task.get("Duration")
        if is_missing(duration) or not is_numeric(duration):
            errors.append(ValidationError(
                "InvalidDuration", "Duration must be a number", "tasks", row_idx, "Duration"
            ))

    return errors


VALIDATORS = {
    "clients": validate_clients,
    "workers": validate_workers,
    "tasks": validate_tasks,
}


# --------- Cross-entity validator ---------

def valid_task_ids(tasks: Iterable[Dict[str, Any]]) -> Set[str]:
    return {str(task.get("TaskID")).strip() for task in tasks if task.get("TaskID") is not None}


def required_skills(tasks: Iterable[Dict[str, Any]]) -> Set[str]:
    skills = set()
    for task in tasks:
        skills.update(parse_skills(task.get("RequiredSkills")))
    return skills


def cross_validate(
    clients: Optional[List[Dict[str, Any]]],
    workers: Optional[List[Dict[str, Any]]],
    tasks: Optional[List[Dict[str, Any]]],
) -> List[ValidationError]:
    """
    Reconciles the three batches: requested task IDs must exist in tasks and
    every worker skill must be required by at least one task. Errors carry the
    concrete owning entity ("clients" or "workers"), never "cross".
    """
    clients = clients or []
    workers = workers or []
    tasks = tasks or []
    errors = []

    task_ids = valid_task_ids(tasks)
    all_required_skills = required_skills(tasks)

    for row_idx, client in enumerate(clients):
        for task_id in split_list(client.get("RequestedTaskIDs") or ""):
            if task_id and task_id not in task_ids:
                errors.append(ValidationError(
                    "InvalidTaskReference", f"TaskID {task_id} does not exist in tasks",
                    "clients", row_idx, "RequestedTaskIDs"
                ))

    for row_idx, worker in enumerate(workers):
        for skill in split_list(worker.get("Skills") or ""):
            if skill and skill not in all_required_skills:
                errors.append(ValidationError(
                    "UnusedSkill", f"Skill {skill} is not required by any task",
                    "workers", row_idx, "Skills"
                ))

    return errors


# --------- Reporting helpers ---------

def summarize_errors(errors: List[ValidationError]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for error in errors:
        counts[error.error_type] = counts.get(error.error_type, 0) + 1
    return counts


def get_cross_validation_issues(errors: List[ValidationError]) -> List[str]:
    issue_map: Dict[str, int] = {}
    for error in errors:
        if error.error_type not in CROSS_ERROR_TYPES:
            continue
        message = error.message or "Unknown cross validation error"
        issue_map[message] = issue_map.get(message, 0) + 1

    return [
        f"{message} ({count} issue{'s' if count > 1 else ''})"
        for message, count in issue_map.items()
    ]


def count_errors_for_entity(errors: List[ValidationError], entity: str) -> int:
    return sum(1 for error in errors if error.entity == entity)


def _normalize_field(field: str) -> str:
    return re.sub(r"[\s_-]", "", str(field).lower())


def errors_for_cell(errors: List[ValidationError], entity: str, row: int, field: str) -> List[ValidationError]:
    wanted = _normalize_field(field)
    return [
        error for error in errors
        if error.entity == entity and error.row == row and _normalize_field(error.field) == wanted
    ]
