import csv
import io
import json
import logging
import os
from typing import List, Dict, Any, Optional, Union

import pandas as pd

from ai_agent import GPTAgent, nl_to_rule, recommend_rules
from assignments import Assignment, get_prioritized_assignments
from config import Settings, get_settings
from corun_rules import CoRunRule, check_new_rule, cross_rule_cycles
from exceptions import (
    CircularRuleError,
    InvalidRuleError,
    RowIndexError,
    RuleSuggestionError,
    UnknownEntityError,
)
from rule_sources import parse_natural_rule, suggest_corun_rules
from validators import (
    ENTITIES,
    VALIDATORS,
    ValidationError,
    count_errors_for_entity,
    cross_validate,
    get_cross_validation_issues,
    summarize_errors,
)

logger = logging.getLogger(__name__)

Record = Dict[str, str]

EXPORT_FILES = {
    "clients.csv": "text/csv",
    "workers.csv": "text/csv",
    "tasks.csv": "text/csv",
    "all_data_export.xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "validated_data.json": "application/json",
    "rules.json": "application/json",
    "validation_errors.json": "application/json",
    "assignments.csv": "text/csv",
    "assignments.json": "application/json",
}


# --------- Ingestion helpers ---------

def infer_entity_type(filename: str) -> str:
    name = (filename or "").lower()
    if "client" in name:
        return "clients"
    if "worker" in name:
        return "workers"
    return "tasks"


def _clean_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value)


def clean_rows(rows: List[Dict[str, Any]]) -> List[Record]:
    """Trims header names and turns every cell into a string ("" for blanks)."""
    cleaned_data = []
    for row in rows:
        cleaned_data.append({str(key).strip(): _clean_value(value) for key, value in row.items()})
    return cleaned_data


def read_table(source, filename: str) -> List[Record]:
    if filename.lower().endswith(".csv"):
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
    else:
        df = pd.read_excel(source, dtype=str, keep_default_na=False)
    df = df.fillna("")
    return clean_rows(df.to_dict(orient="records"))


# --------- Main DataManager Class ---------
class DataManager:
    """
    Owns the three batches and the accepted co-run rules. Every read of errors,
    cycles or assignments is recomputed from the current state.
    """

    def __init__(self, settings: Optional[Settings] = None, gpt_agent=None):
        self.settings = settings or get_settings()
        self.gpt_agent = gpt_agent
        if self.gpt_agent is None and self.settings.github_token:
            try:
                self.gpt_agent = GPTAgent(self.settings)
            except Exception as e:
                logger.warning("AI features disabled due to initialization error: %s", e)

        self.clients: List[Record] = []
        self.workers: List[Record] = []
        self.tasks: List[Record] = []
        self.rules: List[CoRunRule] = []
        self.extra_rules: List[Dict[str, Any]] = []

    # ----- batches -----

    def batch(self, entity: str) -> List[Record]:
        if entity not in ENTITIES:
            raise UnknownEntityError(entity)
        return getattr(self, entity)

    def set_batch(self, entity: str, rows: List[Dict[str, Any]]) -> List[Record]:
        if entity not in ENTITIES:
            raise UnknownEntityError(entity)
        setattr(self, entity, clean_rows(rows))
        logger.info("batch replaced", extra={"entity": entity, "rows": len(rows)})
        return self.batch(entity)

    def load_file(self, source, entity: Optional[str] = None, filename: Optional[str] = None) -> str:
        if filename is None:
            filename = os.path.basename(str(source))
        entity = entity or infer_entity_type(filename)
        self.set_batch(entity, read_table(source, filename))
        return entity

    def load_files(self, clients_path, workers_path, tasks_path):
        self.load_file(clients_path, "clients")
        self.load_file(workers_path, "workers")
        self.load_file(tasks_path, "tasks")

    def headers(self, entity: str) -> List[str]:
        keys: Dict[str, None] = {}
        for row in self.batch(entity):
            for key in row:
                keys.setdefault(key, None)
        return list(keys)

    def _check_row(self, entity: str, row: int) -> List[Record]:
        rows = self.batch(entity)
        if row < 0 or row >= len(rows):
            raise RowIndexError(entity, row, len(rows))
        return rows

    def update_cell(self, entity: str, row: int, field: str, value: Any) -> Record:
        rows = self._check_row(entity, row)
        rows[row] = {**rows[row], str(field).strip(): _clean_value(value)}
        return rows[row]

    def add_row(self, entity: str) -> int:
        rows = self.batch(entity)
        rows.append({key: "" for key in self.headers(entity)})
        return len(rows) - 1

    def delete_row(self, entity: str, row: int) -> Record:
        rows = self._check_row(entity, row)
        return rows.pop(row)

    def reset(self):
        self.clients = []
        self.workers = []
        self.tasks = []
        self.rules = []
        self.extra_rules = []

    # ----- validation -----

    def validate_all(self) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for entity in ENTITIES:
            errors.extend(VALIDATORS[entity](self.batch(entity)))
        errors.extend(cross_validate(self.clients, self.workers, self.tasks))
        return errors

    def valid_rows(self, entity: str, errors: Optional[List[ValidationError]] = None) -> List[Record]:
        errors = self.validate_all() if errors is None else errors
        invalid = {error.row for error in errors if error.entity == entity}
        return [row for index, row in enumerate(self.batch(entity)) if index not in invalid]

    def summary(self, errors: Optional[List[ValidationError]] = None) -> Dict[str, Any]:
        errors = self.validate_all() if errors is None else errors
        return {
            "dataCounts": {entity: len(self.batch(entity)) for entity in ENTITIES},
            "errorCounts": {entity: count_errors_for_entity(errors, entity) for entity in ENTITIES},
            "errorTypes": summarize_errors(errors),
            "totalErrors": len(errors),
        }

    def validation_report(self) -> Dict[str, Any]:
        errors = self.validate_all()
        return {
            "errors": [error.to_dict() for error in errors],
            "crossIssues": get_cross_validation_issues(errors),
            "summary": self.summary(errors),
        }

    # ----- rules -----

    def add_rule(self, rule: Union[CoRunRule, Dict[str, Any]]) -> CoRunRule:
        if isinstance(rule, dict):
            parsed = CoRunRule.from_dict(rule)
            if parsed is None:
                raise InvalidRuleError(f"Not a co-run rule: {rule}")
            rule = parsed

        if len(set(rule.tasks)) < 2:
            raise InvalidRuleError("Select at least 2 tasks for a co-run rule.")

        cycles = check_new_rule(self.rules, rule)
        if cycles:
            logger.info("co-run rule rejected", extra={"tasks": rule.tasks, "cycles": cycles})
            raise CircularRuleError(cycles)

        self.rules.append(rule)
        logger.info("co-run rule added", extra={"tasks": rule.tasks})
        return rule

    def add_rule_from_text(self, text: str) -> CoRunRule:
        rule = parse_natural_rule(text)
        if rule is None and self.gpt_agent is not None:
            generated = nl_to_rule(
                self.gpt_agent, text, self.clients, self.workers, self.tasks,
                sample_rows=self.settings.ai_sample_rows,
            )
            rule = CoRunRule.from_dict(generated) if generated else None
        if rule is None:
            raise InvalidRuleError("Could not understand the rule.")
        return self.add_rule(rule)

    def remove_rule(self, index: int) -> CoRunRule:
        if index < 0 or index >= len(self.rules):
            raise InvalidRuleError(f"No rule at position {index}")
        return self.rules.pop(index)

    def _with_cycles(self, rule: CoRunRule) -> Dict[str, Any]:
        return {"rule": rule.to_dict(), "cycles": check_new_rule(self.rules, rule)}

    def suggest_rules(self) -> List[Dict[str, Any]]:
        return [self._with_cycles(rule) for rule in suggest_corun_rules(self.tasks)]

    def suggest_rules_with_ai(self) -> List[Dict[str, Any]]:
        if self.gpt_agent is None:
            raise RuleSuggestionError("AI features are disabled (missing GITHUB_TOKEN)")

        suggestions = []
        raw_rules = recommend_rules(
            self.gpt_agent, self.clients, self.workers, self.tasks,
            sample_rows=self.settings.ai_sample_rows,
        )
        for raw in raw_rules:
            rule = CoRunRule.from_dict(raw)
            if rule is None:
                suggestions.append({"rule": raw, "cycles": []})
            else:
                suggestions.append(self._with_cycles(rule))
        return suggestions

    def accept_rules(self, rules: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Adds suggested rules one by one; rejected ones are reported with the reason."""
        accepted, rejected = [], []
        for raw in rules:
            if CoRunRule.from_dict(raw) is None:
                self.extra_rules.append(raw)
                accepted.append(raw)
                continue
            try:
                accepted.append(self.add_rule(raw).to_dict())
            except CircularRuleError as exc:
                rejected.append({"rule": raw, "reason": str(exc), "cycles": exc.cycles})
            except InvalidRuleError as exc:
                rejected.append({"rule": raw, "reason": str(exc), "cycles": []})
        return {"accepted": accepted, "rejected": rejected}

    def current_cycles(self) -> List[List[str]]:
        return cross_rule_cycles(self.rules)

    def rules_as_dicts(self) -> List[Dict[str, Any]]:
        return [rule.to_dict() for rule in self.rules] + list(self.extra_rules)

    # ----- assignments -----

    def assignments(self) -> List[Assignment]:
        return get_prioritized_assignments(self.clients, self.tasks, self.workers)

    # ----- export -----

    def _csv(self, rows: List[Record]) -> bytes:
        return pd.DataFrame(rows).to_csv(index=False).encode("utf-8")

    def _json(self, payload: Any) -> bytes:
        return json.dumps(payload, indent=2).encode("utf-8")

    def export_bytes(self, name: str, valid_only: bool = False) -> bytes:
        if name not in EXPORT_FILES:
            raise KeyError(name)

        entity = name[:-len(".csv")]
        if entity in ENTITIES:
            rows = self.valid_rows(entity) if valid_only else self.batch(entity)
            return self._csv(rows)

        if name == "all_data_export.xlsx":
            buffer = io.BytesIO()
            with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
                for entity in ENTITIES:
                    pd.DataFrame(self.batch(entity)).to_excel(writer, sheet_name=entity.capitalize(), index=False)
            return buffer.getvalue()

        if name == "validated_data.json":
            return self._json({entity: self.batch(entity) for entity in ENTITIES})
        if name == "rules.json":
            return self._json(self.rules_as_dicts())
        if name == "validation_errors.json":
            return self._json([error.to_dict() for error in self.validate_all()])

        assignments = self.assignments()
        if name == "assignments.json":
            return self._json([assignment.to_dict() for assignment in assignments])
        table = [
            {
                "Client ID": assignment.client_id,
                "Task ID": assignment.task_id,
                "Suggested Worker IDs": ", ".join(assignment.suggested_worker_ids),
            }
            for assignment in assignments
        ]
        columns = ["Client ID", "Task ID", "Suggested Worker IDs"]
        return pd.DataFrame(table, columns=columns).to_csv(index=False, quoting=csv.QUOTE_ALL).encode("utf-8")

    def export_all(self, output_dir: Optional[str] = None) -> str:
        output_dir = output_dir or self.settings.export_dir
        os.makedirs(output_dir, exist_ok=True)
        for name in EXPORT_FILES:
            with open(os.path.join(output_dir, name), "wb") as f:
                f.write(self.export_bytes(name))
        logger.info("exported data", extra={"output_dir": output_dir, "files": len(EXPORT_FILES)})
        return output_dir
