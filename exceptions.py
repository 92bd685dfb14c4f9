from typing import List


class DataAlchemistError(Exception):
    """Base class for errors raised by the orchestration layer."""


class UnknownEntityError(DataAlchemistError):
    def __init__(self, entity: str):
        super().__init__(f"Unknown entity type: {entity}")
        self.entity = entity


class RowIndexError(DataAlchemistError):
    def __init__(self, entity: str, row: int, size: int):
        super().__init__(f"Row {row} is out of range for {entity} ({size} rows)")
        self.entity = entity
        self.row = row


class InvalidRuleError(DataAlchemistError):
    pass


class CircularRuleError(DataAlchemistError):
    def __init__(self, cycles: List[List[str]]):
        rendered = "; ".join(" -> ".join(cycle + cycle[:1]) for cycle in cycles)
        super().__init__(f"Adding this rule would create a circular dependency: {rendered}")
        self.cycles = cycles


class RuleSuggestionError(DataAlchemistError):
    pass
