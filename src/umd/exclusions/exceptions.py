"""Custom exceptions for exclusion rule management."""


class ExclusionError(Exception):
    """Base exception for exclusion rule errors."""


class ExclusionRuleNotFoundError(ExclusionError):
    """Raised when a rule id is unknown.

    Attributes:
        rule_id: The id that was looked up.
        operation: The operation that was attempted (e.g., "update").
    """

    def __init__(self, rule_id: str, operation: str) -> None:
        self.rule_id = rule_id
        self.operation = operation
        super().__init__(f"Cannot {operation} exclusion rule {rule_id}: not found")


class InvalidExclusionRuleError(ExclusionError):
    """Raised when a rule has a missing pattern, unknown type or bad glob."""
