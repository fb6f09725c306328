from __future__ import annotations


class PayrollRulesError(Exception):
    pass


class ConfigError(PayrollRulesError, ValueError):
    pass


class NotFoundError(PayrollRulesError, LookupError):
    kind = "item"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"{self.kind} not found: {item_id}")


class FieldNotFoundError(NotFoundError):
    kind = "field"


class ConditionNotFoundError(NotFoundError):
    kind = "condition"


class VariableNotFoundError(NotFoundError):
    kind = "variable"


class RuleNotFoundError(NotFoundError):
    kind = "rule"


class ReportElementNotFoundError(NotFoundError):
    kind = "report element"


class RuleTesterBusyError(PayrollRulesError, RuntimeError):
    """Raised when a test run is requested while another one is still pending."""
