from __future__ import annotations

import inspect
import logging
import random
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from .calculations import stub_result
from .conditions import evaluate_conditions
from .exceptions import RuleTesterBusyError
from .models import Rule, RuleTestCase, RuleTestResult

logger = logging.getLogger(__name__)

UNKNOWN_TEST_ERROR = "Unknown error while testing rule"

EvaluationOutcome = Union[RuleTestResult, Mapping[str, Any]]
EvaluationFunction = Callable[[Dict[str, Any]], Union[EvaluationOutcome, Awaitable[EvaluationOutcome]]]
TestCaseCallback = Callable[[RuleTestCase], None]


def default_test_data() -> Dict[str, Any]:
    return {
        "employeeId": "",
        "employeeName": "João Silva",
        "employeeCategory": "Técnico",
        "baseSalary": 1200,
        "serviceYears": 3,
        "testDate": date.today().isoformat(),
    }


class RuleTester:
    """Runs a caller-supplied evaluation against sample input.

    The tester owns only the input form, the pending flag and the last outcome. A failing evaluation is
    reported as an unsuccessful result and the tester stays usable. There is no cancellation or timeout.
    """

    def __init__(
        self,
        rule: Rule,
        on_test: EvaluationFunction,
        *,
        on_save_test_case: Optional[TestCaseCallback] = None,
        test_data: Optional[Mapping[str, Any]] = None,
    ):
        self.rule = rule.model_copy(deep=True)
        self._on_test = on_test
        self._on_save_test_case = on_save_test_case
        self.test_data: Dict[str, Any] = dict(test_data) if test_data is not None else default_test_data()
        self.result: Optional[RuleTestResult] = None
        self.is_loading = False
        self.active_tab = "input"

    def set_input(self, name: str, value: Any) -> None:
        self.test_data[name] = value

    async def test(self, test_data: Optional[Mapping[str, Any]] = None) -> RuleTestResult:
        if self.is_loading:
            raise RuleTesterBusyError(f"A test of rule {self.rule.name!r} is already running.")
        if test_data is not None:
            self.test_data = dict(test_data)

        self.is_loading = True
        try:
            outcome = self._on_test(dict(self.test_data))
            if inspect.isawaitable(outcome):
                outcome = await outcome
            self.result = (
                outcome if isinstance(outcome, RuleTestResult) else RuleTestResult.model_validate(outcome)
            )
            self.active_tab = "result"
        except Exception as exc:
            logger.warning("Rule test for %r failed: %s", self.rule.name, exc)
            self.result = RuleTestResult(success=False, error=str(exc) or UNKNOWN_TEST_ERROR)
        finally:
            self.is_loading = False
        return self.result

    def save_test_case(self) -> RuleTestCase:
        case = RuleTestCase(
            rule_id=self.rule.id,
            test_data=dict(self.test_data),
            result=self.result.result if self.result else None,
            timestamp=datetime.now(timezone.utc),
        )
        if self._on_save_test_case is not None:
            self._on_save_test_case(case)
        return case


def preview_evaluator(rule: Rule, *, rng: Optional[random.Random] = None) -> EvaluationFunction:
    """Build an `on_test` function for previews.

    Conditions are folded against the sample data; each active calculation contributes the stub amount
    under its name. This is not a payroll engine.
    """
    snapshot = rule.model_copy(deep=True)

    def _evaluate(test_data: Dict[str, Any]) -> RuleTestResult:
        if not evaluate_conditions(snapshot.conditions, test_data):
            return RuleTestResult(success=False, error="Conditions not met for the sample data.")
        results: Dict[str, float] = {}
        for i, calc in enumerate(snapshot.calculation_list(), start=1):
            if not calc.is_active:
                continue
            results[calc.name or f"calculation_{i}"] = float(stub_result(calc, rng))
        return RuleTestResult(success=True, result=results)

    return _evaluate
