from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from pydantic.alias_generators import to_camel

from .calculations import CalculationConfigurator
from .conditions import ConditionBuilder
from .models import CalculationConfig, Condition, Rule, RuleTestResult, merged
from .tester import EvaluationFunction, RuleTester, preview_evaluator

logger = logging.getLogger(__name__)

NAME_REQUIRED = "name required"
DESCRIPTION_REQUIRED = "description required"
CONDITIONS_REQUIRED = "at least one condition required"
CALCULATIONS_REQUIRED = "at least one calculation required"

PersistCallback = Callable[[Rule], Union[None, Awaitable[None]]]


class EditorState(str, Enum):
    DRAFT = "draft"
    VALIDATING = "validating"
    VALID = "valid"
    INVALID = "invalid"


def validate_rule(rule: Rule) -> Dict[str, str]:
    """Return a field-keyed error map; empty when the rule can be saved."""
    errors: Dict[str, str] = {}
    if not rule.name.strip():
        errors["name"] = NAME_REQUIRED
    if not rule.description.strip():
        errors["description"] = DESCRIPTION_REQUIRED
    if not rule.conditions:
        errors["conditions"] = CONDITIONS_REQUIRED
    if not rule.calculation_list():
        errors["calculations"] = CALCULATIONS_REQUIRED
    return errors


def _attribute_name(key: str) -> str:
    if key in Rule.model_fields:
        return key
    for name, info in Rule.model_fields.items():
        if (info.alias or to_camel(name)) == key:
            return name
    return key


class RuleEditor:
    """Single editing session over one rule draft.

    Any edit returns the session to DRAFT and clears the error for the edited attribute. `save()` validates
    the whole rule and only then hands a copy to the persistence callback; nothing is persisted on failure.
    """

    def __init__(self, rule: Optional[Rule] = None, *, on_save: Optional[PersistCallback] = None):
        self._rule = rule.model_copy(deep=True) if rule is not None else Rule()
        self._on_save = on_save
        self._errors: Dict[str, str] = {}
        self.state = EditorState.DRAFT
        self.is_saving = False
        self.save_success = False
        self.save_error: Optional[str] = None

    @property
    def rule(self) -> Rule:
        return self._rule.model_copy(deep=True)

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._errors)

    def set_field(self, key: str, value: Any) -> None:
        self._rule = merged(self._rule, {key: value})
        self._edited(_attribute_name(key))

    def set_conditions(self, conditions: Iterable[Condition]) -> None:
        self._rule.conditions = [c.model_copy(deep=True) for c in conditions]
        self._edited("conditions")

    def set_calculations(
        self, calculations: Union[Iterable[CalculationConfig], CalculationConfig, None]
    ) -> None:
        if calculations is None or isinstance(calculations, CalculationConfig):
            value = calculations.model_copy(deep=True) if calculations is not None else None
        else:
            value = [c.model_copy(deep=True) for c in calculations]
        self._rule.calculations = value
        self._edited("calculations")

    def condition_builder(self, **kwargs: Any) -> ConditionBuilder:
        return ConditionBuilder(self._rule.conditions, on_change=self.set_conditions, **kwargs)

    def calculation_configurator(self, index: Optional[int] = None, **kwargs: Any) -> CalculationConfigurator:
        """Open a configurator for the calculation at `index`, or for a new one when `index` is None."""
        current: List[CalculationConfig] = self._rule.calculation_list()
        if index is None:
            def _append(config: CalculationConfig) -> None:
                self.set_calculations([*self._rule.calculation_list(), config])

            return CalculationConfigurator(on_save=_append, **kwargs)

        def _replace(config: CalculationConfig) -> None:
            items = self._rule.calculation_list()
            items[index] = config
            self.set_calculations(items)

        return CalculationConfigurator(current[index], on_save=_replace, **kwargs)

    def validate(self) -> bool:
        self.state = EditorState.VALIDATING
        self._errors = validate_rule(self._rule)
        self.state = EditorState.INVALID if self._errors else EditorState.VALID
        return not self._errors

    async def save(self) -> bool:
        self.save_success = False
        self.save_error = None
        if not self.validate():
            logger.info("Rule %r not saved: %s", self._rule.name, ", ".join(sorted(self._errors)))
            return False
        if self._on_save is None:
            self.save_success = True
            return True

        self.is_saving = True
        try:
            outcome = self._on_save(self.rule)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.exception("Error saving rule %r", self._rule.name)
            self.save_error = str(exc) or type(exc).__name__
            return False
        finally:
            self.is_saving = False

        self.save_success = True
        return True

    async def test(
        self,
        on_test: Optional[EvaluationFunction] = None,
        test_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[RuleTestResult]:
        """Validate the draft and, only if it is valid, run it through a `RuleTester`.

        Returns None without calling `on_test` when validation fails; `errors` then holds the reasons.
        `on_test` defaults to the preview evaluator over the current draft.
        """
        if not self.validate():
            logger.info("Rule %r not tested: %s", self._rule.name, ", ".join(sorted(self._errors)))
            return None
        draft = self.rule
        tester = RuleTester(draft, on_test or preview_evaluator(draft), test_data=test_data)
        return await tester.test()

    def _edited(self, key: str) -> None:
        self._errors.pop(key, None)
        self.state = EditorState.DRAFT
        self.save_success = False
