from __future__ import annotations

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from .exceptions import ConditionNotFoundError
from .models import Condition, LogicalOperator, MoveDirection, Operator, merged

logger = logging.getLogger(__name__)

DEFAULT_CONDITION_FIELD = "salary"

ConditionsCallback = Callable[[List[Condition]], None]


class ConditionBuilder:
    """Edits an ordered condition list.

    Unknown ids are ignored and reported through the boolean return value; pass `strict=True` to get
    `ConditionNotFoundError` instead. `on_change` receives a copy of the list after every effective edit.
    """

    def __init__(
        self,
        conditions: Optional[Iterable[Condition]] = None,
        *,
        on_change: Optional[ConditionsCallback] = None,
        default_field: str = DEFAULT_CONDITION_FIELD,
        strict: bool = False,
    ):
        self._conditions: List[Condition] = [c.model_copy(deep=True) for c in conditions or ()]
        self._on_change = on_change
        self.default_field = default_field
        self.strict = strict

    @property
    def conditions(self) -> List[Condition]:
        return [c.model_copy(deep=True) for c in self._conditions]

    def __len__(self) -> int:
        return len(self._conditions)

    def add_condition(self) -> Condition:
        condition = Condition(
            id=uuid.uuid4().hex,
            field=self.default_field,
            operator=Operator.EQUALS,
            value="",
            logical_operator=LogicalOperator.AND,
        )
        self._conditions.append(condition)
        self._changed()
        return condition.model_copy(deep=True)

    def remove_condition(self, condition_id: str) -> bool:
        index = self._index_of(condition_id)
        if index is None:
            return False
        del self._conditions[index]
        self._changed()
        return True

    def update_condition(self, condition_id: str, patch: Mapping[str, Any]) -> bool:
        index = self._index_of(condition_id)
        if index is None:
            return False
        updated = merged(self._conditions[index], patch)
        # The id is the lookup key; a patch may not move the condition to another identity.
        self._conditions[index] = updated.model_copy(update={"id": condition_id})
        self._changed()
        return True

    def move_condition(self, index: int, direction: Union[MoveDirection, str]) -> bool:
        direction = MoveDirection(direction)
        if not 0 <= index < len(self._conditions):
            return False
        if direction == MoveDirection.UP and index == 0:
            return False
        if direction == MoveDirection.DOWN and index == len(self._conditions) - 1:
            return False

        other = index - 1 if direction == MoveDirection.UP else index + 1
        items = self._conditions
        items[index], items[other] = items[other], items[index]
        self._changed()
        return True

    def _index_of(self, condition_id: str) -> Optional[int]:
        for i, condition in enumerate(self._conditions):
            if condition.id == condition_id:
                return i
        if self.strict:
            raise ConditionNotFoundError(condition_id)
        logger.debug("Ignoring edit for unknown condition %s", condition_id)
        return None

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self.conditions)


def _as_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def evaluate_condition(condition: Condition, data: Mapping[str, Any]) -> bool:
    if condition.field not in data or data[condition.field] is None:
        return False
    actual = data[condition.field]
    op = condition.operator

    if op in (Operator.EQUALS, Operator.NOT_EQUALS, Operator.GREATER_THAN, Operator.LESS_THAN):
        left_num = _as_decimal(actual)
        right_num = _as_decimal(condition.value)
        if left_num is not None and right_num is not None:
            left, right = left_num, right_num
        else:
            left, right = _as_text(actual), condition.value
        if op == Operator.EQUALS:
            return left == right
        if op == Operator.NOT_EQUALS:
            return left != right
        if op == Operator.GREATER_THAN:
            return left > right
        return left < right

    text = _as_text(actual)
    if op == Operator.CONTAINS:
        return condition.value in text
    if op == Operator.STARTS_WITH:
        return text.startswith(condition.value)
    return text.endswith(condition.value)


def evaluate_conditions(conditions: Iterable[Condition], data: Mapping[str, Any]) -> bool:
    """Fold the conditions left to right.

    Each condition's `logical_operator` joins it with the next one; there is no precedence, so
    `a OR b AND c` means `(a OR b) AND c`. An empty list matches everything.
    """
    items = list(conditions)
    if not items:
        return True

    result = evaluate_condition(items[0], data)
    for previous, current in zip(items, items[1:]):
        value = evaluate_condition(current, data)
        if (previous.logical_operator or LogicalOperator.AND) == LogicalOperator.OR:
            result = result or value
        else:
            result = result and value
    return result
