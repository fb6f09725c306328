from __future__ import annotations

import logging
import random
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import VariableNotFoundError
from .models import CalculationConfig, Variable, merged

logger = logging.getLogger(__name__)

STUB_RESULT_CEILING = 1000

ConfigCallback = Callable[[CalculationConfig], None]


def round_half_up(value: Decimal, decimal_places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def stub_result(config: CalculationConfig, rng: Optional[random.Random] = None) -> Decimal:
    """Placeholder for formula evaluation.

    Returns a pseudo-random amount in [0, 1000) rounded half-up to `config.decimal_places`; a draw that
    would round up to 1000 is kept one unit below it. The formula and variables are not read and
    `rounding_method` is not applied.
    """
    draw = (rng or random).random() * STUB_RESULT_CEILING
    amount = round_half_up(Decimal(repr(draw)), config.decimal_places)
    step = Decimal(1).scaleb(-config.decimal_places)
    return min(amount, Decimal(STUB_RESULT_CEILING) - step)


def resolve_variables(config: CalculationConfig, data: Mapping[str, Any]) -> Dict[str, str]:
    """Map each variable name to its bound field's value in `data`, or to its default value."""
    resolved: Dict[str, str] = {}
    for variable in config.variables:
        value = data.get(variable.field_id) if variable.field_id else None
        if value is None or value == "":
            resolved[variable.name] = variable.default_value
        else:
            resolved[variable.name] = str(value)
    return resolved


class CalculationConfigurator:
    def __init__(
        self,
        config: Optional[CalculationConfig] = None,
        *,
        on_save: Optional[ConfigCallback] = None,
        rng: Optional[random.Random] = None,
        strict: bool = False,
    ):
        self._config = config.model_copy(deep=True) if config is not None else CalculationConfig()
        self._on_save = on_save
        self._rng = rng
        self.strict = strict
        self.last_test_result: Optional[Decimal] = None

    @property
    def config(self) -> CalculationConfig:
        return self._config.model_copy(deep=True)

    def update(self, **changes: Any) -> None:
        self._config = merged(self._config, changes)

    def add_variable(self) -> Variable:
        variable = Variable(
            id=f"var_{uuid.uuid4().hex}",
            name=f"Variable {len(self._config.variables) + 1}",
            field_id="",
            default_value="0",
        )
        self._config.variables.append(variable)
        return variable.model_copy()

    def remove_variable(self, variable_id: str) -> bool:
        index = self._index_of(variable_id)
        if index is None:
            return False
        del self._config.variables[index]
        return True

    def update_variable(self, variable_id: str, field: str, value: Any) -> bool:
        index = self._index_of(variable_id)
        if index is None:
            return False
        if field == "id":
            raise ValueError("Variable id cannot be changed.")
        self._config.variables[index] = merged(self._config.variables[index], {field: value})
        return True

    def test_calculation(self) -> Decimal:
        self.last_test_result = stub_result(self._config, self._rng)
        logger.debug("Stub calculation for %r produced %s", self._config.name, self.last_test_result)
        return self.last_test_result

    def save(self) -> CalculationConfig:
        config = self.config
        if self._on_save is not None:
            self._on_save(config)
        return config

    def _index_of(self, variable_id: str) -> Optional[int]:
        for i, variable in enumerate(self._config.variables):
            if variable.id == variable_id:
                return i
        if self.strict:
            raise VariableNotFoundError(variable_id)
        logger.debug("Ignoring edit for unknown variable %s", variable_id)
        return None
