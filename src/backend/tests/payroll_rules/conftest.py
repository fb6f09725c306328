import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import itertools

import pytest

from common.payroll_rules.catalog import default_catalog
from common.payroll_rules.models import CalculationConfig, Condition, Rule, Variable
from common.payroll_rules.store import RuleStore


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def make_condition():
    ids = itertools.count(1)

    def _make(
        *,
        field: str = "salary",
        operator: str = "=",
        value: str = "",
        logical_operator=None,
        condition_id: str | None = None,
    ) -> Condition:
        return Condition(
            id=condition_id or f"c{next(ids)}",
            field=field,
            operator=operator,
            value=value,
            logical_operator=logical_operator,
        )

    return _make


@pytest.fixture
def make_calculation():
    def _make(*, name: str = "Subsídio de Alimentação", decimal_places: int = 2, variables=None) -> CalculationConfig:
        return CalculationConfig(
            name=name,
            description="Valor diário multiplicado pelos dias trabalhados",
            formula="$daily_rate * $days",
            variables=variables
            if variables is not None
            else [Variable(id="var_1", name="daily_rate", field_id="salary", default_value="7.63")],
            decimal_places=decimal_places,
        )

    return _make


@pytest.fixture
def sample_conditions(make_condition):
    return [
        make_condition(field="salary", operator=">", value="1000", logical_operator="AND", condition_id="salary-cond"),
        make_condition(field="department", operator="=", value="Financeiro", condition_id="department-cond"),
    ]


@pytest.fixture
def make_rule(sample_conditions, make_calculation):
    def _make(**overrides) -> Rule:
        data = {
            "name": "Subsídio de Férias",
            "description": "Subsídio de férias baseado no tempo de serviço",
            "conditions": sample_conditions,
            "calculations": [make_calculation()],
            "priority": 2,
            "category": "Subsídios",
        }
        data.update(overrides)
        return Rule(**data)

    return _make


@pytest.fixture
def store(tmp_path):
    return RuleStore(tmp_path / "rules.json")
