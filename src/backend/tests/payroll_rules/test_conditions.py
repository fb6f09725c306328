import pytest

from common.payroll_rules.conditions import ConditionBuilder, evaluate_condition, evaluate_conditions
from common.payroll_rules.exceptions import ConditionNotFoundError
from common.payroll_rules.models import LogicalOperator, Operator


def test_add_condition_appends_default_clause(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    added = builder.add_condition()
    conditions = builder.conditions
    assert len(conditions) == 3
    assert conditions[-1].id == added.id
    assert added.value == ""
    assert added.logical_operator == LogicalOperator.AND
    assert added.operator == Operator.EQUALS
    assert added.field == "salary"


def test_add_condition_ids_are_unique():
    builder = ConditionBuilder()
    ids = {builder.add_condition().id for _ in range(5)}
    assert len(ids) == 5


def test_move_down_swaps_first_two_conditions(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    assert builder.move_condition(0, "down") is True
    assert [c.id for c in builder.conditions] == ["department-cond", "salary-cond"]


def test_move_up_swaps_with_previous(make_condition):
    builder = ConditionBuilder([make_condition(condition_id=i) for i in ("a", "b", "c")])
    builder.move_condition(2, "up")
    assert [c.id for c in builder.conditions] == ["a", "c", "b"]


@pytest.mark.parametrize("index,direction", [(0, "up"), (1, "down"), (5, "down"), (-1, "up")])
def test_move_is_noop_at_boundaries(sample_conditions, index, direction):
    calls = []
    builder = ConditionBuilder(sample_conditions, on_change=calls.append)
    before = builder.conditions
    assert builder.move_condition(index, direction) is False
    assert builder.conditions == before
    assert calls == []


def test_remove_condition(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    assert builder.remove_condition("salary-cond") is True
    assert [c.id for c in builder.conditions] == ["department-cond"]


def test_remove_unknown_id_leaves_list_unchanged(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    before = builder.conditions
    assert builder.remove_condition("missing") is False
    assert builder.conditions == before


def test_update_condition_merges_patch(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    assert builder.update_condition("department-cond", {"value": "Recursos Humanos", "operator": "contains"})
    updated = builder.conditions[1]
    assert updated.value == "Recursos Humanos"
    assert updated.operator == Operator.CONTAINS
    assert updated.field == "department"


def test_update_condition_keeps_id(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    builder.update_condition("salary-cond", {"id": "other", "value": "2000"})
    assert builder.conditions[0].id == "salary-cond"
    assert builder.conditions[0].value == "2000"


def test_update_unknown_id_is_noop(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    before = builder.conditions
    assert builder.update_condition("missing", {"value": "1"}) is False
    assert builder.conditions == before


def test_strict_builder_raises_on_unknown_id(sample_conditions):
    builder = ConditionBuilder(sample_conditions, strict=True)
    with pytest.raises(ConditionNotFoundError):
        builder.remove_condition("missing")
    with pytest.raises(ConditionNotFoundError):
        builder.update_condition("missing", {"value": "1"})


def test_on_change_receives_copies(sample_conditions):
    seen = []
    builder = ConditionBuilder(sample_conditions, on_change=seen.append)
    builder.add_condition()
    assert len(seen) == 1 and len(seen[0]) == 3
    seen[0][0].value = "tampered"
    assert builder.conditions[0].value == "1000"


def test_builder_does_not_alias_input(sample_conditions):
    builder = ConditionBuilder(sample_conditions)
    builder.update_condition("salary-cond", {"value": "5000"})
    assert sample_conditions[0].value == "1000"


def test_evaluate_numeric_and_text_clauses(make_condition):
    data = {"salary": 1200, "department": "Financeiro", "position": "Técnico Superior"}
    assert evaluate_condition(make_condition(field="salary", operator=">", value="1000"), data)
    assert not evaluate_condition(make_condition(field="salary", operator="<", value="1000"), data)
    assert evaluate_condition(make_condition(field="salary", operator="=", value="1200.00"), data)
    assert evaluate_condition(make_condition(field="department", operator="!=", value="Vendas"), data)
    assert evaluate_condition(make_condition(field="position", operator="startsWith", value="Técnico"), data)
    assert evaluate_condition(make_condition(field="position", operator="endsWith", value="Superior"), data)
    assert evaluate_condition(make_condition(field="position", operator="contains", value="nico S"), data)
    assert not evaluate_condition(make_condition(field="position", operator="contains", value="técnico"), data)


def test_evaluate_missing_field_is_false(make_condition):
    assert not evaluate_condition(make_condition(field="age", operator="!=", value="30"), {})


def test_evaluate_conditions_scenario(sample_conditions):
    assert evaluate_conditions(sample_conditions, {"salary": "1500", "department": "Financeiro"})
    assert not evaluate_conditions(sample_conditions, {"salary": "900", "department": "Financeiro"})


def test_evaluate_conditions_folds_left_to_right(make_condition):
    # (true OR false) AND false -> false, whereas precedence would give true OR (false AND false) -> true
    conditions = [
        make_condition(field="a", value="1", logical_operator="OR"),
        make_condition(field="a", value="2", logical_operator="AND"),
        make_condition(field="a", value="3"),
    ]
    assert evaluate_conditions(conditions, {"a": "1"}) is False


def test_last_logical_operator_is_ignored(make_condition):
    conditions = [make_condition(field="a", value="1", logical_operator="OR")]
    assert evaluate_conditions(conditions, {"a": "2"}) is False


def test_empty_condition_list_matches():
    assert evaluate_conditions([], {"salary": 1}) is True
