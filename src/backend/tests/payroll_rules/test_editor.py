import asyncio

import pytest

from common.payroll_rules.editor import (
    CALCULATIONS_REQUIRED,
    CONDITIONS_REQUIRED,
    DESCRIPTION_REQUIRED,
    NAME_REQUIRED,
    EditorState,
    RuleEditor,
    validate_rule,
)
from common.payroll_rules.models import CalculationConfig, Rule


def test_valid_rule_has_no_errors(make_rule):
    assert validate_rule(make_rule()) == {}


@pytest.mark.parametrize(
    "overrides,expected",
    [
        ({"name": "  "}, {"name"}),
        ({"description": ""}, {"description"}),
        ({"conditions": []}, {"conditions"}),
        ({"calculations": []}, {"calculations"}),
        ({"calculations": None}, {"calculations"}),
        ({"name": "", "conditions": []}, {"name", "conditions"}),
    ],
)
def test_error_keys_are_exactly_the_violated_invariants(make_rule, overrides, expected):
    assert set(validate_rule(make_rule(**overrides))) == expected


def test_single_calculation_object_counts_as_present(make_rule, make_calculation):
    assert validate_rule(make_rule(calculations=make_calculation())) == {}


def test_empty_rule_save_reports_all_errors_and_skips_persistence():
    saved = []
    editor = RuleEditor(Rule(name=""), on_save=saved.append)
    assert asyncio.run(editor.save()) is False
    assert editor.errors == {
        "name": NAME_REQUIRED,
        "description": DESCRIPTION_REQUIRED,
        "conditions": CONDITIONS_REQUIRED,
        "calculations": CALCULATIONS_REQUIRED,
    }
    assert editor.state == EditorState.INVALID
    assert saved == []


def test_valid_rule_is_persisted_exactly_once(make_rule):
    saved = []
    rule = make_rule()
    editor = RuleEditor(rule, on_save=saved.append)
    assert asyncio.run(editor.save()) is True
    assert saved == [rule]
    assert saved[0] is not rule
    assert editor.errors == {}
    assert editor.state == EditorState.VALID
    assert editor.save_success is True


def test_async_persistence_callback_is_awaited(make_rule):
    saved = []

    async def persist(rule):
        await asyncio.sleep(0)
        saved.append(rule.name)

    editor = RuleEditor(make_rule(), on_save=persist)
    assert asyncio.run(editor.save()) is True
    assert saved == ["Subsídio de Férias"]
    assert editor.is_saving is False


def test_persistence_failure_is_reported(make_rule):
    def persist(rule):
        raise OSError("disk full")

    editor = RuleEditor(make_rule(), on_save=persist)
    assert asyncio.run(editor.save()) is False
    assert editor.save_error == "disk full"
    assert editor.save_success is False
    assert editor.is_saving is False


def test_editing_a_field_clears_its_error():
    editor = RuleEditor(Rule())
    editor.validate()
    assert "name" in editor.errors
    editor.set_field("name", "Bónus de Produtividade")
    assert "name" not in editor.errors
    assert "description" in editor.errors
    assert editor.state == EditorState.DRAFT


def test_set_field_accepts_aliases():
    editor = RuleEditor(Rule())
    editor.set_field("isActive", False)
    editor.set_field("priority", 3)
    assert editor.rule.is_active is False
    assert editor.rule.priority == 3


def test_condition_builder_edits_flow_into_draft():
    editor = RuleEditor(Rule())
    editor.validate()
    builder = editor.condition_builder()
    builder.add_condition()
    assert len(editor.rule.conditions) == 1
    assert "conditions" not in editor.errors


def test_calculation_configurator_appends_and_replaces():
    editor = RuleEditor(Rule())
    configurator = editor.calculation_configurator()
    configurator.update(name="Subsídio de Natal")
    configurator.save()
    assert [c.name for c in editor.rule.calculation_list()] == ["Subsídio de Natal"]

    configurator = editor.calculation_configurator(0)
    configurator.update(decimal_places=0)
    configurator.save()
    calcs = editor.rule.calculation_list()
    assert len(calcs) == 1
    assert calcs[0].decimal_places == 0


def test_editor_works_on_a_copy(make_rule):
    rule = make_rule()
    editor = RuleEditor(rule)
    editor.set_calculations(CalculationConfig(name="Única"))
    assert isinstance(rule.calculations, list)
    assert editor.rule.calculation_list()[0].name == "Única"


def test_save_without_callback_succeeds(make_rule):
    editor = RuleEditor(make_rule())
    assert asyncio.run(editor.save()) is True


def test_invalid_draft_is_not_tested():
    calls = []
    editor = RuleEditor(Rule(name="Sem descrição"))
    assert asyncio.run(editor.test(calls.append)) is None
    assert calls == []
    assert set(editor.errors) == {"description", "conditions", "calculations"}
    assert editor.state == EditorState.INVALID


def test_valid_draft_runs_through_the_tester(make_rule):
    received = []

    def on_test(data):
        received.append(data)
        return {"success": True, "result": {"Subsídio de Alimentação": 42.0}}

    editor = RuleEditor(make_rule())
    result = asyncio.run(editor.test(on_test, {"salary": 1500}))
    assert result.success is True
    assert result.result == {"Subsídio de Alimentação": 42.0}
    assert received == [{"salary": 1500}]
    assert editor.state == EditorState.VALID


def test_valid_draft_defaults_to_preview(make_rule):
    editor = RuleEditor(make_rule())
    result = asyncio.run(editor.test(test_data={"salary": 1500, "department": "Financeiro"}))
    assert result.success is True
    assert list(result.result) == ["Subsídio de Alimentação"]
