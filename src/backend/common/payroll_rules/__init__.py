"""Rule, condition and calculation configuration for payroll processing.

This package contains only the configuration model and its editing sessions:
- Rules are built from catalog fields, condition lists and calculation configs.
- Evaluation of a rule against real payroll data is supplied by the caller.
"""

from .catalog import FieldCatalog, default_catalog
from .calculations import CalculationConfigurator
from .conditions import ConditionBuilder, evaluate_conditions
from .editor import EditorState, RuleEditor, validate_rule
from .models import (
    CalculationConfig,
    CatalogField,
    Condition,
    FieldCategory,
    FieldType,
    LogicalOperator,
    Operator,
    RoundingMethod,
    Rule,
    RuleTestCase,
    RuleTestResult,
    Variable,
)
from .reports import ReportLayout
from .store import RuleStore
from .tester import RuleTester, preview_evaluator
