from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    CURRENCY = "currency"


class Operator(str, Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"


# Spellings stored by older editor versions.
OPERATOR_ALIASES: Dict[str, Operator] = {
    "equals": Operator.EQUALS,
    "notEquals": Operator.NOT_EQUALS,
    "greaterThan": Operator.GREATER_THAN,
    "lessThan": Operator.LESS_THAN,
}


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class RoundingMethod(str, Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"
    NEAREST = "nearest"


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class CamelModel(BaseModel):
    """Base for every serializable entity.

    Attributes are snake_case in Python; the plain-object form (`to_dict`) uses camelCase keys and both
    spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]):
        return cls.model_validate(dict(raw))


M = TypeVar("M", bound=BaseModel)


def merged(model: M, patch: Mapping[str, Any]) -> M:
    """Return a validated copy of `model` with `patch` applied.

    Patch keys may be attribute names or their camelCase aliases.
    """
    fields = type(model).model_fields
    by_alias = {info.alias or to_camel(name): name for name, info in fields.items()}
    data = model.model_dump()
    for key, value in patch.items():
        name = key if key in fields else by_alias.get(key)
        if name is None:
            raise ValueError(f"Unknown attribute for {type(model).__name__}: {key}")
        data[name] = value
    return type(model).model_validate(data)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class CatalogField(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    category: str
    type: FieldType
    description: str = ""


class FieldCategory(CamelModel):
    name: str
    fields: List[CatalogField] = Field(default_factory=list)


class Condition(CamelModel):
    id: str
    field: str
    operator: Operator = Operator.EQUALS
    value: str = ""
    # Connects this condition with the next one; ignored on the last condition.
    logical_operator: Optional[LogicalOperator] = None

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        if isinstance(value, str) and value in OPERATOR_ALIASES:
            return OPERATOR_ALIASES[value]
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> str:
        return _as_text(value)


class Variable(CamelModel):
    id: str
    name: str
    field_id: str = ""
    default_value: str = "0"

    @field_validator("default_value", mode="before")
    @classmethod
    def _coerce_default(cls, value: Any) -> str:
        return _as_text(value)


class CalculationConfig(CamelModel):
    name: str = ""
    description: str = ""
    # Free text; `$name` tokens refer to variables. Not evaluated anywhere yet.
    formula: str = ""
    variables: List[Variable] = Field(default_factory=list)
    rounding_method: RoundingMethod = RoundingMethod.NONE
    decimal_places: int = Field(default=2, ge=0)
    is_active: bool = True


class Rule(CamelModel):
    id: Optional[str] = None
    name: str = ""
    description: str = ""
    conditions: List[Condition] = Field(default_factory=list)
    calculations: Union[List[CalculationConfig], CalculationConfig, None] = Field(default_factory=list)
    is_active: bool = True
    # 1 is the highest priority; lower numbers run first.
    priority: int = Field(default=1, ge=1)
    category: str = "payment"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None

    def calculation_list(self) -> List[CalculationConfig]:
        if self.calculations is None:
            return []
        if isinstance(self.calculations, CalculationConfig):
            return [self.calculations]
        return list(self.calculations)


class RuleTestResult(CamelModel):
    success: bool
    result: Optional[Dict[str, float]] = None
    error: Optional[str] = None


class RuleTestCase(CamelModel):
    rule_id: Optional[str] = None
    test_data: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, float]] = None
    timestamp: datetime
