from __future__ import annotations

import argparse
import json
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import FieldNotFoundError
from .models import CatalogField, FieldCategory, FieldType


class FieldCatalog:
    """Registry of typed fields usable in rule conditions, variables and report columns."""

    def __init__(self, fields: Optional[Iterable[CatalogField]] = None):
        self._fields: Dict[str, CatalogField] = {}
        for field in fields or ():
            self.register(field)

    def register(self, field: CatalogField) -> None:
        if not field.id:
            raise ValueError("Field missing id")
        if field.id in self._fields:
            raise ValueError(f"Duplicate field id registered: {field.id}")
        self._fields[field.id] = field

    def get(self, field_id: str) -> CatalogField:
        try:
            return self._fields[field_id]
        except KeyError:
            raise FieldNotFoundError(field_id) from None

    def ids(self) -> Iterable[str]:
        return self._fields.keys()

    def all(self) -> List[CatalogField]:
        return list(self._fields.values())

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def list_categories(self) -> List[FieldCategory]:
        grouped: Dict[str, List[CatalogField]] = {}
        for field in self._fields.values():
            grouped.setdefault(field.category, []).append(field)
        return [FieldCategory(name=name, fields=fields) for name, fields in grouped.items()]

    def search(self, query: str) -> List[CatalogField]:
        needle = (query or "").strip().lower()
        if not needle:
            return self.all()
        return [
            field
            for field in self._fields.values()
            if needle in field.name.lower() or needle in field.description.lower()
        ]

    def create_custom_field(self, **attrs: Any) -> CatalogField:
        raise NotImplementedError("Custom fields are not supported yet.")


DEFAULT_FIELDS = (
    CatalogField(
        id="salary",
        name="Salário Base",
        category="Remuneração",
        type=FieldType.CURRENCY,
        description="Salário base mensal do funcionário",
    ),
    CatalogField(
        id="bonus",
        name="Bónus",
        category="Remuneração",
        type=FieldType.CURRENCY,
        description="Bónus de produtividade no período",
    ),
    CatalogField(
        id="hours",
        name="Horas Trabalhadas",
        category="Tempo",
        type=FieldType.NUMBER,
        description="Horas normais registadas no período",
    ),
    CatalogField(
        id="overtime",
        name="Horas Extra",
        category="Tempo",
        type=FieldType.NUMBER,
        description="Horas extraordinárias registadas no período",
    ),
    CatalogField(
        id="yearsOfService",
        name="Anos de Serviço",
        category="Tempo",
        type=FieldType.NUMBER,
        description="Antiguidade na empresa em anos completos",
    ),
    CatalogField(
        id="age",
        name="Idade",
        category="Funcionário",
        type=FieldType.NUMBER,
        description="Idade do funcionário",
    ),
    CatalogField(
        id="department",
        name="Departamento",
        category="Funcionário",
        type=FieldType.TEXT,
        description="Departamento a que o funcionário pertence",
    ),
    CatalogField(
        id="position",
        name="Cargo",
        category="Funcionário",
        type=FieldType.TEXT,
        description="Cargo atual do funcionário",
    ),
    CatalogField(
        id="contractType",
        name="Tipo de Contrato",
        category="Contrato",
        type=FieldType.TEXT,
        description="Tipo de contrato do funcionário",
    ),
    CatalogField(
        id="contractEndDate",
        name="Data de Fim de Contrato",
        category="Contrato",
        type=FieldType.DATE,
        description="Data de fim de contrato (apenas para contratos a termo)",
    ),
    CatalogField(
        id="hasDependents",
        name="Tem Dependentes",
        category="Contrato",
        type=FieldType.BOOLEAN,
        description="Indica se existem dependentes para efeitos fiscais",
    ),
    CatalogField(
        id="tax",
        name="Taxa IRS",
        category="Impostos",
        type=FieldType.NUMBER,
        description="Taxa de retenção na fonte de IRS",
    ),
    CatalogField(
        id="soc_sec",
        name="Segurança Social",
        category="Impostos",
        type=FieldType.NUMBER,
        description="Taxa contributiva para a Segurança Social",
    ),
)


def default_catalog() -> FieldCatalog:
    return FieldCatalog(DEFAULT_FIELDS)


def _dump_json(catalog: list[dict[str, Any]]) -> str:
    return json.dumps(catalog, indent=2, sort_keys=True, ensure_ascii=False)


def _dump_yaml(catalog: list[dict[str, Any]]) -> str:
    import yaml

    return yaml.safe_dump(catalog, sort_keys=True, allow_unicode=True)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Print the field catalog grouped by category.")
    parser.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="yaml",
        help="Output format (default: yaml).",
    )
    parser.add_argument("--search", default="", help="Only include fields matching this text.")
    args = parser.parse_args(argv)

    catalog = default_catalog()
    if args.search:
        catalog = FieldCatalog(catalog.search(args.search))
    dumped = [c.to_dict() for c in catalog.list_categories()]
    if args.format == "json":
        print(_dump_json(dumped))
    else:
        print(_dump_yaml(dumped))


if __name__ == "__main__":
    main()
