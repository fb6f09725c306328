from __future__ import annotations

import uuid
from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import Field

from .catalog import FieldCatalog
from .exceptions import ReportElementNotFoundError
from .models import CamelModel, Condition


class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"


class Position(CamelModel):
    x: int = 0
    y: int = 0


class Size(CamelModel):
    width: int = Field(default=6, ge=1)
    height: int = Field(default=2, ge=1)


class TableColumn(CamelModel):
    field: str
    header: str = ""


class _ElementBase(CamelModel):
    id: str
    title: str = ""
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)
    visible: bool = True

    def referenced_fields(self) -> List[str]:
        return []


class TableElement(_ElementBase):
    kind: Literal["table"] = "table"
    columns: List[TableColumn] = Field(default_factory=list)

    def referenced_fields(self) -> List[str]:
        return [c.field for c in self.columns]


class ChartElement(_ElementBase):
    kind: Literal["chart"] = "chart"
    chart_type: ChartType = ChartType.BAR
    x_axis: str = ""
    y_axis: str = ""

    def referenced_fields(self) -> List[str]:
        return [f for f in (self.x_axis, self.y_axis) if f]


class TextElement(_ElementBase):
    kind: Literal["text"] = "text"
    content: str = ""


class ImageElement(_ElementBase):
    kind: Literal["image"] = "image"
    url: str = ""


ReportElement = Annotated[
    Union[TableElement, ChartElement, TextElement, ImageElement],
    Field(discriminator="kind"),
]

_NEW_ELEMENTS = {
    "table": (TableElement, "Nova Tabela"),
    "chart": (ChartElement, "Novo Gráfico"),
    "text": (TextElement, "Novo Texto"),
    "image": (ImageElement, "Nova Imagem"),
}


class ReportLayout(CamelModel):
    name: str = ""
    description: str = ""
    elements: List[ReportElement] = Field(default_factory=list)
    filters: List[Condition] = Field(default_factory=list)

    def add_element(self, kind: str) -> ReportElement:
        try:
            element_cls, title = _NEW_ELEMENTS[kind]
        except KeyError:
            raise ValueError(f"Unknown report element kind: {kind}") from None
        # New elements go below everything already on the canvas.
        bottom = max((e.position.y + e.size.height for e in self.elements), default=0)
        element = element_cls(id=f"{kind}-{uuid.uuid4().hex[:8]}", title=title, position=Position(x=0, y=bottom))
        self.elements.append(element)
        return element

    def get_element(self, element_id: str) -> ReportElement:
        for element in self.elements:
            if element.id == element_id:
                return element
        raise ReportElementNotFoundError(element_id)

    def remove_element(self, element_id: str) -> None:
        element = self.get_element(element_id)
        self.elements.remove(element)

    def duplicate_element(self, element_id: str) -> ReportElement:
        source = self.get_element(element_id)
        copy = source.model_copy(
            deep=True,
            update={
                "id": f"{source.kind}-{uuid.uuid4().hex[:8]}",
                "position": Position(x=source.position.x + 1, y=source.position.y + 1),
            },
        )
        self.elements.append(copy)
        return copy

    def toggle_visibility(self, element_id: str) -> bool:
        element = self.get_element(element_id)
        element.visible = not element.visible
        return element.visible

    def unknown_fields(self, catalog: FieldCatalog) -> List[str]:
        """Field ids referenced by elements or filters that the catalog does not define."""
        seen: List[str] = []
        referenced = [f for e in self.elements for f in e.referenced_fields()]
        referenced += [c.field for c in self.filters]
        for field_id in referenced:
            if field_id not in catalog and field_id not in seen:
                seen.append(field_id)
        return seen
