"""
Pydantic models for UI tree representation.

These models define the structure of the render tree sent to the frontend.
Each node names a component kind; the frontend maps kinds to widgets.
"""

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ComponentKind(StrEnum):
    """Components a renderer must provide."""

    FORM_SECTION = "FormSection"
    TEXT_INPUT = "TextInput"
    NUMBER_INPUT = "NumberInput"
    URL_INPUT = "URLInput"
    DATE_INPUT = "DateInput"
    BOOLEAN_INPUT = "BooleanInput"
    FILE_INPUT = "FileInput"
    SELECT_INPUT = "SelectInput"
    MULTI_LANGUAGE_INPUT = "MultiLanguageInput"
    RANGE_INPUT = "RangeInput"
    REFERENCE_INPUT = "ReferenceInput"
    SMC_CONTAINER = "SMCContainer"
    ARRAY_CONTAINER = "ArrayContainer"
    READ_ONLY_VALUE = "ReadOnlyValue"


class UINode(BaseModel):
    """
    One renderable node.

    Nodes without a ``path`` prop are synthetic (the form root).
    """

    component: ComponentKind
    props: dict[str, Any] = Field(default_factory=dict)
    children: list["UINode"] | None = None

    @property
    def path_key(self) -> str | None:
        path = self.props.get("path")
        if path is None:
            return None
        return ".".join(path)


UINode.model_rebuild()


class UITreeMetadata(BaseModel):
    templateId: str
    templateName: str
    elementCount: int


class UITree(BaseModel):
    """Complete render tree for one template."""

    root: UINode
    metadata: UITreeMetadata


class TemplateInfo(BaseModel):
    """Information about an available template."""

    id: str
    idShort: str
    name: str
    version: str = "1"
    revision: str = "0"
    semanticId: str = ""
    path: str
    description: str = ""
    category: str | None = None
    url: str | None = None


class TemplateListResponse(BaseModel):
    """Response for template listing endpoint."""

    templates: list[TemplateInfo]
    total: int
    cached: bool = False


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    version: str
    details: dict[str, Any] | None = None
