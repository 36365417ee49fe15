"""
Pydantic schemas for templates, UI trees and API request/response models.
"""

from formstudio.schemas.template import (
    Cardinality,
    ElementKind,
    InputKind,
    ParsedTemplate,
    TemplateElement,
)
from formstudio.schemas.ui_schema import (
    ComponentKind,
    TemplateInfo,
    UINode,
    UITree,
)

__all__ = [
    "Cardinality",
    "ElementKind",
    "InputKind",
    "ParsedTemplate",
    "TemplateElement",
    "ComponentKind",
    "TemplateInfo",
    "UINode",
    "UITree",
]
