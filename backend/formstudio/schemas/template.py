"""
Pydantic models for the parsed template element tree.

A ParsedTemplate is built once per template document and treated as
immutable afterwards; several forms may share it.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formstudio.utils.paths import is_index_segment, split_path_key, strip_index_segments_from_key


class ElementKind(StrEnum):
    """AAS submodel element kinds understood by the form pipeline."""

    PROPERTY = "Property"
    MULTI_LANGUAGE_PROPERTY = "MultiLanguageProperty"
    RANGE = "Range"
    FILE = "File"
    BLOB = "Blob"
    REFERENCE_ELEMENT = "ReferenceElement"
    COLLECTION = "SubmodelElementCollection"
    LIST = "SubmodelElementList"
    ENTITY = "Entity"
    OPERATION = "Operation"
    CAPABILITY = "Capability"
    BASIC_EVENT_ELEMENT = "BasicEventElement"
    RELATIONSHIP_ELEMENT = "RelationshipElement"
    ANNOTATED_RELATIONSHIP_ELEMENT = "AnnotatedRelationshipElement"

    @property
    def is_grouping(self) -> bool:
        return self in GROUPING_KINDS

    @property
    def is_read_only(self) -> bool:
        return self in READ_ONLY_KINDS


GROUPING_KINDS = frozenset(
    {ElementKind.COLLECTION, ElementKind.LIST, ElementKind.ENTITY}
)

READ_ONLY_KINDS = frozenset(
    {
        ElementKind.OPERATION,
        ElementKind.CAPABILITY,
        ElementKind.BASIC_EVENT_ELEMENT,
        ElementKind.RELATIONSHIP_ELEMENT,
        ElementKind.ANNOTATED_RELATIONSHIP_ELEMENT,
    }
)


class Cardinality(StrEnum):
    """SMT cardinality as declared by the SMT/Cardinality qualifier."""

    ONE = "One"
    ZERO_TO_ONE = "ZeroToOne"
    ONE_TO_MANY = "OneToMany"
    ZERO_TO_MANY = "ZeroToMany"

    @property
    def is_required(self) -> bool:
        return self in (Cardinality.ONE, Cardinality.ONE_TO_MANY)

    @property
    def is_repeatable(self) -> bool:
        return self in (Cardinality.ONE_TO_MANY, Cardinality.ZERO_TO_MANY)


class InputKind(StrEnum):
    """Rendering input kind derived from element kind and value type."""

    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    URL = "url"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    BOOLEAN = "boolean"
    FILE = "file"
    BLOB = "blob"
    SELECT = "select"
    MULTILANGUAGE = "multilanguage"
    RANGE = "range"
    REFERENCE = "reference"
    COLLECTION = "collection"
    LIST = "list"
    ENTITY = "entity"
    OPERATION = "operation"
    CAPABILITY = "capability"
    EVENT = "event"
    RELATIONSHIP = "relationship"
    READONLY = "readonly"


class CamelModel(BaseModel):
    """Base model serializing field names in camelCase for API clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ElementConstraints(CamelModel):
    """Value constraints declared by SMT qualifiers or the element itself."""

    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    min: int | float | None = None
    max: int | float | None = None
    allowed_values: list[str] | None = None
    content_type: str | None = None


class TemplateElement(CamelModel):
    """
    One field or group defined by a template.

    ``path`` is the chain of idShorts from the submodel root. Repeatable
    elements appear once; array indices only exist in form value keys. The
    item template of a declared list shares the path of its list.
    """

    id_short: str
    path: tuple[str, ...]
    model_type: str
    kind: ElementKind | None = None
    value_type: str | None = None
    input_kind: InputKind = InputKind.TEXT
    cardinality: Cardinality = Cardinality.ZERO_TO_ONE
    is_required: bool = False
    is_array: bool = False
    semantic_id: str | None = None
    description: dict[str, str] = Field(default_factory=dict)
    display_name: dict[str, str] = Field(default_factory=dict)
    qualifiers: dict[str, str] = Field(default_factory=dict)
    constraints: ElementConstraints | None = None
    example_value: str | None = None
    children: tuple["TemplateElement", ...] | None = None
    list_element_type: str | None = None
    order_relevant: bool | None = None

    # Raw template node without its child lists, copied through on export
    source: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    @property
    def path_key(self) -> str:
        return ".".join(self.path)

    @property
    def is_grouping(self) -> bool:
        return self.kind is not None and self.kind.is_grouping

    @property
    def is_list_like(self) -> bool:
        """Elements whose values are addressed per array index."""
        return self.is_array or self.kind is ElementKind.LIST

    @property
    def item_template(self) -> "TemplateElement | None":
        """Item template of an ordered list (its first declared child)."""
        if self.kind is not ElementKind.LIST or not self.children:
            return None
        return self.children[0]

    def label(self, language: str = "en") -> str:
        """Display label: displayName in the language, else formatted idShort."""
        for lang in (language, "en", "de"):
            if self.display_name.get(lang):
                return self.display_name[lang]
        return format_id_short(self.id_short)


TemplateElement.model_rebuild()


class TemplateMetadata(CamelModel):
    """Identification of the template submodel."""

    id: str
    id_short: str
    semantic_id: str = ""
    version: str = "1"
    revision: str = "0"
    template_id: str = ""
    description: dict[str, str] = Field(default_factory=dict)


class ParseIssue(CamelModel):
    """Non-fatal problem found while parsing a template."""

    path: str
    message: str
    severity: str = "warning"


class ParsedTemplate(CamelModel):
    """Complete parse result for one template document."""

    metadata: TemplateMetadata
    elements: tuple[TemplateElement, ...]
    flat_elements: dict[str, TemplateElement] = Field(default_factory=dict, exclude=True)
    issues: list[ParseIssue] = Field(default_factory=list)

    # Raw submodel without submodelElements
    source: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    def find_element(self, path_key: str) -> TemplateElement | None:
        return self.flat_elements.get(path_key)

    def find_value_element(self, key: str) -> TemplateElement | None:
        """
        Element a concrete value key belongs to.

        Trailing index segments beneath a declared list select its item template,
        so ``Readings.0`` resolves to the item of the ``Readings`` list.
        """
        element = self.find_element(strip_index_segments_from_key(key))
        for segment in reversed(split_path_key(key)):
            if element is None or not is_index_segment(segment):
                break
            if element.item_template is not None:
                element = element.item_template
        return element


def format_id_short(id_short: str) -> str:
    """Turn ``ManufacturerName`` or ``serial_number`` into readable text."""
    spaced = ""
    for i, char in enumerate(id_short):
        if char.isupper() and i > 0 and not id_short[i - 1].isupper():
            spaced += " "
        spaced += " " if char == "_" else char
    spaced = " ".join(spaced.split())
    return spaced[:1].upper() + spaced[1:]
