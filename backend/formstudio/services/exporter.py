"""
Exporter Service for form-to-AAS reconstitution.

Walks the parsed template tree again, reading the flat value map, and builds
an AAS V3.0 JSON Submodel instance. Template metadata (semantic ids,
descriptions, display names) is copied through unchanged; only values and
list/collection membership vary per export.
"""

import copy
import logging
import uuid
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP
from typing import Any

from pydantic import BaseModel, Field

from formstudio.schemas.template import CamelModel, ElementKind, ParsedTemplate, TemplateElement
from formstudio.schemas.values import (
    BlobValue,
    FileValue,
    MultiLanguageValue,
    RangeValue,
    ReferenceValue,
    ScalarValue,
    parse_value,
)
from formstudio.services.conformance import SchemaValidator, SchemaViolation
from formstudio.services.validation import parse_number
from formstudio.utils.aas_json import external_reference
from formstudio.utils.paths import discover_indices, has_value_with_prefix, scope_values
from formstudio.utils.xsd_mapping import is_integer_type

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_ENTITY_TYPE = "CoManagedEntity"

# Template-only fields never written to an instance
_TEMPLATE_ONLY_KEYS = frozenset({"qualifiers", "kind"})
# Fields rebuilt from form values
_VALUE_KEYS = frozenset({"value", "min", "max", "statements"})


class ExportOptions(CamelModel):
    """Options controlling one export."""

    include_empty_optional: bool = False
    generate_new_id: bool = False
    validate_schema: bool = True


class ExportResult(BaseModel):
    """Exported submodel with non-fatal warnings and schema violations."""

    submodel: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)
    violations: list[SchemaViolation] = Field(default_factory=list)

    @property
    def is_conformant(self) -> bool:
        return not self.violations


def generate_id(id_short: str) -> str:
    return f"urn:aas:{id_short}:{uuid.uuid4()}"


def format_scalar(value: Any, value_type: str | None) -> str:
    """
    Format a value in the canonical string form of its XSD type.

    Booleans become ``true``/``false``, integer types are rounded and dates
    are written as calendar dates.
    """
    if isinstance(value, bool):
        return "true" if value else "false"

    if is_integer_type(value_type) and not isinstance(value, (date, time)):
        number = parse_number(value)
        if number is not None:
            return format(number.to_integral_value(rounding=ROUND_HALF_UP), "f")

    if isinstance(value, datetime):
        if value_type == "xs:date":
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()

    return str(value)


def _prune(node: dict[str, Any]) -> dict[str, Any]:
    """Drop absent and empty fields."""
    return {k: v for k, v in node.items() if v is not None and v != "" and v != [] and v != {}}


class _ExportContext:
    def __init__(self, options: ExportOptions):
        self.options = options
        self.warnings: list[str] = []

    @property
    def include_empty(self) -> bool:
        return self.options.include_empty_optional


class SubmodelExporter:
    """
    Service for exporting form values to AAS Submodel instances.

    Every repeatable element is exported with the same algorithm: discover
    the live indices under its path, scope the values to each index, and
    convert the element once per index.
    """

    def __init__(self, schema_validator: SchemaValidator | None = None):
        self.schema_validator = schema_validator or SchemaValidator()

    def export(
        self,
        template: ParsedTemplate,
        values: dict[str, Any],
        options: ExportOptions | None = None,
    ) -> ExportResult:
        """
        Export form values as a Submodel instance.

        Args:
            template: Parsed template the values belong to
            values: Flat path-keyed value map
            options: Export options

        Returns:
            ExportResult with the submodel, warnings and schema violations
        """
        options = options or ExportOptions()
        ctx = _ExportContext(options)
        metadata = template.metadata

        submodel_id = metadata.id
        if options.generate_new_id or not submodel_id:
            if not submodel_id:
                ctx.warnings.append("Template has no id, generated a new one")
            submodel_id = generate_id(metadata.id_short)

        header = {
            k: copy.deepcopy(v)
            for k, v in template.source.items()
            if k not in _TEMPLATE_ONLY_KEYS
        }
        header.update(
            modelType="Submodel",
            id=submodel_id,
            idShort=metadata.id_short,
            kind="Instance",
        )

        elements = []
        for element in template.elements:
            converted = self._convert(element, values, ctx)
            if converted is not None:
                elements.append(converted)
        header["submodelElements"] = elements
        submodel = _prune(header)

        violations: list[SchemaViolation] = []
        if options.validate_schema:
            violations = self.schema_validator.check(submodel)

        logger.info(
            f"Exported {metadata.id_short}: {len(elements)} top-level element(s), "
            f"{len(ctx.warnings)} warning(s), {len(violations)} schema violation(s)"
        )
        return ExportResult(submodel=submodel, warnings=ctx.warnings, violations=violations)

    def _convert(
        self,
        element: TemplateElement,
        values: dict[str, Any],
        ctx: _ExportContext,
        list_item: bool = False,
    ) -> dict[str, Any] | None:
        """Convert one element, or one item of a repeatable element."""
        if element.kind is ElementKind.LIST or (element.is_array and not list_item):
            return self._convert_list(element, values, ctx)

        match element.kind:
            case None:
                ctx.warnings.append(
                    f"Unsupported element type: {element.model_type} at {element.path_key}"
                )
                return None
            case ElementKind.COLLECTION | ElementKind.ENTITY:
                return self._convert_group(element, values, ctx, list_item)
            case (
                ElementKind.OPERATION
                | ElementKind.CAPABILITY
                | ElementKind.BASIC_EVENT_ELEMENT
                | ElementKind.RELATIONSHIP_ELEMENT
                | ElementKind.ANNOTATED_RELATIONSHIP_ELEMENT
            ):
                if not (element.is_required or ctx.include_empty):
                    return None
                return {
                    k: copy.deepcopy(v)
                    for k, v in element.source.items()
                    if k not in _TEMPLATE_ONLY_KEYS
                }
            case _:
                return self._convert_leaf(element, values, ctx, list_item)

    def _base(self, element: TemplateElement) -> dict[str, Any]:
        """Template metadata of an element, without template-only and value fields."""
        return {
            k: copy.deepcopy(v)
            for k, v in element.source.items()
            if k not in _TEMPLATE_ONLY_KEYS and k not in _VALUE_KEYS
        }

    def _convert_leaf(
        self,
        element: TemplateElement,
        values: dict[str, Any],
        ctx: _ExportContext,
        list_item: bool,
    ) -> dict[str, Any] | None:
        try:
            typed = parse_value(element, values.get(element.path_key))
        except ValueError as e:
            ctx.warnings.append(f"Invalid value at {element.path_key}: {e}")
            typed = None

        if typed is None:
            if list_item:
                return None
            if not element.is_required and not ctx.include_empty:
                return None

        node = self._base(element)
        node["modelType"] = element.kind.value

        match element.kind:
            case ElementKind.PROPERTY | ElementKind.RANGE:
                node["valueType"] = element.value_type
            case ElementKind.FILE | ElementKind.BLOB:
                declared = element.constraints.content_type if element.constraints else None
                node["contentType"] = declared or DEFAULT_CONTENT_TYPE
            case _:
                pass

        match typed:
            case None:
                pass
            case ScalarValue(value=value) if element.kind is ElementKind.PROPERTY:
                node["value"] = format_scalar(value, element.value_type)
            case MultiLanguageValue(entries=entries):
                node["value"] = [entry.model_dump() for entry in entries]
            case RangeValue(min=low, max=high):
                node["min"] = None if low is None else format_scalar(low, element.value_type)
                node["max"] = None if high is None else format_scalar(high, element.value_type)
            case FileValue(path=path, content_type=content_type) | BlobValue(
                data=path, content_type=content_type
            ):
                node["value"] = path
                if content_type:
                    node["contentType"] = content_type
            case ReferenceValue(value=reference):
                node["value"] = external_reference(reference)
            case _:
                ctx.warnings.append(
                    f"Value at {element.path_key} does not fit {element.model_type}"
                )

        return _prune(node)

    def _convert_group(
        self,
        element: TemplateElement,
        values: dict[str, Any],
        ctx: _ExportContext,
        list_item: bool,
    ) -> dict[str, Any] | None:
        required = element.is_required and not list_item
        if (
            not ctx.include_empty
            and not required
            and not has_value_with_prefix(values, element.path_key)
        ):
            return None

        children = []
        for child in element.children or ():
            converted = self._convert(child, values, ctx)
            if converted is not None:
                children.append(converted)

        if not children and not required and not ctx.include_empty:
            return None

        node = self._base(element)
        node["modelType"] = element.kind.value
        if element.kind is ElementKind.ENTITY:
            node["entityType"] = element.source.get("entityType") or DEFAULT_ENTITY_TYPE
            node["statements"] = children
        else:
            node["value"] = children
        return _prune(node)

    def _convert_list(
        self,
        element: TemplateElement,
        values: dict[str, Any],
        ctx: _ExportContext,
    ) -> dict[str, Any] | None:
        """
        Convert a declared list or a repeatable element into a SubmodelElementList.

        List items carry no idShort.
        """
        declared = element.kind is ElementKind.LIST
        item_element = element.item_template if declared else element
        path_key = element.path_key

        items = []
        if item_element is not None:
            for index in discover_indices(values.keys(), path_key):
                scoped = scope_values(values, path_key, index)
                item = self._convert(item_element, scoped, ctx, list_item=True)
                if item is None:
                    continue
                item.pop("idShort", None)
                items.append(item)

        if not items and not element.is_required and not ctx.include_empty:
            return None

        if declared:
            node = self._base(element)
            node["modelType"] = ElementKind.LIST.value
            if not node.get("typeValueListElement") and item_element is not None:
                node["typeValueListElement"] = item_element.model_type
        else:
            node = {
                "modelType": ElementKind.LIST.value,
                "idShort": element.id_short,
                "semanticId": copy.deepcopy(element.source.get("semanticId")),
                "description": copy.deepcopy(element.source.get("description")),
                "displayName": copy.deepcopy(element.source.get("displayName")),
                "orderRelevant": True,
                "semanticIdListElement": copy.deepcopy(element.source.get("semanticId")),
                "typeValueListElement": element.model_type,
            }
            if element.kind in (ElementKind.PROPERTY, ElementKind.RANGE):
                node["valueTypeListElement"] = element.value_type
        node["value"] = items

        logger.debug("Exported %d item(s) for %s", len(items), path_key)
        return _prune(node)
