"""
Parser Service for template-to-element-tree transformation.

Transforms an IDTA Submodel Template (AAS V3.0 JSON) into an immutable tree
of TemplateElements that carries everything the form pipeline needs:
- Element kinds and nesting
- Cardinality from SMT qualifiers
- Value constraints and input kinds
- Raw template metadata for copying through on export
"""

import logging
from collections.abc import Iterator
from typing import Any

from formstudio.schemas.template import (
    Cardinality,
    ElementConstraints,
    ElementKind,
    InputKind,
    ParsedTemplate,
    ParseIssue,
    TemplateElement,
    TemplateMetadata,
)
from formstudio.utils.aas_json import (
    find_submodel,
    lang_strings_to_dict,
    model_type_name,
    reference_value,
)
from formstudio.utils.paths import to_path_key
from formstudio.utils.xsd_mapping import (
    get_input_kind,
    get_range_constraints,
    normalize_xsd_type,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_ID_SHORT = "unnamed"
LIST_ITEM_ID_SHORT = "Item"

CARDINALITY_QUALIFIER_TYPES = ("SMT/Cardinality", "Cardinality", "cardinality", "Multiplicity")

_CARDINALITY_ALIASES: dict[str, Cardinality] = {
    "One": Cardinality.ONE,
    "ZeroToOne": Cardinality.ZERO_TO_ONE,
    "OneToMany": Cardinality.ONE_TO_MANY,
    "ZeroToMany": Cardinality.ZERO_TO_MANY,
    "1": Cardinality.ONE,
    "0..1": Cardinality.ZERO_TO_ONE,
    "1..*": Cardinality.ONE_TO_MANY,
    "0..*": Cardinality.ZERO_TO_MANY,
}


class TemplateParseError(ValueError):
    """Raised when a document contains no Submodel at all."""


class TemplateParserService:
    """
    Service for parsing template documents into element trees.

    Parsing is a pure function of the input document. Element-level problems
    are recorded as ParseIssues and never abort the parse.
    """

    def parse(self, raw_document: dict[str, Any]) -> ParsedTemplate:
        """
        Parse a Submodel or Environment document.

        Args:
            raw_document: AAS V3.0 JSON Submodel, or Environment with submodels

        Returns:
            ParsedTemplate with element tree, flat lookup and issues

        Raises:
            TemplateParseError: If the document holds no Submodel
        """
        submodel = find_submodel(raw_document)
        if submodel is None:
            raise TemplateParseError("No Submodel found in template document")

        issues: list[ParseIssue] = []
        metadata = self._extract_metadata(submodel)
        logger.info(f"Parsing template: {metadata.id_short} ({metadata.id})")

        elements = self._parse_elements(
            submodel.get("submodelElements") or [], (), issues
        )
        flat: dict[str, TemplateElement] = {}
        for element in flatten_elements(elements):
            # List items share the key of their list
            flat.setdefault(element.path_key, element)

        if issues:
            logger.warning(
                "Template %s parsed with %d issue(s)", metadata.id_short, len(issues)
            )

        header = {k: v for k, v in submodel.items() if k != "submodelElements"}
        return ParsedTemplate(
            metadata=metadata,
            elements=tuple(elements),
            flat_elements=flat,
            issues=issues,
            source=header,
        )

    def _extract_metadata(self, submodel: dict[str, Any]) -> TemplateMetadata:
        administration = submodel.get("administration") or {}
        id_short = submodel.get("idShort") or "Unnamed"
        return TemplateMetadata(
            id=str(submodel.get("id") or ""),
            id_short=id_short,
            semantic_id=reference_value(submodel.get("semanticId")) or "",
            version=str(administration.get("version") or "1"),
            revision=str(administration.get("revision") or "0"),
            template_id=str(administration.get("templateId") or ""),
            description=lang_strings_to_dict(submodel.get("description")),
        )

    def _parse_elements(
        self,
        raw_elements: list[Any],
        parent_path: tuple[str, ...],
        issues: list[ParseIssue],
        in_list: bool = False,
    ) -> list[TemplateElement]:
        """Parse sibling elements, resolving missing and duplicate idShorts."""
        seen: set[str] = set()
        parsed: list[TemplateElement] = []

        for raw in raw_elements:
            if not isinstance(raw, dict):
                issues.append(
                    ParseIssue(
                        path=to_path_key(parent_path),
                        message=f"Skipped non-object element of type {type(raw).__name__}",
                    )
                )
                continue

            id_short = raw.get("idShort") or ""
            if not id_short:
                if in_list:
                    # List items carry no idShort in V3.0 templates
                    id_short = LIST_ITEM_ID_SHORT
                else:
                    id_short = PLACEHOLDER_ID_SHORT
                    issues.append(
                        ParseIssue(
                            path=to_path_key(parent_path + (id_short,)),
                            message="Element without idShort, using placeholder name",
                        )
                    )

            if id_short in seen:
                original = id_short
                suffix = 2
                while f"{original}_{suffix}" in seen:
                    suffix += 1
                id_short = f"{original}_{suffix}"
                issues.append(
                    ParseIssue(
                        path=to_path_key(parent_path + (id_short,)),
                        message=f"Duplicate idShort '{original}' renamed to '{id_short}'",
                    )
                )
            seen.add(id_short)

            parsed.append(
                self._parse_element(raw, id_short, parent_path, issues, in_list=in_list)
            )

        return parsed

    def _parse_element(
        self,
        raw: dict[str, Any],
        id_short: str,
        parent_path: tuple[str, ...],
        issues: list[ParseIssue],
        in_list: bool = False,
    ) -> TemplateElement:
        """
        Convert one raw template node.

        Recursively processes nested elements (SMC, SML, Entity). List items
        are addressed at the path of their list.
        """
        path = parent_path if in_list else parent_path + (id_short,)
        model_type = model_type_name(raw)
        qualifiers = extract_qualifiers(raw.get("qualifiers"))
        cardinality = extract_cardinality(qualifiers)

        try:
            kind: ElementKind | None = ElementKind(model_type)
        except ValueError:
            kind = None
            issues.append(
                ParseIssue(
                    path=to_path_key(path),
                    message=f"Unrecognized element kind '{model_type}', rendered read-only",
                )
            )

        value_type = None
        children: tuple[TemplateElement, ...] | None = None
        list_element_type = None
        order_relevant = None
        child_key: str | None = None

        match kind:
            case ElementKind.PROPERTY:
                value_type = normalize_xsd_type(raw.get("valueType")) or "xs:string"
            case ElementKind.RANGE:
                value_type = normalize_xsd_type(raw.get("valueType")) or "xs:double"
            case ElementKind.COLLECTION:
                child_key = "value"
                children = tuple(
                    self._parse_elements(raw.get("value") or [], path, issues)
                )
            case ElementKind.ENTITY:
                child_key = "statements"
                children = tuple(
                    self._parse_elements(raw.get("statements") or [], path, issues)
                )
            case ElementKind.LIST:
                child_key = "value"
                value_type = normalize_xsd_type(raw.get("valueTypeListElement"))
                list_element_type = raw.get("typeValueListElement")
                order_relevant = raw.get("orderRelevant")
                items = raw.get("value") or []
                if not items and list_element_type:
                    items = [self._synthesize_list_item(raw)]
                children = tuple(
                    self._parse_elements(items[:1], path, issues, in_list=True)
                )
                if len(items) > 1:
                    logger.debug(
                        "List %s declares %d items, using the first as item template",
                        to_path_key(path),
                        len(items),
                    )
            case _:
                pass

        constraints = extract_constraints(raw, qualifiers, kind, value_type)
        input_kind = resolve_input_kind(kind, value_type, constraints)

        source = {k: v for k, v in raw.items() if k != child_key}
        if in_list:
            source.pop("idShort", None)
        else:
            source["idShort"] = id_short

        return TemplateElement(
            id_short=id_short,
            path=path,
            model_type=model_type,
            kind=kind,
            value_type=value_type,
            input_kind=input_kind,
            cardinality=cardinality,
            is_required=cardinality.is_required,
            is_array=cardinality.is_repeatable,
            semantic_id=reference_value(raw.get("semanticId")),
            description=lang_strings_to_dict(raw.get("description")),
            display_name=lang_strings_to_dict(raw.get("displayName")),
            qualifiers=qualifiers,
            constraints=constraints,
            example_value=qualifiers.get("SMT/ExampleValue") or qualifiers.get("ExampleValue"),
            children=children,
            list_element_type=list_element_type,
            order_relevant=order_relevant,
            source=source,
        )

    @staticmethod
    def _synthesize_list_item(raw_list: dict[str, Any]) -> dict[str, Any]:
        """Create an item template from the list's declared item type."""
        item: dict[str, Any] = {
            "idShort": LIST_ITEM_ID_SHORT,
            "modelType": raw_list.get("typeValueListElement"),
        }
        if raw_list.get("valueTypeListElement"):
            item["valueType"] = raw_list["valueTypeListElement"]
        if raw_list.get("semanticIdListElement"):
            item["semanticId"] = raw_list["semanticIdListElement"]
        return item


def extract_qualifiers(raw_qualifiers: Any) -> dict[str, str]:
    """Collect qualifiers into a type -> value mapping."""
    qualifiers: dict[str, str] = {}
    for q in raw_qualifiers or []:
        if isinstance(q, dict) and q.get("type"):
            value = q.get("value")
            qualifiers[str(q["type"])] = "" if value is None else str(value)
    return qualifiers


def extract_cardinality(qualifiers: dict[str, str]) -> Cardinality:
    """
    Extract cardinality from the SMT qualifier or its legacy aliases.

    Common encodings:
    - One / [1]: Mandatory, exactly one
    - ZeroToOne / [0..1]: Optional, at most one
    - OneToMany / [1..*]: Mandatory, at least one
    - ZeroToMany / [0..*]: Optional, any number
    """
    for q_type in CARDINALITY_QUALIFIER_TYPES:
        if q_type in qualifiers:
            normalized = normalize_cardinality_value(qualifiers[q_type])
            if normalized is not None:
                return normalized
    return Cardinality.ZERO_TO_ONE


def normalize_cardinality_value(value: str | None) -> Cardinality | None:
    """Normalize word and bracket encodings to a Cardinality."""
    if value is None:
        return None
    value = str(value).strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1].strip()
    return _CARDINALITY_ALIASES.get(value)


def _to_int(value: str | None) -> int | None:
    if value is None or not str(value).strip():
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _to_number(value: str | None) -> int | float | None:
    if value is None or not str(value).strip():
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if number.is_integer():
        return int(number)
    return number


def _tighter(declared, intrinsic, pick):
    if declared is None:
        return intrinsic
    if intrinsic is None:
        return declared
    return pick(declared, intrinsic)


def extract_constraints(
    raw: dict[str, Any],
    qualifiers: dict[str, str],
    kind: ElementKind | None,
    value_type: str | None,
) -> ElementConstraints | None:
    """
    Build value constraints from SMT qualifiers and the element itself.

    Bounded integer types contribute their intrinsic range.
    """
    intrinsic = get_range_constraints(value_type)

    allowed_raw = qualifiers.get("SMT/AllowedValue") or qualifiers.get("SMT/AllowedValues")
    allowed_values = None
    if allowed_raw:
        allowed_values = [v.strip() for v in allowed_raw.split(",") if v.strip()] or None

    content_type = None
    if kind in (ElementKind.FILE, ElementKind.BLOB):
        content_type = raw.get("contentType") or None

    constraints = {
        "min_length": _to_int(qualifiers.get("SMT/MinLength")),
        "max_length": _to_int(qualifiers.get("SMT/MaxLength")),
        "pattern": qualifiers.get("SMT/Pattern") or None,
        "min": _tighter(_to_number(qualifiers.get("SMT/Min")), intrinsic["min"], max),
        "max": _tighter(_to_number(qualifiers.get("SMT/Max")), intrinsic["max"], min),
        "allowed_values": allowed_values,
        "content_type": content_type,
    }
    if all(v is None for v in constraints.values()):
        return None
    return ElementConstraints(**constraints)


def resolve_input_kind(
    kind: ElementKind | None,
    value_type: str | None,
    constraints: ElementConstraints | None = None,
) -> InputKind:
    """Resolve the rendering input kind from (element kind, value type)."""
    match kind:
        case ElementKind.PROPERTY:
            input_kind = get_input_kind(value_type)
            if input_kind is InputKind.TEXT and constraints and constraints.allowed_values:
                return InputKind.SELECT
            return input_kind
        case ElementKind.MULTI_LANGUAGE_PROPERTY:
            return InputKind.MULTILANGUAGE
        case ElementKind.RANGE:
            return InputKind.RANGE
        case ElementKind.FILE:
            return InputKind.FILE
        case ElementKind.BLOB:
            return InputKind.BLOB
        case ElementKind.REFERENCE_ELEMENT:
            return InputKind.REFERENCE
        case ElementKind.COLLECTION:
            return InputKind.COLLECTION
        case ElementKind.LIST:
            return InputKind.LIST
        case ElementKind.ENTITY:
            return InputKind.ENTITY
        case ElementKind.OPERATION:
            return InputKind.OPERATION
        case ElementKind.CAPABILITY:
            return InputKind.CAPABILITY
        case ElementKind.BASIC_EVENT_ELEMENT:
            return InputKind.EVENT
        case ElementKind.RELATIONSHIP_ELEMENT | ElementKind.ANNOTATED_RELATIONSHIP_ELEMENT:
            return InputKind.RELATIONSHIP
        case None:
            return InputKind.READONLY


def iterate_elements(
    elements: tuple[TemplateElement, ...] | list[TemplateElement], depth: int = 0
) -> Iterator[tuple[TemplateElement, int]]:
    """
    Recursively iterate through all TemplateElements.

    Yields tuples of (element, depth) for each element.
    """
    for element in elements:
        yield element, depth
        if element.children:
            yield from iterate_elements(element.children, depth + 1)


def flatten_elements(
    elements: tuple[TemplateElement, ...] | list[TemplateElement],
) -> list[TemplateElement]:
    """Depth-first list of every element in the tree."""
    return [element for element, _ in iterate_elements(elements)]


def find_element(template: ParsedTemplate, path: str | list[str]) -> TemplateElement | None:
    return template.find_element(to_path_key(path))


def required_elements(template: ParsedTemplate) -> list[TemplateElement]:
    return [e for e in flatten_elements(template.elements) if e.is_required]


def elements_by_input_kind(
    template: ParsedTemplate, input_kind: InputKind
) -> list[TemplateElement]:
    return [e for e in flatten_elements(template.elements) if e.input_kind is input_kind]


def count_elements(template: ParsedTemplate) -> int:
    return len(flatten_elements(template.elements))


def extract_semantic_ids(template: ParsedTemplate) -> set[str]:
    """Collect every semantic id referenced by the template, submodel included."""
    ids = {e.semantic_id for e in flatten_elements(template.elements) if e.semantic_id}
    if template.metadata.semantic_id:
        ids.add(template.metadata.semantic_id)
    return ids
