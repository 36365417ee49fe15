"""
UI Tree Generator.

Converts a ParsedTemplate into a renderable component tree. The tree is a
pure function of the template: generating it twice yields equal trees.
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from formstudio.schemas.template import ElementKind, InputKind, ParsedTemplate, TemplateElement
from formstudio.schemas.ui_schema import ComponentKind, UINode, UITree, UITreeMetadata
from formstudio.services.parser import count_elements
from formstudio.utils.paths import PathLike, to_path_key
from formstudio.utils.xsd_mapping import is_integer_type

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES: tuple[str, ...] = ("en", "de", "fr", "es", "it")


def component_for(input_kind: InputKind) -> ComponentKind:
    """Resolve the component rendering an input kind."""
    match input_kind:
        case InputKind.TEXT:
            return ComponentKind.TEXT_INPUT
        case InputKind.INTEGER | InputKind.DECIMAL:
            return ComponentKind.NUMBER_INPUT
        case InputKind.URL:
            return ComponentKind.URL_INPUT
        case InputKind.DATE | InputKind.DATETIME | InputKind.TIME:
            return ComponentKind.DATE_INPUT
        case InputKind.BOOLEAN:
            return ComponentKind.BOOLEAN_INPUT
        case InputKind.FILE | InputKind.BLOB:
            return ComponentKind.FILE_INPUT
        case InputKind.SELECT:
            return ComponentKind.SELECT_INPUT
        case InputKind.MULTILANGUAGE:
            return ComponentKind.MULTI_LANGUAGE_INPUT
        case InputKind.RANGE:
            return ComponentKind.RANGE_INPUT
        case InputKind.REFERENCE:
            return ComponentKind.REFERENCE_INPUT
        case InputKind.COLLECTION | InputKind.ENTITY:
            return ComponentKind.SMC_CONTAINER
        case InputKind.LIST:
            return ComponentKind.ARRAY_CONTAINER
        case (
            InputKind.OPERATION
            | InputKind.CAPABILITY
            | InputKind.EVENT
            | InputKind.RELATIONSHIP
            | InputKind.READONLY
        ):
            return ComponentKind.READ_ONLY_VALUE


def generate_ui_tree(
    template: ParsedTemplate,
    language: str = "en",
    languages: Sequence[str] = DEFAULT_LANGUAGES,
) -> UITree:
    """
    Generate the UI tree for a parsed template.

    Args:
        template: Parsed template
        language: Language used for labels
        languages: Languages offered by multi-language inputs

    Returns:
        UITree with a FormSection root
    """
    generator = _TreeBuilder(language, tuple(languages))
    metadata = template.metadata
    root = UINode(
        component=ComponentKind.FORM_SECTION,
        props={
            "title": metadata.id_short,
            "subtitle": metadata.description.get(language)
            or metadata.description.get("en")
            or metadata.semantic_id,
        },
        children=[generator.element_to_node(e, 0) for e in template.elements],
    )
    logger.debug(f"Generated UI tree for {metadata.id_short}")
    return UITree(
        root=root,
        metadata=UITreeMetadata(
            templateId=metadata.id,
            templateName=metadata.id_short,
            elementCount=count_elements(template),
        ),
    )


class _TreeBuilder:
    def __init__(self, language: str, languages: tuple[str, ...]):
        self.language = language
        self.languages = languages

    def element_to_node(self, element: TemplateElement, level: int) -> UINode:
        """Convert an element, wrapping repeatable ones in an ArrayContainer."""
        if element.kind is ElementKind.LIST:
            return self._list_node(element, level)

        if element.is_array:
            stamp = element.model_copy(update={"is_array": False})
            inner = self._create_node(stamp, level + 1)
            if element.is_grouping:
                inner.props["collapsible"] = True
            return UINode(
                component=ComponentKind.ARRAY_CONTAINER,
                props=self._array_props(element),
                children=[inner],
            )

        return self._create_node(element, level)

    def _list_node(self, element: TemplateElement, level: int) -> UINode:
        props = self._array_props(element)
        props["allowReorder"] = element.order_relevant is not False
        item = element.item_template
        children = None
        if item is not None:
            stamp = item.model_copy(update={"is_array": False})
            children = [self._create_node(stamp, level + 1)]
        return UINode(
            component=ComponentKind.ARRAY_CONTAINER,
            props=props,
            children=children,
        )

    def _create_node(self, element: TemplateElement, level: int) -> UINode:
        component = component_for(element.input_kind)
        props = self._build_props(element, level)
        children = None
        if element.is_grouping and element.children is not None:
            children = [self.element_to_node(c, level + 1) for c in element.children]
        return UINode(component=component, props=props, children=children)

    def _base_props(self, element: TemplateElement) -> dict[str, Any]:
        return {
            "idShort": element.id_short,
            "path": list(element.path),
            "label": element.label(self.language),
            "semanticId": element.semantic_id,
            "required": element.is_required,
            "description": dict(element.description),
            "displayName": dict(element.display_name),
            "exampleValue": element.example_value,
        }

    def _array_props(self, element: TemplateElement) -> dict[str, Any]:
        props = self._base_props(element)
        props["minItems"] = 1 if element.is_required else 0
        props["itemLabel"] = element.label(self.language)
        return props

    def _build_props(self, element: TemplateElement, level: int) -> dict[str, Any]:
        props = self._base_props(element)
        constraints = element.constraints

        match element.input_kind:
            case InputKind.TEXT:
                if constraints:
                    props.update(
                        minLength=constraints.min_length,
                        maxLength=constraints.max_length,
                        pattern=constraints.pattern,
                    )
            case InputKind.INTEGER | InputKind.DECIMAL:
                props["valueType"] = (
                    "integer" if element.input_kind is InputKind.INTEGER else "decimal"
                )
                props["xsdType"] = element.value_type
                if constraints:
                    props.update(min=constraints.min, max=constraints.max)
            case InputKind.DATE:
                props["includeTime"] = False
            case InputKind.DATETIME:
                props["includeTime"] = True
            case InputKind.TIME:
                props["timeOnly"] = True
            case InputKind.SELECT:
                allowed = constraints.allowed_values if constraints else None
                props["options"] = [{"value": v, "label": v} for v in allowed or []]
            case InputKind.FILE | InputKind.BLOB:
                props["contentType"] = constraints.content_type if constraints else None
            case InputKind.RANGE:
                props["valueType"] = (
                    "integer" if is_integer_type(element.value_type) else "decimal"
                )
            case InputKind.MULTILANGUAGE:
                props["supportedLanguages"] = list(self.languages)
                props["primaryLanguage"] = self.language
            case InputKind.COLLECTION | InputKind.ENTITY:
                props.update(
                    collapsible=True,
                    collapsed=level > 1,
                    variant="card" if level == 0 else "section",
                    level=level,
                )
                if element.kind is ElementKind.ENTITY:
                    props["entityType"] = element.source.get("entityType")
            case (
                InputKind.OPERATION
                | InputKind.CAPABILITY
                | InputKind.EVENT
                | InputKind.RELATIONSHIP
                | InputKind.READONLY
            ):
                props["modelType"] = element.model_type
            case _:
                pass

        return {k: v for k, v in props.items() if v is not None}


def iterate_ui_nodes(node: UINode) -> Iterator[UINode]:
    yield node
    for child in node.children or []:
        yield from iterate_ui_nodes(child)


def flatten_ui_tree(tree: UITree) -> list[tuple[list[str], UINode]]:
    """
    Flatten the tree to (path, node) pairs in depth-first order.

    Synthetic nodes inherit the path of their parent.
    """
    result: list[tuple[list[str], UINode]] = []

    def traverse(node: UINode, current: list[str]) -> None:
        path = node.props.get("path") or current
        result.append((path, node))
        for child in node.children or []:
            traverse(child, path)

    traverse(tree.root, [])
    return result


def count_ui_nodes(tree: UITree) -> int:
    return sum(1 for _ in iterate_ui_nodes(tree.root))


def find_ui_node(tree: UITree, path: PathLike) -> UINode | None:
    """Find the outermost node rendering the element at ``path``."""
    path_key = to_path_key(path)
    for node in iterate_ui_nodes(tree.root):
        if node.path_key == path_key:
            return node
    return None
