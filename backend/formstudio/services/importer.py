"""
Importer Service for AAS-to-form value maps.

Flattens an existing Submodel instance into the path-keyed value map the
form state controller is seeded with. Paths are computed the way the
exporter lays documents out: list items add their position as an index
segment and never one for their own idShort.
"""

import logging
from typing import Any

from formstudio.schemas.template import ElementKind
from formstudio.services.parser import TemplateParseError
from formstudio.utils.aas_json import find_submodel, model_type_name, reference_value
from formstudio.utils.paths import is_empty_value, join_path
from formstudio.utils.xsd_mapping import is_decimal_type, is_integer_type, normalize_xsd_type

logger = logging.getLogger(__name__)


def parse_property_value(raw: Any, value_type: str | None) -> Any:
    """Parse a Property's string value according to its XSD type."""
    if raw is None:
        return None
    value_type = normalize_xsd_type(value_type)

    if value_type == "xs:boolean":
        if raw in ("true", "1", True):
            return True
        if raw in ("false", "0", False):
            return False
        return raw

    if is_integer_type(value_type):
        try:
            return int(str(raw).strip())
        except ValueError:
            pass
    if is_integer_type(value_type) or is_decimal_type(value_type):
        try:
            return float(str(raw).strip())
        except ValueError:
            return raw

    return raw


def _range_bound(raw: Any, value_type: str | None) -> int | float | None:
    if is_empty_value(raw):
        return None
    parsed = parse_property_value(raw, value_type or "xs:double")
    return parsed if isinstance(parsed, (int, float)) and not isinstance(parsed, bool) else None


class SubmodelImporter:
    """Service for importing Submodel instances as flat value maps."""

    def import_values(self, document: dict[str, Any]) -> dict[str, Any]:
        """
        Flatten a Submodel (or the submodel of an Environment).

        Args:
            document: AAS V3.0 JSON Submodel or Environment

        Returns:
            Path-keyed value map

        Raises:
            TemplateParseError: If the document holds no Submodel
        """
        submodel = find_submodel(document)
        if submodel is None:
            raise TemplateParseError("No Submodel found in document")

        values: dict[str, Any] = {}
        for element in submodel.get("submodelElements") or []:
            self._add_element_values(element, "", values)

        logger.info(f"Imported {len(values)} value(s) from {submodel.get('idShort')}")
        return values

    def _add_element_values(
        self,
        element: dict[str, Any],
        parent_key: str,
        values: dict[str, Any],
        in_list: bool = False,
    ) -> None:
        if not isinstance(element, dict):
            return
        if in_list:
            key = parent_key
        else:
            key = join_path(parent_key, element.get("idShort") or "")
        model_type = model_type_name(element)

        try:
            kind = ElementKind(model_type)
        except ValueError:
            logger.debug("Skipping element of unknown type %s at %s", model_type, key)
            return

        value: Any = None
        match kind:
            case ElementKind.PROPERTY:
                value = parse_property_value(element.get("value"), element.get("valueType"))
            case ElementKind.MULTI_LANGUAGE_PROPERTY:
                value = [
                    {"language": entry.get("language"), "text": entry.get("text")}
                    for entry in element.get("value") or []
                    if isinstance(entry, dict)
                ] or None
            case ElementKind.RANGE:
                value_type = element.get("valueType")
                bounds = {
                    "min": _range_bound(element.get("min"), value_type),
                    "max": _range_bound(element.get("max"), value_type),
                }
                if bounds["min"] is not None or bounds["max"] is not None:
                    value = bounds
            case ElementKind.FILE:
                if element.get("value"):
                    value = {"path": element["value"], "contentType": element.get("contentType")}
            case ElementKind.BLOB:
                value = element.get("value")
            case ElementKind.REFERENCE_ELEMENT:
                value = reference_value(element.get("value"))
            case ElementKind.COLLECTION:
                for child in element.get("value") or []:
                    self._add_element_values(child, key, values)
            case ElementKind.ENTITY:
                for child in element.get("statements") or []:
                    self._add_element_values(child, key, values)
            case ElementKind.LIST:
                for position, child in enumerate(element.get("value") or []):
                    self._add_element_values(
                        child, join_path(key, position), values, in_list=True
                    )
            case _:
                # Read-only kinds carry no form values
                pass

        if not is_empty_value(value) and key:
            values[key] = value
