"""
Helpers for AAS V3.0 JSON structures (references, language string sets).
"""

from typing import Any


def reference_value(ref: Any) -> str | None:
    """Return the first key's value of a Reference (typically the identifier)."""
    if ref is None:
        return None
    if isinstance(ref, str):
        return ref or None
    if isinstance(ref, dict):
        keys = ref.get("keys") or []
        if keys and isinstance(keys[0], dict):
            return keys[0].get("value")
    return None


def external_reference(value: str) -> dict[str, Any]:
    """Create an ExternalReference with a single GlobalReference key."""
    return {
        "type": "ExternalReference",
        "keys": [{"type": "GlobalReference", "value": value}],
    }


def lang_strings_to_dict(strings: Any) -> dict[str, str]:
    """Convert a LangStringSet list into a language -> text mapping."""
    result: dict[str, str] = {}
    if not isinstance(strings, list):
        return result
    for entry in strings:
        if isinstance(entry, dict) and entry.get("language"):
            result[str(entry["language"])] = str(entry.get("text") or "")
    return result


def find_submodel(document: dict[str, Any]) -> dict[str, Any] | None:
    """
    Find the Submodel in a Submodel or Environment document.

    Prefers submodels of kind Template when an environment holds several.
    """
    if not isinstance(document, dict):
        return None
    if document.get("modelType") == "Submodel" or "submodelElements" in document:
        return document

    submodels = [s for s in document.get("submodels") or [] if isinstance(s, dict)]
    if not submodels:
        return None
    for submodel in submodels:
        if submodel.get("kind") == "Template":
            return submodel
    return submodels[0]


def model_type_name(node: dict[str, Any]) -> str:
    """Read the modelType tag, accepting the legacy ``{"name": ...}`` form."""
    model_type = node.get("modelType")
    if isinstance(model_type, dict):
        model_type = model_type.get("name")
    return str(model_type or "")
