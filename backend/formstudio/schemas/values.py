"""
Typed form values.

Raw form values are loosely shaped (strings, numbers, dicts, lists). Before
export they are coerced into one of the value shapes below, chosen by the
element's input kind, so that every conversion handles a known shape.
"""

from datetime import date, datetime, time
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from formstudio.schemas.template import InputKind, TemplateElement
from formstudio.utils.aas_json import reference_value
from formstudio.utils.paths import is_empty_value


class ScalarValue(BaseModel):
    kind: Literal["scalar"] = "scalar"
    value: bool | int | float | str | datetime | date | time


class LangString(BaseModel):
    language: str
    text: str


class MultiLanguageValue(BaseModel):
    kind: Literal["multilanguage"] = "multilanguage"
    entries: list[LangString]


class RangeValue(BaseModel):
    kind: Literal["range"] = "range"
    min: int | float | str | None = None
    max: int | float | str | None = None


class FileValue(BaseModel):
    kind: Literal["file"] = "file"
    path: str
    content_type: str | None = None


class BlobValue(BaseModel):
    kind: Literal["blob"] = "blob"
    data: str
    content_type: str | None = None


class ReferenceValue(BaseModel):
    kind: Literal["reference"] = "reference"
    value: str


FieldValue = Annotated[
    ScalarValue | MultiLanguageValue | RangeValue | FileValue | BlobValue | ReferenceValue,
    Field(discriminator="kind"),
]


def parse_value(element: TemplateElement, raw: Any) -> FieldValue | None:
    """
    Coerce a raw form value into the value shape of its element.

    Returns:
        The typed value, or None for empty input

    Raises:
        ValueError: If the raw value does not fit the element's shape
    """
    if is_empty_value(raw):
        return None

    match element.input_kind:
        case InputKind.MULTILANGUAGE:
            return _parse_multilanguage(raw)
        case InputKind.RANGE:
            if not isinstance(raw, dict):
                raise ValueError(f"Expected range values, got {type(raw).__name__}")
            low, high = raw.get("min"), raw.get("max")
            if is_empty_value(low) and is_empty_value(high):
                return None
            return RangeValue(
                min=None if is_empty_value(low) else low,
                max=None if is_empty_value(high) else high,
            )
        case InputKind.FILE:
            if isinstance(raw, str):
                return FileValue(path=raw)
            if isinstance(raw, dict):
                path = raw.get("path") or raw.get("value")
                if not path:
                    return None
                return FileValue(path=str(path), content_type=raw.get("contentType"))
            raise ValueError(f"Expected a file path, got {type(raw).__name__}")
        case InputKind.BLOB:
            if isinstance(raw, str):
                return BlobValue(data=raw)
            if isinstance(raw, dict) and raw.get("value"):
                return BlobValue(data=str(raw["value"]), content_type=raw.get("contentType"))
            raise ValueError(f"Expected blob content, got {type(raw).__name__}")
        case InputKind.REFERENCE:
            value = reference_value(raw)
            if value is None:
                raise ValueError("Expected a reference")
            return ReferenceValue(value=value)
        case _:
            if isinstance(raw, (dict, list, tuple, set)):
                raise ValueError(f"Expected a scalar value, got {type(raw).__name__}")
            return ScalarValue(value=raw)


def _parse_multilanguage(raw: Any) -> MultiLanguageValue | None:
    if isinstance(raw, str):
        entries = [LangString(language="en", text=raw)]
    elif isinstance(raw, dict):
        entries = [
            LangString(language=str(language), text=str(text))
            for language, text in raw.items()
            if text
        ]
    elif isinstance(raw, list):
        entries = []
        for entry in raw:
            if not isinstance(entry, dict):
                raise ValueError("Invalid translation entry")
            if entry.get("text"):
                entries.append(
                    LangString(language=str(entry.get("language") or "en"), text=str(entry["text"]))
                )
    else:
        raise ValueError(f"Expected translations, got {type(raw).__name__}")
    return MultiLanguageValue(entries=entries) if entries else None
