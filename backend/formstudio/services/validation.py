"""
Validation engine.

``validate_value`` checks one candidate value against its element's type and
constraints. ``validate_form`` checks a whole value map, adding required-ness
checks that depend on which array items are live. Failures are returned as
messages, never raised.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import AnyUrl, TypeAdapter, ValidationError

from formstudio.schemas.template import (
    ElementKind,
    InputKind,
    ParsedTemplate,
    TemplateElement,
)
from formstudio.schemas.values import parse_value
from formstudio.utils.paths import has_value_with_prefix, is_empty_value, join_path
from formstudio.utils.xsd_mapping import is_decimal_type, is_integer_type

REQUIRED_FIELD = "This field is required"
REQUIRED_SECTION = "This section is required"
REQUIRED_ITEMS = "At least one item is required"

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d(\.\d+)?)?$")

_url_adapter = TypeAdapter(AnyUrl)


def parse_number(value: Any) -> Decimal | None:
    """Parse numbers and numeric strings. Booleans and non-finite values are rejected."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = Decimal(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not number.is_finite():
        return None
    return number


def is_valid_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def is_valid_date(value: str) -> bool:
    if not DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_datetime(value: str) -> bool:
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value: str) -> bool:
    return TIME_PATTERN.match(value) is not None


def _check_bounds(number: Decimal, element: TemplateElement) -> str | None:
    constraints = element.constraints
    if constraints is None:
        return None
    if constraints.min is not None and number < Decimal(str(constraints.min)):
        return f"Minimum value is {constraints.min}"
    if constraints.max is not None and number > Decimal(str(constraints.max)):
        return f"Maximum value is {constraints.max}"
    return None


def _validate_multilanguage(value: Any) -> str | None:
    if not isinstance(value, list):
        return "Expected translations"
    for entry in value:
        if not isinstance(entry, Mapping):
            return "Invalid translation entry"
        if not entry.get("language") or not entry.get("text"):
            return "Translation must include language and text"
    return None


def _validate_range(value: Any) -> str | None:
    if not isinstance(value, Mapping):
        return "Expected range values"
    low = value.get("min")
    high = value.get("max")
    low_number = None if is_empty_value(low) else parse_number(low)
    high_number = None if is_empty_value(high) else parse_number(high)
    if not is_empty_value(low) and low_number is None:
        return "Minimum must be a number"
    if not is_empty_value(high) and high_number is None:
        return "Maximum must be a number"
    if low_number is not None and high_number is not None and low_number > high_number:
        return "Minimum cannot exceed maximum"
    return None


def _validate_string(element: TemplateElement, value: str) -> str | None:
    constraints = element.constraints
    if constraints is None:
        return None
    if constraints.min_length is not None and len(value) < constraints.min_length:
        return f"Minimum length is {constraints.min_length}"
    if constraints.max_length is not None and len(value) > constraints.max_length:
        return f"Maximum length is {constraints.max_length}"
    if constraints.pattern:
        try:
            if re.fullmatch(constraints.pattern, value) is None:
                return "Value does not match required pattern"
        except re.error:
            # Unusable patterns are ignored
            return None
    if constraints.allowed_values and value not in constraints.allowed_values:
        return f"Value must be one of: {', '.join(constraints.allowed_values)}"
    return None


def validate_value(element: TemplateElement, value: Any) -> str | None:
    """
    Validate a single value against its element.

    Empty values always pass; required-ness is a whole-form concern.

    Returns:
        Human-readable error message, or None if the value is acceptable
    """
    if is_empty_value(value):
        return None

    match element.input_kind:
        case InputKind.MULTILANGUAGE:
            return _validate_multilanguage(value)
        case InputKind.RANGE:
            return _validate_range(value)
        case _:
            pass

    if element.kind is not ElementKind.PROPERTY:
        return None

    value_type = element.value_type

    if value_type == "xs:boolean":
        return None if isinstance(value, bool) else "Expected a boolean value"

    if value_type == "xs:anyURI":
        return None if isinstance(value, str) and is_valid_url(value) else "Expected a valid URL"

    if value_type == "xs:date":
        return None if isinstance(value, str) and is_valid_date(value) else "Expected a valid date"

    if value_type == "xs:dateTime":
        if isinstance(value, str) and is_valid_datetime(value):
            return None
        return "Expected a valid date/time"

    if value_type == "xs:time":
        return None if isinstance(value, str) and is_valid_time(value) else "Expected a valid time"

    if is_integer_type(value_type):
        number = parse_number(value)
        if number is None or number != number.to_integral_value():
            return "Expected an integer"
        return _check_bounds(number, element)

    if is_decimal_type(value_type):
        number = parse_number(value)
        if number is None:
            return "Expected a number"
        return _check_bounds(number, element)

    if isinstance(value, str):
        return _validate_string(element, value)

    return None


def validate_form(
    template: ParsedTemplate,
    values: Mapping[str, Any],
    array_items: Mapping[str, list[int]],
) -> dict[str, str]:
    """
    Validate every stored value and enforce required-ness.

    All problems are collected; the result maps concrete path keys to messages.
    """
    errors: dict[str, str] = {}

    for key, value in values.items():
        element = template.find_value_element(key)
        if element is None:
            continue
        message = validate_value(element, value)
        if message:
            errors[key] = message

    _check_required(template.elements, "", values, array_items, errors)
    return errors


def _check_required(
    elements: tuple[TemplateElement, ...],
    parent_key: str,
    values: Mapping[str, Any],
    array_items: Mapping[str, list[int]],
    errors: dict[str, str],
) -> None:
    for element in elements:
        if element.kind is None or element.kind.is_read_only:
            continue
        key = join_path(parent_key, element.id_short)

        if element.is_list_like:
            _check_items(element, key, values, array_items, errors)
        elif element.is_grouping:
            present = has_value_with_prefix(values, key)
            if element.is_required and not present:
                errors.setdefault(key, REQUIRED_SECTION)
            if present or element.is_required:
                _check_required(element.children or (), key, values, array_items, errors)
        elif element.is_required and is_missing(element, values.get(key)):
            errors.setdefault(key, REQUIRED_FIELD)


def _check_items(
    element: TemplateElement,
    key: str,
    values: Mapping[str, Any],
    array_items: Mapping[str, list[int]],
    errors: dict[str, str],
) -> None:
    """Required checks for a list-like element and each of its live items."""
    indices = array_items.get(key) or []
    if not indices:
        if element.is_required:
            errors.setdefault(key, REQUIRED_ITEMS)
        return

    if element.kind is ElementKind.LIST:
        item = element.item_template
        if item is None:
            return
        if item.is_grouping:
            for index in indices:
                item_key = join_path(key, index)
                _check_required(item.children or (), item_key, values, array_items, errors)
            return
        item_keys = [join_path(key, index) for index in indices]
    elif element.is_grouping:
        for index in indices:
            _check_required(
                element.children or (), join_path(key, index), values, array_items, errors
            )
        return
    else:
        item = element
        item_keys = [join_path(key, index) for index in indices]

    if element.is_required and all(is_missing(item, values.get(k)) for k in item_keys):
        errors.setdefault(item_keys[0], REQUIRED_FIELD)


def is_missing(element: TemplateElement, value: Any) -> bool:
    """
    True if a value does not satisfy required-ness.

    Besides empty input this covers translation lists without any text and
    ranges with neither bound set. Values of the wrong shape count as present;
    ``validate_value`` reports them.
    """
    if is_empty_value(value):
        return True
    try:
        return parse_value(element, value) is None
    except ValueError:
        return False
