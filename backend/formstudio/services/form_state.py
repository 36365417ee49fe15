"""
Form state controller.

A framework-independent state machine owning one form's values, errors,
touched flags and array index sets. All mutations go through the controller.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, Field

from formstudio.schemas.template import ElementKind, ParsedTemplate, TemplateElement
from formstudio.services.array_state import (
    add_item,
    derive_from_values,
    ensure_minimum,
    next_index,
    purge_values_for_removed_index,
    remove_item,
    reorder_items,
)
from formstudio.services.validation import validate_form, validate_value
from formstudio.utils.paths import (
    PathLike,
    join_path,
    key_has_prefix,
    to_path_key,
)

logger = logging.getLogger(__name__)

SubmitHandler = Callable[[dict[str, Any]], Awaitable[Any] | Any]
ChangeHandler = Callable[[dict[str, Any]], Any]


class FormState(BaseModel):
    """Snapshot of a form's mutable state."""

    values: dict[str, Any] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    touched: dict[str, bool] = Field(default_factory=dict)
    array_items: dict[str, list[int]] = Field(default_factory=dict)
    is_dirty: bool = False
    is_valid: bool = True
    is_submitting: bool = False


def required_list_paths(elements: tuple[TemplateElement, ...], base_key: str) -> Iterator[str]:
    """
    Concrete paths of required list-like elements below ``base_key``.

    Does not descend into list-like elements, whose own items are created
    one at a time.
    """
    for element in elements:
        key = join_path(base_key, element.id_short)
        if element.is_list_like:
            if element.is_required:
                yield key
        elif element.is_grouping:
            yield from required_list_paths(element.children or (), key)


class FormStateController:
    """
    Controller for one form instance.

    Args:
        template: Parsed template the form is built from
        initial_values: Value map to seed the form (e.g. from an import)
        on_submit: Default submit handler, sync or async
        on_change: Called with the full value map after every set_value
    """

    def __init__(
        self,
        template: ParsedTemplate,
        initial_values: Mapping[str, Any] | None = None,
        on_submit: SubmitHandler | None = None,
        on_change: ChangeHandler | None = None,
    ):
        self.template = template
        self._on_submit = on_submit
        self._on_change = on_change

        self._initial_values = dict(initial_values or {})
        minimums = {key: 1 for key in required_list_paths(template.elements, "")}
        self._initial_array_items = ensure_minimum(
            derive_from_values(self._initial_values), minimums
        )
        self._issued: dict[str, int] = {}
        self.state = self._initial_state()

    def _initial_state(self) -> FormState:
        array_items = {k: list(v) for k, v in self._initial_array_items.items()}
        for key, indices in array_items.items():
            self._issued[key] = max(self._issued.get(key, 0), next_index(indices))
        return FormState(values=dict(self._initial_values), array_items=array_items)

    def _element_for(self, key: str) -> TemplateElement | None:
        return self.template.find_value_element(key)

    def set_value(self, path: PathLike, value: Any) -> None:
        """Store a value and re-validate that field."""
        key = to_path_key(path)
        state = self.state
        state.values = {**state.values, key: value}

        element = self._element_for(key)
        message = validate_value(element, value) if element else None
        errors = dict(state.errors)
        if message:
            errors[key] = message
        else:
            errors.pop(key, None)
        state.errors = errors
        state.is_valid = not errors
        state.is_dirty = True

        if self._on_change is not None:
            self._on_change(dict(state.values))

    def set_touched(self, path: PathLike, touched: bool = True) -> None:
        self.state.touched = {**self.state.touched, to_path_key(path): touched}

    def set_error(self, path: PathLike, message: str | None) -> None:
        """Set or clear (``None``) the error of one field."""
        errors = dict(self.state.errors)
        if message:
            errors[to_path_key(path)] = message
        else:
            errors.pop(to_path_key(path), None)
        self.state.errors = errors
        self.state.is_valid = not errors

    def add_array_item(self, path: PathLike) -> int:
        """
        Add an item to a repeatable element.

        Required arrays nested in the new item get their first item as well.

        Returns:
            The new item's index
        """
        key = to_path_key(path)
        array_items = add_item(self.state.array_items, key, self._issued)
        index = array_items[key][-1]
        self._issued[key] = index + 1

        element = self._element_for(key)
        if element is not None:
            nested: tuple[TemplateElement, ...] = ()
            base = join_path(key, index)
            if element.item_template is not None and element.item_template.is_grouping:
                nested = element.item_template.children or ()
            elif element.is_grouping and element.kind is not ElementKind.LIST:
                nested = element.children or ()
            minimums = {nested_key: 1 for nested_key in required_list_paths(nested, base)}
            if minimums:
                array_items = ensure_minimum(array_items, minimums)
                for nested_key in minimums:
                    self._issued[nested_key] = max(
                        self._issued.get(nested_key, 0), next_index(array_items[nested_key])
                    )

        self.state.array_items = array_items
        self.state.is_dirty = True
        logger.debug("Added item %d to %s", index, key)
        return index

    def remove_array_item(self, path: PathLike, position: int) -> int | None:
        """
        Remove the item at a display position, purging its values, errors and touched flags.

        Returns:
            The removed index, or None if the position was out of bounds
        """
        key = to_path_key(path)
        array_items, removed = remove_item(self.state.array_items, key, position)
        if removed is None:
            return None

        state = self.state
        state.values, state.errors, state.touched = purge_values_for_removed_index(
            state.values, state.errors, state.touched, key, removed
        )
        prefix = join_path(key, removed)
        state.array_items = {
            k: v for k, v in array_items.items() if not key_has_prefix(k, prefix)
        }
        state.is_valid = not state.errors
        state.is_dirty = True
        logger.debug("Removed item %d from %s", removed, key)
        return removed

    def reorder_array_item(self, path: PathLike, from_position: int, to_position: int) -> None:
        key = to_path_key(path)
        self.state.array_items = reorder_items(
            self.state.array_items, key, from_position, to_position
        )
        self.state.is_dirty = True

    def validate_all(self) -> bool:
        """Replace the error map with a full validation. Returns True if valid."""
        errors = validate_form(self.template, self.state.values, self.state.array_items)
        self.state.errors = errors
        self.state.is_valid = not errors
        return not errors

    async def submit(self, handler: SubmitHandler | None = None) -> bool:
        """
        Validate and hand the values to the submit handler.

        Returns:
            False if validation failed and the handler was not called
        """
        handler = handler or self._on_submit
        self.state.is_submitting = True
        try:
            if not self.validate_all():
                logger.info(f"Submit blocked by {len(self.state.errors)} validation error(s)")
                return False
            if handler is not None:
                result = handler(dict(self.state.values))
                if inspect.isawaitable(result):
                    await result
            return True
        finally:
            self.state.is_submitting = False

    def reset(self) -> None:
        """Restore the values and array items captured at mount."""
        self.state = self._initial_state()
