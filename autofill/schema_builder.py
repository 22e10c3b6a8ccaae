"""
Schema building for form filling.

From the list of field descriptors this module builds the two structures
that are sent to the LLM:

* the hierarchy, a JSON shaped template with one empty placeholder per
  field (an array for choice fields, a one-row exemplar for grids), and
* the type hints, a plain language description of the expected format of
  each value.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .components import FieldKind
from .field_extraction import FieldDescriptor, extract_fields
from .lookup import get_property
from .metadata import (
    BOOLEAN, DATE, DATE_FORMAT, DATE_TIME_FORMAT, DATETIME, DECIMAL, DOUBLE, FLOAT,
    INTEGER, LONG, TIME, TIME_FORMAT, AttributeModel, EntityModel,
)

STRING_HINT = "a String"
BOOLEAN_HINT = "a Boolean"
NUMBER_HINT = "a Number"
INTEGER_HINT = "a Integer"
DOUBLE_HINT = "a Double"
DATE_HINT = f"a date using format '{DATE_FORMAT.pattern}'"
TIME_HINT = f"a time using format '{TIME_FORMAT.pattern}'"
DATE_TIME_HINT = f"a date and time using format '{DATE_TIME_FORMAT.pattern}'"


@dataclass
class ComponentsMapping:
    """Everything needed to build the prompt and, afterwards, to fill the fields."""

    descriptors: List[FieldDescriptor]
    hierarchy: Dict[str, Any]
    type_hints: Dict[str, str]


def enum_hint(constants: Iterable[Any]) -> str:
    joined = '" OR "'.join(str(c) for c in constants)
    return f'an enumeration value from one of these options "{joined}"'


def options_hint(options: Iterable[str]) -> str:
    joined = '" OR "'.join(options)
    return f'a String from one of these options "{joined}"'


def set_hint(options: Iterable[str]) -> str:
    joined = '", "'.join(options)
    return f'a Set of Strings selecting none, one or more of these options "{joined}"'


def item_label(item: Any, am: Optional[AttributeModel] = None) -> str:
    """Text shown to the LLM (and matched on the way back) for a loaded item."""
    nested = am.nested_entity_model if am is not None else None
    if nested is not None and nested.display_property:
        label = get_property(item, nested.display_property)
        if label is not None:
            return str(label)
    return str(item)


def attribute_type_hint(am: Optional[AttributeModel]) -> str:
    """Type hint derived from attribute metadata only (grid columns, headless filling)."""
    if am is None:
        return STRING_HINT
    if am.is_enum:
        return enum_hint(am.enum_constants)
    if am.type == DATE:
        return DATE_HINT
    if am.type == TIME:
        return TIME_HINT
    if am.type == DATETIME:
        return DATE_TIME_HINT
    if am.type == BOOLEAN:
        return BOOLEAN_HINT
    if am.type in (INTEGER, LONG):
        return INTEGER_HINT
    if am.type in (DOUBLE, FLOAT):
        return NUMBER_HINT
    if am.type == DECIMAL:
        return DOUBLE_HINT
    # strings and entity references (resolved later by lookup)
    return STRING_HINT


def grid_columns(grid: Any, am: Optional[AttributeModel]) -> List[str]:
    """Columns of a grid: declared by the grid itself, or else by the nested entity model."""
    columns = list(getattr(grid, "get_columns", lambda: [])() or [])
    if not columns and am is not None and am.nested_entity_model is not None:
        columns = am.nested_entity_model.get_attribute_names()
    return columns


def _attribute_model(entity_model: Optional[EntityModel], field_id: str) -> Optional[AttributeModel]:
    if entity_model is None:
        return None
    return entity_model.get_attribute_model(field_id)


def _is_multiple(field: Any) -> bool:
    is_multiple = getattr(field, "is_multiple", None)
    return bool(is_multiple()) if is_multiple is not None else False


def build_hierarchy(descriptors: List[FieldDescriptor],
                    entity_model: Optional[EntityModel] = None) -> Dict[str, Any]:
    hierarchy: Dict[str, Any] = {}
    for descriptor in descriptors:
        if descriptor.kind is FieldKind.DETAILS_EDIT_GRID:
            columns = grid_columns(descriptor.handle, _attribute_model(entity_model, descriptor.id))
            if not columns:
                logging.error(f"Grid with id {descriptor.id} declares no columns and cannot be filled")
                continue
            # a single exemplar row describes the shape, not the number of rows
            hierarchy[descriptor.id] = [{column: "" for column in columns}]
        elif descriptor.kind.is_list_shaped or _is_multiple(descriptor.handle):
            hierarchy[descriptor.id] = []
        else:
            hierarchy[descriptor.id] = ""
    return hierarchy


def _field_type_hint(descriptor: FieldDescriptor, am: Optional[AttributeModel]) -> Optional[str]:
    kind = descriptor.kind
    field = descriptor.handle

    if kind.is_text or kind is FieldKind.GENERIC:
        return STRING_HINT
    if kind is FieldKind.NUMBER_FIELD:
        return NUMBER_HINT
    if kind is FieldKind.INTEGER_FIELD:
        return INTEGER_HINT
    if kind is FieldKind.BIG_DECIMAL_FIELD:
        return DOUBLE_HINT
    if kind is FieldKind.DATE_PICKER:
        return DATE_HINT
    if kind is FieldKind.TIME_PICKER:
        return TIME_HINT
    if kind is FieldKind.DATE_TIME_PICKER:
        return DATE_TIME_HINT
    if kind is FieldKind.CHECKBOX:
        return BOOLEAN_HINT
    if kind is FieldKind.COMBO_BOX:
        if am is not None and am.is_enum:
            return enum_hint(am.enum_constants)
        return options_hint(str(item) for item in field.get_items())
    if kind is FieldKind.RADIO_BUTTON_GROUP:
        return options_hint(str(item) for item in field.get_items())
    if kind.is_multi_choice:
        return set_hint(str(item) for item in field.get_items())
    if kind in (FieldKind.ENTITY_COMBO_BOX, FieldKind.ENTITY_LIST_SELECT):
        return options_hint(item_label(item, am) for item in field.get_items())
    if kind is FieldKind.ENTITY_TOKEN_SELECT:
        return set_hint(item_label(item, am) for item in field.get_items())
    if kind is FieldKind.ENTITY_LOOKUP_FIELD:
        # the backing store is too large to list, values are resolved by lookup later on
        return STRING_HINT
    return None


def _build_grid_type_hints(hints: Dict[str, str], descriptor: FieldDescriptor,
                           am: Optional[AttributeModel]) -> None:
    if am is None or am.nested_entity_model is None:
        raise ValueError(f"no nested entity model available for grid '{descriptor.id}'")
    nested = am.nested_entity_model
    for column in grid_columns(descriptor.handle, am):
        hints[column] = attribute_type_hint(nested.get_attribute_model(column))


def build_type_hints(descriptors: List[FieldDescriptor],
                     entity_model: Optional[EntityModel] = None) -> Dict[str, str]:
    """Get the expected value format of every field, described for the LLM.

    The descriptions are not types of any programming language, they only
    help the LLM to format the values inside the JSON it returns. A field
    whose hint cannot be inferred is left out; the other fields are not
    affected.
    """
    hints: Dict[str, str] = {}
    for descriptor in descriptors:
        am = _attribute_model(entity_model, descriptor.id)
        try:
            if descriptor.kind is FieldKind.DETAILS_EDIT_GRID:
                _build_grid_type_hints(hints, descriptor, am)
                continue
            hint = _field_type_hint(descriptor, am)
            if hint is not None:
                hints[descriptor.id] = hint
        except Exception as e:
            logging.error(
                f"Error while inferring type of component {descriptor.id} of type "
                f"{type(descriptor.handle).__name__}: {e}"
            )
    return hints


def create_mapping(root: Any, entity_model: Optional[EntityModel] = None) -> ComponentsMapping:
    """Extract the fillable fields below *root* and build hierarchy and type hints for them."""
    descriptors = extract_fields(root)
    return ComponentsMapping(
        descriptors=descriptors,
        hierarchy=build_hierarchy(descriptors, entity_model),
        type_hints=build_type_hints(descriptors, entity_model),
    )
