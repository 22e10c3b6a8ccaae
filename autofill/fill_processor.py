"""
Fill-back processing for form filling.

This module writes the values parsed from the LLM response back into the
fields they belong to, converting every value into the native type of its
field. Entity references are resolved through the lookup services, nested
grid rows are rebuilt from scratch. A field that cannot be filled is logged
and skipped; it never stops the other fields from being filled.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set

from .components import FieldKind
from .field_extraction import FieldDescriptor
from .lookup import (
    LookupRegistry, find_entities, find_entity, is_blank, is_missing, set_property, split_candidates,
)
from .metadata import (
    DATE_FORMAT, DATE_TIME_FORMAT, TIME_FORMAT, AttributeModel, AttributeType, EntityModel,
)
from .schema_builder import grid_columns, item_label


# ---------------------------------------------------------------------------
# Value conversion helpers
# ---------------------------------------------------------------------------


def first_value(value: Any) -> Any:
    """Single-valued fields get an array placeholder for choices; use its first element."""
    if isinstance(value, (list, tuple)):
        present = [v for v in value if not is_missing(v)]
        return present[0] if present else None
    return value


def to_text(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(v) for v in value if not is_missing(v))
    return str(value)


def parse_integer(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f"cannot convert boolean {value} to an integer")
    return int(str(value).strip())


def parse_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError(f"cannot convert boolean {value} to a number")
    return float(str(value).strip())


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError(f"cannot convert boolean {value} to a decimal")
    return Decimal(str(parse_float(value)))


def parse_date(value: Any) -> date:
    return datetime.strptime(str(value).strip(), DATE_FORMAT.strptime).date()


def parse_time(value: Any) -> time:
    return datetime.strptime(str(value).strip(), TIME_FORMAT.strptime).time()


def parse_datetime(value: Any) -> datetime:
    return datetime.strptime(str(value).strip(), DATE_TIME_FORMAT.strptime)


def parse_boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a Boolean but got {value!r}")
    return value


def match_enum(constants: Iterable[str], value: Any) -> Optional[str]:
    """Case-insensitive match of *value* against enumeration constants; first match wins."""
    wanted = str(value).strip().upper()
    for constant in constants:
        if str(constant).upper() == wanted:
            return constant
    return None


def to_string_set(value: Any) -> Set[str]:
    if not isinstance(value, (list, tuple, set)):
        raise TypeError(f"expected a JSON array but got {type(value).__name__}")
    return {str(v).strip() for v in value if not is_missing(v)}


def _find_item(items: Iterable[Any], value: Any) -> Optional[Any]:
    for item in items:
        if item == value or str(item) == str(value):
            return item
    return None


# ---------------------------------------------------------------------------
# Entity references
# ---------------------------------------------------------------------------


def _lookup_for(am: Optional[AttributeModel], lookups: Optional[LookupRegistry]):
    """Lookup service and display property for the entity referenced by *am*, or None."""
    if am is None or am.nested_entity_model is None:
        return None
    nested = am.nested_entity_model
    if not nested.display_property:
        logging.warning(f"Entity model {nested.name} has no display property, cannot look up values")
        return None
    lookup = lookups.get(nested.name) if lookups is not None else None
    if lookup is None:
        logging.warning(f"Could not find lookup service for {nested.name}")
        return None
    return lookup, nested.display_property


def resolve_entity(am: Optional[AttributeModel], value: Any, lookups: Optional[LookupRegistry]) -> Optional[Any]:
    resolved = _lookup_for(am, lookups)
    if resolved is None:
        return None
    lookup, display_property = resolved
    candidate = first_value(value)
    if is_missing(candidate):
        return None
    return find_entity(lookup, display_property, str(candidate).strip())


def resolve_entities(am: Optional[AttributeModel], value: Any, lookups: Optional[LookupRegistry]) -> List[Any]:
    resolved = _lookup_for(am, lookups)
    if resolved is None:
        return []
    lookup, display_property = resolved
    return find_entities(lookup, display_property, value)


def _fill_based_on_attribute_model(field: Any, value: Any, am: Optional[AttributeModel],
                                   lookups: Optional[LookupRegistry], collection: bool) -> bool:
    """Set an entity field by looking up matching entities; True if a value could be set."""
    if collection:
        entities = resolve_entities(am, value, lookups)
        if entities:
            field.set_value(entities)
            return True
        return False

    entity = resolve_entity(am, value, lookups)
    if entity is not None:
        field.set_value(entity)
        return True
    return False


def _match_loaded_item(field: Any, candidate: Any, am: Optional[AttributeModel]) -> Optional[Any]:
    if is_blank(candidate):
        return None
    text = str(candidate).strip()
    for item in field.get_items():
        if text in item_label(item, am):
            return item
    return None


# ---------------------------------------------------------------------------
# Per kind filling
# ---------------------------------------------------------------------------


def _fill_single_choice(field: Any, value: Any, am: Optional[AttributeModel]) -> bool:
    candidate = first_value(value)
    if is_missing(candidate):
        return False
    if am is not None and am.is_enum:
        constant = match_enum(am.enum_constants, candidate)
        if constant is None:
            return False
        field.set_value(constant)
        return True
    if field.is_allow_custom_value():
        field.set_value(candidate)
        return True
    item = _find_item(field.get_items(), candidate)
    if item is None:
        return False
    field.set_value(item)
    return True


def _fill_multi_choice(field: Any, value: Any) -> bool:
    selected = to_string_set(value)
    if not field.is_allow_custom_value():
        selected = {item for item in field.get_items() if str(item) in selected}
    field.set_value(selected)
    return True


def _fill_entity_select(field: Any, value: Any, am: Optional[AttributeModel],
                        lookups: Optional[LookupRegistry]) -> bool:
    if _fill_based_on_attribute_model(field, value, am, lookups, collection=False):
        return True
    item = _match_loaded_item(field, first_value(value), am)
    if item is None:
        return False
    field.set_value(item)
    return True


def _fill_entity_token_select(field: Any, value: Any, am: Optional[AttributeModel],
                              lookups: Optional[LookupRegistry]) -> bool:
    if _fill_based_on_attribute_model(field, value, am, lookups, collection=True):
        return True
    items: List[Any] = []
    for candidate in split_candidates(value):
        item = _match_loaded_item(field, candidate, am)
        if item is not None and not any(item is existing for existing in items):
            items.append(item)
    if not items:
        return False
    field.set_value(items)
    return True


def _fill_entity_lookup(field: Any, value: Any, am: Optional[AttributeModel],
                        lookups: Optional[LookupRegistry]) -> bool:
    if am is not None:
        collection = am.attribute_type == AttributeType.DETAIL
    else:
        collection = bool(getattr(field, "is_multiple", lambda: False)())
    # there is no list of loaded values to fall back on
    return _fill_based_on_attribute_model(field, value, am, lookups, collection)


def convert_column_value(value: Any, am: Optional[AttributeModel], lookups: Optional[LookupRegistry]) -> Any:
    """Value for one column of a grid row."""
    if am is not None and am.is_enum:
        return match_enum(am.enum_constants, value)
    if am is not None and am.attribute_type == AttributeType.MASTER and am.nested_entity_model is not None:
        return resolve_entity(am, value, lookups)
    return value


def _fill_details_grid(descriptor: FieldDescriptor, value: Any, am: Optional[AttributeModel],
                       lookups: Optional[LookupRegistry]) -> bool:
    if not isinstance(value, list):
        logging.warning(f"Response for grid {descriptor.id} could not be interpreted as a list, skipping")
        return False
    if not value:
        logging.info(f"Response for grid {descriptor.id} contains no rows, keeping the current rows")
        return False

    grid = descriptor.handle
    nested: Optional[EntityModel] = am.nested_entity_model if am is not None else None
    columns = grid_columns(grid, am)

    rows = []
    for entry in value:
        if not isinstance(entry, dict):
            logging.warning(f"Skipping row {entry!r} for grid {descriptor.id}: not a JSON object")
            continue
        row = grid.create_row()
        for column in columns:
            if column not in entry or is_missing(entry[column]):
                continue
            column_model = nested.get_attribute_model(column) if nested is not None else None
            try:
                set_property(row, column, convert_column_value(entry[column], column_model, lookups))
            except Exception as e:
                logging.error(f"Failed to set field value for '{column}': {e}")
        rows.append(row)

    if not rows:
        logging.warning(f"No usable rows in the response for grid {descriptor.id}, skipping")
        return False
    grid.set_rows(rows)
    return True


def fill_field(descriptor: FieldDescriptor, value: Any, am: Optional[AttributeModel] = None,
               lookups: Optional[LookupRegistry] = None) -> bool:
    """Convert *value* for the field of *descriptor* and set it.

    Returns False when the value did not match anything the field accepts.
    Conversion errors are raised to the caller.
    """
    kind = descriptor.kind
    field = descriptor.handle

    if kind is FieldKind.DETAILS_EDIT_GRID:
        return _fill_details_grid(descriptor, value, am, lookups)
    if kind.is_text or kind is FieldKind.GENERIC:
        field.set_value(to_text(value))
    elif kind is FieldKind.NUMBER_FIELD:
        field.set_value(parse_float(value))
    elif kind is FieldKind.INTEGER_FIELD:
        field.set_value(parse_integer(value))
    elif kind is FieldKind.BIG_DECIMAL_FIELD:
        field.set_value(parse_decimal(value))
    elif kind is FieldKind.DATE_PICKER:
        field.set_value(parse_date(value))
    elif kind is FieldKind.TIME_PICKER:
        field.set_value(parse_time(value))
    elif kind is FieldKind.DATE_TIME_PICKER:
        field.set_value(parse_datetime(value))
    elif kind is FieldKind.CHECKBOX:
        field.set_value(parse_boolean(value))
    elif kind.is_choice:
        return _fill_single_choice(field, value, am)
    elif kind.is_multi_choice:
        return _fill_multi_choice(field, value)
    elif kind in (FieldKind.ENTITY_COMBO_BOX, FieldKind.ENTITY_LIST_SELECT):
        return _fill_entity_select(field, value, am, lookups)
    elif kind is FieldKind.ENTITY_TOKEN_SELECT:
        return _fill_entity_token_select(field, value, am, lookups)
    elif kind is FieldKind.ENTITY_LOOKUP_FIELD:
        return _fill_entity_lookup(field, value, am, lookups)
    else:
        logging.warning(f"Component type not supported: {type(field).__name__}")
        return False
    return True


def fill_components(descriptors: List[FieldDescriptor], values: Dict[str, Any],
                    entity_model: Optional[EntityModel] = None,
                    lookups: Optional[LookupRegistry] = None) -> None:
    """Fill every field of *descriptors* from the parsed LLM response *values*.

    Keys of *values* without a matching descriptor are ignored.
    """
    filled = skipped = failed = 0
    for descriptor in descriptors:
        value = values.get(descriptor.id)
        if is_missing(value):
            logging.warning(f"No response value found for component: {descriptor.id}")
            skipped += 1
            continue

        am = entity_model.get_attribute_model(descriptor.id) if entity_model is not None else None
        try:
            if fill_field(descriptor, value, am, lookups):
                filled += 1
            else:
                logging.info(f"No matching value for component {descriptor.id}: {value!r}")
                skipped += 1
        except Exception as e:
            logging.error(f"Error while updating component with id: {descriptor.id} Cause: {e}")
            failed += 1

    logging.info(f"Filled {filled} of {len(descriptors)} components ({skipped} skipped, {failed} failed)")
