"""
Field capability interface for form filling.

The autofill engine never depends on a UI toolkit. It only needs a tree of
objects that answer a handful of questions (is it visible, enabled,
read-only, what is its id) and that can be read from and written to. The
classes in this module implement that contract in memory; a host can hand
in its own objects instead as long as they expose the same methods.
"""

from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Set


class FieldKind(str, Enum):
    """Closed set of field kinds understood by the schema builder and the fill engine."""

    TEXT_FIELD = "text_field"
    TEXT_AREA = "text_area"
    EMAIL_FIELD = "email_field"
    PASSWORD_FIELD = "password_field"
    NUMBER_FIELD = "number_field"
    INTEGER_FIELD = "integer_field"
    BIG_DECIMAL_FIELD = "big_decimal_field"
    DATE_PICKER = "date_picker"
    TIME_PICKER = "time_picker"
    DATE_TIME_PICKER = "date_time_picker"
    COMBO_BOX = "combo_box"
    RADIO_BUTTON_GROUP = "radio_button_group"
    MULTI_SELECT_COMBO_BOX = "multi_select_combo_box"
    CHECKBOX_GROUP = "checkbox_group"
    CHECKBOX = "checkbox"
    ENTITY_COMBO_BOX = "entity_combo_box"
    ENTITY_TOKEN_SELECT = "entity_token_select"
    ENTITY_LIST_SELECT = "entity_list_select"
    ENTITY_LOOKUP_FIELD = "entity_lookup_field"
    DETAILS_EDIT_GRID = "details_edit_grid"
    GENERIC = "generic"

    @property
    def is_text(self) -> bool:
        return self in TEXT_KINDS

    @property
    def is_choice(self) -> bool:
        return self in (FieldKind.COMBO_BOX, FieldKind.RADIO_BUTTON_GROUP)

    @property
    def is_multi_choice(self) -> bool:
        return self in (FieldKind.MULTI_SELECT_COMBO_BOX, FieldKind.CHECKBOX_GROUP)

    @property
    def is_list_shaped(self) -> bool:
        """Whether the hierarchy placeholder for this kind is an array."""
        return (self.is_choice or self.is_multi_choice
                or self in (FieldKind.ENTITY_TOKEN_SELECT, FieldKind.DETAILS_EDIT_GRID))


TEXT_KINDS = frozenset({
    FieldKind.TEXT_FIELD,
    FieldKind.TEXT_AREA,
    FieldKind.EMAIL_FIELD,
    FieldKind.PASSWORD_FIELD,
})

SUPPORTED_KINDS = frozenset(FieldKind)


class Component:
    """A node in the field tree. Plain components are containers or decoration."""

    kind: Optional[FieldKind] = None

    def __init__(self, id: Optional[str] = None, visible: bool = True, enabled: bool = True,
                 read_only: bool = False, children: Optional[Iterable["Component"]] = None):
        self._id = id
        self.visible = visible
        self.enabled = enabled
        self.read_only = read_only
        self._children: List[Component] = list(children or [])

    def get_id(self) -> Optional[str]:
        return self._id

    def is_visible(self) -> bool:
        return self.visible

    def is_enabled(self) -> bool:
        return self.enabled

    def is_read_only(self) -> bool:
        return self.read_only

    def get_children(self) -> List["Component"]:
        return list(self._children)

    def add(self, *components: "Component") -> None:
        self._children.extend(components)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r})"


class Layout(Component):
    """Plain container, children are walked in display order."""


class TabSheet(Component):
    """
    Tab-like container. Only the selected page is reachable through
    get_children(); the other pages are reachable through get_component_at().
    """

    def __init__(self, id: Optional[str] = None, pages: Optional[Iterable[Component]] = None,
                 selected_index: int = 0, **kwargs):
        super().__init__(id=id, **kwargs)
        self._pages: List[Component] = list(pages or [])
        self.selected_index = selected_index

    def get_tab_count(self) -> int:
        return len(self._pages)

    def get_component_at(self, index: int) -> Component:
        return self._pages[index]

    def get_children(self) -> List[Component]:
        if not self._pages:
            return []
        return [self._pages[self.selected_index]]


class Field(Component):
    """A component holding a value."""

    def __init__(self, id: Optional[str] = None, value: Any = None, **kwargs):
        super().__init__(id=id, **kwargs)
        self.value = value

    def get_value(self) -> Any:
        return self.value

    def set_value(self, value: Any) -> None:
        self.value = value


class TextField(Field):
    kind = FieldKind.TEXT_FIELD


class TextArea(Field):
    kind = FieldKind.TEXT_AREA


class EmailField(Field):
    kind = FieldKind.EMAIL_FIELD


class PasswordField(Field):
    kind = FieldKind.PASSWORD_FIELD


class NumberField(Field):
    kind = FieldKind.NUMBER_FIELD


class IntegerField(Field):
    kind = FieldKind.INTEGER_FIELD


class BigDecimalField(Field):
    kind = FieldKind.BIG_DECIMAL_FIELD


class DatePicker(Field):
    kind = FieldKind.DATE_PICKER


class TimePicker(Field):
    kind = FieldKind.TIME_PICKER


class DateTimePicker(Field):
    kind = FieldKind.DATE_TIME_PICKER


class Checkbox(Field):
    kind = FieldKind.CHECKBOX


class GenericField(Field):
    """Fallback for any host field that only exposes a settable value."""

    kind = FieldKind.GENERIC


class _ItemsField(Field):
    """A field backed by a list of currently loaded items."""

    def __init__(self, id: Optional[str] = None, items: Optional[Iterable[Any]] = None,
                 allow_custom_value: bool = False, **kwargs):
        super().__init__(id=id, **kwargs)
        self._items = list(items or [])
        self.allow_custom_value = allow_custom_value

    def get_items(self) -> List[Any]:
        return list(self._items)

    def set_items(self, items: Iterable[Any]) -> None:
        self._items = list(items)

    def is_allow_custom_value(self) -> bool:
        return self.allow_custom_value


class ComboBox(_ItemsField):
    kind = FieldKind.COMBO_BOX


class RadioButtonGroup(_ItemsField):
    kind = FieldKind.RADIO_BUTTON_GROUP

    def is_allow_custom_value(self) -> bool:
        return False


class MultiSelectComboBox(_ItemsField):
    kind = FieldKind.MULTI_SELECT_COMBO_BOX

    def __init__(self, id: Optional[str] = None, **kwargs):
        kwargs.setdefault("value", set())
        super().__init__(id=id, **kwargs)

    def get_value(self) -> Set[Any]:
        return set(self.value or ())


class CheckboxGroup(MultiSelectComboBox):
    kind = FieldKind.CHECKBOX_GROUP

    def is_allow_custom_value(self) -> bool:
        return False


class EntityComboBox(_ItemsField):
    """Single entity reference picked from a loaded list of entities."""

    kind = FieldKind.ENTITY_COMBO_BOX


class EntityTokenSelect(_ItemsField):
    """Multiple entity references picked from a loaded list of entities."""

    kind = FieldKind.ENTITY_TOKEN_SELECT

    def __init__(self, id: Optional[str] = None, **kwargs):
        kwargs.setdefault("value", [])
        super().__init__(id=id, **kwargs)


class EntityListSelect(_ItemsField):
    kind = FieldKind.ENTITY_LIST_SELECT


class EntityLookupField(Field):
    """
    Entity reference backed by a store too large to list; values can only be
    resolved through an entity lookup.
    """

    kind = FieldKind.ENTITY_LOOKUP_FIELD

    def __init__(self, id: Optional[str] = None, multiple: bool = False, **kwargs):
        if multiple:
            kwargs.setdefault("value", [])
        super().__init__(id=id, **kwargs)
        self.multiple = multiple

    def is_multiple(self) -> bool:
        return self.multiple


class DetailsEditGrid(Field):
    """Repeating row group. Rows are entities created through create_row()."""

    kind = FieldKind.DETAILS_EDIT_GRID

    def __init__(self, id: Optional[str] = None, columns: Optional[Iterable[str]] = None,
                 row_factory: Callable[[], Any] = dict, **kwargs):
        kwargs.setdefault("value", [])
        super().__init__(id=id, **kwargs)
        self._columns = list(columns or [])
        self._row_factory = row_factory

    def get_columns(self) -> List[str]:
        return list(self._columns)

    def create_row(self) -> Any:
        return self._row_factory()

    def get_rows(self) -> List[Any]:
        return list(self.value)

    def set_rows(self, rows: Iterable[Any]) -> None:
        self.value = list(rows)
