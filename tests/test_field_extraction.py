import logging

from autofill.components import (
    Checkbox, ComboBox, FieldKind, IntegerField, Layout, TabSheet, TextArea, TextField,
)
from autofill.field_extraction import extract_fields, is_supported_and_accepted


def ids(descriptors):
    return [d.id for d in descriptors]


def test_fields_are_collected_in_document_order():
    root = Layout(children=[
        TextField("name"),
        Layout(children=[IntegerField("age"), TextArea("notes")]),
        Checkbox("active"),
    ])

    descriptors = extract_fields(root)

    assert ids(descriptors) == ["name", "age", "notes", "active"]
    assert descriptors[1].kind is FieldKind.INTEGER_FIELD
    assert descriptors[1].handle is root.get_children()[1].get_children()[0]


def test_ineligible_fields_are_skipped():
    root = Layout(children=[
        TextField("hidden", visible=False),
        TextField("disabled", enabled=False),
        TextField("readonly", read_only=True),
        TextField("name"),
    ])

    assert ids(extract_fields(root)) == ["name"]


def test_children_of_ineligible_containers_are_walked():
    root = Layout(id="outer", children=[Layout(visible=False, children=[TextField("inner")])])

    assert ids(extract_fields(root)) == ["inner"]


def test_field_without_id_is_skipped_with_a_warning(caplog):
    root = Layout(children=[TextField(), TextField("name")])

    with caplog.at_level(logging.WARNING):
        descriptors = extract_fields(root)

    assert ids(descriptors) == ["name"]
    assert "has no id" in caplog.text


def test_every_tab_page_is_walked():
    tabs = TabSheet(pages=[
        Layout(children=[TextField("first")]),
        Layout(children=[TextField("second")]),
    ], selected_index=0)

    assert len(tabs.get_children()) == 1
    assert ids(extract_fields(Layout(children=[tabs]))) == ["first", "second"]


def test_duplicate_ids_keep_the_first_field():
    first = TextField("name")
    root = Layout(children=[first, TextField("name")])

    descriptors = extract_fields(root)

    assert len(descriptors) == 1
    assert descriptors[0].handle is first


def test_objects_of_unknown_kind_are_not_accepted():
    class Slider:
        kind = "slider"

        def get_id(self):
            return "volume"

    assert not is_supported_and_accepted(Slider())


def test_host_objects_only_need_the_capability_methods():
    class HostCombo:
        kind = "combo_box"

        def get_id(self):
            return "color"

        def is_visible(self):
            return True

    descriptors = extract_fields(Layout(children=[HostCombo(), ComboBox("size", items=["S"])]))

    assert ids(descriptors) == ["color", "size"]


def test_failing_capability_check_skips_the_node():
    class Broken(TextField):
        def is_visible(self):
            raise RuntimeError("detached")

    assert ids(extract_fields(Layout(children=[Broken("x"), TextField("y")]))) == ["y"]
