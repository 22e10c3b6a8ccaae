"""
Entity metadata consumed by the autofill engine.

Entity and attribute models are produced ahead of time (by hand or by a
separate metadata generator, typically from a YAML file) and are read-only
as far as form filling is concerned. They tell the engine what an attribute
holds, which enumeration constants are legal and which nested entity a
reference or a grid row points to.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

import yaml


class TemporalFormat(NamedTuple):
    pattern: str   # the format as shown to the LLM
    strptime: str  # the same format for datetime.strptime


DATE_FORMAT = TemporalFormat("yyyy-MM-dd", "%Y-%m-%d")
TIME_FORMAT = TemporalFormat("HH:mm:ss", "%H:%M:%S")
DATE_TIME_FORMAT = TemporalFormat("yyyy-MM-ddTHH:mm:ss", "%Y-%m-%dT%H:%M:%S")


class AttributeType(str, Enum):
    BASIC = "BASIC"
    MASTER = "MASTER"  # reference to a single entity
    DETAIL = "DETAIL"  # collection of entities
    ELEMENT_COLLECTION = "ELEMENT_COLLECTION"


class EditableType(str, Enum):
    EDITABLE = "EDITABLE"
    CREATE_ONLY = "CREATE_ONLY"
    READ_ONLY = "READ_ONLY"


# value types an attribute can declare
STRING = "string"
INTEGER = "integer"
LONG = "long"
DOUBLE = "double"
FLOAT = "float"
DECIMAL = "decimal"
DATE = "date"
TIME = "time"
DATETIME = "datetime"
BOOLEAN = "boolean"
ENUM = "enum"
ENTITY = "entity"

NUMBER_TYPES = frozenset({INTEGER, LONG, DOUBLE, FLOAT, DECIMAL})
VALUE_TYPES = frozenset({STRING, DATE, TIME, DATETIME, BOOLEAN, ENUM, ENTITY}) | NUMBER_TYPES


@dataclass
class AttributeModel:
    name: str
    type: str = STRING
    attribute_type: AttributeType = AttributeType.BASIC
    enum_constants: List[str] = field(default_factory=list)
    nested_entity_model: Optional["EntityModel"] = None
    nested_details: bool = False
    visible_in_form: bool = True
    editable_type: EditableType = EditableType.EDITABLE
    autofill_instructions: Optional[str] = None

    @property
    def is_enum(self) -> bool:
        return self.type == ENUM and bool(self.enum_constants)

    @property
    def is_entity_reference(self) -> bool:
        return self.attribute_type in (AttributeType.MASTER, AttributeType.DETAIL) \
            and self.nested_entity_model is not None

    @property
    def is_grid(self) -> bool:
        return self.attribute_type == AttributeType.DETAIL and self.nested_details


@dataclass
class EntityModel:
    name: str
    attribute_models: List[AttributeModel] = field(default_factory=list)
    display_property: Optional[str] = None
    autofill_instructions: Optional[str] = None

    def get_attribute_model(self, name: Optional[str]) -> Optional[AttributeModel]:
        if not name:
            return None
        for am in self.attribute_models:
            if am.name == name:
                return am
        return None

    def get_attribute_names(self) -> List[str]:
        return [am.name for am in self.attribute_models]


def _parse_attribute(raw: Dict[str, Any]) -> AttributeModel:
    value_type = str(raw.get("type", STRING)).lower()
    if value_type not in VALUE_TYPES:
        raise ValueError(f"Unsupported attribute type '{value_type}' for attribute '{raw.get('name')}'")
    attribute_type = AttributeType(str(raw.get("attribute_type", AttributeType.BASIC.value)).upper())
    if attribute_type == AttributeType.BASIC and raw.get("nested_entity"):
        attribute_type = AttributeType.MASTER
    return AttributeModel(
        name=raw["name"],
        type=value_type,
        attribute_type=attribute_type,
        enum_constants=[str(c) for c in raw.get("enum_constants", [])],
        nested_details=bool(raw.get("nested_details", False)),
        visible_in_form=bool(raw.get("visible_in_form", True)),
        editable_type=EditableType(str(raw.get("editable_type", EditableType.EDITABLE.value)).upper()),
        autofill_instructions=raw.get("autofill_instructions"),
    )


def parse_entity_models(data: Dict[str, Any]) -> Dict[str, EntityModel]:
    """Build entity models from the ``entities`` section of a metadata document.

    Nested entity references are given by name and are resolved once every
    model has been created, so models may refer to each other in any order.
    """
    raw_entities = (data or {}).get("entities") or {}
    models: Dict[str, EntityModel] = {}
    pending: List[tuple] = []

    for name, raw in raw_entities.items():
        raw = raw or {}
        model = EntityModel(
            name=name,
            display_property=raw.get("display_property"),
            autofill_instructions=raw.get("autofill_instructions"),
        )
        for raw_attribute in raw.get("attributes") or []:
            am = _parse_attribute(raw_attribute)
            model.attribute_models.append(am)
            if raw_attribute.get("nested_entity"):
                pending.append((model.name, am, raw_attribute["nested_entity"]))
        models[name] = model

    for owner, am, nested_name in pending:
        nested = models.get(nested_name)
        if nested is None:
            raise ValueError(f"Attribute '{owner}.{am.name}' refers to unknown entity '{nested_name}'")
        am.nested_entity_model = nested

    logging.debug(f"Loaded {len(models)} entity models: {list(models)}")
    return models


def load_metadata_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_entity_models(path: str) -> Dict[str, EntityModel]:
    """Load entity models from a YAML metadata file."""
    return parse_entity_models(load_metadata_file(path))
