"""
Metadata driven form filling without a live form.

Instead of walking a tree of fields, the service derives the JSON template
directly from an entity model and returns the converted values to the
caller (for instance a web client that fills its own form).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .fill_processor import (
    is_missing, match_enum, parse_boolean, parse_date, parse_datetime, parse_decimal,
    parse_float, parse_integer, parse_time, resolve_entities, resolve_entity, to_text,
)
from .llm_client import AIServiceOrchestrator, AIServiceType
from .lookup import LookupRegistry
from .metadata import (
    BOOLEAN, DATE, DATETIME, DECIMAL, DOUBLE, FLOAT, INTEGER, LONG, TIME,
    AttributeModel, AttributeType, EditableType, EntityModel,
)
from .prompts import form_fill_prompt
from .response_parser import parse_response
from .schema_builder import attribute_type_hint


@dataclass
class AutoFillRequest:
    input: str
    type: AIServiceType
    additional_instructions: Optional[str] = None


def filter_attribute_models(entity_model: EntityModel) -> List[AttributeModel]:
    """Attribute models that appear inside the edit form and can be edited."""
    return [
        am for am in entity_model.attribute_models
        if am.visible_in_form and am.editable_type in (EditableType.EDITABLE, EditableType.CREATE_ONLY)
    ]


def build_attribute_mapping(attribute_models: List[AttributeModel]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Hierarchy and type hints for a list of attribute models; nested details one level deep."""
    hierarchy: Dict[str, Any] = {}
    hints: Dict[str, str] = {}
    for am in attribute_models:
        try:
            if am.is_grid and am.nested_entity_model is not None:
                nested = filter_attribute_models(am.nested_entity_model)
                hierarchy[am.name] = [{n.name: "" for n in nested}]
                for n in nested:
                    hints[n.name] = attribute_type_hint(n)
            else:
                hierarchy[am.name] = ""
                hints[am.name] = attribute_type_hint(am)
        except Exception as e:
            logging.error(f"Error while inferring type of attribute {am.name}: {e}")
    return hierarchy, hints


def convert_attribute_value(am: AttributeModel, value: Any, lookups: Optional[LookupRegistry]) -> Any:
    """Convert one value of the LLM response into the type declared by *am*."""
    if am.is_grid and am.nested_entity_model is not None:
        if not isinstance(value, list):
            logging.warning(f"Response for {am.name} could not be interpreted as a list, skipping")
            return None
        nested = filter_attribute_models(am.nested_entity_model)
        return [convert_tree(entry, nested, lookups) for entry in value if isinstance(entry, dict)]
    if am.is_entity_reference:
        if am.attribute_type == AttributeType.DETAIL:
            return resolve_entities(am, value, lookups)
        return resolve_entity(am, value, lookups)
    if am.is_enum:
        return match_enum(am.enum_constants, value)
    if am.type in (INTEGER, LONG):
        return parse_integer(value)
    if am.type in (DOUBLE, FLOAT):
        return parse_float(value)
    if am.type == DECIMAL:
        return parse_decimal(value)
    if am.type == DATE:
        return parse_date(value)
    if am.type == TIME:
        return parse_time(value)
    if am.type == DATETIME:
        return parse_datetime(value)
    if am.type == BOOLEAN:
        return parse_boolean(value)
    return to_text(value)


def convert_tree(tree: Dict[str, Any], attribute_models: List[AttributeModel],
                 lookups: Optional[LookupRegistry]) -> Dict[str, Any]:
    """Converted values for every known attribute present in *tree*; unknown keys are dropped."""
    converted: Dict[str, Any] = {}
    for am in attribute_models:
        value = tree.get(am.name)
        if is_missing(value):
            continue
        try:
            converted[am.name] = convert_attribute_value(am, value, lookups)
        except Exception as e:
            logging.error(f"Error while converting value for attribute {am.name}: {e}")
            converted[am.name] = None
    return converted


class FormFillService:
    def __init__(self, orchestrator: AIServiceOrchestrator, lookups: Optional[LookupRegistry] = None,
                 entity_models: Optional[Dict[str, EntityModel]] = None):
        self.orchestrator = orchestrator
        self.lookups = lookups
        self.entity_models = dict(entity_models or {})

    def find_supported_services(self) -> List[AIServiceType]:
        return self.orchestrator.find_supported_services()

    def get_entity_model(self, name: str) -> Optional[EntityModel]:
        return self.entity_models.get(name)

    def build_prompt(self, entity_model: EntityModel, request: AutoFillRequest) -> str:
        attribute_models = filter_attribute_models(entity_model)
        hierarchy, hints = build_attribute_mapping(attribute_models)
        field_instructions = {am.name: am.autofill_instructions for am in attribute_models
                              if am.autofill_instructions}

        context_instructions = []
        if entity_model.autofill_instructions:
            context_instructions.append(entity_model.autofill_instructions)
        if request.additional_instructions:
            context_instructions.append(request.additional_instructions)

        return form_fill_prompt(request.input, hierarchy, hints, field_instructions, context_instructions)

    def auto_fill_form(self, entity_model: EntityModel, request: AutoFillRequest) -> Dict[str, Any]:
        """Ask the AI service for the values of *entity_model* described by the request input.

        Returns the converted values by attribute name. Attributes the response
        does not mention are left out; values that cannot be converted are None.
        """
        if not request.input or not request.input.strip():
            raise ValueError("Input for the form filler must not be empty")

        prompt = self.build_prompt(entity_model, request)
        logging.debug(f"Generated Prompt: {prompt}")
        response = self.orchestrator.execute(request.type, prompt)
        logging.info(f"AI response for {entity_model.name}: {response}")

        return convert_tree(parse_response(response), filter_attribute_models(entity_model), self.lookups)
