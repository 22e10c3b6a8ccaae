"""
Main form filler module.

This module provides the main entry point for form filling functionality,
coordinating field extraction, schema building, the LLM call, response
parsing and filling the values back into the fields.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .field_extraction import get_field_id
from .fill_processor import fill_components
from .llm_client import AIServiceOrchestrator, AIServiceType
from .lookup import LookupRegistry
from .metadata import EntityModel
from .prompts import form_fill_prompt
from .response_parser import parse_response
from .schema_builder import create_mapping


@dataclass(frozen=True)
class FormFillerResult:
    prompt: str
    response: str


class FormFiller:
    """Fills a form (a component or a tree of components) from natural language input.

    Args:
        target: The component or container of components to fill.
        orchestrator: Routes the prompt to the selected AI service.
        field_instructions: Extra instructions for single fields (format, meaning, ...),
            keyed by field or field id. Use them when the result for a field is not
            accurate enough.
        context_instructions: Extra instructions about the input as a whole (language,
            vocabulary, ...). Inconsistent instructions make the result worse, as the
            LLM tries to satisfy all of them.
        lookups: Lookup services used to resolve entity references.
    """

    def __init__(
        self,
        target: Any,
        orchestrator: AIServiceOrchestrator,
        field_instructions: Optional[Mapping[Any, str]] = None,
        context_instructions: Optional[List[str]] = None,
        lookups: Optional[LookupRegistry] = None,
    ):
        self.target = target
        self.orchestrator = orchestrator
        self.field_instructions = dict(field_instructions or {})
        self.context_instructions = list(context_instructions or [])
        self.lookups = lookups

    def _instructions_for(self, field_ids: List[str], entity_model: Optional[EntityModel]) -> Dict[str, str]:
        instructions: Dict[str, str] = {}
        if entity_model is not None:
            for field_id in field_ids:
                am = entity_model.get_attribute_model(field_id)
                if am is not None and am.autofill_instructions:
                    instructions[field_id] = am.autofill_instructions
        for key, instruction in self.field_instructions.items():
            field_id = key if isinstance(key, str) else get_field_id(key)
            if field_id:
                instructions[field_id] = instruction
        return instructions

    def _context_for(self, entity_model: Optional[EntityModel]) -> List[str]:
        context = []
        if entity_model is not None and entity_model.autofill_instructions:
            context.append(entity_model.autofill_instructions)
        context.extend(self.context_instructions)
        return context

    def fill(self, user_input: str, service_type: AIServiceType,
             entity_model: Optional[EntityModel] = None) -> FormFillerResult:
        """Fill the target from *user_input*.

        Errors of the AI service are raised before any field is changed. Fields
        that cannot be filled are logged and keep their value.

        Returns:
            The prompt sent and the raw response received.
        """
        if not user_input or not user_input.strip():
            raise ValueError("Input for the form filler must not be empty")

        mapping = create_mapping(self.target, entity_model)
        prompt = form_fill_prompt(
            user_input,
            mapping.hierarchy,
            mapping.type_hints,
            self._instructions_for([d.id for d in mapping.descriptors], entity_model),
            self._context_for(entity_model),
        )
        logging.debug(f"Generated Prompt: {prompt}")

        response = self.orchestrator.execute(service_type, prompt)
        logging.debug(f"AI response: {response.strip()}")

        values = parse_response(response)
        fill_components(mapping.descriptors, values, entity_model, self.lookups)

        return FormFillerResult(prompt=prompt, response=response)
