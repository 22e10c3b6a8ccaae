# Prompt templates for autofill

import json
from typing import Any, Dict, Iterable, Mapping, Optional

from .field_extraction import get_field_id

CONNECTIVITY_TEST_PROMPT = "Hello, world!"

NOT_SPECIFIED = "N/A"


# ---------------------------------------------------------------------------
# Centralized prompt generation helpers
# ---------------------------------------------------------------------------


def _resolve_instruction_ids(field_instructions: Optional[Mapping[Any, str]]) -> Dict[str, str]:
    """Key instructions by field id. Keys may be field ids or field objects; fields without an id are skipped."""
    resolved: Dict[str, str] = {}
    for key, instruction in (field_instructions or {}).items():
        field_id = key if isinstance(key, str) else get_field_id(key)
        if not field_id or not instruction:
            continue
        resolved[field_id] = instruction
    return resolved


def _sentence(text: str) -> str:
    text = text.strip()
    return text if text.endswith(".") else f"{text}."


def form_fill_prompt(
    user_input: str,
    hierarchy: Dict[str, Any],
    type_hints: Dict[str, str],
    field_instructions: Optional[Mapping[Any, str]] = None,
    context_instructions: Optional[Iterable[str]] = None,
) -> str:
    """Prompt asking the LLM to turn *user_input* into a JSON object shaped like *hierarchy*.

    Args:
        user_input: Natural language text the user wants to put into the form.
        hierarchy: Template object with one empty placeholder per field.
        type_hints: Expected format per field id (or grid column name).
        field_instructions: Extra instructions per field, keyed by field id or field.
        context_instructions: Free-form instructions about the input as a whole.

    Returns:
        A fully-formed prompt string.
    """
    prompt = (
        f"Based on the user input: '{user_input}', generate a JSON object according to these instructions:\n"
        f"1. Fill out the values of this JSON object: {json.dumps(hierarchy, ensure_ascii=False)}\n"
        "2. If a key appears more than once, keep only its first occurrence.\n"
        f"3. Use the value \"{NOT_SPECIFIED}\" for any value the user did not specify.\n"
        "4. Return ONLY a valid JSON object in the given shape. Do not include any markdown formatting, "
        "code blocks, or explanatory text - just the raw JSON object.\n"
    )

    instructions = _resolve_instruction_ids(field_instructions)
    if type_hints or instructions:
        prompt += "\nAdditional instructions about the JSON fields:\n"
        for field_id, hint in type_hints.items():
            prompt += f"- {field_id}: Format this JSON field as {hint}.\n"
        for field_id, instruction in instructions.items():
            prompt += f"- {field_id}: {_sentence(instruction)}\n"

    context = [c.strip() for c in (context_instructions or []) if c and c.strip()]
    if context:
        prompt += "\nAdditional context instructions:\n"
        prompt += "\n".join(context) + "\n"

    return prompt
