"""
Response parsing for form filling.

This module turns the raw text returned by the LLM into a dictionary. LLM
output is often almost, but not quite, valid JSON, so a few common artifacts
are repaired first. When the text still cannot be parsed an empty
dictionary is returned: no data extracted is a valid outcome, not an error.
"""

import re
import json
import logging
from typing import Any, Dict, List, Tuple

import yaml
from json_repair import repair_json

# trailing comma before a closing brace on a following line
_TRAILING_COMMA = re.compile(r",[ \t]*(?:\r\n|\r|\n)\s*}")
_CODE_FENCE = re.compile(r"```(?:json)?")


def _first_key_wins(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            logging.debug(f"Duplicate key '{key}' in response, keeping the first occurrence")
            continue
        result[key] = value
    return result


class _FirstKeyWinsLoader(yaml.SafeLoader):
    """YAML loader used for lenient parsing; duplicate keys keep their first value."""

    def construct_mapping(self, node, deep=False):
        self.flatten_mapping(node)
        mapping = {}
        for key_node, value_node in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in mapping:
                continue
            mapping[key] = self.construct_object(value_node, deep=deep)
        return mapping


def correct_response(response: str) -> str:
    """Repair common artifacts in generated JSON."""
    # strip away everything in front of the JSON object
    start = response.find("{")
    if start > 0:
        response = response[start:]
    response = _CODE_FENCE.sub("", response)
    response = _TRAILING_COMMA.sub("}", response)
    return response.strip()


def _merged_keys(content: Any) -> bool:
    """YAML reads `name:"John"` as a single key without a value."""
    return isinstance(content, dict) and any(
        isinstance(key, str) and ":" in key and value is None for key, value in content.items()
    )


def _loads(text: str) -> Any:
    try:
        return json.loads(text, object_pairs_hook=_first_key_wins)
    except json.JSONDecodeError as e:
        logging.debug(f"Strict JSON parsing failed ({e}), retrying leniently")

    # YAML flow mappings accept unquoted field names followed by a space
    try:
        content = yaml.load(text, Loader=_FirstKeyWinsLoader)
        if isinstance(content, dict) and not _merged_keys(content):
            return content
        logging.debug("Lenient parsing gave no usable object, repairing the JSON")
    except yaml.YAMLError as e:
        logging.debug(f"Lenient parsing failed ({e}), repairing the JSON")

    return json.loads(repair_json(text), object_pairs_hook=_first_key_wins)


def parse_response(response: str) -> Dict[str, Any]:
    """Transform the LLM response into a map of field ids to values; never raises."""
    if not response:
        logging.error("Error parsing AI response to JSON Object: empty response")
        return {}
    try:
        corrected = correct_response(response)
        logging.debug(f"Corrected AI response: {corrected}")
        content = _loads(corrected)
    except Exception as e:
        logging.error(f"Error parsing AI response to JSON Object: {e}")
        return {}

    if not isinstance(content, dict):
        logging.error(f"Error parsing AI response to JSON Object: expected an object, got {type(content).__name__}")
        return {}
    return content
