"""
Entity lookup for reference fields.

A value returned by the LLM for an entity reference is plain text. It is
turned into an entity by querying the lookup service registered for the
referenced entity model: first for an exact match on the display property,
then, only when that finds nothing, for a partial match.
"""

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .prompts import NOT_SPECIFIED


class EntityLookup(Protocol):
    def find_exact(self, property_name: str, value: Any) -> List[Any]:
        ...

    def find_contains(self, property_name: str, value: Any) -> List[Any]:
        ...


def is_missing(value: Any) -> bool:
    """JSON null and the "not specified" marker both mean: leave the field alone."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip().upper() == NOT_SPECIFIED


def is_blank(value: Any) -> bool:
    return is_missing(value) or not str(value).strip()


def get_property(entity: Any, name: str) -> Any:
    """Read a property from a mapping or a plain object."""
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)


def set_property(entity: Any, name: str, value: Any) -> None:
    """Write a property on a mapping or a plain object."""
    if isinstance(entity, MutableMapping):
        entity[name] = value
    else:
        setattr(entity, name, value)


class InMemoryLookupService:
    """Lookup over a list of entities held in memory (dicts or objects).

    Partial matching is case-insensitive; results keep insertion order.
    """

    def __init__(self, entities: Optional[Iterable[Any]] = None):
        self.entities: List[Any] = list(entities or [])

    def find_exact(self, property_name: str, value: Any) -> List[Any]:
        wanted = str(value)
        return [e for e in self.entities if get_property(e, property_name) is not None
                and str(get_property(e, property_name)) == wanted]

    def find_contains(self, property_name: str, value: Any) -> List[Any]:
        wanted = str(value).lower()
        return [e for e in self.entities if get_property(e, property_name) is not None
                and wanted in str(get_property(e, property_name)).lower()]


class LookupRegistry:
    """Maps entity model names to the lookup service for that entity."""

    def __init__(self, lookups: Optional[Dict[str, EntityLookup]] = None):
        self._lookups: Dict[str, EntityLookup] = dict(lookups or {})

    def register(self, entity_name: str, lookup: EntityLookup) -> None:
        self._lookups[entity_name] = lookup

    def get(self, entity_name: str) -> Optional[EntityLookup]:
        return self._lookups.get(entity_name)

    def __contains__(self, entity_name: str) -> bool:
        return entity_name in self._lookups

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "LookupRegistry":
        """Build in-memory lookups from the ``data`` section of a metadata document."""
        registry = cls()
        for entity_name, rows in ((data or {}).get("data") or {}).items():
            registry.register(entity_name, InMemoryLookupService(rows or []))
        return registry


def find_entity(lookup: EntityLookup, display_property: str, value: Any) -> Optional[Any]:
    """Resolve one candidate value: exact match first, partial match second."""
    if is_blank(value):
        return None
    entities = lookup.find_exact(display_property, value)
    if entities:
        return entities[0]

    entities = lookup.find_contains(display_property, value)
    if entities:
        if len(entities) > 1:
            logging.debug(f"{len(entities)} partial matches for '{value}' on '{display_property}', using the first")
        return entities[0]
    return None


def split_candidates(value: Any) -> List[str]:
    """A JSON array is a list of candidates; a string is split on commas."""
    if isinstance(value, (list, tuple, set)):
        raw = list(value)
    elif isinstance(value, str):
        raw = value.split(",")
    else:
        raw = [value]
    return [str(v).strip() for v in raw if not is_blank(v)]


def find_entities(lookup: EntityLookup, display_property: str, value: Any) -> List[Any]:
    """Resolve every candidate independently and union the results by identity."""
    result: List[Any] = []
    for candidate in split_candidates(value):
        entity = find_entity(lookup, display_property, candidate)
        if entity is None:
            logging.debug(f"No entity found for '{candidate}' on '{display_property}'")
            continue
        if not any(entity is existing for existing in result):
            result.append(entity)
    return result
