"""
Field extraction for form filling.

This module walks a tree of components in document order and collects the
fields that can be filled automatically: visible, enabled, editable fields
of a supported kind that carry a stable id.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Set

from .components import SUPPORTED_KINDS, FieldKind


@dataclass(frozen=True)
class FieldDescriptor:
    id: str
    kind: FieldKind
    handle: Any


def _call(node: Any, method: str, default: Any) -> Any:
    fn = getattr(node, method, None)
    if fn is None:
        return default
    return fn()


def get_field_id(node: Any) -> Optional[str]:
    return _call(node, "get_id", None) or None


def get_field_kind(node: Any) -> Optional[FieldKind]:
    kind = getattr(node, "kind", None)
    if kind is None:
        return None
    try:
        kind = FieldKind(kind)
    except ValueError:
        return None
    return kind if kind in SUPPORTED_KINDS else None


def is_supported_and_accepted(node: Any) -> bool:
    """Eligibility check for a single node; never raises."""
    try:
        if not _call(node, "is_visible", True):
            return False
        if not _call(node, "is_enabled", True):
            return False
        if _call(node, "is_read_only", False):
            return False
        kind = get_field_kind(node)
        if kind is None:
            return False
        if not get_field_id(node):
            logging.warning(
                f"Component of type {type(node).__name__} has no id. Add a meaningful id to the "
                "component if you want it to be filled automatically."
            )
            return False
        return True
    except Exception as e:
        logging.debug(f"Skipping component {node!r}: {e}")
        return False


def _children_of(node: Any) -> List[Any]:
    # a tab sheet only exposes its selected page, so walk all pages explicitly
    if hasattr(node, "get_tab_count") and hasattr(node, "get_component_at"):
        return [node.get_component_at(i) for i in range(node.get_tab_count())]
    return list(_call(node, "get_children", []) or [])


def _walk(node: Any, descriptors: List[FieldDescriptor], seen: Set[str]) -> None:
    if is_supported_and_accepted(node):
        field_id = get_field_id(node)
        if field_id in seen:
            logging.warning(f"Duplicate component id '{field_id}', only the first occurrence is filled")
        else:
            seen.add(field_id)
            descriptors.append(FieldDescriptor(id=field_id, kind=get_field_kind(node), handle=node))
    else:
        logging.debug(f"Component {node!r} is not eligible for filling")

    for child in _children_of(node):
        _walk(child, descriptors, seen)


def extract_fields(root: Any) -> List[FieldDescriptor]:
    """Collect descriptors for every eligible field below (and including) *root*."""
    descriptors: List[FieldDescriptor] = []
    _walk(root, descriptors, set())
    logging.debug(f"Extracted {len(descriptors)} fillable fields: {[d.id for d in descriptors]}")
    return descriptors
