"""
Field Mapping Transformers

Pure functions that locate the records inside a decoded document and
project them onto caller-declared field names.
"""

from typing import Any, Optional

from schemas.extraction import DataMapping


_MISSING = object()


def resolve_path(document: Any, path: str) -> Any:
    """
    Walk a dotted path through nested dicts (and lists, by integer index).

    Returns the _MISSING sentinel when any segment is absent.

    Examples:
        >>> resolve_path({"data": {"items": [1, 2]}}, "data.items")
        [1, 2]
        >>> resolve_path({"data": [{"id": 7}]}, "data.0.id")
        7
    """
    current = document
    for segment in path.split("."):
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return _MISSING
    return current


def map_fields(item: Any, fields: dict[str, str]) -> Any:
    """
    Copy the declared source keys of ``item`` under their output names.

    Items that are not dicts, or that carry none of the declared keys,
    are returned unchanged.
    """
    if not isinstance(item, dict):
        return item

    mapped = {
        output_key: item[source_key]
        for output_key, source_key in fields.items()
        if source_key in item
    }
    return mapped if mapped else item


def apply_data_mapping(document: Any, data_mapping: Optional[DataMapping]) -> Any:
    """
    Navigate to the root path and apply field renames.

    Args:
        document: Decoded response body
        data_mapping: Optional root path and field map

    Returns:
        The records located at the root path (the whole document when the
        path is absent or cannot be resolved), with fields mapped when the
        root is a list
    """
    if data_mapping is None:
        return document

    root = document
    if data_mapping.root_path:
        resolved = resolve_path(document, data_mapping.root_path)
        if resolved is _MISSING:
            return document
        root = resolved

    if data_mapping.fields and isinstance(root, list):
        return [map_fields(item, data_mapping.fields) for item in root]

    return root
