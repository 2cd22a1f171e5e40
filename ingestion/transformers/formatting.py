"""
Output Formatting Transformers

Render an aggregated record list into bounded, human-readable text and
describe its shape.
"""

import json
from typing import Any, Optional

from schemas.extraction import ResponseFormat


EMPTY_RESULT_TEXT = "No data extracted from API endpoint."
SIZE_TRUNCATION_NOTICE = "\n\n[Content truncated due to size - full data available for export]"

# Field names treated as a user identifier for the distinct-count summary
USER_ID_FIELDS = ("userId", "user_id", "userid", "UserId", "userID")

DEFAULT_SAMPLE_SIZE = 10
DEFAULT_SUMMARY_THRESHOLD = 20
DEFAULT_MAX_CHARS = 25000


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _type_label(value: Any) -> str:
    """JSON-flavoured name of a primitive's type."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def find_user_id_field(record: Any) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    for name in USER_ID_FIELDS:
        if record.get(name) is not None:
            return name
    return None


def count_distinct(records: list[Any], field: str) -> int:
    """Distinct values of ``field`` across dict records (unhashable values compared as JSON)."""
    seen = set()
    for record in records:
        if isinstance(record, dict) and field in record:
            seen.add(json.dumps(record[field], sort_keys=True, default=str))
    return len(seen)


def summarize_records(records: list[Any]) -> str:
    """Summary block appended to large renders."""
    lines = ["", "", "DATASET SUMMARY:", f"Total Records: {len(records)}"]

    first = records[0]
    if isinstance(first, dict):
        fields = list(first.keys())
        more = "..." if len(fields) > 5 else ""
        lines.append(f"Fields per Record: {len(fields)}")
        lines.append(f"Sample Fields: {', '.join(fields[:5])}{more}")

        user_field = find_user_id_field(first)
        if user_field:
            lines.append(f"Unique Users: {count_distinct(records, user_field)}")

    return "\n".join(lines)


def render_records(
    records: list[Any],
    response_format: ResponseFormat,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    summary_threshold: int = DEFAULT_SUMMARY_THRESHOLD,
    max_chars: int = DEFAULT_MAX_CHARS,
) -> str:
    """
    Render records as text for display.

    Shows at most ``sample_size`` records, a notice for the omitted ones,
    and a summary when there are more than ``summary_threshold`` records.
    The final text is clamped to ``max_chars`` plus a truncation notice.

    Args:
        records: Aggregated records, in page order
        response_format: Format the records were decoded from
        sample_size: Maximum records rendered in full
        summary_threshold: Record count above which a summary is added
        max_chars: Hard cap on the rendered text

    Returns:
        The rendered text
    """
    if not records:
        return EMPTY_RESULT_TEXT

    total = len(records)
    shown = min(total, sample_size)
    sample = records[:shown]

    parts = [
        "API ENDPOINT EXTRACTION RESULTS\n",
        f"Records Extracted: {total}\n",
        f"Response Format: {response_format.value.upper()}\n\n",
    ]

    if response_format == ResponseFormat.JSON:
        parts.append(f"EXTRACTED DATA (JSON) - Showing {shown} of {total} records:\n")
        parts.append(_to_json(sample))
    else:
        parts.append(f"EXTRACTED DATA - Showing {shown} of {total} records:\n")
        for index, record in enumerate(sample, start=1):
            parts.append(f"\nRecord {index}:\n")
            if isinstance(record, (dict, list)):
                parts.append(_to_json(record))
            else:
                parts.append(str(record))

    if total > shown:
        parts.append(f"\n\n... and {total - shown} more records (truncated for display)")

    if total > summary_threshold:
        parts.append(summarize_records(records))

    text = "".join(parts)
    if len(text) > max_chars:
        text = text[:max_chars] + SIZE_TRUNCATION_NOTICE
    return text


def describe_structure(records: list[Any]) -> str:
    """
    Short label for the shape of the records, judged by the first one.

    Examples:
        >>> describe_structure([])
        'Empty dataset'
        >>> describe_structure([{"id": 1, "name": "a"}])
        'Object with 2 fields: id, name'
        >>> describe_structure(["x"])
        'Primitive values (string)'
    """
    if not records:
        return "Empty dataset"

    sample = records[0]
    if isinstance(sample, list):
        return "Array of arrays"
    if isinstance(sample, dict):
        keys = list(sample.keys())
        more = "..." if len(keys) > 3 else ""
        return f"Object with {len(keys)} fields: {', '.join(keys[:3])}{more}"
    return f"Primitive values ({_type_label(sample)})"
