"""
Exporters

Serialize extraction output for download.
"""

import json
from typing import Any


def to_json_export(data: Any) -> str:
    """
    Pretty-printed JSON. Plain strings are wrapped as {"extractedText": ...}.

    Examples:
        >>> to_json_export("hello")
        '{\\n  "extractedText": "hello"\\n}'
    """
    payload = {"extractedText": data} if isinstance(data, str) else data
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def to_csv_export(text: str) -> str:
    """Single-column CSV holding ``text`` in an ``extracted_text`` cell."""
    escaped = text.replace('"', '""')
    return f'extracted_text\n"{escaped}"'
