"""
Data Transformers

Pure functions for transforming decoded data.
"""

from ingestion.transformers.field_mapping import (
    apply_data_mapping,
    map_fields,
    resolve_path,
)
from ingestion.transformers.formatting import (
    describe_structure,
    render_records,
)

__all__ = [
    "apply_data_mapping",
    "map_fields",
    "resolve_path",
    "describe_structure",
    "render_records",
]
