"""
Data Extractors

Reusable components for fetching data from external sources.
"""

from ingestion.extractors.api_endpoint import ApiEndpointExtractor, validate_endpoint

__all__ = [
    "ApiEndpointExtractor",
    "validate_endpoint",
]
