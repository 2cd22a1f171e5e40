"""
Response Decoders

Turn a raw response body into a record collection according to the
declared response format. A body that does not parse as its format
degrades to a single raw-text record instead of failing the page.
"""

import csv
import io
import json
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import requests

from core.logging import get_logger
from ingestion.transformers.field_mapping import apply_data_mapping
from schemas.extraction import DataMapping, ResponseFormat


ATTRIBUTES_KEY = "@attributes"
TEXT_KEY = "#text"

log = get_logger("decoder")


class DecodeError(ValueError):
    """Raised by a format parser when the body does not match the format."""

    pass


@dataclass
class DecodedPage:
    """
    Outcome of decoding one page.

    Attributes:
        document: The parsed body before root-path navigation
        records: The mapped records (list) or a single record
        parse_time: Milliseconds spent parsing and mapping
        degraded: True when the body fell back to raw text
    """

    document: Any
    records: Any
    parse_time: float
    degraded: bool = False


# -----------------------------------------------------------------------------
# XML
# -----------------------------------------------------------------------------


def _local_name(tag: str) -> str:
    """Strip a '{namespace}' prefix from an ElementTree tag."""
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def element_to_dict(element: ET.Element, is_root: bool = False) -> Any:
    """
    Convert an element into nested dicts.

    - attributes go under "@attributes"
    - repeated child tags become a list in document order
    - leaf text goes under "#text"; a non-root leaf without attributes
      collapses to its text string
    """
    result: dict[str, Any] = {}

    if element.attrib:
        result[ATTRIBUTES_KEY] = {
            _local_name(name): value for name, value in element.attrib.items()
        }

    children = list(element)
    if children:
        for child in children:
            name = _local_name(child.tag)
            value = element_to_dict(child)
            if name in result:
                if not isinstance(result[name], list):
                    result[name] = [result[name]]
                result[name].append(value)
            else:
                result[name] = value
        return result

    text = element.text or ""
    if not is_root and not element.attrib:
        return text
    result[TEXT_KEY] = text
    return result


def parse_xml(text: Union[str, bytes]) -> Any:
    """Parse XML; bytes let the parser honour the declared encoding."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise DecodeError(f"Malformed XML: {e}") from e
    return element_to_dict(root, is_root=True)


# -----------------------------------------------------------------------------
# CSV / JSON / text
# -----------------------------------------------------------------------------


def parse_csv(text: str) -> list[dict[str, str]]:
    """
    Parse comma-separated text with a header row.

    Cells are trimmed; short rows are filled with "" and extra cells are
    ignored. Blank lines are skipped.

    Example:
        >>> parse_csv("name,age\\nAlice,30")
        [{'name': 'Alice', 'age': '30'}]
    """
    try:
        rows = [row for row in csv.reader(io.StringIO(text.strip()), skipinitialspace=True) if row]
    except csv.Error as e:
        raise DecodeError(f"Malformed CSV: {e}") from e
    if not rows:
        return []

    headers = [cell.strip().replace('"', "") for cell in rows[0]]
    records = []
    for row in rows[1:]:
        values = [cell.strip().replace('"', "") for cell in row]
        records.append(
            {
                header: values[index] if index < len(values) else ""
                for index, header in enumerate(headers)
            }
        )
    return records


def parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed JSON: {e}") from e


def parse_text(text: str) -> str:
    return text


PARSERS: dict[ResponseFormat, Callable[[str], Any]] = {
    ResponseFormat.JSON: parse_json,
    ResponseFormat.XML: parse_xml,
    ResponseFormat.CSV: parse_csv,
    ResponseFormat.TEXT: parse_text,
}


def decode_response(
    text: str,
    response_format: ResponseFormat,
    data_mapping: Optional[DataMapping] = None,
    raw: Optional[bytes] = None,
) -> DecodedPage:
    """
    Decode a response body and apply the data mapping.

    Args:
        text: Response body as text
        response_format: Declared format of the body
        data_mapping: Optional root path / field map (ignored for text)
        raw: Undecoded body; XML is parsed from it when given

    Returns:
        DecodedPage; on a parse failure the records are the raw text
    """
    start = time.perf_counter()

    try:
        source = raw if raw is not None and response_format == ResponseFormat.XML else text
        document = PARSERS[response_format](source)
    except DecodeError as e:
        log.warning(
            "decode_degraded",
            response_format=response_format.value,
            error=str(e),
            body_length=len(text),
        )
        return DecodedPage(
            document=text,
            records=text,
            parse_time=(time.perf_counter() - start) * 1000,
            degraded=True,
        )

    if response_format == ResponseFormat.TEXT:
        records = document
    else:
        records = apply_data_mapping(document, data_mapping)
    return DecodedPage(
        document=document,
        records=records,
        parse_time=(time.perf_counter() - start) * 1000,
    )


def response_text(response: requests.Response) -> str:
    """
    Body as text, honouring a charset declared in Content-Type.

    Without one, requests assumes ISO-8859-1 for text/* types; UTF-8 is
    tried first instead, then the detected encoding.
    """
    content_type = response.headers.get("Content-Type", "")
    if "charset=" in content_type.lower():
        return response.text
    try:
        return response.content.decode("utf-8-sig")
    except UnicodeDecodeError:
        response.encoding = response.apparent_encoding
        return response.text


def decode_http_response(
    response: requests.Response,
    response_format: ResponseFormat,
    data_mapping: Optional[DataMapping] = None,
) -> DecodedPage:
    """decode_response() for a fetched page."""
    return decode_response(
        response_text(response), response_format, data_mapping, raw=response.content
    )
