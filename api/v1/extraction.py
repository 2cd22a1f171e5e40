"""
Extraction API Routes

Endpoints for running remote-API extractions. Uses optional bearer-token
authentication (see core.extraction_auth).

The extraction itself is blocking (sequential HTTP page fetches) and runs
in a worker thread via ingestion.run_extraction().
"""

from enum import Enum

from fastapi import APIRouter, Query, Security
from fastapi.responses import JSONResponse, Response

from core.extraction_auth import verify_extraction_token
from core.logging import get_logger
from core.settings import now_iso
from ingestion import run_extraction
from ingestion.exporters import to_csv_export, to_json_export
from schemas.common import ApiStatus, error_response
from schemas.extraction import ExtractionRequest, ExtractionResponse

router = APIRouter(prefix="/extract", tags=["extraction"])
log = get_logger("extraction_api")


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


@router.post("/api-endpoint", response_model=ExtractionResponse)
async def extract_api_endpoint(
    request: ExtractionRequest,
    _: str = Security(verify_extraction_token),
) -> ExtractionResponse:
    """
    Extract data from a remote API endpoint.

    Authenticates, follows pagination, decodes the declared format, and
    returns the rendered records with performance metadata. A failure
    after the first page returns the pages fetched so far with
    status partial_success.
    """
    result = await run_extraction(request)

    if result.partial:
        return ExtractionResponse(
            status=ApiStatus.PARTIAL_SUCCESS,
            message=(
                f"Extracted {result.record_count} records from {result.pages_fetched} "
                f"pages; stopped at page {result.page_failure.page_number}"
            ),
            data=result,
            timestamp=now_iso(),
        )

    return ExtractionResponse(
        status=ApiStatus.SUCCESS,
        message=f"Extracted {result.record_count} records from {result.pages_fetched} pages",
        data=result,
        timestamp=now_iso(),
    )


@router.get("/api-endpoint", include_in_schema=False)
async def extract_api_endpoint_get() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content=error_response(
            message="Method not allowed. Use POST.",
            error_code="METHOD_NOT_ALLOWED",
            timestamp=now_iso(),
        ),
        headers={"Allow": "POST"},
    )


@router.post("/api-endpoint/export")
async def export_api_endpoint(
    request: ExtractionRequest,
    format: ExportFormat = Query(ExportFormat.JSON, description="json: all records; csv: rendered text"),
    _: str = Security(verify_extraction_token),
) -> Response:
    """
    Run an extraction and return it as a downloadable file.

    JSON exports contain every aggregated record (not just the rendered
    sample); CSV exports contain the rendered text in one cell.
    """
    result = await run_extraction(request)
    log.info("extraction_exported", format=format.value, records=result.record_count)

    if format == ExportFormat.CSV:
        return Response(
            content=to_csv_export(result.rendered_text),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": 'attachment; filename="data.csv"'},
        )

    return Response(
        content=to_json_export(result.records),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="data.json"'},
    )
