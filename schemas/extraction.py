from pydantic import BaseModel, ConfigDict, Field, SecretStr
from typing import Optional, Any
from enum import Enum

from .common import BaseResponse

# ------------------------------- Enums ------------------------------- #

class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @property
    def sends_body(self) -> bool:
        return self in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)

class AuthType(str, Enum):
    NONE = "none"
    API_KEY = "api-key"
    BEARER = "bearer"
    BASIC = "basic"
    OAUTH = "oauth"

class ResponseFormat(str, Enum):
    JSON = "json"
    XML = "xml"
    CSV = "csv"
    TEXT = "text"

class PaginationStrategy(str, Enum):
    OFFSET = "offset"
    CURSOR = "cursor"
    PAGE = "page"

# ------------------------------- Request ------------------------------- #

class Authentication(BaseModel):
    """
    Credentials for the target endpoint, tagged by ``type``.

    Only the fields required by the selected type are read; missing ones
    are reported as configuration errors when the request is executed.
    """
    type: AuthType = AuthType.NONE
    key: Optional[SecretStr] = None
    header_name: str = "X-API-Key"
    token: Optional[SecretStr] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None

class DataMapping(BaseModel):
    """Dotted root path to the records plus output-key -> source-key renames"""
    root_path: Optional[str] = None
    fields: Optional[dict[str, str]] = None

class PaginationConfig(BaseModel):
    enabled: bool = False
    strategy: PaginationStrategy = PaginationStrategy.OFFSET
    page_param: Optional[str] = None
    limit_param: Optional[str] = None
    max_pages: int = Field(default=10, ge=1, description="Upper bound on pages fetched")

class ExtractionRequest(BaseModel):
    """Everything needed to pull data from one remote endpoint"""
    endpoint: str = Field(description="Absolute http(s) URL; validated before any request")
    method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    authentication: Authentication = Field(default_factory=Authentication)
    response_format: ResponseFormat = ResponseFormat.JSON
    data_mapping: Optional[DataMapping] = None
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    timeout_ms: Optional[int] = Field(default=None, gt=0, description="Per-request deadline; settings default when omitted")

# ------------------------------- Result ------------------------------- #

class Timings(BaseModel):
    """Durations in milliseconds"""
    request_time: float
    parse_time: float
    total_time: float

class PageFailure(BaseModel):
    """Why pagination stopped early after at least one page succeeded"""
    page_number: int
    error_type: str
    message: str
    status_code: Optional[int] = None

class ExtractionMetadata(BaseModel):
    url: str
    method: HttpMethod
    extracted_at: str
    response_format: ResponseFormat
    has_authentication: bool
    response_headers: dict[str, str] = Field(default_factory=dict)
    content_type: str = "unknown"

    model_config = ConfigDict(use_enum_values=True)

class ExtractionResult(BaseModel):
    rendered_text: str
    record_count: int
    pages_fetched: int
    status_code: int
    response_size_bytes: int
    timings: Timings
    rate_limited: bool = False
    retry_count: int = 0
    data_structure_description: str
    page_failure: Optional[PageFailure] = None
    metadata: ExtractionMetadata

    # Full aggregate for in-process callers (exports); never serialized
    records: list[Any] = Field(default_factory=list, exclude=True, repr=False)

    @property
    def partial(self) -> bool:
        return self.page_failure is not None

class ExtractionResponse(BaseResponse):
    """Response for a single extraction"""
    data: Optional[ExtractionResult] = None
