from pydantic import BaseModel, ConfigDict
from typing import Optional, Any
from enum import Enum

# ------------------------------- Envelope ------------------------------- #

class ApiStatus(str, Enum):
    """Outcome reported in every response envelope"""
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"
    VALIDATION_ERROR = "validation_error"
    CONFIGURATION_ERROR = "configuration_error"
    UPSTREAM_ERROR = "upstream_error"
    RATE_LIMITED = "rate_limited"
    CANCELLED = "cancelled"

class BaseResponse(BaseModel):
    """
    Envelope shared by success and error responses.

    ``error_code`` is only set on errors; ``data`` carries the result or
    the diagnostic fields of the failure.
    """
    status: ApiStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)

def error_response(
    message: str,
    status: ApiStatus = ApiStatus.ERROR,
    error_code: Optional[str] = None,
    data: Any = None,
    timestamp: Optional[str] = None
) -> dict:
    """JSON-ready error envelope for exception handlers"""
    return BaseResponse(
        status=status,
        message=message,
        data=data,
        error_code=error_code,
        timestamp=timestamp,
    ).model_dump()
