"""
Extraction API authentication using a Bearer token.

Protects the extraction endpoints when EXTRACTION_API_TOKEN is set.
Without a configured token the endpoints are open (local use).
"""

import secrets
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.settings import settings

security = HTTPBearer(auto_error=False)


def verify_extraction_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> str:
    """
    Verify the bearer token matches the configured extraction secret.

    Raises:
        HTTPException: If a token is configured and the request's is missing or invalid
    """
    expected = settings.extraction_api_token
    if expected is None:
        return ""

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Missing extraction authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(credentials.credentials, expected.get_secret_value()):
        raise HTTPException(
            status_code=401,
            detail="Invalid extraction authentication token",
        )

    return credentials.credentials
