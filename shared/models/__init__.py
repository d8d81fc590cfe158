"""
Shared Models
=============

Pydantic models shared across services.

Models:
- Response envelopes (BaseResponse, ErrorResponse)
- Health reporting (HealthResponse)
"""

from shared.models.common import BaseResponse, ErrorResponse, HealthResponse

__all__ = [
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
]
