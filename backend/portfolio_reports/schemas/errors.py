# backend/portfolio_reports/schemas/errors.py
"""
Error bodies returned by the API.

Service exceptions, FastAPI's own HTTP errors and rate limiting all
respond with ErrorDetail; only request parameter validation (422) uses
ValidationErrorDetail, whose details list one entry per bad parameter.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    error: str = Field(..., description="Exception name, e.g. 'AccountNotFoundError'")
    message: str
    details: dict | None = Field(
        default=None,
        description="Structured context such as resource_id or the offending field",
    )


class ValidationErrorDetail(BaseModel):
    """422 body: details holds {field, message, type} per invalid parameter."""

    error: str = "ValidationError"
    message: str = "Request validation failed"
    details: list[dict]
