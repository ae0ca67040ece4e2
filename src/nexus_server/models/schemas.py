"""Pydantic models for the request and response envelopes.

Generated handlers accept ``{"params": {...}}`` and answer with either the
result (bare or wrapped as ``{"result": value}``) or ``{"error": message}``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class GenericRequest(BaseModel):
    """Inbound request envelope."""

    params: Dict[str, Any] = Field(
        default_factory=dict, description="Untyped payload keyed by parameter name"
    )

    @field_validator("params", mode="before")
    @classmethod
    def null_params_as_empty(cls, v):
        if v is None:
            return {}
        return v

    model_config = {"extra": "ignore"}


class ResultResponse(BaseModel):
    result: Any = Field(default=None, description="Operation result value(s)")


class ErrorResponse(BaseModel):
    error: str = Field(description="Failure description")


class DispatchResponse(BaseModel):
    """Outcome of one handler invocation, independent of the transport."""

    status_code: int = Field(description="HTTP-equivalent status")
    body: Any = Field(default=None, description="Response envelope")
    error: Optional[str] = Field(default=None, description="Failure message, if any")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
