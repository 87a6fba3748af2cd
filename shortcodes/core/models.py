"""HTTP transport models."""

from __future__ import annotations

from pydantic import BaseModel


class EncodeRequest(BaseModel):
    value: str


class EncodeResponse(BaseModel):
    code: str


class DecodeRequest(BaseModel):
    code: str


class DecodeResponse(BaseModel):
    value: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    mappings: int = 0
