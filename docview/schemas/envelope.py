# File: /docview/schemas/envelope.py | Version: 1.0 | Title: Response envelope
from __future__ import annotations

from datetime import datetime, UTC
from typing import Any, Dict, Generic, List, Optional, TypeVar

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

T = TypeVar("T")


class ErrorBody(BaseModel):
    message: str
    code: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None


class ApiEnvelope(BaseModel, Generic[T]):
    """``{success, message, data, timestamp}``; failures carry ``error`` instead of data."""

    success: bool
    message: str = ""
    data: Optional[T] = None
    error: Optional[ErrorBody] = None
    timestamp: Optional[str] = None


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def ok(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": jsonable_encoder(data),
        "timestamp": now_iso(),
    }


def failed(message: str, code: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"message": message}
    if code:
        error["code"] = code
    if errors:
        error["errors"] = errors
    return {
        "success": False,
        "message": message,
        "error": error,
        "timestamp": now_iso(),
    }
