# File: /docview/core/errors.py | Version: 1.0 | Title: Document View error taxonomy
from __future__ import annotations

from typing import Dict, List, Optional


class DocumentViewError(Exception):
    """
    Base class for every error the engine, the facade and the API raise.
    Carries what the error envelope needs: message, code, HTTP status and
    optional per-field messages.
    """

    code: str = "ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        errors: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.errors = errors or None

    def to_error(self) -> dict:
        body: dict = {"message": self.message, "code": self.code}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(DocumentViewError):
    code = "VALIDATION_ERROR"
    status_code = 422

    @classmethod
    def from_pydantic(cls, exc, message: str = "Validation failed") -> "ValidationError":
        """Flatten a pydantic ValidationError into ``{field: [messages]}``."""
        errors: Dict[str, List[str]] = {}
        for e in exc.errors():
            field = ".".join(str(p) for p in e.get("loc", ())) or "__root__"
            errors.setdefault(field, []).append(e.get("msg", "Invalid value"))
        return cls(message, errors=errors)


class TypeConversionError(ValidationError):
    code = "TYPE_CONVERSION_ERROR"

    def __init__(self, from_type=None, to_type=None, message: Optional[str] = None) -> None:
        self.from_type = str(getattr(from_type, "value", from_type))
        self.to_type = str(getattr(to_type, "value", to_type))
        super().__init__(
            message
            or f"Cannot convert property type {self.from_type} to {self.to_type}."
        )


class PermissionDeniedError(DocumentViewError):
    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        property_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.property_id = property_id
        self.reason = reason


class NotFoundError(DocumentViewError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None, *, message: Optional[str] = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        label = entity.capitalize()
        super().__init__(
            message
            or (f"{label} '{entity_id}' not found" if entity_id else f"{label} not found")
        )


class UnsupportedOperation(DocumentViewError):
    code = "UNSUPPORTED_OPERATION"
    status_code = 400


class TransportError(DocumentViewError):
    code = "TRANSPORT_ERROR"
    status_code = 502

    def __init__(self, message: str, *, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status
