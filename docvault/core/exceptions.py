"""Custom exception hierarchy for DocVault."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import status


class ApplicationError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message


class NotFoundError(ApplicationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ValidationError(ApplicationError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class ConflictError(ApplicationError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ServiceUnavailableError(ApplicationError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "service_unavailable"


@dataclass(eq=False)
class VaultError(Exception):
    """Base class for infrastructure errors with structured payloads."""

    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        base = f"[{self.error_code}] {self.message}"
        if self.details:
            return f"{base} :: {self.details}"
        return base


class StorageError(VaultError):
    """Raised when the blob store cannot serve or accept an object."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("storage_error", message, details)


class DatastoreError(VaultError):
    """Raised when a document or group row cannot be read or written."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("datastore_error", message, details)


class AIServiceError(VaultError):
    """Raised when the language-model call fails; `category` drives the user-facing message."""

    def __init__(self, message: str, *, category: str = "generic", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("ai_service_error", message, details)
        self.category = category


class ProcessingError(VaultError):
    """Raised inside a processing pass; `stage` names the step that failed."""

    def __init__(self, stage: str, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("processing_error", message, details)
        self.stage = stage
