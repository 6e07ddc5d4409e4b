from __future__ import annotations

from typing import Optional


class ServiceError(RuntimeError):
    """Base class for service-layer errors."""

class LLMError(ServiceError):
    """Errors from the LLM adapters."""

class RepoError(ServiceError):
    """Errors from repositories (I/O, parse, schema)."""

class LookupFailed(ServiceError):
    """Errors from the barcode product lookup upstream."""

class PersistenceError(ServiceError):
    """A persistence API call failed (transport error, non-2xx or malformed body)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
