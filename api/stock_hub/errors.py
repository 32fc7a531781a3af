# stock_hub/errors.py
"""
Error taxonomy shared by the data tier, the remote client and the business tier.

Every error carries a stable ``code`` and an HTTP status so it can cross the
wire as ``{"error": code, "message": ..., **details}`` and be rebuilt on the
other side with the same type.
"""
from __future__ import annotations
from typing import Any, Dict, Optional, Type


class StockHubError(Exception):
    """Base class for all domain errors."""

    code: str = "error"
    http_status: int = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "StockHubError":
        details = {k: v for k, v in payload.items() if k not in ("error", "message")}
        return cls(str(payload.get("message") or cls.code), **details)


class InvalidArgument(StockHubError):
    """Malformed input. Always the caller's fault, never retried."""

    code = "invalid_argument"
    http_status = 400


class NotFound(StockHubError):
    code = "not_found"
    http_status = 404

    @classmethod
    def for_resource(cls, resource: str, field: str, value: Any) -> "NotFound":
        return cls(f"{resource} not found with {field}: {value}", resource=resource, field=field, value=value)


class AlreadyExists(StockHubError):
    code = "already_exists"
    http_status = 409

    @classmethod
    def for_resource(cls, resource: str, field: str, value: Any) -> "AlreadyExists":
        return cls(f"{resource} already exists with {field}: {value}", resource=resource, field=field, value=value)


class ResourceInUse(StockHubError):
    """Deleting a record that other records still depend on."""

    code = "resource_in_use"
    http_status = 409


class InsufficientStock(StockHubError):
    """Business condition: stop, do not retry with an adjusted amount."""

    code = "insufficient_stock"
    http_status = 400

    def __init__(self, message: Optional[str] = None, *, product_id: Any = None,
                 available: Optional[int] = None, requested: Optional[int] = None, **details: Any):
        if message is None:
            message = (
                f"Insufficient stock for product {product_id}. "
                f"Available: {available}, requested: {requested}"
            )
        super().__init__(message, product_id=product_id, available=available, requested=requested, **details)
        self.product_id = product_id
        self.available = available
        self.requested = requested

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "InsufficientStock":
        details = {k: v for k, v in payload.items() if k not in ("error", "message")}
        return cls(payload.get("message"), **details)


class ConcurrencyConflict(StockHubError):
    """Stale revision. Retry with fresh state."""

    code = "concurrency_conflict"
    http_status = 409

    def __init__(self, message: Optional[str] = None, *, product_id: Any = None,
                 expected_revision: Optional[int] = None, actual_revision: Optional[int] = None,
                 **details: Any):
        if message is None:
            message = (
                f"Stock ledger for product {product_id} changed concurrently "
                f"(expected revision {expected_revision}, found {actual_revision})"
            )
        super().__init__(message, product_id=product_id, expected_revision=expected_revision,
                         actual_revision=actual_revision, **details)
        self.product_id = product_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ConcurrencyConflict":
        details = {k: v for k, v in payload.items() if k not in ("error", "message")}
        return cls(payload.get("message"), **details)


class DependencyUnavailable(StockHubError):
    """Transport-level failure reaching the data tier (unreachable, timeout)."""

    code = "dependency_unavailable"
    http_status = 503

    def __init__(self, service: str, operation: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Service '{service}' unavailable during '{operation}'",
            service=service, operation=operation,
        )
        self.service = service
        self.operation = operation
        self.cause = cause

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DependencyUnavailable":
        return cls(str(payload.get("service") or "unknown"), str(payload.get("operation") or "unknown"))


class RemoteServiceError(StockHubError):
    """The remote tier answered with an error that is not part of the taxonomy."""

    code = "remote_error"
    http_status = 502


ERRORS_BY_CODE: Dict[str, Type[StockHubError]] = {
    cls.code: cls
    for cls in (
        InvalidArgument, NotFound, AlreadyExists, ResourceInUse,
        InsufficientStock, ConcurrencyConflict, DependencyUnavailable,
    )
}


def error_from_payload(status_code: int, payload: Any) -> StockHubError:
    """Rebuild a typed error from an error response body."""
    if isinstance(payload, dict):
        cls = ERRORS_BY_CODE.get(str(payload.get("error") or ""))
        if cls is not None:
            return cls.from_payload(payload)
        message = payload.get("message") or payload.get("detail") or f"HTTP {status_code}"
    else:
        message = str(payload) if payload else f"HTTP {status_code}"
    return RemoteServiceError(str(message), status_code=status_code)
