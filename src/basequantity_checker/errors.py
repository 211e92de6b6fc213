"""Exception hierarchy for the base quantity checker."""

from __future__ import annotations


class QuantityCheckError(Exception):
    """Base exception for all checker-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CatalogError(QuantityCheckError):
    """Raised when the quantity catalog cannot be read or parsed."""


class HostError(QuantityCheckError):
    """Raised when the host model API cannot serve a request."""


class CheckTimeoutError(HostError):
    """Raised when a host call exceeds the configured deadline."""
