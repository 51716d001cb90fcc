"""Error taxonomy shared by the analytics core and the service layer."""

from __future__ import annotations


class FinanceCoreError(RuntimeError):
    """Base class for analytics core failures."""


class NotAuthorized(FinanceCoreError):
    """Raised when a request cannot be associated with a user."""


class SchemaMissing(FinanceCoreError):
    """Raised when a relation required by an operation does not exist."""

    def __init__(self, relation: str, message: str | None = None):
        self.relation = relation
        super().__init__(message or f"Table {relation} not found.")

    @property
    def hint(self) -> str:
        return f"Table {self.relation} not found. Run the schema migration."


class UpstreamUnavailable(FinanceCoreError):
    """Raised by soft dependencies (quote source, text suggestions)."""


class ValidationFailed(FinanceCoreError, ValueError):
    """Raised when settings or period inputs are malformed."""


class PersistenceFailed(FinanceCoreError):
    """Raised when the store rejects a write."""


class ReportGenerationFailed(FinanceCoreError):
    """Raised when the spreadsheet artifact cannot be produced."""


__all__ = [
    "FinanceCoreError",
    "NotAuthorized",
    "SchemaMissing",
    "UpstreamUnavailable",
    "ValidationFailed",
    "PersistenceFailed",
    "ReportGenerationFailed",
]
