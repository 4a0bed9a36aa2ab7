"""
Error kinds raised by the Mohs workflow services.

    MohsError (base)
    ├── NotFoundError       case/stage absent, soft-deleted, or owned by another tenant
    ├── InvalidArgument     malformed enum, illegal transition, bad stage number or filter
    └── TransactionFailure  store error inside a multi-write operation (already rolled back)
"""

from __future__ import annotations

from typing import Any


class MohsError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class NotFoundError(MohsError):
    def __init__(self, resource: str, identifier: Any) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource, "id": identifier},
        )


class InvalidArgument(MohsError):
    pass


class TransactionFailure(MohsError):
    pass
