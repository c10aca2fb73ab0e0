"""
Domain: error taxonomy for the sales aggregate.

Every rejection raised by the domain, the repositories, or the services is one of
these kinds. Callers translate them to transport-level responses; the domain never
knows about HTTP.

- InvalidArgumentError: null/empty identity fields, bad Money, currency mismatch.
- QuantityOutOfRangeError: item quantity outside [1, 20], including merged sums.
- NotFoundError: referenced sale or item does not exist.
- InvalidStateTransitionError: mutating a cancelled sale, cancelling twice, etc.
- ValidationFailedError: malformed commands or query parameters.
- ConcurrencyConflictError: the aggregate was changed by someone else since it was loaded.
"""

from __future__ import annotations

from typing import Iterable, List


class SaleDomainError(Exception):
    """Base class for every error raised by the sales core."""


class InvalidArgumentError(SaleDomainError, ValueError):
    pass


class QuantityOutOfRangeError(SaleDomainError, ValueError):
    pass


class NotFoundError(SaleDomainError, LookupError):
    pass


class InvalidStateTransitionError(SaleDomainError):
    pass


class ConcurrencyConflictError(SaleDomainError):
    pass


class ValidationFailedError(SaleDomainError, ValueError):
    """Raised with every validation message collected, not just the first one."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


__all__ = [
    "SaleDomainError",
    "InvalidArgumentError",
    "QuantityOutOfRangeError",
    "NotFoundError",
    "InvalidStateTransitionError",
    "ConcurrencyConflictError",
    "ValidationFailedError",
]
