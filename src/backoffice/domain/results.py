"""Value-returning results for ledger operations.

Business rule violations (insufficient stock, cash or holdings, ineligible
bank accounts, incompatible units) are expected outcomes. Ledger operations
hand them back inside an ``Outcome`` instead of raising, so a caller never
observes a half-applied mutation.
"""

from dataclasses import dataclass
from typing import Any, Optional

from backoffice.domain.errors import DomainError


@dataclass(frozen=True)
class Outcome:
    """Either a computed value or the domain error that prevented it."""

    value: Any = None
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "Outcome":
        return cls(error=error)

    def unwrap(self) -> Any:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value
