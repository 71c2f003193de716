"""Shared domain error messages and error types."""

from decimal import Decimal
from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class MalformedRecordError(DomainError):
    """A record is missing a required field or carries an unusable value."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class UnknownCurrencyError(MalformedRecordError):
    """No rate is known for the requested currency."""

    def __init__(self, code: str):
        super().__init__(f"No rate defined for currency '{code}'", field="currency_code")
        self.code = code


class IncompatibleUnitError(DomainError):
    """The requested sale unit cannot be related to the item's storage unit."""

    def __init__(self, stock_item_id: str, requested_unit: str, storage_unit: str):
        super().__init__(
            f"Cannot sell stock item {stock_item_id} by '{requested_unit}': "
            f"it is stocked by '{storage_unit}'"
        )
        self.stock_item_id = stock_item_id
        self.requested_unit = requested_unit
        self.storage_unit = storage_unit


class InsufficientStockError(DomainError):
    """A sale would drive an item's quantity on hand below zero."""

    def __init__(self, line_index: int, stock_item_id: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for item {stock_item_id} (line {line_index + 1}): "
            f"need {requested} items, have {available}"
        )
        self.line_index = line_index
        self.stock_item_id = stock_item_id
        self.available = available
        self.requested = requested


class InsufficientHoldingsError(DomainError):
    """Selling more foreign currency than the vault holds."""

    def __init__(self, currency_code: str, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient holdings: {requested} {currency_code} requested, "
            f"{available} {currency_code} available"
        )
        self.currency_code = currency_code
        self.available = available
        self.requested = requested


class InsufficientLocalCashError(DomainError):
    """Buying foreign currency costs more local cash than the vault holds."""

    def __init__(self, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient local cash: {requested} required, {available} available"
        )
        self.available = available
        self.requested = requested


class IneligibleBankAccountError(DomainError):
    """The chosen bank account may not settle transactions for this sector."""

    def __init__(self, bank_account_ref: str, sector: str, reason: Optional[str] = None):
        message = f"Bank account {bank_account_ref} is not eligible for the {sector} sector"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.bank_account_ref = bank_account_ref
        self.sector = sector


def missing_field(record_type: str, field: str) -> str:
    """Return message for a required field that is absent."""
    return f"{record_type} record is missing required field '{field}'"


def invalid_field(record_type: str, field: str, value: object) -> str:
    """Return message for a field whose value cannot be used."""
    return f"{record_type} record has invalid {field}: {value!r}"


def stock_item_not_found(stock_item_id: str) -> str:
    """Return message for missing stock item."""
    return f"Stock item {stock_item_id} not found"


def total_mismatch(total: Decimal, expected: Decimal) -> str:
    """Return message when a transaction total disagrees with amount * rate."""
    return f"Transaction total {total} does not match amount * rate ({expected})"
