"""Rendering of computed snapshots as JSON-ready dicts.

Money is rounded to currency precision here and only here; the ledgers keep
full Decimal precision. Rounded amounts are emitted as strings so that no
binary float ever stands in for a balance.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from backoffice.domain.entities import (
    BankAccount,
    ExchangeSummary,
    Rate,
    Sale,
    SaleLineItem,
    SiteSummary,
    StockItem,
)
from backoffice.domain.errors import (
    DomainError,
    IncompatibleUnitError,
    IneligibleBankAccountError,
    InsufficientHoldingsError,
    InsufficientLocalCashError,
    InsufficientStockError,
    MalformedRecordError,
)
from backoffice.domain.results import Outcome
from backoffice.utils.amount_parser import round_money


def money(amount: Decimal) -> str:
    return str(round_money(amount))


def serialize_vault(vault: Mapping[str, Decimal]) -> dict[str, str]:
    return {code: money(quantity) for code, quantity in vault.items()}


def serialize_rates(catalog: Mapping[str, Rate]) -> dict[str, dict[str, str]]:
    # Rates keep their own precision (four places is common)
    return {code: {"buy": str(rate.buy), "sell": str(rate.sell)} for code, rate in catalog.items()}


def serialize_bank_account(account: BankAccount) -> dict[str, Any]:
    # An empty sector list means the account serves every sector
    return {
        "id": account.id,
        "name": account.name,
        "account_number": account.account_number,
        "eligible_sectors": sorted(sector.value for sector in account.eligible_sectors),
    }


def serialize_stock_item(item: StockItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "buy_price": money(item.buy_price),
        "sell_price": money(item.sell_price),
        "quantity_on_hand": item.quantity_on_hand,
        "storage_unit": item.storage_unit,
        "items_per_storage_unit": item.items_per_storage_unit,
        "batch": item.batch,
        "mfg_date": item.mfg_date.isoformat() if item.mfg_date else None,
        "exp_date": item.exp_date.isoformat() if item.exp_date else None,
    }


def serialize_sale_line(line: SaleLineItem) -> dict[str, Any]:
    return {
        "stock_item_id": line.stock_item_id,
        "requested_quantity": line.requested_quantity,
        "requested_unit": line.requested_unit,
        "resolved_atomic_deduction": line.resolved_atomic_deduction,
        "resolved_unit_price": money(line.resolved_unit_price),
        "line_total": money(line.line_total),
    }


def serialize_sale(sale: Sale) -> dict[str, Any]:
    return {
        "id": sale.id,
        "timestamp": sale.timestamp.isoformat(),
        "lines": [serialize_sale_line(line) for line in sale.lines],
        "total": money(sale.total),
        "payment_method": sale.payment_method.value,
        "bank_account_ref": sale.bank_account_ref,
    }


def serialize_site_summary(summary: SiteSummary) -> dict[str, str]:
    return {
        "income": money(summary.income),
        "expense": money(summary.expense),
        "balance": money(summary.balance),
        "credit_income": money(summary.credit_income),
        "credit_expense": money(summary.credit_expense),
    }


def serialize_exchange_summary(summary: ExchangeSummary) -> dict[str, Any]:
    return {
        "bought": serialize_vault(summary.bought),
        "sold": serialize_vault(summary.sold),
        "local_volume": money(summary.local_volume),
    }


def serialize_error(error: DomainError) -> dict[str, Any]:
    """Describe a domain error with its structured details."""
    details: dict[str, Any] = {"type": type(error).__name__, "message": str(error)}
    if isinstance(error, InsufficientStockError):
        details.update(
            line_index=error.line_index,
            stock_item_id=error.stock_item_id,
            available=error.available,
            requested=error.requested,
        )
    elif isinstance(error, InsufficientHoldingsError):
        details.update(
            currency_code=error.currency_code,
            available=money(error.available),
            requested=money(error.requested),
        )
    elif isinstance(error, InsufficientLocalCashError):
        details.update(available=money(error.available), requested=money(error.requested))
    elif isinstance(error, IneligibleBankAccountError):
        details.update(bank_account_ref=error.bank_account_ref, sector=error.sector)
    elif isinstance(error, IncompatibleUnitError):
        details.update(
            stock_item_id=error.stock_item_id,
            requested_unit=error.requested_unit,
            storage_unit=error.storage_unit,
        )
    elif isinstance(error, MalformedRecordError) and error.field:
        details.update(field=error.field)
    return details


def serialize_outcome(outcome: Outcome, value: Optional[Any] = None) -> dict[str, Any]:
    """Render an Outcome as ``{"ok": true, "result": ...}`` or ``{"ok": false, "error": ...}``.

    Args:
        outcome: Ledger outcome
        value: Already-serialized value to report instead of ``outcome.value``
    """
    if not outcome.ok:
        return {"ok": False, "error": serialize_error(outcome.error)}
    return {"ok": True, "result": value if value is not None else outcome.value}
