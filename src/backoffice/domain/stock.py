"""Pharmacy stock ledger."""

import dataclasses
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import (
    PaymentMethod,
    RestockEvent,
    Sale,
    SaleBatch,
    SaleLineItem,
    SaleRequest,
    Sector,
    StockItem,
)
from backoffice.domain.errors import (
    DomainError,
    InsufficientStockError,
    MalformedRecordError,
    stock_item_not_found,
)
from backoffice.domain.results import Outcome
from backoffice.domain.units import UnitConverter

logger = logging.getLogger(__name__)

StockCatalog = Union[Mapping[str, StockItem], Iterable[StockItem]]


def index_items(items: StockCatalog) -> dict[str, StockItem]:
    """Key a stock catalog by item id."""
    if isinstance(items, Mapping):
        return {str(key): item for key, item in items.items()}
    return {str(item.id): item for item in items}


class StockLedger:
    """Validates and applies inventory mutations.

    Restocks only ever add. Sales run in two phases: every line is resolved
    and checked against the quantities on hand, then all deductions are
    committed together. A sale that fails on any line leaves every item
    untouched.
    """

    def __init__(
        self,
        converter: Optional[UnitConverter] = None,
        bank_accounts: Optional[BankAccountDirectory] = None,
    ):
        """Initialize stock ledger.

        Args:
            converter: Unit converter used to resolve sale lines
            bank_accounts: Directory consulted for bank-settled sales
        """
        self.converter = converter or UnitConverter()
        self.bank_accounts = bank_accounts or BankAccountDirectory()

    def apply_restock(self, item: StockItem, added_atomic_qty: int) -> StockItem:
        """Add atomic units to an item.

        Args:
            item: Stock item to restock
            added_atomic_qty: Atomic units added (whole number, zero or more)

        Returns:
            New StockItem with the increased quantity

        Raises:
            MalformedRecordError: If the quantity is negative or fractional
        """
        if isinstance(added_atomic_qty, bool) or not isinstance(added_atomic_qty, int) or added_atomic_qty < 0:
            raise MalformedRecordError(
                f"Restock quantity must be a non-negative whole number, got {added_atomic_qty!r}",
                field="quantity",
            )
        logger.debug(
            "stock_restocked",
            extra={"stock_item_id": item.id, "quantity": added_atomic_qty},
        )
        return dataclasses.replace(item, quantity_on_hand=item.quantity_on_hand + added_atomic_qty)

    def apply_sale_batch(self, items: StockCatalog, lines: Sequence[SaleRequest]) -> Outcome:
        """Apply every line of a sale, or none of them.

        Args:
            items: Current stock catalog
            lines: Requested sale lines, in cart order

        Returns:
            Outcome holding a SaleBatch on success. On failure the error is an
            InsufficientStockError, IncompatibleUnitError or MalformedRecordError
            and no quantity has changed.
        """
        catalog = index_items(items)
        if not lines:
            return Outcome.failure(MalformedRecordError("Sale has no lines", field="lines"))

        resolved: list[SaleLineItem] = []
        for line in lines:
            stock_item_id = str(line.stock_item_id)
            item = catalog.get(stock_item_id)
            if item is None:
                return self._reject(
                    MalformedRecordError(stock_item_not_found(stock_item_id), field="stock_item_id")
                )
            try:
                resolution = self.converter.resolve_sale(item, line.quantity, line.unit)
            except DomainError as e:
                return self._reject(e)
            resolved.append(
                SaleLineItem(
                    stock_item_id=stock_item_id,
                    requested_quantity=line.quantity,
                    requested_unit=line.unit,
                    resolved_atomic_deduction=resolution.atomic_deduction,
                    resolved_unit_price=resolution.unit_price,
                )
            )

        deducted = self._deduct_resolved(catalog, resolved)
        if not deducted.ok:
            return self._reject(deducted.error)

        total = sum((line.line_total for line in resolved), Decimal("0"))
        return Outcome.success(
            SaleBatch(lines=tuple(resolved), updated_items=deducted.value, total=total)
        )

    def record_sale(
        self,
        items: StockCatalog,
        lines: Sequence[SaleRequest],
        sale_id: str,
        timestamp: datetime,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        bank_account_ref: Optional[str] = None,
    ) -> Outcome:
        """Validate settlement and stock for a sale and build the Sale record.

        Returns:
            Outcome holding ``(Sale, updated_items)`` on success
        """
        bank_error = self.bank_accounts.check_payment(payment_method, bank_account_ref, Sector.PHARMACY)
        if bank_error is not None:
            return Outcome.failure(bank_error)

        outcome = self.apply_sale_batch(items, lines)
        if not outcome.ok:
            return outcome

        batch = outcome.value
        sale = Sale(
            id=sale_id,
            timestamp=timestamp,
            lines=batch.lines,
            total=batch.total,
            payment_method=payment_method,
            bank_account_ref=bank_account_ref if payment_method == PaymentMethod.BANK else None,
        )
        return Outcome.success((sale, batch.updated_items))

    def replay(self, items: StockCatalog, events: Sequence[Union[RestockEvent, Sale]]) -> Outcome:
        """Rebuild stock levels from a starting catalog and an ordered history.

        Restocks add atomic units; each sale deducts its resolved lines as one
        unit of work. Replaying the same history always yields the same result.

        Returns:
            Outcome holding the final ``{id: StockItem}`` catalog, or the first
            error the history runs into
        """
        catalog = index_items(items)
        for event_index, event in enumerate(events):
            if isinstance(event, RestockEvent):
                stock_item_id = str(event.stock_item_id)
                item = catalog.get(stock_item_id)
                if item is None:
                    return self._reject(
                        MalformedRecordError(stock_item_not_found(stock_item_id), field="stock_item_id"),
                        event_index=event_index,
                    )
                try:
                    catalog[stock_item_id] = self.apply_restock(item, event.quantity)
                except MalformedRecordError as e:
                    return self._reject(e, event_index=event_index)
                continue

            outcome = self._deduct_resolved(catalog, event.lines)
            if not outcome.ok:
                return self._reject(outcome.error, event_index=event_index)
            catalog = outcome.value

        return Outcome.success(catalog)

    def _deduct_resolved(self, catalog: dict[str, StockItem], lines: Sequence[SaleLineItem]) -> Outcome:
        """Check every line against what is left on hand, then deduct them all."""
        claimed: dict[str, int] = {}
        for index, line in enumerate(lines):
            stock_item_id = str(line.stock_item_id)
            item = catalog.get(stock_item_id)
            if item is None:
                return Outcome.failure(
                    MalformedRecordError(stock_item_not_found(stock_item_id), field="stock_item_id")
                )
            already_claimed = claimed.get(stock_item_id, 0)
            available = item.quantity_on_hand - already_claimed
            if line.resolved_atomic_deduction > available:
                return Outcome.failure(
                    InsufficientStockError(index, stock_item_id, available, line.resolved_atomic_deduction)
                )
            claimed[stock_item_id] = already_claimed + line.resolved_atomic_deduction

        updated = dict(catalog)
        for stock_item_id, deduction in claimed.items():
            item = updated[stock_item_id]
            updated[stock_item_id] = dataclasses.replace(
                item, quantity_on_hand=item.quantity_on_hand - deduction
            )
        return Outcome.success(updated)

    def _reject(self, error: DomainError, event_index: Optional[int] = None) -> Outcome:
        logger.info(
            "stock_mutation_rejected",
            extra={"error_type": type(error).__name__, "event_index": event_index, "detail": str(error)},
        )
        return Outcome.failure(error)


def low_stock(items: StockCatalog, threshold: int = 10) -> list[StockItem]:
    """Items whose atomic quantity on hand is below the threshold."""
    return [item for item in index_items(items).values() if item.quantity_on_hand < threshold]


def expiring(items: StockCatalog, today: date, within_days: int = 30) -> list[StockItem]:
    """Items that expire within ``within_days`` of ``today``, expired ones included.

    Sorted by expiry date, soonest first.
    """
    cutoff = today + timedelta(days=within_days)
    flagged = [
        item
        for item in index_items(items).values()
        if item.exp_date is not None and item.exp_date < cutoff
    ]
    return sorted(flagged, key=lambda item: item.exp_date)
