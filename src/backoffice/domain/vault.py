"""Exchange desk vault ledger.

The vault is never stored. Current holdings are always the fold of a seed
vault and the full, ordered history of buy/sell transactions:

    holdings = fold(apply, seed, history)

A Buy adds the foreign amount and spends ``amount * rate`` of local cash; a
Sell does the reverse. Aggregate holdings do not depend on the order of the
history, but whether a transaction was acceptable does: validation always
runs against the fold of the transactions that precede it.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Optional

from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import (
    LOCAL,
    ExchangeKind,
    ExchangeSummary,
    ExchangeTransaction,
    Sector,
)
from backoffice.domain.errors import (
    InsufficientHoldingsError,
    InsufficientLocalCashError,
    MalformedRecordError,
)
from backoffice.domain.results import Outcome
from backoffice.utils.amount_parser import parse_amount

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def normalize_vault(seed_vault: Mapping) -> dict[str, Decimal]:
    """Copy a seed vault with upper-case codes, Decimal quantities and a LOCAL entry.

    Raises:
        MalformedRecordError: If a quantity is not numeric
    """
    vault: dict[str, Decimal] = {LOCAL: ZERO}
    for code, quantity in seed_vault.items():
        try:
            vault[currency_key(code)] = parse_amount(quantity)
        except ValueError as e:
            raise MalformedRecordError(f"Invalid seed quantity for '{code}': {e}", field=str(code))
    return vault


class VaultLedger:
    """Derives and guards the exchange desk's multi-currency cash position."""

    def __init__(self, bank_accounts: Optional[BankAccountDirectory] = None):
        """Initialize vault ledger.

        Args:
            bank_accounts: Directory consulted for bank-settled transactions
        """
        self.bank_accounts = bank_accounts or BankAccountDirectory()

    def compute_holdings(
        self, seed_vault: Mapping, transactions: Iterable[ExchangeTransaction]
    ) -> dict[str, Decimal]:
        """Fold a transaction history onto a seed vault.

        This fold does not enforce non-negative holdings: it reports what the
        history implies even if the history was never validated. Use
        ``replay`` to fold and validate every step.

        Args:
            seed_vault: Starting quantities per currency code, including LOCAL
            transactions: Ordered exchange history

        Returns:
            Mapping of currency code to quantity, with a LOCAL entry
        """
        vault = normalize_vault(seed_vault)
        count = 0
        for transaction in transactions:
            _apply(vault, transaction)
            count += 1
        logger.debug("vault_holdings_computed", extra={"transaction_count": count})
        return vault

    def validate_new_transaction(
        self, vault: Mapping[str, Decimal], candidate: ExchangeTransaction
    ) -> Outcome:
        """Check a prospective transaction against current holdings.

        Args:
            vault: Current holdings (the fold of everything before the candidate)
            candidate: Transaction about to be recorded

        Returns:
            Outcome holding the candidate when it may be committed, otherwise an
            InsufficientHoldingsError, InsufficientLocalCashError,
            IneligibleBankAccountError or MalformedRecordError (bank payment
            without an account)
        """
        bank_error = self.bank_accounts.check_payment(
            candidate.payment_method, candidate.bank_account_ref, Sector.EXCHANGE
        )
        if bank_error is not None:
            return self._reject(candidate, bank_error)

        code = currency_key(candidate.currency_code)
        if code == LOCAL:
            return self._reject(
                candidate,
                MalformedRecordError(
                    "Local currency cannot be bought or sold", field="currency_code"
                ),
            )
        if candidate.kind == ExchangeKind.SELL:
            available = vault.get(code, ZERO)
            if available < candidate.amount:
                return self._reject(
                    candidate, InsufficientHoldingsError(code, available, candidate.amount)
                )
        else:
            cost = candidate.amount * candidate.rate
            available = vault.get(LOCAL, ZERO)
            if available < cost:
                return self._reject(candidate, InsufficientLocalCashError(available, cost))

        return Outcome.success(candidate)

    def replay(self, seed_vault: Mapping, transactions: Sequence[ExchangeTransaction]) -> Outcome:
        """Fold a history, validating each transaction against its prefix.

        Returns:
            Outcome holding the final holdings, or the error of the first
            transaction that was not acceptable when it was recorded
        """
        vault = normalize_vault(seed_vault)
        for transaction in transactions:
            outcome = self.validate_new_transaction(vault, transaction)
            if not outcome.ok:
                return outcome
            _apply(vault, transaction)
        return Outcome.success(vault)

    def record(
        self,
        seed_vault: Mapping,
        history: Iterable[ExchangeTransaction],
        candidate: ExchangeTransaction,
    ) -> Outcome:
        """Validate a candidate against the current fold and return the new holdings.

        Returns:
            Outcome holding the holdings after the candidate is applied
        """
        vault = self.compute_holdings(seed_vault, history)
        outcome = self.validate_new_transaction(vault, candidate)
        if not outcome.ok:
            return outcome
        _apply(vault, candidate)
        return Outcome.success(vault)

    def without_transaction(
        self, history: Iterable[ExchangeTransaction], transaction_id: str
    ) -> tuple[ExchangeTransaction, ...]:
        """Return the history with one transaction removed.

        Holdings are always recomputed from the history, so the result of a
        delete is visible on the next ``compute_holdings`` call.

        Raises:
            MalformedRecordError: If no transaction has that id
        """
        history = tuple(history)
        remaining = tuple(t for t in history if str(t.id) != str(transaction_id))
        if len(remaining) == len(history):
            raise MalformedRecordError(
                f"Exchange transaction {transaction_id} not found", field="id"
            )
        return remaining

    def summarize(
        self,
        transactions: Iterable[ExchangeTransaction],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ExchangeSummary:
        """Total foreign volume bought and sold per currency and local volume moved.

        Args:
            transactions: Exchange history
            start_date: Optional inclusive start date filter
            end_date: Optional inclusive end date filter
        """
        bought: dict[str, Decimal] = {}
        sold: dict[str, Decimal] = {}
        local_volume = ZERO
        for transaction in transactions:
            day = transaction.timestamp.date()
            if start_date is not None and day < start_date:
                continue
            if end_date is not None and day > end_date:
                continue
            bucket = bought if transaction.kind == ExchangeKind.BUY else sold
            code = currency_key(transaction.currency_code)
            bucket[code] = bucket.get(code, ZERO) + transaction.amount
            local_volume += transaction.amount * transaction.rate
        return ExchangeSummary(bought=bought, sold=sold, local_volume=local_volume)

    def _reject(self, candidate: ExchangeTransaction, error) -> Outcome:
        logger.info(
            "exchange_transaction_rejected",
            extra={
                "transaction_id": candidate.id,
                "kind": candidate.kind.value,
                "currency_code": candidate.currency_code,
                "error_type": type(error).__name__,
            },
        )
        return Outcome.failure(error)


def currency_key(code) -> str:
    """Vault key for a currency code: trimmed and upper-cased."""
    return str(code).strip().upper()


def _apply(vault: dict[str, Decimal], transaction: ExchangeTransaction) -> None:
    code = currency_key(transaction.currency_code)
    local = transaction.amount * transaction.rate
    vault.setdefault(code, ZERO)
    if transaction.kind == ExchangeKind.BUY:
        vault[code] += transaction.amount
        vault[LOCAL] -= local
    else:
        vault[code] -= transaction.amount
        vault[LOCAL] += local
