"""Construction site ledger."""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Optional

from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import (
    PaymentMethod,
    Sector,
    SiteSummary,
    SiteTransaction,
    SiteTransactionKind,
)
from backoffice.domain.results import Outcome

logger = logging.getLogger(__name__)

UNASSIGNED_PROJECT = "Unassigned"


class SiteLedger:
    """Aggregates income and expenses per construction site.

    Unlike the vault, a site may run at a deficit, so there is no
    non-negative balance rule. The only check on new transactions is bank
    account eligibility.
    """

    def __init__(self, bank_accounts: Optional[BankAccountDirectory] = None):
        """Initialize site ledger.

        Args:
            bank_accounts: Directory consulted for bank-settled transactions
        """
        self.bank_accounts = bank_accounts or BankAccountDirectory()

    def aggregate(
        self,
        site_transactions: Iterable[SiteTransaction],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> SiteSummary:
        """Reduce transactions to income, expense, balance and credit totals.

        Args:
            site_transactions: Transactions to aggregate
            start_date: Optional inclusive start date filter
            end_date: Optional inclusive end date filter

        Returns:
            SiteSummary for the transactions
        """
        income = expense = credit_income = credit_expense = Decimal("0")
        for transaction in _in_range(site_transactions, start_date, end_date):
            on_credit = transaction.payment_method == PaymentMethod.CREDIT
            if transaction.kind == SiteTransactionKind.INCOME:
                income += transaction.amount
                if on_credit:
                    credit_income += transaction.amount
            else:
                expense += transaction.amount
                if on_credit:
                    credit_expense += transaction.amount

        return SiteSummary(
            income=income,
            expense=expense,
            credit_income=credit_income,
            credit_expense=credit_expense,
        )

    def aggregate_by_site(
        self,
        site_transactions: Iterable[SiteTransaction],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict[str, SiteSummary]:
        """Aggregate separately for each site id, in order of first appearance."""
        grouped: dict[str, list[SiteTransaction]] = {}
        for transaction in _in_range(site_transactions, start_date, end_date):
            grouped.setdefault(str(transaction.site_id), []).append(transaction)
        return {site_id: self.aggregate(group) for site_id, group in grouped.items()}

    def aggregate_by_project(
        self, site_transactions: Iterable[SiteTransaction]
    ) -> dict[str, SiteSummary]:
        """Aggregate separately for each project; untagged transactions go to "Unassigned"."""
        grouped: dict[str, list[SiteTransaction]] = {}
        for transaction in site_transactions:
            grouped.setdefault(transaction.project or UNASSIGNED_PROJECT, []).append(transaction)
        return {project: self.aggregate(group) for project, group in grouped.items()}

    def validate_new_transaction(self, candidate: SiteTransaction) -> Outcome:
        """Check the settlement details of a new site transaction.

        Returns:
            Outcome holding the candidate, or an IneligibleBankAccountError or
            MalformedRecordError
        """
        error = self.bank_accounts.check_payment(
            candidate.payment_method, candidate.bank_account_ref, Sector.CONSTRUCTION
        )
        if error is not None:
            logger.info(
                "site_transaction_rejected",
                extra={"transaction_id": candidate.id, "site_id": candidate.site_id},
            )
            return Outcome.failure(error)
        return Outcome.success(candidate)


def _in_range(
    site_transactions: Iterable[SiteTransaction],
    start_date: Optional[date],
    end_date: Optional[date],
) -> Iterable[SiteTransaction]:
    for transaction in site_transactions:
        if start_date is not None and transaction.date < start_date:
            continue
        if end_date is not None and transaction.date > end_date:
            continue
        yield transaction
