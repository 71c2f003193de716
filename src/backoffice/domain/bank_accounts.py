"""Bank account eligibility checks shared by every ledger."""

import logging
from typing import Iterable, Optional

from backoffice.domain.entities import BankAccount, PaymentMethod, Sector
from backoffice.domain.errors import DomainError, IneligibleBankAccountError, MalformedRecordError

logger = logging.getLogger(__name__)


class BankAccountDirectory:
    """Read-only lookup of company bank accounts by id."""

    def __init__(self, accounts: Iterable[BankAccount] = ()):
        """Initialize the directory.

        Args:
            accounts: Bank accounts loaded by the caller
        """
        self.accounts = {str(account.id): account for account in accounts}

    def get(self, account_ref: str) -> Optional[BankAccount]:
        """Get a bank account by id, or None if unknown."""
        return self.accounts.get(str(account_ref))

    def eligible_accounts(self, sector: Sector) -> list[BankAccount]:
        """List the accounts that may settle transactions for a sector."""
        return [account for account in self.accounts.values() if is_eligible(account, sector)]

    def check(self, account_ref: str, sector: Sector) -> Optional[IneligibleBankAccountError]:
        """Check that an account may settle a transaction for a sector.

        Args:
            account_ref: Bank account id chosen for the transaction
            sector: Sector of the transaction being recorded

        Returns:
            None when eligible, otherwise the error describing why not
        """
        account = self.get(account_ref)
        if account is None:
            error = IneligibleBankAccountError(account_ref, sector.value, reason="unknown account")
        elif not is_eligible(account, sector):
            error = IneligibleBankAccountError(account_ref, sector.value)
        else:
            return None

        logger.info(
            "bank_account_rejected",
            extra={"bank_account_ref": account_ref, "sector": sector.value},
        )
        return error

    def check_payment(
        self,
        payment_method: PaymentMethod,
        account_ref: Optional[str],
        sector: Sector,
    ) -> Optional[DomainError]:
        """Check the settlement details of a transaction.

        Only bank payments involve an account. Cash and credit settlements
        pass without consulting the directory.

        Returns:
            None when the settlement is acceptable, a MalformedRecordError if
            a bank payment names no account, otherwise the eligibility error
        """
        if payment_method != PaymentMethod.BANK:
            return None
        if not account_ref:
            return MalformedRecordError(
                "Bank payment requires a bank account", field="bank_account_ref"
            )
        return self.check(account_ref, sector)


def is_eligible(account: BankAccount, sector: Sector) -> bool:
    """Return True if the account serves the sector.

    Accounts without any sector restriction serve every sector.
    """
    return not account.eligible_sectors or sector in account.eligible_sectors


def parse_sectors(raw) -> frozenset[Sector]:
    """Normalize stored sector lists into a set of sectors.

    Sectors may be stored as a list or as a comma-separated string. Missing
    values, empty values and "all" mean no restriction, which is returned as
    an empty set.

    Raises:
        MalformedRecordError: If a sector name is not recognized
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        names = raw.split(",")
    elif isinstance(raw, (list, tuple, set, frozenset)):
        names = list(raw)
    else:
        raise MalformedRecordError(f"Unrecognized sectors value: {raw!r}", field="sectors")

    sectors = set()
    for name in names:
        name = str(name.value if isinstance(name, Sector) else name).strip().lower()
        if not name:
            continue
        if name == "all":
            return frozenset()
        try:
            sectors.add(Sector(name))
        except ValueError:
            raise MalformedRecordError(f"Unknown sector '{name}'", field="sectors")
    return frozenset(sectors)
