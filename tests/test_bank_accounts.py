"""Tests for bank account eligibility."""

import pytest

from backoffice.domain.bank_accounts import BankAccountDirectory, is_eligible, parse_sectors
from backoffice.domain.entities import BankAccount, PaymentMethod, Sector
from backoffice.domain.errors import IneligibleBankAccountError, MalformedRecordError


def test_get(bank_accounts):
    """Test looking up accounts by id."""
    assert bank_accounts.get("1").name == "Exchange Bank"
    assert bank_accounts.get(1).name == "Exchange Bank"
    assert bank_accounts.get("99") is None


def test_eligible_accounts(bank_accounts):
    """Test listing accounts per sector."""
    assert [a.id for a in bank_accounts.eligible_accounts(Sector.EXCHANGE)] == ["1", "3"]
    assert [a.id for a in bank_accounts.eligible_accounts(Sector.PHARMACY)] == ["2", "3"]
    assert [a.id for a in bank_accounts.eligible_accounts(Sector.CONSTRUCTION)] == ["3"]


def test_unrestricted_account_serves_every_sector():
    """Test that an account without sectors is eligible everywhere."""
    account = BankAccount(id="9", name="Main", account_number="999")
    assert all(is_eligible(account, sector) for sector in Sector)


def test_check(bank_accounts):
    """Test eligibility checks."""
    assert bank_accounts.check("1", Sector.EXCHANGE) is None
    error = bank_accounts.check("1", Sector.CONSTRUCTION)
    assert isinstance(error, IneligibleBankAccountError)
    assert error.bank_account_ref == "1"
    assert error.sector == "construction"


def test_check_unknown_account(bank_accounts):
    """Test that an unknown account is never eligible."""
    error = bank_accounts.check("99", Sector.EXCHANGE)
    assert isinstance(error, IneligibleBankAccountError)
    assert "unknown account" in str(error)


def test_check_payment(bank_accounts):
    """Test that only bank payments consult the directory."""
    assert bank_accounts.check_payment(PaymentMethod.CASH, None, Sector.PHARMACY) is None
    assert bank_accounts.check_payment(PaymentMethod.CREDIT, "1", Sector.PHARMACY) is None
    assert bank_accounts.check_payment(PaymentMethod.BANK, "2", Sector.PHARMACY) is None
    assert bank_accounts.check_payment(PaymentMethod.BANK, "1", Sector.PHARMACY) is not None


def test_check_payment_requires_account():
    """Test that a bank payment without an account is reported as malformed."""
    error = BankAccountDirectory().check_payment(PaymentMethod.BANK, None, Sector.EXCHANGE)
    assert isinstance(error, MalformedRecordError)
    assert error.field == "bank_account_ref"


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, frozenset()),
        ("", frozenset()),
        ("all", frozenset()),
        ("exchange", frozenset({Sector.EXCHANGE})),
        ("Exchange, pharmacy", frozenset({Sector.EXCHANGE, Sector.PHARMACY})),
        (["construction"], frozenset({Sector.CONSTRUCTION})),
        ([Sector.PHARMACY], frozenset({Sector.PHARMACY})),
        ([], frozenset()),
    ],
)
def test_parse_sectors(raw, expected):
    """Test the stored sector list shapes."""
    assert parse_sectors(raw) == expected


@pytest.mark.parametrize("raw", ["casino", ["exchange", "bakery"], 42])
def test_parse_sectors_rejects_unknown(raw):
    """Test that unknown sectors are malformed."""
    with pytest.raises(MalformedRecordError):
        parse_sectors(raw)
