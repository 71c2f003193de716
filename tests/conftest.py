"""Shared pytest fixtures for backoffice tests."""

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import (
    BankAccount,
    ExchangeKind,
    ExchangeTransaction,
    PaymentMethod,
    Sector,
    StockItem,
)
from backoffice.domain.stock import StockLedger
from backoffice.domain.vault import VaultLedger


def _make_exchange(
    kind,
    currency_code,
    amount,
    rate,
    id="t1",
    timestamp=None,
    payment_method=PaymentMethod.CASH,
    bank_account_ref=None,
):
    """Build an exchange transaction with its total computed from amount and rate."""
    amount = Decimal(str(amount))
    rate = Decimal(str(rate))
    return ExchangeTransaction(
        id=id,
        timestamp=timestamp or datetime(2024, 3, 1, 10, 0),
        kind=ExchangeKind(kind),
        currency_code=currency_code,
        amount=amount,
        rate=rate,
        total_local=amount * rate,
        payment_method=payment_method,
        bank_account_ref=bank_account_ref,
    )


@pytest.fixture
def make_exchange():
    """Return a factory for exchange transactions."""
    return _make_exchange


@pytest.fixture
def seed_vault():
    """Create the starting vault used by most exchange tests."""
    return {"USD": Decimal("10000"), "EUR": Decimal("5000"), "LOCAL": Decimal("500000")}


@pytest.fixture
def bank_accounts():
    """Create a directory with one exchange-only and one pharmacy-only account."""
    return BankAccountDirectory(
        [
            BankAccount(
                id="1",
                name="Exchange Bank",
                account_number="111",
                eligible_sectors=frozenset({Sector.EXCHANGE}),
            ),
            BankAccount(
                id="2",
                name="Pharmacy Bank",
                account_number="222",
                eligible_sectors=frozenset({Sector.PHARMACY}),
            ),
            BankAccount(id="3", name="General Bank", account_number="333"),
        ]
    )


@pytest.fixture
def vault_ledger(bank_accounts):
    """Create a VaultLedger that knows the sample bank accounts."""
    return VaultLedger(bank_accounts)


@pytest.fixture
def stock_ledger(bank_accounts):
    """Create a StockLedger that knows the sample bank accounts."""
    return StockLedger(bank_accounts=bank_accounts)


@pytest.fixture
def boxed_item():
    """Create a stock item kept in boxes of ten."""
    return StockItem(
        id="1",
        name="Paracetamol 500mg",
        buy_price=Decimal("30"),
        sell_price=Decimal("50"),
        quantity_on_hand=25,
        storage_unit="Box",
        items_per_storage_unit=10,
        batch="B-17",
        exp_date=date(2025, 6, 30),
    )


@pytest.fixture
def loose_item():
    """Create a stock item kept as single pieces."""
    return StockItem(
        id="2",
        name="Bandage",
        buy_price=Decimal("1.50"),
        sell_price=Decimal("2.25"),
        quantity_on_hand=5,
        exp_date=date(2024, 4, 1),
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a temporary file and return its path."""

    def _write(name: str, data) -> str:
        path = Path(tmp_path) / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return _write
