"""Tests for the exchange desk vault ledger."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from backoffice.domain.entities import LOCAL, ExchangeKind, ExchangeTransaction, PaymentMethod
from backoffice.domain.errors import (
    IneligibleBankAccountError,
    InsufficientHoldingsError,
    InsufficientLocalCashError,
    MalformedRecordError,
)
from backoffice.domain.vault import VaultLedger, normalize_vault


def test_compute_holdings_empty_history_returns_seed(vault_ledger, seed_vault):
    """Test that no history means the seed vault."""
    holdings = vault_ledger.compute_holdings(seed_vault, [])
    assert holdings == seed_vault


def test_compute_holdings_adds_local_entry():
    """Test that the local cash entry is always present."""
    holdings = VaultLedger().compute_holdings({"usd": "100"}, [])
    assert holdings == {"USD": Decimal("100"), LOCAL: Decimal("0")}


def test_buy_adds_foreign_and_spends_local(vault_ledger, seed_vault, make_exchange):
    """Test buying 1000 USD at 1.02 against the seed vault."""
    holdings = vault_ledger.compute_holdings(seed_vault, [make_exchange("buy", "USD", 1000, "1.02")])
    assert holdings["USD"] == Decimal("11000")
    assert holdings[LOCAL] == Decimal("498980")
    assert holdings["EUR"] == Decimal("5000")


def test_sell_removes_foreign_and_adds_local(vault_ledger, seed_vault, make_exchange):
    """Test selling EUR at the sell rate."""
    holdings = vault_ledger.compute_holdings(seed_vault, [make_exchange("sell", "EUR", 200, "0.92")])
    assert holdings["EUR"] == Decimal("4800")
    assert holdings[LOCAL] == Decimal("500184")


def test_buy_of_new_currency_creates_entry(vault_ledger, seed_vault, make_exchange):
    """Test that a currency absent from the seed starts at zero."""
    holdings = vault_ledger.compute_holdings(seed_vault, [make_exchange("buy", "JPY", 1000, "0.0065")])
    assert holdings["JPY"] == Decimal("1000")
    assert holdings[LOCAL] == Decimal("499993.5")


def test_compute_holdings_keeps_full_precision(vault_ledger, make_exchange):
    """Test that fractional local amounts are not rounded by the fold."""
    holdings = vault_ledger.compute_holdings(
        {"LOCAL": "100"}, [make_exchange("buy", "USD", "3", "1.0333")]
    )
    assert holdings[LOCAL] == Decimal("96.9001")


def test_compute_holdings_reports_overdrawn_history(vault_ledger, make_exchange):
    """Test that the plain fold reports negative holdings instead of failing."""
    holdings = vault_ledger.compute_holdings({"USD": "10"}, [make_exchange("sell", "USD", 50, 1)])
    assert holdings["USD"] == Decimal("-40")


def test_validate_sell_more_than_held_rejected(vault_ledger, make_exchange):
    """Test that selling more than the vault holds is rejected."""
    vault = {"USD": Decimal("50"), LOCAL: Decimal("0")}
    outcome = vault_ledger.validate_new_transaction(vault, make_exchange("sell", "USD", 100, "1.02"))

    assert not outcome.ok
    assert isinstance(outcome.error, InsufficientHoldingsError)
    assert outcome.error.currency_code == "USD"
    assert outcome.error.available == Decimal("50")
    assert outcome.error.requested == Decimal("100")


def test_validate_sell_exact_holdings_accepted(vault_ledger, make_exchange):
    """Test that selling exactly what is held is allowed."""
    vault = {"USD": Decimal("50"), LOCAL: Decimal("0")}
    candidate = make_exchange("sell", "USD", 50, "1.02")
    outcome = vault_ledger.validate_new_transaction(vault, candidate)

    assert outcome.ok
    assert outcome.value == candidate


def test_validate_sell_unheld_currency_rejected(vault_ledger, make_exchange):
    """Test that selling a currency the vault never held is rejected."""
    outcome = vault_ledger.validate_new_transaction({LOCAL: Decimal("10")}, make_exchange("sell", "CHF", 1, 1))
    assert isinstance(outcome.error, InsufficientHoldingsError)
    assert outcome.error.available == Decimal("0")


def test_validate_buy_without_local_cash_rejected(vault_ledger, make_exchange):
    """Test that a buy costing more local cash than available is rejected."""
    vault = {"USD": Decimal("0"), LOCAL: Decimal("100")}
    outcome = vault_ledger.validate_new_transaction(vault, make_exchange("buy", "USD", 100, "1.02"))

    assert isinstance(outcome.error, InsufficientLocalCashError)
    assert outcome.error.available == Decimal("100")
    assert outcome.error.requested == Decimal("102")


def test_validate_buy_exact_local_cash_accepted(vault_ledger, make_exchange):
    """Test that a buy spending all local cash is allowed."""
    outcome = vault_ledger.validate_new_transaction(
        {LOCAL: Decimal("102")}, make_exchange("buy", "USD", 100, "1.02")
    )
    assert outcome.ok


def test_validate_bank_payment_with_eligible_account(vault_ledger, seed_vault, make_exchange):
    """Test that exchange and unrestricted accounts may settle exchange trades."""
    for account_ref in ("1", "3"):
        candidate = make_exchange(
            "buy", "USD", 10, 1, payment_method=PaymentMethod.BANK, bank_account_ref=account_ref
        )
        assert vault_ledger.validate_new_transaction(seed_vault, candidate).ok


def test_validate_bank_payment_with_ineligible_account(vault_ledger, seed_vault, make_exchange):
    """Test that a pharmacy-only account cannot settle an exchange trade."""
    candidate = make_exchange("buy", "USD", 10, 1, payment_method=PaymentMethod.BANK, bank_account_ref="2")
    outcome = vault_ledger.validate_new_transaction(seed_vault, candidate)

    assert isinstance(outcome.error, IneligibleBankAccountError)
    assert outcome.error.sector == "exchange"


def test_validate_bank_payment_without_account(vault_ledger, seed_vault, make_exchange):
    """Test that a bank payment must name an account."""
    candidate = make_exchange("buy", "USD", 10, 1, payment_method=PaymentMethod.BANK)
    outcome = vault_ledger.validate_new_transaction(seed_vault, candidate)

    assert not outcome.ok
    assert isinstance(outcome.error, MalformedRecordError)
    assert outcome.error.field == "bank_account_ref"


def test_replay_bank_payment_without_account_fails(vault_ledger, seed_vault, make_exchange):
    """Test that replay reports a bank trade with no account instead of raising."""
    history = [
        make_exchange("buy", "USD", 10, 1, id="a"),
        make_exchange("buy", "USD", 10, 1, id="b", payment_method=PaymentMethod.BANK),
    ]
    outcome = vault_ledger.replay(seed_vault, history)

    assert not outcome.ok
    assert isinstance(outcome.error, MalformedRecordError)
    assert "requires a bank account" in str(outcome.error)


def test_record_bank_payment_without_account_fails(vault_ledger, seed_vault, make_exchange):
    """Test that record returns a failure for a bank trade with no account."""
    candidate = make_exchange("sell", "USD", 10, 1, payment_method=PaymentMethod.BANK)
    outcome = vault_ledger.record(seed_vault, [], candidate)
    assert isinstance(outcome.error, MalformedRecordError)


def test_validate_local_currency_rejected(vault_ledger, seed_vault, make_exchange):
    """Test that local cash cannot itself be bought or sold."""
    outcome = vault_ledger.validate_new_transaction(seed_vault, make_exchange("sell", "local", 1, 1))

    assert isinstance(outcome.error, MalformedRecordError)
    assert outcome.error.field == "currency_code"


def test_lower_case_currency_folds_into_seed_entry(vault_ledger, seed_vault, make_exchange):
    """Test that a lower-case code is validated and folded under the upper-case key."""
    candidate = make_exchange("sell", "usd", 10000, 1)
    assert vault_ledger.validate_new_transaction(seed_vault, candidate).ok

    holdings = vault_ledger.compute_holdings(seed_vault, [candidate])
    assert holdings["USD"] == Decimal("0")
    assert "usd" not in holdings
    assert vault_ledger.summarize([candidate]).sold == {"USD": Decimal("10000")}


def test_replay_validates_against_each_prefix(vault_ledger, make_exchange):
    """Test that replay rejects a sell that exceeded holdings at the time."""
    history = [
        make_exchange("sell", "USD", 80, 1, id="a"),
        make_exchange("buy", "USD", 100, 1, id="b"),
    ]
    seed = {"USD": "50", "LOCAL": "1000"}

    outcome = vault_ledger.replay(seed, history)
    assert isinstance(outcome.error, InsufficientHoldingsError)

    # Recorded the other way round, the same transactions are acceptable
    outcome = vault_ledger.replay(seed, list(reversed(history)))
    assert outcome.ok
    assert outcome.value == vault_ledger.compute_holdings(seed, history)


def test_record_returns_holdings_after_candidate(vault_ledger, seed_vault, make_exchange):
    """Test that record folds history, validates and applies the candidate."""
    history = [make_exchange("buy", "USD", 1000, "1.02", id="a")]
    outcome = vault_ledger.record(seed_vault, history, make_exchange("sell", "USD", 11000, 1, id="b"))

    assert outcome.ok
    assert outcome.value["USD"] == Decimal("0")
    assert outcome.value[LOCAL] == Decimal("509980")


def test_record_rejects_sell_beyond_folded_holdings(vault_ledger, seed_vault, make_exchange):
    """Test that record validates against the fold, not the seed."""
    history = [make_exchange("sell", "USD", 9990, 1, id="a")]
    outcome = vault_ledger.record(seed_vault, history, make_exchange("sell", "USD", 20, 1, id="b"))

    assert isinstance(outcome.error, InsufficientHoldingsError)
    assert outcome.error.available == Decimal("10")


def test_without_transaction_forces_recompute(vault_ledger, seed_vault, make_exchange):
    """Test that deleting a transaction changes the next computed holdings."""
    history = [
        make_exchange("buy", "USD", 1000, "1.02", id="a"),
        make_exchange("sell", "EUR", 100, "0.92", id="b"),
    ]
    remaining = vault_ledger.without_transaction(history, "a")

    assert [t.id for t in remaining] == ["b"]
    holdings = vault_ledger.compute_holdings(seed_vault, remaining)
    assert holdings["USD"] == Decimal("10000")
    assert holdings["EUR"] == Decimal("4900")


def test_without_transaction_unknown_id(vault_ledger, make_exchange):
    """Test deleting a transaction that does not exist."""
    with pytest.raises(MalformedRecordError, match="not found"):
        vault_ledger.without_transaction([make_exchange("buy", "USD", 1, 1, id="a")], "zzz")


def test_summarize_totals_per_currency(vault_ledger, make_exchange):
    """Test exchange volume totals with a date filter."""
    history = [
        make_exchange("buy", "USD", 100, 1, id="a", timestamp=datetime(2024, 1, 5)),
        make_exchange("buy", "USD", 50, 1, id="b", timestamp=datetime(2024, 2, 5)),
        make_exchange("sell", "EUR", 20, "0.9", id="c", timestamp=datetime(2024, 2, 6)),
    ]

    summary = vault_ledger.summarize(history)
    assert summary.bought == {"USD": Decimal("150")}
    assert summary.sold == {"EUR": Decimal("20")}
    assert summary.local_volume == Decimal("168.0")

    february = vault_ledger.summarize(history, start_date=date(2024, 2, 1), end_date=date(2024, 2, 29))
    assert february.bought == {"USD": Decimal("50")}


def test_normalize_vault_rejects_bad_quantity():
    """Test that a non-numeric seed quantity is malformed."""
    with pytest.raises(MalformedRecordError, match="USD"):
        normalize_vault({"USD": "lots"})


def _build_history(rows):
    return [
        ExchangeTransaction(
            id=str(index),
            timestamp=datetime(2024, 3, 1),
            kind=ExchangeKind(kind),
            currency_code=code,
            amount=Decimal(amount),
            rate=Decimal(rate),
            total_local=Decimal(amount) * Decimal(rate),
        )
        for index, (kind, code, amount, rate) in enumerate(rows)
    ]


_transactions = st.lists(
    st.tuples(
        st.sampled_from(["buy", "sell"]),
        st.sampled_from(["USD", "EUR", "GBP"]),
        st.integers(min_value=1, max_value=5000),
        st.sampled_from(["0.82", "0.92", "1.02", "1.5"]),
    ),
    max_size=15,
)


class TestVaultProperties:
    """Property-based tests for the holdings fold."""

    @given(_transactions, st.randoms())
    @settings(max_examples=50)
    def test_holdings_independent_of_order(self, rows, rnd):
        """
        PROPERTY: Aggregate holdings do not depend on the order of the history.
        """
        history = _build_history(rows)
        shuffled = list(history)
        rnd.shuffle(shuffled)

        ledger = VaultLedger()
        seed = {"USD": "10000", "LOCAL": "500000"}
        assert ledger.compute_holdings(seed, history) == ledger.compute_holdings(seed, shuffled)

    @given(_transactions)
    @settings(max_examples=50)
    def test_replay_never_goes_negative(self, rows):
        """
        PROPERTY: Holdings after a successful replay are never negative.
        """
        outcome = VaultLedger().replay({"USD": "1000", "LOCAL": "5000"}, _build_history(rows))
        if outcome.ok:
            assert all(quantity >= 0 for quantity in outcome.value.values())
