"""Tests for JSON rendering of ledger results."""

from datetime import datetime
from decimal import Decimal

from backoffice.domain.entities import LOCAL, Sale, SaleLineItem, SiteSummary
from backoffice.domain.errors import InsufficientStockError, MalformedRecordError
from backoffice.domain.results import Outcome
from backoffice.utils.serializers import (
    serialize_error,
    serialize_outcome,
    serialize_sale,
    serialize_site_summary,
    serialize_vault,
)


def test_serialize_vault_rounds_to_cents():
    """Test that balances are rendered as rounded strings."""
    assert serialize_vault({"USD": Decimal("11000"), LOCAL: Decimal("96.9051")}) == {
        "USD": "11000.00",
        LOCAL: "96.91",
    }


def test_serialize_site_summary_includes_balance():
    """Test that the balance is derived in the rendered summary."""
    summary = SiteSummary(
        income=Decimal("5000"),
        expense=Decimal("3200"),
        credit_income=Decimal("1000"),
        credit_expense=Decimal("800"),
    )
    assert serialize_site_summary(summary) == {
        "income": "5000.00",
        "expense": "3200.00",
        "balance": "1800.00",
        "credit_income": "1000.00",
        "credit_expense": "800.00",
    }


def test_serialize_sale():
    """Test rendering a sale with per-line totals."""
    sale = Sale(
        id="s1",
        timestamp=datetime(2024, 3, 2, 10, 0),
        lines=(SaleLineItem("1", 3, "Item", 3, Decimal("10") / Decimal("3")),),
        total=Decimal("10"),
    )
    rendered = serialize_sale(sale)

    assert rendered["timestamp"] == "2024-03-02T10:00:00"
    assert rendered["lines"][0]["resolved_unit_price"] == "3.33"
    assert rendered["lines"][0]["line_total"] == "10.00"
    assert rendered["payment_method"] == "cash"


def test_serialize_error_details():
    """Test that structured error details are included."""
    details = serialize_error(InsufficientStockError(1, "2", 5, 10))
    assert details["type"] == "InsufficientStockError"
    assert details["line_index"] == 1
    assert details["available"] == 5

    details = serialize_error(MalformedRecordError("bad", field="amount"))
    assert details == {"type": "MalformedRecordError", "message": "bad", "field": "amount"}


def test_serialize_outcome():
    """Test rendering successful and failed outcomes."""
    assert serialize_outcome(Outcome.success({"a": 1})) == {"ok": True, "result": {"a": 1}}
    assert serialize_outcome(Outcome.success(object()), value="shown") == {"ok": True, "result": "shown"}
    failed = serialize_outcome(Outcome.failure(MalformedRecordError("bad")))
    assert failed["ok"] is False
    assert failed["error"]["message"] == "bad"
