"""Domain model entities for backoffice.

These are pure data classes representing business concepts, independent of
how the caller stores them. Every ledger derives its current state from
tuples of these records; none of them is ever mutated in place.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

LOCAL = "LOCAL"
ATOMIC_UNIT = "Item"


class Sector(str, Enum):
    """Business line a transaction or bank account belongs to."""

    EXCHANGE = "exchange"
    PHARMACY = "pharmacy"
    CONSTRUCTION = "construction"


class PaymentMethod(str, Enum):
    """How a transaction was settled."""

    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"


class ExchangeKind(str, Enum):
    """Direction of a currency exchange, seen from the desk."""

    BUY = "buy"
    SELL = "sell"


class SiteTransactionKind(str, Enum):
    """Direction of money for a construction site."""

    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class BankAccount:
    """Company bank account and the sectors allowed to settle through it.

    An empty ``eligible_sectors`` set means the account serves every sector.
    """

    id: str
    name: str
    account_number: str
    eligible_sectors: frozenset[Sector] = frozenset()


@dataclass(frozen=True)
class ExternalBankInfo:
    """Counterparty bank details recorded for a bank transfer."""

    bank_name: str
    account_number: Optional[str] = None


@dataclass(frozen=True)
class Rate:
    """Buy and sell rate for one currency, in local units per foreign unit."""

    code: str
    buy: Decimal
    sell: Decimal


@dataclass(frozen=True)
class ExchangeTransaction:
    """Currency bought from or sold to a customer."""

    id: str
    timestamp: datetime
    kind: ExchangeKind
    currency_code: str
    amount: Decimal
    rate: Decimal
    total_local: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_ref: Optional[str] = None
    counterparty_bank_info: Optional[ExternalBankInfo] = None


@dataclass(frozen=True)
class StockItem:
    """Pharmacy stock item.

    ``quantity_on_hand`` is always counted in atomic units (single pills or
    pieces), never in storage units.
    """

    id: str
    name: str
    buy_price: Decimal
    sell_price: Decimal
    quantity_on_hand: int
    storage_unit: str = ATOMIC_UNIT
    items_per_storage_unit: int = 1
    batch: Optional[str] = None
    mfg_date: Optional[date] = None
    exp_date: Optional[date] = None


@dataclass(frozen=True)
class SaleRequest:
    """One requested line of a sale before unit resolution."""

    stock_item_id: str
    quantity: int
    unit: str = ATOMIC_UNIT


@dataclass(frozen=True)
class SaleResolution:
    """Atomic stock deduction and price per requested unit."""

    atomic_deduction: int
    unit_price: Decimal


@dataclass(frozen=True)
class SaleLineItem:
    """Resolved sale line."""

    stock_item_id: str
    requested_quantity: int
    requested_unit: str
    resolved_atomic_deduction: int
    resolved_unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.requested_quantity * self.resolved_unit_price


@dataclass(frozen=True)
class Sale:
    """Completed pharmacy sale."""

    id: str
    timestamp: datetime
    lines: tuple[SaleLineItem, ...]
    total: Decimal
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_ref: Optional[str] = None


@dataclass(frozen=True)
class RestockEvent:
    """Atomic units added to a stock item."""

    stock_item_id: str
    quantity: int
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class SaleBatch:
    """Result of applying every line of a sale to the stock catalog."""

    lines: tuple[SaleLineItem, ...]
    updated_items: dict[str, StockItem]
    total: Decimal


@dataclass(frozen=True)
class SiteTransaction:
    """Income or expense booked against a construction site."""

    id: str
    site_id: str
    kind: SiteTransactionKind
    amount: Decimal
    date: date
    payment_method: PaymentMethod = PaymentMethod.CASH
    bank_account_ref: Optional[str] = None
    external_bank_info: Optional[ExternalBankInfo] = None
    project: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class SiteSummary:
    """Aggregated totals for a set of site transactions."""

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    credit_income: Decimal = Decimal("0")
    credit_expense: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class ExchangeSummary:
    """Foreign volume bought and sold per currency plus local volume moved."""

    bought: dict[str, Decimal] = field(default_factory=dict)
    sold: dict[str, Decimal] = field(default_factory=dict)
    local_volume: Decimal = Decimal("0")
