"""Normalization of raw JSON records into domain entities.

Records arrive from the storage layer with field names that changed across
versions of the front end (``currency`` vs ``currency_code``, ``qty`` vs
``quantity_on_hand`` and so on). Every alias is resolved here so the ledgers
only ever see one shape. A record that lacks a required field or carries an
unusable value is rejected with ``MalformedRecordError``; nothing that
affects money or stock quantities falls back to a default.
"""

import uuid
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional, TypeVar

from backoffice.domain.bank_accounts import parse_sectors
from backoffice.domain.entities import (
    ATOMIC_UNIT,
    LOCAL,
    BankAccount,
    ExchangeKind,
    ExchangeTransaction,
    ExternalBankInfo,
    PaymentMethod,
    RestockEvent,
    Sale,
    SaleLineItem,
    SaleRequest,
    SiteTransaction,
    SiteTransactionKind,
    StockItem,
)
from backoffice.domain.errors import (
    MalformedRecordError,
    invalid_field,
    missing_field,
    total_mismatch,
)
from backoffice.utils.amount_parser import (
    CENT,
    parse_amount,
    parse_positive_amount,
    parse_quantity,
)
from backoffice.utils.date_parser import parse_date, parse_timestamp

T = TypeVar("T")

_MISSING = object()


def _lookup(raw: Mapping, *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return _MISSING


def _require(raw: Mapping, record_type: str, *names: str) -> Any:
    value = _lookup(raw, *names)
    if value is _MISSING:
        raise MalformedRecordError(missing_field(record_type, names[0]), field=names[0])
    return value


def _optional(raw: Mapping, *names: str) -> Optional[Any]:
    value = _lookup(raw, *names)
    return None if value is _MISSING else value


def _convert(record_type: str, field: str, value: Any, converter: Callable[[Any], T]) -> T:
    try:
        return converter(value)
    except ValueError:
        raise MalformedRecordError(invalid_field(record_type, field, value), field=field)


def _enum(record_type: str, field: str, value: Any, enum_type):
    return _convert(record_type, field, str(value).strip().lower(), enum_type)


def _record_id(raw: Mapping) -> str:
    value = _optional(raw, "id")
    return str(value) if value is not None else uuid.uuid4().hex


def _check_mapping(raw: Any, record_type: str) -> None:
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(f"{record_type} record must be an object, got {raw!r}")


def _payment(raw: Mapping, record_type: str) -> tuple[PaymentMethod, Optional[str]]:
    method_value = _optional(raw, "payment_method")
    method = (
        PaymentMethod.CASH
        if method_value is None
        else _enum(record_type, "payment_method", method_value, PaymentMethod)
    )
    account_ref = _optional(raw, "bank_account_ref", "bank_account_id")
    return method, str(account_ref) if account_ref is not None else None


def _external_bank(raw: Mapping, nested_name: str) -> Optional[ExternalBankInfo]:
    nested = _optional(raw, nested_name)
    if isinstance(nested, Mapping):
        bank_name = _optional(nested, "bank_name")
        account_number = _optional(nested, "account_number")
    else:
        # Flat legacy fields; a bare "bank_name" names the company account
        bank_name = _optional(raw, "external_bank_name")
        account_number = _optional(raw, "external_account_number")
    if bank_name is None:
        return None
    return ExternalBankInfo(
        bank_name=str(bank_name),
        account_number=str(account_number) if account_number is not None else None,
    )


def parse_exchange_transaction(raw: Mapping) -> ExchangeTransaction:
    """Parse an exchange buy/sell record.

    Raises:
        MalformedRecordError: If a required field is missing or invalid, or
            the recorded total differs from amount * rate by more than 0.01
    """
    record_type = "Exchange transaction"
    _check_mapping(raw, record_type)

    amount = _convert(record_type, "amount", _require(raw, record_type, "amount"), parse_positive_amount)
    rate = _convert(record_type, "rate", _require(raw, record_type, "rate"), parse_positive_amount)
    expected_total = amount * rate

    total_value = _optional(raw, "total_local", "total")
    if total_value is None:
        total_local = expected_total
    else:
        total_local = _convert(record_type, "total_local", total_value, parse_amount)
        if abs(total_local - expected_total) > CENT:
            raise MalformedRecordError(total_mismatch(total_local, expected_total), field="total_local")

    currency_code = str(_require(raw, record_type, "currency_code", "currency")).strip().upper()
    if currency_code == LOCAL:
        raise MalformedRecordError(invalid_field(record_type, "currency_code", currency_code), field="currency_code")

    payment_method, bank_account_ref = _payment(raw, record_type)
    return ExchangeTransaction(
        id=_record_id(raw),
        timestamp=_convert(
            record_type, "timestamp", _require(raw, record_type, "timestamp", "date"), parse_timestamp
        ),
        kind=_enum(record_type, "kind", _require(raw, record_type, "kind", "type"), ExchangeKind),
        currency_code=currency_code,
        amount=amount,
        rate=rate,
        total_local=total_local,
        payment_method=payment_method,
        bank_account_ref=bank_account_ref,
        counterparty_bank_info=_external_bank(raw, "counterparty_bank_info"),
    )


def parse_stock_item(raw: Mapping) -> StockItem:
    """Parse a pharmacy stock item.

    Raises:
        MalformedRecordError: If a required field is missing or invalid
    """
    record_type = "Stock item"
    _check_mapping(raw, record_type)

    per_unit_value = _optional(raw, "items_per_storage_unit", "items_per_unit")
    items_per_unit = (
        1
        if per_unit_value is None
        else _convert(record_type, "items_per_storage_unit", per_unit_value, parse_quantity)
    )
    if items_per_unit < 1:
        raise MalformedRecordError(
            invalid_field(record_type, "items_per_storage_unit", items_per_unit),
            field="items_per_storage_unit",
        )

    buy_price = _convert(record_type, "buy_price", _require(raw, record_type, "buy_price"), parse_amount)
    sell_price = _convert(record_type, "sell_price", _require(raw, record_type, "sell_price"), parse_amount)
    for field, price in (("buy_price", buy_price), ("sell_price", sell_price)):
        if price < 0:
            raise MalformedRecordError(invalid_field(record_type, field, price), field=field)

    mfg_date = _optional(raw, "mfg_date")
    exp_date = _optional(raw, "exp_date")
    batch = _optional(raw, "batch")
    return StockItem(
        id=str(_require(raw, record_type, "id")),
        name=str(_require(raw, record_type, "name")),
        buy_price=buy_price,
        sell_price=sell_price,
        quantity_on_hand=_convert(
            record_type,
            "quantity_on_hand",
            _require(raw, record_type, "quantity_on_hand", "qty"),
            parse_quantity,
        ),
        storage_unit=str(_optional(raw, "storage_unit", "unit_type") or ATOMIC_UNIT),
        items_per_storage_unit=items_per_unit,
        batch=str(batch) if batch is not None else None,
        mfg_date=_convert(record_type, "mfg_date", mfg_date, parse_date) if mfg_date is not None else None,
        exp_date=_convert(record_type, "exp_date", exp_date, parse_date) if exp_date is not None else None,
    )


def parse_sale_request(raw: Mapping) -> SaleRequest:
    """Parse a requested cart line: item id, quantity and unit."""
    record_type = "Sale line"
    _check_mapping(raw, record_type)
    quantity = _convert(
        record_type, "quantity", _require(raw, record_type, "quantity", "qty"), parse_quantity
    )
    if quantity == 0:
        raise MalformedRecordError(invalid_field(record_type, "quantity", quantity), field="quantity")
    return SaleRequest(
        stock_item_id=str(_require(raw, record_type, "stock_item_id", "item_id", "itemId", "id")),
        quantity=quantity,
        unit=str(_optional(raw, "unit") or ATOMIC_UNIT),
    )


def parse_sale_line(raw: Mapping) -> SaleLineItem:
    """Parse a line of a recorded sale, including its resolved deduction and price."""
    record_type = "Sale line"
    _check_mapping(raw, record_type)
    return SaleLineItem(
        stock_item_id=str(_require(raw, record_type, "stock_item_id", "item_id", "itemId", "id")),
        requested_quantity=_convert(
            record_type, "requested_quantity",
            _require(raw, record_type, "requested_quantity", "qty"), parse_quantity,
        ),
        requested_unit=str(_optional(raw, "requested_unit", "unit") or ATOMIC_UNIT),
        resolved_atomic_deduction=_convert(
            record_type, "resolved_atomic_deduction",
            _require(raw, record_type, "resolved_atomic_deduction", "deduction"), parse_quantity,
        ),
        resolved_unit_price=_convert(
            record_type, "resolved_unit_price",
            _require(raw, record_type, "resolved_unit_price", "price"), parse_amount,
        ),
    )


def parse_sale(raw: Mapping) -> Sale:
    """Parse a recorded pharmacy sale.

    Raises:
        MalformedRecordError: If a field is missing or invalid, or the
            recorded total differs from the sum of its lines by more than 0.01
    """
    record_type = "Sale"
    _check_mapping(raw, record_type)
    raw_lines = _require(raw, record_type, "lines", "items")
    if not isinstance(raw_lines, list):
        raise MalformedRecordError(invalid_field(record_type, "lines", raw_lines), field="lines")
    lines = tuple(parse_sale_line(line) for line in raw_lines)
    expected_total = sum((line.line_total for line in lines), Decimal("0"))

    total_value = _optional(raw, "total")
    total = expected_total
    if total_value is not None:
        total = _convert(record_type, "total", total_value, parse_amount)
        if abs(total - expected_total) > CENT:
            raise MalformedRecordError(total_mismatch(total, expected_total), field="total")

    payment_method, bank_account_ref = _payment(raw, record_type)
    return Sale(
        id=_record_id(raw),
        timestamp=_convert(
            record_type, "timestamp", _require(raw, record_type, "timestamp", "date"), parse_timestamp
        ),
        lines=lines,
        total=total,
        payment_method=payment_method,
        bank_account_ref=bank_account_ref,
    )


def parse_restock_event(raw: Mapping) -> RestockEvent:
    """Parse a restock of atomic units."""
    record_type = "Restock"
    _check_mapping(raw, record_type)
    timestamp = _optional(raw, "timestamp", "date")
    return RestockEvent(
        stock_item_id=str(_require(raw, record_type, "stock_item_id", "item_id", "itemId", "id")),
        quantity=_convert(
            record_type, "quantity", _require(raw, record_type, "quantity", "qty_added"), parse_quantity
        ),
        timestamp=_convert(record_type, "timestamp", timestamp, parse_timestamp) if timestamp is not None else None,
    )


def parse_stock_event(raw: Mapping):
    """Parse a stock history entry: a sale when it has lines, otherwise a restock."""
    _check_mapping(raw, "Stock event")
    if _lookup(raw, "lines", "items") is not _MISSING:
        return parse_sale(raw)
    return parse_restock_event(raw)


def parse_site_transaction(raw: Mapping, kind: Optional[SiteTransactionKind] = None) -> SiteTransaction:
    """Parse a construction income or expense record.

    Args:
        raw: Raw record
        kind: Kind to use when the record comes from a per-kind table and
            carries no ``kind``/``type`` field

    Raises:
        MalformedRecordError: If a required field is missing or invalid
    """
    record_type = "Site transaction"
    _check_mapping(raw, record_type)
    kind_value = _optional(raw, "kind", "type")
    if kind_value is not None:
        kind = _enum(record_type, "kind", kind_value, SiteTransactionKind)
    elif kind is None:
        raise MalformedRecordError(missing_field(record_type, "kind"), field="kind")

    payment_method, bank_account_ref = _payment(raw, record_type)
    project = _optional(raw, "project")
    description = _optional(raw, "description")
    return SiteTransaction(
        id=_record_id(raw),
        site_id=str(_require(raw, record_type, "site_id", "site")),
        kind=kind,
        amount=_convert(record_type, "amount", _require(raw, record_type, "amount"), parse_positive_amount),
        date=_convert(record_type, "date", _require(raw, record_type, "date"), parse_date),
        payment_method=payment_method,
        bank_account_ref=bank_account_ref,
        external_bank_info=_external_bank(raw, "external_bank_info"),
        project=str(project) if project is not None else None,
        description=str(description) if description is not None else None,
    )


def parse_bank_account(raw: Mapping) -> BankAccount:
    """Parse a company bank account."""
    record_type = "Bank account"
    _check_mapping(raw, record_type)
    return BankAccount(
        id=str(_require(raw, record_type, "id")),
        name=str(_require(raw, record_type, "name", "bank_name")),
        account_number=str(_require(raw, record_type, "account_number")),
        eligible_sectors=parse_sectors(_optional(raw, "eligible_sectors", "sectors")),
    )


def parse_records(parser: Callable[[Mapping], T], raw_records: Iterable[Mapping]) -> list[T]:
    """Parse a list of records, reporting the position of the first bad one.

    Raises:
        MalformedRecordError: If any record is malformed; nothing is returned
    """
    if not isinstance(raw_records, (list, tuple)):
        raise MalformedRecordError(f"Expected a list of records, got {type(raw_records).__name__}")
    parsed = []
    for index, raw in enumerate(raw_records):
        try:
            parsed.append(parser(raw))
        except MalformedRecordError as e:
            raise MalformedRecordError(f"Record {index + 1}: {e}", field=e.field)
    return parsed
