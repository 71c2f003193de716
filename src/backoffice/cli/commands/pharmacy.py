"""Pharmacy stock and point-of-sale commands."""

from datetime import datetime

import click
from backoffice.cli.error_handling import echo_outcome, handle_domain_error
from backoffice.cli.io import echo_json, read_json_list
from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import ATOMIC_UNIT, PaymentMethod, SaleRequest
from backoffice.domain.errors import DomainError, MalformedRecordError, stock_item_not_found
from backoffice.domain.stock import StockLedger, expiring, index_items, low_stock
from backoffice.domain.units import UnitConverter
from backoffice.utils.amount_parser import parse_quantity
from backoffice.utils.date_parser import parse_date
from backoffice.utils.record_parser import (
    parse_bank_account,
    parse_records,
    parse_stock_event,
    parse_stock_item,
)
from backoffice.utils.serializers import (
    money,
    serialize_sale,
    serialize_stock_item,
)


def _load_stock(stock_file: str) -> dict:
    return index_items(parse_records(parse_stock_item, read_json_list(stock_file)))


def _find_item(stock: dict, item_id: str):
    item = stock.get(str(item_id))
    if item is None:
        raise MalformedRecordError(stock_item_not_found(item_id), field="stock_item_id")
    return item


def _parse_line(raw_line: str) -> SaleRequest:
    """Parse a cart line given as ITEM_ID:QTY[:UNIT]."""
    parts = raw_line.split(":")
    if len(parts) not in (2, 3):
        raise MalformedRecordError(f"Sale line must look like ITEM_ID:QTY[:UNIT], got '{raw_line}'")
    try:
        quantity = parse_quantity(parts[1])
    except ValueError as e:
        raise MalformedRecordError(f"Invalid quantity in sale line '{raw_line}': {e}", field="quantity")
    unit = parts[2] if len(parts) == 3 and parts[2] else ATOMIC_UNIT
    return SaleRequest(stock_item_id=parts[0], quantity=quantity, unit=unit)


@click.group("pharmacy")
def pharmacy_group():
    """Pharmacy stock and sales."""
    pass


@pharmacy_group.command("quote")
@click.argument("stock_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--item", "item_id", required=True, help="Stock item id")
@click.option("--qty", required=True, type=int, help="Quantity in the requested unit")
@click.option("--unit", default=ATOMIC_UNIT, show_default=True, help="Requested unit (e.g. Box)")
@click.pass_context
def quote(ctx, stock_file: str, item_id: str, qty: int, unit: str):
    """Show the stock deduction and price for selling QTY UNITs of an item."""
    try:
        item = _find_item(_load_stock(stock_file), item_id)
        resolution = UnitConverter().resolve_sale(item, qty, unit)
    except DomainError as e:
        handle_domain_error(ctx, e)
    echo_json(
        {
            "stock_item_id": item.id,
            "atomic_deduction": resolution.atomic_deduction,
            "unit_price": money(resolution.unit_price),
            "line_total": money(qty * resolution.unit_price),
        }
    )


@pharmacy_group.command("sell")
@click.argument("stock_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--line", "lines", multiple=True, required=True, help="Cart line as ITEM_ID:QTY[:UNIT]")
@click.option("--payment-method", type=click.Choice(["cash", "bank"]), default="cash", show_default=True)
@click.option("--bank-account", help="Company bank account id for bank payments")
@click.option("--bank-accounts", "bank_accounts_path", type=click.Path(exists=True, dir_okay=False), help="Bank accounts JSON file")
@click.option("--sale-id", help="Id for the sale record (generated when omitted)")
@click.pass_context
def sell(
    ctx,
    stock_file: str,
    lines: tuple[str, ...],
    payment_method: str,
    bank_account: str | None,
    bank_accounts_path: str | None,
    sale_id: str | None,
):
    """Check out a cart: every line is deducted, or none is.

    Prints the sale and the updated stock items; exits with status 1 if any
    line cannot be filled.

    Examples:
        backoffice pharmacy sell stock.json --line 1:1:Box --line 2:3
    """
    try:
        stock = _load_stock(stock_file)
        requests = [_parse_line(raw_line) for raw_line in lines]
        accounts = parse_records(parse_bank_account, read_json_list(bank_accounts_path))
        ledger = StockLedger(bank_accounts=BankAccountDirectory(accounts))
        now = datetime.now()
        outcome = ledger.record_sale(
            stock,
            requests,
            sale_id=sale_id or now.strftime("%Y%m%d%H%M%S%f"),
            timestamp=now,
            payment_method=PaymentMethod(payment_method),
            bank_account_ref=bank_account,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    result = None
    if outcome.ok:
        sale, updated = outcome.value
        result = {
            "sale": serialize_sale(sale),
            "stock": [serialize_stock_item(item) for item in updated.values()],
        }
    echo_outcome(ctx, outcome, result)


@pharmacy_group.command("restock")
@click.argument("stock_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--item", "item_id", required=True, help="Stock item id")
@click.option("--qty", required=True, type=int, help="Quantity added")
@click.option("--unit", default=None, help="Unit of --qty (defaults to the item's storage unit)")
@click.pass_context
def restock(ctx, stock_file: str, item_id: str, qty: int, unit: str | None):
    """Add stock to an item, entered in storage units or single items."""
    try:
        item = _find_item(_load_stock(stock_file), item_id)
        atomic = UnitConverter().to_atomic(item, qty, unit or item.storage_unit)
        updated = StockLedger().apply_restock(item, atomic)
    except DomainError as e:
        handle_domain_error(ctx, e)
    echo_json(serialize_stock_item(updated))


@pharmacy_group.command("replay")
@click.argument("stock_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("history_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def replay(ctx, stock_file: str, history_file: str):
    """Rebuild stock levels from opening stock and a history of restocks and sales."""
    try:
        stock = _load_stock(stock_file)
        events = parse_records(parse_stock_event, read_json_list(history_file))
    except DomainError as e:
        handle_domain_error(ctx, e)

    outcome = StockLedger().replay(stock, events)
    result = [serialize_stock_item(item) for item in outcome.value.values()] if outcome.ok else None
    echo_outcome(ctx, outcome, result)


@pharmacy_group.command("alerts")
@click.argument("stock_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", help="Reference date for expiry checks (defaults to today)")
@click.pass_context
def alerts(ctx, stock_file: str, as_of: str | None):
    """List items running low and items close to expiry."""
    config = ctx.obj["config"]
    try:
        stock = _load_stock(stock_file)
        today = parse_date(as_of or "today")
    except ValueError as e:
        handle_domain_error(ctx, e)

    echo_json(
        {
            "low_stock": [
                serialize_stock_item(item) for item in low_stock(stock, config.low_stock_threshold)
            ],
            "expiring": [
                serialize_stock_item(item)
                for item in expiring(stock, today, config.expiry_warning_days)
            ],
        }
    )


def register_commands(cli):
    """Register pharmacy commands with main CLI."""
    cli.add_command(pharmacy_group)
