"""Exchange desk commands."""

from datetime import datetime

import click
from backoffice.cli.error_handling import echo_outcome, handle_domain_error
from backoffice.cli.io import echo_json, read_json, read_json_list
from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import ExchangeKind
from backoffice.domain.errors import DomainError
from backoffice.domain.rates import RateCatalog
from backoffice.domain.vault import VaultLedger
from backoffice.utils.amount_parser import parse_positive_amount
from backoffice.utils.date_parser import get_date_range, parse_date
from backoffice.utils.record_parser import (
    parse_bank_account,
    parse_exchange_transaction,
    parse_records,
)
from backoffice.utils.serializers import (
    money,
    serialize_exchange_summary,
    serialize_rates,
    serialize_vault,
)


def _rate_catalog(ctx) -> RateCatalog:
    config = ctx.obj["config"]
    return RateCatalog(config.seed_rates, config.use_default_seed_when_empty)


def _vault_ledger(bank_accounts_path: str | None) -> VaultLedger:
    accounts = parse_records(parse_bank_account, read_json_list(bank_accounts_path))
    return VaultLedger(BankAccountDirectory(accounts))


@click.group("exchange")
def exchange_group():
    """Currency exchange desk: rates and vault holdings."""
    pass


@exchange_group.command("rates")
@click.argument("rates_file", required=False, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def show_rates(ctx, rates_file: str | None):
    """Normalize stored exchange rates.

    Without RATES_FILE the catalog is treated as never configured and the
    seed rates are shown.
    """
    try:
        raw = read_json(rates_file) if rates_file else None
        catalog = _rate_catalog(ctx).resolve(raw)
    except DomainError as e:
        handle_domain_error(ctx, e)
    echo_json(serialize_rates(catalog))


@exchange_group.command("quote")
@click.argument("currency")
@click.argument("amount")
@click.option("--type", "kind", type=click.Choice(["buy", "sell"]), required=True, help="Transaction type")
@click.option("--rates-file", type=click.Path(exists=True, dir_okay=False), help="Stored rates (seed rates when omitted)")
@click.pass_context
def quote_amount(ctx, currency: str, amount: str, kind: str, rates_file: str | None):
    """Price a foreign amount in local currency at the desk's rate.

    Examples:
        backoffice exchange quote USD 1000 --type buy
    """
    rate_catalog = _rate_catalog(ctx)
    try:
        foreign = parse_positive_amount(amount)
        catalog = rate_catalog.resolve(read_json(rates_file) if rates_file else None)
        exchange_kind = ExchangeKind(kind)
        rate = rate_catalog.quote(catalog, currency, exchange_kind)
        total_local = rate_catalog.convert_to_local(catalog, currency, foreign, exchange_kind)
    except ValueError as e:
        handle_domain_error(ctx, e)
    echo_json(
        {
            "currency_code": currency.strip().upper(),
            "type": kind,
            "amount": str(foreign),
            "rate": str(rate),
            "total_local": money(total_local),
        }
    )


@exchange_group.command("holdings")
@click.argument("history_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--validate", is_flag=True, help="Check every transaction against the holdings before it")
@click.pass_context
def show_holdings(ctx, history_file: str, validate: bool):
    """Compute current vault holdings from the transaction history."""
    config = ctx.obj["config"]
    ledger = VaultLedger()
    try:
        history = parse_records(parse_exchange_transaction, read_json_list(history_file))
        if validate:
            outcome = ledger.replay(config.seed_vault, history)
        else:
            holdings = ledger.compute_holdings(config.seed_vault, history)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if validate:
        echo_outcome(ctx, outcome, serialize_vault(outcome.value) if outcome.ok else None)
        return
    echo_json(serialize_vault(holdings))


@exchange_group.command("check")
@click.argument("history_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--type", "kind", type=click.Choice(["buy", "sell"]), required=True, help="Transaction type")
@click.option("--currency", required=True, help="Currency code (e.g. USD)")
@click.option("--amount", required=True, help="Foreign amount")
@click.option("--rate", help="Rate in local units per foreign unit (defaults to the catalog rate)")
@click.option("--rates-file", type=click.Path(exists=True, dir_okay=False), help="Stored rates for the default rate")
@click.option("--payment-method", type=click.Choice(["cash", "bank"]), default="cash", show_default=True)
@click.option("--bank-account", help="Company bank account id for bank payments")
@click.option("--bank-accounts", "bank_accounts_path", type=click.Path(exists=True, dir_okay=False), help="Bank accounts JSON file")
@click.pass_context
def check_transaction(
    ctx,
    history_file: str,
    kind: str,
    currency: str,
    amount: str,
    rate: str | None,
    rates_file: str | None,
    payment_method: str,
    bank_account: str | None,
    bank_accounts_path: str | None,
):
    """Validate a new buy or sell against current holdings.

    Prints the holdings after the transaction when it is acceptable; exits
    with status 1 when it is not.

    Examples:
        backoffice exchange check history.json --type sell --currency USD --amount 500 --rate 1.02
        backoffice exchange check history.json --type buy --currency EUR --amount 100 --rates-file rates.json
    """
    config = ctx.obj["config"]
    try:
        ledger = _vault_ledger(bank_accounts_path)
        history = parse_records(parse_exchange_transaction, read_json_list(history_file))
        if rate is None:
            rate_catalog = _rate_catalog(ctx)
            catalog = rate_catalog.resolve(read_json(rates_file) if rates_file else None)
            rate = str(rate_catalog.quote(catalog, currency, ExchangeKind(kind)))
        candidate = parse_exchange_transaction(
            {
                "timestamp": datetime.now().isoformat(),
                "type": kind,
                "currency_code": currency,
                "amount": amount,
                "rate": rate,
                "payment_method": payment_method,
                "bank_account_id": bank_account,
            }
        )
        outcome = ledger.record(config.seed_vault, history, candidate)
    except DomainError as e:
        handle_domain_error(ctx, e)
    echo_outcome(ctx, outcome, serialize_vault(outcome.value) if outcome.ok else None)


@exchange_group.command("summary")
@click.argument("history_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option(
    "--period",
    type=click.Choice(["this-month", "this-year", "this-week", "last-month", "last-year", "last-week"]),
    help="Named period (cannot be combined with --start-date/--end-date)",
)
@click.pass_context
def exchange_summary(ctx, history_file: str, start_date: str, end_date: str, period: str):
    """Show volume bought and sold per currency."""
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)

    try:
        if period:
            start, end = get_date_range(period)
        else:
            start = parse_date(start_date) if start_date else None
            end = parse_date(end_date) if end_date else None
        history = parse_records(parse_exchange_transaction, read_json_list(history_file))
    except ValueError as e:
        handle_domain_error(ctx, e)

    summary = VaultLedger().summarize(history, start_date=start, end_date=end)
    echo_json(serialize_exchange_summary(summary))


def register_commands(cli):
    """Register exchange commands with main CLI."""
    cli.add_command(exchange_group)
