"""Construction site commands."""

import click
from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.io import echo_json, read_json_list
from backoffice.domain.entities import SiteTransactionKind
from backoffice.domain.sites import SiteLedger
from backoffice.utils.date_parser import get_date_range, parse_date
from backoffice.utils.record_parser import parse_records, parse_site_transaction
from backoffice.utils.serializers import serialize_site_summary


def _load_transactions(transactions_file, income_file, expense_file) -> list:
    """Load site transactions from a combined file and/or per-kind files."""
    transactions = parse_records(parse_site_transaction, read_json_list(transactions_file))
    transactions += parse_records(
        lambda raw: parse_site_transaction(raw, SiteTransactionKind.INCOME),
        read_json_list(income_file),
    )
    transactions += parse_records(
        lambda raw: parse_site_transaction(raw, SiteTransactionKind.EXPENSE),
        read_json_list(expense_file),
    )
    return transactions


@click.group("construction")
def construction_group():
    """Construction site accounting."""
    pass


@construction_group.command("summary")
@click.argument("transactions_file", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--income-file", type=click.Path(exists=True, dir_okay=False), help="JSON array of income records")
@click.option("--expense-file", type=click.Path(exists=True, dir_okay=False), help="JSON array of expense records")
@click.option("--site", "site_id", help="Only include this site")
@click.option(
    "--by",
    "group_by",
    type=click.Choice(["total", "site", "project"]),
    default="total",
    show_default=True,
    help="Grouping of the summary",
)
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option(
    "--period",
    type=click.Choice(["this-month", "this-year", "this-week", "last-month", "last-year", "last-week"]),
    help="Named period (cannot be combined with --start-date/--end-date)",
)
@click.pass_context
def site_summary(
    ctx,
    transactions_file: str | None,
    income_file: str | None,
    expense_file: str | None,
    site_id: str | None,
    group_by: str,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
):
    """Show income, expense, balance and credit exposure.

    Records may come from one combined file (each with a "type" of income or
    expense) and/or separate income and expense files.

    Examples:
        backoffice construction summary records.json --by site
        backoffice construction summary --income-file income.json --expense-file expenses.json --period this-month
    """
    if period and (start_date or end_date):
        click.echo("Error: --period cannot be combined with --start-date or --end-date.", err=True)
        ctx.exit(1)

    try:
        if period:
            start, end = get_date_range(period)
        else:
            start = parse_date(start_date) if start_date else None
            end = parse_date(end_date) if end_date else None
        transactions = _load_transactions(transactions_file, income_file, expense_file)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if site_id is not None:
        transactions = [t for t in transactions if t.site_id == site_id]

    ledger = SiteLedger()
    if group_by == "site":
        grouped = ledger.aggregate_by_site(transactions, start_date=start, end_date=end)
        echo_json({key: serialize_site_summary(summary) for key, summary in grouped.items()})
    elif group_by == "project":
        in_range = [
            t
            for t in transactions
            if (start is None or t.date >= start) and (end is None or t.date <= end)
        ]
        grouped = ledger.aggregate_by_project(in_range)
        echo_json({key: serialize_site_summary(summary) for key, summary in grouped.items()})
    else:
        summary = ledger.aggregate(transactions, start_date=start, end_date=end)
        echo_json(serialize_site_summary(summary))


def register_commands(cli):
    """Register construction commands with main CLI."""
    cli.add_command(construction_group)
