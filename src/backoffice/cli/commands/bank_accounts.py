"""Company bank account commands."""

import click
from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.io import echo_json, read_json_list
from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.entities import Sector
from backoffice.domain.errors import DomainError
from backoffice.utils.record_parser import parse_bank_account, parse_records
from backoffice.utils.serializers import serialize_bank_account


@click.group("bank-accounts")
def bank_accounts_group():
    """Company bank accounts and the sectors they serve."""
    pass


@bank_accounts_group.command("list")
@click.argument("accounts_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--sector",
    type=click.Choice([sector.value for sector in Sector]),
    help="Only show accounts that may settle this sector's transactions",
)
@click.pass_context
def list_accounts(ctx, accounts_file: str, sector: str | None):
    """List bank accounts, optionally those eligible for one sector.

    Examples:
        backoffice bank-accounts list accounts.json
        backoffice bank-accounts list accounts.json --sector pharmacy
    """
    try:
        directory = BankAccountDirectory(parse_records(parse_bank_account, read_json_list(accounts_file)))
    except DomainError as e:
        handle_domain_error(ctx, e)

    if sector:
        accounts = directory.eligible_accounts(Sector(sector))
    else:
        accounts = list(directory.accounts.values())
    echo_json([serialize_bank_account(account) for account in accounts])


def register_commands(cli):
    """Register bank account commands with main CLI."""
    cli.add_command(bank_accounts_group)
