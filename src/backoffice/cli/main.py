"""Main CLI entry point."""

import logging

import click
from backoffice.config import CONFIG_ENV_VAR, ConfigError, load_config
from backoffice.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from backoffice.cli.commands import (
    bank_accounts,
    exchange,
    pharmacy,
    construction,
)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help=f"Path to JSON config file (overrides {CONFIG_ENV_VAR} environment variable)",
    envvar=CONFIG_ENV_VAR,
)
@click.option("--verbose", "-v", is_flag=True, help="Log ledger decisions to stderr")
@click.pass_context
def cli(ctx, config_path: str | None, verbose: bool):
    """Backoffice - ledgers for the exchange desk, pharmacy and construction sites.

    Every command reads JSON records exported from the store, recomputes the
    derived state from scratch and prints the result as JSON.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    # Load configuration only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            ctx.obj["config"] = load_config(config_path)
        except ConfigError as e:
            handle_domain_error(ctx, e)


# Register all commands
exchange.register_commands(cli)
pharmacy.register_commands(cli)
construction.register_commands(cli)
bank_accounts.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
