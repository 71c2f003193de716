"""CLI error handling helpers."""

import json

import click

from backoffice.domain.errors import DomainError
from backoffice.domain.results import Outcome
from backoffice.utils.serializers import serialize_outcome


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def echo_outcome(ctx: click.Context, outcome: Outcome, value=None) -> None:
    """Print an outcome as JSON; a rejected outcome also exits with failure."""
    click.echo(json.dumps(serialize_outcome(outcome, value), indent=2, default=str))
    if not outcome.ok:
        ctx.exit(1)
