"""JSON file helpers for CLI commands."""

import json
from pathlib import Path
from typing import Any

import click

from backoffice.domain.errors import MalformedRecordError


def read_json(path: str) -> Any:
    """Read a JSON document exported from the store.

    Raises:
        MalformedRecordError: If the file is not valid JSON
    """
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"{path} is not valid JSON: {e}")


def read_json_list(path: str | None) -> list:
    """Read a JSON array; a missing path means no records."""
    if path is None:
        return []
    data = read_json(path)
    if not isinstance(data, list):
        raise MalformedRecordError(f"{path} must contain a JSON array")
    return data


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))
