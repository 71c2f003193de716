"""Currency rate catalog."""

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from backoffice.domain.entities import ExchangeKind, Rate
from backoffice.domain.errors import MalformedRecordError, UnknownCurrencyError
from backoffice.utils.amount_parser import parse_positive_amount

logger = logging.getLogger(__name__)

BUY_FIELDS = ("buy_rate", "buy", "rate")
SELL_FIELDS = ("sell_rate", "sell", "rate")


class RateCatalog:
    """Normalizes stored rate records into one ``{code: Rate}`` mapping.

    Rates reach the exchange desk in several shapes left behind by earlier
    versions of the storage layer: a list of ``{code, buy, sell}`` records, or
    a mapping keyed by currency code whose values use ``buy_rate``/``sell_rate``,
    ``buy``/``sell`` or a single ``rate``. ``resolve`` folds all of them into
    ``Rate`` values and is idempotent on its own output.

    Missing data (``None``) means the system was never configured and resolves
    to the seed rates. An empty list or mapping means an administrator cleared
    the catalog; it stays empty unless ``use_default_seed_when_empty`` is set.
    """

    def __init__(self, seed_rates: Any = None, use_default_seed_when_empty: bool = False):
        """Initialize the catalog.

        Args:
            seed_rates: Rates used when no rate data exists, in any accepted shape
            use_default_seed_when_empty: Treat an explicitly empty catalog as missing
        """
        self.seed = _normalize(seed_rates) if seed_rates else {}
        self.use_default_seed_when_empty = use_default_seed_when_empty

    def resolve(self, raw_rates: Any) -> dict[str, Rate]:
        """Normalize raw rate data.

        Args:
            raw_rates: None, a list of rate records, or a mapping keyed by code

        Returns:
            Mapping of upper-case currency code to Rate

        Raises:
            MalformedRecordError: If the data has an unrecognized shape or a
                rate is missing, non-numeric or not positive
        """
        if raw_rates is None:
            logger.debug("rate_catalog_seeded", extra={"reason": "missing"})
            return dict(self.seed)

        rates = _normalize(raw_rates)
        if not rates and self.use_default_seed_when_empty:
            logger.debug("rate_catalog_seeded", extra={"reason": "empty"})
            return dict(self.seed)
        return rates

    def quote(self, catalog: Mapping[str, Rate], code: str, kind: ExchangeKind) -> Decimal:
        """Return the desk's rate for a buy or sell of a currency.

        Raises:
            UnknownCurrencyError: If the catalog has no rate for the code
        """
        rate = catalog.get(_normalize_code(code))
        if rate is None:
            raise UnknownCurrencyError(str(code).upper())
        return rate.buy if kind == ExchangeKind.BUY else rate.sell

    def convert_to_local(
        self, catalog: Mapping[str, Rate], code: str, amount: Decimal, kind: ExchangeKind
    ) -> Decimal:
        """Convert a foreign amount into local currency at the quoted rate."""
        return amount * self.quote(catalog, code, kind)

    def to_storage(self, catalog: Mapping[str, Rate]) -> dict[str, dict[str, Decimal]]:
        """Render a catalog in the keyed storage shape (``buy_rate``/``sell_rate``)."""
        return {
            code: {"buy_rate": rate.buy, "sell_rate": rate.sell}
            for code, rate in catalog.items()
        }


def _normalize(raw_rates: Any) -> dict[str, Rate]:
    if isinstance(raw_rates, Mapping):
        entries = [(code, value) for code, value in raw_rates.items()]
    elif isinstance(raw_rates, (list, tuple)):
        entries = []
        for record in raw_rates:
            if isinstance(record, Rate):
                entries.append((record.code, record))
            elif isinstance(record, Mapping) and record.get("code"):
                entries.append((record["code"], record))
            else:
                raise MalformedRecordError(f"Unrecognized rate record: {record!r}", field="code")
    else:
        raise MalformedRecordError(f"Unrecognized rate data: {raw_rates!r}")

    rates: dict[str, Rate] = {}
    for code, value in entries:
        normalized_code = _normalize_code(code)
        if normalized_code in rates:
            raise MalformedRecordError(f"Duplicate rate for currency '{normalized_code}'", field="code")
        rates[normalized_code] = _to_rate(normalized_code, value)
    return rates


def _normalize_code(code: Any) -> str:
    normalized = str(code).strip().upper() if code is not None else ""
    if not normalized:
        raise MalformedRecordError("Rate record is missing a currency code", field="code")
    return normalized


def _to_rate(code: str, value: Any) -> Rate:
    if isinstance(value, Rate):
        return Rate(code=code, buy=value.buy, sell=value.sell)
    if not isinstance(value, Mapping):
        raise MalformedRecordError(f"Unrecognized rate record for '{code}': {value!r}", field=code)
    return Rate(
        code=code,
        buy=_pick_rate(code, value, BUY_FIELDS),
        sell=_pick_rate(code, value, SELL_FIELDS),
    )


def _pick_rate(code: str, record: Mapping, fields: tuple[str, ...]) -> Decimal:
    for field_name in fields:
        raw = record.get(field_name)
        if raw is None or raw == "":
            continue
        try:
            return parse_positive_amount(raw)
        except ValueError as e:
            raise MalformedRecordError(f"Invalid {field_name} for '{code}': {e}", field=field_name)
    raise MalformedRecordError(
        f"Rate for '{code}' has none of the fields {', '.join(fields)}", field=fields[0]
    )
