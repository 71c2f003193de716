"""Domain layer for backoffice application."""

from backoffice.domain.bank_accounts import BankAccountDirectory
from backoffice.domain.rates import RateCatalog
from backoffice.domain.results import Outcome
from backoffice.domain.sites import SiteLedger
from backoffice.domain.stock import StockLedger
from backoffice.domain.units import UnitConverter
from backoffice.domain.vault import VaultLedger

__all__ = [
    "BankAccountDirectory",
    "RateCatalog",
    "Outcome",
    "SiteLedger",
    "StockLedger",
    "UnitConverter",
    "VaultLedger",
]
