"""
Palletman configuration.

Usage in settings.py:
    PALLETMAN = {
        "DELIVERY_PREFIX": "ENT",
        "CURING_DAYS": 1,
        "EVALUATE_ON_LEDGER_WRITE": True,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class PalletmanSettings:
    """Palletman configuration settings."""

    # Display prefixes for sequence numbers (PED-0001, OP-0001, ENT-0001)
    ORDER_PREFIX: str = "PED"
    PRODUCTION_ORDER_PREFIX: str = "OP"
    DELIVERY_PREFIX: str = "ENT"
    NUMBER_PADDING: int = 4

    # Days a production day must age (curing) before it can be palletized
    CURING_DAYS: int = 1

    # Raise instead of clamping at 0 when reverting a loose-pieces balance
    STRICT_LOOSE_REVERSAL: bool = False

    # Run the FIFO evaluator on commit of ledger-writing operations
    EVALUATE_ON_LEDGER_WRITE: bool = False


def get_palletman_settings() -> PalletmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PALLETMAN", {})
    return PalletmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in PalletmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_palletman_settings(), name)


palletman_settings = _LazySettings()


def format_number(prefix: str, number: int | None) -> str:
    """Display form of a sequence number: ``ENT-0007``."""
    if number is None:
        return f"{prefix}-?"
    return f"{prefix}-{number:0{palletman_settings.NUMBER_PADDING}d}"
