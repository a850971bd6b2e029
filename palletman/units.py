"""
Unit conversions between pieces, pallets and m².

The ledger counts pieces. Orders may be placed in m², and ledger rows
carry a pallets/m² snapshot taken from the recipe at write time.

Examples:
    - 10.5 m² of a tile with 12.5 pieces/m² → ceil(131.25) = 132 pieces
    - 288 pieces of a tile with 144 pieces/pallet → 2.000 pallets
"""

import math
from decimal import Decimal, ROUND_HALF_UP

SNAPSHOT_PLACES = Decimal('0.001')
DISPLAY_PLACES = Decimal('0.1')


def to_pieces(quantity, unit: str, pieces_per_m2=None) -> int:
    """
    Ordered quantity in pieces.

    M2 quantities convert through pieces_per_m2 when the recipe defines it;
    anything else is taken as pieces. Always rounded up.
    """
    from palletman.models.enums import QuantityUnit

    quantity = Decimal(str(quantity))
    if unit == QuantityUnit.M2 and pieces_per_m2:
        return math.ceil(quantity * Decimal(str(pieces_per_m2)))
    return math.ceil(quantity)


def _ratio(pieces: int, per, places: Decimal) -> Decimal | None:
    if not per:
        return None
    return (Decimal(pieces) / Decimal(str(per))).quantize(places, rounding=ROUND_HALF_UP)


def pallets_for(pieces: int, recipe) -> Decimal | None:
    """Pallet equivalent of a piece count, or None without pieces_per_pallet."""
    return _ratio(pieces, getattr(recipe, 'pieces_per_pallet', None), SNAPSHOT_PLACES)


def area_for(pieces: int, recipe) -> Decimal | None:
    """Area (m²) equivalent of a piece count, or None without pieces_per_m2."""
    return _ratio(pieces, getattr(recipe, 'pieces_per_m2', None), SNAPSHOT_PLACES)


def display_pallets(pieces: int, recipe) -> Decimal | None:
    return _ratio(pieces, getattr(recipe, 'pieces_per_pallet', None), DISPLAY_PLACES)


def display_area(pieces: int, recipe) -> Decimal | None:
    return _ratio(pieces, getattr(recipe, 'pieces_per_m2', None), DISPLAY_PLACES)
