"""
Tests for unit conversions and the structured error.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from palletman import units
from palletman.exceptions import InsufficientStock, PalletmanError
from palletman.models import QuantityUnit


class TestToPieces:

    @pytest.mark.parametrize('quantity, unit, per_m2, expected', [
        ('10.5', QuantityUnit.M2, Decimal('12.5'), 132),
        ('8', QuantityUnit.M2, Decimal('12.5'), 100),
        ('10.2', QuantityUnit.M2, None, 11),
        ('99.1', QuantityUnit.PIECES, Decimal('12.5'), 100),
        (144, QuantityUnit.PIECES, None, 144),
    ])
    def test_rounds_up(self, quantity, unit, per_m2, expected):
        assert units.to_pieces(quantity, unit, per_m2) == expected


class TestSnapshots:

    recipe = SimpleNamespace(pieces_per_pallet=144, pieces_per_m2=Decimal('12.5'))

    def test_pallets_three_places(self):
        assert units.pallets_for(100, self.recipe) == Decimal('0.694')

    def test_area_three_places(self):
        assert units.area_for(100, self.recipe) == Decimal('8.000')

    def test_display_one_place(self):
        assert units.display_pallets(100, self.recipe) == Decimal('0.7')

    def test_missing_factor(self):
        assert units.pallets_for(100, None) is None
        assert units.area_for(100, SimpleNamespace(pieces_per_m2=None)) is None


class TestPalletmanError:

    def test_default_message_from_code(self):
        error = PalletmanError(code='NO_PRODUCTION')

        assert error.message == 'Nenhuma produção encontrada para este produto nesta data'

    def test_data_exposed_as_attributes(self):
        error = InsufficientStock(available=60, requested=80)

        assert error.code == 'INSUFFICIENT_STOCK'
        assert error.available == 60
        with pytest.raises(AttributeError):
            error.missing

    def test_as_dict_stringifies_decimals(self):
        error = PalletmanError('x', quantity=Decimal('1.5'))

        assert error.as_dict() == {
            'code': 'ERROR',
            'message': 'x',
            'data': {'quantity': '1.5'},
        }
