"""
Tests for the movement ledger.
"""

from decimal import Decimal

import pytest

from palletman.exceptions import InsufficientStock, InvalidState, ValidationError
from palletman.models import InventoryMovement, MovementType, Recipe
from palletman.services.ledger import Ledger
from palletman.services.palletization import Palletizer


pytestmark = pytest.mark.django_db


class TestLedgerPost:
    """Tests for Ledger.post()."""

    def test_in_increases_balance(self, product):
        Ledger.post(product, MovementType.IN, 288)

        assert Ledger.balance(product) == 288

    def test_out_decreases_balance(self, product, stock_in):
        stock_in(product, 288)
        Ledger.post(product, MovementType.OUT, 100)

        assert Ledger.balance(product) == 188

    def test_snapshots_pallets_and_area(self, product):
        movement = Ledger.post(product, MovementType.IN, 288)

        assert movement.quantity_pallets == Decimal('2.000')
        assert movement.area_m2 == Decimal('23.040')

    def test_snapshot_is_not_rewritten_by_recipe_edit(self, product):
        movement = Ledger.post(product, MovementType.IN, 288)
        Recipe.objects.filter(product=product).update(pieces_per_pallet=96)

        movement.refresh_from_db()
        assert movement.quantity_pallets == Decimal('2.000')

    def test_snapshot_empty_without_recipe_factors(self, bare_product):
        movement = Ledger.post(bare_product, MovementType.IN, 10)

        assert movement.quantity_pallets is None
        assert movement.area_m2 is None

    @pytest.mark.parametrize('qty', [0, -5, None])
    def test_rejects_non_positive_quantity(self, product, qty):
        with pytest.raises(ValidationError) as exc:
            Ledger.post(product, MovementType.IN, qty)

        assert exc.value.code == 'INVALID_QUANTITY'
        assert InventoryMovement.objects.count() == 0

    def test_rejects_unknown_type(self, product):
        with pytest.raises(ValidationError):
            Ledger.post(product, 'XFER', 10)

    def test_out_never_goes_negative(self, product, stock_in):
        stock_in(product, 60)

        with pytest.raises(InsufficientStock) as exc:
            Ledger.post(product, MovementType.OUT, 80)

        assert exc.value.available == 60
        assert exc.value.requested == 80
        assert 'disponível: 60, solicitado: 80' in exc.value.message
        assert Ledger.balance(product) == 60


class TestLedgerQueries:
    """Tests for balance, totals and listing."""

    def test_balance_is_in_minus_out(self, product, stock_in):
        stock_in(product, 500)
        Ledger.issue(product, 120, notes='Quebra')
        stock_in(product, 30)

        total_in, total_out = Ledger.totals(product)
        assert (total_in, total_out) == (530, 120)
        assert Ledger.balance(product) == total_in - total_out

    def test_balances_fill_missing_products(self, product, paver, stock_in):
        stock_in(product, 10)

        assert Ledger.balances([product, paver]) == {product.pk: 10, paver.pk: 0}

    def test_audit_replay_matches_aggregate(self, product, stock_in):
        stock_in(product, 100)
        Ledger.issue(product, 40)

        aggregate, replayed = Ledger.audit(product)
        assert aggregate == replayed == 60

    def test_movements_newest_first(self, product, stock_in, yesterday, today):
        Ledger.post(product, MovementType.IN, 10, yesterday)
        Ledger.post(product, MovementType.IN, 20, today)

        dates = [m.date for m in Ledger.movements(product=product)]
        assert dates == [today, yesterday]

    def test_movements_filter_by_type(self, product, stock_in):
        stock_in(product, 50)
        Ledger.issue(product, 5)

        outs = Ledger.movements(type=MovementType.OUT)
        assert [m.quantity_pieces for m in outs] == [5]


class TestMovementImmutability:
    """Ledger rows are insert-only."""

    def test_save_existing_row_raises(self, product, stock_in):
        movement = stock_in(product, 10)
        movement.notes = 'editado'

        with pytest.raises(ValueError):
            movement.save()

    def test_delete_manual_out(self, product, stock_in):
        stock_in(product, 100)
        out = Ledger.issue(product, 30)

        Ledger.delete(out)

        assert Ledger.balance(product) == 100

    def test_delete_manual_in_cannot_go_negative(self, product, stock_in):
        entry = stock_in(product, 100)
        Ledger.issue(product, 80)

        with pytest.raises(InsufficientStock):
            Ledger.delete(entry)

        assert Ledger.balance(product) == 20

    def test_delete_automatic_movement_refused(self, product, produce, yesterday):
        produce(product, yesterday, pieces=288)
        palletization = Palletizer.save(product, yesterday, 2, 0)
        movement = palletization.movements.get()

        with pytest.raises(InvalidState) as exc:
            Ledger.delete(movement)

        assert exc.value.code == 'AUTOMATIC_MOVEMENT'
        assert Ledger.balance(product) == 288


class TestStockSummary:
    """Tests for Ledger.stock_summary()."""

    def test_reports_available_curing_and_loose(
        self, product, paver, stock_in, produce, loose, yesterday
    ):
        stock_in(product, 288)
        Ledger.issue(product, 144)
        produce(product, yesterday, pieces=500)
        loose(product, 30)

        rows = {row.product_id: row for row in Ledger.stock_summary()}

        row = rows[product.pk]
        assert row.available_pieces == 144
        assert row.available_pallets == Decimal('1.0')
        assert row.curing_pieces == 500
        assert row.loose_pieces == 30
        assert (row.total_in, row.total_out) == (288, 144)
        assert paver.pk not in rows
