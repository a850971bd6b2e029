"""
Tests for the palletization reconciler.
"""

from datetime import timedelta

import pytest

from palletman.exceptions import (
    AlreadyGenerated,
    InsufficientLoosePieces,
    InsufficientStock,
    InvalidState,
    MissingRecipe,
    NoProduction,
    ReconciliationOverrun,
    ValidationError,
)
from palletman.models import InventoryMovement, LoosePiecesBalance, MovementType, Palletization, ProductionDay
from palletman.services.ledger import Ledger
from palletman.services.palletization import Palletizer


pytestmark = pytest.mark.django_db


class TestPalletizationSave:
    """Tests for Palletizer.save()."""

    def test_reconciliation_example(self, product, produce, loose, yesterday):
        """1000 theoretical + 50 loose, 7 pallets of 144 + 18 loose → 24 lost."""
        produce(product, yesterday, pieces=1000)
        loose(product, 50)

        p = Palletizer.save(product, yesterday, complete_pallets=7, loose_pieces_after=18)

        assert p.theoretical_pieces == 1000
        assert p.loose_pieces_before == 50
        assert p.real_pieces == 1008
        assert p.loss_pieces == 24
        assert p.pieces_per_pallet == 144
        assert Palletizer.loose_pieces(product) == 18
        assert Ledger.balance(product) == 1008

    def test_mass_balance_holds(self, product, produce, loose, yesterday):
        produce(product, yesterday, cycles=9)
        loose(product, 40)

        p = Palletizer.save(product, yesterday, 5, 100)

        assert (
            p.theoretical_pieces + p.loose_pieces_before
            == p.real_pieces + p.loose_pieces_after + p.loss_pieces
        )
        assert p.loss_pieces >= 0

    def test_negative_loss_rejected_without_mutation(self, product, produce, loose, yesterday):
        produce(product, yesterday, pieces=1000)
        loose(product, 50)

        with pytest.raises(ReconciliationOverrun) as exc:
            Palletizer.save(product, yesterday, complete_pallets=7, loose_pieces_after=50)

        assert exc.value.loss == -8
        assert '1008' in exc.value.message
        assert '1000 teórico + 50 soltas anteriores = 1050' in exc.value.message
        assert Palletization.objects.count() == 0
        assert InventoryMovement.objects.count() == 0
        assert Palletizer.loose_pieces(product) == 50

    def test_theoretical_from_cycles_when_pieces_missing(self, product, produce, yesterday):
        produce(product, yesterday, cycles=3)
        produce(product, yesterday, cycles=2, pieces=150)

        p = Palletizer.save(product, yesterday, 3, 18)

        assert p.theoretical_pieces == 300 + 150

    def test_zero_pallets_posts_no_movement(self, product, produce, yesterday):
        produce(product, yesterday, pieces=100)

        p = Palletizer.save(product, yesterday, 0, 100)

        assert p.loss_pieces == 0
        assert not InventoryMovement.objects.exists()
        assert Palletizer.loose_pieces(product) == 100

    def test_movement_links_palletization(self, product, produce, yesterday):
        produce(product, yesterday, pieces=300)

        p = Palletizer.save(product, yesterday, 2, 12)

        movement = p.movements.get()
        assert movement.type == MovementType.IN
        assert movement.quantity_pieces == 288
        assert movement.notes == 'Paletização - 2 pallets'

    def test_missing_recipe(self, bare_product, produce, yesterday):
        produce(bare_product, yesterday, cycles=5)

        with pytest.raises(MissingRecipe):
            Palletizer.save(bare_product, yesterday, 1, 0)

    def test_no_production(self, product, yesterday):
        with pytest.raises(NoProduction):
            Palletizer.save(product, yesterday, 1, 0)

    def test_duplicate_pair(self, product, produce, yesterday):
        produce(product, yesterday, pieces=300)
        Palletizer.save(product, yesterday, 2, 12)

        with pytest.raises(AlreadyGenerated) as exc:
            Palletizer.save(product, yesterday, 2, 12)

        assert exc.value.code == 'ALREADY_PALLETIZED'

    @pytest.mark.parametrize('pallets, loose_after', [(-1, 0), (1, -1)])
    def test_negative_inputs(self, product, produce, yesterday, pallets, loose_after):
        produce(product, yesterday, pieces=300)

        with pytest.raises(ValidationError):
            Palletizer.save(product, yesterday, pallets, loose_after)

    def test_legacy_day_refused(self, product, produce, yesterday):
        item = produce(product, yesterday, pieces=300)
        Ledger.post(product, MovementType.IN, 300, yesterday, production_day=item.production_day)

        with pytest.raises(InvalidState) as exc:
            Palletizer.save(product, yesterday, 2, 12)

        assert exc.value.code == 'LEGACY_PRODUCTION'


class TestPalletizationDelete:
    """Tests for Palletizer.delete()."""

    def test_restores_loose_and_removes_movement(self, product, produce, loose, yesterday):
        produce(product, yesterday, pieces=1000)
        loose(product, 50)
        p = Palletizer.save(product, yesterday, 7, 18)

        Palletizer.delete(p)

        assert Palletizer.loose_pieces(product) == 50
        assert Ledger.balance(product) == 0
        assert not Palletization.objects.exists()
        assert not InventoryMovement.objects.exists()

    def test_clamps_inconsistent_loose_balance(self, product, produce, yesterday, loose):
        produce(product, yesterday, pieces=300)
        p = Palletizer.save(product, yesterday, 2, 12)
        loose(product, 5)

        Palletizer.delete(p)

        assert Palletizer.loose_pieces(product) == 0

    def test_strict_reversal_raises(self, product, produce, yesterday, loose, settings):
        settings.PALLETMAN = {'STRICT_LOOSE_REVERSAL': True}
        produce(product, yesterday, pieces=300)
        p = Palletizer.save(product, yesterday, 2, 12)
        loose(product, 5)

        with pytest.raises(InvalidState) as exc:
            Palletizer.delete(p)

        assert exc.value.code == 'LOOSE_BALANCE_INCONSISTENT'
        assert Palletization.objects.filter(pk=p.pk).exists()

    def test_refused_when_pallets_already_shipped(self, product, produce, yesterday):
        produce(product, yesterday, pieces=300)
        p = Palletizer.save(product, yesterday, 2, 12)
        Ledger.issue(product, 200)

        with pytest.raises(InsufficientStock):
            Palletizer.delete(p)

        assert Ledger.balance(product) == 88

    def test_pair_becomes_pending_again(self, product, produce, yesterday):
        produce(product, yesterday, pieces=300)
        p = Palletizer.save(product, yesterday, 2, 12)
        assert Palletizer.pending()[0] == []

        Palletizer.delete(p)

        items, _ = Palletizer.pending()
        assert [(i.product_id, i.production_date) for i in items] == [(product.pk, yesterday)]


class TestPendingPalletization:
    """Tests for Palletizer.pending()."""

    def test_groups_by_product_and_date(self, product, paver, produce, loose, yesterday):
        produce(product, yesterday, cycles=2)
        produce(product, yesterday, pieces=60)
        produce(paver, yesterday - timedelta(days=1), cycles=4)
        loose(product, 7)

        items, missing = Palletizer.pending()

        assert missing == []
        assert [(i.product_name, i.theoretical_pieces) for i in items] == [
            ('Paver 10x20', 200),
            ('Bloco 14x19x39', 260),
        ]
        assert items[1].loose_pieces_before == 7
        assert items[1].pieces_per_pallet == 144

    def test_today_is_still_curing(self, product, produce, today):
        produce(product, today, pieces=100)

        assert Palletizer.pending() == ([], [])

    def test_curing_days_setting(self, product, produce, yesterday, settings):
        settings.PALLETMAN = {'CURING_DAYS': 2}
        produce(product, yesterday, pieces=100)

        assert Palletizer.pending() == ([], [])

    def test_zero_cycles_excluded(self, product, produce, yesterday):
        produce(product, yesterday, cycles=0)

        assert Palletizer.pending() == ([], [])

    def test_missing_recipe_listed_apart(self, bare_product, produce, yesterday):
        produce(bare_product, yesterday, cycles=6)

        items, missing = Palletizer.pending()

        assert items == []
        assert [(m.product_name, m.total_cycles) for m in missing] == [('Canaleta 14', 6)]

    def test_legacy_days_excluded(self, product, produce, yesterday):
        item = produce(product, yesterday, pieces=100)
        Ledger.post(product, MovementType.IN, 100, yesterday, production_day=item.production_day)

        assert Palletizer.pending() == ([], [])
        assert Palletizer.curing_pieces() == {}


class TestPalletFromLoose:
    """Tests for Palletizer.form_pallet_from_loose()."""

    def test_moves_one_pallet_into_stock(self, product, loose):
        loose(product, 150)

        movement = Palletizer.form_pallet_from_loose(product)

        assert movement.quantity_pieces == 144
        assert movement.notes == 'Pallet formado com peças soltas'
        assert Palletizer.loose_pieces(product) == 6
        assert Ledger.balance(product) == 144

    def test_insufficient_loose_pieces(self, product, loose):
        loose(product, 100)

        with pytest.raises(InsufficientLoosePieces) as exc:
            Palletizer.form_pallet_from_loose(product)

        assert exc.value.message == 'Peças soltas insuficientes. Necessário: 144, disponível: 100'
        assert Ledger.balance(product) == 0

    def test_without_balance_row(self, product):
        with pytest.raises(InsufficientLoosePieces):
            Palletizer.form_pallet_from_loose(product)

    def test_loose_balances_listing(self, product, bare_product, loose):
        loose(product, 20)
        loose(bare_product, 30)

        rows = Palletizer.loose_balances()

        assert [(r.product_name, r.pieces) for r in rows] == [('Bloco 14x19x39', 20)]
        assert not LoosePiecesBalance.objects.filter(pieces__lt=0).exists()


class TestPalletizationHistory:

    def test_newest_first(self, product, paver, produce, yesterday):
        produce(product, yesterday, pieces=300)
        produce(paver, yesterday, pieces=800)
        first = Palletizer.save(product, yesterday, 2, 12)
        second = Palletizer.save(paver, yesterday, 2, 0)

        assert list(Palletizer.history()) == [second, first]
        assert list(Palletizer.history(product=product)) == [first]

    def test_production_day_kept(self, product, produce, yesterday):
        produce(product, yesterday, pieces=300)
        Palletizer.save(product, yesterday, 2, 12)

        assert ProductionDay.objects.filter(date=yesterday).exists()
