"""
Pytest fixtures for Palletman tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from palletman.models import (
    Customer,
    Driver,
    LoosePiecesBalance,
    MovementType,
    Product,
    ProductionDay,
    ProductionItem,
    QuantityUnit,
    Recipe,
    Vehicle,
)
from palletman.services.ledger import Ledger
from palletman.services.orders import Orders


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def customer(db):
    return Customer.objects.create(
        name='Construtora Horizonte',
        address='Rua das Pedras, 120, Centro, Londrina/PR',
    )


@pytest.fixture
def other_customer(db):
    return Customer.objects.create(name='Depósito Boa Vista')


@pytest.fixture
def vehicle(db):
    return Vehicle.objects.create(plate='ABC1D23', description='Truck')


@pytest.fixture
def driver(db):
    return Driver.objects.create(name='João')


@pytest.fixture
def product(db):
    """Block with a full recipe: 100 pieces/cycle, 144 pieces/pallet, 12.5 pieces/m²."""
    product = Product.objects.create(name='Bloco 14x19x39')
    Recipe.objects.create(
        product=product,
        pieces_per_cycle=100,
        pieces_per_pallet=144,
        pieces_per_m2=Decimal('12.5'),
    )
    return product


@pytest.fixture
def paver(db):
    """Second palletizable product."""
    paver = Product.objects.create(name='Paver 10x20')
    Recipe.objects.create(
        product=paver,
        pieces_per_cycle=50,
        pieces_per_pallet=400,
        pieces_per_m2=Decimal('50'),
    )
    return paver


@pytest.fixture
def bare_product(db):
    """Product with a recipe but no pieces_per_pallet."""
    bare = Product.objects.create(name='Canaleta 14')
    Recipe.objects.create(product=bare, pieces_per_cycle=80)
    return bare


@pytest.fixture
def produce(db):
    """Record production: produce(product, day, cycles=10, pieces=None)."""
    def _produce(product, day, cycles=10, pieces=None):
        production_day, _ = ProductionDay.objects.get_or_create(date=day)
        return ProductionItem.objects.create(
            production_day=production_day,
            product=product,
            cycles=cycles,
            pieces=pieces,
        )
    return _produce


@pytest.fixture
def stock_in(db):
    """Put pieces in stock through a manual IN."""
    def _stock_in(product, pieces, notes='Saldo inicial'):
        return Ledger.post(product, MovementType.IN, pieces, notes=notes)
    return _stock_in


@pytest.fixture
def loose(db):
    """Set a product's loose-pieces balance."""
    def _loose(product, pieces):
        balance, _ = LoosePiecesBalance.objects.update_or_create(
            product=product, defaults={'pieces': pieces},
        )
        return balance
    return _loose


@pytest.fixture
def make_order(db, customer):
    """make_order((product, qty[, unit]), ..., customer=None)."""
    def _make_order(*items, customer=customer):
        return Orders.create(customer, list(items))
    return _make_order


@pytest.fixture
def m2():
    return QuantityUnit.M2
