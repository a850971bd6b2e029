"""
Tests for order entry, cancellation and the status cascade.
"""

from decimal import Decimal

import pytest

from palletman.exceptions import InvalidState, NotFound, ValidationError
from palletman.models import (
    DeliveryStatus,
    Order,
    OrderStatus,
    ProductionOrderStatus,
    QuantityUnit,
)
from palletman.services import sequences
from palletman.services.deliveries import Deliveries
from palletman.services.orders import Orders
from palletman.services.production import ProductionOrders


pytestmark = pytest.mark.django_db


def start_production(order):
    return ProductionOrders.generate(
        order,
        [(item, item.quantity_pieces, item.quantity_pieces) for item in order.items.all()],
    )


def order_status(order):
    order.refresh_from_db()
    return order.status


class TestOrderCreate:
    """Tests for Orders.create()."""

    def test_confirmed_with_sequence_number(self, customer, product, paver, m2):
        order = Orders.create(customer, [(product, 100), (paver, '2.5', m2)], notes='Obra')

        assert order.status == OrderStatus.CONFIRMED
        assert order.code == 'PED-0001'
        items = list(order.items.all())
        assert [i.unit for i in items] == [QuantityUnit.PIECES, QuantityUnit.M2]
        assert items[1].quantity == Decimal('2.5')
        assert items[1].quantity_pieces == 125

    def test_requires_items(self, customer):
        with pytest.raises(ValidationError):
            Orders.create(customer, [])

    def test_rejects_non_positive_quantity(self, customer, product):
        with pytest.raises(ValidationError) as exc:
            Orders.create(customer, [(product, 0)])

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not Order.objects.exists()

    def test_rejects_unknown_unit(self, customer, product):
        with pytest.raises(ValidationError):
            Orders.create(customer, [(product, 1, 'KG')])

    def test_m2_without_factor_taken_as_pieces(self, customer, bare_product, m2):
        order = Orders.create(customer, [(bare_product, '10.2', m2)])

        assert order.items.get().quantity_pieces == 11


class TestOrderCancel:
    """Tests for Orders.cancel()."""

    def test_cancel_confirmed(self, make_order, product):
        order = make_order((product, 10))

        Orders.cancel(order)

        assert order_status(order) == OrderStatus.CANCELLED

    def test_cancel_releases_production_orders(self, make_order, product):
        order = make_order((product, 10))
        [po] = start_production(order)

        Orders.cancel(order)

        po.refresh_from_db()
        assert po.status == ProductionOrderStatus.CANCELLED
        assert order_status(order) == OrderStatus.CANCELLED

    def test_cancel_delivered_refused(self, make_order, product):
        order = make_order((product, 10))
        Order.objects.filter(pk=order.pk).update(status=OrderStatus.DELIVERED)

        with pytest.raises(InvalidState) as exc:
            Orders.cancel(order)

        assert exc.value.code == 'INVALID_TRANSITION'

    def test_cancel_with_active_delivery_refused(self, make_order, product, stock_in, today):
        stock_in(product, 10)
        order = make_order((product, 10))
        start_production(order)
        Deliveries.create(order, [(order.items.get(), 5)], today)

        with pytest.raises(InvalidState):
            Orders.cancel(order)

        assert order_status(order) == OrderStatus.IN_PRODUCTION

    def test_cascade_ignores_cancelled_orders(self, make_order, product):
        order = make_order((product, 10))
        Orders.cancel(order)

        Orders.cascade(order)

        assert order_status(order) == OrderStatus.CANCELLED


class TestOrderDelete:
    """Tests for Orders.delete()."""

    def test_delete_confirmed(self, make_order, product):
        order = make_order((product, 10))

        Orders.delete(order)

        assert not Order.objects.exists()

    def test_delete_with_production_orders_refused(self, make_order, product):
        order = make_order((product, 10))
        start_production(order)
        ProductionOrders.cancel_all(order)

        with pytest.raises(InvalidState) as exc:
            Orders.delete(order)

        assert 'Cancele as OPs antes de excluir' in exc.value.message

    def test_delete_in_production_refused(self, make_order, product):
        order = make_order((product, 10))
        start_production(order)

        with pytest.raises(InvalidState):
            Orders.delete(order)


class TestOrderLifecycle:
    """CONFIRMED → IN_PRODUCTION → READY ⇄ DELIVERED."""

    def test_full_lifecycle(self, make_order, product, paver, stock_in, today):
        order = make_order((product, 100), (paver, 400))
        assert order.status == OrderStatus.CONFIRMED

        start_production(order)
        assert order_status(order) == OrderStatus.IN_PRODUCTION

        stock_in(product, 100)
        stock_in(paver, 400)
        Orders.list()
        assert order_status(order) == OrderStatus.READY

        block_item, paver_item = order.items.all()
        first = Deliveries.create(order, [(block_item, 100)], today)
        second = Deliveries.create(order, [(paver_item, 400)], today)
        Deliveries.update_status(first, DeliveryStatus.IN_TRANSIT)
        assert order_status(order) == OrderStatus.DELIVERED

        Deliveries.update_status(second, DeliveryStatus.CANCELLED)
        assert order_status(order) == OrderStatus.READY

    def test_delivered_iff_every_item_covered(self, make_order, product, paver, stock_in, today):
        order = make_order((product, 100), (paver, 400))
        start_production(order)
        stock_in(product, 100)
        stock_in(paver, 400)
        ProductionOrders.evaluate()

        block_item, paver_item = order.items.all()
        Deliveries.create(order, [(block_item, 100), (paver_item, 399)], today)
        Orders.cascade(order)
        assert order_status(order) == OrderStatus.READY

        Deliveries.create(order, [(paver_item, 1)], today)
        Orders.cascade(order)
        assert order_status(order) == OrderStatus.DELIVERED


class TestOrderQueries:

    def test_list_newest_first(self, make_order, product):
        first = make_order((product, 10))
        second = make_order((product, 20))

        assert Orders.list() == [second, first]

    def test_list_search(self, make_order, product, other_customer):
        make_order((product, 10))
        theirs = make_order((product, 10), customer=other_customer)

        assert Orders.list(search='Boa Vista') == [theirs]
        assert Orders.list(search='PED-0002') == [theirs]

    def test_kpis(self, make_order, product):
        make_order((product, 10))
        order = make_order((product, 10))
        start_production(order)

        kpis = Orders.kpis()

        assert (kpis.total, kpis.confirmed, kpis.in_production, kpis.ready) == (2, 1, 1, 0)

    def test_get_missing(self):
        with pytest.raises(NotFound):
            Orders.get(999)


class TestSequences:
    """Tests for sequence counters."""

    def test_independent_per_entity(self):
        assert sequences.next_value(sequences.ORDER) == 1
        assert sequences.next_value(sequences.ORDER) == 2
        assert sequences.next_value(sequences.DELIVERY) == 1
        assert sequences.current_value(sequences.ORDER) == 2

    def test_unused_sequence_is_zero(self):
        assert sequences.current_value(sequences.PRODUCTION_ORDER) == 0

    def test_number_survives_delete(self, make_order, product):
        order = make_order((product, 10))
        Orders.delete(order)

        assert make_order((product, 10)).number == 2


class TestNumberFormatting:

    def test_prefix_and_padding_from_settings(self, make_order, product, settings):
        settings.PALLETMAN = {'ORDER_PREFIX': 'PV', 'NUMBER_PADDING': 6}

        order = make_order((product, 10))

        assert order.code == 'PV-000001'
