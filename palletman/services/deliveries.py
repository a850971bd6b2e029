"""
Deliveries — stock leaving against an order.

    LOADING ──► IN_TRANSIT ──► DELIVERED
       │            │
       └────────────┴──► CANCELLED

Stock leaves the ledger when the delivery is created (one OUT per item,
dated at the loading date). Cancelling or deleting posts one reversing
IN per item, dated today. Every status change and deletion re-runs the
order cascade in the same transaction.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from palletman.exceptions import (
    ExceedsRemaining,
    InsufficientStock,
    InvalidState,
    NotFound,
    ValidationError,
)
from palletman.models.delivery import Delivery, DeliveryItem
from palletman.models.enums import DeliveryStatus, MovementType, OrderStatus
from palletman.models.order import Order
from palletman.services import sequences
from palletman.services.ledger import Ledger, lock_products
from palletman.services.orders import Orders, delivered_pieces
from palletman.services.production import evaluate_on_commit

logger = logging.getLogger('palletman')

DELIVERABLE_ORDER_STATUSES = (OrderStatus.READY, OrderStatus.IN_PRODUCTION)


@dataclass(frozen=True)
class DeliveryCheckItem:
    order_item_id: int
    product_id: int
    product_name: str
    quantity_ordered: object
    unit: str
    pieces_per_m2: object
    quantity_pieces: int
    already_delivered: int
    remaining: int
    available_stock: int


@dataclass(frozen=True)
class DeliveryLine:
    order_item: object
    quantity_pieces: int


@dataclass(frozen=True)
class DeliveryKPIs:
    loading: int = 0
    in_transit: int = 0
    delivered: int = 0
    total: int = 0


class Deliveries:
    """Delivery fulfillment methods."""

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get(cls, pk) -> Delivery:
        try:
            return Delivery.objects.select_related('order', 'vehicle', 'driver').get(pk=pk)
        except Delivery.DoesNotExist:
            raise NotFound("Entrega não encontrada", delivery_id=pk) from None

    @classmethod
    def check(cls, order: Order) -> list[DeliveryCheckItem]:
        """
        What is left to ship for each item of an order.

        available_stock is the plain ledger balance; other orders'
        deliveries already left it at creation.
        """
        items = list(order.items.select_related('product', 'product__recipe'))
        shipped = delivered_pieces(order)
        balances = Ledger.balances({i.product_id for i in items})

        result = []
        for item in items:
            needed = item.quantity_pieces
            already = shipped.get(item.pk, 0)
            result.append(DeliveryCheckItem(
                order_item_id=item.pk,
                product_id=item.product_id,
                product_name=item.product.name,
                quantity_ordered=item.quantity,
                unit=item.unit,
                pieces_per_m2=item.pieces_per_m2,
                quantity_pieces=needed,
                already_delivered=already,
                remaining=max(0, needed - already),
                available_stock=balances.get(item.product_id, 0),
            ))
        return result

    @classmethod
    def ready_orders(cls):
        """Orders a delivery can be created for, oldest first."""
        return (
            Order.objects
            .filter(status__in=DELIVERABLE_ORDER_STATUSES)
            .select_related('customer')
            .order_by('number')
        )

    @classmethod
    def delivery_address(cls, order: Order) -> str:
        """The order's own delivery address, else the customer's."""
        if order.delivery_address:
            return order.delivery_address
        return order.customer.address or ''

    @classmethod
    def list(cls, status=None, order=None, vehicle=None, driver=None,
             start: date | None = None, end: date | None = None):
        """Deliveries, newest first."""
        qs = Delivery.objects.select_related('order', 'order__customer', 'vehicle', 'driver')
        if status:
            qs = qs.filter(status=status)
        if order is not None:
            qs = qs.filter(order=order)
        if vehicle is not None:
            qs = qs.filter(vehicle=vehicle)
        if driver is not None:
            qs = qs.filter(driver=driver)
        if start:
            qs = qs.filter(loading_date__gte=start)
        if end:
            qs = qs.filter(loading_date__lte=end)
        return qs.order_by('-number')

    @classmethod
    def kpis(cls) -> DeliveryKPIs:
        data = Delivery.objects.aggregate(
            loading=Count('pk', filter=Q(status=DeliveryStatus.LOADING)),
            in_transit=Count('pk', filter=Q(status=DeliveryStatus.IN_TRANSIT)),
            delivered=Count('pk', filter=Q(status=DeliveryStatus.DELIVERED)),
            total=Count('pk'),
        )
        return DeliveryKPIs(**data)

    # ══════════════════════════════════════════════════════════════
    # CREATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create(cls, order: Order, items, loading_date: date, vehicle=None, driver=None,
               delivery_address: str = '', notes: str = '') -> Delivery:
        """
        Load a delivery and take its pieces out of stock.

        Args:
            order: READY or IN_PRODUCTION order
            items: DeliveryLine or (order_item, quantity_pieces) tuples
            loading_date: date of the OUT movements

        Raises:
            InvalidState: order status does not allow deliveries
            ValidationError: empty, foreign or non-positive items
            ExceedsRemaining: more than the item still needs
            InsufficientStock: more than the product balance

        Quantities add up per item and per product within one call.
        Nothing is written when any check fails.
        """
        lines = [i if isinstance(i, DeliveryLine) else DeliveryLine(*i) for i in items]

        with transaction.atomic():
            order = Order.objects.select_for_update().select_related('customer').get(pk=order.pk)
            if order.status not in DELIVERABLE_ORDER_STATUSES:
                raise InvalidState(
                    "Pedido precisa estar com status Pronto ou Em Produção para criar entrega",
                    order_id=order.pk,
                    status=order.status,
                )
            if not lines:
                raise ValidationError("Nenhum item informado", order_id=order.pk)

            own_items = {
                item.pk: item
                for item in order.items.select_related('product', 'product__recipe')
            }
            for line in lines:
                if line.order_item.pk not in own_items:
                    raise ValidationError(
                        "Item não pertence a este pedido",
                        order_id=order.pk,
                        order_item_id=line.order_item.pk,
                    )
                if not line.quantity_pieces or line.quantity_pieces <= 0:
                    raise ValidationError(
                        code='INVALID_QUANTITY',
                        order_item_id=line.order_item.pk,
                        requested=line.quantity_pieces,
                    )

            product_ids = {own_items[line.order_item.pk].product_id for line in lines}
            lock_products(product_ids)
            shipped = delivered_pieces(order)
            balances = Ledger.balances(product_ids)

            per_item: dict[int, int] = defaultdict(int)
            per_product: dict[int, int] = defaultdict(int)
            for line in lines:
                item = own_items[line.order_item.pk]
                name = item.product.name

                per_item[item.pk] += line.quantity_pieces
                remaining = max(0, item.quantity_pieces - shipped.get(item.pk, 0))
                if per_item[item.pk] > remaining:
                    raise ExceedsRemaining(
                        f"{name}: quantidade ({per_item[item.pk]}) excede o restante ({remaining})",
                        order_item_id=item.pk,
                        requested=per_item[item.pk],
                        remaining=remaining,
                    )

                per_product[item.product_id] += line.quantity_pieces
                available = balances.get(item.product_id, 0)
                if per_product[item.product_id] > available:
                    raise InsufficientStock(
                        f"{name}: estoque insuficiente "
                        f"(disponível: {available}, solicitado: {per_product[item.product_id]})",
                        product_id=item.product_id,
                        available=available,
                        requested=per_product[item.product_id],
                    )

            delivery = Delivery.objects.create(
                number=sequences.next_value(sequences.DELIVERY),
                order=order,
                vehicle=vehicle,
                driver=driver,
                loading_date=loading_date,
                delivery_address=delivery_address or cls.delivery_address(order),
                status=DeliveryStatus.LOADING,
                notes=notes,
            )
            for line in lines:
                item = own_items[line.order_item.pk]
                DeliveryItem.objects.create(
                    delivery=delivery,
                    order_item=item,
                    product_id=item.product_id,
                    quantity_pieces=line.quantity_pieces,
                )
                Ledger.post(
                    item.product,
                    MovementType.OUT,
                    line.quantity_pieces,
                    loading_date,
                    delivery=delivery,
                    notes=f"Entrega {delivery.code}",
                )

            logger.info(
                "delivery.created",
                extra={
                    "delivery_id": delivery.pk,
                    "number": delivery.number,
                    "order_id": order.pk,
                    "pieces": sum(line.quantity_pieces for line in lines),
                },
            )
            return delivery

    # ══════════════════════════════════════════════════════════════
    # STATUS / DELETE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _return_to_stock(cls, delivery: Delivery, notes: str) -> None:
        today = timezone.localdate()
        for item in delivery.items.select_related('product'):
            Ledger.post(
                item.product,
                MovementType.IN,
                item.quantity_pieces,
                today,
                delivery=delivery,
                notes=notes,
            )

    @classmethod
    def update_status(cls, delivery: Delivery, status: str) -> Delivery:
        """
        Move a delivery along its lifecycle.

        CANCELLED returns the pieces to stock; DELIVERED stamps
        delivery_date. The order cascade runs in the same transaction.

        Raises:
            InvalidState('INVALID_TRANSITION'): transition not allowed
        """
        with transaction.atomic():
            delivery = Delivery.objects.select_for_update().get(pk=delivery.pk)
            if not delivery.can_transition_to(status):
                raise InvalidState(
                    f"Transição de {delivery.status} para {status} não é permitida",
                    code='INVALID_TRANSITION',
                    delivery_id=delivery.pk,
                    from_status=delivery.status,
                    to_status=status,
                )

            previous = delivery.status
            update_fields = ['status', 'updated_at']
            if status == DeliveryStatus.CANCELLED:
                cls._return_to_stock(delivery, f"Cancelamento entrega {delivery.code}")
                evaluate_on_commit()
            elif status == DeliveryStatus.DELIVERED:
                delivery.delivery_date = timezone.now()
                update_fields.append('delivery_date')

            delivery.status = status
            delivery.save(update_fields=update_fields)

            logger.info(
                "delivery.status_changed",
                extra={
                    "delivery_id": delivery.pk,
                    "number": delivery.number,
                    "from_status": previous,
                    "to_status": status,
                },
            )
            Orders.cascade(delivery.order)
            return delivery

    @classmethod
    def delete(cls, delivery: Delivery) -> None:
        """
        Remove a delivery still being loaded, returning its pieces to stock.

        Raises:
            InvalidState: delivery is past LOADING
        """
        with transaction.atomic():
            delivery = Delivery.objects.select_for_update().select_related('order').get(pk=delivery.pk)
            if delivery.status != DeliveryStatus.LOADING:
                raise InvalidState(
                    "Apenas entregas em carregamento podem ser excluídas",
                    delivery_id=delivery.pk,
                    status=delivery.status,
                )

            cls._return_to_stock(delivery, f"Exclusão entrega {delivery.code}")
            order = delivery.order
            delivery_id, number = delivery.pk, delivery.number
            delivery.delete()

            logger.info(
                "delivery.deleted",
                extra={"delivery_id": delivery_id, "number": number, "order_id": order.pk},
            )
            Orders.cascade(order)
            evaluate_on_commit()
