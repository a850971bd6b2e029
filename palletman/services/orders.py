"""
Orders — minimal order entry and the status cascade.

    CONFIRMED ──generate──► IN_PRODUCTION ──sweep──► READY ◄──deliveries──► DELIVERED
        │                        │                     │
        └────────────────────────┴──── cancel() ───────┴──► CANCELLED

Only CANCELLED is set by hand. The other transitions follow production
orders (generate, FIFO sweep, cancel_all) and delivery coverage.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Count, Q, Sum

from palletman.exceptions import InvalidState, NotFound, ValidationError
from palletman.models.delivery import DeliveryItem
from palletman.models.enums import DeliveryStatus, OrderStatus, QuantityUnit
from palletman.models.order import Order, OrderItem
from palletman.services import sequences

logger = logging.getLogger('palletman')

CANCELLABLE_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.IN_PRODUCTION, OrderStatus.READY)


@dataclass(frozen=True)
class OrderKPIs:
    total: int = 0
    confirmed: int = 0
    in_production: int = 0
    ready: int = 0


def change_order_status(order: Order, status: str, reason: str = '') -> Order:
    """Persist a status change and log it. No-op when unchanged."""
    previous = order.status
    if previous == status:
        return order
    order.status = status
    order.save(update_fields=['status', 'updated_at'])
    logger.info(
        "order.status_changed",
        extra={
            "order_id": order.pk,
            "number": order.number,
            "from_status": previous,
            "to_status": status,
            "reason": reason,
        },
    )
    return order


def delivered_pieces(order: Order) -> dict[int, int]:
    """{order_item_id: pieces} on non-cancelled deliveries of the order."""
    return dict(
        DeliveryItem.objects
        .filter(order_item__order=order)
        .exclude(delivery__status=DeliveryStatus.CANCELLED)
        .values('order_item_id')
        .annotate(total=Sum('quantity_pieces'))
        .values_list('order_item_id', 'total')
    )


class Orders:
    """Order service methods."""

    @classmethod
    def get(cls, pk) -> Order:
        try:
            return Order.objects.select_related('customer').get(pk=pk)
        except Order.DoesNotExist:
            raise NotFound("Pedido não encontrado", order_id=pk) from None

    @classmethod
    def cascade(cls, order: Order) -> Order:
        """
        Re-derive DELIVERED from delivery coverage.

        Every item covered by non-cancelled deliveries → DELIVERED;
        a DELIVERED order that lost coverage → READY. CANCELLED orders
        are left alone.
        """
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            if order.status == OrderStatus.CANCELLED:
                return order

            items = list(order.items.select_related('product', 'product__recipe'))
            shipped = delivered_pieces(order)
            covered = bool(items) and all(
                shipped.get(item.pk, 0) >= item.quantity_pieces for item in items
            )

            if covered and order.status != OrderStatus.DELIVERED:
                change_order_status(order, OrderStatus.DELIVERED, reason='delivery.cascade')
            elif not covered and order.status == OrderStatus.DELIVERED:
                change_order_status(order, OrderStatus.READY, reason='delivery.cascade')
            return order

    @classmethod
    def create(cls, customer, items, notes: str = '', delivery_address: str = '') -> Order:
        """
        Enter a CONFIRMED order.

        Args:
            customer: Customer instance
            items: (product, quantity[, unit]) tuples; unit defaults to PIECES

        Raises:
            ValidationError: no items, non-positive quantity or unknown unit
        """
        if not items:
            raise ValidationError("Pedido precisa ter ao menos um item")

        rows = []
        for entry in items:
            product, quantity, *rest = entry
            unit = rest[0] if rest else QuantityUnit.PIECES
            try:
                quantity = Decimal(str(quantity))
            except InvalidOperation:
                raise ValidationError(code='INVALID_QUANTITY', requested=quantity) from None
            if quantity <= 0:
                raise ValidationError(code='INVALID_QUANTITY', requested=quantity)
            if unit not in QuantityUnit.values:
                raise ValidationError(f"Unidade inválida: {unit}", unit=unit)
            rows.append((product, quantity, unit))

        with transaction.atomic():
            order = Order.objects.create(
                number=sequences.next_value(sequences.ORDER),
                customer=customer,
                status=OrderStatus.CONFIRMED,
                delivery_address=delivery_address,
                notes=notes,
            )
            OrderItem.objects.bulk_create([
                OrderItem(order=order, product=product, quantity=quantity, unit=unit)
                for product, quantity, unit in rows
            ])
            logger.info(
                "order.created",
                extra={"order_id": order.pk, "number": order.number, "items": len(rows)},
            )
            return order

    @classmethod
    def cancel(cls, order: Order) -> Order:
        """
        Cancel an order and release its open production orders.

        Raises:
            InvalidState: status is not CONFIRMED, IN_PRODUCTION or READY,
                or stock is still out on active deliveries
        """
        from palletman.services.production import ProductionOrders

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            if order.status not in CANCELLABLE_STATUSES:
                raise InvalidState(
                    f"Transição de {order.status} para {OrderStatus.CANCELLED} não é permitida",
                    code='INVALID_TRANSITION',
                    order_id=order.pk,
                    status=order.status,
                )
            if order.deliveries.exclude(status=DeliveryStatus.CANCELLED).exists():
                raise InvalidState(
                    "Pedido possui entregas ativas. Cancele as entregas antes de cancelar o pedido.",
                    order_id=order.pk,
                )

            ProductionOrders.cancel_all(order)
            order.refresh_from_db(fields=['status'])
            change_order_status(order, OrderStatus.CANCELLED, reason='order.cancelled')
            return order

    @classmethod
    def delete(cls, order: Order) -> None:
        """
        Remove a CONFIRMED order that never reached production.

        Raises:
            InvalidState: not CONFIRMED, or production orders/deliveries exist
        """
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            if order.status != OrderStatus.CONFIRMED:
                raise InvalidState(
                    "Apenas pedidos confirmados podem ser excluídos",
                    order_id=order.pk,
                    status=order.status,
                )
            if order.production_orders.exists():
                raise InvalidState(
                    "Este pedido possui ordens de produção. Cancele as OPs antes de excluir.",
                    order_id=order.pk,
                )
            if order.deliveries.exists():
                raise InvalidState(
                    "Este pedido possui entregas registradas",
                    order_id=order.pk,
                )

            order_id, number = order.pk, order.number
            order.delete()
            logger.info("order.deleted", extra={"order_id": order_id, "number": number})

    @classmethod
    def list(cls, status=None, customer=None, search=None) -> list[Order]:
        """Orders, newest first. Runs the FIFO sweep first."""
        from palletman.services.production import ProductionOrders

        ProductionOrders.evaluate()

        qs = Order.objects.select_related('customer')
        if status:
            qs = qs.filter(status=status)
        if customer is not None:
            qs = qs.filter(customer=customer)
        if search:
            digits = ''.join(ch for ch in search if ch.isdigit())
            condition = Q(customer__name__icontains=search)
            if digits:
                condition |= Q(number=int(digits))
            qs = qs.filter(condition)
        return list(qs.order_by('-number'))

    @classmethod
    def kpis(cls) -> OrderKPIs:
        data = Order.objects.aggregate(
            total=Count('pk'),
            confirmed=Count('pk', filter=Q(status=OrderStatus.CONFIRMED)),
            in_production=Count('pk', filter=Q(status=OrderStatus.IN_PRODUCTION)),
            ready=Count('pk', filter=Q(status=OrderStatus.READY)),
        )
        return OrderKPIs(**data)
