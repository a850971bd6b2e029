"""
Production orders — stock-aware FIFO reservation per order item.

Status is never pushed by a scheduler. The evaluator re-derives it from
the ledger balance, oldest production order first, at the start of every
read that shows it:

    pool(product) = balance - undelivered pieces of COMPLETED rows

    for row in open rows by number:
        pool >= row.quantity  →  COMPLETED   (pool -= quantity)
        pool > 0              →  IN_PROGRESS (pool = 0)
        else                  →  PENDING

Completed rows keep holding their pieces until they ship, so running the
sweep twice with no ledger change produces no further change.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from palletman.conf import palletman_settings
from palletman.exceptions import AlreadyGenerated, InvalidState, NotFound, ValidationError
from palletman.models.delivery import DeliveryItem
from palletman.models.enums import (
    OPEN_PRODUCTION_STATUSES,
    DeliveryStatus,
    OrderStatus,
    ProductionOrderStatus,
)
from palletman.models.order import Order
from palletman.models.production_order import ProductionOrder
from palletman.services import sequences
from palletman.services.ledger import Ledger
from palletman.services.orders import change_order_status

logger = logging.getLogger('palletman')

FINISHED_STATUSES = (ProductionOrderStatus.COMPLETED, ProductionOrderStatus.CANCELLED)


@dataclass(frozen=True)
class Reservation:
    """An open production order of another customer holding the same product."""

    production_order: str
    order: str
    pieces: int


@dataclass(frozen=True)
class StockCheckItem:
    order_item_id: int
    product_id: int
    product_name: str
    quantity_pieces: int
    available_stock: int
    reserved_by_others: int
    effective_stock: int
    suggested_to_produce: int
    reservations: tuple[Reservation, ...] = ()


@dataclass(frozen=True)
class GenerateItem:
    order_item: object
    quantity_pieces: int
    to_produce_pieces: int
    notes: str = ''


@dataclass
class Transition:
    production_order: ProductionOrder
    from_status: str
    to_status: str

    @property
    def order_id(self) -> int:
        return self.production_order.order_id


@dataclass(frozen=True)
class ProductionKPIs:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    pending_pieces: int = 0


@dataclass
class _Pools:
    remaining: dict[int, int] = field(default_factory=dict)

    def take(self, product_id: int, wanted: int) -> str:
        available = self.remaining.get(product_id, 0)
        if available >= wanted:
            self.remaining[product_id] = available - wanted
            return ProductionOrderStatus.COMPLETED
        if available > 0:
            self.remaining[product_id] = 0
            return ProductionOrderStatus.IN_PROGRESS
        return ProductionOrderStatus.PENDING


def evaluate_on_commit():
    """Schedule a FIFO sweep after the current transaction, when enabled."""
    if palletman_settings.EVALUATE_ON_LEDGER_WRITE:
        transaction.on_commit(ProductionOrders.evaluate)


class ProductionOrders:
    """Production order allocator methods."""

    # ══════════════════════════════════════════════════════════════
    # STOCK CHECK
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def stock_check(cls, order: Order) -> list[StockCheckItem]:
        """
        Advisory stock position for each item of an order (read-only).

        reserved_by_others sums the full target of other orders' open
        production orders for the product, whatever part of it the stock
        already covers.
        """
        items = list(order.items.select_related('product', 'product__recipe'))
        product_ids = {i.product_id for i in items}
        balances = Ledger.balances(product_ids)

        reservations: dict[int, list[Reservation]] = defaultdict(list)
        others = (
            ProductionOrder.objects.open()
            .filter(product_id__in=product_ids)
            .exclude(order=order)
            .select_related('order')
            .fifo()
        )
        for po in others:
            reservations[po.product_id].append(
                Reservation(po.code, po.order.code, po.quantity_pieces)
            )

        result = []
        for item in items:
            needed = item.quantity_pieces
            available = balances.get(item.product_id, 0)
            held = reservations.get(item.product_id, [])
            reserved = sum(r.pieces for r in held)
            effective = max(0, available - reserved)
            result.append(StockCheckItem(
                order_item_id=item.pk,
                product_id=item.product_id,
                product_name=item.product.name,
                quantity_pieces=needed,
                available_stock=available,
                reserved_by_others=reserved,
                effective_stock=effective,
                suggested_to_produce=max(0, needed - effective),
                reservations=tuple(held),
            ))
        return result

    # ══════════════════════════════════════════════════════════════
    # GENERATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def generate(cls, order: Order, items) -> list[ProductionOrder]:
        """
        Create one production order per order item and start the order.

        Args:
            order: A CONFIRMED order without production orders
            items: GenerateItem or (order_item, quantity_pieces,
                   to_produce_pieces[, notes]) tuples

        Raises:
            InvalidState: order is not CONFIRMED
            AlreadyGenerated: order already has production orders
            ValidationError: empty, foreign or repeated items, bad quantities
        """
        items = [i if isinstance(i, GenerateItem) else GenerateItem(*i) for i in items]

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            if order.status != OrderStatus.CONFIRMED:
                raise InvalidState(
                    "Apenas pedidos confirmados podem gerar ordens de produção",
                    order_id=order.pk,
                    status=order.status,
                )
            if order.production_orders.exists():
                raise AlreadyGenerated(order_id=order.pk)
            if not items:
                raise ValidationError("Nenhum item informado", order_id=order.pk)

            own_items = set(order.items.values_list('pk', flat=True))
            seen = set()
            for item in items:
                item_id = item.order_item.pk
                if item_id not in own_items:
                    raise ValidationError(
                        "Item não pertence a este pedido",
                        order_id=order.pk,
                        order_item_id=item_id,
                    )
                if item_id in seen:
                    raise ValidationError(
                        "Item informado mais de uma vez",
                        order_item_id=item_id,
                    )
                seen.add(item_id)
                if not item.quantity_pieces or item.quantity_pieces <= 0:
                    raise ValidationError(
                        code='INVALID_QUANTITY',
                        order_item_id=item_id,
                        requested=item.quantity_pieces,
                    )
                if item.to_produce_pieces is None or item.to_produce_pieces < 0:
                    raise ValidationError(
                        "Peças a produzir não pode ser negativo",
                        order_item_id=item_id,
                        to_produce_pieces=item.to_produce_pieces,
                    )

            balances = Ledger.balances({i.order_item.product_id for i in items})
            created = []
            for item in items:
                created.append(ProductionOrder.objects.create(
                    number=sequences.next_value(sequences.PRODUCTION_ORDER),
                    order=order,
                    order_item=item.order_item,
                    product_id=item.order_item.product_id,
                    quantity_pieces=item.quantity_pieces,
                    stock_at_creation=max(0, balances.get(item.order_item.product_id, 0)),
                    to_produce_pieces=item.to_produce_pieces,
                    status=ProductionOrderStatus.PENDING,
                    notes=item.notes or '',
                ))

            change_order_status(order, OrderStatus.IN_PRODUCTION, reason='production.generated')

            logger.info(
                "production.generated",
                extra={
                    "order_id": order.pk,
                    "numbers": [po.number for po in created],
                },
            )
            return created

    # ══════════════════════════════════════════════════════════════
    # FIFO EVALUATOR
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _shipped(cls, order_item_ids) -> dict[int, int]:
        """Pieces already loaded per order item (non-cancelled deliveries)."""
        if not order_item_ids:
            return {}
        return dict(
            DeliveryItem.objects
            .filter(order_item_id__in=order_item_ids)
            .exclude(delivery__status=DeliveryStatus.CANCELLED)
            .values('order_item_id')
            .annotate(total=Sum('quantity_pieces'))
            .values_list('order_item_id', 'total')
        )

    @classmethod
    def _held_by_completed(cls, product_ids) -> dict[int, int]:
        """Pieces COMPLETED rows still hold: target minus what already shipped."""
        completed = list(
            ProductionOrder.objects
            .filter(status=ProductionOrderStatus.COMPLETED, product_id__in=product_ids)
            .exclude(order__status=OrderStatus.CANCELLED)
            .values('product_id', 'order_item_id', 'quantity_pieces')
        )
        shipped = cls._shipped([row['order_item_id'] for row in completed])

        held: dict[int, int] = defaultdict(int)
        for row in completed:
            held[row['product_id']] += max(
                0, row['quantity_pieces'] - shipped.get(row['order_item_id'], 0)
            )
        return dict(held)

    @classmethod
    def _transitions(cls, open_rows) -> list[Transition]:
        if not open_rows:
            return []

        product_ids = {row.product_id for row in open_rows}
        balances = Ledger.balances(product_ids)
        held = cls._held_by_completed(product_ids)
        shipped = cls._shipped([row.order_item_id for row in open_rows])
        pools = _Pools({
            pid: max(0, balances.get(pid, 0) - held.get(pid, 0))
            for pid in product_ids
        })

        result = []
        for row in open_rows:
            # pieces already loaded for the item no longer need stock
            needed = max(0, row.quantity_pieces - shipped.get(row.order_item_id, 0))
            status = pools.take(row.product_id, needed)
            if status != row.status:
                result.append(Transition(row, row.status, status))
        return result

    @classmethod
    def plan(cls) -> list[Transition]:
        """Transitions the next sweep would apply, without persisting."""
        return cls._transitions(list(ProductionOrder.objects.open().fifo()))

    @classmethod
    def evaluate(cls, now=None) -> list[Transition]:
        """
        Advance open production orders by stock availability (lazy sweep).

        Persists only changed rows; orders whose production orders are all
        COMPLETED or CANCELLED, with at least one COMPLETED, move from
        IN_PRODUCTION to READY.
        Returns the applied transitions (empty when nothing changed).
        """
        now = now or timezone.now()

        with transaction.atomic():
            rows = list(ProductionOrder.objects.open().select_for_update().fifo())
            transitions = cls._transitions(rows)
            if not transitions:
                return []

            for t in transitions:
                row = t.production_order
                row.status = t.to_status
                if t.to_status == ProductionOrderStatus.COMPLETED:
                    row.completed_at = now
                row.save(update_fields=['status', 'completed_at', 'updated_at'])

            for order_id in sorted({t.order_id for t in transitions}):
                cls._advance_if_ready(order_id)

            logger.info(
                "production.evaluated",
                extra={
                    "changed": len(transitions),
                    "completed": sum(
                        1 for t in transitions
                        if t.to_status == ProductionOrderStatus.COMPLETED
                    ),
                },
            )
            return transitions

    @classmethod
    def _advance_if_ready(cls, order_id: int) -> bool:
        """IN_PRODUCTION → READY when every production order has finished."""
        order = Order.objects.select_for_update().get(pk=order_id)
        if order.status != OrderStatus.IN_PRODUCTION:
            return False
        statuses = set(order.production_orders.values_list('status', flat=True))
        if ProductionOrderStatus.COMPLETED not in statuses or not statuses <= set(FINISHED_STATUSES):
            return False
        change_order_status(order, OrderStatus.READY, reason='production.evaluated')
        return True

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get(cls, pk) -> ProductionOrder:
        try:
            return ProductionOrder.objects.select_related('order', 'product').get(pk=pk)
        except ProductionOrder.DoesNotExist:
            raise NotFound("Ordem de produção não encontrada", production_order_id=pk) from None

    @classmethod
    def list(cls, status=None, order=None, search=None) -> list[ProductionOrder]:
        """
        Production orders, newest first, with `current_stock` of their product.

        Runs the FIFO sweep first so statuses are current.
        """
        cls.evaluate()

        qs = ProductionOrder.objects.select_related('order', 'order__customer', 'product')
        if status:
            qs = qs.filter(status=status)
        if order is not None:
            qs = qs.filter(order=order)
        if search:
            digits = ''.join(ch for ch in search if ch.isdigit())
            condition = (
                Q(product__name__icontains=search)
                | Q(order__customer__name__icontains=search)
            )
            if digits:
                condition |= Q(number=int(digits)) | Q(order__number=int(digits))
            qs = qs.filter(condition)

        rows = list(qs.order_by('-number'))
        balances = Ledger.balances({row.product_id for row in rows})
        for row in rows:
            row.current_stock = balances.get(row.product_id, 0)
        return rows

    @classmethod
    def kpis(cls) -> ProductionKPIs:
        cls.evaluate()
        open_filter = Q(status__in=OPEN_PRODUCTION_STATUSES)
        data = ProductionOrder.objects.aggregate(
            total=Count('pk'),
            pending=Count('pk', filter=Q(status=ProductionOrderStatus.PENDING)),
            in_progress=Count('pk', filter=Q(status=ProductionOrderStatus.IN_PROGRESS)),
            completed=Count('pk', filter=Q(status=ProductionOrderStatus.COMPLETED)),
            pending_pieces=Coalesce(Sum('quantity_pieces', filter=open_filter), 0),
        )
        return ProductionKPIs(**data)

    # ══════════════════════════════════════════════════════════════
    # CANCEL
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def cancel(cls, production_order: ProductionOrder) -> ProductionOrder:
        """
        Release one reservation. Never touches the ledger.

        Cancelling the last live row sends an IN_PRODUCTION order back to
        CONFIRMED, as cancel_all does; otherwise the order moves to READY
        once its remaining rows are COMPLETED.

        Raises:
            InvalidState: not PENDING or IN_PROGRESS
        """
        with transaction.atomic():
            production_order = ProductionOrder.objects.select_for_update().get(pk=production_order.pk)
            if not production_order.is_open:
                raise InvalidState(
                    "Apenas ordens pendentes ou em progresso podem ser canceladas",
                    production_order_id=production_order.pk,
                    status=production_order.status,
                )

            previous = production_order.status
            production_order.status = ProductionOrderStatus.CANCELLED
            production_order.save(update_fields=['status', 'updated_at'])

            logger.info(
                "production.cancelled",
                extra={
                    "production_order_id": production_order.pk,
                    "number": production_order.number,
                    "from_status": previous,
                },
            )
            order = Order.objects.select_for_update().get(pk=production_order.order_id)
            live = order.production_orders.exclude(status=ProductionOrderStatus.CANCELLED)
            if order.status == OrderStatus.IN_PRODUCTION and not live.exists():
                change_order_status(order, OrderStatus.CONFIRMED, reason='production.cancelled')
            else:
                cls._advance_if_ready(order.pk)
            return production_order

    @classmethod
    def cancel_all(cls, order: Order) -> int:
        """
        Cancel every open production order of an order.

        An IN_PRODUCTION order goes back to CONFIRMED. Returns how many
        rows were cancelled.
        """
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order.pk)
            rows = list(order.production_orders.open().select_for_update())
            for row in rows:
                row.status = ProductionOrderStatus.CANCELLED
                row.save(update_fields=['status', 'updated_at'])

            if rows:
                logger.info(
                    "production.cancelled",
                    extra={"order_id": order.pk, "numbers": [row.number for row in rows]},
                )
            if order.status == OrderStatus.IN_PRODUCTION:
                change_order_status(order, OrderStatus.CONFIRMED, reason='production.cancelled')
            return len(rows)
