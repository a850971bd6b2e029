"""
Ledger — append-only finished-goods stock movements.

Balance is never stored: every read aggregates sum(IN) - sum(OUT).
All writes run under transaction.atomic() with the product row locked.
"""

import logging
from dataclasses import dataclass
from datetime import date

from django.db import transaction
from django.db.models import Max, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from palletman import units
from palletman.exceptions import InsufficientStock, NotFound, ValidationError
from palletman.models.enums import MovementType
from palletman.models.movement import InventoryMovement
from palletman.models.palletization import LoosePiecesBalance
from palletman.models.product import Product, Recipe

logger = logging.getLogger('palletman')


@dataclass(frozen=True)
class ProductStock:
    """Stock position of one product, as shown on the stock screen."""

    product_id: int
    product_name: str
    available_pieces: int
    available_pallets: object
    available_m2: object
    curing_pieces: int
    loose_pieces: int
    total_in: int
    total_out: int
    last_movement_date: date | None


def lock_products(product_ids) -> dict[int, Product]:
    """
    Lock product rows (in pk order) for the rest of the transaction.

    Every stock-consuming writer goes through here, so two writers on the
    same product serialize instead of reading the same balance.
    """
    ids = sorted(set(product_ids))
    return {
        p.pk: p
        for p in Product.objects.select_for_update().filter(pk__in=ids).order_by('pk')
    }


class Ledger:
    """Movement ledger methods."""

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def balance(cls, product) -> int:
        """Current stock in pieces: sum(IN) - sum(OUT)."""
        return InventoryMovement.objects.for_product(product).signed_total()

    @classmethod
    def balances(cls, products=None) -> dict[int, int]:
        """
        {product_id: balance} for several products in one query.

        Products without movements are reported as 0.
        """
        qs = InventoryMovement.objects.all()
        ids = None
        if products is not None:
            ids = [getattr(p, 'pk', p) for p in products]
            qs = qs.filter(product_id__in=ids)
        result = qs.balances_by_product()
        if ids is not None:
            for pk in ids:
                result.setdefault(pk, 0)
        return result

    @classmethod
    def totals(cls, product) -> tuple[int, int]:
        """(total_in, total_out) for one product."""
        return InventoryMovement.objects.for_product(product).totals()

    @classmethod
    def movements(cls, product=None, type=None, start: date | None = None,
                  end: date | None = None):
        """Ledger rows, newest first."""
        qs = InventoryMovement.objects.select_related('product')
        if product is not None:
            qs = qs.filter(product=product)
        if type:
            qs = qs.filter(type=type)
        if start:
            qs = qs.filter(date__gte=start)
        if end:
            qs = qs.filter(date__lte=end)
        return qs.order_by('-date', '-created_at')

    @classmethod
    def audit(cls, product) -> tuple[int, int]:
        """
        Replay the product's rows one by one and compare with the aggregate.

        Returns (aggregate_balance, replayed_balance); they must be equal.
        """
        replayed = sum(
            m.signed_pieces
            for m in InventoryMovement.objects.for_product(product).only('type', 'quantity_pieces')
        )
        aggregate = cls.balance(product)
        if aggregate != replayed:
            logger.error(
                "ledger.audit.mismatch",
                extra={"product_id": product.pk, "aggregate": aggregate, "replayed": replayed},
            )
        return aggregate, replayed

    @classmethod
    def stock_summary(cls) -> list[ProductStock]:
        """
        Stock position per product with any activity.

        curing_pieces is production not yet palletized (and not legacy);
        loose_pieces is the carry-over outside complete pallets.
        """
        from palletman.services.palletization import Palletizer

        rows = {
            r['product_id']: r
            for r in InventoryMovement.objects.values('product_id').annotate(
                total_in=Coalesce(Sum('quantity_pieces', filter=Q(type=MovementType.IN)), 0),
                total_out=Coalesce(Sum('quantity_pieces', filter=Q(type=MovementType.OUT)), 0),
                last_date=Max('date'),
            )
        }
        curing = Palletizer.curing_pieces()
        loose = dict(LoosePiecesBalance.objects.values_list('product_id', 'pieces'))

        result = []
        for product in Product.objects.select_related('recipe').order_by('name'):
            last = rows.get(product.pk)
            total_in = last['total_in'] if last else 0
            total_out = last['total_out'] if last else 0
            curing_pieces = curing.get(product.pk, 0)
            loose_pieces = loose.get(product.pk, 0)
            if not (total_in or total_out or curing_pieces or loose_pieces):
                continue

            recipe = product.recipe_or_none
            available = total_in - total_out
            result.append(ProductStock(
                product_id=product.pk,
                product_name=product.name,
                available_pieces=available,
                available_pallets=units.display_pallets(available, recipe),
                available_m2=units.display_area(available, recipe),
                curing_pieces=curing_pieces,
                loose_pieces=loose_pieces,
                total_in=total_in,
                total_out=total_out,
                last_movement_date=last['last_date'] if last else None,
            ))
        return result

    # ══════════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def post(cls, product, type, quantity_pieces: int, date: date | None = None, *,
             palletization=None, delivery=None, production_day=None,
             notes: str = '') -> InventoryMovement:
        """
        Append one movement.

        Pallets and m² are snapshotted from the recipe as of now. An OUT
        never takes the balance below zero.

        Raises:
            ValidationError: quantity_pieces <= 0 or unknown type
            NotFound: product does not exist
            InsufficientStock: OUT larger than the current balance

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the product row before reading the balance
        """
        if type not in MovementType.values:
            raise ValidationError(f"Tipo de movimentação inválido: {type}", type=type)
        if quantity_pieces is None or quantity_pieces <= 0:
            raise ValidationError(
                code='INVALID_QUANTITY',
                requested=quantity_pieces,
            )

        with transaction.atomic():
            locked = lock_products([product.pk])
            if product.pk not in locked:
                raise NotFound(f"Produto não encontrado: {product.pk}", product_id=product.pk)

            if type == MovementType.OUT:
                available = cls.balance(product)
                if quantity_pieces > available:
                    raise InsufficientStock(
                        f"{product.name}: estoque insuficiente "
                        f"(disponível: {available}, solicitado: {quantity_pieces})",
                        product_id=product.pk,
                        available=available,
                        requested=quantity_pieces,
                    )

            recipe = Recipe.objects.filter(product_id=product.pk).first()
            movement = InventoryMovement.objects.create(
                product=product,
                date=date or timezone.localdate(),
                type=type,
                quantity_pieces=quantity_pieces,
                quantity_pallets=units.pallets_for(quantity_pieces, recipe),
                area_m2=units.area_for(quantity_pieces, recipe),
                palletization=palletization,
                delivery=delivery,
                delivery_number=delivery.number if delivery else None,
                production_day=production_day,
                notes=notes,
            )
            logger.info(
                "ledger.posted",
                extra={
                    "movement_id": movement.pk,
                    "product_id": product.pk,
                    "type": type,
                    "qty": quantity_pieces,
                },
            )
            return movement

    @classmethod
    def issue(cls, product, quantity_pieces: int, date: date | None = None,
              notes: str = '') -> InventoryMovement:
        """
        Manual stock exit (breakage, samples, adjustments).

        IN movements are never entered by hand: they come from
        palletization and delivery reversals.
        """
        return cls.post(product, MovementType.OUT, quantity_pieces, date, notes=notes)

    @classmethod
    def delete(cls, movement: InventoryMovement) -> None:
        """
        Delete a manual movement.

        Raises:
            InvalidState('AUTOMATIC_MOVEMENT'): linked to a production day,
                palletization or delivery; reverse it through its owner
            InsufficientStock: removing a manual IN would leave a negative balance
        """
        with transaction.atomic():
            lock_products([movement.product_id])
            movement = InventoryMovement.objects.select_related('product').get(pk=movement.pk)

            if not movement.is_automatic and movement.type == MovementType.IN:
                available = cls.balance(movement.product)
                if available - movement.quantity_pieces < 0:
                    raise InsufficientStock(
                        f"{movement.product.name}: excluir a entrada deixaria o estoque negativo "
                        f"(disponível: {available}, entrada: {movement.quantity_pieces})",
                        product_id=movement.product_id,
                        available=available,
                        requested=movement.quantity_pieces,
                    )

            movement_id = movement.pk
            movement.delete()
            logger.info(
                "ledger.deleted",
                extra={"movement_id": movement_id, "product_id": movement.product_id},
            )
