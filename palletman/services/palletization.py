"""
Palletization — reconcile theoretical output against counted pallets.

After curing, a product's production day is counted as complete pallets
plus loose pieces. Complete pallets enter the ledger; loose pieces carry
over to the next palletization; the rest is loss:

    loss = theoretical + loose_before - real - loose_after    (must be >= 0)

All state-changing methods run under transaction.atomic() with the
product row locked.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta

from django.db import transaction
from django.utils import timezone

from palletman.conf import palletman_settings
from palletman.exceptions import (
    AlreadyGenerated,
    InsufficientLoosePieces,
    InsufficientStock,
    InvalidState,
    MissingRecipe,
    NoProduction,
    NotFound,
    ReconciliationOverrun,
    ValidationError,
)
from palletman.models.enums import MovementType
from palletman.models.movement import InventoryMovement
from palletman.models.palletization import LoosePiecesBalance, Palletization
from palletman.models.product import Recipe
from palletman.models.production import ProductionItem
from palletman.services.ledger import Ledger, lock_products

logger = logging.getLogger('palletman')


@dataclass(frozen=True)
class PendingPalletization:
    product_id: int
    product_name: str
    production_date: date
    theoretical_pieces: int
    loose_pieces_before: int
    pieces_per_pallet: int
    pieces_per_m2: object


@dataclass(frozen=True)
class MissingRecipeItem:
    """Pending production that cannot be palletized: no pieces_per_pallet."""

    product_id: int
    product_name: str
    production_date: date
    total_cycles: int


@dataclass(frozen=True)
class LoosePiecesItem:
    product_id: int
    product_name: str
    pieces: int
    pieces_per_pallet: int


def _recipe_for(product) -> Recipe:
    recipe = Recipe.objects.filter(product_id=product.pk).first()
    if recipe is None or not recipe.pieces_per_pallet:
        raise MissingRecipe(product_id=product.pk)
    return recipe


def _legacy_day_ids() -> set[int]:
    """Production days already seeded into the ledger before palletization existed."""
    return set(
        InventoryMovement.objects.filter(
            type=MovementType.IN,
            production_day__isnull=False,
        ).values_list('production_day_id', flat=True)
    )


def _schedule_evaluation():
    from palletman.services.production import evaluate_on_commit
    evaluate_on_commit()


class Palletizer:
    """Palletization reconciler methods."""

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _pending_groups(cls) -> tuple[list[dict], dict[int, Recipe]]:
        """
        Unpalletized production grouped by (product, date).

        A pair is pending when its production day has cured, it has
        theoretical output, no Palletization exists for it and its day
        is not legacy-seeded.
        """
        cutoff = timezone.localdate() - timedelta(days=palletman_settings.CURING_DAYS)
        items = (
            ProductionItem.objects
            .filter(cycles__gt=0, production_day__date__lte=cutoff)
            .select_related('product', 'production_day')
        )

        palletized = set(Palletization.objects.values_list('product_id', 'production_date'))
        legacy = _legacy_day_ids()

        pending = [
            item for item in items
            if (item.product_id, item.production_day.date) not in palletized
            and item.production_day_id not in legacy
        ]

        recipes = {
            r.product_id: r
            for r in Recipe.objects.filter(product_id__in={i.product_id for i in pending})
        }

        grouped: dict[tuple[int, date], dict] = {}
        for item in pending:
            key = (item.product_id, item.production_day.date)
            recipe = recipes.get(item.product_id)
            pieces = item.theoretical_pieces(recipe.pieces_per_cycle if recipe else None)
            group = grouped.setdefault(key, {
                'product_id': item.product_id,
                'product_name': item.product.name,
                'production_date': item.production_day.date,
                'total_cycles': 0,
                'total_pieces': 0,
            })
            group['total_cycles'] += item.cycles
            group['total_pieces'] += pieces

        groups = sorted(grouped.values(), key=lambda g: (g['production_date'], g['product_name']))
        return groups, recipes

    @classmethod
    def pending(cls) -> tuple[list[PendingPalletization], list[MissingRecipeItem]]:
        """
        Work waiting for palletization.

        Returns:
            (items, missing_recipe), both sorted by production date.
            missing_recipe lists pairs whose product has no pieces_per_pallet.
        """
        groups, recipes = cls._pending_groups()
        loose = dict(LoosePiecesBalance.objects.values_list('product_id', 'pieces'))

        items = []
        missing = []
        for g in groups:
            recipe = recipes.get(g['product_id'])
            if recipe is None or not recipe.pieces_per_pallet:
                missing.append(MissingRecipeItem(
                    product_id=g['product_id'],
                    product_name=g['product_name'],
                    production_date=g['production_date'],
                    total_cycles=g['total_cycles'],
                ))
                continue
            items.append(PendingPalletization(
                product_id=g['product_id'],
                product_name=g['product_name'],
                production_date=g['production_date'],
                theoretical_pieces=g['total_pieces'],
                loose_pieces_before=loose.get(g['product_id'], 0),
                pieces_per_pallet=recipe.pieces_per_pallet,
                pieces_per_m2=recipe.pieces_per_m2,
            ))
        return items, missing

    @classmethod
    def curing_pieces(cls) -> dict[int, int]:
        """{product_id: pieces} produced but not palletized yet."""
        totals: dict[int, int] = defaultdict(int)
        groups, _ = cls._pending_groups()
        for g in groups:
            totals[g['product_id']] += g['total_pieces']
        return dict(totals)

    @classmethod
    def history(cls, start: date | None = None, end: date | None = None, product=None):
        """Palletization records, newest first."""
        qs = Palletization.objects.select_related('product')
        if product is not None:
            qs = qs.filter(product=product)
        if start:
            qs = qs.filter(palletized_date__gte=start)
        if end:
            qs = qs.filter(palletized_date__lte=end)
        return qs.order_by('-palletized_date', '-created_at')

    @classmethod
    def loose_balances(cls) -> list[LoosePiecesItem]:
        """Positive loose balances of palletizable products, largest first."""
        rows = (
            LoosePiecesBalance.objects
            .filter(pieces__gt=0, product__recipe__pieces_per_pallet__isnull=False)
            .select_related('product', 'product__recipe')
            .order_by('-pieces')
        )
        return [
            LoosePiecesItem(
                product_id=row.product_id,
                product_name=row.product.name,
                pieces=row.pieces,
                pieces_per_pallet=row.product.recipe.pieces_per_pallet,
            )
            for row in rows
        ]

    @classmethod
    def loose_pieces(cls, product) -> int:
        return (
            LoosePiecesBalance.objects.filter(product=product)
            .values_list('pieces', flat=True).first()
        ) or 0

    @classmethod
    def get(cls, pk) -> Palletization:
        try:
            return Palletization.objects.select_related('product').get(pk=pk)
        except Palletization.DoesNotExist:
            raise NotFound("Paletização não encontrada", palletization_id=pk) from None

    # ══════════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def save(cls, product, production_date: date, complete_pallets: int,
             loose_pieces_after: int, notes: str = '') -> Palletization:
        """
        Record the physical count of one product's production day.

        1. Recipe must define pieces_per_pallet
        2. loose_before = current loose balance
        3. theoretical = that day's recorded pieces (or cycles × pieces_per_cycle)
        4. real = complete_pallets × pieces_per_pallet
        5. loss = theoretical + loose_before - real - loose_after, must be >= 0
        6. Atomically: create record, set loose balance, post IN for real pieces

        Raises:
            ValidationError: negative pallets or loose pieces
            MissingRecipe: no pieces_per_pallet
            AlreadyGenerated('ALREADY_PALLETIZED'): pair already reconciled
            InvalidState('LEGACY_PRODUCTION'): day already seeded into the ledger
            NoProduction: nothing produced that day
            ReconciliationOverrun: negative loss (nothing is written)
        """
        if complete_pallets is None or complete_pallets < 0:
            raise ValidationError(
                "Pallets completos não pode ser negativo",
                complete_pallets=complete_pallets,
            )
        if loose_pieces_after is None or loose_pieces_after < 0:
            raise ValidationError(
                "Peças soltas restantes não pode ser negativo",
                loose_pieces_after=loose_pieces_after,
            )

        with transaction.atomic():
            lock_products([product.pk])
            recipe = _recipe_for(product)
            pieces_per_pallet = recipe.pieces_per_pallet

            if Palletization.objects.filter(product=product, production_date=production_date).exists():
                raise AlreadyGenerated(
                    f"{product.name}: produção de {production_date} já paletizada",
                    code='ALREADY_PALLETIZED',
                    product_id=product.pk,
                    production_date=production_date,
                )

            items = list(ProductionItem.objects.filter(
                product=product,
                production_day__date=production_date,
            ))
            legacy = _legacy_day_ids()
            if any(item.production_day_id in legacy for item in items):
                raise InvalidState(
                    f"{product.name}: produção de {production_date} já lançada no estoque (legado)",
                    code='LEGACY_PRODUCTION',
                    product_id=product.pk,
                    production_date=production_date,
                )

            theoretical = sum(item.theoretical_pieces(recipe.pieces_per_cycle) for item in items)
            if theoretical == 0:
                raise NoProduction(product_id=product.pk, production_date=production_date)

            balance = LoosePiecesBalance.objects.select_for_update().filter(product=product).first()
            loose_before = balance.pieces if balance else 0

            real = complete_pallets * pieces_per_pallet
            loss = theoretical + loose_before - real - loose_pieces_after

            if loss < 0:
                raise ReconciliationOverrun(
                    f"Conta não fecha: peças em pallets ({real}) + soltas restantes "
                    f"({loose_pieces_after}) ultrapassa o disponível ({theoretical} teórico + "
                    f"{loose_before} soltas anteriores = {theoretical + loose_before})",
                    theoretical=theoretical,
                    loose_before=loose_before,
                    real=real,
                    loose_after=loose_pieces_after,
                    loss=loss,
                )

            today = timezone.localdate()
            palletization = Palletization.objects.create(
                product=product,
                production_date=production_date,
                palletized_date=today,
                theoretical_pieces=theoretical,
                complete_pallets=complete_pallets,
                loose_pieces_after=loose_pieces_after,
                pieces_per_pallet=pieces_per_pallet,
                real_pieces=real,
                loss_pieces=loss,
                loose_pieces_before=loose_before,
                notes=notes,
            )

            if balance is None:
                LoosePiecesBalance.objects.create(product=product, pieces=loose_pieces_after)
            else:
                balance.pieces = loose_pieces_after
                balance.save(update_fields=['pieces', 'updated_at'])

            if complete_pallets > 0:
                Ledger.post(
                    product,
                    MovementType.IN,
                    real,
                    today,
                    palletization=palletization,
                    notes=f"Paletização - {complete_pallets} pallets",
                )

            logger.info(
                "palletization.saved",
                extra={
                    "palletization_id": palletization.pk,
                    "product_id": product.pk,
                    "production_date": str(production_date),
                    "theoretical": theoretical,
                    "real": real,
                    "loss": loss,
                },
            )
            _schedule_evaluation()
            return palletization

    @classmethod
    def delete(cls, palletization: Palletization) -> None:
        """
        Undo a palletization.

        Restores the loose balance to current - loose_after + loose_before
        (clamped at 0 unless STRICT_LOOSE_REVERSAL), removes the linked
        ledger movement and the record.

        Raises:
            NotFound: record no longer exists
            InsufficientStock: its pallets already left the ledger
            InvalidState('LOOSE_BALANCE_INCONSISTENT'): strict mode and the
                reverted balance would be negative
        """
        with transaction.atomic():
            lock_products([palletization.product_id])
            try:
                palletization = (
                    Palletization.objects.select_for_update()
                    .select_related('product')
                    .get(pk=palletization.pk)
                )
            except Palletization.DoesNotExist:
                raise NotFound("Paletização não encontrada", palletization_id=palletization.pk) from None

            product = palletization.product
            linked = InventoryMovement.objects.filter(palletization=palletization)
            removed = linked.signed_total()
            available = Ledger.balance(product)
            if available - removed < 0:
                raise InsufficientStock(
                    f"{product.name}: os pallets desta paletização já saíram do estoque "
                    f"(disponível: {available}, a estornar: {removed})",
                    product_id=product.pk,
                    available=available,
                    requested=removed,
                )

            balance = LoosePiecesBalance.objects.select_for_update().filter(product=product).first()
            current = balance.pieces if balance else 0
            reverted = current - palletization.loose_pieces_after + palletization.loose_pieces_before
            if reverted < 0:
                if palletman_settings.STRICT_LOOSE_REVERSAL:
                    raise InvalidState(
                        f"{product.name}: saldo de peças soltas inconsistente ao estornar "
                        f"({current} - {palletization.loose_pieces_after} + "
                        f"{palletization.loose_pieces_before} = {reverted})",
                        code='LOOSE_BALANCE_INCONSISTENT',
                        product_id=product.pk,
                        reverted=reverted,
                    )
                logger.warning(
                    "palletization.loose_balance_clamped",
                    extra={
                        "palletization_id": palletization.pk,
                        "product_id": product.pk,
                        "reverted": reverted,
                    },
                )
                reverted = 0

            if balance is None:
                LoosePiecesBalance.objects.create(product=product, pieces=reverted)
            else:
                balance.pieces = reverted
                balance.save(update_fields=['pieces', 'updated_at'])

            # Queryset delete: owned rows bypass the per-row guard
            linked.delete()
            palletization_id = palletization.pk
            palletization.delete()

            logger.info(
                "palletization.deleted",
                extra={
                    "palletization_id": palletization_id,
                    "product_id": product.pk,
                    "removed": removed,
                    "loose_balance": reverted,
                },
            )
            _schedule_evaluation()

    @classmethod
    def form_pallet_from_loose(cls, product) -> InventoryMovement:
        """
        Close one complete pallet out of accumulated loose pieces.

        Raises:
            MissingRecipe: no pieces_per_pallet
            InsufficientLoosePieces: balance below one pallet
        """
        with transaction.atomic():
            lock_products([product.pk])
            recipe = _recipe_for(product)
            needed = recipe.pieces_per_pallet

            balance = LoosePiecesBalance.objects.select_for_update().filter(product=product).first()
            available = balance.pieces if balance else 0
            if available < needed:
                raise InsufficientLoosePieces(
                    f"Peças soltas insuficientes. Necessário: {needed}, disponível: {available}",
                    product_id=product.pk,
                    needed=needed,
                    available=available,
                )

            balance.pieces = available - needed
            balance.save(update_fields=['pieces', 'updated_at'])

            movement = Ledger.post(
                product,
                MovementType.IN,
                needed,
                timezone.localdate(),
                notes="Pallet formado com peças soltas",
            )
            logger.info(
                "palletization.pallet_formed",
                extra={"product_id": product.pk, "pieces": needed, "loose_left": balance.pieces},
            )
            _schedule_evaluation()
            return movement