"""
InventoryMovement model — append-only ledger of finished-goods stock.
"""

from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from palletman.models.enums import MovementType


class MovementQuerySet(models.QuerySet):
    """QuerySet with the balance aggregate the whole ledger relies on."""

    def for_product(self, product):
        return self.filter(product=product)

    def automatic(self):
        """Rows owned by another record (legacy seed, palletization, delivery)."""
        return self.filter(
            Q(production_day__isnull=False)
            | Q(palletization__isnull=False)
            | Q(delivery__isnull=False)
            | Q(delivery_number__isnull=False)
        )

    def totals(self) -> tuple[int, int]:
        """(sum(IN), sum(OUT)) over the queryset."""
        row = self.aggregate(
            total_in=Coalesce(Sum('quantity_pieces', filter=Q(type=MovementType.IN)), 0),
            total_out=Coalesce(Sum('quantity_pieces', filter=Q(type=MovementType.OUT)), 0),
        )
        return row['total_in'], row['total_out']

    def signed_total(self) -> int:
        """sum(IN) - sum(OUT) over the queryset."""
        total_in, total_out = self.totals()
        return total_in - total_out

    def balances_by_product(self) -> dict[int, int]:
        """{product_id: balance} in one grouped query."""
        rows = self.values('product_id').annotate(
            total_in=Coalesce(Sum('quantity_pieces', filter=Q(type=MovementType.IN)), 0),
            total_out=Coalesce(Sum('quantity_pieces', filter=Q(type=MovementType.OUT)), 0),
        )
        return {r['product_id']: r['total_in'] - r['total_out'] for r in rows}


class InventoryMovement(models.Model):
    """
    Immutable record of a stock movement, in pieces.

    Rules:
    - NEVER update(); corrections are new rows
    - Balance is always derived: sum(IN) - sum(OUT)
    - quantity_pallets / area_m2 are a recipe snapshot at write time and
      are never recomputed from a later-edited recipe
    - Rows linked to a production day, palletization or delivery are
      removed only by their owner; delivery rows keep delivery_number
      after the delivery itself is deleted
    """

    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Produto'),
    )
    date = models.DateField(default=timezone.localdate, db_index=True, verbose_name=_('Data'))
    type = models.CharField(
        max_length=3,
        choices=MovementType.choices,
        verbose_name=_('Tipo'),
    )
    quantity_pieces = models.PositiveIntegerField(verbose_name=_('Peças'))
    quantity_pallets = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Pallets'),
    )
    area_m2 = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Área (m²)'),
    )

    # Owning records
    production_day = models.ForeignKey(
        'palletman.ProductionDay',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Dia de Produção (legado)'),
    )
    palletization = models.ForeignKey(
        'palletman.Palletization',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Paletização'),
    )
    delivery = models.ForeignKey(
        'palletman.Delivery',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Entrega'),
    )
    delivery_number = models.PositiveIntegerField(
        null=True,
        blank=True,
        editable=False,
        verbose_name=_('Nº da Entrega'),
    )

    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observações'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimentação')
        verbose_name_plural = _('Movimentações')
        ordering = ['date', 'created_at']
        indexes = [
            models.Index(fields=['product', 'type'], name='pm_mov_product_type_idx'),
            models.Index(fields=['product', 'date'], name='pm_mov_product_date_idx'),
        ]

    @property
    def is_automatic(self) -> bool:
        return bool(
            self.production_day_id or self.palletization_id
            or self.delivery_id or self.delivery_number is not None
        )

    @property
    def signed_pieces(self) -> int:
        return self.quantity_pieces if self.type == MovementType.IN else -self.quantity_pieces

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk and not self._state.adding:
            raise ValueError(
                "Movimentações são imutáveis. "
                "Para corrigir, crie uma nova movimentação."
            )
        if not self.quantity_pieces or self.quantity_pieces <= 0:
            raise ValueError("Quantidade de peças deve ser positiva")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Only manual movements can be deleted one by one."""
        if self.is_automatic:
            from palletman.exceptions import InvalidState
            raise InvalidState(code='AUTOMATIC_MOVEMENT', movement_id=self.pk)
        return super().delete(*args, **kwargs)

    def __str__(self) -> str:
        signal = '+' if self.type == MovementType.IN else '-'
        return f"{signal}{self.quantity_pieces} {self.product} ({self.date})"
