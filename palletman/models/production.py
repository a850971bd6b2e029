"""
Production entry — theoretical output per day, as recorded on the floor.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ProductionDay(models.Model):
    date = models.DateField(unique=True, verbose_name=_('Data'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    class Meta:
        verbose_name = _('Dia de Produção')
        verbose_name_plural = _('Dias de Produção')
        ordering = ['-date']

    def __str__(self) -> str:
        return str(self.date)


class ProductionItem(models.Model):
    """
    Output of one product on one production day.

    pieces is None when no recipe existed at entry time; readers fall back
    to cycles × pieces_per_cycle.
    """

    production_day = models.ForeignKey(
        ProductionDay,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Dia de Produção'),
    )
    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='production_items',
        verbose_name=_('Produto'),
    )
    cycles = models.PositiveIntegerField(default=0, verbose_name=_('Ciclos'))
    pieces = models.PositiveIntegerField(null=True, blank=True, verbose_name=_('Peças'))

    class Meta:
        verbose_name = _('Item de Produção')
        verbose_name_plural = _('Itens de Produção')
        indexes = [
            models.Index(fields=['product', 'production_day'], name='pm_prod_item_product_day_idx'),
        ]

    def theoretical_pieces(self, pieces_per_cycle: int | None) -> int:
        """Recorded pieces, else cycles × pieces_per_cycle, else raw cycles."""
        if self.pieces is not None:
            return self.pieces
        if pieces_per_cycle:
            return self.cycles * pieces_per_cycle
        return self.cycles

    def __str__(self) -> str:
        return f"{self.product} @ {self.production_day}: {self.cycles} ciclos"
