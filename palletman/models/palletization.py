"""
Palletization and LoosePiecesBalance — physical yield after curing.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Palletization(models.Model):
    """
    Reconciliation of one product's production day against counted pallets.

    Mass balance (always holds, loss_pieces >= 0):

        theoretical_pieces + loose_pieces_before
            == real_pieces + loose_pieces_after + loss_pieces

    real_pieces = complete_pallets × pieces_per_pallet, where
    pieces_per_pallet is a snapshot of the recipe at save time.
    """

    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='palletizations',
        verbose_name=_('Produto'),
    )
    production_date = models.DateField(db_index=True, verbose_name=_('Data de Produção'))
    palletized_date = models.DateField(default=timezone.localdate, verbose_name=_('Data de Paletização'))

    theoretical_pieces = models.PositiveIntegerField(verbose_name=_('Peças teóricas'))
    complete_pallets = models.PositiveIntegerField(verbose_name=_('Pallets completos'))
    loose_pieces_after = models.PositiveIntegerField(verbose_name=_('Peças soltas restantes'))
    pieces_per_pallet = models.PositiveIntegerField(verbose_name=_('Peças por pallet'))
    real_pieces = models.PositiveIntegerField(verbose_name=_('Peças reais'))
    loss_pieces = models.PositiveIntegerField(verbose_name=_('Perda (peças)'))
    loose_pieces_before = models.PositiveIntegerField(verbose_name=_('Peças soltas anteriores'))

    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Paletização')
        verbose_name_plural = _('Paletizações')
        ordering = ['-palletized_date', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'production_date'],
                name='unique_palletization_per_product_day',
            ),
        ]

    @property
    def available_pieces(self) -> int:
        return self.theoretical_pieces + self.loose_pieces_before

    @property
    def loss_percent(self):
        """Loss over theoretical output, in percent (None when nothing produced)."""
        if not self.theoretical_pieces:
            return None
        return round(self.loss_pieces * 100 / self.theoretical_pieces, 2)

    def __str__(self) -> str:
        return f"{self.product} {self.production_date}: {self.complete_pallets} pallets"


class LoosePiecesBalance(models.Model):
    """
    Pieces left outside complete pallets, carried over between palletizations.

    One row per product, pieces >= 0. Only the Palletizer writes here.
    """

    product = models.OneToOneField(
        'palletman.Product',
        on_delete=models.CASCADE,
        related_name='loose_balance',
        verbose_name=_('Produto'),
    )
    pieces = models.PositiveIntegerField(default=0, verbose_name=_('Peças soltas'))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Saldo de Peças Soltas')
        verbose_name_plural = _('Saldos de Peças Soltas')

    def __str__(self) -> str:
        return f"{self.product}: {self.pieces} soltas"
