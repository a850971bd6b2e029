"""
Product and Recipe — the catalog fields the ledger needs.

Catalog CRUD lives outside Palletman; these models only carry what the
conversions (pieces ↔ pallets ↔ m²) depend on.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """Finished good tracked in pieces."""

    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    is_active = models.BooleanField(default=True, verbose_name=_('Ativo'))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Produto')
        verbose_name_plural = _('Produtos')
        ordering = ['name']

    @property
    def recipe_or_none(self):
        """Recipe if one exists (the reverse one-to-one raises otherwise)."""
        try:
            return self.recipe
        except Recipe.DoesNotExist:
            return None

    def __str__(self) -> str:
        return self.name


class Recipe(models.Model):
    """
    Production recipe: yield per machine cycle and packing factors.

    pieces_per_pallet is required to palletize; pieces_per_m2 is required
    to take orders in m².
    """

    product = models.OneToOneField(
        Product,
        on_delete=models.CASCADE,
        related_name='recipe',
        verbose_name=_('Produto'),
    )
    pieces_per_cycle = models.PositiveIntegerField(verbose_name=_('Peças por ciclo'))
    pieces_per_pallet = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Peças por pallet'),
    )
    pieces_per_m2 = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Peças por m²'),
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Receita')
        verbose_name_plural = _('Receitas')

    def __str__(self) -> str:
        return f"{self.product} ({self.pieces_per_cycle}/ciclo, {self.pieces_per_pallet or '?'}/pallet)"
