"""
Order and OrderItem — customer demand, in ordered units and in pieces.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from palletman.conf import format_number, palletman_settings
from palletman.models.enums import OrderStatus, QuantityUnit
from palletman.units import to_pieces


class Order(models.Model):
    number = models.PositiveIntegerField(unique=True, verbose_name=_('Número'))
    customer = models.ForeignKey(
        'palletman.Customer',
        on_delete=models.PROTECT,
        related_name='orders',
        verbose_name=_('Cliente'),
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.CONFIRMED,
        db_index=True,
        verbose_name=_('Status'),
    )
    delivery_address = models.CharField(
        max_length=500,
        blank=True,
        default='',
        verbose_name=_('Endereço de entrega'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Pedido')
        verbose_name_plural = _('Pedidos')
        ordering = ['-number']

    @property
    def code(self) -> str:
        return format_number(palletman_settings.ORDER_PREFIX, self.number)

    def __str__(self) -> str:
        return f"{self.code} ({self.customer})"


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Pedido'),
    )
    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='order_items',
        verbose_name=_('Produto'),
    )
    quantity = models.DecimalField(max_digits=12, decimal_places=3, verbose_name=_('Quantidade'))
    unit = models.CharField(
        max_length=10,
        choices=QuantityUnit.choices,
        default=QuantityUnit.PIECES,
        verbose_name=_('Unidade'),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Item do Pedido')
        verbose_name_plural = _('Itens do Pedido')
        ordering = ['created_at', 'pk']

    @property
    def pieces_per_m2(self):
        recipe = self.product.recipe_or_none
        return recipe.pieces_per_m2 if recipe else None

    @property
    def quantity_pieces(self) -> int:
        """Ordered quantity in pieces (m² rounded up through the recipe)."""
        return to_pieces(self.quantity, self.unit, self.pieces_per_m2)

    def __str__(self) -> str:
        return f"{self.quantity} {self.get_unit_display()} {self.product}"
