"""
Delivery and DeliveryItem — stock leaving the yard against an order.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from palletman.conf import format_number, palletman_settings
from palletman.models.enums import DeliveryStatus


DELIVERY_TRANSITIONS = {
    DeliveryStatus.LOADING: (DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED),
    DeliveryStatus.IN_TRANSIT: (DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED),
}


class Delivery(models.Model):
    """
    Shipment of order items.

    LOADING → IN_TRANSIT → DELIVERED, with CANCELLED reachable from the
    first two. DELIVERED and CANCELLED are terminal. Stock leaves the
    ledger when the delivery is created (LOADING) and comes back on
    cancellation or deletion.
    """

    number = models.PositiveIntegerField(unique=True, verbose_name=_('Número'))
    order = models.ForeignKey(
        'palletman.Order',
        on_delete=models.PROTECT,
        related_name='deliveries',
        verbose_name=_('Pedido'),
    )
    vehicle = models.ForeignKey(
        'palletman.Vehicle',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deliveries',
        verbose_name=_('Veículo'),
    )
    driver = models.ForeignKey(
        'palletman.Driver',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deliveries',
        verbose_name=_('Motorista'),
    )
    loading_date = models.DateField(verbose_name=_('Data de carregamento'))
    delivery_date = models.DateTimeField(null=True, blank=True, verbose_name=_('Entregue em'))
    delivery_address = models.CharField(
        max_length=500,
        blank=True,
        default='',
        verbose_name=_('Endereço de entrega'),
    )
    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.LOADING,
        db_index=True,
        verbose_name=_('Status'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Entrega')
        verbose_name_plural = _('Entregas')
        ordering = ['-number']

    @property
    def code(self) -> str:
        return format_number(palletman_settings.DELIVERY_PREFIX, self.number)

    def can_transition_to(self, status) -> bool:
        return status in DELIVERY_TRANSITIONS.get(self.status, ())

    def __str__(self) -> str:
        return f"{self.code} [{self.status}]"


class DeliveryItem(models.Model):
    """Pieces of one order item on a delivery. Immutable once created."""

    delivery = models.ForeignKey(
        Delivery,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Entrega'),
    )
    order_item = models.ForeignKey(
        'palletman.OrderItem',
        on_delete=models.PROTECT,
        related_name='delivery_items',
        verbose_name=_('Item do Pedido'),
    )
    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='delivery_items',
        verbose_name=_('Produto'),
    )
    quantity_pieces = models.PositiveIntegerField(verbose_name=_('Peças'))
    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observações'))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Item da Entrega')
        verbose_name_plural = _('Itens da Entrega')

    def __str__(self) -> str:
        return f"{self.quantity_pieces}x {self.product}"
