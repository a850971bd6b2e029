"""
ProductionOrder model — stock reservation against an order item.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from palletman.conf import format_number, palletman_settings
from palletman.models.enums import OPEN_PRODUCTION_STATUSES, ProductionOrderStatus


class ProductionOrderQuerySet(models.QuerySet):

    def open(self):
        """PENDING or IN_PROGRESS: still reserving stock."""
        return self.filter(status__in=OPEN_PRODUCTION_STATUSES)

    def fifo(self):
        """Oldest commitment first."""
        return self.order_by('number')


class ProductionOrder(models.Model):
    """
    Production target for one order item.

    LIFECYCLE:

    ┌─────────────────────────────────────────────────────────────┐
    │                                                             │
    │   ┌─────────┐  stock > 0   ┌─────────────┐  stock ≥ qty    │
    │   │ PENDING │ ───────────► │ IN_PROGRESS │ ──────────────► │
    │   └─────────┘ ◄─────────── └─────────────┘   ┌───────────┐ │
    │        │        stock = 0         │          │ COMPLETED │ │
    │        │ cancel()                 │ cancel() └───────────┘ │
    │        ▼                          ▼                        │
    │   ┌──────────────────────────────────┐                     │
    │   │            CANCELLED             │                     │
    │   └──────────────────────────────────┘                     │
    │                                                             │
    └─────────────────────────────────────────────────────────────┘

    Status is derived lazily by the FIFO evaluator from the ledger
    balance; nothing here touches the ledger. Cancelling releases the
    reservation only.
    """

    number = models.PositiveIntegerField(unique=True, verbose_name=_('Número'))
    order = models.ForeignKey(
        'palletman.Order',
        on_delete=models.PROTECT,
        related_name='production_orders',
        verbose_name=_('Pedido'),
    )
    order_item = models.OneToOneField(
        'palletman.OrderItem',
        on_delete=models.PROTECT,
        related_name='production_order',
        verbose_name=_('Item do Pedido'),
    )
    product = models.ForeignKey(
        'palletman.Product',
        on_delete=models.PROTECT,
        related_name='production_orders',
        verbose_name=_('Produto'),
    )

    quantity_pieces = models.PositiveIntegerField(verbose_name=_('Peças (meta)'))
    stock_at_creation = models.PositiveIntegerField(
        verbose_name=_('Estoque na criação'),
        help_text=_('Snapshot para auditoria; não participa da avaliação'),
    )
    to_produce_pieces = models.PositiveIntegerField(verbose_name=_('Peças a produzir'))

    status = models.CharField(
        max_length=20,
        choices=ProductionOrderStatus.choices,
        default=ProductionOrderStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Concluída em'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductionOrderQuerySet.as_manager()

    class Meta:
        verbose_name = _('Ordem de Produção')
        verbose_name_plural = _('Ordens de Produção')
        ordering = ['-number']
        indexes = [
            models.Index(fields=['status', 'product'], name='pm_prod_order_status_prod_idx'),
        ]

    @property
    def code(self) -> str:
        return format_number(palletman_settings.PRODUCTION_ORDER_PREFIX, self.number)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_PRODUCTION_STATUSES

    def __str__(self) -> str:
        return f"{self.code} {self.quantity_pieces}x {self.product} [{self.status}]"
