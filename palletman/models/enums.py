"""
Enums for Palletman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementType(models.TextChoices):
    """Ledger direction. Balance = sum(IN) - sum(OUT)."""
    IN = 'IN', _('Entrada')
    OUT = 'OUT', _('Saída')


class QuantityUnit(models.TextChoices):
    PIECES = 'PIECES', _('Peças')
    M2 = 'M2', _('m²')


class OrderStatus(models.TextChoices):
    """
    Order lifecycle.

    CONFIRMED → IN_PRODUCTION → READY ⇄ DELIVERED
    CANCELLED is reachable by explicit action from the first three.
    """
    CONFIRMED = 'CONFIRMED', _('Confirmado')         # Accepted, no production orders
    IN_PRODUCTION = 'IN_PRODUCTION', _('Em Produção')  # Production orders generated
    READY = 'READY', _('Pronto')                     # All production orders done
    DELIVERED = 'DELIVERED', _('Entregue')           # Every item covered by deliveries
    CANCELLED = 'CANCELLED', _('Cancelado')


class ProductionOrderStatus(models.TextChoices):
    """Production order (reservation) lifecycle, driven by the FIFO evaluator."""
    PENDING = 'PENDING', _('Pendente')             # No stock reached this row yet
    IN_PROGRESS = 'IN_PROGRESS', _('Em Produção')  # Partially covered by stock
    COMPLETED = 'COMPLETED', _('Concluída')        # Fully covered by stock
    CANCELLED = 'CANCELLED', _('Cancelada')


OPEN_PRODUCTION_STATUSES = (
    ProductionOrderStatus.PENDING,
    ProductionOrderStatus.IN_PROGRESS,
)


class DeliveryStatus(models.TextChoices):
    LOADING = 'LOADING', _('Carregando')
    IN_TRANSIT = 'IN_TRANSIT', _('Em Trânsito')
    DELIVERED = 'DELIVERED', _('Entregue')
    CANCELLED = 'CANCELLED', _('Cancelada')
