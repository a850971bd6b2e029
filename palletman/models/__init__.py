"""
Palletman Models.

Core models for finished-goods stock:
- InventoryMovement: Append-only ledger (balance is always derived)
- Palletization: Post-curing yield reconciliation
- LoosePiecesBalance: Carry-over of pieces outside complete pallets
- ProductionOrder: Stock reservation per order item (FIFO)
- Delivery / DeliveryItem: Stock leaving against an order
- SequenceCounter: Monotonic numbering per entity

Collaborator models (catalog, production entry, orders, parties) carry
only the fields the core needs.
"""

from palletman.models.delivery import DELIVERY_TRANSITIONS, Delivery, DeliveryItem
from palletman.models.enums import (
    OPEN_PRODUCTION_STATUSES,
    DeliveryStatus,
    MovementType,
    OrderStatus,
    ProductionOrderStatus,
    QuantityUnit,
)
from palletman.models.movement import InventoryMovement
from palletman.models.order import Order, OrderItem
from palletman.models.palletization import LoosePiecesBalance, Palletization
from palletman.models.parties import Customer, Driver, Vehicle
from palletman.models.product import Product, Recipe
from palletman.models.production import ProductionDay, ProductionItem
from palletman.models.production_order import ProductionOrder
from palletman.models.sequence import SequenceCounter

__all__ = [
    'MovementType',
    'QuantityUnit',
    'OrderStatus',
    'ProductionOrderStatus',
    'OPEN_PRODUCTION_STATUSES',
    'DeliveryStatus',
    'DELIVERY_TRANSITIONS',
    'Product',
    'Recipe',
    'ProductionDay',
    'ProductionItem',
    'Customer',
    'Vehicle',
    'Driver',
    'InventoryMovement',
    'Palletization',
    'LoosePiecesBalance',
    'Order',
    'OrderItem',
    'ProductionOrder',
    'Delivery',
    'DeliveryItem',
    'SequenceCounter',
]
