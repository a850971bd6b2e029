"""
Palletman services — one class per component, leaf first:

    from palletman.services import Ledger, Palletizer, ProductionOrders, Deliveries, Orders
"""

from palletman.services.deliveries import Deliveries
from palletman.services.ledger import Ledger
from palletman.services.orders import Orders
from palletman.services.palletization import Palletizer
from palletman.services.production import ProductionOrders

__all__ = [
    'Ledger',
    'Palletizer',
    'ProductionOrders',
    'Deliveries',
    'Orders',
]
