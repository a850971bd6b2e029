"""
Django Palletman — estoque de acabados, paletização e expedição.

Uso:
    from palletman import Ledger, Palletizer, ProductionOrders, Deliveries

    Palletizer.save(bloco, date(2026, 3, 2), complete_pallets=7, loose_pieces_after=18)
    ProductionOrders.evaluate()
    Ledger.balance(bloco)  # 1008
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'Ledger':
        from palletman.services.ledger import Ledger
        return Ledger
    elif name == 'Palletizer':
        from palletman.services.palletization import Palletizer
        return Palletizer
    elif name == 'ProductionOrders':
        from palletman.services.production import ProductionOrders
        return ProductionOrders
    elif name == 'Deliveries':
        from palletman.services.deliveries import Deliveries
        return Deliveries
    elif name == 'Orders':
        from palletman.services.orders import Orders
        return Orders
    elif name == 'PalletmanError':
        from palletman.exceptions import PalletmanError
        return PalletmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'Ledger',
    'Palletizer',
    'ProductionOrders',
    'Deliveries',
    'Orders',
    'PalletmanError',
]

__version__ = '0.1.0'
