"""
Exceptions for Palletman.

Every failure is a PalletmanError subclass with a structured code,
a human-readable message and context data for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class PalletmanError(Exception):
    """
    Structured exception for ledger, palletization and fulfillment operations.

    Usage:
        try:
            deliveries.create(order, items, loading_date)
        except InsufficientStock as e:
            print(f"Só tem {e.available} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'ERROR'

    _default_messages = {
        'ERROR': 'Erro na operação de estoque',
        'VALIDATION_ERROR': 'Dados inválidos',
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser positiva)',
        'INVALID_STATE': 'Status inválido para esta operação',
        'INVALID_TRANSITION': 'Transição de status não permitida',
        'AUTOMATIC_MOVEMENT': (
            'Movimentações automáticas não podem ser excluídas. '
            'Use o módulo correspondente.'
        ),
        'MISSING_RECIPE': 'Produto não possui receita com peças por pallet definido',
        'NO_PRODUCTION': 'Nenhuma produção encontrada para este produto nesta data',
        'INSUFFICIENT_LOOSE_PIECES': 'Peças soltas insuficientes',
        'INSUFFICIENT_STOCK': 'Estoque insuficiente',
        'EXCEEDS_REMAINING': 'Quantidade excede o restante do pedido',
        'RECONCILIATION_OVERRUN': 'Conta não fecha: perda negativa',
        'NOT_FOUND': 'Registro não encontrado',
        'ALREADY_GENERATED': 'Este pedido já possui ordens de produção',
        'ALREADY_PALLETIZED': 'Produção já paletizada para esta data',
    }

    def __init__(self, message: str | None = None, code: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __getattr__(self, name):
        # Shortcut for data keys: e.available, e.requested, ...
        data = self.__dict__.get('data') or {}
        if name in data:
            return data[name]
        raise AttributeError(name)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(PalletmanError):
    """Input rejected before touching the database."""

    default_code = 'VALIDATION_ERROR'


class InvalidState(PalletmanError):
    """Entity is not in a status that allows the operation."""

    default_code = 'INVALID_STATE'


class MissingRecipe(PalletmanError):
    """Product has no recipe with pieces per pallet."""

    default_code = 'MISSING_RECIPE'


class NoProduction(PalletmanError):
    """No theoretical output recorded for the product/date pair."""

    default_code = 'NO_PRODUCTION'


class InsufficientLoosePieces(PalletmanError):
    default_code = 'INSUFFICIENT_LOOSE_PIECES'


class InsufficientStock(PalletmanError):
    default_code = 'INSUFFICIENT_STOCK'


class ExceedsRemaining(PalletmanError):
    default_code = 'EXCEEDS_REMAINING'


class ReconciliationOverrun(PalletmanError):
    """Pallets + loose pieces exceed what was available (negative loss)."""

    default_code = 'RECONCILIATION_OVERRUN'


class NotFound(PalletmanError):
    default_code = 'NOT_FOUND'


class AlreadyGenerated(PalletmanError):
    """The record this operation would create already exists."""

    default_code = 'ALREADY_GENERATED'
