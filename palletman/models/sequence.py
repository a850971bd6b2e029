"""
SequenceCounter model — one locked row per numbered entity.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class SequenceCounter(models.Model):
    """
    Current value of a named sequence (order, production_order, delivery).

    Incremented under select_for_update() inside the caller's transaction,
    so numbers are monotonic and never reused.
    """

    name = models.CharField(max_length=50, unique=True, verbose_name=_('Sequência'))
    current_value = models.PositiveBigIntegerField(default=0, verbose_name=_('Valor atual'))

    class Meta:
        verbose_name = _('Sequência')
        verbose_name_plural = _('Sequências')

    def __str__(self) -> str:
        return f"{self.name}={self.current_value}"
