"""Django app configuration for Palletman."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PalletmanConfig(AppConfig):
    """Configuration for Palletman app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "palletman"
    verbose_name = _("Estoque, Paletização e Expedição")
