"""
Customer, Vehicle and Driver — master data referenced by orders and deliveries.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    address = models.CharField(max_length=500, blank=True, default='', verbose_name=_('Endereço'))

    class Meta:
        verbose_name = _('Cliente')
        verbose_name_plural = _('Clientes')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Vehicle(models.Model):
    plate = models.CharField(max_length=20, unique=True, verbose_name=_('Placa'))
    description = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Descrição'))

    class Meta:
        verbose_name = _('Veículo')
        verbose_name_plural = _('Veículos')
        ordering = ['plate']

    def __str__(self) -> str:
        return self.plate


class Driver(models.Model):
    name = models.CharField(max_length=200, verbose_name=_('Nome'))

    class Meta:
        verbose_name = _('Motorista')
        verbose_name_plural = _('Motoristas')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name
