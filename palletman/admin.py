"""
Palletman Admin.

Stock never changes through admin forms:
- InventoryMovement: read-only ledger
- Palletization / LoosePiecesBalance: read-only
- ProductionOrder: read-only with "cancel" action
- Delivery: read-only with "cancel" action
- Product / Recipe: editable catalog fields
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from palletman.conf import format_number, palletman_settings
from palletman.exceptions import PalletmanError
from palletman.models import (
    Delivery,
    DeliveryItem,
    DeliveryStatus,
    InventoryMovement,
    LoosePiecesBalance,
    Palletization,
    Product,
    ProductionOrder,
    Recipe,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Changes go through the services, never through admin forms."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# CATALOG
# =========================================================================

class RecipeInline(admin.StackedInline):
    model = Recipe
    can_delete = False
    readonly_fields = ['updated_at']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'pieces_per_pallet_display']
    list_filter = ['is_active']
    search_fields = ['name']
    readonly_fields = ['created_at']
    inlines = [RecipeInline]

    @admin.display(description=_('Peças/pallet'))
    def pieces_per_pallet_display(self, obj):
        recipe = obj.recipe_or_none
        return recipe.pieces_per_pallet if recipe else None


# =========================================================================
# LEDGER (read-only)
# =========================================================================

@admin.register(InventoryMovement)
class InventoryMovementAdmin(ReadOnlyAdmin):
    """Immutable ledger rows."""

    list_display = ['date', 'product', 'type', 'quantity_pieces', 'quantity_pallets',
                    'area_m2', 'origin_display', 'notes']
    list_filter = ['type', 'date']
    search_fields = ['product__name', 'notes']
    date_hierarchy = 'date'
    list_select_related = ['product', 'palletization', 'delivery', 'production_day']

    @admin.display(description=_('Origem'))
    def origin_display(self, obj):
        if obj.delivery_id:
            return obj.delivery.code
        if obj.delivery_number is not None:
            return format_number(palletman_settings.DELIVERY_PREFIX, obj.delivery_number)
        if obj.palletization_id:
            return _('Paletização')
        if obj.production_day_id:
            return _('Produção (legado)')
        return _('Manual')


@admin.register(LoosePiecesBalance)
class LoosePiecesBalanceAdmin(ReadOnlyAdmin):
    list_display = ['product', 'pieces', 'updated_at']
    search_fields = ['product__name']


@admin.register(Palletization)
class PalletizationAdmin(ReadOnlyAdmin):
    list_display = ['production_date', 'product', 'theoretical_pieces', 'complete_pallets',
                    'real_pieces', 'loose_pieces_before', 'loose_pieces_after',
                    'loss_pieces', 'loss_display']
    list_filter = ['production_date']
    search_fields = ['product__name']
    date_hierarchy = 'production_date'

    @admin.display(description=_('Perda %'))
    def loss_display(self, obj):
        return obj.loss_percent


# =========================================================================
# PRODUCTION ORDERS (read-only with cancel action)
# =========================================================================

@admin.register(ProductionOrder)
class ProductionOrderAdmin(ReadOnlyAdmin):
    list_display = ['code', 'order', 'product', 'quantity_pieces', 'to_produce_pieces',
                    'stock_at_creation', 'status', 'completed_at']
    list_filter = ['status']
    search_fields = ['number', 'product__name', 'order__customer__name']
    list_select_related = ['order', 'order__customer', 'product']
    actions = ['cancel_production_orders']

    @admin.action(description=_('Cancelar ordens selecionadas'))
    def cancel_production_orders(self, request, queryset):
        from palletman.services.production import ProductionOrders

        count = 0
        for production_order in queryset.open():
            try:
                ProductionOrders.cancel(production_order)
                count += 1
            except PalletmanError as exc:
                logger.warning(
                    "cancel_production_orders: failed to cancel %s: %s",
                    production_order.code, exc,
                )

        self.message_user(request, _('{count} ordem(ns) cancelada(s).').format(count=count))


# =========================================================================
# DELIVERIES (read-only with cancel action)
# =========================================================================

class DeliveryItemInline(admin.TabularInline):
    model = DeliveryItem
    extra = 0
    can_delete = False
    readonly_fields = ['order_item', 'product', 'quantity_pieces', 'notes', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Delivery)
class DeliveryAdmin(ReadOnlyAdmin):
    list_display = ['code', 'order', 'loading_date', 'vehicle', 'driver', 'status',
                    'delivery_date']
    list_filter = ['status', 'loading_date']
    search_fields = ['number', 'order__customer__name']
    list_select_related = ['order', 'order__customer', 'vehicle', 'driver']
    date_hierarchy = 'loading_date'
    inlines = [DeliveryItemInline]
    actions = ['cancel_deliveries']

    @admin.action(description=_('Cancelar entregas selecionadas'))
    def cancel_deliveries(self, request, queryset):
        from palletman.services.deliveries import Deliveries

        count = 0
        for delivery in queryset.filter(status__in=[DeliveryStatus.LOADING, DeliveryStatus.IN_TRANSIT]):
            try:
                Deliveries.update_status(delivery, DeliveryStatus.CANCELLED)
                count += 1
            except PalletmanError as exc:
                logger.warning("cancel_deliveries: failed to cancel %s: %s", delivery.code, exc)

        self.message_user(request, _('{count} entrega(s) cancelada(s).').format(count=count))
