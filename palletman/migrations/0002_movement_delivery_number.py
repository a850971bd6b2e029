# Generated manually: delivery rows keep their delivery number once the delivery is deleted.

from django.db import migrations, models


def backfill_delivery_number(apps, schema_editor):
    InventoryMovement = apps.get_model('palletman', 'InventoryMovement')
    for movement in InventoryMovement.objects.filter(delivery__isnull=False).select_related('delivery'):
        movement.delivery_number = movement.delivery.number
        movement.save(update_fields=['delivery_number'])


class Migration(migrations.Migration):

    dependencies = [
        ('palletman', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='inventorymovement',
            name='delivery_number',
            field=models.PositiveIntegerField(blank=True, editable=False, null=True, verbose_name='Nº da Entrega'),
        ),
        migrations.RunPython(backfill_delivery_number, migrations.RunPython.noop),
    ]
