"""
Initial migration for Palletman models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Palletman models: catalog, production entry, ledger, fulfillment."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Recipe',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pieces_per_cycle', models.PositiveIntegerField(verbose_name='Peças por ciclo')),
                ('pieces_per_pallet', models.PositiveIntegerField(blank=True, null=True, verbose_name='Peças por pallet')),
                ('pieces_per_m2', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True, verbose_name='Peças por m²')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='recipe', to='palletman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Receita',
                'verbose_name_plural': 'Receitas',
            },
        ),
        migrations.CreateModel(
            name='ProductionDay',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(unique=True, verbose_name='Data')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
            ],
            options={
                'verbose_name': 'Dia de Produção',
                'verbose_name_plural': 'Dias de Produção',
                'ordering': ['-date'],
            },
        ),
        migrations.CreateModel(
            name='ProductionItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cycles', models.PositiveIntegerField(default=0, verbose_name='Ciclos')),
                ('pieces', models.PositiveIntegerField(blank=True, null=True, verbose_name='Peças')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='production_items', to='palletman.product', verbose_name='Produto')),
                ('production_day', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='palletman.productionday', verbose_name='Dia de Produção')),
            ],
            options={
                'verbose_name': 'Item de Produção',
                'verbose_name_plural': 'Itens de Produção',
                'indexes': [models.Index(fields=['product', 'production_day'], name='pm_prod_item_product_day_idx')],
            },
        ),
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('address', models.CharField(blank=True, default='', max_length=500, verbose_name='Endereço')),
            ],
            options={
                'verbose_name': 'Cliente',
                'verbose_name_plural': 'Clientes',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Vehicle',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('plate', models.CharField(max_length=20, unique=True, verbose_name='Placa')),
                ('description', models.CharField(blank=True, default='', max_length=200, verbose_name='Descrição')),
            ],
            options={
                'verbose_name': 'Veículo',
                'verbose_name_plural': 'Veículos',
                'ordering': ['plate'],
            },
        ),
        migrations.CreateModel(
            name='Driver',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
            ],
            options={
                'verbose_name': 'Motorista',
                'verbose_name_plural': 'Motoristas',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Palletization',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('production_date', models.DateField(db_index=True, verbose_name='Data de Produção')),
                ('palletized_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data de Paletização')),
                ('theoretical_pieces', models.PositiveIntegerField(verbose_name='Peças teóricas')),
                ('complete_pallets', models.PositiveIntegerField(verbose_name='Pallets completos')),
                ('loose_pieces_after', models.PositiveIntegerField(verbose_name='Peças soltas restantes')),
                ('pieces_per_pallet', models.PositiveIntegerField(verbose_name='Peças por pallet')),
                ('real_pieces', models.PositiveIntegerField(verbose_name='Peças reais')),
                ('loss_pieces', models.PositiveIntegerField(verbose_name='Perda (peças)')),
                ('loose_pieces_before', models.PositiveIntegerField(verbose_name='Peças soltas anteriores')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='palletizations', to='palletman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Paletização',
                'verbose_name_plural': 'Paletizações',
                'ordering': ['-palletized_date', '-created_at'],
                'constraints': [models.UniqueConstraint(fields=('product', 'production_date'), name='unique_palletization_per_product_day')],
            },
        ),
        migrations.CreateModel(
            name='LoosePiecesBalance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pieces', models.PositiveIntegerField(default=0, verbose_name='Peças soltas')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='loose_balance', to='palletman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Saldo de Peças Soltas',
                'verbose_name_plural': 'Saldos de Peças Soltas',
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField(unique=True, verbose_name='Número')),
                ('status', models.CharField(choices=[('CONFIRMED', 'Confirmado'), ('IN_PRODUCTION', 'Em Produção'), ('READY', 'Pronto'), ('DELIVERED', 'Entregue'), ('CANCELLED', 'Cancelado')], db_index=True, default='CONFIRMED', max_length=20, verbose_name='Status')),
                ('delivery_address', models.CharField(blank=True, default='', max_length=500, verbose_name='Endereço de entrega')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='palletman.customer', verbose_name='Cliente')),
            ],
            options={
                'verbose_name': 'Pedido',
                'verbose_name_plural': 'Pedidos',
                'ordering': ['-number'],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantidade')),
                ('unit', models.CharField(choices=[('PIECES', 'Peças'), ('M2', 'm²')], default='PIECES', max_length=10, verbose_name='Unidade')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='palletman.order', verbose_name='Pedido')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='palletman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Item do Pedido',
                'verbose_name_plural': 'Itens do Pedido',
                'ordering': ['created_at', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='ProductionOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField(unique=True, verbose_name='Número')),
                ('quantity_pieces', models.PositiveIntegerField(verbose_name='Peças (meta)')),
                ('stock_at_creation', models.PositiveIntegerField(help_text='Snapshot para auditoria; não participa da avaliação', verbose_name='Estoque na criação')),
                ('to_produce_pieces', models.PositiveIntegerField(verbose_name='Peças a produzir')),
                ('status', models.CharField(choices=[('PENDING', 'Pendente'), ('IN_PROGRESS', 'Em Produção'), ('COMPLETED', 'Concluída'), ('CANCELLED', 'Cancelada')], db_index=True, default='PENDING', max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Concluída em')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='production_orders', to='palletman.order', verbose_name='Pedido')),
                ('order_item', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='production_order', to='palletman.orderitem', verbose_name='Item do Pedido')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='production_orders', to='palletman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Ordem de Produção',
                'verbose_name_plural': 'Ordens de Produção',
                'ordering': ['-number'],
                'indexes': [models.Index(fields=['status', 'product'], name='pm_prod_order_status_prod_idx')],
            },
        ),
        migrations.CreateModel(
            name='Delivery',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField(unique=True, verbose_name='Número')),
                ('loading_date', models.DateField(verbose_name='Data de carregamento')),
                ('delivery_date', models.DateTimeField(blank=True, null=True, verbose_name='Entregue em')),
                ('delivery_address', models.CharField(blank=True, default='', max_length=500, verbose_name='Endereço de entrega')),
                ('status', models.CharField(choices=[('LOADING', 'Carregando'), ('IN_TRANSIT', 'Em Trânsito'), ('DELIVERED', 'Entregue'), ('CANCELLED', 'Cancelada')], db_index=True, default='LOADING', max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deliveries', to='palletman.driver', verbose_name='Motorista')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='deliveries', to='palletman.order', verbose_name='Pedido')),
                ('vehicle', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deliveries', to='palletman.vehicle', verbose_name='Veículo')),
            ],
            options={
                'verbose_name': 'Entrega',
                'verbose_name_plural': 'Entregas',
                'ordering': ['-number'],
            },
        ),
        migrations.CreateModel(
            name='DeliveryItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity_pieces', models.PositiveIntegerField(verbose_name='Peças')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('delivery', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='palletman.delivery', verbose_name='Entrega')),
                ('order_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='delivery_items', to='palletman.orderitem', verbose_name='Item do Pedido')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='delivery_items', to='palletman.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Item da Entrega',
                'verbose_name_plural': 'Itens da Entrega',
            },
        ),
        migrations.CreateModel(
            name='InventoryMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True, default=django.utils.timezone.localdate, verbose_name='Data')),
                ('type', models.CharField(choices=[('IN', 'Entrada'), ('OUT', 'Saída')], max_length=3, verbose_name='Tipo')),
                ('quantity_pieces', models.PositiveIntegerField(verbose_name='Peças')),
                ('quantity_pallets', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True, verbose_name='Pallets')),
                ('area_m2', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True, verbose_name='Área (m²)')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Observações')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('delivery', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='movements', to='palletman.delivery', verbose_name='Entrega')),
                ('palletization', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='palletman.palletization', verbose_name='Paletização')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='palletman.product', verbose_name='Produto')),
                ('production_day', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='palletman.productionday', verbose_name='Dia de Produção (legado)')),
            ],
            options={
                'verbose_name': 'Movimentação',
                'verbose_name_plural': 'Movimentações',
                'ordering': ['date', 'created_at'],
                'indexes': [
                    models.Index(fields=['product', 'type'], name='pm_mov_product_type_idx'),
                    models.Index(fields=['product', 'date'], name='pm_mov_product_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True, verbose_name='Sequência')),
                ('current_value', models.PositiveBigIntegerField(default=0, verbose_name='Valor atual')),
            ],
            options={
                'verbose_name': 'Sequência',
                'verbose_name_plural': 'Sequências',
            },
        ),
    ]
