"""
Management command to run the production-order FIFO sweep.

Usage:
    python manage.py evaluate_production_orders
    python manage.py evaluate_production_orders --dry-run
"""

from django.core.management.base import BaseCommand

from palletman.services.production import ProductionOrders


class Command(BaseCommand):
    """Evaluate open production orders against current stock."""

    help = 'Avalia ordens de produção abertas contra o estoque (FIFO)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra as transições sem gravar'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            transitions = ProductionOrders.plan()
            for t in transitions:
                self.stdout.write(
                    f'{t.production_order.code}: {t.from_status} -> {t.to_status}'
                )
            self.stdout.write(f'{len(transitions)} ordem(ns) seria(m) atualizada(s)')
        else:
            transitions = ProductionOrders.evaluate()
            self.stdout.write(
                self.style.SUCCESS(f'{len(transitions)} ordem(ns) atualizada(s)')
            )
