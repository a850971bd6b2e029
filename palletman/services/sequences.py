"""
Sequence allocation — monotonic numbers via locked counter rows.

Numbers come from SequenceCounter, never from max(number) + 1, so two
writers cannot read the same maximum. The increment commits with the
caller's transaction.
"""

import logging

from django.db import IntegrityError, transaction

from palletman.models.sequence import SequenceCounter

logger = logging.getLogger('palletman')

ORDER = 'order'
PRODUCTION_ORDER = 'production_order'
DELIVERY = 'delivery'


def next_value(name: str) -> int:
    """
    Allocate the next value of a named sequence.

    Must run inside the caller's transaction.atomic() so the counter row
    stays locked until the numbered row is written.
    """
    with transaction.atomic():
        try:
            with transaction.atomic():
                SequenceCounter.objects.get_or_create(name=name)
        except IntegrityError:
            # Created concurrently; the locked read below sees it
            pass

        counter = SequenceCounter.objects.select_for_update().get(name=name)
        counter.current_value += 1
        counter.save(update_fields=['current_value'])

    logger.debug(
        "sequence.allocated",
        extra={"sequence": name, "value": counter.current_value},
    )
    return counter.current_value


def current_value(name: str) -> int:
    """Last allocated value (0 if the sequence was never used)."""
    return (
        SequenceCounter.objects.filter(name=name)
        .values_list('current_value', flat=True)
        .first()
    ) or 0
