"""Store-backed monotonic counters for human-readable numbers."""

from django.db import transaction

from workshop.models import SequenceCounter


def get_next_sequence(name: str) -> int:
    """Atomically increment and return the counter called ``name``."""
    with transaction.atomic():
        counter, _ = SequenceCounter.objects.select_for_update().get_or_create(name=name)
        counter.value += 1
        counter.save(update_fields=['value'])
        return counter.value
