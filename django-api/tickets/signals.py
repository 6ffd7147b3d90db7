"""Django signals for the snapshot cache.

Counter updates are conditional UPDATEs, which never fire post_save, so the
services send ``aggregate_changed`` once their unit of work has committed,
carrying the snapshot read after the commit.
"""

from urllib.parse import quote

from django.conf import settings
from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from tickets.models import EventAggregate

# Sent with ``event_id`` (str) and ``snapshot`` (EventSnapshot or None) after
# an event's counters changed.
aggregate_changed = Signal()


def snapshot_cache_key(event_id: str) -> str:
    return f"events:{quote(event_id, safe='')}:snapshot"


@receiver(aggregate_changed)
def refresh_snapshot_cache(sender, event_id: str, snapshot=None, **kwargs):
    """Replace the cached snapshot of an event whose counters changed."""
    key = snapshot_cache_key(event_id)
    if snapshot is None:
        cache.delete(key)
        return
    cache.set(key, snapshot, settings.TICKETGATE["SNAPSHOT_CACHE_SECONDS"])


@receiver([post_save, post_delete], sender=EventAggregate)
def invalidate_aggregate_cache(sender, instance, **kwargs):
    """Invalidate the snapshot when an aggregate row is saved or deleted (e.g. via admin)."""
    cache.delete(snapshot_cache_key(instance.event_id))
