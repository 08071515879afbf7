"""Async tasks of the core module."""

import structlog
from celery import shared_task
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100
OUTBOX_MAX_RETRIES = 5


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = OUTBOX_BATCH_SIZE) -> dict:
    """Relay committed outbox rows to the in-process event bus.

    Rows are locked with ``skip_locked`` so that concurrent workers never
    deliver the same event twice.  A handler failure marks only that row as
    failed; it is retried on a later run until ``OUTBOX_MAX_RETRIES``.
    """
    published = failed = 0
    with transaction.atomic():
        rows = list(
            OutboxEvent.objects.deliverable(OUTBOX_MAX_RETRIES)
            .select_for_update(skip_locked=True)[:batch_size]
        )
        for row in rows:
            event_class = event_bus.event_class_for(row.event_type)
            if event_class is None:
                row.mark_as_failed(f"No subscriber registered for {row.event_type}")
                failed += 1
                logger.warning("outbox.unknown_event", event_type=row.event_type)
                continue
            try:
                event_bus.publish(event_class.from_payload(row.payload))
            except Exception as exc:
                row.mark_as_failed(str(exc))
                failed += 1
                logger.exception("outbox.publish_failed", outbox_id=str(row.id))
                continue
            row.mark_as_published()
            published += 1

    logger.info("outbox.relayed", published=published, failed=failed)
    return {"published": published, "failed": failed}
