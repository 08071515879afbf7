"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Methods join
the transaction opened by the calling service; none of them commits on
its own.

Domain events collected on the aggregate are written to the transactional
outbox in ``save`` and relayed by ``publish_outbox_events`` once the
surrounding transaction commits.

Concurrency control on status updates uses ``select_for_update()``.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.core.tasks import publish_outbox_events
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the user FK (single JOIN) and
        ``prefetch_related`` for items and status history (separate
        batched queries).  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("user")
                .prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items so the caller can iterate over them while the
        row is locked.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_gateway_order_id_for_update(self, gateway_order_id: str) -> Optional[Order]:
        if not gateway_order_id:
            return None
        return (
            Order.objects.select_for_update()
            .filter(gateway_order_id=gateway_order_id)
            .first()
        )

    def list(self) -> QuerySet[Order]:
        return Order.objects.select_related("user").order_by("-created_at", "-id")

    def list_for_user(self, user_id: Any) -> QuerySet[Order]:
        return (
            Order.objects.filter(user_id=user_id)
            .prefetch_related("items")
            .order_by("-created_at", "-id")
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        """Persist an order and move its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()

        if events:
            # Rows stay PENDING for a later relay run if scheduling fails.
            transaction.on_commit(publish_outbox_events.delay, robust=True)

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    def add_items(self, order: Order, items: Iterable[OrderItem]) -> List[OrderItem]:
        saved = []
        for item in items:
            item.order = order
            item.save()
            saved.append(item)
        return saved

    def add_history(
        self,
        order: Order,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order=order,
            old_status=old_status,
            new_status=new_status,
            user_id=user_id,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )
        return history
