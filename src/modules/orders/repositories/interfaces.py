"""Order repository interface.

Extends ``IRepository[Order]`` with the look-ups and writes required by
the Order aggregate: row-locked access for transitions and webhook
reconciliation, item persistence and status history tracking.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Iterable, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_by_gateway_order_id_for_update(self, gateway_order_id: str) -> Optional[Order]:
        """Retrieve the order created for a gateway order, row-locked."""

    @abstractmethod
    def list(self) -> QuerySet[Order]:
        """All orders, newest first, as a filterable queryset."""

    @abstractmethod
    def list_for_user(self, user_id: Any) -> QuerySet[Order]:
        """Orders placed by ``user_id``, newest first."""

    @abstractmethod
    def add_items(self, order: Order, items: Iterable[OrderItem]) -> list[OrderItem]:
        """Persist the order's line items."""

    @abstractmethod
    def add_history(
        self,
        order: Order,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
