"""Order service layer (Use Cases).

Orchestrates checkout (cart → order), admin status transitions and the
order queries.  All write operations are atomic: the service method
defines the unit-of-work boundary and repositories join it.

Business rules enforced:
- Orders are built from the caller's cart with fresh catalog prices.
- Product rows are locked in ascending id order before stock is touched.
- Gateway-routed orders need a positive total and a gateway order; a
  gateway failure rolls back everything.
- Status transitions are validated against the state machine.
- Cancelling from a stock-holding state restores stock exactly once.
- History is recorded on creation and on every actual status change.
"""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from modules.core.exceptions import ValidationError
from modules.orders.constants import (
    GATEWAY_PAYMENT_METHODS,
    SUCCESSFUL_PAYMENT_STATUSES,
    OrderStatus,
)
from modules.orders.dtos import CreatedOrder, GatewayPaymentParams
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaid,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    EmptyCart,
    InvalidAmount,
    InvalidOrderStatus,
    OrderAccessDenied,
    OrderNotFound,
)
from modules.orders.models import Order, OrderItem

if TYPE_CHECKING:
    from modules.cart.repositories.interfaces import ICartRepository
    from modules.orders.dtos import (
        CreateOrderDTO,
        PaymentResultPatchDTO,
        TransitionOrderDTO,
    )
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.gateway import GatewayOrder, PaymentGateway
    from modules.products.inventory import InventoryLedger

logger = structlog.get_logger(__name__)

TWO_PLACES = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """``Decimal("499.50")`` → ``49950``."""
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    ``payment_gateway`` is only needed for gateway-routed payment methods.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        inventory: InventoryLedger,
        payment_gateway: Optional[PaymentGateway] = None,
    ) -> None:
        self._order_repo = order_repository
        self._cart_repo = cart_repository
        self._inventory = inventory
        self._gateway = payment_gateway

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> CreatedOrder:
        """Convert the user's cart into an order.

        Steps:
        1. Lock the cart; it must have at least one line.
        2. For each line (sorted by product PK to avoid deadlocks):
           lock the product, validate availability and stock, snapshot
           fresh price, name and image.
        3. Compute totals.
        4. Gateway-routed: create the gateway order (status
           ``PENDING_PAYMENT``).  Offline: status ``PROCESSING``.
        5. Persist order, items and initial history; record ``OrderCreated``.
        6. Reserve stock for every line.
        7. Delete the cart.

        Raises:
            EmptyCart: no cart or no lines.
            ProductNotFound: a product does not exist.
            ProductUnavailable: a product is inactive.
            InsufficientStock: not enough stock for a line.
            InvalidAmount: gateway-routed order with a non-positive total.
            PaymentGatewayError: the gateway failed; nothing is saved.
        """
        log = logger.bind(user_id=dto.user_id, payment_method=str(dto.payment_method))
        log.info("order.creation_started")

        # 1. Cart
        cart = self._cart_repo.get_for_update(dto.user_id)
        lines = list(cart.items.all()) if cart is not None else []
        if not lines:
            raise EmptyCart()

        # 2. Lock products, build items from fresh catalog data
        lines.sort(key=lambda line: line.product_id)
        items: List[OrderItem] = []
        items_price = Decimal("0.00")
        for line in lines:
            product = self._inventory.lock_available(line.product_id, line.quantity)
            item = OrderItem(
                product=product,
                product_name=product.name,
                product_image=product.primary_image,
                quantity=line.quantity,
                unit_price=product.price,
            )
            items.append(item)
            items_price += product.price * line.quantity

        # 3. Totals
        items_price = items_price.quantize(TWO_PLACES)
        total_price = (items_price + dto.tax_price + dto.shipping_price).quantize(
            TWO_PLACES
        )
        order_number = Order.next_order_number()

        # 4. Payment routing
        gateway_order: Optional[GatewayOrder] = None
        if dto.payment_method in GATEWAY_PAYMENT_METHODS:
            if total_price <= 0:
                raise InvalidAmount()
            gateway = self._require_gateway()
            gateway_order = gateway.create_order(
                amount=to_minor_units(total_price),
                currency=gateway.currency,
                receipt=order_number,
            )
            initial_status = OrderStatus.PENDING_PAYMENT
        else:
            initial_status = OrderStatus.PROCESSING

        # 5. Persist
        address = dto.shipping_address
        order = Order(
            order_number=order_number,
            user_id=dto.user_id,
            shipping_full_name=address.full_name,
            shipping_address_line1=address.address_line1,
            shipping_address_line2=address.address_line2,
            shipping_city=address.city,
            shipping_state=address.state,
            shipping_postal_code=address.postal_code,
            shipping_country=address.country,
            shipping_phone_number=address.phone_number,
            payment_method=dto.payment_method,
            items_price=items_price,
            tax_price=dto.tax_price,
            shipping_price=dto.shipping_price,
            total_price=total_price,
            order_status=initial_status,
            is_paid=False,
            gateway_order_id=gateway_order.id if gateway_order else None,
        )
        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._order_repo.save(order)
        self._order_repo.add_items(order, items)
        self._order_repo.add_history(
            order,
            new_status=initial_status,
            user_id=dto.user_id,
            notes="Order created",
        )

        # 6. Reserve stock (same ascending order as the locks above)
        for item in items:
            self._inventory.reserve(item.product_id, item.quantity)

        # 7. Checkout consumes the cart
        self._cart_repo.delete(cart)

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_price=str(total_price),
            status=initial_status,
        )

        payment = None
        if gateway_order is not None:
            payment = GatewayPaymentParams(
                gateway_order_id=gateway_order.id,
                amount=gateway_order.amount,
                currency=gateway_order.currency,
                key_id=self._require_gateway().key_id,
            )
        return CreatedOrder(
            order=self._order_repo.get_by_id(str(order.id)) or order,
            payment=payment,
        )

    @transaction.atomic
    def transition_order(
        self,
        order_id: UUID | str,
        dto: TransitionOrderDTO,
        actor_id: Any = None,
    ) -> Order:
        """Apply an admin update to an order's lifecycle.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating anything, so that concurrent transitions and
        webhook reconciliations serialize.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
            ValidationError: ``payment_result.update_time`` is not ISO-8601.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        old_status = order.order_status
        was_paid = order.is_paid
        log = logger.bind(
            order_id=str(order.id),
            current_status=old_status,
            requested_status=dto.order_status,
        )

        target = dto.order_status
        if target is not None and target != old_status:
            if not order.can_transition_to(target):
                log.warning("order.invalid_transition")
                raise InvalidOrderStatus(
                    f"Cannot transition from {old_status} to {target}."
                )
            if target == OrderStatus.CANCELLED and order.holds_stock:
                self._restore_stock(order)
            order.order_status = target
            if target == OrderStatus.DELIVERED and order.delivered_at is None:
                order.delivered_at = timezone.now()

        if dto.is_paid is not None:
            if dto.is_paid:
                if order.paid_at is None:
                    order.mark_paid()
                order.is_paid = True
            else:
                order.is_paid = False
                order.paid_at = None

        if dto.payment_result is not None:
            self._merge_payment_result(order, dto.payment_result)

        order.enforce_payment_invariants()

        new_status = order.order_status
        if new_status != old_status:
            self._order_repo.add_history(
                order,
                new_status=new_status,
                old_status=old_status,
                user_id=actor_id,
                notes=dto.notes,
            )
            if new_status == OrderStatus.CANCELLED:
                order.add_domain_event(OrderCancelled(aggregate_id=order.id))
            else:
                order.add_domain_event(OrderStatusChanged(aggregate_id=order.id))
        if order.is_paid and not was_paid:
            order.add_domain_event(OrderPaid(aggregate_id=order.id))

        self._order_repo.save(order)
        log.info(
            "order.transitioned",
            new_status=new_status,
            is_paid=order.is_paid,
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order_for_user(self, order_id: str, user: Any) -> Order:
        """Retrieve an order visible to ``user`` (owner or staff).

        Raises:
            OrderNotFound: the order does not exist or the id is malformed.
            OrderAccessDenied: the caller neither owns the order nor is staff.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.user_id != user.id and not user.is_staff:
            logger.warning(
                "order.access_denied",
                order_id=str(order.id),
                user_id=user.id,
            )
            raise OrderAccessDenied()
        return order

    def list_orders_for_user(self, user_id: Any) -> QuerySet[Order]:
        """The caller's orders, newest first."""
        return self._order_repo.list_for_user(user_id)

    def list_orders(self) -> QuerySet[Order]:
        """All orders, newest first (filtered and paginated by the view)."""
        return self._order_repo.list()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_gateway(self) -> PaymentGateway:
        if self._gateway is None:
            raise RuntimeError("OrderService was built without a payment gateway.")
        return self._gateway

    def _restore_stock(self, order: Order) -> None:
        for item in sorted(order.items.all(), key=lambda i: i.product_id):
            self._inventory.restore(item.product_id, item.quantity)
        logger.info(
            "order.stock_restored",
            order_id=str(order.id),
            line_count=len(order.items.all()),
        )

    def _merge_payment_result(self, order: Order, patch: PaymentResultPatchDTO) -> None:
        order.payment_result_id = patch.id or order.payment_result_id
        order.payment_result_status = patch.status or order.payment_result_status
        order.payment_result_update_time = (
            patch.update_time or order.payment_result_update_time
        )
        order.payment_result_email = patch.email_address or order.payment_result_email

        if patch.status in SUCCESSFUL_PAYMENT_STATUSES:
            order.mark_paid(_parse_update_time(patch.update_time))


def _parse_update_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(
            "update_time must be an ISO-8601 timestamp.",
            attr="payment_result.update_time",
        )
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed
