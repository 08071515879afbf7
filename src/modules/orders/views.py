"""Order API views.

Exposes ``OrderService`` via HTTP using a DRF ViewSet.  Domain exceptions
propagate to ``standard_exception_handler``; the view never swallows
generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.core.permissions import IsStaffRole
from modules.orders.dtos import (
    CreateOrderDTO,
    PaymentResultPatchDTO,
    ShippingAddressDTO,
    TransitionOrderDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    TransitionOrderSerializer,
)
from modules.orders.services import OrderService
from modules.payments.gateway import get_payment_gateway
from modules.products.inventory import InventoryLedger


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        inventory=InventoryLedger(),
        payment_gateway=get_payment_gateway(),
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_price", "order_status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self) -> list[BasePermission]:
        if self.action in {"list", "update_status"}:
            return [IsAuthenticated(), IsStaffRole()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "mine", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Converts the caller's cart into an order.  Returns
        ``{"order": ..., "payment": ...}``; ``payment`` carries the gateway
        checkout parameters for online payments and is ``null`` otherwise.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        dto = CreateOrderDTO(
            user_id=request.user.id,
            shipping_address=ShippingAddressDTO(**data["shipping_address"]),
            payment_method=data["payment_method"],
            tax_price=data["tax_price"],
            shipping_price=data["shipping_price"],
        )

        created = self._service.create_order(dto)
        return Response(
            {
                "order": OrderSerializer(created.order).data,
                "payment": (
                    created.payment.model_dump(mode="json") if created.payment else None
                ),
            },
            status=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/ (staff)

        Filtering (status, user, paid flag, date range, total range) is
        handled by ``OrderFilter``; ordering by ``OrderingFilter``.
        Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=["get"])
    def mine(self, request: Request) -> Response:
        """GET /api/v1/orders/mine/"""
        queryset = self._service.list_orders_for_user(request.user.id)

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/ (owner or staff)"""
        order = self._service.get_order_for_user(str(pk), request.user)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status transition (staff)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put", "patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/orders/{pk}/status/

        Accepts ``order_status``, ``is_paid``, ``payment_result`` and
        ``notes``.  Cancelling restores stock when the order still holds it.
        """
        serializer = TransitionOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        payment_result = data.get("payment_result")
        dto = TransitionOrderDTO(
            order_status=data.get("order_status"),
            is_paid=data.get("is_paid"),
            payment_result=(
                PaymentResultPatchDTO(
                    **{k: v or None for k, v in payment_result.items()}
                )
                if payment_result is not None
                else None
            ),
            notes=data.get("notes", ""),
        )

        order = self._service.transition_order(str(pk), dto, actor_id=request.user.id)
        return Response(OrderSerializer(order).data)
