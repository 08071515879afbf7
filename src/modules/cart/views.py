"""Cart API views.

Every endpoint acts on the authenticated user's own cart.  Domain
exceptions propagate to ``standard_exception_handler``.
"""

from __future__ import annotations

from uuid import UUID

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.cart.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.cart.serializers import AddCartItemSerializer, UpdateCartItemSerializer
from modules.cart.services import CartService
from modules.products.repositories.django_repository import ProductDjangoRepository


def build_cart_service() -> CartService:
    return CartService(
        cart_repository=CartDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


class CartView(APIView):
    """GET / DELETE /api/v1/cart/"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        cart = build_cart_service().get_cart(request.user.id)
        return Response(cart.model_dump(mode="json"))

    def delete(self, request: Request) -> Response:
        cart = build_cart_service().clear_cart(request.user.id)
        return Response(cart.model_dump(mode="json"))


class CartItemListView(APIView):
    """POST /api/v1/cart/items/"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = AddCartItemDTO(**serializer.validated_data)
        cart = build_cart_service().add_item(request.user.id, dto)
        return Response(cart.model_dump(mode="json"), status=status.HTTP_200_OK)


class CartItemDetailView(APIView):
    """PATCH / DELETE /api/v1/cart/items/{item_id}/"""

    permission_classes = [IsAuthenticated]

    def patch(self, request: Request, item_id: UUID) -> Response:
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = UpdateCartItemDTO(**serializer.validated_data)
        cart = build_cart_service().update_item_quantity(
            request.user.id, str(item_id), dto
        )
        return Response(cart.model_dump(mode="json"))

    def delete(self, request: Request, item_id: UUID) -> Response:
        cart = build_cart_service().remove_item(request.user.id, str(item_id))
        return Response(cart.model_dump(mode="json"))
