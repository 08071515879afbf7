import pytest

from modules.cart.models import Cart

pytestmark = pytest.mark.integration

CART_URL = "/api/v1/cart/"
ITEMS_URL = "/api/v1/cart/items/"


class TestCartApi:
    def test_get_without_cart(self, auth_client, user):
        response = auth_client.get(CART_URL)

        assert response.status_code == 200
        assert response.json() == {
            "id": None,
            "user_id": user.id,
            "items": [],
            "total_price": "0.00",
        }

    def test_add_then_read(self, auth_client, product):
        response = auth_client.post(
            ITEMS_URL, {"product_id": str(product.id), "quantity": 2}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_price"] == "20.00"
        assert body["items"][0]["product_name"] == "Brass Diya"
        assert auth_client.get(CART_URL).json() == body

    def test_quantity_defaults_to_one(self, auth_client, product):
        response = auth_client.post(ITEMS_URL, {"product_id": str(product.id)}, format="json")
        assert response.json()["items"][0]["quantity"] == 1

    def test_add_beyond_stock(self, auth_client, product):
        response = auth_client.post(
            ITEMS_URL, {"product_id": str(product.id), "quantity": 6}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "insufficient_stock"

    def test_add_unknown_product(self, auth_client):
        response = auth_client.post(
            ITEMS_URL,
            {"product_id": "00000000-0000-0000-0000-000000000000"},
            format="json",
        )
        assert response.status_code == 404

    def test_zero_quantity_rejected(self, auth_client, product):
        response = auth_client.post(
            ITEMS_URL, {"product_id": str(product.id), "quantity": 0}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "quantity"

    def test_update_and_remove_item(self, auth_client, user, product, fill_cart):
        item = fill_cart(user, (product, 1)).items.get()
        item_url = f"{ITEMS_URL}{item.id}/"

        updated = auth_client.patch(item_url, {"quantity": 3}, format="json")
        assert updated.status_code == 200
        assert updated.json()["items"][0]["quantity"] == 3

        removed = auth_client.delete(item_url)
        assert removed.status_code == 200
        assert removed.json()["items"] == []

    def test_update_unknown_item(self, auth_client, user, product, fill_cart):
        fill_cart(user, (product, 1))

        response = auth_client.patch(
            f"{ITEMS_URL}00000000-0000-0000-0000-000000000000/",
            {"quantity": 2},
            format="json",
        )
        assert response.status_code == 404

    def test_clear_cart(self, auth_client, user, product, fill_cart):
        fill_cart(user, (product, 2))

        response = auth_client.delete(CART_URL)

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert Cart.objects.filter(user=user).exists()

    def test_requires_authentication(self, api_client):
        assert api_client.get(CART_URL).status_code == 401
