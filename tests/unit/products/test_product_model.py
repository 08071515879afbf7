from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from modules.products.models import Product

pytestmark = pytest.mark.unit


class TestProduct:
    def test_primary_image_is_first_image(self, make_product):
        product = make_product(images=["a.jpg", "b.jpg"])
        assert product.primary_image == "a.jpg"

    def test_primary_image_none_without_images(self, make_product):
        assert make_product(images=[]).primary_image is None

    def test_negative_price_rejected_by_database(self, make_product):
        with transaction.atomic(), pytest.raises(IntegrityError):
            make_product(price=Decimal("-1.00"))

    def test_soft_delete_hides_from_alive(self, product):
        product.delete()

        assert product.is_deleted
        assert not Product.objects.alive().filter(pk=product.pk).exists()
        assert Product.objects.filter(pk=product.pk).exists()
