from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from favorites.models import Favorite
from products.models import Product

User = get_user_model()


class FavoritesAPITests(TestCase):
    """
    GUARANTEES:
    - Adding twice keeps a single row
    - Toggle flips membership
    - Favorites are private to their owner
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.client.force_authenticate(self.user)
        self.product = Product.objects.create(
            external_id=1201, name="Zinc", sku="ZN", retail_price=Decimal("9.00")
        )

    def test_add_is_idempotent(self):
        first = self.client.post("/api/favorites/", {"product_id": str(self.product.pk)}, format="json")
        second = self.client.post("/api/favorites/", {"product_id": str(self.product.pk)}, format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(Favorite.objects.count(), 1)

    def test_toggle(self):
        url = "/api/favorites/toggle/"
        payload = {"product_id": str(self.product.pk)}

        self.assertTrue(self.client.post(url, payload, format="json").data["is_favorite"])
        self.assertFalse(self.client.post(url, payload, format="json").data["is_favorite"])
        self.assertFalse(Favorite.objects.exists())

    def test_list_ids_and_remove(self):
        Favorite.objects.create(user=self.user, product=self.product)
        other = User.objects.create_user(email="other@example.com", password="pass12345")
        Favorite.objects.create(user=other, product=self.product)

        res = self.client.get("/api/favorites/", {"ids": "true"})
        self.assertEqual(res.data["product_ids"], [str(self.product.pk)])

        res = self.client.delete(f"/api/favorites/{self.product.pk}/")
        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Favorite.objects.filter(user=self.user).count(), 0)
        self.assertEqual(Favorite.objects.count(), 1)

    def test_unknown_product_is_404(self):
        res = self.client.post(
            "/api/favorites/", {"product_id": "00000000-0000-0000-0000-000000000000"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
