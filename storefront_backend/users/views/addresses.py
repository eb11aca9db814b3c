from __future__ import annotations

from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from users.models import CustomerAddress
from users.serializers import CustomerAddressSerializer


class CustomerAddressViewSet(viewsets.ModelViewSet):
    """
    Owner-scoped address book.
    Deleting an address soft-deactivates it (orders keep their JSON snapshot anyway).
    """

    serializer_class = CustomerAddressSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["address_type", "organization", "location", "is_default"]

    def get_queryset(self):
        return CustomerAddress.objects.filter(
            user=self.request.user, is_active=True
        ).select_related("organization", "location")

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.is_default = False
        instance.save()
