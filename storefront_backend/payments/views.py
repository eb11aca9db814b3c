# payments/views.py

"""
SAVED PAYMENT METHOD VIEWSET

Visibility: methods of organizations the caller belongs to (admins: all).
Writes: any member of the owning organization.
The processor token is accepted on create and never returned.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from organizations.models import Location, Organization
from payments.serializers import PaymentMethodSerializer
from payments.services.payment_methods import (
    PaymentMethodAccessError,
    check_scope,
    create_payment_method,
    default_payment_method,
    set_default,
    update_payment_method,
    visible_payment_methods,
)


class PaymentMethodViewSet(viewsets.ModelViewSet):
    serializer_class = PaymentMethodSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["organization", "location", "payment_type", "is_default"]

    def get_queryset(self):
        return visible_payment_methods(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            method = create_payment_method(request.user, **serializer.validated_data)
        except PaymentMethodAccessError as exc:
            raise PermissionDenied(str(exc))
        except DjangoValidationError as exc:
            return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(method).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        try:
            method = update_payment_method(instance, request.user, serializer.validated_data)
        except PaymentMethodAccessError as exc:
            raise PermissionDenied(str(exc))
        except DjangoValidationError as exc:
            return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(method).data)

    @extend_schema(request=None, responses={200: PaymentMethodSerializer})
    @action(detail=True, methods=["post"], url_path="set-default")
    def make_default(self, request, pk=None):
        method = set_default(self.get_object())
        return Response(self.get_serializer(method).data)

    @extend_schema(
        parameters=[
            OpenApiParameter("organization", str, required=True),
            OpenApiParameter("location", str, required=False),
        ],
        responses={200: PaymentMethodSerializer},
    )
    @action(detail=False, methods=["get"], url_path="default")
    def default(self, request):
        """Location default, falling back to the organization-wide default."""
        params = request.query_params
        try:
            organization = Organization.objects.filter(pk=params.get("organization") or None).first()
            location = None
            if organization is not None and params.get("location"):
                location = Location.objects.filter(pk=params["location"], organization=organization).first()
                if location is None:
                    return Response({"detail": "Location not found."}, status=status.HTTP_404_NOT_FOUND)
        except DjangoValidationError:
            return Response({"detail": "Invalid id."}, status=status.HTTP_400_BAD_REQUEST)
        if organization is None:
            return Response({"detail": "organization is required."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            check_scope(request.user, organization, location)
        except PaymentMethodAccessError as exc:
            raise PermissionDenied(str(exc))

        method = default_payment_method(organization, location)
        if method is None:
            return Response({"detail": "No default payment method."}, status=status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(method).data)
