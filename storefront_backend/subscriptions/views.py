# subscriptions/views.py

"""
RECURRING ORDER VIEWSET

Visibility:
- own subscriptions
- subscriptions of organizations the caller belongs to or represents
- everything with recurring.manage

Writes:
- owner, organization managers, or recurring.manage
- discount_percentage is set by recurring.manage only
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from organizations.services.membership import can_access_location, is_member
from permissions.roles import CAP_RECURRING_MANAGE, user_has_capability
from subscriptions.serializers import RecurringOrderHistorySerializer, RecurringOrderSerializer
from subscriptions.services.recurring import (
    RecurringOrderStateError,
    can_modify,
    cancel_recurring_order,
    create_recurring_order,
    pause_recurring_order,
    resume_recurring_order,
    update_recurring_order,
    visible_recurring_orders,
)


def _conflict(exc):
    return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)


class RecurringOrderViewSet(viewsets.ModelViewSet):
    serializer_class = RecurringOrderSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = visible_recurring_orders(self.request.user)
        params = self.request.query_params

        for field in ("status", "organization", "frequency"):
            value = (params.get(field) or "").strip()
            if value:
                qs = qs.filter(**{field: value})

        if params.get("mine") == "true":
            qs = qs.filter(user=self.request.user)

        return qs.order_by("-created_at")

    # ----------------------------
    # guards
    # ----------------------------
    def _check_write_access(self, instance):
        if not can_modify(self.request.user, instance):
            raise PermissionDenied("You cannot modify this recurring order.")

    def _check_payload(self, data: dict, owner):
        user = self.request.user
        is_manager = user_has_capability(user, CAP_RECURRING_MANAGE)

        if "discount_percentage" in data and data["discount_percentage"] and not is_manager:
            raise PermissionDenied("Only staff can set a subscription discount.")

        organization = data.get("organization")
        if organization is not None and not is_manager and not is_member(owner, organization):
            raise PermissionDenied("You do not have access to this organization.")

        location = data.get("location")
        if location is not None and not is_manager and not can_access_location(owner, location):
            raise PermissionDenied("You do not have access to this location.")

        address = data.get("shipping_address")
        if address is not None and address.user_id != owner.pk:
            raise PermissionDenied("Address belongs to another account.")

    # ----------------------------
    # CRUD
    # ----------------------------
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self._check_payload(data, request.user)

        try:
            recurring = create_recurring_order(request.user, **data)
        except DjangoValidationError as exc:
            return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(recurring).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        self._check_write_access(instance)

        serializer = self.get_serializer(instance, data=request.data, partial=kwargs.pop("partial", False))
        serializer.is_valid(raise_exception=True)
        self._check_payload(serializer.validated_data, instance.user)

        try:
            recurring = update_recurring_order(instance, serializer.validated_data)
        except RecurringOrderStateError as exc:
            return _conflict(exc)
        except DjangoValidationError as exc:
            return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
        return Response(self.get_serializer(recurring).data, status=status.HTTP_200_OK)

    def perform_destroy(self, instance):
        self._check_write_access(instance)
        instance.delete()

    # ----------------------------
    # state actions
    # ----------------------------
    def _state_action(self, fn):
        instance = self.get_object()
        self._check_write_access(instance)
        try:
            recurring = fn(instance)
        except RecurringOrderStateError as exc:
            return _conflict(exc)
        return Response(self.get_serializer(recurring).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: RecurringOrderSerializer})
    @action(detail=True, methods=["post"])
    def pause(self, request, pk=None):
        return self._state_action(pause_recurring_order)

    @extend_schema(request=None, responses={200: RecurringOrderSerializer})
    @action(detail=True, methods=["post"])
    def resume(self, request, pk=None):
        return self._state_action(resume_recurring_order)

    @extend_schema(request=None, responses={200: RecurringOrderSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        return self._state_action(cancel_recurring_order)

    @extend_schema(responses={200: RecurringOrderHistorySerializer(many=True)})
    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        instance = self.get_object()
        rows = instance.history.select_related("order").order_by("-scheduled_date", "-created_at")
        return Response(RecurringOrderHistorySerializer(rows, many=True).data)
