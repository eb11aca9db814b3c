# orders/views.py

"""
ORDER VIEWSET

Purpose:
- Order history scoped to the caller
- Status transitions and shipment tracking (orders.manage)
- "Viewed" marker for new-order notifications

Visibility:
- own orders
- orders of organizations the caller belongs to or represents as sales rep
- everything with orders.view_all
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.models import Order
from orders.serializers import (
    OrderCostSerializer,
    OrderSerializer,
    OrderStatusInputSerializer,
    ShipmentInputSerializer,
)
from orders.services.lifecycle import InvalidOrderTransitionError
from orders.services.orders import mark_order_viewed, record_shipment, transition_order, visible_orders
from orders.services.reports import profit_report
from permissions.roles import CAP_COSTS_VIEW, CAP_ORDERS_MANAGE, HasCapability, user_has_capability

logger = logging.getLogger(__name__)


def _parse_date(s: str):
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    required_capability = CAP_ORDERS_MANAGE

    def get_serializer_class(self):
        if user_has_capability(self.request.user, CAP_COSTS_VIEW):
            return OrderCostSerializer
        return OrderSerializer

    def get_queryset(self):
        qs = visible_orders(self.request.user).prefetch_related("items")
        params = self.request.query_params

        for field in ("status", "organization", "location"):
            value = (params.get(field) or "").strip()
            if value:
                qs = qs.filter(**{field: value})

        if params.get("unviewed") == "true":
            qs = qs.filter(viewed_at__isnull=True)

        date_from = _parse_date((params.get("date_from") or "").strip())
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)
        date_to = _parse_date((params.get("date_to") or "").strip())
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)

        return qs.order_by("-created_at")

    # ======================================================
    # POST /api/orders/:id/status/
    # ======================================================

    @extend_schema(request=OrderStatusInputSerializer, responses={200: OrderSerializer})
    @action(
        detail=True,
        methods=["post"],
        url_path="status",
        permission_classes=[IsAuthenticated, HasCapability],
    )
    def set_status(self, request, pk=None):
        order = self.get_object()
        serializer = OrderStatusInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = transition_order(order, serializer.validated_data["status"], actor=request.user)
        except InvalidOrderTransitionError as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(self.get_serializer(order).data)

    # ======================================================
    # POST /api/orders/:id/shipment/
    # ======================================================

    @extend_schema(request=ShipmentInputSerializer, responses={200: OrderSerializer})
    @action(
        detail=True,
        methods=["post"],
        url_path="shipment",
        permission_classes=[IsAuthenticated, HasCapability],
    )
    def shipment(self, request, pk=None):
        order = self.get_object()
        serializer = ShipmentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = record_shipment(
                order,
                tracking_number=serializer.validated_data["tracking_number"],
                carrier=serializer.validated_data["carrier"],
                actor=request.user,
            )
        except InvalidOrderTransitionError as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(self.get_serializer(order).data)

    # ======================================================
    # POST /api/orders/:id/mark-viewed/
    # ======================================================

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["post"], url_path="mark-viewed")
    def mark_viewed(self, request, pk=None):
        order = mark_order_viewed(self.get_object())
        return Response(self.get_serializer(order).data)


class ProfitReportView(APIView):
    """
    GET /api/orders/profit-report/?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD&status=&organization=

    Revenue, snapshot cost and margin per order. Cost data: costs.view only.
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_COSTS_VIEW

    @extend_schema(
        parameters=[
            OpenApiParameter(name="date_from", type=OpenApiTypes.DATE, required=False),
            OpenApiParameter(name="date_to", type=OpenApiTypes.DATE, required=False),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, required=False),
            OpenApiParameter(name="organization", type=OpenApiTypes.UUID, required=False),
        ],
        description="Profit and margin per order with a weighted summary.",
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        params = request.query_params

        dates = {}
        for name in ("date_from", "date_to"):
            raw = (params.get(name) or "").strip()
            if raw:
                dates[name] = _parse_date(raw)
                if dates[name] is None:
                    return Response(
                        {"detail": f"Invalid {name}. Use YYYY-MM-DD."},
                        status=status.HTTP_400_BAD_REQUEST,
                    )

        order_status = (params.get("status") or "").strip()
        if order_status and order_status not in dict(Order.STATUS_CHOICES):
            return Response({"detail": "Invalid status."}, status=status.HTTP_400_BAD_REQUEST)

        organization = (params.get("organization") or "").strip() or None
        try:
            report = profit_report(status=order_status or None, organization=organization, **dates)
        except DjangoValidationError:
            return Response({"detail": "Invalid organization."}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(
            "Profit report viewed",
            extra={
                "actor_id": str(request.user.pk),
                "date_from": str(dates.get("date_from") or ""),
                "date_to": str(dates.get("date_to") or ""),
                "order_count": report["summary"]["order_count"],
            },
        )
        return Response(report)
