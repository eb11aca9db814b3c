"""
PATH: commissions/views.py

COMMISSIONS API

Admin (commissions.manage):
- distributors, distributor reps, sales rep assignments (CRUD)
- POST /commissions/<id>/approve/ | pay/ | cancel/

Sales reps / distributors (commissions.view):
- GET /commissions/            own rows
- GET /commissions/summary/    own totals (admins may pass ?sales_rep=<id>)
"""

from __future__ import annotations

from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from commissions.models import Commission, Distributor, DistributorSalesRep, OrganizationSalesRep
from commissions.serializers import (
    AssignSalesRepInputSerializer,
    CommissionActionInputSerializer,
    CommissionSerializer,
    DistributorSalesRepSerializer,
    DistributorSerializer,
    OrganizationSalesRepSerializer,
)
from commissions.services.assignments import assign_sales_rep, remove_sales_rep
from commissions.services.exceptions import CommissionStateError, NotASalesRepError
from commissions.services.payouts import (
    approve_commission,
    cancel_commission,
    commission_summary,
    mark_commission_paid,
)
from permissions.roles import (
    CAP_COMMISSIONS_MANAGE,
    CAP_COMMISSIONS_VIEW,
    HasCapability,
    user_has_capability,
)


class DistributorViewSet(viewsets.ModelViewSet):
    queryset = Distributor.objects.all()
    serializer_class = DistributorSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_COMMISSIONS_MANAGE
    filterset_fields = ["is_active"]

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save()


class DistributorSalesRepViewSet(viewsets.ModelViewSet):
    queryset = DistributorSalesRep.objects.select_related("distributor", "sales_rep")
    serializer_class = DistributorSalesRepSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_COMMISSIONS_MANAGE
    filterset_fields = ["distributor", "sales_rep", "is_active"]


class SalesRepAssignmentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET    /commissions/assignments/?organization=<id>
    POST   /commissions/assignments/            upsert
    DELETE /commissions/assignments/<id>/       deactivate
    """

    serializer_class = OrganizationSalesRepSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_COMMISSIONS_MANAGE
    filterset_fields = ["organization", "sales_rep", "distributor", "is_active"]

    def get_queryset(self):
        qs = OrganizationSalesRep.objects.select_related("organization", "sales_rep", "distributor")
        if self.request.query_params.get("include_inactive") != "true":
            qs = qs.filter(is_active=True)
        return qs

    @extend_schema(request=AssignSalesRepInputSerializer, responses={201: OrganizationSalesRepSerializer})
    def create(self, request):
        serializer = AssignSalesRepInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            link = assign_sales_rep(
                organization=data["organization"],
                sales_rep=data["sales_rep"],
                commission_rate=data.get("commission_rate"),
                distributor=data.get("distributor"),
                actor=request.user,
            )
        except NotASalesRepError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrganizationSalesRepSerializer(link).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        link = self.get_object()
        remove_sales_rep(organization=link.organization, sales_rep=link.sales_rep, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={200: OrganizationSalesRepSerializer(many=True)})
    @action(
        detail=False,
        methods=["get"],
        url_path="mine",
        required_capability=CAP_COMMISSIONS_VIEW,
    )
    def mine(self, request):
        qs = self.get_queryset().filter(sales_rep=request.user)
        return Response(OrganizationSalesRepSerializer(qs, many=True).data)


class CommissionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = CommissionSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_COMMISSIONS_VIEW
    filterset_fields = ["status", "organization", "sales_rep", "distributor"]

    def get_queryset(self):
        qs = Commission.objects.select_related("order", "sales_rep", "organization", "distributor")
        user = self.request.user
        if user_has_capability(user, CAP_COMMISSIONS_MANAGE):
            return qs
        return qs.filter(Q(sales_rep=user) | Q(distributor__user=user))

    def _transition(self, request, fn, build_kwargs):
        commission = self.get_object()
        serializer = CommissionActionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            commission = fn(commission, actor=request.user, **build_kwargs(serializer.validated_data))
        except CommissionStateError as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)
        return Response(CommissionSerializer(commission).data)

    @extend_schema(request=CommissionActionInputSerializer, responses={200: CommissionSerializer})
    @action(detail=True, methods=["post"], url_path="approve", required_capability=CAP_COMMISSIONS_MANAGE)
    def approve(self, request, pk=None):
        return self._transition(request, approve_commission, lambda d: {"notes": d["notes"]})

    @extend_schema(request=CommissionActionInputSerializer, responses={200: CommissionSerializer})
    @action(detail=True, methods=["post"], url_path="pay", required_capability=CAP_COMMISSIONS_MANAGE)
    def pay(self, request, pk=None):
        return self._transition(
            request, mark_commission_paid, lambda d: {"payment_reference": d["payment_reference"]}
        )

    @extend_schema(request=CommissionActionInputSerializer, responses={200: CommissionSerializer})
    @action(detail=True, methods=["post"], url_path="cancel", required_capability=CAP_COMMISSIONS_MANAGE)
    def cancel(self, request, pk=None):
        return self._transition(request, cancel_commission, lambda d: {"notes": d["notes"]})

    @extend_schema(
        parameters=[OpenApiParameter(name="sales_rep", required=False, type=str)],
        responses={200: dict},
    )
    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request):
        qs = Commission.objects.filter(sales_rep=request.user)
        rep_id = (request.query_params.get("sales_rep") or "").strip()
        if rep_id and user_has_capability(request.user, CAP_COMMISSIONS_MANAGE):
            qs = Commission.objects.filter(sales_rep_id=rep_id)
        return Response(commission_summary(qs))
