"""
PATH: organizations/views.py

ORGANIZATION / LOCATION / MEMBERSHIP API

Access:
- account admins (orgs.manage) manage everything
- org admins/managers may create and edit locations of their own organization
- everyone else reads the organizations/locations they belong to
- destroy is a soft deactivate
"""

from __future__ import annotations

import logging

from django.db.models import Count, Q
from drf_spectacular.utils import extend_schema
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from organizations.models import Location, Organization, OrganizationMembership
from organizations.serializers import (
    LocationSerializer,
    MembershipSerializer,
    OrganizationSerializer,
)
from organizations.services.membership import (
    accessible_locations,
    can_manage_organization,
    memberships_for,
    organization_ids_for,
)
from permissions.roles import CAP_ORGS_MANAGE, HasCapability, ReadOnlyOrCapability, user_has_capability

logger = logging.getLogger(__name__)


class OrganizationViewSet(viewsets.ModelViewSet):
    serializer_class = OrganizationSerializer
    permission_classes = [IsAuthenticated, ReadOnlyOrCapability]
    required_capability = CAP_ORGS_MANAGE
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["name", "code"]
    ordering_fields = ["name", "created_at"]

    def get_queryset(self):
        qs = Organization.objects.annotate(
            location_count=Count("locations", filter=Q(locations__is_active=True))
        )
        user = self.request.user
        if user_has_capability(user, CAP_ORGS_MANAGE):
            include_inactive = self.request.query_params.get("include_inactive") == "true"
            return qs if include_inactive else qs.filter(is_active=True)
        return qs.filter(is_active=True, pk__in=organization_ids_for(user))

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save()
        logger.info("Organization deactivated", extra={"organization_id": str(instance.pk)})


class IsOrgManagerForWrites(permissions.BasePermission):
    """
    Location writes: account admins, or managers of the target organization.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return can_manage_organization(request.user, obj.organization)


class LocationViewSet(viewsets.ModelViewSet):
    serializer_class = LocationSerializer
    permission_classes = [IsAuthenticated, IsOrgManagerForWrites]
    filterset_fields = ["organization"]
    filter_backends = [filters.SearchFilter]
    search_fields = ["name", "code"]

    def get_queryset(self):
        return accessible_locations(self.request.user).select_related("organization")

    def perform_create(self, serializer):
        organization = serializer.validated_data["organization"]
        if not can_manage_organization(self.request.user, organization):
            raise PermissionDenied("You cannot add locations to this organization.")
        serializer.save()

    def perform_update(self, serializer):
        organization = serializer.validated_data.get("organization")
        if organization is not None and not can_manage_organization(self.request.user, organization):
            raise PermissionDenied("You cannot move locations into this organization.")
        serializer.save()

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save()


class MembershipViewSet(viewsets.ModelViewSet):
    queryset = OrganizationMembership.objects.select_related("user", "organization", "location")
    serializer_class = MembershipSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ORGS_MANAGE
    filterset_fields = ["user", "organization", "location", "role"]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        exists = OrganizationMembership.objects.filter(
            user=data["user"],
            organization=data["organization"],
            location=data.get("location"),
        ).exists()
        if exists:
            return Response(
                {"detail": "User already has this membership."},
                status=status.HTTP_409_CONFLICT,
            )

        self.perform_create(serializer)
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: MembershipSerializer(many=True)})
    @action(
        detail=False,
        methods=["get"],
        url_path="mine",
        permission_classes=[IsAuthenticated],
    )
    def mine(self, request):
        qs = memberships_for(request.user).select_related("organization", "location", "user")
        return Response(MembershipSerializer(qs, many=True).data)
