"""
PATH: users/views/admin.py

ADMIN USER MANAGEMENT

- list/update accounts
- approve/reject accounts (gates contract pricing)
- read the login audit trail
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import CAP_AUDIT_VIEW, CAP_USERS_APPROVE, HasCapability
from users.models import LoginAudit
from users.serializers import (
    ApprovalSerializer,
    LoginAuditSerializer,
    UserAdminUpdateSerializer,
    UserSerializer,
)
from users.services.audit import ApprovalError, set_approval

User = get_user_model()


class UserAdminViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = User.objects.all().order_by("-created_at")
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_USERS_APPROVE
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ["role", "approval_status", "is_active"]
    search_fields = ["email", "username", "first_name", "last_name"]

    def get_serializer_class(self):
        if self.action in {"update", "partial_update"}:
            return UserAdminUpdateSerializer
        return UserSerializer

    def update(self, request, *args, **kwargs):
        super().update(request, *args, **kwargs)
        return Response(UserSerializer(self.get_object()).data)

    @extend_schema(request=ApprovalSerializer, responses={200: UserSerializer})
    @action(detail=True, methods=["post"], url_path="approval")
    def approval(self, request, pk=None):
        user = self.get_object()
        serializer = ApprovalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = set_approval(user, status=serializer.validated_data["status"], actor=request.user)
        except ApprovalError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(UserSerializer(user).data)


class LoginAuditViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = LoginAudit.objects.select_related("user").all()
    serializer_class = LoginAuditSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_AUDIT_VIEW
    filterset_fields = ["success", "user", "email"]
