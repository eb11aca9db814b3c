from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from organizations.serializers import MembershipSerializer
from organizations.services.membership import memberships_for
from permissions.roles import effective_capabilities_for
from users.serializers import UserSerializer

# ---------------------------
# SERIALIZER
# ---------------------------


class MeSerializer(serializers.Serializer):
    user = UserSerializer()
    capabilities = serializers.ListField(child=serializers.CharField())
    memberships = MembershipSerializer(many=True)


# ---------------------------
# VIEW
# ---------------------------


class MeView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(
        responses={200: MeSerializer},
        description="Current user profile, approval state, capabilities and memberships.",
    )
    def get(self, request):
        user = request.user
        memberships = memberships_for(user).select_related("organization", "location")

        return Response(
            {
                "user": UserSerializer(user).data,
                "capabilities": sorted(effective_capabilities_for(user)),
                "memberships": MembershipSerializer(memberships, many=True).data,
            }
        )
