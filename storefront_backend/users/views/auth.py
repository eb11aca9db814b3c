"""
PATH: users/views/auth.py

AUTH VIEWS

- Register (anon, creates pending customer)
- Login (anon, email OR username, JWT pair, every attempt audited)
"""

from __future__ import annotations

from django.contrib.auth import authenticate
from drf_spectacular.utils import extend_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from users.auth_backends import find_user_by_identifier
from users.serializers import LoginSerializer, RegisterSerializer, UserSerializer
from users.services.audit import record_login_attempt


class LoginThrottle(AnonRateThrottle):
    scope = "login"


class LoginResponseSerializer(serializers.Serializer):
    access = serializers.CharField()
    refresh = serializers.CharField()
    user = UserSerializer()


class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]
    serializer_class = RegisterSerializer

    @extend_schema(
        request=RegisterSerializer,
        responses={201: UserSerializer},
        description="Register a storefront account (starts pending approval).",
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        return Response(
            {
                "message": "Account created. Contract pricing is available once approved.",
                "user": UserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]
    serializer_class = LoginSerializer

    @extend_schema(
        request=LoginSerializer,
        responses={200: LoginResponseSerializer},
        description="Authenticate with email or username and receive a JWT pair.",
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        identifier = serializer.validated_data["identifier"].strip()
        password = serializer.validated_data["password"]
        age_verified = serializer.validated_data["age_verified"]

        user = authenticate(request=request, username=identifier, password=password)

        if not user:
            known = find_user_by_identifier(identifier)
            reason = "inactive" if known is not None and not known.is_active else "invalid_credentials"
            record_login_attempt(
                request,
                email=known.email if known is not None else identifier,
                user=known,
                success=False,
                failure_reason=reason,
                age_verified=age_verified,
            )
            return Response(
                {"detail": "Invalid credentials"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        record_login_attempt(
            request,
            email=user.email,
            user=user,
            success=True,
            age_verified=age_verified,
        )

        refresh = RefreshToken.for_user(user)
        return Response(
            {
                "access": str(refresh.access_token),
                "refresh": str(refresh),
                "user": UserSerializer(user).data,
            },
            status=status.HTTP_200_OK,
        )
