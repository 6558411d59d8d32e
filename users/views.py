"""
Users — Views

JWT login / refresh / logout and the current-user endpoint.

@file users/views.py
"""

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .serializers import StaffTokenObtainPairSerializer, UserReadSerializer

logger = logging.getLogger('hospitrack')


class LoginView(TokenObtainPairView):
    """POST /api/v1/auth/login/ — Authenticate with email + password."""
    permission_classes = [AllowAny]
    serializer_class = StaffTokenObtainPairSerializer


class TokenRefreshAPIView(TokenRefreshView):
    """POST /api/v1/auth/refresh/ — Rotate refresh token."""
    pass


class LogoutView(APIView):
    """POST /api/v1/auth/logout/ — Blacklist the refresh token."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if refresh_token:
            try:
                RefreshToken(refresh_token).blacklist()
            except TokenError:
                logger.info('Logout with an invalid refresh token for %s.', request.user.pk)
        return Response({'success': True, 'data': None}, status=status.HTTP_200_OK)


class MeView(APIView):
    """GET /api/v1/auth/me/ — Return the current authenticated user."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserReadSerializer(request.user).data)
