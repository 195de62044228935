"""
Staff login.

Front desk terminals and clinical screens exchange a username and
password for a DRF token, then send ``Authorization: Token <key>`` on
every request (see ``checkin.authentication``).
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from checkin.serializers.auth import LoginSerializer
from checkin.services.audit import log_action


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Username/password login; the role always comes from the account."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']

    user = authenticate(request, username=username, password=s.validated_data['password'])
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        return Response({'ok': False, 'detail': 'Invalid username or password'}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    token_obj, _ = Token.objects.get_or_create(user=user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'role': user.role,
        'user': {
            'id': user.id,
            'username': user.username,
            'name': user.get_full_name() or user.username,
            'role': user.role,
        },
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Revoke the caller's token."""
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id)
    return Response({'ok': True})
