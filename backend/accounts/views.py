from django.contrib.auth import authenticate
from django.contrib.auth.hashers import make_password
from django.http import JsonResponse
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from .models import CustomUser

def _error(detail: str, status_code: int):
    """Consistent error payload shape across API: {'detail': ...}."""
    return JsonResponse({'detail': detail}, status=status_code)

def _token_payload(user, token):
    return {
        'token': token.key,
        'role': user.role,
        'username': user.username,
    }

@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login_view(request):
    """
    Login endpoint that returns a token and user role
    """
    username = request.data.get('username')
    password = request.data.get('password')

    if not username or not password:
        return _error('Username and password required', 400)

    user = authenticate(username=username, password=password)
    if not user:
        return _error('Invalid credentials', 401)

    token, _ = Token.objects.get_or_create(user=user)
    return JsonResponse(_token_payload(user, token))

@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def register_view(request):
    """
    Registration endpoint for customers. Back-office roles are granted by admins only.
    """
    username = request.data.get('username')
    password = request.data.get('password')
    email = request.data.get('email') or ''

    if not username or not password:
        return _error('Username and password required', 400)

    if CustomUser.objects.filter(username=username).exists():
        return _error('Username already exists', 400)

    user = CustomUser.objects.create(
        username=username,
        email=email,
        password=make_password(password),
        role='customer',
        preferred_currency=(request.data.get('preferred_currency') or None),
    )

    token = Token.objects.create(user=user)
    return JsonResponse(_token_payload(user, token), status=201)
