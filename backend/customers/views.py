from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from .models import DeliveryAddress
from .serializers import DeliveryAddressSerializer


class DeliveryAddressViewSet(viewsets.ModelViewSet):
    """A user's own delivery addresses; the default one is listed first."""
    serializer_class = DeliveryAddressSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return DeliveryAddress.objects.filter(user=self.request.user)

    def perform_create(self, serializer):
        user = self.request.user
        # First address becomes the default.
        is_default = serializer.validated_data.get("is_default") or not DeliveryAddress.objects.filter(user=user).exists()
        serializer.save(user=user, is_default=is_default)
