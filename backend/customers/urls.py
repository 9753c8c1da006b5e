from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import DeliveryAddressViewSet

router = DefaultRouter()
router.register(r'addresses', DeliveryAddressViewSet, basename='address')

urlpatterns = [
    path('', include(router.urls)),
]
