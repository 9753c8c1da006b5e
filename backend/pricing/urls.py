from django.urls import path

from .views import CalculateView, TariffOptionsView

urlpatterns = [
    path('calculate', CalculateView.as_view(), name='pricing-calculate'),
    path('options', TariffOptionsView.as_view(), name='pricing-options'),
]
