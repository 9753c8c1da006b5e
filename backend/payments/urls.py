from django.urls import path

from .views import CheckoutOptionsView, PaymentGatewayListView, QuotePaymentsView

urlpatterns = [
    path('payment-gateways/', PaymentGatewayListView.as_view(), name='payment-gateway-list'),
    path('quotes/<int:id>/checkout-options/', CheckoutOptionsView.as_view(), name='quote-checkout-options'),
    path('quotes/<int:id>/payments/', QuotePaymentsView.as_view(), name='quote-payments'),
]
