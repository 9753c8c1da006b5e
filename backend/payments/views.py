from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from rest_framework import generics, status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdminOrFinance, IsOwnerOrBackOffice
from quotes.models import Quote

from .models import PaymentGateway
from .serializers import PaymentGatewaySerializer, PaymentTransactionSerializer, RecordPaymentSerializer
from .services.gateway_selection import GatewayUnavailable, checkout_options, record_payment

logger = logging.getLogger(__name__)


def _quote_for(request, view, quote_id):
    quote = get_object_or_404(Quote, pk=quote_id)
    view.check_object_permissions(request, quote)
    return quote


class PaymentGatewayListView(generics.ListAPIView):
    serializer_class = PaymentGatewaySerializer
    pagination_class = None

    def get_queryset(self):
        return PaymentGateway.objects.filter(is_active=True)


class CheckoutOptionsView(views.APIView):
    permission_classes = [IsAuthenticated, IsOwnerOrBackOffice]

    def get(self, request, id):
        quote = _quote_for(request, self, id)
        return Response(checkout_options(quote))


class QuotePaymentsView(views.APIView):
    """GET lists a quote's payments; POST records one (back office)."""
    permission_classes = [IsAuthenticated, IsOwnerOrBackOffice]

    def get(self, request, id):
        quote = _quote_for(request, self, id)
        return Response(PaymentTransactionSerializer(quote.payments.all(), many=True).data)

    def post(self, request, id):
        if not IsAdminOrFinance().has_permission(request, self):
            return Response({"detail": "Forbidden"}, status=status.HTTP_403_FORBIDDEN)
        quote = _quote_for(request, self, id)
        ser = RecordPaymentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        try:
            txn, result = record_payment(
                quote,
                data["gateway_code"],
                data["amount"],
                data["currency"],
                reference=data["gateway_reference"],
                metadata=data["metadata"],
                recorded_by=request.user,
            )
        except GatewayUnavailable as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        quote.refresh_from_db(fields=["status"])
        return Response(
            {
                "payment": PaymentTransactionSerializer(txn).data,
                "status": quote.status,
                "status_changed": result is not None,
            },
            status=status.HTTP_201_CREATED,
        )
