from __future__ import annotations

import logging
from typing import List

from rest_framework import generics, status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from accounts.permissions import IsAdminOrFinance
from core.fx import refresh_rates
from core.models import Country
from core.serializers import CountrySerializer

logger = logging.getLogger(__name__)


class CountryListView(generics.ListAPIView):
    """Reference data for checkout and address forms."""
    permission_classes = [AllowAny]
    serializer_class = CountrySerializer
    pagination_class = None

    def get_queryset(self):
        qs = Country.objects.all()
        if self.request.query_params.get("shipping_allowed") in ("1", "true", "yes"):
            qs = qs.filter(shipping_allowed=True)
        return qs


class FxRefreshView(views.APIView):
    permission_classes = [IsAdminOrFinance]

    def post(self, request):
        currencies_arg = request.data.get("currencies")
        if isinstance(currencies_arg, str):
            currencies: List[str] = [c.strip() for c in currencies_arg.split(",") if c.strip()]
        elif currencies_arg:
            currencies = [str(c) for c in currencies_arg]
        else:
            currencies = []

        for code in currencies:
            if len(code) != 3 or not code.isalpha():
                return Response(
                    {"detail": f"Invalid currency '{code}'. Use ISO codes, e.g. ['INR','NPR']"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        provider_name = (request.data.get("provider") or "").strip().lower() or None
        summary = refresh_rates(currencies, provider_name)
        logger.info("FX refresh by %s: %d currencies updated", request.user, len(summary))
        return Response({"updated": summary}, status=status.HTTP_200_OK)
