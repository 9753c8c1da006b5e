from __future__ import annotations

import logging

from rest_framework import status, views
from rest_framework.response import Response

from .serializers import CalculationRequestSerializer
from .services.calculator import CalculationError, calculate_landed_cost
from .services.tariffs import TariffConfig, gateway_options, shipping_methods, tax_info

logger = logging.getLogger(__name__)


class CalculateView(views.APIView):
    """Preview a landed-cost breakdown without storing anything."""

    def post(self, request):
        ser = CalculationRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            breakdown = calculate_landed_cost(ser.to_input(), TariffConfig.from_database())
        except CalculationError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(breakdown.to_dict(), status=status.HTTP_200_OK)


class TariffOptionsView(views.APIView):
    """Shipping methods, gateway fees and, with ?country=XX, that country's duty/tax."""

    def get(self, request):
        tariffs = TariffConfig.from_database()
        payload = {
            "shipping_methods": shipping_methods(tariffs),
            "gateways": gateway_options(tariffs),
        }
        country = request.query_params.get("country")
        if country:
            payload["tax"] = tax_info(country, tariffs)
        return Response(payload)
