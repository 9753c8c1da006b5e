from __future__ import annotations

import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsAdmin, IsOwnerOrBackOffice
from pricing.services.calculator import CalculationError

from .models import Quote
from .serializers import (
    BulkStatusSerializer,
    QuoteSerializer,
    SharedQuoteSerializer,
    StatusTransitionSerializer,
    TransitionRequestSerializer,
)
from .services.quote_service import recalculate_quote
from .services.status_config import get_status_workflow
from .services.status_engine import (
    InvalidTransition,
    QuoteNotFound,
    StatusConflict,
    bulk_update_status,
    transition,
)

logger = logging.getLogger(__name__)

# Customers act on their own sent quotes only.
CUSTOMER_TRANSITIONS = {('sent', 'approved'), ('sent', 'rejected')}
EDITABLE_STATUSES = {'pending', 'calculated'}
# Edits to any of these make a stored breakdown stale.
PRICING_FIELDS = {
    'items', 'origin_country', 'destination_country', 'shipping_method', 'payment_gateway',
    'insurance_required', 'handling_fee_type', 'order_discount', 'shipping_discount',
}


def _error(detail: str, status_code: int):
    return Response({'detail': detail}, status=status_code)


def _transition_error(exc):
    if isinstance(exc, QuoteNotFound):
        return _error(str(exc), status.HTTP_404_NOT_FOUND)
    if isinstance(exc, StatusConflict):
        return _error(str(exc), status.HTTP_409_CONFLICT)
    return _error(str(exc), status.HTTP_400_BAD_REQUEST)


class QuoteViewSet(viewsets.ModelViewSet):
    serializer_class = QuoteSerializer
    permission_classes = [IsAuthenticated, IsOwnerOrBackOffice]
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_queryset(self):
        qs = Quote.objects.all().select_related('customer').prefetch_related('items')
        user = self.request.user
        if not getattr(user, 'is_back_office', False):
            qs = qs.filter(customer=user)
        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status__in=status_filter.split(','))
        kind = self.request.query_params.get('kind')
        if kind == 'order':
            qs = qs.filter(status__in=get_status_workflow().order_statuses())
        elif kind == 'quote':
            qs = qs.exclude(status__in=get_status_workflow().order_statuses())
        return qs

    def perform_create(self, serializer):
        user = self.request.user
        serializer.save(
            customer=user,
            customer_email=serializer.validated_data.get('customer_email') or user.email,
            status=get_status_workflow().default_status('quote'),
        )

    def update(self, request, *args, **kwargs):
        quote = self.get_object()
        if quote.status not in EDITABLE_STATUSES and not request.user.is_back_office:
            return _error(f"Quote is {quote.status} and can no longer be edited", status.HTTP_400_BAD_REQUEST)
        try:
            with transaction.atomic():
                return super().update(request, *args, **kwargs)
        except CalculationError as e:
            return _error(str(e), status.HTTP_400_BAD_REQUEST)

    def perform_update(self, serializer):
        pricing_changed = bool(PRICING_FIELDS & set(serializer.validated_data))
        quote = serializer.save()
        if pricing_changed and quote.calculation_data:
            # Items were just replaced; drop the prefetched ones before repricing.
            quote._prefetched_objects_cache = {}
            recalculate_quote(quote, changed_by=self.request.user)

    @action(detail=True, methods=['post'], permission_classes=[IsAdmin])
    def recalculate(self, request, pk=None):
        quote = self.get_object()
        try:
            recalculate_quote(quote, changed_by=request.user)
        except CalculationError as e:
            return _error(str(e), status.HTTP_400_BAD_REQUEST)
        quote = self.get_queryset().get(pk=quote.pk)
        return Response(self.get_serializer(quote).data)

    @action(detail=True, methods=['post'], url_path='transition')
    def change_status(self, request, pk=None):
        quote = self.get_object()
        ser = TransitionRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        from_status = ser.validated_data.get('from_status') or quote.status
        to_status = ser.validated_data['to_status']

        if not request.user.is_back_office and (from_status, to_status) not in CUSTOMER_TRANSITIONS:
            return _error("Not allowed", status.HTTP_403_FORBIDDEN)
        try:
            result = transition(
                quote.pk, from_status, to_status,
                trigger=ser.validated_data['trigger'],
                metadata=ser.validated_data['metadata'],
                changed_by=request.user,
            )
        except (InvalidTransition, QuoteNotFound, StatusConflict) as e:
            return _transition_error(e)
        return Response({
            'id': result.quote_id,
            'from_status': result.from_status,
            'status': result.to_status,
            'logged': result.logged,
            'email_sent': result.email_sent,
            'share_token': result.share_token,
            'expires_at': result.expires_at,
        })

    @action(detail=True, methods=['get'])
    def transitions(self, request, pk=None):
        quote = self.get_object()
        return Response(StatusTransitionSerializer(quote.transitions.all(), many=True).data)

    @action(detail=False, methods=['post'], url_path='bulk-status', permission_classes=[IsAdmin])
    def bulk_status(self, request):
        ser = BulkStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = bulk_update_status(
            ser.validated_data['ids'],
            ser.validated_data['to_status'],
            trigger=ser.validated_data['trigger'],
            changed_by=request.user,
        )
        return Response({'succeeded': result.succeeded, 'failed': result.failed})

    @action(detail=False, methods=['get'], url_path=r'shared/(?P<token>[\w-]+)',
            permission_classes=[AllowAny], authentication_classes=[])
    def shared(self, request, token=None):
        quote = get_object_or_404(Quote.objects.prefetch_related('items'), share_token=token)
        if quote.expires_at and quote.expires_at < timezone.now():
            return _error("This quote link has expired", status.HTTP_410_GONE)
        return Response(SharedQuoteSerializer(quote).data)
