"""
DRF views for the settlement API.

Endpoints (prefixed with /api/v1/):
    GET  marketplace/orders/                 - Own orders (?role=buyer|seller)
    POST marketplace/orders/                 - Create order + escrow
    GET  marketplace/orders/{id}/            - Order detail with disputes
    POST marketplace/orders/{id}/confirm/    - Buyer confirms receipt
    POST marketplace/orders/{id}/dispute/    - Buyer or seller opens dispute
    GET  escrow/                             - Escrows (all for admins)
    POST escrow/{id}/release/                - Admin release of a held escrow
    POST escrow/{id}/refund/                 - Admin refund of a held escrow
    POST escrow/{id}/resolve/                - Admin dispute resolution
    POST disputes/{id}/review/               - Admin starts reviewing a dispute
    GET  payouts/                            - Own payout history
    POST payouts/                            - Request a payout
    GET  payouts/balance/                    - Own balance summary
    POST payouts/{id}/processing|complete|fail/ - Admin fulfillment

Views translate HTTP to service calls; permissions beyond authentication
are enforced by the services through require_capability().
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.roles import Principal
from payments.serializers import (
    BalanceSerializer,
    ConfirmOrderSerializer,
    CreateOrderSerializer,
    DisputeSerializer,
    EscrowSerializer,
    OpenDisputeSerializer,
    OrderDetailSerializer,
    OrderSerializer,
    PayoutSerializer,
    ReasonSerializer,
    RequestPayoutSerializer,
    ResolveDisputeSerializer,
    SettlementSerializer,
)
from payments.services import (
    DisputeService,
    EscrowService,
    OrderService,
    PayoutService,
)

ERROR_RESPONSES = {
    400: OpenApiResponse(description="Invalid input"),
    403: OpenApiResponse(description="Missing capability or not a party"),
    404: OpenApiResponse(description="Record not found"),
    409: OpenApiResponse(description="Operation illegal in the current state"),
}


class PrincipalMixin:
    """Build the acting Principal from the authenticated user."""

    def get_principal(self) -> Principal:
        return Principal.from_user(self.request.user)


# =============================================================================
# Orders
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_orders",
        summary="List own orders",
        parameters=[
            OpenApiParameter(
                name="role",
                type=str,
                location=OpenApiParameter.QUERY,
                enum=["buyer", "seller"],
                required=False,
                description="Only orders where the caller is buyer or seller",
            ),
        ],
        tags=["Marketplace"],
    ),
    retrieve=extend_schema(
        operation_id="get_order",
        summary="Get order",
        responses={200: OrderDetailSerializer, **ERROR_RESPONSES},
        tags=["Marketplace"],
    ),
)
class OrderViewSet(PrincipalMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer

    def get_queryset(self):
        return OrderService.list_orders(
            self.get_principal(),
            role=self.request.query_params.get("role") or None,
        )

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        serializer = OrderSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request, pk=None):
        order = OrderService.get_order(self.get_principal(), pk)
        return Response(OrderDetailSerializer(order).data)

    @extend_schema(
        operation_id="create_order",
        summary="Create order",
        description="Creates the order and its held escrow in one transaction.",
        request=CreateOrderSerializer,
        responses={201: OrderSerializer, **ERROR_RESPONSES},
        tags=["Marketplace"],
    )
    def create(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.create_order(
            self.get_principal(),
            serializer.validated_data["product_id"],
        )
        order = OrderService.get_order(self.get_principal(), order.id)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="confirm_order",
        summary="Confirm receipt",
        request=ConfirmOrderSerializer,
        responses={200: OrderSerializer, **ERROR_RESPONSES},
        tags=["Marketplace"],
    )
    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        serializer = ConfirmOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        OrderService.confirm_receipt(
            self.get_principal(),
            pk,
            expected_version=serializer.validated_data["version"],
        )
        order = OrderService.get_order(self.get_principal(), pk)
        return Response(OrderSerializer(order).data)

    @extend_schema(
        operation_id="open_dispute",
        summary="Open dispute",
        request=OpenDisputeSerializer,
        responses={201: DisputeSerializer, **ERROR_RESPONSES},
        tags=["Marketplace"],
    )
    @action(detail=True, methods=["post"])
    def dispute(self, request, pk=None):
        serializer = OpenDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dispute = DisputeService.open_dispute(
            self.get_principal(),
            pk,
            reason=serializer.validated_data["reason"],
            description=serializer.validated_data["description"],
            expected_version=serializer.validated_data["version"],
        )
        return Response(DisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)


# =============================================================================
# Escrow & Disputes
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_escrows",
        summary="List escrows",
        tags=["Escrow"],
    ),
)
class EscrowViewSet(PrincipalMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = EscrowSerializer

    def get_queryset(self):
        return EscrowService.list_escrows(self.get_principal())

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(EscrowSerializer(page, many=True).data)

    @extend_schema(
        operation_id="release_escrow",
        summary="Release held escrow (admin)",
        request=None,
        responses={200: SettlementSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    @action(detail=True, methods=["post"])
    def release(self, request, pk=None):
        result = EscrowService.admin_release(self.get_principal(), pk)
        return Response(SettlementSerializer(result).data)

    @extend_schema(
        operation_id="refund_escrow",
        summary="Refund held escrow (admin)",
        request=ReasonSerializer,
        responses={200: SettlementSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = EscrowService.admin_refund(
            self.get_principal(),
            pk,
            reason=serializer.validated_data["reason"],
        )
        return Response(SettlementSerializer(result).data)

    @extend_schema(
        operation_id="resolve_dispute",
        summary="Resolve dispute (admin)",
        request=ResolveDisputeSerializer,
        responses={200: SettlementSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        serializer = ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = EscrowService.resolve_dispute(
            self.get_principal(),
            pk,
            resolution=serializer.validated_data["resolution"],
            notes=serializer.validated_data["notes"],
            expected_version=serializer.validated_data["version"],
        )
        return Response(SettlementSerializer(result).data)


class DisputeViewSet(PrincipalMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = DisputeSerializer

    @extend_schema(
        operation_id="review_dispute",
        summary="Start dispute review (admin)",
        request=None,
        responses={200: DisputeSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    @action(detail=True, methods=["post"])
    def review(self, request, pk=None):
        dispute = DisputeService.mark_under_review(self.get_principal(), pk)
        return Response(DisputeSerializer(dispute).data)


# =============================================================================
# Payouts
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_payouts",
        summary="Payout history",
        tags=["Payouts"],
    ),
)
class PayoutViewSet(PrincipalMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = PayoutSerializer

    def get_queryset(self):
        return PayoutService.list_payouts(self.get_principal())

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(PayoutSerializer(page, many=True).data)

    @extend_schema(
        operation_id="request_payout",
        summary="Request payout",
        request=RequestPayoutSerializer,
        responses={201: PayoutSerializer, **ERROR_RESPONSES},
        tags=["Payouts"],
    )
    def create(self, request):
        serializer = RequestPayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = PayoutService.request_payout(
            self.get_principal(),
            amount_cents=serializer.validated_data["amount_cents"],
            bank_account=serializer.validated_data["bank_account"],
            method=serializer.validated_data["method"],
        )
        return Response(PayoutSerializer(payout).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="get_balance",
        summary="Balance summary",
        responses={200: BalanceSerializer},
        tags=["Payouts"],
    )
    @action(detail=False, methods=["get"])
    def balance(self, request):
        summary = PayoutService.get_balance_summary(request.user.pk)
        return Response(BalanceSerializer(summary).data)

    @extend_schema(
        operation_id="mark_payout_processing",
        summary="Mark payout processing (admin)",
        request=None,
        responses={200: PayoutSerializer, **ERROR_RESPONSES},
        tags=["Payouts"],
    )
    @action(detail=True, methods=["post"])
    def processing(self, request, pk=None):
        payout = PayoutService.mark_processing(self.get_principal(), pk)
        return Response(PayoutSerializer(payout).data)

    @extend_schema(
        operation_id="complete_payout",
        summary="Complete payout (admin)",
        request=None,
        responses={200: PayoutSerializer, **ERROR_RESPONSES},
        tags=["Payouts"],
    )
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        payout = PayoutService.complete_payout(self.get_principal(), pk)
        return Response(PayoutSerializer(payout).data)

    @extend_schema(
        operation_id="fail_payout",
        summary="Fail payout (admin)",
        request=ReasonSerializer,
        responses={200: PayoutSerializer, **ERROR_RESPONSES},
        tags=["Payouts"],
    )
    @action(detail=True, methods=["post"])
    def fail(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = PayoutService.fail_payout(
            self.get_principal(),
            pk,
            reason=serializer.validated_data["reason"],
        )
        return Response(PayoutSerializer(payout).data)
