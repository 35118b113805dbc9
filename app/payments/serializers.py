"""
Serializers for the settlement API.

Response serializers are read-only model representations. Request
serializers only validate shape; business rules live in the services.
"""

from __future__ import annotations

from rest_framework import serializers

from catalog.models import Product
from payments.models import Dispute, Escrow, Order, Payout
from payments.state_machines import DisputeResolution, PayoutMethod


# =============================================================================
# Response Serializers
# =============================================================================


class ProductSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ["id", "title", "price_cents", "currency"]
        read_only_fields = fields


class EscrowSerializer(serializers.ModelSerializer):
    class Meta:
        model = Escrow
        fields = [
            "id",
            "order_id",
            "buyer_id",
            "seller_id",
            "amount_cents",
            "currency",
            "status",
            "released_at",
            "refunded_at",
            "refund_reason",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DisputeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Dispute
        fields = [
            "id",
            "order_id",
            "initiated_by_id",
            "reason",
            "description",
            "status",
            "resolution",
            "winner",
            "resolved_at",
            "resolved_by_id",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Order with its product summary and escrow."""

    product = ProductSummarySerializer(read_only=True)
    escrow = EscrowSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "buyer_id",
            "seller_id",
            "product",
            "price_cents",
            "currency",
            "status",
            "payment_reference",
            "confirmed_at",
            "confirmed_by",
            "escrow",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    disputes = DisputeSerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = [*OrderSerializer.Meta.fields, "disputes"]
        read_only_fields = fields


class SettlementSerializer(serializers.Serializer):
    """Result of a dispute resolution or admin settlement."""

    order = OrderSerializer(read_only=True)
    escrow = EscrowSerializer(read_only=True)
    dispute = DisputeSerializer(read_only=True, allow_null=True)


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "amount_cents",
            "currency",
            "status",
            "method",
            "bank_account",
            "requested_at",
            "processed_at",
            "failure_reason",
            "created_at",
        ]
        read_only_fields = fields


class BalanceSerializer(serializers.Serializer):
    available = serializers.IntegerField()
    pending = serializers.IntegerField()
    in_flight = serializers.IntegerField()
    paid_out = serializers.IntegerField()
    currency = serializers.CharField()


# =============================================================================
# Request Serializers
# =============================================================================


class CreateOrderSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()


class VersionedActionSerializer(serializers.Serializer):
    """Optional version of the record the client last read."""

    version = serializers.IntegerField(
        required=False,
        allow_null=True,
        min_value=1,
        default=None,
        help_text="Rejects the action with STALE_RECORD if the record has changed since",
    )


class ConfirmOrderSerializer(VersionedActionSerializer):
    """Body of the buyer's confirm request; may be empty."""


class OpenDisputeSerializer(VersionedActionSerializer):
    reason = serializers.CharField(max_length=255)
    description = serializers.CharField()


class ResolveDisputeSerializer(VersionedActionSerializer):
    resolution = serializers.ChoiceField(choices=DisputeResolution.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ReasonSerializer(serializers.Serializer):
    """Body of admin refund and payout failure requests."""

    reason = serializers.CharField(max_length=255)


class BankAccountSerializer(serializers.Serializer):
    account_number = serializers.CharField(min_length=4, max_length=34, write_only=True)
    bank_name = serializers.CharField(max_length=100)


class RequestPayoutSerializer(serializers.Serializer):
    amount_cents = serializers.IntegerField(
        help_text="Amount in cents, at least PAYOUT_MINIMUM_AMOUNT_CENTS",
    )
    method = serializers.ChoiceField(
        choices=PayoutMethod.choices,
        default=PayoutMethod.BANK_TRANSFER,
    )
    bank_account = BankAccountSerializer()
