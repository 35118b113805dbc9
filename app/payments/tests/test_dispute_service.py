"""
Tests for DisputeService.
"""

import uuid

import pytest

from authentication.roles import Principal
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from notifications.models import Notification
from payments.exceptions import (
    DisputeAlreadyOpenError,
    EscrowFinalizedError,
    InvalidStateTransitionError,
    StaleRecordError,
)
from payments.models import AuditLogEntry, Dispute, Escrow, Order
from payments.services import DisputeService, OrderService
from payments.services.dispute_service import CHARGEBACK_REASON
from payments.state_machines import (
    AuditAction,
    DisputeStatus,
    DisputeWinner,
    EscrowStatus,
    OrderStatus,
)


@pytest.mark.django_db
class TestOpenDispute:
    def test_buyer_opens_dispute(self, paid_order, buyer_principal):
        dispute = DisputeService.open_dispute(
            buyer_principal, paid_order.id, reason="Not delivered", description="No files"
        )

        assert dispute.status == DisputeStatus.OPEN
        assert dispute.initiated_by_id == buyer_principal.user_id
        assert Order.objects.get(pk=paid_order.pk).status == OrderStatus.DISPUTED
        assert Escrow.objects.get(order_id=paid_order.pk).status == EscrowStatus.DISPUTED

    def test_seller_can_open_dispute(self, paid_order, artist_principal):
        dispute = DisputeService.open_dispute(
            artist_principal, paid_order.id, reason="Fraud", description="Chargeback threat"
        )

        assert dispute.initiated_by_id == artist_principal.user_id

    def test_stale_order_version_is_rejected(self, paid_order, buyer_principal):
        version = Order.objects.get(pk=paid_order.pk).version

        with pytest.raises(StaleRecordError) as exc_info:
            DisputeService.open_dispute(
                buyer_principal,
                paid_order.id,
                reason="Not delivered",
                description="No files",
                expected_version=version + 1,
            )

        assert exc_info.value.error_code == "STALE_RECORD"
        assert not Dispute.objects.exists()
        assert Order.objects.get(pk=paid_order.pk).status == OrderStatus.PROCESSING

    def test_dispute_before_payment(self, pending_order, buyer_principal):
        DisputeService.open_dispute(
            buyer_principal, pending_order.id, reason="Charged twice", description="See bank"
        )

        assert Order.objects.get(pk=pending_order.pk).status == OrderStatus.DISPUTED

    def test_notifies_other_party_and_admins(
        self,
        paid_order,
        buyer_principal,
        artist,
        platform_admin,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            DisputeService.open_dispute(
                buyer_principal, paid_order.id, reason="Not delivered", description="No files"
            )

        assert Notification.objects.filter(recipient=artist, title="Order Dispute").exists()
        admin_note = Notification.objects.get(recipient=platform_admin, title="Escrow Dispute")
        assert "Not delivered" in admin_note.message
        assert not Notification.objects.filter(recipient_id=buyer_principal.user_id).exists()

    def test_bystander_cannot_dispute(self, paid_order, other_user):
        with pytest.raises(PermissionDeniedError) as exc_info:
            DisputeService.open_dispute(
                Principal.from_user(other_user), paid_order.id, reason="x", description="y"
            )

        assert exc_info.value.error_code == "NOT_ORDER_PARTY"

    def test_second_active_dispute_is_rejected(self, open_dispute, artist_principal):
        with pytest.raises(DisputeAlreadyOpenError) as exc_info:
            DisputeService.open_dispute(
                artist_principal, open_dispute.order_id, reason="Again", description="Again"
            )

        assert exc_info.value.error_code == "DISPUTE_EXISTS"
        assert Dispute.objects.filter(order_id=open_dispute.order_id).count() == 1

    def test_released_escrow_cannot_be_disputed(self, paid_order, buyer_principal):
        OrderService.confirm_receipt(buyer_principal, paid_order.id)

        with pytest.raises(EscrowFinalizedError) as exc_info:
            DisputeService.open_dispute(
                buyer_principal, paid_order.id, reason="Late", description="Changed my mind"
            )

        assert exc_info.value.error_code == "ESCROW_FINALIZED"
        assert exc_info.value.http_status == 409
        assert not Dispute.objects.exists()

    def test_reason_and_description_are_required(self, paid_order, buyer_principal):
        with pytest.raises(ValidationError):
            DisputeService.open_dispute(buyer_principal, paid_order.id, reason="", description="x")

    def test_unknown_order(self, buyer_principal):
        with pytest.raises(NotFoundError):
            DisputeService.open_dispute(buyer_principal, uuid.uuid4(), reason="x", description="y")


@pytest.mark.django_db
class TestChargebackDispute:
    def test_opens_dispute_for_the_buyer(self, paid_order):
        dispute = DisputeService.open_chargeback_dispute("ch_paid_123")

        assert dispute.reason == CHARGEBACK_REASON
        assert dispute.initiated_by_id == paid_order.buyer_id
        assert "ch_paid_123" in dispute.description
        assert Escrow.objects.get(order_id=paid_order.pk).status == EscrowStatus.DISPUTED

    def test_already_disputed_order_is_acknowledged(self, open_dispute):
        assert DisputeService.open_chargeback_dispute("ch_paid_123") is None
        assert Dispute.objects.count() == 1

    def test_unknown_charge(self):
        with pytest.raises(NotFoundError) as exc_info:
            DisputeService.open_chargeback_dispute("ch_missing")

        assert exc_info.value.error_code == "ORDER_NOT_FOUND"

    def test_chargeback_after_release(self, paid_order, buyer_principal):
        OrderService.confirm_receipt(buyer_principal, paid_order.id)

        with pytest.raises(EscrowFinalizedError):
            DisputeService.open_chargeback_dispute("ch_paid_123")


@pytest.mark.django_db
class TestMarkUnderReview:
    def test_admin_starts_review(
        self, open_dispute, admin_principal, buyer, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            dispute = DisputeService.mark_under_review(admin_principal, open_dispute.id)

        assert Dispute.objects.get(pk=dispute.pk).status == DisputeStatus.UNDER_REVIEW
        assert AuditLogEntry.objects.filter(
            action=AuditAction.DISPUTE_REVIEW, target_id=str(dispute.id)
        ).exists()
        assert Notification.objects.filter(recipient=buyer, title="Dispute Under Review").exists()

    def test_review_is_idempotent(self, open_dispute, admin_principal):
        DisputeService.mark_under_review(admin_principal, open_dispute.id)
        DisputeService.mark_under_review(admin_principal, open_dispute.id)

        assert AuditLogEntry.objects.filter(action=AuditAction.DISPUTE_REVIEW).count() == 1

    def test_requires_admin(self, open_dispute, buyer_principal):
        with pytest.raises(PermissionDeniedError):
            DisputeService.mark_under_review(buyer_principal, open_dispute.id)

    def test_resolved_dispute_cannot_be_reviewed(self, open_dispute, admin_principal, platform_admin):
        open_dispute.resolve(DisputeWinner.BUYER, "", platform_admin.id)
        open_dispute.save()

        with pytest.raises(InvalidStateTransitionError):
            DisputeService.mark_under_review(admin_principal, open_dispute.id)
