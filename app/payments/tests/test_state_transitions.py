"""
Tests for the settlement state machines.

Each model's transition graph is exercised directly: allowed edges move
the status, everything else raises TransitionNotAllowed (or
InvalidStateTransitionError through run_transition).
"""

import pytest
from django.db import IntegrityError
from django_fsm import TransitionNotAllowed

from core.exceptions import ValidationError
from payments.exceptions import InvalidStateTransitionError
from payments.models import AuditLogEntry, Dispute, Escrow, Order, Payout, WebhookEvent
from payments.money import format_money
from payments.state_machines import (
    AuditAction,
    DisputeStatus,
    DisputeWinner,
    EscrowStatus,
    OrderStatus,
    PayoutStatus,
    WebhookEventStatus,
)
from payments.state_machines.transitions import can_transition, run_transition
from payments.tests.factories import PayoutFactory, WebhookEventFactory, make_order, open_dispute_on


# =============================================================================
# Order
# =============================================================================


@pytest.mark.django_db
class TestOrderTransitions:
    def test_new_order_awaits_payment(self, pending_order):
        assert pending_order.status == OrderStatus.PENDING_PAYMENT
        assert pending_order.payment_reference is None

    def test_mark_paid_records_charge(self, pending_order):
        pending_order.mark_paid("ch_abc")
        pending_order.save()

        order = Order.objects.get(pk=pending_order.pk)
        assert order.status == OrderStatus.PROCESSING
        assert order.payment_reference == "ch_abc"

    def test_complete_records_confirmation(self, paid_order):
        paid_order.complete(confirmed_by=Order.CONFIRMED_BY_BUYER)

        assert paid_order.status == OrderStatus.COMPLETED
        assert paid_order.confirmed_by == "buyer"
        assert paid_order.confirmed_at is not None

    def test_cannot_complete_unpaid_order(self, pending_order):
        with pytest.raises(TransitionNotAllowed):
            pending_order.complete()

    def test_completed_order_cannot_be_refunded(self, paid_order):
        paid_order.complete()

        with pytest.raises(TransitionNotAllowed):
            paid_order.refund()

    def test_disputed_order_can_refund_or_complete(self, paid_order):
        paid_order.mark_disputed()

        assert can_transition(paid_order, "refund")
        assert can_transition(paid_order, "complete")
        assert not can_transition(paid_order, "mark_paid")

    def test_status_is_protected(self, pending_order):
        with pytest.raises(AttributeError):
            pending_order.status = OrderStatus.COMPLETED

    def test_is_party(self, pending_order, other_user):
        assert pending_order.is_party(pending_order.buyer_id)
        assert pending_order.is_party(pending_order.seller_id)
        assert not pending_order.is_party(other_user.id)


# =============================================================================
# Escrow
# =============================================================================


@pytest.mark.django_db
class TestEscrowTransitions:
    def test_release_sets_timestamp(self, escrow):
        escrow.release()

        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.released_at is not None
        assert escrow.is_final

    def test_refund_records_reason(self, escrow):
        escrow.refund("Payment failed")

        assert escrow.status == EscrowStatus.REFUNDED
        assert escrow.refund_reason == "Payment failed"
        assert escrow.refunded_at is not None

    @pytest.mark.parametrize("first", ["release", "refund"])
    @pytest.mark.parametrize("second", ["release", "refund", "dispute"])
    def test_final_escrow_accepts_no_transition(self, escrow, first, second):
        getattr(escrow, first)()

        with pytest.raises(TransitionNotAllowed):
            getattr(escrow, second)()

    def test_disputed_escrow_never_returns_to_held(self, escrow):
        escrow.dispute()

        assert escrow.status == EscrowStatus.DISPUTED
        assert not can_transition(escrow, "dispute")
        assert can_transition(escrow, "release")
        assert can_transition(escrow, "refund")

    def test_amount_is_immutable(self, escrow):
        loaded = Escrow.objects.get(pk=escrow.pk)
        loaded.amount_cents = 1

        with pytest.raises(ValidationError) as exc_info:
            loaded.save()

        assert exc_info.value.error_code == "ESCROW_AMOUNT_IMMUTABLE"
        assert Escrow.objects.get(pk=escrow.pk).amount_cents == 5000

    def test_one_escrow_per_order(self, escrow):
        with pytest.raises(IntegrityError):
            Escrow.objects.create(
                order_id=escrow.order_id,
                buyer_id=escrow.buyer_id,
                seller_id=escrow.seller_id,
                amount_cents=100,
            )


# =============================================================================
# run_transition
# =============================================================================


@pytest.mark.django_db
class TestRunTransition:
    def test_wraps_transition_not_allowed(self, escrow):
        escrow.release()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            run_transition(escrow, "refund", "too late")

        error = exc_info.value
        assert error.error_code == "INVALID_STATE_TRANSITION"
        assert error.http_status == 409
        assert error.details["current_state"] == EscrowStatus.RELEASED
        assert error.details["transition"] == "refund"
        assert "Cannot refund escrow in 'released' state" in error.message

    def test_passes_arguments(self, pending_order):
        run_transition(pending_order, "mark_paid", "ch_xyz")

        assert pending_order.payment_reference == "ch_xyz"


# =============================================================================
# Dispute
# =============================================================================


@pytest.mark.django_db
class TestDisputeModel:
    def test_review_then_resolve(self, open_dispute, platform_admin):
        open_dispute.start_review()
        open_dispute.resolve(DisputeWinner.SELLER, "Delivered", platform_admin.id)
        open_dispute.save()

        dispute = Dispute.objects.get(pk=open_dispute.pk)
        assert dispute.status == DisputeStatus.RESOLVED
        assert dispute.winner == DisputeWinner.SELLER
        assert dispute.resolved_by_id == platform_admin.id
        assert dispute.resolved_at is not None
        assert not dispute.is_active

    def test_open_dispute_can_resolve_directly(self, open_dispute, platform_admin):
        open_dispute.resolve(DisputeWinner.BUYER, "", platform_admin.id)

        assert open_dispute.status == DisputeStatus.RESOLVED

    def test_resolved_dispute_is_final(self, open_dispute, platform_admin):
        open_dispute.resolve(DisputeWinner.BUYER, "", platform_admin.id)

        with pytest.raises(TransitionNotAllowed):
            open_dispute.start_review()

    def test_one_active_dispute_per_order(self, open_dispute, seller_of):
        with pytest.raises(IntegrityError):
            Dispute.objects.create(
                order_id=open_dispute.order_id,
                initiated_by=seller_of(open_dispute),
                reason="Second",
                description="Duplicate",
            )

    def test_new_dispute_allowed_after_resolution(self, buyer, product, platform_admin):
        order, escrow = make_order(buyer, product, charge_ref="ch_twice")
        first = open_dispute_on(order, escrow, buyer)
        first.resolve(DisputeWinner.SELLER, "", platform_admin.id)
        first.save()

        second = Dispute.objects.create(
            order=order, initiated_by=buyer, reason="Again", description="Still missing"
        )

        assert second.is_active


@pytest.fixture
def seller_of():
    return lambda dispute: Order.objects.get(pk=dispute.order_id).seller


# =============================================================================
# Payout
# =============================================================================


@pytest.mark.django_db
class TestPayoutTransitions:
    def test_requested_to_completed(self):
        payout = PayoutFactory()

        payout.process()
        payout.complete()

        assert payout.status == PayoutStatus.COMPLETED
        assert payout.processed_at is not None

    def test_fail_records_reason(self):
        payout = PayoutFactory()

        payout.fail("Account closed")

        assert payout.status == PayoutStatus.FAILED
        assert payout.failure_reason == "Account closed"

    def test_cannot_complete_without_processing(self):
        payout = PayoutFactory()

        with pytest.raises(TransitionNotAllowed):
            payout.complete()

    def test_completed_payout_cannot_fail(self):
        payout = PayoutFactory()
        payout.process()
        payout.complete()

        with pytest.raises(TransitionNotAllowed):
            payout.fail("late")

    def test_amount_must_be_positive(self, artist):
        with pytest.raises(IntegrityError):
            Payout.objects.create(artist=artist, amount_cents=0)


# =============================================================================
# WebhookEvent & AuditLogEntry
# =============================================================================


@pytest.mark.django_db
class TestWebhookEventModel:
    def test_processing_bumps_retry_count(self):
        event = WebhookEventFactory()

        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

    def test_can_retry_until_max_retries(self):
        event = WebhookEventFactory(status=WebhookEventStatus.FAILED)
        assert event.can_retry

        event.retry_count = WebhookEvent.MAX_RETRIES
        assert not event.can_retry

    def test_processed_event(self):
        event = WebhookEventFactory()

        event.mark_processed()

        assert event.is_processed
        assert event.processed_at is not None
        assert event.error_message is None

    def test_get_object_tolerates_missing_data(self):
        event = WebhookEventFactory(payload={"id": "evt_1"})

        assert event.get_object() == {}


@pytest.mark.django_db
class TestAuditLogEntry:
    def test_record_captures_target(self, escrow, platform_admin):
        entry = AuditLogEntry.record(
            platform_admin.id, AuditAction.ESCROW_RELEASE, escrow, order_id="o-1"
        )

        assert entry.target_type == "Escrow"
        assert entry.target_id == str(escrow.id)
        assert entry.details == {"order_id": "o-1"}


def test_format_money():
    assert format_money(5000, "USD") == "USD 50.00"
    assert format_money(1, "MWK") == "MWK 0.01"
