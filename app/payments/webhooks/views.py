"""
Webhook endpoint for the payment gateway.

The view:
1. Verifies the webhook signature through the PaymentGateway adapter
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Queues the event for async processing
4. Returns immediately
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from kombu.exceptions import OperationalError

from payments.adapters import get_payment_gateway
from payments.exceptions import WebhookVerificationError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def gateway_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue payment gateway webhook events.

    Idempotency:
    - WebhookEvent.gateway_event_id is unique
    - Events already processed return 200 without being queued again

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Missing/invalid signature or malformed event
    """
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return HttpResponse("Missing signature", status=400)

    try:
        event_data = get_payment_gateway().verify_webhook(request.body, signature)
    except WebhookVerificationError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e), "reason": e.details.get("reason")},
        )
        return HttpResponse("Invalid signature", status=400)

    gateway_event_id = event_data.get("id")
    event_type = event_data.get("type")
    event_object = (event_data.get("data") or {}).get("object")

    if not gateway_event_id or not event_type or not isinstance(event_object, dict):
        logger.warning(
            "Webhook missing required fields",
            extra={"gateway_event_id": gateway_event_id, "event_type": event_type},
        )
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received gateway webhook: {event_type}",
        extra={"gateway_event_id": gateway_event_id, "event_type": event_type},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        gateway_event_id=gateway_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"gateway_event_id": gateway_event_id},
        )
        return HttpResponse("Already processed", status=200)

    from payments.tasks import process_webhook_event

    try:
        process_webhook_event.delay(str(webhook_event.id))
    except OperationalError:
        # Stored as pending; the gateway redelivers and we queue it then
        logger.error(
            "Failed to queue webhook",
            extra={"gateway_event_id": gateway_event_id},
            exc_info=True,
        )
        return HttpResponse("Accepted", status=200)

    logger.info(
        "Webhook queued for processing",
        extra={
            "gateway_event_id": gateway_event_id,
            "webhook_event_id": str(webhook_event.id),
        },
    )
    return HttpResponse("Accepted", status=200)
