"""
Webhook event handlers for payment gateway events.

Handlers receive a stored WebhookEvent and return a ServiceResult. A
failed result is recorded on the WebhookEvent by the processing task;
unexpected exceptions propagate so Celery retries the task.

Handled events:
    charge.succeeded        -> OrderService.on_payment_succeeded
    charge.failed           -> OrderService.on_payment_failed
    charge.dispute.created  -> DisputeService.open_chargeback_dispute

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.exceptions import BaseApplicationError
from core.services import ServiceResult

from payments.models import WebhookEvent
from payments.services import DisputeService, OrderService


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: Gateway event type (e.g., "charge.succeeded")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unknown event types are acknowledged with a successful result so the
    gateway does not keep redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"gateway_event_id": webhook_event.gateway_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"gateway_event_id": webhook_event.gateway_event_id},
    )
    return handler(webhook_event)


def _order_id_from(charge: dict) -> str | None:
    metadata = charge.get("metadata") or {}
    return metadata.get("order_id") if isinstance(metadata, dict) else None


def _invalid_payload(webhook_event: WebhookEvent, message: str) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: {message}",
        extra={"gateway_event_id": webhook_event.gateway_event_id},
    )
    return ServiceResult.failure(message, error_code="INVALID_WEBHOOK_PAYLOAD")


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.succeeded")
def handle_charge_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """Move the order in metadata.order_id to processing."""
    charge = webhook_event.get_object()
    order_id = _order_id_from(charge)
    charge_ref = charge.get("id")

    if not order_id or not charge_ref:
        return _invalid_payload(webhook_event, "Missing metadata.order_id or charge id")

    try:
        order = OrderService.on_payment_succeeded(order_id, charge_ref)
    except BaseApplicationError as e:
        logger.warning(
            "charge.succeeded could not be applied",
            extra={"gateway_event_id": webhook_event.gateway_event_id, "error": str(e)},
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success({"order_id": str(order.id), "status": order.status})


@register_handler("charge.failed")
def handle_charge_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Refund the order and escrow in metadata.order_id."""
    charge = webhook_event.get_object()
    order_id = _order_id_from(charge)

    if not order_id:
        return _invalid_payload(webhook_event, "Missing metadata.order_id")

    try:
        order = OrderService.on_payment_failed(order_id)
    except BaseApplicationError as e:
        logger.warning(
            "charge.failed could not be applied",
            extra={"gateway_event_id": webhook_event.gateway_event_id, "error": str(e)},
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success({"order_id": str(order.id), "status": order.status})


@register_handler("charge.dispute.created")
def handle_charge_dispute_created(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Open a dispute for a chargeback, located by the disputed charge id.

    A chargeback against a released or refunded escrow comes back as a
    failed result so the event is flagged for manual review.
    """
    gateway_dispute = webhook_event.get_object()
    charge_ref = gateway_dispute.get("charge")

    if not charge_ref:
        return _invalid_payload(webhook_event, "Missing disputed charge id")

    gateway_reason = gateway_dispute.get("reason") or "unspecified"
    try:
        dispute = DisputeService.open_chargeback_dispute(
            charge_ref,
            description=f"Gateway chargeback ({gateway_reason}) for charge {charge_ref}",
        )
    except BaseApplicationError as e:
        logger.warning(
            "charge.dispute.created could not be applied",
            extra={
                "gateway_event_id": webhook_event.gateway_event_id,
                "charge_ref": charge_ref,
                "error": str(e),
            },
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success({"dispute_id": str(dispute.id) if dispute else None})
