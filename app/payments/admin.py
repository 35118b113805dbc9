"""
Settlement admin configuration.

Records are read-only here. State changes go through the services (and
the admin API endpoints) so they are locked, audited and notified. The
order list can check selected charges against the payment gateway.
"""

from django.contrib import admin, messages

from core.exceptions import BaseApplicationError
from payments.adapters import get_payment_gateway
from payments.models import AuditLogEntry, Dispute, Escrow, Order, Payout, WebhookEvent
from payments.money import format_money
from payments.services import OrderService


class ReadOnlyAdmin(admin.ModelAdmin):
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]


@admin.register(Order)
class OrderAdmin(ReadOnlyAdmin):
    list_display = ["id", "buyer", "seller", "amount_display", "status", "created_at"]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "payment_reference", "buyer__email", "seller__email"]
    actions = ["verify_payments"]

    @admin.display(description="Amount")
    def amount_display(self, obj):
        return format_money(obj.price_cents, obj.currency)

    @admin.action(description="Verify payment with the gateway")
    def verify_payments(self, request, queryset):
        """
        Ask the gateway about each selected order's charge.

        Read-only: mismatches are reported for manual follow-up and no
        order is changed.
        """
        gateway = get_payment_gateway()
        for order in queryset:
            try:
                charge = OrderService.verify_payment(order, gateway=gateway)
            except BaseApplicationError as e:
                self.message_user(request, f"Order {order.id}: {e.message}", level=messages.ERROR)
                continue

            if not charge.paid:
                self.message_user(
                    request,
                    f"Order {order.id}: charge {charge.charge_id} is {charge.status}",
                    level=messages.WARNING,
                )
            elif charge.amount_cents != order.price_cents or charge.currency != order.currency:
                self.message_user(
                    request,
                    f"Order {order.id}: charged {format_money(charge.amount_cents, charge.currency)}, "
                    f"expected {format_money(order.price_cents, order.currency)}",
                    level=messages.WARNING,
                )
            else:
                self.message_user(request, f"Order {order.id}: payment verified", level=messages.SUCCESS)


@admin.register(Escrow)
class EscrowAdmin(ReadOnlyAdmin):
    list_display = ["id", "order", "seller", "amount_display", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "order__id", "buyer__email", "seller__email"]

    @admin.display(description="Amount")
    def amount_display(self, obj):
        return format_money(obj.amount_cents, obj.currency)


@admin.register(Dispute)
class DisputeAdmin(ReadOnlyAdmin):
    list_display = ["id", "order", "initiated_by", "reason", "status", "winner", "created_at"]
    list_filter = ["status", "winner", "created_at"]
    search_fields = ["id", "order__id", "reason"]


@admin.register(Payout)
class PayoutAdmin(ReadOnlyAdmin):
    list_display = ["id", "artist", "amount_display", "method", "status", "requested_at"]
    list_filter = ["status", "method", "created_at"]
    search_fields = ["id", "artist__email"]

    @admin.display(description="Amount")
    def amount_display(self, obj):
        return format_money(obj.amount_cents, obj.currency)


@admin.register(WebhookEvent)
class WebhookEventAdmin(ReadOnlyAdmin):
    list_display = ["id", "gateway_event_id", "event_type", "status", "retry_count", "created_at"]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "gateway_event_id", "event_type"]


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(ReadOnlyAdmin):
    list_display = ["id", "actor", "action", "target_type", "target_id", "created_at"]
    list_filter = ["action", "target_type", "created_at"]
    search_fields = ["target_id", "actor__email"]
